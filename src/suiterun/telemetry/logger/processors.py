# src/suiterun/telemetry/logger/processors.py

"""
Custom structlog processors shared by every renderer.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS: dict[int | str, str] = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
    "submit": "📤",
    "poll": "🔁",
    "fetch": "📥",
    "success": "🎉",
    "general": "➡️",
}


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji chosen by `emoji_key` or the log level."""
    emoji_key: Any = event_dict.get("emoji_key")
    level = logging.getLevelName(method_name.upper()) if method_name else logging.INFO
    emoji = LOG_EMOJIS.get(emoji_key) if emoji_key else None
    if emoji is None and isinstance(level, int):
        emoji = LOG_EMOJIS.get(level, LOG_EMOJIS["general"])
    event = event_dict.get("event")
    if emoji and isinstance(event, str) and not event.startswith(emoji):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.pop("emoji_key", None)
    return event_dict

# 🔼⚙️
