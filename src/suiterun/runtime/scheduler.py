# src/suiterun/runtime/scheduler.py

"""
Debounces state mutations into a single "changed" notification for observers.
"""

import asyncio
from collections.abc import Callable

import structlog

from suiterun.runtime.clock import AsyncioClock, Clock
from suiterun.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.scheduler")
# Quiet period after the last notify() before observers are told.
DEBOUNCE_DELAY = 0.1  # 100 milliseconds

ChangeHandler = Callable[[], None]


class ChangeScheduler:
    """
    Trailing debounce for change notifications.

    `notify()` is cheap and synchronous. A single background task waits
    until `delay` seconds have passed since the most recent `notify()` and
    then fires every subscribed handler once. Handlers get no payload and
    are expected to re-read registry state themselves.
    """

    def __init__(self, delay: float = DEBOUNCE_DELAY, clock: Clock | None = None):
        self.delay = delay
        self._clock = clock or AsyncioClock()
        self._handlers: list[ChangeHandler] = []
        self._pending = False
        self._last_notify: float = 0.0
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._closed = False
        self.fired_count = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def on_changed(self, handler: ChangeHandler) -> Callable[[], None]:
        """Subscribes `handler`; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def notify(self) -> None:
        """Marks state as changed. Delivery happens `delay` after the last call."""
        self._pending = True
        self._last_notify = self._clock.monotonic()
        if self._closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run the debounce task on; flush() delivers instead.
            log.debug("notify() outside an event loop, delivery deferred to flush()")
            return
        self._ensure_task()
        self._wakeup.set()

    def flush(self) -> None:
        """Delivers any pending notification immediately."""
        if self._pending:
            self._fire()

    async def aclose(self) -> None:
        """Flushes pending work and stops the background task."""
        self.flush()
        self._closed = True
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        log.debug("Change scheduler closed", fired=self.fired_count)

    def _ensure_task(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._wakeup), name="suiterun-change-scheduler")

    async def _run(self, wakeup: asyncio.Event) -> None:
        while True:
            await wakeup.wait()
            wakeup.clear()
            # Keep sleeping until the burst has been quiet for a full delay.
            while self._pending:
                remaining = self._last_notify + self.delay - self._clock.monotonic()
                if remaining <= 0:
                    break
                await self._clock.sleep(remaining)
            if self._pending:
                self._fire()

    def _fire(self) -> None:
        self._pending = False
        self.fired_count += 1
        log.debug("Delivering change notification", handlers=len(self._handlers))
        for handler in list(self._handlers):
            try:
                handler()
            except Exception as e:
                log.warning("Change handler raised", handler=repr(handler), error=str(e), exc_info=True)

# 🔼⚙️
