#
# src/suiterun/backends/normalize.py
#
"""
Converts raw backend records into canonical `CaseResult` objects.

Backends are inconsistent about key casing (`MethodName` vs `methodName`,
`ApexClass.Name` vs `apexClass.name`). All of that is resolved here so the
orchestration core only ever sees one shape.
"""

from collections.abc import Mapping
from typing import Any

from suiterun.protocols import CaseResult, Outcome

_OUTCOME_ALIASES = {
    "pass": Outcome.PASS,
    "passed": Outcome.PASS,
    "success": Outcome.PASS,
    "fail": Outcome.FAIL,
    "failed": Outcome.FAIL,
    "failure": Outcome.FAIL,
    "compilefail": Outcome.FAIL,
    "error": Outcome.FAIL,
    "skip": Outcome.SKIP,
    "skipped": Outcome.SKIP,
}


def _lookup(raw: Mapping[str, Any], *names: str) -> Any:
    """Returns the first non-None value among `names`, ignoring key case."""
    lowered = {str(k).lower(): v for k, v in raw.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return value
    return None


def parse_outcome(value: Any) -> Outcome:
    key = str(value or "").strip().lower()
    try:
        return _OUTCOME_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unrecognized test outcome: {value!r}") from None


def _duration_ms(raw: Mapping[str, Any]) -> int:
    value = _lookup(raw, "durationMs", "runTime")
    if value is None:
        return 0
    try:
        return max(0, int(round(float(value))))
    except (TypeError, ValueError):
        return 0


def _suite_name(raw: Mapping[str, Any]) -> str | None:
    suite = _lookup(raw, "suite", "className")
    if suite:
        return str(suite)
    apex_class = _lookup(raw, "apexClass")
    if isinstance(apex_class, Mapping):
        name = _lookup(apex_class, "name")
        if name:
            return str(name)
    full_name = _lookup(raw, "fullName")
    if isinstance(full_name, str) and "." in full_name:
        return full_name.rsplit(".", 1)[0]
    return None


def _case_name(raw: Mapping[str, Any]) -> str | None:
    case = _lookup(raw, "case", "methodName")
    if case:
        return str(case)
    full_name = _lookup(raw, "fullName")
    if isinstance(full_name, str) and "." in full_name:
        return full_name.rsplit(".", 1)[1]
    return None


def normalize_case_result(raw: Mapping[str, Any]) -> CaseResult:
    """
    Builds a `CaseResult` from a raw backend record.

    Raises:
        ValueError: if the suite, case or outcome cannot be determined.
    """
    suite = _suite_name(raw)
    case = _case_name(raw)
    if not suite or not case:
        raise ValueError(f"Result record lacks suite or case name: {dict(raw)!r}")

    message = _lookup(raw, "message")
    stack_trace = _lookup(raw, "stackTrace")
    artifact_id = _lookup(raw, "artifactId", "apexLogId", "logId")
    return CaseResult(
        suite=suite,
        case=case,
        outcome=parse_outcome(_lookup(raw, "outcome")),
        duration_ms=_duration_ms(raw),
        message=str(message) if message else None,
        stack_trace=str(stack_trace) if stack_trace else None,
        artifact_id=str(artifact_id) if artifact_id else None,
    )
