"""Assertion evaluation.

Compares an actual runtime value with an assertion's expectation. The
base comparison is picked from a table keyed by assertion type and
negation is applied to its boolean result only. Numeric comparators
report ERROR for values that do not parse as numbers instead of raising.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional

from .events import AssertionEvent, AssertionStatus, AssertionType


_TRUTHY = frozenset({"true", "1", "yes", "on"})


class AssertionEvaluationError(ValueError):
    """Inputs cannot be compared (non-numeric operand, bad pattern)."""


@dataclass(frozen=True)
class AssertionOutcome:
    """Result of evaluating one assertion."""

    status: AssertionStatus
    passed: bool = False
    error: Optional[str] = None


def _normalize(value: str, case_sensitive: bool) -> str:
    return value if case_sensitive else value.casefold()


def _pattern(expected: str, case_sensitive: bool) -> re.Pattern:
    try:
        return re.compile(expected, 0 if case_sensitive else re.IGNORECASE)
    except re.error as e:
        raise AssertionEvaluationError(f"Invalid pattern {expected!r}: {e}") from e


def _number(value: str, role: str) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise AssertionEvaluationError(f"{role} value {value!r} is not numeric") from None


def _equals(actual: str, expected: str, event: AssertionEvent) -> bool:
    if event.tolerance is not None:
        return _numeric_equals(actual, expected, event)
    if event.is_regex:
        return _pattern(expected, event.case_sensitive).fullmatch(actual) is not None
    return _normalize(actual, event.case_sensitive) == _normalize(expected, event.case_sensitive)


def _contains(actual: str, expected: str, event: AssertionEvent) -> bool:
    if event.is_regex:
        return _pattern(expected, event.case_sensitive).search(actual) is not None
    return _normalize(expected, event.case_sensitive) in _normalize(actual, event.case_sensitive)


def _starts_with(actual: str, expected: str, event: AssertionEvent) -> bool:
    return _normalize(actual, event.case_sensitive).startswith(
        _normalize(expected, event.case_sensitive)
    )


def _ends_with(actual: str, expected: str, event: AssertionEvent) -> bool:
    return _normalize(actual, event.case_sensitive).endswith(
        _normalize(expected, event.case_sensitive)
    )


def _regex_match(actual: str, expected: str, event: AssertionEvent) -> bool:
    return _pattern(expected, event.case_sensitive).fullmatch(actual) is not None


def _numeric_equals(actual: str, expected: str, event: AssertionEvent) -> bool:
    a, e = _number(actual, "Actual"), _number(expected, "Expected")
    return abs(a - e) <= (event.tolerance or 0.0)


def _numeric(compare: Callable[[float, float], bool]):
    def check(actual: str, expected: str, event: AssertionEvent) -> bool:
        return compare(_number(actual, "Actual"), _number(expected, "Expected"))

    return check


def _truthy(actual: str, expected: str, event: AssertionEvent) -> bool:
    return str(actual).strip().lower() in _TRUTHY


_COMPARATORS: dict[AssertionType, Callable[[str, str, AssertionEvent], bool]] = {
    AssertionType.PRESENT: _truthy,
    AssertionType.VISIBLE: _truthy,
    AssertionType.ENABLED: _truthy,
    AssertionType.SELECTED: _truthy,
    AssertionType.CUSTOM_JAVASCRIPT: _truthy,
    AssertionType.TEXT_EQUALS: _equals,
    AssertionType.ATTRIBUTE_EQUALS: _equals,
    AssertionType.URL: _equals,
    AssertionType.TITLE: _equals,
    AssertionType.EQUALS: _equals,
    AssertionType.TEXT_CONTAINS: _contains,
    AssertionType.ATTRIBUTE_CONTAINS: _contains,
    AssertionType.URL_CONTAINS: _contains,
    AssertionType.TITLE_CONTAINS: _contains,
    AssertionType.CONTAINS: _contains,
    AssertionType.STARTS_WITH: _starts_with,
    AssertionType.ENDS_WITH: _ends_with,
    AssertionType.REGEX_MATCH: _regex_match,
    AssertionType.GREATER_THAN: _numeric(lambda a, e: a > e),
    AssertionType.LESS_THAN: _numeric(lambda a, e: a < e),
    AssertionType.GREATER_THAN_OR_EQUALS: _numeric(lambda a, e: a >= e),
    AssertionType.LESS_THAN_OR_EQUALS: _numeric(lambda a, e: a <= e),
    AssertionType.COUNT_EQUALS: _numeric_equals,
    AssertionType.COUNT_GREATER_THAN: _numeric(lambda a, e: a > e),
    AssertionType.COUNT_LESS_THAN: _numeric(lambda a, e: a < e),
}

# Types that only look at the actual value
_UNARY_TYPES = frozenset({
    AssertionType.PRESENT,
    AssertionType.VISIBLE,
    AssertionType.ENABLED,
    AssertionType.SELECTED,
    AssertionType.CUSTOM_JAVASCRIPT,
})


def _base_result(event: AssertionEvent, actual: Optional[str]) -> bool:
    expected = event.expected_value
    if event.assertion_type in _UNARY_TYPES:
        return actual is not None and _COMPARATORS[event.assertion_type](actual, "", event)
    if actual is None and expected is None:
        return True
    if actual is None or expected is None:
        return False
    return _COMPARATORS[event.assertion_type](str(actual), str(expected), event)


def evaluate_assertion(event: AssertionEvent, actual: Optional[str]) -> AssertionOutcome:
    """Evaluate ``event`` against ``actual`` without mutating the event.

    Identical inputs always produce an identical outcome.
    """
    if event.assertion_type is None:
        return AssertionOutcome(AssertionStatus.ERROR, error="assertion type is required")
    try:
        passed = _base_result(event, actual)
    except AssertionEvaluationError as e:
        return AssertionOutcome(AssertionStatus.ERROR, error=str(e))

    if event.negated:
        passed = not passed
    status = AssertionStatus.PASSED if passed else AssertionStatus.FAILED
    return AssertionOutcome(status, passed=passed)


def evaluate_all(
    events: list[AssertionEvent],
    actual_values: dict[str, Optional[str]],
) -> dict[str, AssertionStatus]:
    """Evaluate many assertions, keyed by event id; one ERROR never stops the batch."""
    results = {}
    for event in events:
        results[event.id] = event.evaluate(actual_values.get(event.id))
    return results
