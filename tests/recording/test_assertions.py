"""Tests for assertion evaluation."""

import pytest

from recordforge.recording.assertions import evaluate_all, evaluate_assertion
from recordforge.recording.events import AssertionEvent, AssertionStatus, AssertionType
from recordforge.recording.models import ElementInfo


def make_assertion(assertion_type, expected=None, **kwargs):
    """Build an element assertion with a default target."""
    return AssertionEvent(
        assertion_type=assertion_type,
        expected_value=expected,
        element=ElementInfo(id="target"),
        **kwargs,
    )


class TestStringComparisons:
    """Tests for text comparison assertions."""

    def test_text_equals(self):
        """Test exact text equality."""
        event = make_assertion(AssertionType.TEXT_EQUALS, "Welcome")
        assert evaluate_assertion(event, "Welcome").status == AssertionStatus.PASSED
        assert evaluate_assertion(event, "welcome").status == AssertionStatus.FAILED

    def test_case_insensitive(self):
        """Test case-insensitive comparison."""
        event = make_assertion(AssertionType.TEXT_EQUALS, "Welcome", case_sensitive=False)
        outcome = evaluate_assertion(event, "WELCOME")
        assert outcome.passed
        assert outcome.status == AssertionStatus.PASSED

    def test_contains_starts_ends(self):
        """Test substring comparators."""
        assert evaluate_assertion(make_assertion(AssertionType.CONTAINS, "ell"), "hello").passed
        assert evaluate_assertion(make_assertion(AssertionType.STARTS_WITH, "he"), "hello").passed
        assert evaluate_assertion(make_assertion(AssertionType.ENDS_WITH, "lo"), "hello").passed
        assert not evaluate_assertion(make_assertion(AssertionType.ENDS_WITH, "he"), "hello").passed

    def test_regex_match_is_full_match(self):
        """Test REGEX_MATCH anchors the whole value."""
        event = make_assertion(AssertionType.REGEX_MATCH, r"\d{3}-\d{4}")
        assert evaluate_assertion(event, "555-1234").passed
        assert not evaluate_assertion(event, "call 555-1234").passed

    def test_is_regex_contains_searches(self):
        """Test CONTAINS with is_regex searches anywhere."""
        event = make_assertion(AssertionType.CONTAINS, "fo+", is_regex=True)
        assert evaluate_assertion(event, "xfoooy").passed

    def test_invalid_pattern_is_error(self):
        """Test a bad pattern reports ERROR instead of raising."""
        outcome = evaluate_assertion(make_assertion(AssertionType.REGEX_MATCH, "("), "x")
        assert outcome.status == AssertionStatus.ERROR
        assert "Invalid pattern" in outcome.error

    def test_missing_values(self):
        """Test absent actual or expected values."""
        event = make_assertion(AssertionType.EQUALS, None)
        assert evaluate_assertion(event, None).passed
        assert not evaluate_assertion(make_assertion(AssertionType.EQUALS, "x"), None).passed


class TestNumericComparisons:
    """Tests for numeric comparators."""

    def test_greater_and_less(self):
        """Test numeric ordering uses numbers, not strings."""
        assert evaluate_assertion(make_assertion(AssertionType.GREATER_THAN, "9"), "10").passed
        assert evaluate_assertion(make_assertion(AssertionType.LESS_THAN_OR_EQUALS, "10"), "10").passed
        assert not evaluate_assertion(make_assertion(AssertionType.LESS_THAN, "9"), "10").passed

    def test_non_numeric_actual_is_error(self):
        """Test non-numeric input yields ERROR with a message."""
        outcome = evaluate_assertion(make_assertion(AssertionType.GREATER_THAN, "10"), "abc")
        assert outcome.status == AssertionStatus.ERROR
        assert not outcome.passed
        assert "not numeric" in outcome.error

    def test_negation_does_not_mask_errors(self):
        """Test negation never turns an ERROR into a pass."""
        event = make_assertion(AssertionType.GREATER_THAN, "10", negated=True)
        assert evaluate_assertion(event, "abc").status == AssertionStatus.ERROR

    def test_tolerance_makes_equals_numeric(self):
        """Test EQUALS within tolerance."""
        event = make_assertion(AssertionType.EQUALS, "10", tolerance=0.5)
        assert evaluate_assertion(event, "10.3").passed
        assert not evaluate_assertion(event, "10.6").passed

    def test_count_equals(self):
        """Test element count equality."""
        assert evaluate_assertion(make_assertion(AssertionType.COUNT_EQUALS, "3"), "3").passed
        assert not evaluate_assertion(make_assertion(AssertionType.COUNT_EQUALS, "3"), "4").passed


class TestStateAssertions:
    """Tests for unary state assertions."""

    @pytest.mark.parametrize("actual", ["true", "TRUE", "1", "yes"])
    def test_truthy_values_pass(self, actual):
        """Test truthy strings pass state assertions."""
        assert evaluate_assertion(make_assertion(AssertionType.VISIBLE), actual).passed

    def test_missing_or_false_fails(self):
        """Test absent and false values fail."""
        event = make_assertion(AssertionType.VISIBLE)
        assert not evaluate_assertion(event, None).passed
        assert not evaluate_assertion(event, "false").passed

    def test_negated_state(self):
        """Test negation applies to the boolean result."""
        event = make_assertion(AssertionType.VISIBLE, negated=True)
        assert evaluate_assertion(event, None).status == AssertionStatus.PASSED
        assert evaluate_assertion(event, "true").status == AssertionStatus.FAILED


class TestEvaluateOnEvent:
    """Tests for AssertionEvent.evaluate and batch evaluation."""

    def test_missing_type_is_error(self):
        """Test untyped assertions evaluate to ERROR."""
        outcome = evaluate_assertion(AssertionEvent(), "x")
        assert outcome.status == AssertionStatus.ERROR

    def test_evaluate_records_result(self):
        """Test evaluate stores actual value, status and error."""
        event = make_assertion(AssertionType.TEXT_CONTAINS, "Order")
        assert event.evaluate("Order #42") == AssertionStatus.PASSED
        assert event.actual_value == "Order #42"
        assert event.status == AssertionStatus.PASSED
        assert event.error_message is None

    def test_evaluate_is_deterministic(self):
        """Test identical inputs produce identical outcomes."""
        event = make_assertion(AssertionType.GREATER_THAN, "5")
        assert evaluate_assertion(event, "7") == evaluate_assertion(event, "7")

    def test_evaluate_all_continues_after_error(self):
        """Test one ERROR does not stop the batch."""
        broken = make_assertion(AssertionType.GREATER_THAN, "1")
        fine = make_assertion(AssertionType.TEXT_EQUALS, "ok")
        results = evaluate_all([broken, fine], {broken.id: "n/a", fine.id: "ok"})

        assert results == {broken.id: AssertionStatus.ERROR, fine.id: AssertionStatus.PASSED}
