"""Tests for ingestion-side duplicate suppression."""

import pytest

from recordforge.recording.events import (
    ClickEvent,
    CustomJsEvent,
    EventKind,
    InputEvent,
    NavigationEvent,
)
from recordforge.recording.models import ElementInfo
from recordforge.recording.processor import DebounceWindows, EventProcessor, fingerprint


@pytest.fixture
def processor():
    """Processor with the default windows."""
    return EventProcessor()


def click(event_id, timestamp, element_id="buy"):
    return ClickEvent(id=event_id, timestamp=timestamp, element=ElementInfo(id=element_id))


def typed(event_id, timestamp, value, element_id="q"):
    return InputEvent(id=event_id, timestamp=timestamp, element=ElementInfo(id=element_id), input_value=value)


class TestDebounceWindows:
    """Tests for per-kind windows."""

    def test_defaults(self):
        """Test default windows per kind."""
        windows = DebounceWindows()
        assert windows.window_for(EventKind.CLICK) == 300
        assert windows.window_for(EventKind.INPUT) == 500
        assert windows.window_for(EventKind.NAVIGATION) == 1000
        assert windows.window_for(EventKind.GROUP) == 100

    def test_from_settings(self, settings):
        """Test windows are read from settings."""
        windows = DebounceWindows.from_settings(settings)
        assert windows.click_ms == settings.click_debounce_ms
        assert windows.navigation_ms == settings.navigation_debounce_ms


class TestEventProcessor:
    """Tests for EventProcessor.is_duplicate."""

    def test_first_event_is_not_duplicate(self, processor):
        """Test an empty history has no duplicates."""
        assert not processor.is_duplicate(click("a", 0))

    def test_resent_id_is_duplicate(self, processor):
        """Test a resend with the same id is always a duplicate."""
        event = click("a", 0)
        processor.record(event)
        assert processor.is_duplicate(click("a", 60_000))

    def test_same_click_inside_window(self, processor):
        """Test a repeated click on the same element inside the window."""
        processor.record(click("a", 1000))
        assert processor.is_duplicate(click("b", 1200))
        assert not processor.is_duplicate(click("c", 1400))

    def test_clicks_on_different_elements(self, processor):
        """Test clicks on different elements are kept."""
        processor.record(click("a", 1000, "buy"))
        assert not processor.is_duplicate(click("b", 1010, "cancel"))

    def test_incremental_typing_collapses(self, processor):
        """Test keystroke-by-keystroke values on one field collapse."""
        processor.record(typed("a", 0, "hel"))
        assert processor.is_duplicate(typed("b", 100, "hell"))
        assert not processor.is_duplicate(typed("c", 100, "hello world"))
        assert not processor.is_duplicate(typed("d", 100, "hell", element_id="other"))

    def test_navigation_window(self, processor):
        """Test navigation to the same URL inside one second."""
        processor.record(NavigationEvent(id="a", timestamp=0, target_url="https://a/next"))
        assert processor.is_duplicate(NavigationEvent(id="b", timestamp=900, target_url="https://a/next"))
        assert not processor.is_duplicate(NavigationEvent(id="c", timestamp=900, target_url="https://a/other"))

    def test_unfingerprinted_kinds_only_match_by_id(self, processor):
        """Test script steps are never treated as near-duplicates."""
        processor.record(CustomJsEvent(id="a", timestamp=0, script="x()"))
        assert not processor.is_duplicate(CustomJsEvent(id="b", timestamp=0, script="x()"))

    def test_history_is_bounded(self):
        """Test old fingerprints fall out of the history."""
        processor = EventProcessor(history_size=1)
        processor.record(click("a", 0, "buy"))
        processor.record(click("b", 10, "cancel"))
        assert not processor.is_duplicate(click("c", 20, "buy"))

    def test_fingerprint_ignores_id(self):
        """Test fingerprints identify the action, not the event id."""
        assert fingerprint(click("a", 0)) == fingerprint(click("b", 99))
