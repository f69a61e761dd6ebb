"""Tests for recording sessions and admission control."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from recordforge.recording.events import ClickEvent, GroupEvent, NavigationEvent
from recordforge.recording.models import ElementInfo
from recordforge.recording.session import (
    AdmissionConfig,
    RecordingSession,
    RecordingStatus,
    SessionSnapshot,
)


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def session(clock):
    """An active session on a controllable clock."""
    return RecordingSession(name="Checkout", project_id="shop", clock=clock)


def click(event_id: str) -> ClickEvent:
    return ClickEvent(id=event_id, element=ElementInfo(id=event_id))


# =============================================================================
# Lifecycle
# =============================================================================


class TestSessionLifecycle:
    """Tests for status transitions."""

    def test_new_session_is_active(self, session):
        """Test a new session starts ACTIVE and empty."""
        assert session.status == RecordingStatus.ACTIVE
        assert session.event_count == 0
        assert session.session_key
        assert not session.is_terminal
        assert session.end_time is None

    def test_sessions_get_distinct_ids_and_keys(self):
        """Test ids and keys are generated per session."""
        a, b = RecordingSession(name="a"), RecordingSession(name="b")
        assert a.id != b.id
        assert a.session_key != b.session_key

    def test_pause_and_resume(self, session):
        """Test pause and resume toggle between ACTIVE and PAUSED."""
        assert session.pause()
        assert session.status == RecordingStatus.PAUSED
        assert session.resume()
        assert session.status == RecordingStatus.ACTIVE

    def test_complete_is_terminal(self, session):
        """Test a completed session refuses further transitions."""
        assert session.complete()
        assert session.status == RecordingStatus.COMPLETED
        assert session.is_terminal
        assert not session.pause()
        assert not session.resume()
        assert not session.complete()
        assert not session.error("late")
        assert session.status == RecordingStatus.COMPLETED

    def test_error_records_message(self, session):
        """Test error moves to FAILED with a message."""
        assert session.error("browser crashed")
        assert session.status == RecordingStatus.FAILED
        assert session.error_message == "browser crashed"
        assert not session.resume()

    def test_complete_from_paused(self, session):
        """Test a paused session can be completed."""
        session.pause()
        assert session.complete()
        assert session.status == RecordingStatus.COMPLETED


# =============================================================================
# Admission
# =============================================================================


class TestAdmission:
    """Tests for add_event admission rules."""

    def test_active_session_admits(self, session):
        """Test events are appended in order."""
        assert session.add_event(click("a"))
        assert session.add_event(click("b"))
        assert [e.id for e in session.events] == ["a", "b"]
        assert session.event_count == 2

    def test_paused_session_rejects(self, session):
        """Test paused sessions reject without raising."""
        session.pause()
        assert not session.add_event(click("a"))
        assert session.event_count == 0
        session.resume()
        assert session.add_event(click("a"))

    def test_terminal_session_rejects(self, session):
        """Test completed sessions reject events."""
        session.complete()
        assert not session.add_event(click("a"))
        assert session.event_count == 0

    def test_capacity_cap(self, clock):
        """Test the cap rejects further events but keeps the session ACTIVE."""
        session = RecordingSession(name="small", admission=AdmissionConfig(max_event_count=2), clock=clock)
        assert session.add_event(click("a"))
        assert session.add_event(click("b"))
        assert not session.add_event(click("c"))
        assert session.event_count == 2
        assert session.status == RecordingStatus.ACTIVE

    def test_cap_counts_top_level_events(self, clock):
        """Test a container counts once against the cap."""
        session = RecordingSession(name="small", admission=AdmissionConfig(max_event_count=1), clock=clock)
        group = GroupEvent(group_name="g", children=[click("a"), click("b")])
        assert session.add_event(group)
        assert not session.add_event(click("c"))

    def test_events_view_is_a_snapshot(self, session):
        """Test a previously read events tuple is unaffected by later writes."""
        session.add_event(click("a"))
        before = session.events
        session.add_event(click("b"))
        assert len(before) == 1
        assert len(session.events) == 2

    def test_concurrent_adds_never_exceed_cap(self):
        """Test concurrent writers cannot overshoot the cap."""
        session = RecordingSession(name="busy", admission=AdmissionConfig(max_event_count=50))

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: session.add_event(click(f"e{i}")), range(200)))

        assert sum(results) == 50
        assert session.event_count == 50
        assert len({e.id for e in session.events}) == 50


# =============================================================================
# Duration and Snapshots
# =============================================================================


class TestDurationAndSnapshot:
    """Tests for duration and persistence snapshots."""

    def test_duration_runs_until_completion(self, session, clock):
        """Test duration grows while active and freezes on completion."""
        clock.advance(seconds=1.5)
        assert session.duration_millis() == 1500
        session.complete()
        clock.advance(seconds=10)
        assert session.duration_millis() == 1500

    def test_snapshot_fields(self, session, clock):
        """Test snapshots copy identity, status and events."""
        session.add_event(click("a"))
        clock.advance(seconds=2)
        snapshot = session.snapshot()

        assert snapshot.id == session.id
        assert snapshot.name == "Checkout"
        assert snapshot.project_id == "shop"
        assert snapshot.status == RecordingStatus.ACTIVE
        assert snapshot.duration_ms == 2000
        assert [e.id for e in snapshot.events] == ["a"]
        assert snapshot.total_event_count == 1

    def test_snapshot_dict_is_camel_case(self, session):
        """Test snapshot dicts use the persistence field names."""
        session.add_event(NavigationEvent(id="n", target_url="https://a"))
        data = session.snapshot().to_dict()

        assert data["projectId"] == "shop"
        assert data["status"] == "ACTIVE"
        assert data["admission"] == {"maxEventCount": 1000}
        assert data["events"][0]["type"] == "NAVIGATION"
        assert data["endTime"] is None

    def test_from_snapshot_restores_session(self, session, clock):
        """Test a session rehydrated from its snapshot dict."""
        session.add_event(GroupEvent(id="g", group_name="Login", children=[click("a")]))
        session.pause()
        data = session.snapshot().to_dict()

        restored = RecordingSession.from_snapshot(SessionSnapshot.from_dict(data), clock=clock)

        assert restored.id == session.id
        assert restored.session_key == session.session_key
        assert restored.status == RecordingStatus.PAUSED
        assert restored.start_time == session.start_time
        assert [e.id for e in restored.events[0].walk()] == ["g", "a"]
        assert restored.resume()
        assert restored.add_event(click("b"))


class TestAdmissionConfig:
    """Tests for AdmissionConfig loading."""

    def test_from_dict_default(self):
        """Test missing keys fall back to the default cap."""
        assert AdmissionConfig.from_dict({}).max_event_count == 1000
        assert AdmissionConfig.from_dict({"maxEventCount": 5}).max_event_count == 5

    def test_from_settings(self, settings):
        """Test the cap is read from settings."""
        assert AdmissionConfig.from_settings(settings).max_event_count == settings.max_event_count
