"""Shared fixtures for RecordForge tests."""

from datetime import UTC, datetime, timedelta

import pytest

from recordforge.config import Settings
from recordforge.recording.events import (
    AssertionEvent,
    AssertionType,
    ClickEvent,
    GroupEvent,
    InputEvent,
    NavigationEvent,
)
from recordforge.recording.models import ElementInfo


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (fast, critical path - included in CI)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


class FakeClock:
    """Manually advanced clock for sessions and retry queues."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def settings():
    """Settings with defaults only, isolated from the environment file."""
    return Settings(_env_file=None)


@pytest.fixture
def clock():
    """A controllable clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def login_button():
    """Element snapshot of a submit button with an id."""
    return ElementInfo(tag_name="button", id="login", text="Sign in")


@pytest.fixture
def email_field():
    """Element snapshot of an email input located by CSS."""
    return ElementInfo(tag_name="input", css_selector="input[name='email']", type="email")


@pytest.fixture
def login_steps(login_button, email_field):
    """A short login recording: navigate, type, click, assert."""
    return [
        NavigationEvent(id="nav-1", timestamp=1000, target_url="https://example.com/login"),
        InputEvent(id="input-1", timestamp=2000, element=email_field, input_value="user@example.com"),
        ClickEvent(id="click-1", timestamp=3000, element=login_button),
        AssertionEvent(
            id="assert-1",
            timestamp=4000,
            assertion_type=AssertionType.URL_CONTAINS,
            expected_value="/dashboard",
        ),
    ]


@pytest.fixture
def grouped_steps(login_steps):
    """The login recording wrapped in a named group."""
    return [GroupEvent(id="group-1", timestamp=500, group_name="Login", children=list(login_steps))]
