"""Ingestion-side duplicate suppression.

Agents resend events after reconnecting and browsers fire bursts of
near-identical signals. ``EventProcessor`` filters both before an event
reaches ``RecordingSession.add_event``:

- exact resends are recognized by event id
- near-duplicates are recognized by kind + fingerprint inside a
  per-kind debounce window, measured on event timestamps
- incremental typing (prefix-related values differing by at most two
  characters) on the same input inside the window is collapsed
"""

from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

from .events import ClickEvent, EventKind, InputEvent, NavigationEvent, RecordedEvent

# Maximum length difference treated as incremental typing
TYPING_DELTA = 2


@dataclass(frozen=True)
class DebounceWindows:
    """Per-kind duplicate suppression windows in milliseconds."""

    click_ms: int = 300
    input_ms: int = 500
    navigation_ms: int = 1000
    default_ms: int = 100

    @classmethod
    def from_settings(cls, settings: Any) -> "DebounceWindows":
        return cls(
            click_ms=settings.click_debounce_ms,
            input_ms=settings.input_debounce_ms,
            navigation_ms=settings.navigation_debounce_ms,
            default_ms=settings.default_debounce_ms,
        )

    def window_for(self, kind: EventKind) -> int:
        if kind == EventKind.CLICK:
            return self.click_ms
        if kind == EventKind.INPUT:
            return self.input_ms
        if kind == EventKind.NAVIGATION:
            return self.navigation_ms
        return self.default_ms


@dataclass(frozen=True)
class _Seen:
    kind: EventKind
    fingerprint: str
    timestamp: int
    value: Optional[str]


def _element_key(event: RecordedEvent) -> str:
    element = getattr(event, "element", None)
    if element is None:
        return ""
    if element.id:
        return f"id={element.id}"
    if element.xpath:
        return f"xpath={element.xpath}"
    if element.css_selector:
        return f"css={element.css_selector}"
    return f"tag={element.tag_name}"


def fingerprint(event: RecordedEvent) -> str:
    """Identity of an event for near-duplicate detection."""
    parts = [event.kind.value, event.command]
    if isinstance(event, NavigationEvent):
        parts.append(f"url={event.target_url or event.url}")
    elif isinstance(event, InputEvent):
        parts.append(_element_key(event))
        parts.append(f"value={event.input_value}")
    elif isinstance(event, ClickEvent):
        parts.append(_element_key(event))
    else:
        parts.append(event.id)
    return "|".join(parts)


def _input_key(fp: str) -> str:
    return fp.rsplit("|value=", 1)[0]


def _is_incremental(previous: Optional[str], current: Optional[str]) -> bool:
    if previous is None or current is None:
        return False
    related = current.startswith(previous) or previous.startswith(current)
    return related and abs(len(current) - len(previous)) <= TYPING_DELTA


class EventProcessor:
    """Per-session duplicate filter.

    One instance belongs to one session; instances never share state.
    """

    def __init__(self, windows: Optional[DebounceWindows] = None, history_size: int = 100):
        self.windows = windows or DebounceWindows()
        self._recent: deque[_Seen] = deque(maxlen=history_size)
        self._seen_ids: set[str] = set()

    def is_duplicate(self, event: RecordedEvent) -> bool:
        if event.id in self._seen_ids:
            return True

        fp = fingerprint(event)
        window = self.windows.window_for(event.kind)
        value = event.input_value if isinstance(event, InputEvent) else None

        for seen in reversed(self._recent):
            if seen.kind != event.kind:
                continue
            if abs(event.timestamp - seen.timestamp) > window:
                continue
            if seen.fingerprint == fp:
                return True
            if (
                event.kind == EventKind.INPUT
                and _input_key(seen.fingerprint) == _input_key(fp)
                and _is_incremental(seen.value, value)
            ):
                return True
        return False

    def record(self, event: RecordedEvent) -> None:
        """Remember an admitted event."""
        self._seen_ids.add(event.id)
        value = event.input_value if isinstance(event, InputEvent) else None
        self._recent.append(_Seen(event.kind, fingerprint(event), event.timestamp, value))
