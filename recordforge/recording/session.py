"""Recording session aggregate.

A session owns the ordered top-level events of one recording and decides
whether new events are admitted. Structural mutation is serialized by a
per-session lock; readers get an immutable tuple snapshot and never wait
on the lock.
"""

import secrets
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Optional
from uuid import uuid4

from ..utils.logging import SessionLogger
from .events import RecordedEvent, count_events, events_from_list


class RecordingStatus(str, Enum):
    """Lifecycle states of a recording session."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset({RecordingStatus.COMPLETED, RecordingStatus.FAILED})

DEFAULT_MAX_EVENT_COUNT = 1000


@dataclass(frozen=True)
class AdmissionConfig:
    """Admission limits supplied by the external config loader."""

    max_event_count: int = DEFAULT_MAX_EVENT_COUNT

    @classmethod
    def from_dict(cls, data: dict) -> "AdmissionConfig":
        return cls(max_event_count=int(data.get("maxEventCount", DEFAULT_MAX_EVENT_COUNT)))

    @classmethod
    def from_settings(cls, settings: Any) -> "AdmissionConfig":
        return cls(max_event_count=settings.max_event_count)

    def to_dict(self) -> dict:
        return {"maxEventCount": self.max_event_count}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class SessionSnapshot:
    """Point-in-time copy of a session handed to the persistence layer."""

    id: str
    name: str
    project_id: Optional[str]
    session_key: str
    status: RecordingStatus
    start_time: datetime
    end_time: Optional[datetime]
    admission: AdmissionConfig
    events: list[RecordedEvent] = field(default_factory=list)
    duration_ms: int = 0
    error_message: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def total_event_count(self) -> int:
        return count_events(self.events)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "projectId": self.project_id,
            "sessionKey": self.session_key,
            "status": self.status.value,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "admission": self.admission.to_dict(),
            "events": [event.to_dict() for event in self.events],
            "durationMs": self.duration_ms,
            "errorMessage": self.error_message,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionSnapshot":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            project_id=data.get("projectId"),
            session_key=data.get("sessionKey", ""),
            status=RecordingStatus(data.get("status", RecordingStatus.ACTIVE.value)),
            start_time=_parse_iso(data.get("startTime")) or _utcnow(),
            end_time=_parse_iso(data.get("endTime")),
            admission=AdmissionConfig.from_dict(data.get("admission") or {}),
            events=events_from_list(data.get("events")),
            duration_ms=data.get("durationMs", 0),
            error_message=data.get("errorMessage"),
            metadata=dict(data.get("metadata") or {}),
        )


class RecordingSession:
    """Admission control and lifecycle for one recording.

    All normal rejections are reported as ``False``; nothing here raises
    for a closed or full session.

    Example:
        session = RecordingSession(name="Checkout flow", project_id="shop")
        session.add_event(ClickEvent(element=ElementInfo(id="buy")))
        session.pause()
        session.resume()
        session.complete()
    """

    def __init__(
        self,
        name: str,
        project_id: Optional[str] = None,
        admission: Optional[AdmissionConfig] = None,
        session_id: Optional[str] = None,
        session_key: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.id = session_id or str(uuid4())
        self.name = name
        self.project_id = project_id
        self.session_key = session_key or secrets.token_urlsafe(24)
        self.admission = admission or AdmissionConfig()
        self.metadata = dict(metadata or {})
        self._clock = clock
        self._lock = threading.Lock()
        self._events: tuple[RecordedEvent, ...] = ()
        self._status = RecordingStatus.ACTIVE
        self.start_time = clock()
        self.end_time: Optional[datetime] = None
        self.error_message: Optional[str] = None
        self.log = SessionLogger(self.id, name)

    # -- reads (lock-free) --------------------------------------------------

    @property
    def status(self) -> RecordingStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    @property
    def events(self) -> tuple[RecordedEvent, ...]:
        return self._events

    @property
    def event_count(self) -> int:
        return len(self._events)

    def duration_millis(self) -> int:
        end = self.end_time or self._clock()
        return int((end - self.start_time).total_seconds() * 1000)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            name=self.name,
            project_id=self.project_id,
            session_key=self.session_key,
            status=self._status,
            start_time=self.start_time,
            end_time=self.end_time,
            admission=self.admission,
            events=list(self._events),
            duration_ms=self.duration_millis(),
            error_message=self.error_message,
            metadata=dict(self.metadata),
        )

    # -- writes (serialized) -------------------------------------------------

    def add_event(self, event: RecordedEvent) -> bool:
        """Append ``event`` if the session is ACTIVE and below its cap."""
        with self._lock:
            if self._status != RecordingStatus.ACTIVE:
                self.log.event_rejected(event.id, event.kind.value, reason=self._status.value)
                return False
            if len(self._events) >= self.admission.max_event_count:
                self.log.event_rejected(event.id, event.kind.value, reason="capacity")
                return False
            self._events = self._events + (event,)
        self.log.event_admitted(event.id, event.kind.value)
        return True

    def pause(self) -> bool:
        with self._lock:
            if self.is_terminal:
                return False
            self._status = RecordingStatus.PAUSED
            return True

    def resume(self) -> bool:
        with self._lock:
            if self.is_terminal:
                return False
            self._status = RecordingStatus.ACTIVE
            return True

    def complete(self) -> bool:
        return self._finish(RecordingStatus.COMPLETED)

    def error(self, message: Optional[str] = None) -> bool:
        return self._finish(RecordingStatus.FAILED, message)

    def _finish(self, status: RecordingStatus, message: Optional[str] = None) -> bool:
        with self._lock:
            if self.is_terminal:
                return False
            self._status = status
            self.end_time = self._clock()
            self.error_message = message
        self.log.session_ended(status.value, self.duration_millis())
        return True

    @classmethod
    def from_snapshot(
        cls,
        snapshot: SessionSnapshot,
        clock: Callable[[], datetime] = _utcnow,
    ) -> "RecordingSession":
        """Rehydrate a session handed back by the persistence layer."""
        session = cls(
            name=snapshot.name,
            project_id=snapshot.project_id,
            admission=snapshot.admission,
            session_id=snapshot.id,
            session_key=snapshot.session_key,
            clock=clock,
            metadata=snapshot.metadata,
        )
        session.start_time = snapshot.start_time
        session.end_time = snapshot.end_time
        session.error_message = snapshot.error_message
        session._events = tuple(snapshot.events)
        session._status = snapshot.status
        return session
