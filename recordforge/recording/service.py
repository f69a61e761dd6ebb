"""Recorder service - registry of live recording sessions.

Routes agent envelopes to the right session, applies duplicate
suppression, and exposes lifecycle control to the API layer. Each
session is written by one ingest path at a time (a per-session lock);
sessions never share mutable state with each other.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..config import Settings, get_settings
from ..utils.logging import get_logger
from .errors import SessionNotFoundError
from .events import RecordedEvent
from .processor import DebounceWindows, EventProcessor
from .session import AdmissionConfig, RecordingSession, RecordingStatus, SessionSnapshot
from .wire import CommandAction, CommandEnvelope, MessageType, WireEnvelope, now_ms


class IngestOutcome(str, Enum):
    """What happened to one inbound envelope."""

    ADMITTED = "admitted"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    CONTROL = "control"
    IGNORED = "ignored"


@dataclass
class IngestResult:
    """Result of ingesting one envelope."""

    outcome: IngestOutcome
    status: RecordingStatus
    event_id: Optional[str] = None
    reply: Optional[WireEnvelope] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == IngestOutcome.ADMITTED

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "status": self.status.value,
            "eventId": self.event_id,
            "accepted": self.accepted,
        }


@dataclass
class _SessionEntry:
    session: RecordingSession
    processor: EventProcessor
    write_lock: threading.Lock = field(default_factory=threading.Lock)
    last_seen_ms: int = 0
    channels: list[asyncio.Queue] = field(default_factory=list)


class RecorderService:
    """Owns the in-memory registry of recording sessions.

    Example:
        service = RecorderService()
        session = service.start_session("Login flow", project_id="web")
        service.ingest(session.id, WireEnvelope.for_event(session.id, click))
        snapshot = service.stop(session.id)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.admission = AdmissionConfig.from_settings(self.settings)
        self.windows = DebounceWindows.from_settings(self.settings)
        self._entries: dict[str, _SessionEntry] = {}
        self._registry_lock = threading.Lock()
        self.log = get_logger(__name__, component="recorder_service")

    # -- registry ------------------------------------------------------------

    def start_session(
        self,
        name: str,
        project_id: Optional[str] = None,
        admission: Optional[AdmissionConfig] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> RecordingSession:
        session = RecordingSession(
            name=name,
            project_id=project_id,
            admission=admission or self.admission,
            metadata=metadata,
        )
        entry = _SessionEntry(
            session=session,
            processor=EventProcessor(
                windows=self.windows,
                history_size=self.settings.recent_events_per_session,
            ),
            last_seen_ms=now_ms(),
        )
        with self._registry_lock:
            self._entries[session.id] = entry
        session.log.session_started(
            project_id=project_id,
            max_event_count=session.admission.max_event_count,
        )
        return session

    def restore(self, snapshot: SessionSnapshot) -> RecordingSession:
        """Register a session rehydrated from the persistence layer."""
        session = RecordingSession.from_snapshot(snapshot)
        processor = EventProcessor(self.windows, self.settings.recent_events_per_session)
        for event in session.events:
            processor.record(event)
        with self._registry_lock:
            self._entries[session.id] = _SessionEntry(session, processor, last_seen_ms=now_ms())
        return session

    def _entry(self, session_id: str) -> _SessionEntry:
        entry = self._entries.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        return entry

    def get(self, session_id: str) -> RecordingSession:
        return self._entry(session_id).session

    def list_sessions(self, project_id: Optional[str] = None) -> list[RecordingSession]:
        sessions = [entry.session for entry in list(self._entries.values())]
        if project_id is not None:
            sessions = [s for s in sessions if s.project_id == project_id]
        return sorted(sessions, key=lambda s: s.start_time)

    def remove(self, session_id: str) -> SessionSnapshot:
        with self._registry_lock:
            entry = self._entries.pop(session_id, None)
        if entry is None:
            raise SessionNotFoundError(session_id)
        return entry.session.snapshot()

    def verify_key(self, session_id: str, session_key: Optional[str]) -> bool:
        entry = self._entries.get(session_id)
        return entry is not None and session_key == entry.session.session_key

    def last_seen_ms(self, session_id: str) -> int:
        return self._entry(session_id).last_seen_ms

    # -- ingestion -----------------------------------------------------------

    def ingest(self, session_id: str, envelope: WireEnvelope) -> IngestResult:
        """Apply one agent envelope to its session."""
        entry = self._entry(session_id)
        entry.last_seen_ms = now_ms()
        if envelope.is_event:
            return self._admit(entry, envelope.event())
        return self._handle_control(entry, envelope)

    def ingest_event(self, session_id: str, event: RecordedEvent) -> IngestResult:
        entry = self._entry(session_id)
        entry.last_seen_ms = now_ms()
        return self._admit(entry, event)

    def _admit(self, entry: _SessionEntry, event: RecordedEvent) -> IngestResult:
        session = entry.session
        with entry.write_lock:
            if entry.processor.is_duplicate(event):
                session.log.duplicate_dropped(event.id, event.kind.value)
                return IngestResult(IngestOutcome.DUPLICATE, session.status, event.id)
            if not session.add_event(event):
                return IngestResult(IngestOutcome.REJECTED, session.status, event.id)
            entry.processor.record(event)
        return IngestResult(IngestOutcome.ADMITTED, session.status, event.id)

    def _handle_control(self, entry: _SessionEntry, envelope: WireEnvelope) -> IngestResult:
        session = entry.session
        message_type = envelope.message_type

        if message_type == MessageType.RECORDER_CONTROL:
            action = str(envelope.payload.get("action", "")).upper()
            if action == CommandAction.PAUSE.value:
                session.pause()
            elif action == CommandAction.RESUME.value:
                session.resume()
            elif action == CommandAction.STOP.value:
                session.complete()
            else:
                self.log.debug("Unknown control action", session_id=session.id, action=action)
                return IngestResult(IngestOutcome.IGNORED, session.status)
            return IngestResult(IngestOutcome.CONTROL, session.status)

        if message_type == MessageType.INIT:
            session.metadata["agent"] = dict(envelope.payload)
            self.log.info("Capture agent connected", session_id=session.id, url=envelope.payload.get("url"))
            return IngestResult(IngestOutcome.CONTROL, session.status)

        if message_type == MessageType.STATUS:
            session.metadata["agentStatus"] = dict(envelope.payload)
            return IngestResult(IngestOutcome.CONTROL, session.status)

        if message_type == MessageType.PING:
            reply = WireEnvelope.control(MessageType.PONG, session.id)
            return IngestResult(IngestOutcome.CONTROL, session.status, reply=reply)

        # HEARTBEAT, PONG, SCREENSHOT: liveness only
        return IngestResult(IngestOutcome.IGNORED, session.status)

    # -- lifecycle -----------------------------------------------------------

    def pause(self, session_id: str) -> bool:
        return self.get(session_id).pause()

    def resume(self, session_id: str) -> bool:
        return self.get(session_id).resume()

    def stop(self, session_id: str) -> SessionSnapshot:
        session = self.get(session_id)
        session.complete()
        self.send_command(session_id, CommandAction.STOP)
        return session.snapshot()

    def fail(self, session_id: str, message: Optional[str] = None) -> SessionSnapshot:
        session = self.get(session_id)
        session.error(message)
        return session.snapshot()

    def snapshot(self, session_id: str) -> SessionSnapshot:
        return self.get(session_id).snapshot()

    # -- server to agent commands ---------------------------------------------

    def attach_channel(self, session_id: str) -> asyncio.Queue:
        """Register an outbound command queue for a connected agent."""
        queue: asyncio.Queue = asyncio.Queue()
        self._entry(session_id).channels.append(queue)
        return queue

    def detach_channel(self, session_id: str, queue: asyncio.Queue) -> None:
        entry = self._entries.get(session_id)
        if entry is not None and queue in entry.channels:
            entry.channels.remove(queue)

    def send_command(self, session_id: str, action: CommandAction) -> int:
        """Queue ``action`` for every connected agent; returns how many were reached."""
        entry = self._entry(session_id)
        command = CommandEnvelope(action=action, session_id=session_id)
        for queue in entry.channels:
            queue.put_nowait(command)
        return len(entry.channels)
