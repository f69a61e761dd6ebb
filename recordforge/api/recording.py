"""Recording API endpoints.

Session lifecycle control for the UI, the HTTP fallback ingestion
endpoint and the duplex WebSocket channel used by capture agents.
"""

import asyncio
from functools import lru_cache
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field
import structlog

from ..recording.errors import EnvelopeDecodeError, SessionNotFoundError
from ..recording.service import RecorderService
from ..recording.session import AdmissionConfig, RecordingSession
from ..recording.wire import CommandAction, CommandEnvelope, WireEnvelope
from ..utils.logging import LogContext

logger = structlog.get_logger()

router = APIRouter(prefix="/api/recorder", tags=["Recorder"])
ws_router = APIRouter(tags=["Recorder"])

# WebSocket close code for an unknown session
WS_SESSION_NOT_FOUND = 4404


@lru_cache
def get_recorder_service() -> RecorderService:
    """Process-wide session registry."""
    return RecorderService()


# =============================================================================
# Request/Response Models
# =============================================================================


class StartSessionRequest(BaseModel):
    """Request to start a recording session."""
    name: str = Field(..., min_length=1, description="Human-readable session name")
    project_id: Optional[str] = Field(None, alias="projectId", description="Owning project")
    max_event_count: Optional[int] = Field(
        None, alias="maxEventCount", ge=1, description="Admission cap; server default when omitted"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class SessionResponse(BaseModel):
    """Session summary without the event tree."""
    id: str
    name: str
    project_id: Optional[str] = Field(None, serialization_alias="projectId")
    session_key: str = Field(..., serialization_alias="sessionKey")
    status: str
    event_count: int = Field(..., serialization_alias="eventCount")
    max_event_count: int = Field(..., serialization_alias="maxEventCount")
    duration_ms: int = Field(..., serialization_alias="durationMs")
    start_time: str = Field(..., serialization_alias="startTime")
    end_time: Optional[str] = Field(None, serialization_alias="endTime")
    channel_path: str = Field(..., serialization_alias="channelPath")
    fallback_path: str = Field(..., serialization_alias="fallbackPath")

    @classmethod
    def from_session(cls, session: RecordingSession) -> "SessionResponse":
        return cls(
            id=session.id,
            name=session.name,
            project_id=session.project_id,
            session_key=session.session_key,
            status=session.status.value,
            event_count=session.event_count,
            max_event_count=session.admission.max_event_count,
            duration_ms=session.duration_millis(),
            start_time=session.start_time.isoformat(),
            end_time=session.end_time.isoformat() if session.end_time else None,
            channel_path=f"/ws-recorder/{session.id}",
            fallback_path=f"{router.prefix}/events/{session.id}",
        )


class TransitionResponse(BaseModel):
    """Result of a pause/resume request."""
    success: bool
    status: str
    agents_notified: int = Field(0, serialization_alias="agentsNotified")


def _get_session(service: RecorderService, session_id: str) -> RecordingSession:
    try:
        return service.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Session Lifecycle
# =============================================================================


@router.post("/sessions", status_code=201)
async def start_session(
    request: StartSessionRequest,
    service: RecorderService = Depends(get_recorder_service),
) -> SessionResponse:
    """Start a new recording session."""
    admission = AdmissionConfig(max_event_count=request.max_event_count) if request.max_event_count else None
    session = service.start_session(
        request.name,
        project_id=request.project_id,
        admission=admission,
        metadata=request.metadata,
    )
    return SessionResponse.from_session(session)


@router.get("/sessions")
async def list_sessions(
    project_id: Optional[str] = None,
    service: RecorderService = Depends(get_recorder_service),
) -> list[SessionResponse]:
    """List live sessions, optionally for one project."""
    return [SessionResponse.from_session(s) for s in service.list_sessions(project_id)]


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
) -> SessionResponse:
    """Get a session summary."""
    return SessionResponse.from_session(_get_session(service, session_id))


@router.post("/sessions/{session_id}/pause")
async def pause_session(
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
) -> TransitionResponse:
    """Pause admission and tell connected agents to stop capturing."""
    session = _get_session(service, session_id)
    success = session.pause()
    notified = service.send_command(session_id, CommandAction.PAUSE) if success else 0
    return TransitionResponse(success=success, status=session.status.value, agents_notified=notified)


@router.post("/sessions/{session_id}/resume")
async def resume_session(
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
) -> TransitionResponse:
    """Resume a paused session."""
    session = _get_session(service, session_id)
    success = session.resume()
    notified = service.send_command(session_id, CommandAction.RESUME) if success else 0
    return TransitionResponse(success=success, status=session.status.value, agents_notified=notified)


@router.post("/sessions/{session_id}/stop")
async def stop_session(
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
) -> dict:
    """Complete the session and return its final snapshot."""
    _get_session(service, session_id)
    return service.stop(session_id).to_dict()


@router.get("/sessions/{session_id}/snapshot")
async def get_snapshot(
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
) -> dict:
    """Full event tree and metadata for the persistence layer."""
    _get_session(service, session_id)
    return service.snapshot(session_id).to_dict()


# =============================================================================
# HTTP Fallback Ingestion
# =============================================================================


@router.post("/events/{session_id}")
async def ingest_envelope(
    session_id: str,
    body: dict[str, Any] = Body(...),
    service: RecorderService = Depends(get_recorder_service),
) -> dict:
    """Ingest one envelope posted by an agent in HTTP fallback mode."""
    _get_session(service, session_id)
    with LogContext(session_id=session_id, channel="http"):
        try:
            envelope = WireEnvelope.parse(body)
            if envelope.session_id != session_id:
                raise EnvelopeDecodeError("Envelope sessionId does not match the URL")
            result = service.ingest(session_id, envelope)
        except EnvelopeDecodeError as e:
            logger.info("Rejected envelope", error=str(e))
            raise HTTPException(status_code=400, detail=str(e))

    response = result.to_dict()
    if result.reply is not None:
        response["reply"] = result.reply.to_wire()
    return response


# =============================================================================
# Duplex Channel
# =============================================================================


@ws_router.websocket("/ws-recorder/{session_id}")
async def recorder_channel(
    websocket: WebSocket,
    session_id: str,
    service: RecorderService = Depends(get_recorder_service),
):
    """
    Duplex channel for one capture agent.

    Receives: wire envelopes (events, INIT, HEARTBEAT, PING, STATUS, ...)
    Sends: replies (PONG) and COMMAND envelopes queued by lifecycle calls
    """
    await websocket.accept()
    try:
        service.get(session_id)
    except SessionNotFoundError:
        await websocket.close(code=WS_SESSION_NOT_FOUND)
        return

    commands = service.attach_channel(session_id)
    with LogContext(session_id=session_id, channel="duplex"):
        logger.info("Agent channel connected")

        # tasks copy the bound context when created
        reader = asyncio.create_task(_read_envelopes(websocket, service, session_id))
        writer = asyncio.create_task(_write_commands(websocket, commands))
        try:
            done, pending = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in done:
                if task.exception() and not isinstance(task.exception(), WebSocketDisconnect):
                    logger.error("Agent channel error", error=str(task.exception()))
        finally:
            service.detach_channel(session_id, commands)
            logger.info("Agent channel disconnected")


async def _read_envelopes(websocket: WebSocket, service: RecorderService, session_id: str) -> None:
    while True:
        raw = await websocket.receive_text()
        try:
            envelope = WireEnvelope.parse(raw)
            result = service.ingest(session_id, envelope)
        except EnvelopeDecodeError as e:
            logger.debug("Dropping malformed envelope", error=str(e))
            continue
        if result.reply is not None:
            await websocket.send_text(result.reply.to_json())


async def _write_commands(websocket: WebSocket, commands: asyncio.Queue) -> None:
    while True:
        command: CommandEnvelope = await commands.get()
        await websocket.send_text(command.to_json())
