"""Wire envelopes shared by the duplex channel and the HTTP fallback.

Outbound (agent to server):
    {"type": str, "sessionId": str, "timestamp": int, "payload": {...}}

Inbound (server to agent):
    {"type": "COMMAND", "action": "PAUSE" | "RESUME" | "STOP" | "STATUS" | "CAPTURE_SCREENSHOT"}
"""

import json
import time
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import EnvelopeDecodeError
from .events import RecordedEvent, event_from_dict


class MessageType(str, Enum):
    """Envelope types that are not recorded events."""

    INIT = "INIT"
    EVENT = "EVENT"
    HEARTBEAT = "HEARTBEAT"
    PING = "PING"
    PONG = "PONG"
    STATUS = "STATUS"
    RECORDER_CONTROL = "RECORDER_CONTROL"
    SCREENSHOT = "SCREENSHOT"
    COMMAND = "COMMAND"


class CommandAction(str, Enum):
    """Server-issued commands an agent understands."""

    PAUSE = "PAUSE"
    RESUME = "RESUME"
    STOP = "STOP"
    STATUS = "STATUS"
    CAPTURE_SCREENSHOT = "CAPTURE_SCREENSHOT"


_CONTROL_TYPES = frozenset(t.value for t in MessageType) - {MessageType.EVENT.value}


def now_ms() -> int:
    return int(time.time() * 1000)


def _load(raw: Union[str, bytes, dict]) -> dict:
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise EnvelopeDecodeError(f"Envelope is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise EnvelopeDecodeError("Envelope must be a JSON object")
    return data


class WireEnvelope(BaseModel):
    """One message from an agent."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., min_length=1, description="Message type or event kind")
    session_id: str = Field(..., alias="sessionId", description="Recording session id")
    timestamp: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def parse(cls, raw: Union[str, bytes, dict]) -> "WireEnvelope":
        try:
            return cls.model_validate(_load(raw))
        except ValidationError as e:
            raise EnvelopeDecodeError(f"Malformed envelope: {e.error_count()} error(s)") from e

    @classmethod
    def for_event(cls, session_id: str, event: RecordedEvent) -> "WireEnvelope":
        return cls(
            type=MessageType.EVENT.value,
            session_id=session_id,
            timestamp=event.timestamp,
            payload=event.to_dict(),
        )

    @classmethod
    def control(
        cls,
        message_type: MessageType,
        session_id: str,
        payload: Optional[dict] = None,
    ) -> "WireEnvelope":
        return cls(type=message_type.value, session_id=session_id, payload=payload or {})

    @property
    def is_event(self) -> bool:
        return self.type.upper() not in _CONTROL_TYPES

    @property
    def message_type(self) -> Optional[MessageType]:
        try:
            return MessageType(self.type.upper())
        except ValueError:
            return None

    def event(self) -> RecordedEvent:
        """Decode the payload as a recorded event.

        Envelopes typed with an event kind directly (``"CLICK"``) are
        accepted as well as ``"EVENT"`` envelopes.
        """
        payload = dict(self.payload)
        if self.type.upper() != MessageType.EVENT.value:
            payload.setdefault("type", self.type)
        payload.setdefault("timestamp", self.timestamp)
        return event_from_dict(payload)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CommandEnvelope(BaseModel):
    """A command pushed from the server to an agent."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["COMMAND"] = "COMMAND"
    action: CommandAction
    session_id: Optional[str] = Field(None, alias="sessionId")

    @classmethod
    def parse(cls, raw: Union[str, bytes, dict]) -> "CommandEnvelope":
        try:
            return cls.model_validate(_load(raw))
        except ValidationError as e:
            raise EnvelopeDecodeError(f"Malformed command: {e.error_count()} error(s)") from e

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
