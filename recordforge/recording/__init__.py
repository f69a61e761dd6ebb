"""Recording module - event IR, sessions and ingestion.

Provides:
- A closed set of recorded event kinds, including nested containers
- Per-kind validation, descriptions and assertion evaluation
- Recording sessions with admission control
- Wire envelopes and duplicate-suppressing ingestion
"""

from .assertions import AssertionOutcome, evaluate_assertion
from .capture_script import CaptureScriptConfig, CaptureScriptGenerator
from .errors import (
    EnvelopeDecodeError,
    RecordForgeError,
    SessionNotFoundError,
    UnknownEventKindError,
)
from .events import (
    AssertionEvent,
    AssertionStatus,
    AssertionType,
    CaptureEvent,
    ClickEvent,
    ConditionalEvent,
    CustomJsEvent,
    EventKind,
    GroupEvent,
    InputEvent,
    InputType,
    LoopEvent,
    NavigationEvent,
    NavigationTrigger,
    RecordedEvent,
    TryCatchEvent,
    event_from_dict,
)
from .models import (
    CaptureConfig,
    CaptureMethod,
    CaptureSource,
    ConditionConfig,
    ConditionOperator,
    ElementInfo,
    Locator,
    LocatorStrategy,
    LoopConfig,
    LoopType,
    OperandConfig,
    OperandType,
)
from .processor import DebounceWindows, EventProcessor
from .service import IngestOutcome, IngestResult, RecorderService
from .session import AdmissionConfig, RecordingSession, RecordingStatus, SessionSnapshot
from .validation import describe, validation_errors
from .wire import CommandAction, CommandEnvelope, MessageType, WireEnvelope

__all__ = [
    # Events
    "EventKind",
    "RecordedEvent",
    "ClickEvent",
    "InputEvent",
    "NavigationEvent",
    "AssertionEvent",
    "CaptureEvent",
    "CustomJsEvent",
    "GroupEvent",
    "LoopEvent",
    "ConditionalEvent",
    "TryCatchEvent",
    "InputType",
    "NavigationTrigger",
    "AssertionType",
    "AssertionStatus",
    "event_from_dict",
    # Value objects
    "ElementInfo",
    "Locator",
    "LocatorStrategy",
    "LoopConfig",
    "LoopType",
    "ConditionConfig",
    "ConditionOperator",
    "OperandConfig",
    "OperandType",
    "CaptureConfig",
    "CaptureSource",
    "CaptureMethod",
    # Semantics
    "validation_errors",
    "describe",
    "evaluate_assertion",
    "AssertionOutcome",
    # Sessions and ingestion
    "RecordingSession",
    "RecordingStatus",
    "AdmissionConfig",
    "SessionSnapshot",
    "EventProcessor",
    "DebounceWindows",
    "RecorderService",
    "IngestOutcome",
    "IngestResult",
    "WireEnvelope",
    "CommandEnvelope",
    "CommandAction",
    "MessageType",
    "CaptureScriptGenerator",
    "CaptureScriptConfig",
    # Errors
    "RecordForgeError",
    "SessionNotFoundError",
    "EnvelopeDecodeError",
    "UnknownEventKindError",
]
