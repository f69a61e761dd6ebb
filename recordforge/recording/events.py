"""Recorded event IR.

A recording is a tree of ``RecordedEvent`` variants. Leaf kinds carry an
optional element snapshot; container kinds own one or more ordered child
lists. Children never point back at their container, so a tree built
top-down cannot contain cycles.

Per-kind behaviour (validation, description, command naming) lives in
dispatch tables keyed by ``EventKind`` rather than in method overrides;
see ``validation.py``.
"""

import time
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Iterator, Optional, Union, get_args, get_origin, get_type_hints
from uuid import uuid4

from .errors import EnvelopeDecodeError, UnknownEventKindError
from .models import (
    CaptureConfig,
    ConditionConfig,
    ElementInfo,
    LoopConfig,
    _parse_enum,
    element_from_dict,
)


class EventKind(str, Enum):
    """Closed set of event kinds."""

    CLICK = "CLICK"
    INPUT = "INPUT"
    NAVIGATION = "NAVIGATION"
    ASSERTION = "ASSERTION"
    CAPTURE = "CAPTURE"
    CUSTOM_JS = "CUSTOM_JS"
    GROUP = "GROUP"
    LOOP = "LOOP"
    CONDITIONAL = "CONDITIONAL"
    TRY_CATCH = "TRY_CATCH"


LEAF_KINDS = frozenset({
    EventKind.CLICK,
    EventKind.INPUT,
    EventKind.NAVIGATION,
    EventKind.ASSERTION,
    EventKind.CAPTURE,
    EventKind.CUSTOM_JS,
})
CONTAINER_KINDS = frozenset(set(EventKind) - LEAF_KINDS)


class InputType(str, Enum):
    """Kind of form control an input event targeted."""

    TEXT = "TEXT"
    SELECT = "SELECT"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"
    FILE = "FILE"
    DATE = "DATE"
    COLOR = "COLOR"
    RANGE = "RANGE"
    CONTENTEDITABLE = "CONTENTEDITABLE"


class NavigationTrigger(str, Enum):
    """What caused a navigation."""

    LINK_CLICK = "LINK_CLICK"
    FORM_SUBMISSION = "FORM_SUBMISSION"
    SCRIPT = "SCRIPT"
    USER_INITIATED = "USER_INITIATED"
    REDIRECT = "REDIRECT"
    RELOAD = "RELOAD"
    BACK_BUTTON = "BACK_BUTTON"
    FORWARD_BUTTON = "FORWARD_BUTTON"
    ADDRESS_BAR = "ADDRESS_BAR"
    HISTORY_API = "HISTORY_API"


class AssertionType(str, Enum):
    """Assertion flavours."""

    PRESENT = "PRESENT"
    VISIBLE = "VISIBLE"
    ENABLED = "ENABLED"
    SELECTED = "SELECTED"
    TEXT_EQUALS = "TEXT_EQUALS"
    TEXT_CONTAINS = "TEXT_CONTAINS"
    ATTRIBUTE_EQUALS = "ATTRIBUTE_EQUALS"
    ATTRIBUTE_CONTAINS = "ATTRIBUTE_CONTAINS"
    URL = "URL"
    URL_CONTAINS = "URL_CONTAINS"
    TITLE = "TITLE"
    TITLE_CONTAINS = "TITLE_CONTAINS"
    EQUALS = "EQUALS"
    CONTAINS = "CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    REGEX_MATCH = "REGEX_MATCH"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_THAN_OR_EQUALS = "GREATER_THAN_OR_EQUALS"
    LESS_THAN_OR_EQUALS = "LESS_THAN_OR_EQUALS"
    COUNT_EQUALS = "COUNT_EQUALS"
    COUNT_GREATER_THAN = "COUNT_GREATER_THAN"
    COUNT_LESS_THAN = "COUNT_LESS_THAN"
    CUSTOM_JAVASCRIPT = "CUSTOM_JAVASCRIPT"


# Assertion types that do not target an element
PAGE_ASSERTIONS = frozenset({
    AssertionType.URL,
    AssertionType.URL_CONTAINS,
    AssertionType.TITLE,
    AssertionType.TITLE_CONTAINS,
    AssertionType.CUSTOM_JAVASCRIPT,
})


class AssertionStatus(str, Enum):
    """Runtime result of an assertion."""

    NOT_EXECUTED = "NOT_EXECUTED"
    PASSED = "PASSED"
    FAILED = "FAILED"
    ERROR = "ERROR"


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# Base variants
# =============================================================================


@dataclass(kw_only=True)
class RecordedEvent:
    """Fields common to every event kind."""

    kind: ClassVar[EventKind]
    branches: ClassVar[tuple[str, ...]] = ()

    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: int = field(default_factory=_now_ms)
    url: Optional[str] = None
    description: Optional[str] = None
    disabled: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_container(self) -> bool:
        return bool(self.branches)

    @property
    def command(self) -> str:
        """Verb used to pick a render function for this event."""
        return EVENT_COMMANDS[self.kind](self)

    def validation_errors(self) -> list[str]:
        from .validation import validation_errors

        return validation_errors(self)

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def to_human_readable_description(self) -> str:
        from .validation import describe

        return describe(self)

    def child_lists(self) -> list[tuple[str, list["RecordedEvent"]]]:
        """Ordered ``(branch name, children)`` pairs; empty for leaves."""
        return [(name, getattr(self, name)) for name in self.branches]

    def walk(self) -> Iterator["RecordedEvent"]:
        """Yield this event and all descendants, depth-first in list order."""
        yield self
        for _, children in self.child_lists():
            for child in children:
                yield from child.walk()

    def to_dict(self) -> dict:
        data = {"type": self.kind.value}
        for f in fields(self):
            data[_camel(f.name)] = _encode(getattr(self, f.name))
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RecordedEvent":
        """Rebuild an event (and its subtree) from its payload shape."""
        return event_from_dict(data)


@dataclass(kw_only=True)
class LeafEvent(RecordedEvent):
    element: Optional[ElementInfo] = None

    def selector(self) -> Optional[str]:
        if self.element is None:
            return None
        if self.element.best_selector():
            return self.element.best_selector()
        locator = self.element.best_locator()
        return locator.value if locator else None


@dataclass(kw_only=True)
class ContainerEvent(RecordedEvent):
    pass


# =============================================================================
# Leaf kinds
# =============================================================================


@dataclass(kw_only=True)
class ClickEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.CLICK

    double_click: bool = False
    right_click: bool = False
    middle_click: bool = False
    form_submit: bool = False
    ctrl_key: bool = False
    shift_key: bool = False
    alt_key: bool = False
    meta_key: bool = False


@dataclass(kw_only=True)
class InputEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.INPUT

    input_value: Optional[str] = None
    previous_value: Optional[str] = None
    input_type: InputType = InputType.TEXT
    clear_first: bool = True
    is_password: bool = False
    masked: bool = False
    file_picker: bool = False
    files: list[str] = field(default_factory=list)


@dataclass(kw_only=True)
class NavigationEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.NAVIGATION

    source_url: Optional[str] = None
    target_url: Optional[str] = None
    trigger: Optional[NavigationTrigger] = None
    redirect: bool = False
    back: bool = False
    forward: bool = False
    refresh: bool = False
    load_time_ms: Optional[int] = None


@dataclass(kw_only=True)
class AssertionEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.ASSERTION

    assertion_type: Optional[AssertionType] = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    attribute_name: Optional[str] = None
    negated: bool = False
    is_soft: bool = False
    custom_message: Optional[str] = None
    is_regex: bool = False
    case_sensitive: bool = True
    tolerance: Optional[float] = None
    status: AssertionStatus = AssertionStatus.NOT_EXECUTED
    error_message: Optional[str] = None

    def evaluate(self, actual_value: Optional[str] = None) -> AssertionStatus:
        """Compare ``actual_value`` against the expectation and record the result."""
        from .assertions import evaluate_assertion

        if actual_value is not None:
            self.actual_value = actual_value
        outcome = evaluate_assertion(self, self.actual_value)
        self.status = outcome.status
        self.error_message = outcome.error
        return self.status


@dataclass(kw_only=True)
class CaptureEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.CAPTURE

    capture_config: Optional[CaptureConfig] = None


@dataclass(kw_only=True)
class CustomJsEvent(LeafEvent):
    kind: ClassVar[EventKind] = EventKind.CUSTOM_JS

    script: Optional[str] = None
    is_async: bool = False
    timeout_ms: Optional[int] = None
    return_variables: list[str] = field(default_factory=list)
    run_in_isolation: bool = False
    use_element_context: bool = False


# =============================================================================
# Container kinds
# =============================================================================


@dataclass(kw_only=True)
class GroupEvent(ContainerEvent):
    kind: ClassVar[EventKind] = EventKind.GROUP
    branches: ClassVar[tuple[str, ...]] = ("children",)

    group_name: Optional[str] = None
    collapsed: bool = False
    color: Optional[str] = None
    icon: Optional[str] = None
    children: list[RecordedEvent] = field(default_factory=list)


@dataclass(kw_only=True)
class LoopEvent(ContainerEvent):
    kind: ClassVar[EventKind] = EventKind.LOOP
    branches: ClassVar[tuple[str, ...]] = ("children",)

    loop_config: Optional[LoopConfig] = None
    children: list[RecordedEvent] = field(default_factory=list)


@dataclass(kw_only=True)
class ConditionalEvent(ContainerEvent):
    kind: ClassVar[EventKind] = EventKind.CONDITIONAL
    branches: ClassVar[tuple[str, ...]] = ("then_events", "else_events")

    condition: Optional[ConditionConfig] = None
    then_events: list[RecordedEvent] = field(default_factory=list)
    else_events: list[RecordedEvent] = field(default_factory=list)


@dataclass(kw_only=True)
class TryCatchEvent(ContainerEvent):
    kind: ClassVar[EventKind] = EventKind.TRY_CATCH
    branches: ClassVar[tuple[str, ...]] = ("try_events", "catch_events", "finally_events")

    try_events: list[RecordedEvent] = field(default_factory=list)
    catch_events: list[RecordedEvent] = field(default_factory=list)
    finally_events: list[RecordedEvent] = field(default_factory=list)
    error_variable_name: Optional[str] = "error"
    catch_error_types: list[str] = field(default_factory=list)
    continue_on_error: bool = False
    log_error: bool = True


EVENT_TYPES: dict[EventKind, type[RecordedEvent]] = {
    EventKind.CLICK: ClickEvent,
    EventKind.INPUT: InputEvent,
    EventKind.NAVIGATION: NavigationEvent,
    EventKind.ASSERTION: AssertionEvent,
    EventKind.CAPTURE: CaptureEvent,
    EventKind.CUSTOM_JS: CustomJsEvent,
    EventKind.GROUP: GroupEvent,
    EventKind.LOOP: LoopEvent,
    EventKind.CONDITIONAL: ConditionalEvent,
    EventKind.TRY_CATCH: TryCatchEvent,
}

# Agent-side type names that fold into a kind plus preset fields
KIND_ALIASES: dict[str, tuple[EventKind, dict[str, Any]]] = {
    "DOUBLE_CLICK": (EventKind.CLICK, {"doubleClick": True}),
    "RIGHT_CLICK": (EventKind.CLICK, {"rightClick": True}),
    "FORM_SUBMIT": (EventKind.CLICK, {"formSubmit": True}),
    "CUSTOM_JAVASCRIPT": (EventKind.CUSTOM_JS, {}),
    "TRY_CATCH_BLOCK": (EventKind.TRY_CATCH, {}),
}


# =============================================================================
# Commands
# =============================================================================


def _click_command(event: ClickEvent) -> str:
    if event.form_submit:
        return "submit"
    if event.double_click:
        return "double_click"
    if event.right_click:
        return "right_click"
    return "click"


def _input_command(event: InputEvent) -> str:
    if event.file_picker or event.input_type == InputType.FILE:
        return "upload"
    if event.input_type == InputType.SELECT:
        return "select"
    if event.input_type in (InputType.CHECKBOX, InputType.RADIO):
        return "check"
    return "clear_and_type" if event.clear_first else "type"


def _navigation_command(event: NavigationEvent) -> str:
    if event.back:
        return "back"
    if event.forward:
        return "forward"
    if event.refresh:
        return "refresh"
    return "navigate"


EVENT_COMMANDS: dict[EventKind, Any] = {
    EventKind.CLICK: _click_command,
    EventKind.INPUT: _input_command,
    EventKind.NAVIGATION: _navigation_command,
    EventKind.ASSERTION: lambda e: e.assertion_type.value.lower() if e.assertion_type else "assert",
    EventKind.CAPTURE: lambda e: (
        e.capture_config.source.value.lower()
        if e.capture_config and e.capture_config.source else "capture"
    ),
    EventKind.CUSTOM_JS: lambda e: "execute_async" if e.is_async else "execute",
    EventKind.GROUP: lambda e: "group",
    EventKind.LOOP: lambda e: (
        e.loop_config.loop_type.value.lower()
        if e.loop_config and e.loop_config.loop_type else "loop"
    ),
    EventKind.CONDITIONAL: lambda e: "if",
    EventKind.TRY_CATCH: lambda e: "try",
}


# =============================================================================
# Payload codec
# =============================================================================


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def events_from_list(items: Optional[list]) -> list[RecordedEvent]:
    return [event_from_dict(item) for item in items or []]


def _enum_decoder(enum_cls: type[Enum]):
    return lambda value: _parse_enum(enum_cls, value)


# Fields whose payload shape is not a plain JSON scalar/list
_FIELD_DECODERS = {
    "element": element_from_dict,
    "capture_config": lambda v: CaptureConfig.from_dict(v) if v else None,
    "loop_config": lambda v: LoopConfig.from_dict(v) if v else None,
    "condition": lambda v: ConditionConfig.from_dict(v) if v else None,
    "input_type": lambda v: _parse_enum(InputType, v, InputType.TEXT),
    "trigger": _enum_decoder(NavigationTrigger),
    "assertion_type": _enum_decoder(AssertionType),
    "status": lambda v: _parse_enum(AssertionStatus, v, AssertionStatus.NOT_EXECUTED),
    "children": events_from_list,
    "then_events": events_from_list,
    "else_events": events_from_list,
    "try_events": events_from_list,
    "catch_events": events_from_list,
    "finally_events": events_from_list,
}


def resolve_kind(type_name: Any) -> tuple[EventKind, dict[str, Any]]:
    """Map a payload ``type`` discriminant to a kind and preset fields."""
    if isinstance(type_name, EventKind):
        return type_name, {}
    if not isinstance(type_name, str):
        raise UnknownEventKindError(str(type_name))
    name = type_name.upper()
    if name in KIND_ALIASES:
        return KIND_ALIASES[name]
    try:
        return EventKind(name), {}
    except ValueError:
        raise UnknownEventKindError(type_name) from None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_scalar(key: str, value: Any, hint: Any) -> Any:
    """Return ``value`` if it fits the field annotation ``hint``.

    Numbers are accepted for text fields and stringified; anything else of
    the wrong JSON type is a decode error.
    """
    if get_origin(hint) is Union:
        if value is None:
            return None
        hint = next(arg for arg in get_args(hint) if arg is not type(None))
    origin = get_origin(hint) or hint
    if origin is bool:
        ok = isinstance(value, bool)
    elif origin in (int, float):
        ok = _is_number(value)
    elif origin is str:
        if _is_number(value) and key != "id":
            return str(value)
        ok = isinstance(value, str)
    elif origin is list:
        ok = isinstance(value, list) and all(isinstance(item, str) for item in value)
    elif origin is dict:
        ok = isinstance(value, dict)
    else:
        ok = True
    if not ok:
        raise EnvelopeDecodeError(
            f"Malformed {key}: expected {getattr(origin, '__name__', origin)}, got {type(value).__name__}"
        )
    return value


def event_from_dict(data: dict) -> RecordedEvent:
    """Decode one event payload, recursing into child lists."""
    if not isinstance(data, dict):
        raise EnvelopeDecodeError(f"Event payload must be an object, got {type(data).__name__}")
    kind, presets = resolve_kind(data.get("type"))
    event_cls = EVENT_TYPES[kind]
    payload = {**presets, **data}
    hints = get_type_hints(event_cls)

    kwargs = {}
    for f in fields(event_cls):
        key = _camel(f.name)
        if key not in payload:
            continue
        decoder = _FIELD_DECODERS.get(f.name)
        if decoder is None:
            kwargs[f.name] = _check_scalar(key, payload[key], hints[f.name])
            continue
        try:
            kwargs[f.name] = decoder(payload[key])
        except (TypeError, AttributeError, ValueError) as e:
            raise EnvelopeDecodeError(f"Malformed {key} in {kind.value} payload: {e}") from e
    try:
        return event_cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise EnvelopeDecodeError(f"Malformed {kind.value} payload: {e}") from e


def count_events(events: list[RecordedEvent]) -> int:
    """Total number of events in a forest, containers included."""
    return sum(1 for root in events for _ in root.walk())


__all__ = [
    "EventKind",
    "LEAF_KINDS",
    "CONTAINER_KINDS",
    "InputType",
    "NavigationTrigger",
    "AssertionType",
    "AssertionStatus",
    "PAGE_ASSERTIONS",
    "RecordedEvent",
    "LeafEvent",
    "ContainerEvent",
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
    "EVENT_TYPES",
    "EVENT_COMMANDS",
    "KIND_ALIASES",
    "event_from_dict",
    "events_from_list",
    "resolve_kind",
    "count_events",
]
