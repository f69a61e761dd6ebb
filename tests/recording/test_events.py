"""Tests for the recorded event tree and its payload codec."""

import pytest

from recordforge.recording.errors import EnvelopeDecodeError, UnknownEventKindError
from recordforge.recording.events import (
    CONTAINER_KINDS,
    EVENT_COMMANDS,
    EVENT_TYPES,
    LEAF_KINDS,
    AssertionEvent,
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
    count_events,
    event_from_dict,
)
from recordforge.recording.models import (
    CaptureConfig,
    CaptureSource,
    ConditionConfig,
    ElementInfo,
    LoopConfig,
    LoopType,
    OperandConfig,
    OperandType,
)


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def nested_tree(login_button):
    """Group > Loop > [Click, Conditional(then: Nav, else: Click)]."""
    conditional = ConditionalEvent(
        id="cond",
        condition=ConditionConfig(
            left=OperandConfig(OperandType.VARIABLE, variable_name="status"),
            right=OperandConfig(OperandType.LITERAL, value="ok"),
        ),
        then_events=[NavigationEvent(id="nav", target_url="https://example.com/next")],
        else_events=[ClickEvent(id="retry", element=login_button)],
    )
    loop = LoopEvent(
        id="loop",
        loop_config=LoopConfig(loop_type=LoopType.COUNT, count=3),
        children=[ClickEvent(id="click", element=login_button), conditional],
    )
    return GroupEvent(id="group", group_name="Checkout", children=[loop])


# =============================================================================
# Kind Tables
# =============================================================================


class TestEventKinds:
    """Tests for the closed set of event kinds."""

    def test_leaf_and_container_kinds_partition_all_kinds(self):
        """Test every kind is exactly one of leaf or container."""
        assert LEAF_KINDS | CONTAINER_KINDS == set(EventKind)
        assert not LEAF_KINDS & CONTAINER_KINDS

    def test_every_kind_has_a_type_and_command(self):
        """Test the type and command tables cover every kind."""
        assert set(EVENT_TYPES) == set(EventKind)
        assert set(EVENT_COMMANDS) == set(EventKind)

    def test_container_flag(self):
        """Test containers report child lists and leaves do not."""
        assert GroupEvent(group_name="g").is_container
        assert TryCatchEvent().is_container
        assert not ClickEvent().is_container

    def test_try_catch_branches_in_order(self):
        """Test try/catch exposes its three branches in declaration order."""
        event = TryCatchEvent()
        assert [name for name, _ in event.child_lists()] == [
            "try_events",
            "catch_events",
            "finally_events",
        ]

    def test_default_ids_are_unique(self):
        """Test events get distinct generated ids."""
        assert ClickEvent().id != ClickEvent().id


# =============================================================================
# Commands
# =============================================================================


class TestCommands:
    """Tests for the command verb derived from each event."""

    def test_click_commands(self):
        """Test click flags map to their verbs."""
        assert ClickEvent().command == "click"
        assert ClickEvent(double_click=True).command == "double_click"
        assert ClickEvent(right_click=True).command == "right_click"
        assert ClickEvent(form_submit=True, double_click=True).command == "submit"

    def test_input_commands(self):
        """Test input type and flags map to their verbs."""
        assert InputEvent(input_value="a").command == "clear_and_type"
        assert InputEvent(input_value="a", clear_first=False).command == "type"
        assert InputEvent(input_type=InputType.SELECT).command == "select"
        assert InputEvent(input_type=InputType.CHECKBOX).command == "check"
        assert InputEvent(input_type=InputType.RADIO).command == "check"
        assert InputEvent(file_picker=True).command == "upload"
        assert InputEvent(input_type=InputType.FILE).command == "upload"

    def test_navigation_commands(self):
        """Test history navigation flags map to their verbs."""
        assert NavigationEvent(target_url="https://a").command == "navigate"
        assert NavigationEvent(back=True).command == "back"
        assert NavigationEvent(forward=True).command == "forward"
        assert NavigationEvent(refresh=True).command == "refresh"

    def test_other_leaf_commands(self):
        """Test assertion, capture and script verbs."""
        assert AssertionEvent(assertion_type=AssertionType.TEXT_EQUALS).command == "text_equals"
        assert CaptureEvent(capture_config=CaptureConfig(source=CaptureSource.COOKIE)).command == "cookie"
        assert CustomJsEvent(script="1").command == "execute"
        assert CustomJsEvent(script="1", is_async=True).command == "execute_async"

    def test_container_commands(self):
        """Test container verbs."""
        assert GroupEvent().command == "group"
        assert LoopEvent(loop_config=LoopConfig(loop_type=LoopType.WHILE)).command == "while"
        assert LoopEvent(loop_config=LoopConfig(loop_type=LoopType.FOR_EACH)).command == "for_each"
        assert ConditionalEvent().command == "if"
        assert TryCatchEvent().command == "try"


# =============================================================================
# Tree Walk
# =============================================================================


class TestTreeWalk:
    """Tests for depth-first traversal and counting."""

    def test_walk_is_depth_first_in_list_order(self, nested_tree):
        """Test walk yields parents before children, then-branch before else-branch."""
        assert [e.id for e in nested_tree.walk()] == [
            "group",
            "loop",
            "click",
            "cond",
            "nav",
            "retry",
        ]

    def test_count_events_includes_containers(self, nested_tree):
        """Test count_events counts every node in the forest."""
        assert count_events([nested_tree]) == 6
        assert count_events([nested_tree, ClickEvent()]) == 7
        assert count_events([]) == 0

    def test_leaf_walk_yields_itself(self):
        """Test a leaf walks to just itself."""
        event = ClickEvent()
        assert list(event.walk()) == [event]


# =============================================================================
# Payload Codec
# =============================================================================


class TestPayloadCodec:
    """Tests for to_dict/event_from_dict."""

    def test_to_dict_uses_type_and_camel_case(self, login_button):
        """Test payload keys are camelCase with a type discriminant."""
        data = ClickEvent(id="c1", timestamp=5, element=login_button, ctrl_key=True).to_dict()

        assert data["type"] == "CLICK"
        assert data["id"] == "c1"
        assert data["timestamp"] == 5
        assert data["ctrlKey"] is True
        assert data["doubleClick"] is False
        assert data["element"]["id"] == "login"
        assert data["element"]["tagName"] == "button"

    def test_enums_are_encoded_as_values(self):
        """Test enum fields serialize to their string values."""
        data = NavigationEvent(target_url="https://a", trigger=NavigationTrigger.LINK_CLICK).to_dict()
        assert data["trigger"] == "LINK_CLICK"

    def test_nested_tree_survives_encoding(self, nested_tree):
        """Test a nested tree decodes back to the same structure."""
        decoded = RecordedEvent.from_dict(nested_tree.to_dict())

        assert isinstance(decoded, GroupEvent)
        assert [e.id for e in decoded.walk()] == [e.id for e in nested_tree.walk()]
        loop = decoded.children[0]
        assert isinstance(loop, LoopEvent)
        assert loop.loop_config.count == 3
        conditional = loop.children[1]
        assert isinstance(conditional, ConditionalEvent)
        assert conditional.condition.left.variable_name == "status"
        assert conditional.else_events[0].element.id == "login"

    def test_decode_accepts_lowercase_type(self):
        """Test type discriminants are case-insensitive."""
        event = event_from_dict({"type": "navigation", "targetUrl": "https://a"})
        assert isinstance(event, NavigationEvent)
        assert event.target_url == "https://a"

    def test_decode_aliases(self):
        """Test agent-side aliases fold into a kind plus preset flags."""
        double = event_from_dict({"type": "DOUBLE_CLICK"})
        submit = event_from_dict({"type": "FORM_SUBMIT"})
        script = event_from_dict({"type": "CUSTOM_JAVASCRIPT", "script": "return 1"})

        assert isinstance(double, ClickEvent) and double.double_click
        assert isinstance(submit, ClickEvent) and submit.form_submit
        assert isinstance(script, CustomJsEvent) and script.script == "return 1"

    def test_decode_enum_by_name(self):
        """Test enum payload values parse by value or name."""
        event = event_from_dict({"type": "INPUT", "inputType": "select", "inputValue": "US"})
        assert event.input_type == InputType.SELECT

    def test_decode_unknown_input_type_defaults_to_text(self):
        """Test an unknown input type falls back to TEXT."""
        event = event_from_dict({"type": "INPUT", "inputType": "weird", "inputValue": "x"})
        assert event.input_type == InputType.TEXT

    def test_decode_ignores_unknown_fields(self):
        """Test extra payload keys are ignored."""
        event = event_from_dict({"type": "CLICK", "pageX": 10, "pageY": 20})
        assert isinstance(event, ClickEvent)

    def test_decode_unknown_kind(self):
        """Test an unknown type raises UnknownEventKindError."""
        with pytest.raises(UnknownEventKindError) as exc_info:
            event_from_dict({"type": "HOVER"})
        assert exc_info.value.kind == "HOVER"

    def test_decode_missing_type(self):
        """Test a payload without a type is rejected."""
        with pytest.raises(UnknownEventKindError):
            event_from_dict({"id": "x"})

    def test_decode_non_object(self):
        """Test non-dict payloads are rejected as decode errors."""
        with pytest.raises(EnvelopeDecodeError):
            event_from_dict(["CLICK"])

    def test_decode_bad_child_propagates(self):
        """Test an unknown kind inside a child list fails the whole decode."""
        with pytest.raises(UnknownEventKindError):
            event_from_dict({"type": "GROUP", "groupName": "g", "children": [{"type": "NOPE"}]})

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "CLICK", "element": "oops"},
            {"type": "CLICK", "element": {"locators": [7]}},
            {"type": "LOOP", "loopConfig": 3},
            {"type": "CONDITIONAL", "condition": ["EQUALS"]},
            {"type": "CAPTURE", "captureConfig": "total"},
            {"type": "GROUP", "groupName": "g", "children": 5},
        ],
    )
    def test_decode_wrong_nested_shape(self, payload):
        """Test nested fields with the wrong JSON type are decode errors."""
        with pytest.raises(EnvelopeDecodeError) as exc_info:
            event_from_dict(payload)
        assert "Malformed" in str(exc_info.value)

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "CLICK", "timestamp": "abc"},
            {"type": "CLICK", "timestamp": False},
            {"type": "CLICK", "id": ["c1"]},
            {"type": "CLICK", "id": 7},
            {"type": "CLICK", "disabled": "no"},
            {"type": "INPUT", "files": "a.txt"},
            {"type": "ASSERTION", "tolerance": "0.5"},
            {"type": "GROUP", "metadata": []},
        ],
    )
    def test_decode_wrong_scalar_type(self, payload):
        """Test scalar fields with the wrong JSON type are decode errors."""
        with pytest.raises(EnvelopeDecodeError) as exc_info:
            event_from_dict(payload)
        assert "Malformed" in str(exc_info.value)

    def test_decode_numbers_into_text_fields(self):
        """Test numeric values for text fields decode as strings."""
        event = event_from_dict({"type": "ASSERTION", "expectedValue": 42, "tolerance": 1, "timestamp": 1500.5})

        assert event.expected_value == "42"
        assert event.tolerance == 1
        assert event.timestamp == 1500.5

    def test_element_locators_decode(self):
        """Test element locators decode with known and unknown strategies."""
        element = ElementInfo.from_dict({
            "tagName": "a",
            "locators": [{"strategy": "css", "value": "a.nav"}, {"strategy": "shadow", "value": "x"}],
        })
        assert element.locators[0].strategy.value == "css"
        assert element.locators[1].strategy == "shadow"
