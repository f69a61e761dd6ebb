"""Tests for element snapshots and configuration value objects."""

from recordforge.recording.models import (
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


class TestElementInfo:
    """Tests for ElementInfo selector preference."""

    def test_best_selector_prefers_id(self):
        """Test the id wins over every other selector."""
        element = ElementInfo(id="save", css_selector=".btn", xpath="//button")
        assert element.best_selector() == "#save"

    def test_best_selector_fallback_order(self):
        """Test CSS, then XPath, then the raw selector."""
        assert ElementInfo(css_selector=".btn", xpath="//b").best_selector() == ".btn"
        assert ElementInfo(xpath="//b", selector="b").best_selector() == "//b"
        assert ElementInfo(selector="b").best_selector() == "b"
        assert ElementInfo(tag_name="div").best_selector() is None

    def test_best_locator_uses_explicit_locators_first(self):
        """Test recorded locators take priority over derived ones."""
        element = ElementInfo(id="save", locators=[Locator(LocatorStrategy.NAME, "save-btn")])
        assert element.best_locator() == Locator(LocatorStrategy.NAME, "save-btn")

    def test_best_locator_derived(self):
        """Test locators derived from snapshot fields."""
        assert ElementInfo(id="a").best_locator() == Locator(LocatorStrategy.ID, "a")
        assert ElementInfo(xpath="//a").best_locator() == Locator(LocatorStrategy.XPATH, "//a")
        assert ElementInfo().best_locator() is None

    def test_describe(self):
        """Test short element descriptions."""
        assert ElementInfo(tag_name="button", id="go").describe() == "button with ID 'go'"
        assert ElementInfo(tag_name="a", text="Home").describe() == "a with text 'Home'"
        assert ElementInfo(css_selector=".x").describe() == "element .x"

    def test_describe_truncates_long_text(self):
        """Test long element text is shortened."""
        element = ElementInfo(tag_name="p", text="a" * 40)
        assert element.describe() == f"p with text '{'a' * 17}...'"


class TestLoopConfig:
    """Tests for loop configuration validation and description."""

    def test_decode_defaults_to_count(self):
        """Test a payload without a loop type decodes as a COUNT loop."""
        config = LoopConfig.from_dict({"count": 2})
        assert config.loop_type == LoopType.COUNT
        assert config.is_valid()

    def test_count_loop(self):
        """Test a valid COUNT loop."""
        config = LoopConfig(loop_type=LoopType.COUNT, count=3)
        assert config.is_valid()
        assert config.describe() == "Repeat 3 times with i as counter"

    def test_count_loop_needs_non_negative_count(self):
        """Test COUNT loops reject missing or negative counts."""
        assert LoopConfig(count=None).validation_errors() == ["COUNT loop needs a non-negative count"]
        assert LoopConfig(count=-1).validation_errors() == ["COUNT loop needs a non-negative count"]
        assert LoopConfig(count=0).is_valid()

    def test_while_and_until_need_condition(self):
        """Test condition loops require a condition."""
        assert LoopConfig(loop_type=LoopType.WHILE).validation_errors() == ["WHILE loop needs a condition"]
        assert LoopConfig(loop_type=LoopType.UNTIL, condition=" ").validation_errors() == [
            "UNTIL loop needs a condition"
        ]

    def test_for_each_needs_data_source(self):
        """Test FOR_EACH loops require a data source id."""
        assert LoopConfig(loop_type=LoopType.FOR_EACH).validation_errors() == [
            "FOR_EACH loop needs a data source id"
        ]

    def test_iteration_variable_and_max_iterations(self):
        """Test shared loop fields are validated."""
        errors = LoopConfig(count=2, iteration_variable="", max_iterations=0).validation_errors()
        assert errors == ["iteration variable is required", "max iterations must be positive"]

    def test_describe_variants(self):
        """Test loop descriptions per type."""
        assert LoopConfig(loop_type=LoopType.WHILE, condition="x < 3").describe() == "Repeat while x < 3"
        assert (
            LoopConfig(
                loop_type=LoopType.FOR_EACH,
                data_source_id="users",
                data_source_path="$.items",
                iteration_variable="user",
            ).describe()
            == "For each item in data source users at path $.items as user"
        )
        assert LoopConfig(count=5, max_iterations=2).describe().endswith("(max 2 iterations)")


class TestConditionConfig:
    """Tests for condition configuration."""

    def test_binary_operator_needs_right_operand(self):
        """Test binary operators require both operands."""
        config = ConditionConfig(operator=ConditionOperator.EQUALS, left=OperandConfig(value="a"))
        assert config.validation_errors() == ["operator EQUALS needs a right operand"]

    def test_unary_operator(self):
        """Test IS_TRUE needs only a left operand."""
        config = ConditionConfig(
            operator=ConditionOperator.IS_TRUE,
            left=OperandConfig(OperandType.VARIABLE, variable_name="done"),
        )
        assert config.is_valid()
        assert config.describe() == "${done} is true"

    def test_describe_negated(self):
        """Test negated conditions are wrapped in NOT."""
        config = ConditionConfig(
            operator=ConditionOperator.GREATER_THAN,
            left=OperandConfig(OperandType.VARIABLE, variable_name="count"),
            right=OperandConfig(value="5"),
            negated=True,
        )
        assert config.describe() == 'NOT (${count} > "5")'

    def test_element_operand_description(self):
        """Test element operands describe their selector and property."""
        operand = OperandConfig(
            OperandType.ELEMENT,
            element=ElementInfo(id="total"),
            element_property="value",
        )
        assert operand.describe() == "Element #total.value"

    def test_missing_left_operand(self):
        """Test a condition without a left operand is invalid."""
        assert "condition needs a left operand" in ConditionConfig().validation_errors()

    def test_decode_defaults_match_constructor(self):
        """Test a payload without an operator decodes to the EQUALS default."""
        config = ConditionConfig.from_dict({"left": {"value": "a"}, "right": {"value": "a"}})
        assert config.operator == ConditionOperator.EQUALS
        assert config.is_valid()

    def test_decode_unknown_operator_is_invalid(self):
        """Test an unrecognised operator is not silently replaced."""
        config = ConditionConfig.from_dict({"operator": "ALMOST", "left": {"value": "a"}})
        assert config.operator is None
        assert not config.is_valid()


class TestCaptureConfig:
    """Tests for capture configuration."""

    def test_defaults(self):
        """Test element property capture of textContent by default."""
        config = CaptureConfig()
        assert config.source == CaptureSource.ELEMENT
        assert config.method == CaptureMethod.PROPERTY
        assert config.property == "textContent"

    def test_minimal_payload_decodes_to_defaults(self):
        """Test a minimal payload decodes to the same valid config the constructor builds."""
        config = CaptureConfig.from_dict({"variableName": "total", "selector": "#total"})
        assert config == CaptureConfig(variable_name="total", selector="#total")
        assert config.is_valid()

    def test_element_capture_needs_target(self):
        """Test element captures need an element or selector and a variable."""
        errors = CaptureConfig().validation_errors()
        assert "capture variable name is required" in errors
        assert "element capture needs a target element or selector" in errors

    def test_javascript_capture_needs_expression(self):
        """Test JavaScript captures need an expression."""
        config = CaptureConfig(variable_name="v", source=CaptureSource.JAVASCRIPT)
        assert config.validation_errors() == ["JavaScript capture needs an expression"]

    def test_describe(self):
        """Test capture descriptions."""
        assert (
            CaptureConfig(variable_name="total", selector="#total").describe()
            == "Capture element #total.textContent into variable total"
        )
        assert (
            CaptureConfig(variable_name="page", source=CaptureSource.URL, is_global=True).describe()
            == "Capture current URL into variable global.page"
        )
