"""Base template classes for code generation.

Templates are stateless. Every render function has the signature
``(event, ctx) -> list[str]`` and returns lines relative to the current
indentation; ``RenderContext`` owns the walk, the counters and the
indentation of nested blocks.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional

from ...recording.events import (
    AssertionEvent,
    AssertionType,
    CaptureEvent,
    ClickEvent,
    CustomJsEvent,
    EventKind,
    InputEvent,
    RecordedEvent,
)
from ...recording.models import (
    UNARY_OPERATORS,
    CaptureConfig,
    CaptureMethod,
    CaptureSource,
    ConditionConfig,
    ConditionOperator,
    ElementInfo,
    Locator,
    LocatorStrategy,
    OperandConfig,
    OperandType,
)
from ..models import TargetLanguage, Variable, VariableType

if TYPE_CHECKING:
    from ..registry import RenderContext

# Wildcard framework/command used in render table keys
ANY = "*"

RenderFn = Callable[[RecordedEvent, "RenderContext"], list[str]]


class UnsupportedRender(Exception):
    """Raised by a render function that cannot express an event."""


@dataclass(frozen=True)
class Expr:
    """A target-language expression plus what it evaluates to.

    ``kind`` is one of ``str``, ``num``, ``bool`` or ``any``; ``literal``
    holds the source value when the expression is a literal.
    """

    code: str
    kind: str = "any"
    literal: Any = None


_NUMERIC_OPERATORS = {
    ConditionOperator.GREATER_THAN: ">",
    ConditionOperator.LESS_THAN: "<",
    ConditionOperator.GREATER_THAN_OR_EQUALS: ">=",
    ConditionOperator.LESS_THAN_OR_EQUALS: "<=",
}

_VARIABLE_KINDS = {
    VariableType.STRING: "str",
    VariableType.NUMBER: "num",
    VariableType.BOOLEAN: "bool",
}


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class BaseTemplate(ABC):
    """Base class for code generation templates.

    A language template implements the skeleton, literals, expressions and
    container blocks of one language and registers under the wildcard
    framework. A framework template subclasses its language template and
    adds leaf-step renderers plus a framework-specific skeleton.
    """

    # Override these in subclasses
    language: TargetLanguage
    framework: str = ANY
    indent: str = "    "
    comment_prefix: str = "//"
    body_depth: int = 2

    # -- skeleton --------------------------------------------------------------

    @abstractmethod
    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        """Generate import statements."""

    @abstractmethod
    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        """Generate class/test header up to the first body line."""

    @abstractmethod
    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        """Generate everything after the last body line."""

    @abstractmethod
    def declare_variable(self, variable: Variable, ctx: "RenderContext") -> str:
        """Declare one test variable with its native type."""

    # -- literals --------------------------------------------------------------

    @abstractmethod
    def literal(self, value: Any) -> str:
        """Render a JSON-like value as a literal."""

    def string_literal(self, value: Optional[str]) -> str:
        if value is None:
            return self.literal(None)
        return f'"{self.escape_string(value)}"'

    def number_literal(self, value: float) -> str:
        if float(value).is_integer():
            return str(int(value))
        return repr(float(value))

    def escape_string(self, value: str) -> str:
        """Escape string for code generation."""
        if value is None:
            return ""
        return (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\r", "\\r")
            .replace("\t", "\\t")
        )

    # -- naming ----------------------------------------------------------------

    def sanitize_identifier(self, name: str) -> str:
        """Convert name to a valid identifier, keeping its case."""
        sanitized = re.sub(r"[^a-zA-Z0-9_]", "_", name or "")
        if not sanitized:
            return "value"
        if sanitized[0].isdigit():
            sanitized = "_" + sanitized
        return sanitized

    def type_name(self, name: str) -> str:
        """Sanitize a (possibly qualified) type name such as ``java.io.IOException``."""
        return ".".join(self.sanitize_identifier(part) for part in name.split(".") if part)

    def to_camel_case(self, name: str) -> str:
        """Convert name to camelCase."""
        words = re.sub(r"[^a-zA-Z0-9]", " ", name).split()
        if not words:
            return "test"
        return words[0].lower() + "".join(w[:1].upper() + w[1:] for w in words[1:])

    def to_pascal_case(self, name: str) -> str:
        """Convert name to PascalCase."""
        words = re.sub(r"[^a-zA-Z0-9]", " ", name).split()
        return "".join(w[:1].upper() + w[1:] for w in words) if words else "Test"

    def to_snake_case(self, name: str) -> str:
        """Convert name to snake_case."""
        s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
        s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
        s3 = re.sub(r"[^a-zA-Z0-9]", "_", s2)
        return re.sub(r"_+", "_", s3).lower().strip("_") or "test"

    # -- comments and indentation -----------------------------------------------

    def comment(self, text: str) -> str:
        """Format a single-line comment for this language."""
        flat = " ".join(str(text).split())
        return f"{self.comment_prefix} {flat}"

    def indent_lines(self, lines: list[str], depth: int = 1) -> list[str]:
        pad = self.indent * depth
        return [f"{pad}{line}" if line else line for line in lines]

    # -- registry ----------------------------------------------------------------

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        """Render functions this template contributes, keyed by (kind, command)."""
        return {}

    # -- expressions ---------------------------------------------------------------
    #
    # Language templates supply the primitives below; ``compare`` composes
    # them into a boolean expression for conditions and assertions.

    @abstractmethod
    def as_string(self, code: str) -> str: ...

    @abstractmethod
    def as_number(self, code: str) -> str: ...

    @abstractmethod
    def as_bool(self, code: str) -> str: ...

    @abstractmethod
    def negate(self, code: str) -> str: ...

    @abstractmethod
    def lower(self, code: str) -> str: ...

    @abstractmethod
    def str_equals(self, left: str, right: str) -> str: ...

    @abstractmethod
    def str_contains(self, left: str, right: str) -> str: ...

    @abstractmethod
    def str_starts_with(self, left: str, right: str) -> str: ...

    @abstractmethod
    def str_ends_with(self, left: str, right: str) -> str: ...

    @abstractmethod
    def regex_test(self, subject: str, pattern: str, ignore_case: bool, full: bool) -> str: ...

    @abstractmethod
    def regex_extract(self, subject: str, pattern: str) -> str: ...

    @abstractmethod
    def within_tolerance(self, left: str, right: str, tolerance: str) -> str: ...

    @abstractmethod
    def coalesce(self, code: str, fallback: str) -> str: ...

    def num_equals(self, left: str, right: str) -> str:
        return f"{left} == {right}"

    def string_of(self, expr: Expr) -> str:
        if expr.kind == "str":
            return expr.code
        return self.as_string(expr.code)

    def number_of(self, expr: Expr) -> str:
        if expr.literal is not None and _as_float(expr.literal) is not None:
            return self.number_literal(_as_float(expr.literal))
        if expr.kind == "num":
            return expr.code
        return self.as_number(expr.code)

    def bool_of(self, expr: Expr) -> str:
        if expr.kind == "bool":
            return expr.code
        return self.as_bool(expr.code)

    def compare(
        self,
        operator: ConditionOperator,
        left: Expr,
        right: Optional[Expr] = None,
        case_sensitive: bool = True,
        tolerance: Optional[float] = None,
        full_match: bool = False,
    ) -> str:
        """Build ``left <operator> right`` as a boolean expression."""
        if operator == ConditionOperator.IS_TRUE:
            return self.bool_of(left)
        if operator == ConditionOperator.IS_FALSE:
            return self.negate(self.bool_of(left))
        if right is None:
            raise UnsupportedRender(f"operator {operator.value} needs a right operand")

        if operator in _NUMERIC_OPERATORS:
            return f"{self.number_of(left)} {_NUMERIC_OPERATORS[operator]} {self.number_of(right)}"
        if tolerance is not None and operator == ConditionOperator.EQUALS:
            return self.within_tolerance(
                self.number_of(left), self.number_of(right), self.number_literal(tolerance)
            )
        if left.kind == "num" and operator in (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS):
            code = self.num_equals(self.number_of(left), self.number_of(right))
            return code if operator == ConditionOperator.EQUALS else self.negate(code)
        if operator == ConditionOperator.MATCHES:
            return self.regex_test(
                self.string_of(left), self.string_of(right), not case_sensitive, full_match
            )

        lhs, rhs = self.string_of(left), self.string_of(right)
        if not case_sensitive:
            lhs, rhs = self.lower(lhs), self.lower(rhs)
        builders = {
            ConditionOperator.EQUALS: self.str_equals,
            ConditionOperator.NOT_EQUALS: lambda a, b: self.negate(self.str_equals(a, b)),
            ConditionOperator.CONTAINS: self.str_contains,
            ConditionOperator.NOT_CONTAINS: lambda a, b: self.negate(self.str_contains(a, b)),
            ConditionOperator.STARTS_WITH: self.str_starts_with,
            ConditionOperator.ENDS_WITH: self.str_ends_with,
        }
        return builders[operator](lhs, rhs)

    def operand(self, operand: OperandConfig, ctx: "RenderContext") -> Expr:
        if operand.operand_type == OperandType.VARIABLE:
            name = operand.variable_name or ""
            declared = ctx.variables.get(name)
            kind = _VARIABLE_KINDS.get(declared.type, "any") if declared else "any"
            return Expr(self.sanitize_identifier(name), kind)
        if operand.operand_type == OperandType.ELEMENT:
            if operand.element is None:
                raise UnsupportedRender("element operand without an element")
            return ctx.template.element_property(operand.element, operand.element_property, ctx)
        return Expr(self.string_literal(operand.value or ""), "str", literal=operand.value)

    def condition_expression(self, condition: ConditionConfig, ctx: "RenderContext") -> str:
        left = self.operand(condition.left, ctx)
        right = self.operand(condition.right, ctx) if condition.right else None
        code = self.compare(condition.operator, left, right)
        return self.negate(code) if condition.negated else code

    # -- framework hooks -------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        """Framework-native expression locating one element."""
        raise UnsupportedRender(f"no element locators for {self.language.value}/{self.framework}")

    def element_property(
        self, element: ElementInfo, prop: Optional[str], ctx: "RenderContext"
    ) -> Expr:
        """Expression reading ``prop`` (default: visible text) from an element."""
        raise UnsupportedRender(f"no element access for {self.language.value}/{self.framework}")

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        """Setup lines plus the expression an assertion checks."""
        raise UnsupportedRender(f"no assertions for {self.language.value}/{self.framework}")

    def assert_statement(self, code: str, message: str, event: AssertionEvent) -> list[str]:
        raise UnsupportedRender(f"no assert statement for {self.language.value}")

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        """Setup lines plus a string expression for the captured value."""
        raise UnsupportedRender(f"no captures for {self.language.value}/{self.framework}")

    def assign_variable(self, name: str, code: str, ctx: "RenderContext") -> str:
        raise UnsupportedRender(f"no variable assignment for {self.language.value}")

    def member_access(self, code: str, key: str) -> str:
        """Read ``key`` from a script result object."""
        return f"{code}[{self.string_literal(key)}]"

    def assign_return_variables(
        self, event: CustomJsEvent, result: str, ctx: "RenderContext"
    ) -> list[str]:
        """Copy a script result into the event's declared return variables."""
        names = event.return_variables
        if len(names) == 1:
            return [self.assign_variable(names[0], self.as_string(result), ctx)]
        return [
            self.assign_variable(name, self.as_string(self.member_access(result, name)), ctx)
            for name in names
        ]

    # -- locator helpers ---------------------------------------------------------------

    def require_locator(self, element: Optional[ElementInfo]) -> Locator:
        locator = element.best_locator() if element else None
        if locator is None:
            raise UnsupportedRender("element has no usable locator")
        return self.normalized_locator(locator)

    def normalized_locator(self, locator: Locator) -> Locator:
        """Fold strategies no framework supports natively into CSS or XPath."""
        if locator.strategy == LocatorStrategy.ACCESSIBILITY_ID:
            return Locator(LocatorStrategy.CSS, f'[aria-label="{locator.value}"]')
        if not isinstance(locator.strategy, LocatorStrategy):
            return Locator(LocatorStrategy.XPATH, locator.value)
        return locator

    def capture_locator(self, config: CaptureConfig) -> Locator:
        if config.target_element is not None:
            return self.require_locator(config.target_element)
        selector = config.selector or ""
        if selector.startswith(("/", "(")):
            return Locator(LocatorStrategy.XPATH, selector)
        return Locator(LocatorStrategy.CSS, selector)

    def selector_string(self, locator: Locator) -> str:
        """Single selector string (Playwright selector engine syntax)."""
        locator = self.normalized_locator(locator)
        value = locator.value
        if locator.strategy == LocatorStrategy.ID:
            return f"#{value}" if _SIMPLE_ID.fullmatch(value) else f'[id="{value}"]'
        builders = {
            LocatorStrategy.CSS: lambda v: v,
            LocatorStrategy.XPATH: lambda v: f"xpath={v}",
            LocatorStrategy.NAME: lambda v: f'[name="{v}"]',
            LocatorStrategy.TAG_NAME: lambda v: v,
            LocatorStrategy.CLASS_NAME: lambda v: "." + ".".join(v.split()),
            LocatorStrategy.LINK_TEXT: lambda v: f'text="{v}"',
            LocatorStrategy.PARTIAL_LINK_TEXT: lambda v: f"text={v}",
        }
        return builders[locator.strategy](value)

    # -- shared leaf rendering -------------------------------------------------------

    def script_return(self, expression: str) -> str:
        """Script body for executors that need an explicit ``return``."""
        stripped = expression.strip()
        if stripped.startswith("return"):
            return stripped
        return f"return {stripped.rstrip(';')};"

    def script_function(self, script: str, with_element: bool = False) -> str:
        """Wrap a recorded script body as an async function for ``evaluate``."""
        params = "element" if with_element else ""
        return f"async ({params}) => {{\n{script.strip()}\n}}"

    def assertion_message(self, event: AssertionEvent) -> str:
        return event.custom_message or event.description or event.to_human_readable_description()

    def render_assertion(self, event: AssertionEvent, ctx: "RenderContext") -> list[str]:
        subject, operator, full_match = assertion_plan(event)
        setup, left = self.assertion_subject(event, subject, ctx)
        right = None
        if operator not in UNARY_OPERATORS:
            expected = event.expected_value or ""
            right = Expr(self.string_literal(expected), "str", literal=expected)
        code = self.compare(
            operator,
            left,
            right,
            case_sensitive=event.case_sensitive,
            tolerance=event.tolerance,
            full_match=full_match,
        )
        if event.negated:
            code = self.negate(code)
        return setup + self.assert_statement(code, self.assertion_message(event), event)

    def render_capture(self, event: CaptureEvent, ctx: "RenderContext") -> list[str]:
        config = event.capture_config
        setup, code = self.capture_source(config, ctx)
        if (
            config.method == CaptureMethod.REGEX
            and config.expression
            and config.source != CaptureSource.JAVASCRIPT
        ):
            code = self.regex_extract(code, self.string_literal(config.expression))
        if config.default_value is not None:
            code = self.coalesce(code, self.string_literal(config.default_value))
        return setup + [self.assign_variable(config.variable_name, code, ctx)]


_SIMPLE_ID = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")

# Assertion type -> (subject, operator); "value" resolves to attribute or text
_ASSERTION_PLANS = {
    AssertionType.PRESENT: ("present", ConditionOperator.IS_TRUE),
    AssertionType.VISIBLE: ("visible", ConditionOperator.IS_TRUE),
    AssertionType.ENABLED: ("enabled", ConditionOperator.IS_TRUE),
    AssertionType.SELECTED: ("selected", ConditionOperator.IS_TRUE),
    AssertionType.TEXT_EQUALS: ("text", ConditionOperator.EQUALS),
    AssertionType.TEXT_CONTAINS: ("text", ConditionOperator.CONTAINS),
    AssertionType.ATTRIBUTE_EQUALS: ("attribute", ConditionOperator.EQUALS),
    AssertionType.ATTRIBUTE_CONTAINS: ("attribute", ConditionOperator.CONTAINS),
    AssertionType.URL: ("url", ConditionOperator.EQUALS),
    AssertionType.URL_CONTAINS: ("url", ConditionOperator.CONTAINS),
    AssertionType.TITLE: ("title", ConditionOperator.EQUALS),
    AssertionType.TITLE_CONTAINS: ("title", ConditionOperator.CONTAINS),
    AssertionType.EQUALS: ("value", ConditionOperator.EQUALS),
    AssertionType.CONTAINS: ("value", ConditionOperator.CONTAINS),
    AssertionType.STARTS_WITH: ("value", ConditionOperator.STARTS_WITH),
    AssertionType.ENDS_WITH: ("value", ConditionOperator.ENDS_WITH),
    AssertionType.REGEX_MATCH: ("value", ConditionOperator.MATCHES),
    AssertionType.GREATER_THAN: ("value", ConditionOperator.GREATER_THAN),
    AssertionType.LESS_THAN: ("value", ConditionOperator.LESS_THAN),
    AssertionType.GREATER_THAN_OR_EQUALS: ("value", ConditionOperator.GREATER_THAN_OR_EQUALS),
    AssertionType.LESS_THAN_OR_EQUALS: ("value", ConditionOperator.LESS_THAN_OR_EQUALS),
    AssertionType.COUNT_EQUALS: ("count", ConditionOperator.EQUALS),
    AssertionType.COUNT_GREATER_THAN: ("count", ConditionOperator.GREATER_THAN),
    AssertionType.COUNT_LESS_THAN: ("count", ConditionOperator.LESS_THAN),
    AssertionType.CUSTOM_JAVASCRIPT: ("script", ConditionOperator.IS_TRUE),
}


def assertion_plan(event: AssertionEvent) -> tuple[str, ConditionOperator, bool]:
    """Resolve an assertion to ``(subject, operator, full_match)``."""
    subject, operator = _ASSERTION_PLANS[event.assertion_type]
    if subject == "value":
        subject = "attribute" if event.attribute_name else "text"
    full_match = event.assertion_type == AssertionType.REGEX_MATCH
    if event.is_regex and operator in (ConditionOperator.EQUALS, ConditionOperator.CONTAINS):
        full_match = operator == ConditionOperator.EQUALS
        operator = ConditionOperator.MATCHES
    return subject, operator, full_match


def checked_state(event: InputEvent) -> bool:
    """Desired checkbox/radio state recorded by an input event."""
    return (event.input_value or "").strip().lower() not in _UNCHECKED


_UNCHECKED = frozenset({"false", "off", "0", "no", "unchecked"})


def truthy_value(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def structured_value(value: Any, expected: type) -> Any:
    """Accept structured variable values or their JSON text."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return expected()
    return value if isinstance(value, expected) else expected()


_MODIFIER_FLAGS = (
    ("ctrl_key", "Control"),
    ("shift_key", "Shift"),
    ("alt_key", "Alt"),
    ("meta_key", "Meta"),
)


def click_modifiers(event: ClickEvent) -> list[str]:
    """Modifier keys held during a click, in a fixed order."""
    return [key for flag, key in _MODIFIER_FLAGS if getattr(event, flag)]


# Element property name -> what a renderer reads
_PROPERTY_KINDS = {
    None: "text",
    "": "text",
    "text": "text",
    "innertext": "text",
    "textcontent": "text",
    "value": "value",
    "visible": "visible",
    "displayed": "visible",
    "enabled": "enabled",
    "selected": "selected",
    "checked": "selected",
}


def classify_property(prop: Optional[str]) -> str:
    """One of ``text``, ``value``, ``visible``, ``enabled``, ``selected`` or ``attribute``."""
    key = prop.strip().lower() if prop else prop
    return _PROPERTY_KINDS.get(key, "attribute")
