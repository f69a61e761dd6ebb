"""Value objects owned by recorded events.

ElementInfo snapshots, locators and the loop / condition / capture
configuration objects. None of these are persisted on their own; each
is owned by exactly one event.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _parse_enum(enum_cls: type[Enum], value: Any, default: Any = None) -> Any:
    """Parse an enum member by value or by name, falling back to ``default``."""
    if value is None or isinstance(value, enum_cls):
        return value if value is not None else default
    try:
        return enum_cls(value)
    except ValueError:
        pass
    try:
        return enum_cls[str(value).upper()]
    except KeyError:
        return default


def _drop_none(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Locators and element snapshots
# =============================================================================


class LocatorStrategy(str, Enum):
    """How a page element is identified."""

    CSS = "css"
    XPATH = "xpath"
    ID = "id"
    NAME = "name"
    TAG_NAME = "tag_name"
    CLASS_NAME = "class_name"
    LINK_TEXT = "link_text"
    PARTIAL_LINK_TEXT = "partial_link_text"
    ACCESSIBILITY_ID = "accessibility_id"


@dataclass
class Locator:
    """A single locator strategy/value pair.

    ``strategy`` stays a raw string when the recorder reports a strategy
    this package does not know; renderers treat those as XPath.
    """

    strategy: LocatorStrategy | str
    value: str

    def to_dict(self) -> dict:
        return {"strategy": _enum_value(self.strategy), "value": self.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Locator":
        raw = data.get("strategy", LocatorStrategy.XPATH.value)
        return cls(
            strategy=_parse_enum(LocatorStrategy, raw, default=raw),
            value=data.get("value", ""),
        )


@dataclass
class BoundingRect:
    """Element bounding rectangle in CSS pixels."""

    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> "BoundingRect":
        return cls(
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=data.get("width", 0),
            height=data.get("height", 0),
        )


@dataclass
class ElementInfo:
    """Snapshot of a DOM element at the time an event was recorded."""

    tag_name: Optional[str] = None
    id: Optional[str] = None
    class_name: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    href: Optional[str] = None
    src: Optional[str] = None
    alt: Optional[str] = None
    title: Optional[str] = None
    placeholder: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None
    css_selector: Optional[str] = None
    xpath: Optional[str] = None
    selector: Optional[str] = None
    friendly_name: Optional[str] = None
    attributes: dict[str, str] = field(default_factory=dict)
    rect: Optional[BoundingRect] = None
    visible: bool = True
    enabled: bool = True
    selected: bool = False
    required: bool = False
    locators: list[Locator] = field(default_factory=list)

    def best_selector(self) -> Optional[str]:
        """Return the most specific CSS-or-XPath selector available.

        Preference: ``#id``, CSS selector, XPath, raw selector.
        """
        if self.id:
            return f"#{self.id}"
        if self.css_selector:
            return self.css_selector
        if self.xpath:
            return self.xpath
        return self.selector or None

    def best_locator(self) -> Optional[Locator]:
        """Return the first explicit locator, or derive one from the snapshot."""
        if self.locators:
            return self.locators[0]
        if self.id:
            return Locator(LocatorStrategy.ID, self.id)
        if self.css_selector:
            return Locator(LocatorStrategy.CSS, self.css_selector)
        if self.xpath:
            return Locator(LocatorStrategy.XPATH, self.xpath)
        if self.selector:
            return Locator(LocatorStrategy.CSS, self.selector)
        return None

    def describe(self) -> str:
        """Short human-readable description used in step descriptions."""
        if self.tag_name:
            if self.id:
                return f"{self.tag_name} with ID '{self.id}'"
            if self.text:
                text = self.text if len(self.text) <= 20 else self.text[:17] + "..."
                return f"{self.tag_name} with text '{text}'"
            return f"{self.tag_name} element {self.best_selector()}"
        return f"element {self.best_selector()}"

    def to_dict(self) -> dict:
        data = {
            "tagName": self.tag_name,
            "id": self.id,
            "className": self.class_name,
            "name": self.name,
            "text": self.text,
            "href": self.href,
            "src": self.src,
            "alt": self.alt,
            "title": self.title,
            "placeholder": self.placeholder,
            "value": self.value,
            "type": self.type,
            "cssSelector": self.css_selector,
            "xpath": self.xpath,
            "selector": self.selector,
            "friendlyName": self.friendly_name,
            "rect": self.rect.to_dict() if self.rect else None,
        }
        data = _drop_none(data)
        data.update({
            "attributes": dict(self.attributes),
            "visible": self.visible,
            "enabled": self.enabled,
            "selected": self.selected,
            "required": self.required,
            "locators": [loc.to_dict() for loc in self.locators],
        })
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ElementInfo":
        rect = data.get("rect") or data.get("boundingRect")
        return cls(
            tag_name=data.get("tagName"),
            id=data.get("id"),
            class_name=data.get("className"),
            name=data.get("name"),
            text=data.get("text"),
            href=data.get("href"),
            src=data.get("src"),
            alt=data.get("alt"),
            title=data.get("title"),
            placeholder=data.get("placeholder"),
            value=data.get("value"),
            type=data.get("type"),
            css_selector=data.get("cssSelector"),
            xpath=data.get("xpath"),
            selector=data.get("selector"),
            friendly_name=data.get("friendlyName"),
            attributes=dict(data.get("attributes") or {}),
            rect=BoundingRect.from_dict(rect) if rect else None,
            visible=data.get("visible", True),
            enabled=data.get("enabled", True),
            selected=data.get("selected", False),
            required=data.get("required", False),
            locators=[Locator.from_dict(loc) for loc in data.get("locators") or []],
        )


def element_from_dict(data: Optional[dict]) -> Optional[ElementInfo]:
    return ElementInfo.from_dict(data) if data else None


# =============================================================================
# Loop configuration
# =============================================================================


class LoopType(str, Enum):
    """Loop flavours supported by the IR."""

    COUNT = "COUNT"
    WHILE = "WHILE"
    UNTIL = "UNTIL"
    FOR_EACH = "FOR_EACH"


@dataclass
class LoopConfig:
    """How a loop container repeats its children."""

    loop_type: LoopType = LoopType.COUNT
    iteration_variable: str = "i"
    count: Optional[int] = None
    condition: Optional[str] = None
    data_source_id: Optional[str] = None
    data_source_path: Optional[str] = None
    max_iterations: Optional[int] = None

    def validation_errors(self) -> list[str]:
        errors = []
        if self.loop_type is None:
            errors.append("loop type is required")
        elif self.loop_type == LoopType.COUNT:
            if self.count is None or self.count < 0:
                errors.append("COUNT loop needs a non-negative count")
        elif self.loop_type in (LoopType.WHILE, LoopType.UNTIL):
            if not self.condition or not self.condition.strip():
                errors.append(f"{self.loop_type.value} loop needs a condition")
        elif self.loop_type == LoopType.FOR_EACH:
            if not self.data_source_id or not self.data_source_id.strip():
                errors.append("FOR_EACH loop needs a data source id")

        if not self.iteration_variable or not self.iteration_variable.strip():
            errors.append("iteration variable is required")
        if self.max_iterations is not None and self.max_iterations <= 0:
            errors.append("max iterations must be positive")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def describe(self) -> str:
        if self.loop_type == LoopType.COUNT:
            text = f"Repeat {self.count} times with {self.iteration_variable} as counter"
        elif self.loop_type == LoopType.WHILE:
            text = f"Repeat while {self.condition or 'condition is true'}"
        elif self.loop_type == LoopType.UNTIL:
            text = f"Repeat until {self.condition or 'condition is true'}"
        elif self.loop_type == LoopType.FOR_EACH:
            text = f"For each item in data source {self.data_source_id}"
            if self.data_source_path:
                text += f" at path {self.data_source_path}"
            text += f" as {self.iteration_variable}"
        else:
            text = "Loop"
        if self.max_iterations is not None:
            text += f" (max {self.max_iterations} iterations)"
        return text

    def to_dict(self) -> dict:
        data = _drop_none({
            "loopType": _enum_value(self.loop_type),
            "count": self.count,
            "condition": self.condition,
            "dataSourceId": self.data_source_id,
            "dataSourcePath": self.data_source_path,
            "maxIterations": self.max_iterations,
        })
        data["iterationVariable"] = self.iteration_variable
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "LoopConfig":
        return cls(
            loop_type=_parse_enum(LoopType, data.get("loopType", LoopType.COUNT)),
            iteration_variable=data.get("iterationVariable", "i"),
            count=data.get("count"),
            condition=data.get("condition"),
            data_source_id=data.get("dataSourceId"),
            data_source_path=data.get("dataSourcePath"),
            max_iterations=data.get("maxIterations"),
        )


# =============================================================================
# Condition configuration
# =============================================================================


class ConditionOperator(str, Enum):
    """Comparison operators for conditionals."""

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_THAN_OR_EQUALS = "GREATER_THAN_OR_EQUALS"
    LESS_THAN_OR_EQUALS = "LESS_THAN_OR_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    MATCHES = "MATCHES"
    IS_TRUE = "IS_TRUE"
    IS_FALSE = "IS_FALSE"


OPERATOR_SYMBOLS: dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "==",
    ConditionOperator.NOT_EQUALS: "!=",
    ConditionOperator.GREATER_THAN: ">",
    ConditionOperator.LESS_THAN: "<",
    ConditionOperator.GREATER_THAN_OR_EQUALS: ">=",
    ConditionOperator.LESS_THAN_OR_EQUALS: "<=",
    ConditionOperator.CONTAINS: "contains",
    ConditionOperator.NOT_CONTAINS: "does not contain",
    ConditionOperator.STARTS_WITH: "starts with",
    ConditionOperator.ENDS_WITH: "ends with",
    ConditionOperator.MATCHES: "matches pattern",
    ConditionOperator.IS_TRUE: "is true",
    ConditionOperator.IS_FALSE: "is false",
}

UNARY_OPERATORS = frozenset({ConditionOperator.IS_TRUE, ConditionOperator.IS_FALSE})


class OperandType(str, Enum):
    """Where a condition operand gets its value."""

    LITERAL = "LITERAL"
    VARIABLE = "VARIABLE"
    ELEMENT = "ELEMENT"


@dataclass
class OperandConfig:
    """One side of a condition."""

    operand_type: OperandType = OperandType.LITERAL
    value: Optional[str] = None
    variable_name: Optional[str] = None
    element: Optional[ElementInfo] = None
    element_property: Optional[str] = None

    def describe(self) -> str:
        if self.operand_type == OperandType.VARIABLE:
            return "${" + (self.variable_name or "") + "}"
        if self.operand_type == OperandType.ELEMENT:
            if self.element is None:
                return "Unknown element"
            text = f"Element {self.element.best_selector()}"
            if self.element_property:
                text += f".{self.element_property}"
            return text
        return f'"{self.value if self.value is not None else ""}"'

    def to_dict(self) -> dict:
        return _drop_none({
            "type": _enum_value(self.operand_type),
            "value": self.value,
            "variableName": self.variable_name,
            "element": self.element.to_dict() if self.element else None,
            "elementProperty": self.element_property,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "OperandConfig":
        return cls(
            operand_type=_parse_enum(OperandType, data.get("type"), OperandType.LITERAL),
            value=data.get("value"),
            variable_name=data.get("variableName"),
            element=element_from_dict(data.get("element")),
            element_property=data.get("elementProperty"),
        )


@dataclass
class ConditionConfig:
    """A boolean expression: ``left <operator> right``, optionally negated."""

    operator: Optional[ConditionOperator] = ConditionOperator.EQUALS
    left: Optional[OperandConfig] = None
    right: Optional[OperandConfig] = None
    negated: bool = False

    def validation_errors(self) -> list[str]:
        errors = []
        if self.operator is None:
            errors.append("condition operator is required")
        if self.left is None:
            errors.append("condition needs a left operand")
        if self.operator not in UNARY_OPERATORS and self.operator is not None and self.right is None:
            errors.append(f"operator {self.operator.value} needs a right operand")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def describe(self) -> str:
        if self.operator is None or self.left is None:
            return "Invalid condition"
        text = f"{self.left.describe()} {OPERATOR_SYMBOLS[self.operator]}"
        if self.operator not in UNARY_OPERATORS:
            text += " " + (self.right.describe() if self.right else "NULL")
        if self.negated:
            text = f"NOT ({text})"
        return text

    def to_dict(self) -> dict:
        return _drop_none({
            "operator": _enum_value(self.operator),
            "left": self.left.to_dict() if self.left else None,
            "right": self.right.to_dict() if self.right else None,
            "negated": self.negated,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionConfig":
        return cls(
            operator=_parse_enum(ConditionOperator, data.get("operator", ConditionOperator.EQUALS)),
            left=OperandConfig.from_dict(data["left"]) if data.get("left") else None,
            right=OperandConfig.from_dict(data["right"]) if data.get("right") else None,
            negated=data.get("negated", False),
        )


# =============================================================================
# Capture configuration
# =============================================================================


class CaptureSource(str, Enum):
    """Where a captured value comes from."""

    ELEMENT = "ELEMENT"
    RESPONSE = "RESPONSE"
    JAVASCRIPT = "JAVASCRIPT"
    URL = "URL"
    COOKIE = "COOKIE"
    STORAGE = "STORAGE"


class CaptureMethod(str, Enum):
    """How the value is extracted from its source."""

    PROPERTY = "PROPERTY"
    ATTRIBUTE = "ATTRIBUTE"
    INNER_TEXT = "INNER_TEXT"
    INNER_HTML = "INNER_HTML"
    TEXT_CONTENT = "TEXT_CONTENT"
    JSON_PATH = "JSON_PATH"
    XPATH = "XPATH"
    REGEX = "REGEX"


@dataclass
class CaptureConfig:
    """Captures a runtime value into a named test variable."""

    variable_name: Optional[str] = None
    source: Optional[CaptureSource] = CaptureSource.ELEMENT
    method: Optional[CaptureMethod] = CaptureMethod.PROPERTY
    target_element: Optional[ElementInfo] = None
    selector: Optional[str] = None
    property: Optional[str] = "textContent"
    expression: Optional[str] = None
    format: Optional[str] = None
    default_value: Optional[str] = None
    is_global: bool = False
    transform: Optional[str] = None

    def element_selector(self) -> Optional[str]:
        if self.target_element is not None:
            return self.target_element.best_selector()
        return self.selector

    def validation_errors(self) -> list[str]:
        errors = []
        if not self.variable_name or not self.variable_name.strip():
            errors.append("capture variable name is required")
        if self.source is None:
            errors.append("capture source is required")
        if self.method is None:
            errors.append("capture method is required")
        if self.source == CaptureSource.ELEMENT:
            if self.target_element is None and not self.selector:
                errors.append("element capture needs a target element or selector")
            if self.method == CaptureMethod.PROPERTY and not self.property:
                errors.append("property capture needs a property name")
        elif self.source == CaptureSource.RESPONSE:
            if self.method in (CaptureMethod.JSON_PATH, CaptureMethod.XPATH) and not self.expression:
                errors.append(f"{self.method.value} response capture needs an expression")
        elif self.source == CaptureSource.JAVASCRIPT:
            if not self.expression:
                errors.append("JavaScript capture needs an expression")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def describe(self) -> str:
        if self.source == CaptureSource.ELEMENT:
            text = f"Capture element {self.element_selector()}"
            if self.method == CaptureMethod.ATTRIBUTE:
                text += f" attribute '{self.property}'"
            elif self.method == CaptureMethod.PROPERTY or self.method is None:
                text += f".{self.property}"
            else:
                text += f" {self.method.value.lower().replace('_', ' ')}"
        elif self.source == CaptureSource.RESPONSE:
            text = "Capture response data"
            if self.method == CaptureMethod.JSON_PATH:
                text += f" using JSONPath expression '{self.expression}'"
            elif self.method == CaptureMethod.XPATH:
                text += f" using XPath expression '{self.expression}'"
            elif self.method == CaptureMethod.REGEX:
                text += f" using regex '{self.expression}'"
        elif self.source == CaptureSource.JAVASCRIPT:
            text = f"Capture JavaScript result from '{self.expression}'"
        elif self.source == CaptureSource.URL:
            text = "Capture current URL"
            if self.method == CaptureMethod.REGEX and self.expression:
                text += f" using regex '{self.expression}'"
        elif self.source == CaptureSource.COOKIE:
            text = f"Capture cookie '{self.property}'"
        elif self.source == CaptureSource.STORAGE:
            text = f"Capture storage item '{self.property}'"
        else:
            text = "Capture value"
        prefix = "global." if self.is_global else ""
        return f"{text} into variable {prefix}{self.variable_name}"

    def to_dict(self) -> dict:
        return _drop_none({
            "variableName": self.variable_name,
            "source": _enum_value(self.source),
            "method": _enum_value(self.method),
            "targetElement": self.target_element.to_dict() if self.target_element else None,
            "selector": self.selector,
            "property": self.property,
            "expression": self.expression,
            "format": self.format,
            "defaultValue": self.default_value,
            "isGlobal": self.is_global,
            "transform": self.transform,
        })

    @classmethod
    def from_dict(cls, data: dict) -> "CaptureConfig":
        return cls(
            variable_name=data.get("variableName"),
            source=_parse_enum(CaptureSource, data.get("source", CaptureSource.ELEMENT)),
            method=_parse_enum(CaptureMethod, data.get("method", CaptureMethod.PROPERTY)),
            target_element=element_from_dict(data.get("targetElement")),
            selector=data.get("selector"),
            property=data.get("property", "textContent"),
            expression=data.get("expression"),
            format=data.get("format"),
            default_value=data.get("defaultValue"),
            is_global=data.get("isGlobal", False),
            transform=data.get("transform"),
        )
