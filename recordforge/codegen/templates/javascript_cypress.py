"""JavaScript Cypress template.

Cypress commands are queued rather than awaited, so assertions become
``should`` chains and captures become aliases instead of local variables.
"""

from typing import TYPE_CHECKING, Optional

from ...recording.events import (
    AssertionEvent,
    CaptureEvent,
    ClickEvent,
    CustomJsEvent,
    EventKind,
    InputEvent,
    NavigationEvent,
)
from ...recording.models import (
    CaptureMethod,
    CaptureSource,
    ConditionOperator,
    ElementInfo,
    Locator,
    LocatorStrategy,
)
from ..models import TargetFramework
from .base import (
    ANY,
    Expr,
    RenderFn,
    UnsupportedRender,
    assertion_plan,
    checked_state,
    click_modifiers,
)
from .javascript import JavaScriptTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


# (subject, operator) pairs Cypress expresses with a built-in chainer
_CHAINERS = {
    ("present", ConditionOperator.IS_TRUE): "exist",
    ("visible", ConditionOperator.IS_TRUE): "be.visible",
    ("enabled", ConditionOperator.IS_TRUE): "be.enabled",
    ("selected", ConditionOperator.IS_TRUE): "be.checked",
    ("text", ConditionOperator.EQUALS): "have.text",
    ("text", ConditionOperator.CONTAINS): "contain.text",
    ("url", ConditionOperator.EQUALS): "eq",
    ("url", ConditionOperator.CONTAINS): "include",
    ("title", ConditionOperator.EQUALS): "eq",
    ("title", ConditionOperator.CONTAINS): "include",
    ("count", ConditionOperator.EQUALS): "have.length",
    ("count", ConditionOperator.GREATER_THAN): "have.length.greaterThan",
    ("count", ConditionOperator.LESS_THAN): "have.length.lessThan",
}

_MODIFIER_OPTIONS = {"Control": "ctrlKey", "Shift": "shiftKey", "Alt": "altKey", "Meta": "metaKey"}


class JavaScriptCypressTemplate(JavaScriptTemplate):
    """Template for Cypress specs."""

    framework = TargetFramework.CYPRESS.value
    body_depth = 2

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return [
            '/// <reference types="cypress" />',
            "require('@cypress/xpath');",
            *self.helper_imports(ctx),
        ]

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        name = self.string_literal(ctx.options.test_name)
        return ["", f"describe({name}, () => {{", "  it('replays the recorded steps', () => {"]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return ["  });", "});"]

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        locator = self.normalized_locator(locator)
        value = self.string_literal(locator.value)
        if locator.strategy == LocatorStrategy.XPATH:
            return f"cy.xpath({value})"
        if locator.strategy == LocatorStrategy.LINK_TEXT:
            return f"cy.contains('a', {value})"
        if locator.strategy == LocatorStrategy.PARTIAL_LINK_TEXT:
            return f"cy.contains({value})"
        return f"cy.get({self.string_literal(self.selector_string(locator))})"

    def _locate(self, element: Optional[ElementInfo]) -> str:
        return self.locator_expression(self.require_locator(element))

    def type_literal(self, value: Optional[str]) -> str:
        """``cy.type`` treats ``{`` as a key sequence opener."""
        return self.string_literal((value or "").replace("{", "{{}"))

    # -- renderers ---------------------------------------------------------------------

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        return {
            (EventKind.CLICK, "click"): self.render_click,
            (EventKind.CLICK, "double_click"): lambda e, ctx: [f"{self._locate(e.element)}.dblclick();"],
            (EventKind.CLICK, "right_click"): lambda e, ctx: [f"{self._locate(e.element)}.rightclick();"],
            (EventKind.CLICK, "submit"): lambda e, ctx: [
                f"{self._locate(e.element)}.closest('form').submit();"
            ],
            (EventKind.INPUT, "clear_and_type"): lambda e, ctx: [
                f"{self._locate(e.element)}.clear().type({self.type_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "type"): lambda e, ctx: [
                f"{self._locate(e.element)}.type({self.type_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "select"): lambda e, ctx: [
                f"{self._locate(e.element)}.select({self.string_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): lambda e, ctx: [
                f"{self._locate(e.element)}.selectFile({self.literal(list(e.files))});"
            ],
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["cy.go('back');"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["cy.go('forward');"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["cy.reload();"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        options = ", ".join(f"{_MODIFIER_OPTIONS[k]}: true" for k in click_modifiers(event))
        args = f"{{ {options} }}" if options else ""
        return [f"{self._locate(event.element)}.click({args});"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        action = "check" if checked_state(event) else "uncheck"
        return [f"{self._locate(event.element)}.{action}();"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"cy.visit({self.string_literal(event.target_url)});"]

    def _subject_chain(self, event: AssertionEvent, subject: str) -> str:
        if subject == "url":
            return "cy.url()"
        if subject == "title":
            return "cy.title()"
        target = self._locate(event.element)
        if subject == "attribute":
            if not event.attribute_name:
                raise UnsupportedRender("attribute assertion needs an attribute name")
            return f"{target}.invoke('attr', {self.string_literal(event.attribute_name)})"
        if subject == "text":
            return f"{target}.invoke('text')"
        if subject == "count":
            return f"{target}.its('length')"
        return target

    def render_assertion(self, event: AssertionEvent, ctx: "RenderContext") -> list[str]:
        subject, operator, full_match = assertion_plan(event)
        message = self.string_literal(self.assertion_message(event))

        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            fn = self.string_literal(self.script_return(event.expected_value))
            check = f"new win.Function({fn})()"
            check = self.negate(check) if event.negated else check
            return [f"cy.window().then((win) => expect({check}, {message}).to.be.ok);"]

        chainer = _CHAINERS.get((subject, operator))
        simple = event.case_sensitive and event.tolerance is None
        if chainer and simple:
            prefix = "not." if event.negated else ""
            target = self._locate(event.element) if subject not in ("url", "title") else None
            chain = target or self._subject_chain(event, subject)
            args = [self.string_literal(f"{prefix}{chainer}")]
            if operator != ConditionOperator.IS_TRUE:
                expected = event.expected_value or ""
                args.append(
                    self.number_literal(float(expected))
                    if subject == "count" and _is_number(expected)
                    else self.string_literal(expected)
                )
            return [f"{chain}.should({', '.join(args)});"]

        left = Expr("value", "num" if subject == "count" else "str")
        right = None
        if operator not in (ConditionOperator.IS_TRUE, ConditionOperator.IS_FALSE):
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
        return [
            f"{self._subject_chain(event, subject)}.should((value) => {{",
            f"{self.indent}expect({code}, {message}).to.be.true;",
            "});",
        ]

    def render_capture(self, event: CaptureEvent, ctx: "RenderContext") -> list[str]:
        config = event.capture_config
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            chain = "cy.url()"
        elif config.source == CaptureSource.COOKIE:
            chain = f"cy.getCookie({prop}).its('value')"
        elif config.source == CaptureSource.STORAGE:
            chain = (
                "cy.window().then((win) => win.localStorage.getItem("
                f"{prop}) ?? win.sessionStorage.getItem({prop}))"
            )
        elif config.source == CaptureSource.JAVASCRIPT:
            fn = self.string_literal(self.script_return(config.expression))
            chain = f"cy.window().then((win) => new win.Function({fn})())"
        else:
            target = self.locator_expression(self.capture_locator(config))
            readers = {
                CaptureMethod.PROPERTY: f"{target}.invoke('prop', {prop})",
                CaptureMethod.ATTRIBUTE: f"{target}.invoke('attr', {prop})",
                CaptureMethod.INNER_TEXT: f"{target}.invoke('text')",
                CaptureMethod.TEXT_CONTENT: f"{target}.invoke('prop', 'textContent')",
                CaptureMethod.INNER_HTML: f"{target}.invoke('html')",
                CaptureMethod.REGEX: f"{target}.invoke('text')",
            }
            if config.method not in readers:
                raise UnsupportedRender(f"{config.method.value} capture from an element")
            chain = readers[config.method]

        if (
            config.method == CaptureMethod.REGEX
            and config.expression
            and config.source != CaptureSource.JAVASCRIPT
        ):
            extract = self.regex_extract("String(value)", self.string_literal(config.expression))
            chain += f".then((value) => {extract})"
        if config.default_value is not None:
            chain += f".then((value) => value ?? {self.string_literal(config.default_value)})"

        name = self.sanitize_identifier(config.variable_name)
        ctx.declare(name)
        return [f"{chain}.as({self.string_literal(name)});"]

    def render_custom_js(self, event: CustomJsEvent, ctx: "RenderContext") -> list[str]:
        fn = self.string_literal(f"({self.script_function(event.script, event.use_element_context)})")
        if event.use_element_context:
            chain = (
                f"{self._locate(event.element)}.then(($el) => "
                f"$el[0].ownerDocument.defaultView.eval({fn})($el[0]))"
            )
        else:
            chain = f"cy.window().then((win) => win.eval({fn})())"
        names = [self.sanitize_identifier(n) for n in event.return_variables]
        if not names:
            return [f"{chain};"]
        if len(names) == 1:
            ctx.declare(names[0])
            return [f"{chain}.as({self.string_literal(names[0])});"]
        result = ctx.next_name("result")
        lines = [f"{chain}.as({self.string_literal(result)});"]
        for name in names:
            ctx.declare(name)
            alias = self.string_literal(name)
            lines.append(f"cy.get({self.string_literal('@' + result)}).its({alias}).as({alias});")
        return lines


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True
