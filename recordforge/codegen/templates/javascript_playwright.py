"""JavaScript Playwright Test template."""

from typing import TYPE_CHECKING, Optional

from ...recording.events import (
    AssertionEvent,
    ClickEvent,
    CustomJsEvent,
    EventKind,
    InputEvent,
    NavigationEvent,
)
from ...recording.models import CaptureConfig, CaptureMethod, CaptureSource, ElementInfo, Locator
from ..models import TargetFramework
from .base import (
    ANY,
    Expr,
    RenderFn,
    UnsupportedRender,
    checked_state,
    classify_property,
    click_modifiers,
)
from .javascript import JavaScriptTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class JavaScriptPlaywrightTemplate(JavaScriptTemplate):
    """Template for @playwright/test specs."""

    framework = TargetFramework.PLAYWRIGHT.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return ["const { test, expect } = require('@playwright/test');", *self.helper_imports(ctx)]

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        name = self.string_literal(ctx.options.test_name)
        return ["", f"test({name}, async ({{ page, context }}) => {{"]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return ["});"]

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        return f"page.locator({self.string_literal(self.selector_string(locator))})"

    def _locate(self, element: Optional[ElementInfo]) -> str:
        return self.locator_expression(self.require_locator(element))

    def _read(self, target: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"(await {target}.innerText())", "str"),
            "value": lambda: Expr(f"(await {target}.inputValue())", "str"),
            "visible": lambda: Expr(f"(await {target}.isVisible())", "bool"),
            "enabled": lambda: Expr(f"(await {target}.isEnabled())", "bool"),
            "selected": lambda: Expr(f"(await {target}.isChecked())", "bool"),
            "attribute": lambda: Expr(
                f"(await {target}.getAttribute({self.string_literal(prop)}))", "str"
            ),
        }
        return readers[kind]()

    def element_property(
        self, element: ElementInfo, prop: Optional[str], ctx: "RenderContext"
    ) -> Expr:
        return self._read(self._locate(element), classify_property(prop), prop)

    # -- renderers ---------------------------------------------------------------------

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        return {
            (EventKind.CLICK, "click"): self.render_click,
            (EventKind.CLICK, "double_click"): lambda e, ctx: [
                f"await {self._locate(e.element)}.dblclick();"
            ],
            (EventKind.CLICK, "right_click"): lambda e, ctx: [
                f"await {self._locate(e.element)}.click({{ button: 'right' }});"
            ],
            (EventKind.CLICK, "submit"): lambda e, ctx: [
                f"await {self._locate(e.element)}.evaluate((el) => (el.form || el).requestSubmit());"
            ],
            (EventKind.INPUT, "clear_and_type"): lambda e, ctx: [
                f"await {self._locate(e.element)}.fill({self.string_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "type"): lambda e, ctx: [
                f"await {self._locate(e.element)}.pressSequentially({self.string_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "select"): lambda e, ctx: [
                f"await {self._locate(e.element)}.selectOption({{ label: {self.string_literal(e.input_value)} }});"
            ],
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): lambda e, ctx: [
                f"await {self._locate(e.element)}.setInputFiles({self.literal(list(e.files))});"
            ],
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["await page.goBack();"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["await page.goForward();"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["await page.reload();"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        modifiers = click_modifiers(event)
        args = f"{{ modifiers: {self.literal(modifiers)} }}" if modifiers else ""
        return [f"await {self._locate(event.element)}.click({args});"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        action = "check" if checked_state(event) else "uncheck"
        return [f"await {self._locate(event.element)}.{action}();"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"await page.goto({self.string_literal(event.target_url)});"]

    def assert_statement(self, code: str, message: str, event: AssertionEvent) -> list[str]:
        expect = "expect.soft" if event.is_soft else "expect"
        return [f"{expect}({code}, {self.string_literal(message)}).toBeTruthy();"]

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("page.url()", "str")
        if subject == "title":
            return [], Expr("(await page.title())", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.string_literal(self.script_function(self.script_return(event.expected_value)))
            return [], Expr(f"(await page.evaluate({script}))", "any")

        target = self._locate(event.element)
        if subject == "present":
            return [], Expr(f"(await {target}.count()) > 0", "bool")
        if subject == "count":
            return [], Expr(f"(await {target}.count())", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        return [], self._read(target, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "page.url()"
        if config.source == CaptureSource.COOKIE:
            return [], f"(await context.cookies()).find((c) => c.name === {prop})?.value"
        if config.source == CaptureSource.STORAGE:
            return [], (
                "(await page.evaluate((k) => window.localStorage.getItem(k) "
                f"?? window.sessionStorage.getItem(k), {prop}))"
            )
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.string_literal(self.script_function(self.script_return(config.expression)))
            return [], f"String(await page.evaluate({script}))"

        target = self.locator_expression(self.capture_locator(config))
        readers = {
            CaptureMethod.PROPERTY: f"(await {target}.evaluate((el, p) => el[p], {prop}))",
            CaptureMethod.ATTRIBUTE: f"(await {target}.getAttribute({prop}))",
            CaptureMethod.INNER_TEXT: f"(await {target}.innerText())",
            CaptureMethod.TEXT_CONTENT: f"(await {target}.textContent())",
            CaptureMethod.INNER_HTML: f"(await {target}.innerHTML())",
            CaptureMethod.REGEX: f"(await {target}.innerText())",
        }
        if config.method not in readers:
            raise UnsupportedRender(f"{config.method.value} capture from an element")
        return [], readers[config.method]

    def render_custom_js(self, event: CustomJsEvent, ctx: "RenderContext") -> list[str]:
        if event.use_element_context:
            opener = f"await {self._locate(event.element)}.evaluate(async (element) => {{"
        else:
            opener = "await page.evaluate(async () => {"
        body = self.indent_lines(event.script.strip().splitlines())
        if not event.return_variables:
            return [opener, *body, "});"]
        result = ctx.next_name("result")
        lines = [f"const {result} = {opener}", *body, "});"]
        return lines + self.assign_return_variables(event, result, ctx)
