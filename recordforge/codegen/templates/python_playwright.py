"""Python Playwright template (sync API, pytest-playwright fixtures)."""

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
from .python import PythonTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class PythonPlaywrightTemplate(PythonTemplate):
    """Template for Python Playwright tests."""

    framework = TargetFramework.PLAYWRIGHT.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return [
            *self.helper_imports(ctx),
            "from playwright.sync_api import Page",
        ]

    def function_signature(self, ctx: "RenderContext") -> str:
        return f"def {self.function_name(ctx)}(page: Page):"

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        return f"page.locator({self.string_literal(self.selector_string(locator))})"

    def _locate(self, element: Optional[ElementInfo]) -> str:
        return self.locator_expression(self.require_locator(element))

    def _read(self, target: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"{target}.inner_text()", "str"),
            "value": lambda: Expr(f"{target}.input_value()", "str"),
            "visible": lambda: Expr(f"{target}.is_visible()", "bool"),
            "enabled": lambda: Expr(f"{target}.is_enabled()", "bool"),
            "selected": lambda: Expr(f"{target}.is_checked()", "bool"),
            "attribute": lambda: Expr(f"{target}.get_attribute({self.string_literal(prop)})", "str"),
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
            (EventKind.CLICK, "double_click"): lambda e, ctx: [f"{self._locate(e.element)}.dblclick()"],
            (EventKind.CLICK, "right_click"): lambda e, ctx: [
                f'{self._locate(e.element)}.click(button="right")'
            ],
            (EventKind.CLICK, "submit"): lambda e, ctx: [
                f'{self._locate(e.element)}.evaluate("el => (el.form || el).requestSubmit()")'
            ],
            (EventKind.INPUT, "clear_and_type"): lambda e, ctx: [
                f"{self._locate(e.element)}.fill({self.string_literal(e.input_value)})"
            ],
            (EventKind.INPUT, "type"): lambda e, ctx: [
                f"{self._locate(e.element)}.press_sequentially({self.string_literal(e.input_value)})"
            ],
            (EventKind.INPUT, "select"): lambda e, ctx: [
                f"{self._locate(e.element)}.select_option(label={self.string_literal(e.input_value)})"
            ],
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): lambda e, ctx: [
                f"{self._locate(e.element)}.set_input_files({self.literal(list(e.files))})"
            ],
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["page.go_back()"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["page.go_forward()"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["page.reload()"],
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
        args = f"modifiers={self.literal(modifiers)}" if modifiers else ""
        return [f"{self._locate(event.element)}.click({args})"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        action = "check" if checked_state(event) else "uncheck"
        return [f"{self._locate(event.element)}.{action}()"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"page.goto({self.string_literal(event.target_url)})"]

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("page.url", "str")
        if subject == "title":
            return [], Expr("page.title()", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.script_function(self.script_return(event.expected_value))
            return [], Expr(f"page.evaluate({self.string_literal(script)})", "any")

        target = self._locate(event.element)
        if subject == "present":
            return [], Expr(f"{target}.count() > 0", "bool")
        if subject == "count":
            return [], Expr(f"{target}.count()", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        return [], self._read(target, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "page.url"
        if config.source == CaptureSource.COOKIE:
            return [], (
                f'next((c["value"] for c in page.context.cookies() '
                f'if c["name"] == {prop}), None)'
            )
        if config.source == CaptureSource.STORAGE:
            script = self.string_literal(
                "k => window.localStorage.getItem(k) ?? window.sessionStorage.getItem(k)"
            )
            return [], f"page.evaluate({script}, {prop})"
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.script_function(self.script_return(config.expression))
            return [], f"str(page.evaluate({self.string_literal(script)}))"

        target = self.locator_expression(self.capture_locator(config))
        readers = {
            CaptureMethod.PROPERTY: f'{target}.evaluate("(el, p) => el[p]", {prop})',
            CaptureMethod.ATTRIBUTE: f"{target}.get_attribute({prop})",
            CaptureMethod.INNER_TEXT: f"{target}.inner_text()",
            CaptureMethod.TEXT_CONTENT: f"{target}.text_content()",
            CaptureMethod.INNER_HTML: f"{target}.inner_html()",
            CaptureMethod.REGEX: f"{target}.inner_text()",
        }
        if config.method not in readers:
            raise UnsupportedRender(f"{config.method.value} capture from an element")
        return [], readers[config.method]

    def render_custom_js(self, event: CustomJsEvent, ctx: "RenderContext") -> list[str]:
        script = self.string_literal(self.script_function(event.script, event.use_element_context))
        target = self._locate(event.element) if event.use_element_context else "page"
        call = f"{target}.evaluate({script})"
        if not event.return_variables:
            return [call]
        result = ctx.next_name("result")
        return [f"{result} = {call}"] + self.assign_return_variables(event, result, ctx)
