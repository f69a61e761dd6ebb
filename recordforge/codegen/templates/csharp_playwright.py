"""C# Playwright template (Microsoft.Playwright.NUnit)."""

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
from .csharp import CSharpTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class CSharpPlaywrightTemplate(CSharpTemplate):
    """Template for C# Playwright tests built on ``PageTest``."""

    framework = TargetFramework.PLAYWRIGHT.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        usings = super().generate_imports(ctx)
        return usings[:-1] + [
            "using System.Threading.Tasks;",
            "using Microsoft.Playwright;",
            "using Microsoft.Playwright.NUnit;",
            usings[-1],
        ]

    def class_declaration(self, ctx: "RenderContext") -> str:
        return f"    public class {self.class_name(ctx)} : PageTest"

    def method_declaration(self, ctx: "RenderContext") -> str:
        return f"        public async Task {self.method_name(ctx)}()"

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        return f"Page.Locator({self.string_literal(self.selector_string(locator))})"

    def _locate(self, element: Optional[ElementInfo]) -> str:
        return self.locator_expression(self.require_locator(element))

    def _read(self, target: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"(await {target}.InnerTextAsync())", "str"),
            "value": lambda: Expr(f"(await {target}.InputValueAsync())", "str"),
            "visible": lambda: Expr(f"(await {target}.IsVisibleAsync())", "bool"),
            "enabled": lambda: Expr(f"(await {target}.IsEnabledAsync())", "bool"),
            "selected": lambda: Expr(f"(await {target}.IsCheckedAsync())", "bool"),
            "attribute": lambda: Expr(
                f"(await {target}.GetAttributeAsync({self.string_literal(prop)}))", "str"
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
                f"await {self._locate(e.element)}.DblClickAsync();"
            ],
            (EventKind.CLICK, "right_click"): lambda e, ctx: [
                f"await {self._locate(e.element)}.ClickAsync(new() {{ Button = MouseButton.Right }});"
            ],
            (EventKind.CLICK, "submit"): lambda e, ctx: [
                f'await {self._locate(e.element)}.EvaluateAsync("el => (el.form || el).requestSubmit()");'
            ],
            (EventKind.INPUT, "clear_and_type"): lambda e, ctx: [
                f"await {self._locate(e.element)}.FillAsync({self.string_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "type"): lambda e, ctx: [
                f"await {self._locate(e.element)}.PressSequentiallyAsync({self.string_literal(e.input_value)});"
            ],
            (EventKind.INPUT, "select"): lambda e, ctx: [
                f"await {self._locate(e.element)}.SelectOptionAsync("
                f"new SelectOptionValue {{ Label = {self.string_literal(e.input_value)} }});"
            ],
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): self.render_upload,
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["await Page.GoBackAsync();"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["await Page.GoForwardAsync();"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["await Page.ReloadAsync();"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        modifiers = ", ".join(f"KeyboardModifier.{k}" for k in click_modifiers(event))
        args = f"new() {{ Modifiers = new[] {{ {modifiers} }} }}" if modifiers else ""
        return [f"await {self._locate(event.element)}.ClickAsync({args});"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        action = "CheckAsync" if checked_state(event) else "UncheckAsync"
        return [f"await {self._locate(event.element)}.{action}();"]

    def render_upload(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        files = ", ".join(self.string_literal(f) for f in event.files)
        return [f"await {self._locate(event.element)}.SetInputFilesAsync(new[] {{ {files} }});"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"await Page.GotoAsync({self.string_literal(event.target_url)});"]

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("Page.Url", "str")
        if subject == "title":
            return [], Expr("(await Page.TitleAsync())", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.string_literal(self.script_function(self.script_return(event.expected_value)))
            return [], Expr(f"(await Page.EvaluateAsync<bool>({script}))", "bool")

        target = self._locate(event.element)
        if subject == "present":
            return [], Expr(f"(await {target}.CountAsync()) > 0", "bool")
        if subject == "count":
            return [], Expr(f"(await {target}.CountAsync())", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        return [], self._read(target, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "Page.Url"
        if config.source == CaptureSource.COOKIE:
            return [], f"(await Context.CookiesAsync()).FirstOrDefault(c => c.Name == {prop})?.Value"
        if config.source == CaptureSource.STORAGE:
            script = self.string_literal(
                "k => window.localStorage.getItem(k) ?? window.sessionStorage.getItem(k)"
            )
            return [], f"(await Page.EvaluateAsync<string>({script}, {prop}))"
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.string_literal(self.script_function(self.script_return(config.expression)))
            return [], f"Convert.ToString(await Page.EvaluateAsync<object>({script}))"

        target = self.locator_expression(self.capture_locator(config))
        readers = {
            CaptureMethod.PROPERTY: (
                f'(await {target}.EvaluateAsync<string>("(el, p) => String(el[p])", {prop}))'
            ),
            CaptureMethod.ATTRIBUTE: f"(await {target}.GetAttributeAsync({prop}))",
            CaptureMethod.INNER_TEXT: f"(await {target}.InnerTextAsync())",
            CaptureMethod.TEXT_CONTENT: f"(await {target}.TextContentAsync())",
            CaptureMethod.INNER_HTML: f"(await {target}.InnerHTMLAsync())",
            CaptureMethod.REGEX: f"(await {target}.InnerTextAsync())",
        }
        if config.method not in readers:
            raise UnsupportedRender(f"{config.method.value} capture from an element")
        return [], readers[config.method]

    def render_custom_js(self, event: CustomJsEvent, ctx: "RenderContext") -> list[str]:
        script = self.string_literal(self.script_function(event.script, event.use_element_context))
        target = self._locate(event.element) if event.use_element_context else "Page"
        if not event.return_variables:
            return [f"await {target}.EvaluateAsync({script});"]
        result = ctx.next_name("result")
        call = f"await {target}.EvaluateAsync<object>({script})"
        return [f"var {result} = {call};"] + self.assign_return_variables(event, result, ctx)
