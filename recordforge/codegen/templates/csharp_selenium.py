"""C# Selenium template."""

from typing import TYPE_CHECKING, Optional

from ...recording.events import (
    AssertionEvent,
    ClickEvent,
    CustomJsEvent,
    EventKind,
    InputEvent,
    NavigationEvent,
)
from ...recording.models import (
    CaptureConfig,
    CaptureMethod,
    CaptureSource,
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
    checked_state,
    classify_property,
    click_modifiers,
)
from .csharp import CSharpTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


_BY_METHODS = {
    LocatorStrategy.CSS: "CssSelector",
    LocatorStrategy.XPATH: "XPath",
    LocatorStrategy.ID: "Id",
    LocatorStrategy.NAME: "Name",
    LocatorStrategy.TAG_NAME: "TagName",
    LocatorStrategy.CLASS_NAME: "ClassName",
    LocatorStrategy.LINK_TEXT: "LinkText",
    LocatorStrategy.PARTIAL_LINK_TEXT: "PartialLinkText",
}

_KEYS = {"Control": "Keys.Control", "Shift": "Keys.Shift", "Alt": "Keys.Alt", "Meta": "Keys.Meta"}

_EXECUTOR = "((IJavaScriptExecutor) _driver)"


class CSharpSeleniumTemplate(CSharpTemplate):
    """Template for C# Selenium (NUnit) tests."""

    framework = TargetFramework.SELENIUM.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        usings = super().generate_imports(ctx)
        return usings + [
            "using OpenQA.Selenium;",
            "using OpenQA.Selenium.Chrome;",
            "using OpenQA.Selenium.Interactions;",
            "using OpenQA.Selenium.Support.UI;",
        ]

    def class_members(self, ctx: "RenderContext") -> list[str]:
        return [
            "        private IWebDriver _driver;",
            "        private WebDriverWait _wait;",
            "",
            "        [SetUp]",
            "        public void Setup()",
            "        {",
            "            _driver = new ChromeDriver();",
            "            _wait = new WebDriverWait(_driver, TimeSpan.FromSeconds(10));",
            "        }",
            "",
            "        [TearDown]",
            "        public void TearDown()",
            "        {",
            "            _driver?.Quit();",
            "        }",
            "",
        ]

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        locator = self.normalized_locator(locator)
        return f"By.{_BY_METHODS[locator.strategy]}({self.string_literal(locator.value)})"

    def _find(self, locator: Locator, ctx: "RenderContext") -> tuple[str, list[str]]:
        name = ctx.next_name("element")
        by = self.locator_expression(locator)
        return name, [f"var {name} = _wait.Until(d => d.FindElement({by}));"]

    def _read(self, name: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"{name}.Text", "str"),
            "value": lambda: Expr(f'{name}.GetDomProperty("value")', "str"),
            "visible": lambda: Expr(f"{name}.Displayed", "bool"),
            "enabled": lambda: Expr(f"{name}.Enabled", "bool"),
            "selected": lambda: Expr(f"{name}.Selected", "bool"),
            "attribute": lambda: Expr(f"{name}.GetAttribute({self.string_literal(prop)})", "str"),
        }
        return readers[kind]()

    def element_property(
        self, element: ElementInfo, prop: Optional[str], ctx: "RenderContext"
    ) -> Expr:
        found = f"_driver.FindElement({self.locator_expression(self.require_locator(element))})"
        return self._read(found, classify_property(prop), prop)

    # -- renderers ---------------------------------------------------------------------

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        return {
            (EventKind.CLICK, "click"): self.render_click,
            (EventKind.CLICK, "double_click"): self._actions("DoubleClick"),
            (EventKind.CLICK, "right_click"): self._actions("ContextClick"),
            (EventKind.CLICK, "submit"): self.render_submit,
            (EventKind.INPUT, "clear_and_type"): self.render_type,
            (EventKind.INPUT, "type"): self.render_type,
            (EventKind.INPUT, "select"): self.render_select,
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): self.render_upload,
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["_driver.Navigate().Back();"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["_driver.Navigate().Forward();"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["_driver.Navigate().Refresh();"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def _actions(self, method: str) -> RenderFn:
        def render(event: ClickEvent, ctx: "RenderContext") -> list[str]:
            name, lines = self._find(self.require_locator(event.element), ctx)
            return lines + [f"new Actions(_driver).{method}({name}).Perform();"]

        return render

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        keys = [_KEYS[k] for k in click_modifiers(event)]
        if not keys:
            return lines + [f"{name}.Click();"]
        down = "".join(f".KeyDown({k})" for k in keys)
        up = "".join(f".KeyUp({k})" for k in reversed(keys))
        return lines + [f"new Actions(_driver){down}.Click({name}){up}.Perform();"]

    def render_submit(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.Submit();"]

    def render_type(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        if event.clear_first:
            lines.append(f"{name}.Clear();")
        return lines + [f"{name}.SendKeys({self.string_literal(event.input_value)});"]

    def render_select(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        value = self.string_literal(event.input_value)
        return lines + [f"new SelectElement({name}).SelectByText({value});"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        test = f"!{name}.Selected" if checked_state(event) else f"{name}.Selected"
        return lines + self.block(f"if ({test})", self.indent_lines([f"{name}.Click();"]))

    def render_upload(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.SendKeys({self.string_literal(chr(10).join(event.files))});"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"_driver.Navigate().GoToUrl({self.string_literal(event.target_url)});"]

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("_driver.Url", "str")
        if subject == "title":
            return [], Expr("_driver.Title", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.string_literal(self.script_return(event.expected_value))
            return [], Expr(f"Convert.ToBoolean({_EXECUTOR}.ExecuteScript({script}))", "bool")

        by = self.locator_expression(self.require_locator(event.element))
        if subject == "present":
            return [], Expr(f"_driver.FindElements({by}).Count > 0", "bool")
        if subject == "count":
            return [], Expr(f"_driver.FindElements({by}).Count", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines, self._read(name, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "_driver.Url"
        if config.source == CaptureSource.COOKIE:
            return [], f"_driver.Manage().Cookies.GetCookieNamed({prop})?.Value"
        if config.source == CaptureSource.STORAGE:
            script = self.string_literal(
                "return window.localStorage.getItem(arguments[0]) "
                "?? window.sessionStorage.getItem(arguments[0]);"
            )
            return [], f"(string) {_EXECUTOR}.ExecuteScript({script}, {prop})"
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.string_literal(self.script_return(config.expression))
            return [], f"Convert.ToString({_EXECUTOR}.ExecuteScript({script}))"

        name, lines = self._find(self.capture_locator(config), ctx)
        readers = {
            CaptureMethod.PROPERTY: f"{name}.GetDomProperty({prop})",
            CaptureMethod.ATTRIBUTE: f"{name}.GetAttribute({prop})",
            CaptureMethod.INNER_TEXT: f"{name}.Text",
            CaptureMethod.TEXT_CONTENT: f'{name}.GetDomProperty("textContent")',
            CaptureMethod.INNER_HTML: f'{name}.GetDomProperty("innerHTML")',
            CaptureMethod.REGEX: f"{name}.Text",
        }
        if config.method not in readers:
            raise UnsupportedRender(f"{config.method.value} capture from an element")
        return lines, readers[config.method]

    def render_custom_js(self, event: CustomJsEvent, ctx: "RenderContext") -> list[str]:
        lines = []
        args = [self.string_literal(event.script)]
        if event.use_element_context:
            name, found = self._find(self.require_locator(event.element), ctx)
            lines += found
            args.append(name)
        method = "ExecuteScript"
        if event.is_async:
            method = "ExecuteAsyncScript"
            if event.timeout_ms:
                lines.append(
                    "_driver.Manage().Timeouts().AsynchronousJavaScript = "
                    f"TimeSpan.FromMilliseconds({event.timeout_ms});"
                )
        call = f"{_EXECUTOR}.{method}({', '.join(args)})"
        if not event.return_variables:
            return lines + [f"{call};"]
        result = ctx.next_name("result")
        lines.append(f"var {result} = {call};")
        return lines + self.assign_return_variables(event, result, ctx)
