"""Java Selenium template."""

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
from .java import JavaTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


_BY_METHODS = {
    LocatorStrategy.CSS: "cssSelector",
    LocatorStrategy.XPATH: "xpath",
    LocatorStrategy.ID: "id",
    LocatorStrategy.NAME: "name",
    LocatorStrategy.TAG_NAME: "tagName",
    LocatorStrategy.CLASS_NAME: "className",
    LocatorStrategy.LINK_TEXT: "linkText",
    LocatorStrategy.PARTIAL_LINK_TEXT: "partialLinkText",
}

_KEYS = {"Control": "Keys.CONTROL", "Shift": "Keys.SHIFT", "Alt": "Keys.ALT", "Meta": "Keys.META"}


class JavaSeleniumTemplate(JavaTemplate):
    """Template for Java Selenium (JUnit 5) tests."""

    framework = TargetFramework.SELENIUM.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        imports = [
            "import org.junit.jupiter.api.Test;",
            "import org.junit.jupiter.api.BeforeEach;",
            "import org.junit.jupiter.api.AfterEach;",
            "import org.openqa.selenium.By;",
            "import org.openqa.selenium.JavascriptExecutor;",
            "import org.openqa.selenium.Keys;",
            "import org.openqa.selenium.WebDriver;",
            "import org.openqa.selenium.WebElement;",
            "import org.openqa.selenium.chrome.ChromeDriver;",
            "import org.openqa.selenium.interactions.Actions;",
            "import org.openqa.selenium.support.ui.ExpectedConditions;",
            "import org.openqa.selenium.support.ui.Select;",
            "import org.openqa.selenium.support.ui.WebDriverWait;",
            "import java.time.Duration;",
            "import java.util.*;",
        ]
        if "regex" in ctx.features:
            imports.append("import java.util.regex.Pattern;")
        imports.append("import static org.junit.jupiter.api.Assertions.*;")
        return imports

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            *self.class_doc(ctx),
            f"public class {self.class_name(ctx)} {{",
            "",
            "    private WebDriver driver;",
            "    private WebDriverWait wait;",
            "",
            "    @BeforeEach",
            "    public void setUp() {",
            "        driver = new ChromeDriver();",
            "        wait = new WebDriverWait(driver, Duration.ofSeconds(10));",
            "    }",
            "",
            "    @AfterEach",
            "    public void tearDown() {",
            "        if (driver != null) {",
            "            driver.quit();",
            "        }",
            "    }",
            "",
            "    @Test",
            f"    public void {self.method_name(ctx)}() throws Exception {{",
        ]

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        locator = self.normalized_locator(locator)
        return f"By.{_BY_METHODS[locator.strategy]}({self.string_literal(locator.value)})"

    def _find(
        self,
        locator: Locator,
        ctx: "RenderContext",
        condition: str = "presenceOfElementLocated",
    ) -> tuple[str, list[str]]:
        name = ctx.next_name("element")
        by = self.locator_expression(locator)
        return name, [f"WebElement {name} = wait.until(ExpectedConditions.{condition}({by}));"]

    def _read(self, name: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"{name}.getText()", "str"),
            "value": lambda: Expr(f'{name}.getDomProperty("value")', "str"),
            "visible": lambda: Expr(f"{name}.isDisplayed()", "bool"),
            "enabled": lambda: Expr(f"{name}.isEnabled()", "bool"),
            "selected": lambda: Expr(f"{name}.isSelected()", "bool"),
            "attribute": lambda: Expr(f"{name}.getAttribute({self.string_literal(prop)})", "str"),
        }
        return readers[kind]()

    def element_property(
        self, element: ElementInfo, prop: Optional[str], ctx: "RenderContext"
    ) -> Expr:
        found = f"driver.findElement({self.locator_expression(self.require_locator(element))})"
        return self._read(found, classify_property(prop), prop)

    # -- renderers ---------------------------------------------------------------------

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        return {
            (EventKind.CLICK, "click"): self.render_click,
            (EventKind.CLICK, "double_click"): self.render_double_click,
            (EventKind.CLICK, "right_click"): self.render_right_click,
            (EventKind.CLICK, "submit"): self.render_submit,
            (EventKind.INPUT, "clear_and_type"): self.render_type,
            (EventKind.INPUT, "type"): self.render_type,
            (EventKind.INPUT, "select"): self.render_select,
            (EventKind.INPUT, "check"): self.render_check,
            (EventKind.INPUT, "upload"): self.render_upload,
            (EventKind.NAVIGATION, "navigate"): self.render_navigate,
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["driver.navigate().back();"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["driver.navigate().forward();"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["driver.navigate().refresh();"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "elementToBeClickable")
        keys = [_KEYS[k] for k in click_modifiers(event)]
        if not keys:
            return lines + [f"{name}.click();"]
        down = "".join(f".keyDown({k})" for k in keys)
        up = "".join(f".keyUp({k})" for k in reversed(keys))
        return lines + [f"new Actions(driver){down}.click({name}){up}.perform();"]

    def render_double_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "elementToBeClickable")
        return lines + [f"new Actions(driver).doubleClick({name}).perform();"]

    def render_right_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "elementToBeClickable")
        return lines + [f"new Actions(driver).contextClick({name}).perform();"]

    def render_submit(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.submit();"]

    def render_type(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        if event.clear_first:
            lines.append(f"{name}.clear();")
        return lines + [f"{name}.sendKeys({self.string_literal(event.input_value)});"]

    def render_select(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        value = self.string_literal(event.input_value)
        return lines + [f"new Select({name}).selectByVisibleText({value});"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "elementToBeClickable")
        test = f"!{name}.isSelected()" if checked_state(event) else f"{name}.isSelected()"
        return lines + [f"if ({test}) {{", f"{self.indent}{name}.click();", "}"]

    def render_upload(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.sendKeys({self.string_literal(chr(10).join(event.files))});"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"driver.get({self.string_literal(event.target_url)});"]

    def _executor(self) -> str:
        return "((JavascriptExecutor) driver)"

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("driver.getCurrentUrl()", "str")
        if subject == "title":
            return [], Expr("driver.getTitle()", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.string_literal(self.script_return(event.expected_value))
            return [], Expr(f"Boolean.TRUE.equals({self._executor()}.executeScript({script}))", "bool")

        by = self.locator_expression(self.require_locator(event.element))
        if subject == "present":
            return [], Expr(f"!driver.findElements({by}).isEmpty()", "bool")
        if subject == "count":
            return [], Expr(f"driver.findElements({by}).size()", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines, self._read(name, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "driver.getCurrentUrl()"
        if config.source == CaptureSource.COOKIE:
            return [], f"driver.manage().getCookieNamed({prop}).getValue()"
        if config.source == CaptureSource.STORAGE:
            script = self.string_literal(
                "return window.localStorage.getItem(arguments[0]) "
                "?? window.sessionStorage.getItem(arguments[0]);"
            )
            return [], f"(String) {self._executor()}.executeScript({script}, {prop})"
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.string_literal(self.script_return(config.expression))
            return [], f"String.valueOf({self._executor()}.executeScript({script}))"

        name, lines = self._find(self.capture_locator(config), ctx)
        readers = {
            CaptureMethod.PROPERTY: f"{name}.getDomProperty({prop})",
            CaptureMethod.ATTRIBUTE: f"{name}.getAttribute({prop})",
            CaptureMethod.INNER_TEXT: f"{name}.getText()",
            CaptureMethod.TEXT_CONTENT: f'{name}.getDomProperty("textContent")',
            CaptureMethod.INNER_HTML: f'{name}.getDomProperty("innerHTML")',
            CaptureMethod.REGEX: f"{name}.getText()",
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
        method = "executeScript"
        if event.is_async:
            method = "executeAsyncScript"
            if event.timeout_ms:
                lines.append(
                    f"driver.manage().timeouts().scriptTimeout(Duration.ofMillis({event.timeout_ms}));"
                )
        call = f"{self._executor()}.{method}({', '.join(args)})"
        if not event.return_variables:
            return lines + [f"{call};"]
        result = ctx.next_name("result")
        lines.append(f"Object {result} = {call};")
        return lines + self.assign_return_variables(event, result, ctx)
