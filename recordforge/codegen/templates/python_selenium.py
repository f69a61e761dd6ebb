"""Python Selenium template."""

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
from .python import PythonTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


_BY_NAMES = {
    LocatorStrategy.CSS: "CSS_SELECTOR",
    LocatorStrategy.XPATH: "XPATH",
    LocatorStrategy.ID: "ID",
    LocatorStrategy.NAME: "NAME",
    LocatorStrategy.TAG_NAME: "TAG_NAME",
    LocatorStrategy.CLASS_NAME: "CLASS_NAME",
    LocatorStrategy.LINK_TEXT: "LINK_TEXT",
    LocatorStrategy.PARTIAL_LINK_TEXT: "PARTIAL_LINK_TEXT",
}

_KEYS = {"Control": "Keys.CONTROL", "Shift": "Keys.SHIFT", "Alt": "Keys.ALT", "Meta": "Keys.META"}


class PythonSeleniumTemplate(PythonTemplate):
    """Template for Python Selenium tests run by pytest."""

    framework = TargetFramework.SELENIUM.value

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return [
            *self.helper_imports(ctx),
            "import pytest",
            "from selenium import webdriver",
            "from selenium.webdriver.common.action_chains import ActionChains",
            "from selenium.webdriver.common.by import By",
            "from selenium.webdriver.common.keys import Keys",
            "from selenium.webdriver.support import expected_conditions as EC",
            "from selenium.webdriver.support.ui import Select, WebDriverWait",
        ]

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            "",
            "@pytest.fixture",
            "def driver():",
            "    driver = webdriver.Chrome()",
            "    yield driver",
            "    driver.quit()",
            "",
            "",
            f"def {self.function_name(ctx)}(driver):",
            f'    """Recorded test: {self.escape_string(ctx.options.test_name)}"""',
            "    wait = WebDriverWait(driver, 10)",
        ]

    # -- locators --------------------------------------------------------------------

    def locator_expression(self, locator: Locator) -> str:
        locator = self.normalized_locator(locator)
        return f"(By.{_BY_NAMES[locator.strategy]}, {self.string_literal(locator.value)})"

    def _find(
        self,
        locator: Locator,
        ctx: "RenderContext",
        condition: str = "presence_of_element_located",
    ) -> tuple[str, list[str]]:
        name = ctx.next_name("element")
        by = self.locator_expression(locator)
        return name, [f"{name} = wait.until(EC.{condition}({by}))"]

    def _read(self, name: str, kind: str, prop: Optional[str]) -> Expr:
        readers = {
            "text": lambda: Expr(f"{name}.text", "str"),
            "value": lambda: Expr(f'{name}.get_property("value")', "str"),
            "visible": lambda: Expr(f"{name}.is_displayed()", "bool"),
            "enabled": lambda: Expr(f"{name}.is_enabled()", "bool"),
            "selected": lambda: Expr(f"{name}.is_selected()", "bool"),
            "attribute": lambda: Expr(f"{name}.get_attribute({self.string_literal(prop)})", "str"),
        }
        return readers[kind]()

    def element_property(
        self, element: ElementInfo, prop: Optional[str], ctx: "RenderContext"
    ) -> Expr:
        found = f"driver.find_element(*{self.locator_expression(self.require_locator(element))})"
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
            (EventKind.NAVIGATION, "back"): lambda e, ctx: ["driver.back()"],
            (EventKind.NAVIGATION, "forward"): lambda e, ctx: ["driver.forward()"],
            (EventKind.NAVIGATION, "refresh"): lambda e, ctx: ["driver.refresh()"],
            (EventKind.ASSERTION, ANY): self.render_assertion,
            (EventKind.CAPTURE, "element"): self.render_capture,
            (EventKind.CAPTURE, "url"): self.render_capture,
            (EventKind.CAPTURE, "cookie"): self.render_capture,
            (EventKind.CAPTURE, "storage"): self.render_capture,
            (EventKind.CAPTURE, "javascript"): self.render_capture,
            (EventKind.CUSTOM_JS, ANY): self.render_custom_js,
        }

    def render_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "element_to_be_clickable")
        keys = [_KEYS[k] for k in click_modifiers(event)]
        if not keys:
            return lines + [f"{name}.click()"]
        down = "".join(f".key_down({k})" for k in keys)
        up = "".join(f".key_up({k})" for k in reversed(keys))
        return lines + [f"ActionChains(driver){down}.click({name}){up}.perform()"]

    def render_double_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "element_to_be_clickable")
        return lines + [f"ActionChains(driver).double_click({name}).perform()"]

    def render_right_click(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "element_to_be_clickable")
        return lines + [f"ActionChains(driver).context_click({name}).perform()"]

    def render_submit(self, event: ClickEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.submit()"]

    def render_type(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        if event.clear_first:
            lines.append(f"{name}.clear()")
        return lines + [f"{name}.send_keys({self.string_literal(event.input_value)})"]

    def render_select(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        value = self.string_literal(event.input_value)
        return lines + [f"Select({name}).select_by_visible_text({value})"]

    def render_check(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx, "element_to_be_clickable")
        test = f"not {name}.is_selected()" if checked_state(event) else f"{name}.is_selected()"
        return lines + [f"if {test}:", f"{self.indent}{name}.click()"]

    def render_upload(self, event: InputEvent, ctx: "RenderContext") -> list[str]:
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines + [f"{name}.send_keys({self.string_literal(chr(10).join(event.files))})"]

    def render_navigate(self, event: NavigationEvent, ctx: "RenderContext") -> list[str]:
        return [f"driver.get({self.string_literal(event.target_url)})"]

    def assertion_subject(
        self, event: AssertionEvent, subject: str, ctx: "RenderContext"
    ) -> tuple[list[str], Expr]:
        if subject == "url":
            return [], Expr("driver.current_url", "str")
        if subject == "title":
            return [], Expr("driver.title", "str")
        if subject == "script":
            if not event.expected_value:
                raise UnsupportedRender("custom JavaScript assertion has no script")
            script = self.string_literal(self.script_return(event.expected_value))
            return [], Expr(f"driver.execute_script({script})", "any")

        by = self.locator_expression(self.require_locator(event.element))
        if subject == "present":
            return [], Expr(f"len(driver.find_elements(*{by})) > 0", "bool")
        if subject == "count":
            return [], Expr(f"len(driver.find_elements(*{by}))", "num")
        if subject == "attribute" and not event.attribute_name:
            raise UnsupportedRender("attribute assertion needs an attribute name")
        name, lines = self._find(self.require_locator(event.element), ctx)
        return lines, self._read(name, subject, event.attribute_name)

    def capture_source(self, config: CaptureConfig, ctx: "RenderContext") -> tuple[list[str], str]:
        prop = self.string_literal(config.property)
        if config.source == CaptureSource.URL:
            return [], "driver.current_url"
        if config.source == CaptureSource.COOKIE:
            return [], f'driver.get_cookie({prop})["value"]'
        if config.source == CaptureSource.STORAGE:
            script = self.string_literal(
                "return window.localStorage.getItem(arguments[0]) "
                "?? window.sessionStorage.getItem(arguments[0]);"
            )
            return [], f"driver.execute_script({script}, {prop})"
        if config.source == CaptureSource.JAVASCRIPT:
            script = self.string_literal(self.script_return(config.expression))
            return [], f"str(driver.execute_script({script}))"

        name, lines = self._find(self.capture_locator(config), ctx)
        readers = {
            CaptureMethod.PROPERTY: f"{name}.get_property({prop})",
            CaptureMethod.ATTRIBUTE: f"{name}.get_attribute({prop})",
            CaptureMethod.INNER_TEXT: f"{name}.text",
            CaptureMethod.TEXT_CONTENT: f'{name}.get_property("textContent")',
            CaptureMethod.INNER_HTML: f'{name}.get_property("innerHTML")',
            CaptureMethod.REGEX: f"{name}.text",
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
        method = "execute_script"
        if event.is_async:
            method = "execute_async_script"
            if event.timeout_ms:
                lines.append(f"driver.set_script_timeout({event.timeout_ms / 1000:g})")
        call = f"driver.{method}({', '.join(args)})"
        if not event.return_variables:
            return lines + [call]
        result = ctx.next_name("result")
        lines.append(f"{result} = {call}")
        return lines + self.assign_return_variables(event, result, ctx)
