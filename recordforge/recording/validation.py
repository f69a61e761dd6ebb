"""Per-kind validation and human-readable descriptions.

Both are dispatch tables keyed by ``EventKind``; adding a kind means
adding one entry to each table (a test checks they stay exhaustive).
"""

from typing import Callable

from .events import (
    PAGE_ASSERTIONS,
    AssertionEvent,
    AssertionStatus,
    AssertionType,
    CaptureEvent,
    ClickEvent,
    ConditionalEvent,
    CustomJsEvent,
    EventKind,
    GroupEvent,
    InputEvent,
    InputType,
    LoopEvent,
    NavigationEvent,
    RecordedEvent,
    TryCatchEvent,
)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _truncate(text: str, limit: int = 20) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _plural(count: int, noun: str = "step") -> str:
    return f"{count} {noun}" + ("" if count == 1 else "s")


# =============================================================================
# Validators
# =============================================================================


def _locatable(element) -> bool:
    locator = element.best_locator()
    return locator is not None and not _blank(locator.value)


def _validate_click(event: ClickEvent) -> list[str]:
    if event.element is None:
        return ["click needs a target element"]
    if not _locatable(event.element):
        return ["click target has no usable selector"]
    return []


def _validate_input(event: InputEvent) -> list[str]:
    errors = []
    if event.element is None:
        errors.append("input needs a target element")
    elif not _locatable(event.element):
        errors.append("input target has no usable selector")
    if event.file_picker:
        if not event.files:
            errors.append("file upload needs at least one file")
    elif event.input_value is None:
        errors.append("input needs a value")
    return errors


def _validate_navigation(event: NavigationEvent) -> list[str]:
    return ["navigation needs a target URL"] if _blank(event.target_url) else []


def _validate_assertion(event: AssertionEvent) -> list[str]:
    if event.assertion_type is None:
        return ["assertion type is required"]
    if event.assertion_type in PAGE_ASSERTIONS:
        return []
    if event.element is None:
        return [f"{event.assertion_type.value} assertion needs a target element"]
    return []


def _validate_capture(event: CaptureEvent) -> list[str]:
    if event.capture_config is None:
        return ["capture configuration is required"]
    return event.capture_config.validation_errors()


def _validate_custom_js(event: CustomJsEvent) -> list[str]:
    errors = []
    if _blank(event.script):
        errors.append("script is required")
    if event.timeout_ms is not None and event.timeout_ms <= 0:
        errors.append("timeout must be positive")
    if event.use_element_context and event.element is None:
        errors.append("element context requested but no element given")
    return errors


def _validate_group(event: GroupEvent) -> list[str]:
    return ["group name is required"] if _blank(event.group_name) else []


def _validate_loop(event: LoopEvent) -> list[str]:
    if event.loop_config is None:
        return ["loop configuration is required"]
    return event.loop_config.validation_errors()


def _validate_conditional(event: ConditionalEvent) -> list[str]:
    if event.condition is None:
        return ["condition is required"]
    return event.condition.validation_errors()


def _validate_try_catch(event: TryCatchEvent) -> list[str]:
    errors = []
    if not event.try_events:
        errors.append("try block needs at least one step")
    if _blank(event.error_variable_name):
        errors.append("error variable name is required")
    return errors


_VALIDATORS: dict[EventKind, Callable[..., list[str]]] = {
    EventKind.CLICK: _validate_click,
    EventKind.INPUT: _validate_input,
    EventKind.NAVIGATION: _validate_navigation,
    EventKind.ASSERTION: _validate_assertion,
    EventKind.CAPTURE: _validate_capture,
    EventKind.CUSTOM_JS: _validate_custom_js,
    EventKind.GROUP: _validate_group,
    EventKind.LOOP: _validate_loop,
    EventKind.CONDITIONAL: _validate_conditional,
    EventKind.TRY_CATCH: _validate_try_catch,
}


def validation_errors(event: RecordedEvent) -> list[str]:
    """Structural and semantic problems with ``event`` itself.

    Children are not inspected; an invalid child does not invalidate its
    container.
    """
    return _VALIDATORS[event.kind](event)


def is_valid(event: RecordedEvent) -> bool:
    return not validation_errors(event)


# =============================================================================
# Descriptions
# =============================================================================


def _describe_click(event: ClickEvent) -> str:
    modifiers = ""
    if event.ctrl_key:
        modifiers += "Ctrl+"
    if event.shift_key:
        modifiers += "Shift+"
    if event.alt_key:
        modifiers += "Alt+"
    if event.meta_key:
        modifiers += "Meta+"

    if event.form_submit:
        action = "Submit form"
    elif event.double_click:
        action = "Double click"
    elif event.right_click:
        action = "Right click"
    elif event.middle_click:
        action = "Middle click"
    else:
        action = "Click"
    return f"{modifiers}{action} on {event.selector() or 'unknown element'}"


def _describe_input(event: InputEvent) -> str:
    target = event.selector() or "unknown element"
    if event.file_picker:
        return f"Upload {_plural(len(event.files), 'file')} to {target}"
    if event.is_password and event.masked:
        return f"Enter password in {target}"
    if event.input_type == InputType.SELECT:
        return f"Select '{event.input_value}' in {target}"
    return f"Enter '{_truncate(event.input_value or '')}' in {target}"


def _describe_navigation(event: NavigationEvent) -> str:
    if event.back:
        return f"Navigate back to {event.target_url}" if event.target_url else "Navigate back"
    if event.forward:
        return f"Navigate forward to {event.target_url}" if event.target_url else "Navigate forward"
    if event.refresh:
        return "Refresh page"
    if event.redirect and event.source_url:
        return f"Redirect from {event.source_url} to {event.target_url}"
    return f"Navigate to {event.target_url}"


_STATE_WORDS = {
    AssertionType.PRESENT: "present",
    AssertionType.VISIBLE: "visible",
    AssertionType.ENABLED: "enabled",
    AssertionType.SELECTED: "selected",
}

_COMPARISON_WORDS = {
    AssertionType.EQUALS: ("equals", "does not equal"),
    AssertionType.CONTAINS: ("contains", "does not contain"),
    AssertionType.STARTS_WITH: ("starts with", "does not start with"),
    AssertionType.ENDS_WITH: ("ends with", "does not end with"),
    AssertionType.REGEX_MATCH: ("matches", "does not match"),
    AssertionType.GREATER_THAN: ("is greater than", "is not greater than"),
    AssertionType.LESS_THAN: ("is less than", "is not less than"),
    AssertionType.GREATER_THAN_OR_EQUALS: ("is at least", "is not at least"),
    AssertionType.LESS_THAN_OR_EQUALS: ("is at most", "is not at most"),
}

_PAGE_SUBJECTS = {
    AssertionType.URL: ("URL", "equals", "does not equal"),
    AssertionType.URL_CONTAINS: ("URL", "contains", "does not contain"),
    AssertionType.TITLE: ("Page title", "equals", "does not equal"),
    AssertionType.TITLE_CONTAINS: ("Page title", "contains", "does not contain"),
}

_COUNT_WORDS = {
    AssertionType.COUNT_EQUALS: ("is", "is not"),
    AssertionType.COUNT_GREATER_THAN: ("is greater than", "is not greater than"),
    AssertionType.COUNT_LESS_THAN: ("is less than", "is not less than"),
}


def _assertion_body(event: AssertionEvent) -> str:
    kind = event.assertion_type
    element = event.element.describe() if event.element else "element"
    pick = 1 if event.negated else 0

    if kind in _STATE_WORDS:
        return f"{element} is {'not ' if event.negated else ''}{_STATE_WORDS[kind]}"
    if kind == AssertionType.TEXT_EQUALS:
        return f"{element} text {('equals', 'does not equal')[pick]} '{event.expected_value}'"
    if kind == AssertionType.TEXT_CONTAINS:
        return f"{element} text {('contains', 'does not contain')[pick]} '{event.expected_value}'"
    if kind in (AssertionType.ATTRIBUTE_EQUALS, AssertionType.ATTRIBUTE_CONTAINS):
        verbs = (
            ("equals", "does not equal")
            if kind == AssertionType.ATTRIBUTE_EQUALS
            else ("contains", "does not contain")
        )
        return f"{element} attribute '{event.attribute_name}' {verbs[pick]} '{event.expected_value}'"
    if kind in _PAGE_SUBJECTS:
        subject, positive, negative = _PAGE_SUBJECTS[kind]
        return f"{subject} {(positive, negative)[pick]} '{event.expected_value}'"
    if kind in _COMPARISON_WORDS:
        text = f"value {_COMPARISON_WORDS[kind][pick]} '{event.expected_value}'"
        if kind == AssertionType.EQUALS and event.tolerance is not None:
            text += f" (tolerance {event.tolerance:g})"
        return text
    if kind in _COUNT_WORDS:
        return f"count of {element} {_COUNT_WORDS[kind][pick]} {event.expected_value}"
    text = "Custom assertion"
    if event.custom_message:
        text += f": {event.custom_message}"
    return text


def _describe_assertion(event: AssertionEvent) -> str:
    if event.assertion_type is None:
        return "Invalid assertion"
    text = f"Assert that {_assertion_body(event)}"
    if event.status and event.status != AssertionStatus.NOT_EXECUTED:
        text += f" ({event.status.value})"
    return text


def _describe_capture(event: CaptureEvent) -> str:
    if event.capture_config is None:
        return "Invalid capture"
    return event.capture_config.describe()


def _describe_custom_js(event: CustomJsEvent) -> str:
    text = "Execute custom JavaScript"
    if event.description:
        text += f": {event.description}"
    if event.use_element_context and event.element is not None:
        text += f" on element {event.selector()}"
    if event.return_variables:
        text += f", returning {', '.join(event.return_variables)}"
    if event.is_async:
        text += " (async)"
    return text


def _describe_group(event: GroupEvent) -> str:
    text = f"Group: {event.group_name or 'Unnamed group'} ({_plural(len(event.children))})"
    if event.description:
        text += f" - {event.description}"
    return text


def _describe_loop(event: LoopEvent) -> str:
    if event.loop_config is None or not event.loop_config.is_valid():
        return "Invalid loop"
    return f"Loop: {event.loop_config.describe()} with {_plural(len(event.children))}"


def _describe_conditional(event: ConditionalEvent) -> str:
    if event.condition is None:
        return "Invalid condition"
    text = f"If {event.condition.describe()} then execute {_plural(len(event.then_events))}"
    if event.else_events:
        text += f" else execute {_plural(len(event.else_events))}"
    return text


def _describe_try_catch(event: TryCatchEvent) -> str:
    text = f"Try-catch block: Try {_plural(len(event.try_events))}"
    if event.catch_events:
        text += f", catch {_plural(len(event.catch_events))}"
    if event.finally_events:
        text += f", finally {_plural(len(event.finally_events))}"
    if event.catch_error_types:
        text += f" (catching {', '.join(event.catch_error_types)})"
    return text


_DESCRIBERS: dict[EventKind, Callable[..., str]] = {
    EventKind.CLICK: _describe_click,
    EventKind.INPUT: _describe_input,
    EventKind.NAVIGATION: _describe_navigation,
    EventKind.ASSERTION: _describe_assertion,
    EventKind.CAPTURE: _describe_capture,
    EventKind.CUSTOM_JS: _describe_custom_js,
    EventKind.GROUP: _describe_group,
    EventKind.LOOP: _describe_loop,
    EventKind.CONDITIONAL: _describe_conditional,
    EventKind.TRY_CATCH: _describe_try_catch,
}


def describe(event: RecordedEvent) -> str:
    """Deterministic one-line description of ``event``."""
    return _DESCRIBERS[event.kind](event)
