"""Render table and tree walk.

The render table maps ``(language, framework, kind, command)`` to a pure
render function. Lookups fall back from the exact framework/command to
the ``*`` wildcard; a miss renders as an explanatory comment so one
unmapped step never aborts a whole generation.
"""

from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Optional

from ..recording.events import EventKind, RecordedEvent
from .models import GenerationOptions, TargetLanguage, Variable
from .templates.base import ANY, BaseTemplate, RenderFn, UnsupportedRender


class RenderKey(NamedTuple):
    language: TargetLanguage
    framework: str
    kind: EventKind
    command: str


RenderTable = dict[RenderKey, RenderFn]


def build_render_table(templates: Iterable[BaseTemplate]) -> RenderTable:
    """Collect every template's renderers into one lookup table."""
    table: RenderTable = {}
    for template in templates:
        for (kind, command), fn in template.renderers().items():
            table[RenderKey(template.language, template.framework, kind, command)] = fn
    return table


def lookup(
    table: RenderTable,
    language: TargetLanguage,
    framework: str,
    kind: EventKind,
    command: str,
) -> Optional[RenderFn]:
    for fw in (framework, ANY):
        for cmd in (command, ANY):
            fn = table.get(RenderKey(language, fw, kind, cmd))
            if fn is not None:
                return fn
    return None


def collect_features(events: Iterable[RecordedEvent]) -> frozenset[str]:
    """Optional capabilities a tree needs (helper imports and similar)."""
    from ..recording.events import (
        AssertionEvent,
        AssertionType,
        CaptureEvent,
        ConditionalEvent,
        LoopEvent,
    )
    from ..recording.models import CaptureMethod, ConditionOperator, LoopType

    features = set()
    for root in events:
        for event in root.walk():
            if isinstance(event, LoopEvent) and event.loop_config:
                if event.loop_config.loop_type == LoopType.FOR_EACH:
                    features.add("data_source")
            elif isinstance(event, ConditionalEvent) and event.condition:
                if event.condition.operator == ConditionOperator.MATCHES:
                    features.add("regex")
            elif isinstance(event, AssertionEvent):
                if event.is_regex or event.assertion_type == AssertionType.REGEX_MATCH:
                    features.add("regex")
            elif isinstance(event, CaptureEvent) and event.capture_config:
                if event.capture_config.method == CaptureMethod.REGEX:
                    features.add("regex")
    return frozenset(features)


@dataclass
class RenderContext:
    """Per-generation state shared by render functions.

    Counters make generated identifiers deterministic: the same tree always
    produces the same names in the same order.
    """

    template: BaseTemplate
    options: GenerationOptions
    table: RenderTable
    variables: dict[str, Variable] = field(default_factory=dict)
    features: frozenset[str] = frozenset()
    stats: Counter = field(default_factory=Counter)
    declared: set[str] = field(default_factory=set)
    _scopes: list[set[str]] = field(default_factory=list)
    _names: Counter = field(default_factory=Counter)

    @property
    def framework(self) -> str:
        return self.options.framework_name

    def next_name(self, prefix: str) -> str:
        self._names[prefix] += 1
        return f"{prefix}{self._names[prefix]}"

    def is_declared(self, name: str) -> bool:
        """Whether ``name`` is visible from the block being rendered."""
        return name in self.declared or any(name in scope for scope in self._scopes)

    def declare(self, name: str) -> bool:
        """Declare ``name`` in the innermost block; returns False if already visible."""
        if self.is_declared(name):
            return False
        (self._scopes[-1] if self._scopes else self.declared).add(name)
        return True

    @contextmanager
    def scope(self, *names: str):
        """Open a nested block whose declarations end with it."""
        self._scopes.append(set(names))
        try:
            yield
        finally:
            self._scopes.pop()

    def render_events(self, events: list[RecordedEvent]) -> list[str]:
        lines = []
        for event in events:
            lines.extend(self.render_event(event))
        return lines

    def render_block(self, events: list[RecordedEvent], *names: str) -> list[str]:
        """Render children one indentation level deeper, in their own scope.

        ``names`` are declared by the block header (a loop counter, say).
        """
        with self.scope(*names):
            return self.template.indent_lines(self.render_events(events))

    def render_event(self, event: RecordedEvent) -> list[str]:
        template = self.template
        self.stats["visited"] += 1
        label = event.description or event.to_human_readable_description()

        if event.disabled:
            self.stats["disabled"] += 1
            return [template.comment(f"DISABLED: {label}")]

        errors = event.validation_errors()
        if errors:
            self.stats["invalid"] += 1
            if not self.options.include_comments:
                return []
            return [template.comment(f"SKIPPED INVALID STEP: {label} ({'; '.join(errors)})")]

        lines = []
        if self.options.include_comments:
            self.stats["numbered"] += 1
            lines.append(template.comment(f"Step {self.stats['numbered']}: {label}"))

        command = event.command
        fn = lookup(self.table, template.language, self.framework, event.kind, command)
        try:
            if fn is None:
                raise UnsupportedRender(
                    f"{event.kind.value} '{command}' has no "
                    f"{template.language.value}/{self.framework} renderer"
                )
            lines.extend(fn(event, self))
            self.stats["rendered"] += 1
        except UnsupportedRender as e:
            self.stats["unsupported"] += 1
            lines.append(template.comment(f"Unsupported step: {e}"))
        return lines
