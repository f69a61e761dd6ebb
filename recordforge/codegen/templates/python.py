"""Python language template (pytest function skeleton)."""

from typing import TYPE_CHECKING, Any, Optional

from ...recording.events import (
    ConditionalEvent,
    EventKind,
    GroupEvent,
    LoopEvent,
    TryCatchEvent,
)
from ..models import TargetLanguage, Variable, VariableType
from .base import ANY, BaseTemplate, RenderFn, _as_float, structured_value, truthy_value

if TYPE_CHECKING:
    from ..registry import RenderContext


class PythonTemplate(BaseTemplate):
    """Python expressions, declarations and indentation blocks."""

    language = TargetLanguage.PYTHON
    comment_prefix = "#"
    body_depth = 1

    def helper_imports(self, ctx: "RenderContext") -> list[str]:
        imports = []
        if "regex" in ctx.features:
            imports.append("import re")
        if "data_source" in ctx.features:
            imports.append("from test_data import load_test_data")
        return imports

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return self.helper_imports(ctx)

    def function_name(self, ctx: "RenderContext") -> str:
        return f"test_{self.to_snake_case(ctx.options.test_name)}"

    def function_signature(self, ctx: "RenderContext") -> str:
        return f"def {self.function_name(ctx)}():"

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            "",
            self.function_signature(ctx),
            f'    """Recorded test: {self.escape_string(ctx.options.test_name)}"""',
        ]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return []

    # -- literals and declarations -------------------------------------------------

    def literal(self, value: Any) -> str:
        if value is None:
            return "None"
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, (int, float)):
            return self.number_literal(value)
        if isinstance(value, list):
            return "[" + ", ".join(self.literal(v) for v in value) + "]"
        if isinstance(value, dict):
            items = ", ".join(
                f"{self.string_literal(str(k))}: {self.literal(v)}" for k, v in value.items()
            )
            return "{" + items + "}"
        return self.string_literal(str(value))

    def declare_variable(self, variable: Variable, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(variable.name)
        value = variable.value
        if variable.type == VariableType.NUMBER:
            init = self.number_literal(_as_float(value) or 0)
        elif variable.type == VariableType.BOOLEAN:
            init = self.literal(truthy_value(value))
        elif variable.type == VariableType.OBJECT:
            init = self.literal(structured_value(value, dict))
        elif variable.type == VariableType.ARRAY:
            init = self.literal(structured_value(value, list))
        else:
            init = self.string_literal(None if value is None else str(value))
        return f"{name} = {init}"

    def assign_variable(self, name: str, code: str, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(name)
        ctx.declare(name)
        return f"{name} = {code}"

    # -- expressions -----------------------------------------------------------------

    def as_string(self, code: str) -> str:
        return f"str({code})"

    def as_number(self, code: str) -> str:
        return f"float({code})"

    def as_bool(self, code: str) -> str:
        return f"bool({code})"

    def negate(self, code: str) -> str:
        return f"not ({code})"

    def lower(self, code: str) -> str:
        return f"{code}.lower()"

    def str_equals(self, left: str, right: str) -> str:
        return f"{left} == {right}"

    def str_contains(self, left: str, right: str) -> str:
        return f"{right} in {left}"

    def str_starts_with(self, left: str, right: str) -> str:
        return f"{left}.startswith({right})"

    def str_ends_with(self, left: str, right: str) -> str:
        return f"{left}.endswith({right})"

    def regex_test(self, subject: str, pattern: str, ignore_case: bool, full: bool) -> str:
        fn = "re.fullmatch" if full else "re.search"
        flags = ", re.IGNORECASE" if ignore_case else ""
        return f"{fn}({pattern}, {subject}{flags}) is not None"

    def regex_extract(self, subject: str, pattern: str) -> str:
        return f"(re.search({pattern}, {subject}) or [None])[0]"

    def within_tolerance(self, left: str, right: str, tolerance: str) -> str:
        return f"abs({left} - {right}) <= {tolerance}"

    def coalesce(self, code: str, fallback: str) -> str:
        return f"{code} or {fallback}"

    def assert_statement(self, code: str, message: str, event) -> list[str]:
        return [f"assert {code}, {self.string_literal(message)}"]

    # -- blocks ------------------------------------------------------------------------

    def suite(self, header: str, body: list[str]) -> list[str]:
        """``header:`` followed by an indented body; empty bodies get ``pass``."""
        has_code = any(
            line.strip() and not line.strip().startswith(self.comment_prefix) for line in body
        )
        if not has_code:
            body = body + self.indent_lines(["pass"])
        return [f"{header}:"] + body

    def data_source_call(self, source_id: str, path: Optional[str]) -> str:
        args = [self.string_literal(source_id)]
        if path:
            args.append(self.string_literal(path))
        return f"load_test_data({', '.join(args)})"

    def renderers(self) -> dict[tuple[EventKind, str], RenderFn]:
        return {
            (EventKind.GROUP, ANY): self.render_group,
            (EventKind.LOOP, "count"): self.render_count_loop,
            (EventKind.LOOP, "while"): self.render_while_loop,
            (EventKind.LOOP, "until"): self.render_until_loop,
            (EventKind.LOOP, "for_each"): self.render_for_each_loop,
            (EventKind.CONDITIONAL, ANY): self.render_conditional,
            (EventKind.TRY_CATCH, ANY): self.render_try_catch,
        }

    def render_group(self, event: GroupEvent, ctx: "RenderContext") -> list[str]:
        return [self.comment(f"Group: {event.group_name}")] + ctx.render_events(event.children)

    def render_count_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        count = config.count
        if config.max_iterations is not None:
            count = min(count, config.max_iterations)
        return self.suite(f"for {var} in range({count})", ctx.render_block(event.children))

    def render_while_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        guard = config.condition
        if config.max_iterations is not None:
            guard = f"({guard}) and {var} < {config.max_iterations}"
        body = ctx.render_block(event.children) + self.indent_lines([f"{var} += 1"])
        return [f"{var} = 0"] + self.suite(f"while {guard}", body)

    def render_until_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        stop = f"({config.condition})"
        if config.max_iterations is not None:
            stop += f" or {var} >= {config.max_iterations}"
        body = ctx.render_block(event.children) + self.indent_lines(
            [f"{var} += 1", f"if {stop}:", f"{self.indent}break"]
        )
        return [f"{var} = 0"] + self.suite("while True", body)

    def render_for_each_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        if config.data_source_id in ctx.variables and not config.data_source_path:
            source = self.sanitize_identifier(config.data_source_id)
        else:
            source = self.data_source_call(config.data_source_id, config.data_source_path)
        if config.max_iterations is not None:
            source = f"list({source})[:{config.max_iterations}]"
        return self.suite(f"for {var} in {source}", ctx.render_block(event.children))

    def render_conditional(self, event: ConditionalEvent, ctx: "RenderContext") -> list[str]:
        expression = self.condition_expression(event.condition, ctx)
        lines = self.suite(f"if {expression}", ctx.render_block(event.then_events))
        if event.else_events:
            lines += self.suite("else", ctx.render_block(event.else_events))
        return lines

    def render_try_catch(self, event: TryCatchEvent, ctx: "RenderContext") -> list[str]:
        var = self.sanitize_identifier(event.error_variable_name)
        types = [self.type_name(t) for t in event.catch_error_types]
        if not types:
            caught = "Exception"
        elif len(types) == 1:
            caught = types[0]
        else:
            caught = f"({', '.join(types)})"

        lines = self.suite("try", ctx.render_block(event.try_events))
        handler = []
        if event.log_error:
            handler.append(f'print(f"Step failed: {{{var}}}")')
        handler = self.indent_lines(handler) + ctx.render_block(event.catch_events)
        if not event.continue_on_error:
            handler += self.indent_lines(["raise"])
        lines += self.suite(f"except {caught} as {var}", handler)
        if event.finally_events:
            lines += self.suite("finally", ctx.render_block(event.finally_events))
        return lines
