"""Container blocks shared by the curly-brace languages (Java, JavaScript, C#)."""

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from ...recording.events import (
    ConditionalEvent,
    EventKind,
    GroupEvent,
    LoopEvent,
    TryCatchEvent,
)
from .base import ANY, BaseTemplate, RenderFn

if TYPE_CHECKING:
    from ..registry import RenderContext


class BraceTemplate(BaseTemplate):
    """Group, loop, conditional and try/catch rendering for brace languages."""

    # whether group_block wraps its body in a lexical block
    group_opens_scope = True

    # -- block syntax hooks -------------------------------------------------

    def open_block(self, header: str) -> list[str]:
        return [f"{header} {{"] if header else ["{"]

    def close_block(self, trailer: Optional[str] = None) -> list[str]:
        return [f"}} {trailer}"] if trailer else ["}"]

    def continue_block(self, header: str) -> list[str]:
        return [f"}} {header} {{"]

    def block(self, header: str, body: list[str], trailer: Optional[str] = None) -> list[str]:
        return self.open_block(header) + body + self.close_block(trailer)

    # -- language hooks ---------------------------------------------------------

    def counter_declaration(self, name: str) -> str:
        return f"int {name} = 0;"

    def count_loop_header(self, var: str, count: int) -> str:
        return f"for (int {var} = 0; {var} < {count}; {var}++)"

    @abstractmethod
    def for_each_header(self, var: str, source: str) -> str: ...

    @abstractmethod
    def data_source_call(self, source_id: str, path: Optional[str]) -> str: ...

    @abstractmethod
    def take(self, source: str, limit: int) -> str:
        """Expression yielding at most ``limit`` items of ``source``."""

    @abstractmethod
    def catch_header(self, event: TryCatchEvent, var: str) -> str: ...

    def catch_prologue(self, event: TryCatchEvent, var: str) -> list[str]:
        return []

    @abstractmethod
    def log_error_line(self, var: str) -> str: ...

    def rethrow(self, var: str) -> str:
        return f"throw {var};"

    def group_block(self, event: GroupEvent, body: list[str], ctx: "RenderContext") -> list[str]:
        return self.block("", body)

    # -- renderers ------------------------------------------------------------------

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
        if self.group_opens_scope:
            body = ctx.render_block(event.children)
        else:
            body = self.indent_lines(ctx.render_events(event.children))
        return self.group_block(event, body, ctx)

    def render_count_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        count = config.count
        if config.max_iterations is not None:
            count = min(count, config.max_iterations)
        if ctx.is_declared(var):
            header = f"for ({var} = 0; {var} < {count}; {var}++)"
            return self.block(header, ctx.render_block(event.children))
        return self.block(self.count_loop_header(var, count), ctx.render_block(event.children, var))

    def _guarded(self, condition: str, var: str, max_iterations: Optional[int]) -> str:
        if max_iterations is None:
            return condition
        return f"({condition}) && {var} < {max_iterations}"

    def _counted(self, var: str, loop: list[str], ctx: "RenderContext") -> list[str]:
        """Reset a visible counter, or declare a fresh one in its own block."""
        if ctx.is_declared(var):
            return [f"{var} = 0;"] + loop
        return self.block("", self.indent_lines([self.counter_declaration(var)] + loop))

    def _counter_loop_body(self, event: LoopEvent, var: str, ctx: "RenderContext") -> list[str]:
        if ctx.is_declared(var):
            children = ctx.render_block(event.children)
        else:
            # the counter is declared by the block _counted wraps around the loop
            with ctx.scope(var):
                children = ctx.render_block(event.children)
        return children + self.indent_lines([f"{var}++;"])

    def render_while_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        body = self._counter_loop_body(event, var, ctx)
        header = f"while ({self._guarded(config.condition, var, config.max_iterations)})"
        return self._counted(var, self.block(header, body), ctx)

    def render_until_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        body = self._counter_loop_body(event, var, ctx)
        guard = self._guarded(self.negate(config.condition), var, config.max_iterations)
        return self._counted(var, self.block("do", body, trailer=f"while ({guard});"), ctx)

    def render_for_each_loop(self, event: LoopEvent, ctx: "RenderContext") -> list[str]:
        config = event.loop_config
        var = self.sanitize_identifier(config.iteration_variable)
        if config.data_source_id in ctx.variables and not config.data_source_path:
            source = self.sanitize_identifier(config.data_source_id)
        else:
            source = self.data_source_call(config.data_source_id, config.data_source_path)
        if config.max_iterations is not None:
            source = self.take(source, config.max_iterations)
        return self.block(self.for_each_header(var, source), ctx.render_block(event.children, var))

    def render_conditional(self, event: ConditionalEvent, ctx: "RenderContext") -> list[str]:
        expression = self.condition_expression(event.condition, ctx)
        lines = self.open_block(f"if ({expression})")
        lines += ctx.render_block(event.then_events)
        if event.else_events:
            lines += self.continue_block("else")
            lines += ctx.render_block(event.else_events)
        return lines + self.close_block()

    def render_try_catch(self, event: TryCatchEvent, ctx: "RenderContext") -> list[str]:
        var = self.sanitize_identifier(event.error_variable_name)
        lines = self.open_block("try")
        lines += ctx.render_block(event.try_events)

        # an enclosing catch clause may already own the name
        base = var
        while ctx.is_declared(var):
            var = ctx.next_name(base)
        lines += self.continue_block(self.catch_header(event, var))

        handler = self.catch_prologue(event, var)
        if event.log_error:
            handler.append(self.log_error_line(var))
        lines += self.indent_lines(handler)
        lines += ctx.render_block(event.catch_events, var)
        if not event.continue_on_error:
            lines += self.indent_lines([self.rethrow(var)])

        if event.finally_events:
            lines += self.continue_block("finally")
            lines += ctx.render_block(event.finally_events)
        return lines + self.close_block()
