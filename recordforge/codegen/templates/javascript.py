"""JavaScript language template (plain Node.js skeleton)."""

import json
from typing import TYPE_CHECKING, Any, Optional

from ...recording.events import GroupEvent, TryCatchEvent
from ..models import TargetLanguage, Variable, VariableType
from .base import _as_float, structured_value, truthy_value
from .brace import BraceTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class JavaScriptTemplate(BraceTemplate):
    """JavaScript expressions, declarations and blocks."""

    language = TargetLanguage.JAVASCRIPT
    indent = "  "
    body_depth = 1

    def helper_imports(self, ctx: "RenderContext") -> list[str]:
        if "data_source" in ctx.features:
            return ["const { loadTestData } = require('./test-data');"]
        return []

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        return ["const assert = require('assert');", *self.helper_imports(ctx)]

    def function_name(self, ctx: "RenderContext") -> str:
        return self.to_camel_case(ctx.options.test_name)

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            f"// Recorded test: {ctx.options.test_name}",
            f"async function {self.function_name(ctx)}() {{",
        ]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return ["}", "", f"module.exports = {{ {self.function_name(ctx)} }};"]

    # -- literals and declarations -------------------------------------------------

    def literal(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return self.number_literal(value)
        if isinstance(value, (list, dict)):
            return json.dumps(value, ensure_ascii=False)
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
        return f"let {name} = {init};"

    def assign_variable(self, name: str, code: str, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(name)
        if ctx.declare(name):
            return f"let {name} = {code};"
        return f"{name} = {code};"

    # -- expressions -----------------------------------------------------------------

    def as_string(self, code: str) -> str:
        return f"String({code})"

    def as_number(self, code: str) -> str:
        return f"Number({code})"

    def as_bool(self, code: str) -> str:
        return f"Boolean({code})"

    def negate(self, code: str) -> str:
        return f"!({code})"

    def lower(self, code: str) -> str:
        return f"{code}.toLowerCase()"

    def str_equals(self, left: str, right: str) -> str:
        return f"{left} === {right}"

    def num_equals(self, left: str, right: str) -> str:
        return f"{left} === {right}"

    def str_contains(self, left: str, right: str) -> str:
        return f"{left}.includes({right})"

    def str_starts_with(self, left: str, right: str) -> str:
        return f"{left}.startsWith({right})"

    def str_ends_with(self, left: str, right: str) -> str:
        return f"{left}.endsWith({right})"

    def regex_test(self, subject: str, pattern: str, ignore_case: bool, full: bool) -> str:
        source = f"'^(?:' + {pattern} + ')$'" if full else pattern
        flags = ", 'i'" if ignore_case else ""
        return f"new RegExp({source}{flags}).test({subject})"

    def regex_extract(self, subject: str, pattern: str) -> str:
        return f"({subject}.match(new RegExp({pattern})) || [null])[0]"

    def within_tolerance(self, left: str, right: str, tolerance: str) -> str:
        return f"Math.abs({left} - {right}) <= {tolerance}"

    def coalesce(self, code: str, fallback: str) -> str:
        return f"{code} ?? {fallback}"

    def assert_statement(self, code: str, message: str, event) -> list[str]:
        return [f"assert.ok({code}, {self.string_literal(message)});"]

    # -- blocks ------------------------------------------------------------------------

    def counter_declaration(self, name: str) -> str:
        return f"let {name} = 0;"

    def count_loop_header(self, var: str, count: int) -> str:
        return f"for (let {var} = 0; {var} < {count}; {var}++)"

    def for_each_header(self, var: str, source: str) -> str:
        return f"for (const {var} of {source})"

    def data_source_call(self, source_id: str, path: Optional[str]) -> str:
        args = [self.string_literal(source_id)]
        if path:
            args.append(self.string_literal(path))
        return f"loadTestData({', '.join(args)})"

    def take(self, source: str, limit: int) -> str:
        return f"{source}.slice(0, {limit})"

    def catch_header(self, event: TryCatchEvent, var: str) -> str:
        return f"catch ({var})"

    def catch_prologue(self, event: TryCatchEvent, var: str) -> list[str]:
        if not event.catch_error_types:
            return []
        names = ", ".join(self.string_literal(t) for t in event.catch_error_types)
        return [f"if (![{names}].includes({var}.name)) throw {var};"]

    def log_error_line(self, var: str) -> str:
        return f"console.error('Step failed:', {var}.message);"

    def group_block(self, event: GroupEvent, body: list[str], ctx: "RenderContext") -> list[str]:
        return [self.comment(f"Group: {event.group_name}")] + self.block("", body)
