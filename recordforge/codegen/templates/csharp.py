"""C# language template (NUnit skeleton, no browser framework)."""

from typing import TYPE_CHECKING, Any, Optional

from ...recording.events import GroupEvent, TryCatchEvent
from ..models import TargetLanguage, Variable, VariableType
from .base import _as_float, structured_value, truthy_value
from .brace import BraceTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class CSharpTemplate(BraceTemplate):
    """C# expressions, declarations and Allman-style blocks."""

    language = TargetLanguage.CSHARP
    body_depth = 3
    group_opens_scope = False

    def open_block(self, header: str) -> list[str]:
        return [header, "{"] if header else ["{"]

    def close_block(self, trailer: Optional[str] = None) -> list[str]:
        return ["}", trailer] if trailer else ["}"]

    def continue_block(self, header: str) -> list[str]:
        return ["}", header, "{"]

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        usings = [
            "using System;",
            "using System.Collections.Generic;",
            "using System.Linq;",
        ]
        if "regex" in ctx.features:
            usings.append("using System.Text.RegularExpressions;")
        usings.append("using NUnit.Framework;")
        return usings

    def class_name(self, ctx: "RenderContext") -> str:
        return self.to_pascal_case(ctx.options.test_name)

    def method_name(self, ctx: "RenderContext") -> str:
        return f"Test{self.to_pascal_case(ctx.options.test_name)}"

    def class_summary(self, ctx: "RenderContext") -> list[str]:
        lines = ["    /// <summary>", f"    /// Recorded test: {ctx.options.test_name}"]
        if "data_source" in ctx.features:
            lines.append("    /// Data sources are resolved through TestData.Load(id[, path]).")
        lines.append("    /// </summary>")
        return lines

    def class_declaration(self, ctx: "RenderContext") -> str:
        return f"    public class {self.class_name(ctx)}"

    def class_members(self, ctx: "RenderContext") -> list[str]:
        return []

    def method_declaration(self, ctx: "RenderContext") -> str:
        return f"        public void {self.method_name(ctx)}()"

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            "namespace RecordedTests",
            "{",
            *self.class_summary(ctx),
            "    [TestFixture]",
            self.class_declaration(ctx),
            "    {",
            *self.class_members(ctx),
            "        [Test]",
            self.method_declaration(ctx),
            "        {",
        ]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return ["        }", "    }", "}"]

    # -- literals and declarations -------------------------------------------------

    def literal(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return self.number_literal(value)
        if isinstance(value, list):
            return "new List<object> { " + ", ".join(self.literal(v) for v in value) + " }"
        if isinstance(value, dict):
            entries = ", ".join(
                f"[{self.string_literal(str(k))}] = {self.literal(v)}" for k, v in value.items()
            )
            return "new Dictionary<string, object> { " + entries + " }"
        return self.string_literal(str(value))

    def declare_variable(self, variable: Variable, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(variable.name)
        value = variable.value
        if variable.type == VariableType.NUMBER:
            return f"double {name} = {self.number_literal(_as_float(value) or 0)};"
        if variable.type == VariableType.BOOLEAN:
            return f"bool {name} = {self.literal(truthy_value(value))};"
        if variable.type == VariableType.OBJECT:
            init = self.literal(structured_value(value, dict))
            return f"var {name} = {init};"
        if variable.type == VariableType.ARRAY:
            init = self.literal(structured_value(value, list))
            return f"var {name} = {init};"
        return f"string {name} = {self.string_literal(None if value is None else str(value))};"

    def assign_variable(self, name: str, code: str, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(name)
        if ctx.declare(name):
            return f"string {name} = {code};"
        return f"{name} = {code};"

    # -- expressions -----------------------------------------------------------------

    def as_string(self, code: str) -> str:
        return f"Convert.ToString({code})"

    def as_number(self, code: str) -> str:
        return f"Convert.ToDouble({code})"

    def as_bool(self, code: str) -> str:
        return f"Convert.ToBoolean({code})"

    def negate(self, code: str) -> str:
        return f"!({code})"

    def lower(self, code: str) -> str:
        return f"{code}.ToLower()"

    def str_equals(self, left: str, right: str) -> str:
        return f"{left} == {right}"

    def str_contains(self, left: str, right: str) -> str:
        return f"{left}.Contains({right})"

    def str_starts_with(self, left: str, right: str) -> str:
        return f"{left}.StartsWith({right})"

    def str_ends_with(self, left: str, right: str) -> str:
        return f"{left}.EndsWith({right})"

    def regex_test(self, subject: str, pattern: str, ignore_case: bool, full: bool) -> str:
        source = f'"^(?:" + {pattern} + ")$"' if full else pattern
        flags = ", RegexOptions.IgnoreCase" if ignore_case else ""
        return f"Regex.IsMatch({subject}, {source}{flags})"

    def regex_extract(self, subject: str, pattern: str) -> str:
        return f"Regex.Match({subject}, {pattern}).Value"

    def within_tolerance(self, left: str, right: str, tolerance: str) -> str:
        return f"Math.Abs({left} - {right}) <= {tolerance}"

    def coalesce(self, code: str, fallback: str) -> str:
        return f"{code} ?? {fallback}"

    def assert_statement(self, code: str, message: str, event) -> list[str]:
        return [f"Assert.That({code}, Is.True, {self.string_literal(message)});"]

    # -- blocks ------------------------------------------------------------------------

    def for_each_header(self, var: str, source: str) -> str:
        return f"foreach (var {var} in {source})"

    def data_source_call(self, source_id: str, path: Optional[str]) -> str:
        args = [self.string_literal(source_id)]
        if path:
            args.append(self.string_literal(path))
        return f"TestData.Load({', '.join(args)})"

    def take(self, source: str, limit: int) -> str:
        return f"{source}.Take({limit})"

    def catch_header(self, event: TryCatchEvent, var: str) -> str:
        types = [self.type_name(t) for t in event.catch_error_types]
        if not types:
            return f"catch (Exception {var})"
        filters = " || ".join(f"{var} is {t}" for t in types)
        return f"catch (Exception {var}) when ({filters})"

    def log_error_line(self, var: str) -> str:
        return f'Console.Error.WriteLine("Step failed: " + {var}.Message);'

    def rethrow(self, var: str) -> str:
        return "throw;"

    def group_block(self, event: GroupEvent, body: list[str], ctx: "RenderContext") -> list[str]:
        return [f"#region {event.group_name}", *body, "#endregion"]

    def member_access(self, code: str, key: str) -> str:
        return f"((IDictionary<string, object>) {code})[{self.string_literal(key)}]"
