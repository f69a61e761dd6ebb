"""Java language template (JUnit 5 skeleton, no browser framework)."""

from typing import TYPE_CHECKING, Any, Optional

from ...recording.events import GroupEvent, TryCatchEvent
from ..models import TargetLanguage, Variable, VariableType
from .base import _as_float, structured_value, truthy_value
from .brace import BraceTemplate

if TYPE_CHECKING:
    from ..registry import RenderContext


class JavaTemplate(BraceTemplate):
    """Java expressions, declarations and blocks."""

    language = TargetLanguage.JAVA

    def generate_imports(self, ctx: "RenderContext") -> list[str]:
        imports = [
            "import org.junit.jupiter.api.Test;",
            "import java.util.*;",
        ]
        if "regex" in ctx.features:
            imports.append("import java.util.regex.Pattern;")
        imports.append("import static org.junit.jupiter.api.Assertions.*;")
        return imports

    def class_name(self, ctx: "RenderContext") -> str:
        return self.to_pascal_case(ctx.options.test_name)

    def method_name(self, ctx: "RenderContext") -> str:
        return f"test{self.to_pascal_case(ctx.options.test_name)}"

    def class_doc(self, ctx: "RenderContext") -> list[str]:
        lines = ["/**", f" * Recorded test: {ctx.options.test_name}"]
        if "data_source" in ctx.features:
            lines.append(" * Data sources are resolved through TestData.load(id[, path]).")
        lines.append(" */")
        return lines

    def generate_class_header(self, ctx: "RenderContext") -> list[str]:
        return [
            "",
            *self.class_doc(ctx),
            f"public class {self.class_name(ctx)} {{",
            "",
            "    @Test",
            f"    public void {self.method_name(ctx)}() throws Exception {{",
        ]

    def generate_class_footer(self, ctx: "RenderContext") -> list[str]:
        return ["    }", "}"]

    # -- literals and declarations -------------------------------------------------

    def literal(self, value: Any) -> str:
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return self.number_literal(value)
        if isinstance(value, list):
            return f"List.of({', '.join(self.literal(v) for v in value)})"
        if isinstance(value, dict):
            entries = ", ".join(
                f"Map.entry({self.string_literal(str(k))}, {self.literal(v)})"
                for k, v in value.items()
            )
            return f"Map.ofEntries({entries})"
        return self.string_literal(str(value))

    def declare_variable(self, variable: Variable, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(variable.name)
        value = variable.value
        if variable.type == VariableType.NUMBER:
            return f"double {name} = {self.number_literal(_as_float(value) or 0)};"
        if variable.type == VariableType.BOOLEAN:
            return f"boolean {name} = {self.literal(truthy_value(value))};"
        if variable.type == VariableType.OBJECT:
            init = self.literal(structured_value(value, dict)) if value else ""
            return f"Map<String, Object> {name} = new HashMap<>({init});"
        if variable.type == VariableType.ARRAY:
            init = self.literal(structured_value(value, list)) if value else ""
            return f"List<Object> {name} = new ArrayList<>({init});"
        return f"String {name} = {self.string_literal(None if value is None else str(value))};"

    def assign_variable(self, name: str, code: str, ctx: "RenderContext") -> str:
        name = self.sanitize_identifier(name)
        if ctx.declare(name):
            return f"String {name} = {code};"
        return f"{name} = {code};"

    # -- expressions -----------------------------------------------------------------

    def as_string(self, code: str) -> str:
        return f"String.valueOf({code})"

    def as_number(self, code: str) -> str:
        return f"Double.parseDouble(String.valueOf({code}))"

    def as_bool(self, code: str) -> str:
        return f"Boolean.parseBoolean(String.valueOf({code}))"

    def negate(self, code: str) -> str:
        return f"!({code})"

    def lower(self, code: str) -> str:
        return f"{code}.toLowerCase()"

    def str_equals(self, left: str, right: str) -> str:
        return f"{left}.equals({right})"

    def str_contains(self, left: str, right: str) -> str:
        return f"{left}.contains({right})"

    def str_starts_with(self, left: str, right: str) -> str:
        return f"{left}.startsWith({right})"

    def str_ends_with(self, left: str, right: str) -> str:
        return f"{left}.endsWith({right})"

    def regex_test(self, subject: str, pattern: str, ignore_case: bool, full: bool) -> str:
        flags = ", Pattern.CASE_INSENSITIVE" if ignore_case else ""
        method = "matches" if full else "find"
        return f"Pattern.compile({pattern}{flags}).matcher({subject}).{method}()"

    def regex_extract(self, subject: str, pattern: str) -> str:
        return (
            f"Pattern.compile({pattern}).matcher({subject}).results()"
            ".map(m -> m.group()).findFirst().orElse(null)"
        )

    def within_tolerance(self, left: str, right: str, tolerance: str) -> str:
        return f"Math.abs({left} - {right}) <= {tolerance}"

    def coalesce(self, code: str, fallback: str) -> str:
        return f"Objects.requireNonNullElse({code}, {fallback})"

    def assert_statement(self, code: str, message: str, event) -> list[str]:
        return [f"assertTrue({code}, {self.string_literal(message)});"]

    # -- blocks ------------------------------------------------------------------------

    def for_each_header(self, var: str, source: str) -> str:
        return f"for (Object {var} : {source})"

    def data_source_call(self, source_id: str, path: Optional[str]) -> str:
        args = [self.string_literal(source_id)]
        if path:
            args.append(self.string_literal(path))
        return f"TestData.load({', '.join(args)})"

    def take(self, source: str, limit: int) -> str:
        return f"{source}.stream().limit({limit}).toList()"

    def catch_header(self, event: TryCatchEvent, var: str) -> str:
        types = " | ".join(self.type_name(t) for t in event.catch_error_types) or "Exception"
        return f"catch ({types} {var})"

    def log_error_line(self, var: str) -> str:
        return f'System.err.println("Step failed: " + {var}.getMessage());'

    def group_block(self, event: GroupEvent, body: list[str], ctx: "RenderContext") -> list[str]:
        return [self.comment(f"Group: {event.group_name}")] + self.block("", body)

    def member_access(self, code: str, key: str) -> str:
        return f"((Map<?, ?>) {code}).get({self.string_literal(key)})"
