"""Code Generator - turns a recorded event tree into test source code."""

import dataclasses
import threading
from collections import OrderedDict
from typing import Any, Optional

from ..recording.events import RecordedEvent, count_events
from ..utils.logging import get_logger, log_operation
from .formatters import CodeFormatter
from .models import (
    FILE_EXTENSIONS,
    FRAMEWORK_DEPENDENCIES,
    FRAMEWORK_SUPPORT,
    GeneratedCode,
    GenerationOptions,
    GenerationRequest,
    Variable,
)
from .registry import RenderContext, build_render_table, collect_features
from .templates import TEMPLATES, template_for

# One table for the process; templates are stateless
RENDER_TABLE = build_render_table(TEMPLATES)


class CodeGenerator:
    """Main engine for generating tests from recordings.

    This class orchestrates generation:
    1. Validates the generation options
    2. Selects the language and framework templates
    3. Declares variables and walks the event tree through the render table
    4. Formats the output

    Generation is deterministic, so results can be memoized by a hash of
    the request. Pass ``cache_size=0`` to disable the memo.

    Example:
        generator = CodeGenerator()

        result = generator.generate(
            GenerationRequest(
                steps=session.events,
                options=GenerationOptions(language="python", framework="playwright"),
            )
        )

        if result.success:
            print(result.code)
    """

    def __init__(self, cache_size: Optional[int] = 128):
        self.log = get_logger(__name__, component="code_generator")
        self.cache_size = cache_size or 0
        self._cache: OrderedDict[str, GeneratedCode] = OrderedDict()
        self._lock = threading.Lock()

    def generate(self, request: GenerationRequest) -> GeneratedCode:
        """Generate test code for a request.

        Args:
            request: Steps, variables and options

        Returns:
            GeneratedCode with the source text or an error
        """
        if not self.cache_size:
            return self._generate(request)

        key = request.fingerprint()
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                self.log.debug("Generation cache hit", key=key[:12])
                return _copy(cached)

        result = self._generate(request)
        if result.success:
            with self._lock:
                self._cache[key] = _copy(result)
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)
        return result

    def _generate(self, request: GenerationRequest) -> GeneratedCode:
        options = request.options
        try:
            errors = options.validate()
            if errors:
                return GeneratedCode(
                    success=False,
                    language=options.language,
                    framework=options.framework_name,
                    error="; ".join(errors),
                )

            template = template_for(options.language, options.framework)
            if not options.is_supported:
                self.log.debug(
                    "Unsupported framework, rendering skeleton only",
                    language=options.language.value,
                    framework=options.framework_name,
                )

            ctx = RenderContext(
                template=template,
                options=options,
                table=RENDER_TABLE,
                variables={v.name: v for v in request.variables},
                features=collect_features(request.steps),
            )
            code = self._assemble(ctx, request.steps, request.variables)

            if options.prettify:
                code = CodeFormatter(options.language).format_code(code)
            elif not code.endswith("\n"):
                code += "\n"

            stats = ctx.stats
            self.log.info(
                "Generation successful",
                language=options.language.value,
                framework=options.framework_name,
                test_name=options.test_name,
                rendered=stats["rendered"],
                unsupported=stats["unsupported"],
            )

            return GeneratedCode(
                success=True,
                code=code,
                language=options.language,
                framework=options.framework_name,
                file_extension=FILE_EXTENSIONS[options.language],
                dependencies=list(FRAMEWORK_DEPENDENCIES.get((options.language, options.framework), [])),
                metadata={
                    "testName": options.test_name,
                    "stepsCount": count_events(request.steps),
                    "variablesCount": len(request.variables),
                    "renderedCount": stats["rendered"],
                    "disabledCount": stats["disabled"],
                    "invalidCount": stats["invalid"],
                    "unsupportedCount": stats["unsupported"],
                    "frameworkSupported": options.is_supported,
                },
            )

        except Exception as e:
            self.log.error("Generation failed", error=str(e))
            return GeneratedCode(
                success=False,
                language=options.language,
                framework=options.framework_name,
                error=str(e),
            )

    def _assemble(
        self,
        ctx: RenderContext,
        steps: list[RecordedEvent],
        variables: list[Variable],
    ) -> str:
        template = ctx.template
        lines: list[str] = []

        if ctx.options.include_imports:
            lines.extend(template.generate_imports(ctx))
        lines.extend(template.generate_class_header(ctx))

        declarations = []
        for variable in variables:
            ctx.declare(template.sanitize_identifier(variable.name))
            declarations.append(template.declare_variable(variable, ctx))
        if declarations:
            lines.extend(template.indent_lines(declarations, template.body_depth))
            lines.append("")

        lines.extend(template.indent_lines(ctx.render_events(steps), template.body_depth))
        lines.extend(template.generate_class_footer(ctx))
        return "\n".join(lines)

    def generate_batch(self, requests: list[GenerationRequest]) -> list[GeneratedCode]:
        """Generate code for several requests.

        Args:
            requests: Generation requests

        Returns:
            One result per request, in order
        """
        with log_operation("generate_batch", logger=self.log, requests=len(requests)) as op:
            results = [self.generate(request) for request in requests]
            op["failed"] = sum(1 for result in results if not result.success)
        return results

    def supported_combinations(self) -> list[dict[str, Any]]:
        """Get all language/framework combinations with full step support.

        Returns:
            List of dicts with language, framework and file extension
        """
        combinations = []
        for language, frameworks in FRAMEWORK_SUPPORT.items():
            for framework in frameworks:
                combinations.append(
                    {
                        "language": language.value,
                        "framework": framework.value,
                        "fileExtension": FILE_EXTENSIONS[language],
                        "dependencies": list(FRAMEWORK_DEPENDENCIES.get((language, framework), [])),
                    }
                )
        return combinations

    def preview(self, request: GenerationRequest, max_lines: int = 50) -> str:
        """Generate a preview of the test code.

        Args:
            request: Generation request
            max_lines: Maximum lines to return

        Returns:
            Preview of generated code
        """
        result = self.generate(request)
        if not result.success:
            return f"# Error: {result.error}"

        lines = result.code.split("\n")
        if len(lines) > max_lines:
            return "\n".join(lines[:max_lines]) + f"\n\n... ({len(lines) - max_lines} more lines)"
        return result.code

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


def _copy(result: GeneratedCode) -> GeneratedCode:
    return dataclasses.replace(
        result,
        dependencies=list(result.dependencies),
        metadata=dict(result.metadata),
    )


def generate_code(
    steps: list[RecordedEvent],
    language: str = "java",
    framework: Optional[str] = None,
    variables: Optional[list[Variable]] = None,
    **kwargs,
) -> GeneratedCode:
    """Convenience function to generate code.

    Args:
        steps: Top-level recorded events
        language: Target language
        framework: Target framework (language default when omitted)
        variables: Test variables
        **kwargs: Additional GenerationOptions fields

    Returns:
        GeneratedCode
    """
    options = GenerationOptions(language=language, framework=framework, **kwargs)
    request = GenerationRequest(steps=steps, variables=variables or [], options=options)
    return CodeGenerator(cache_size=0).generate(request)
