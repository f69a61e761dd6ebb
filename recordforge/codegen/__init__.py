"""Deterministic test code generation from recorded event trees."""

from .engine import CodeGenerator, generate_code
from .formatters import CodeFormatter
from .models import (
    DEFAULT_FRAMEWORKS,
    FILE_EXTENSIONS,
    FRAMEWORK_DEPENDENCIES,
    FRAMEWORK_SUPPORT,
    GeneratedCode,
    GenerationOptions,
    GenerationRequest,
    TargetFramework,
    TargetLanguage,
    Variable,
    VariableType,
)
from .registry import RenderContext, RenderKey, build_render_table, lookup
from .templates import UnsupportedRender

__all__ = [
    "CodeGenerator",
    "generate_code",
    "CodeFormatter",
    "DEFAULT_FRAMEWORKS",
    "FILE_EXTENSIONS",
    "FRAMEWORK_DEPENDENCIES",
    "FRAMEWORK_SUPPORT",
    "GeneratedCode",
    "GenerationOptions",
    "GenerationRequest",
    "TargetFramework",
    "TargetLanguage",
    "Variable",
    "VariableType",
    "RenderContext",
    "RenderKey",
    "build_render_table",
    "lookup",
    "UnsupportedRender",
]
