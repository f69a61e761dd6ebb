"""Output formatters for generated code."""

from .code_formatter import CodeFormatter

__all__ = ["CodeFormatter"]
