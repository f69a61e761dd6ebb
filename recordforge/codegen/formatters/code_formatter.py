"""Whitespace normalization for generated code."""

from ..models import TargetLanguage


class CodeFormatter:
    """Normalizes whitespace without touching tokens.

    Only trailing whitespace, runs of blank lines and the final newline
    change, so prettified output stays byte-for-byte deterministic.
    """

    def __init__(self, language: TargetLanguage, max_blank_lines: int = 2):
        self.language = language
        self.max_blank_lines = max_blank_lines

    def format_code(self, code: str) -> str:
        """Format code according to language conventions.

        Args:
            code: Raw generated code

        Returns:
            Formatted code
        """
        lines = [line.rstrip() for line in code.split("\n")]

        # Drop leading blank lines and cap consecutive blanks
        formatted_lines = []
        blank_count = 0
        for line in lines:
            if line == "":
                if not formatted_lines:
                    continue
                blank_count += 1
                if blank_count <= self.max_blank_lines:
                    formatted_lines.append(line)
            else:
                blank_count = 0
                formatted_lines.append(line)

        while formatted_lines and formatted_lines[-1] == "":
            formatted_lines.pop()
        return "\n".join(formatted_lines) + "\n"
