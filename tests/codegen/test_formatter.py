"""Tests for generated code whitespace normalization."""

from recordforge.codegen import CodeFormatter, TargetLanguage


class TestCodeFormatter:
    """Tests for CodeFormatter.format_code."""

    def test_strips_trailing_whitespace(self):
        """Test trailing spaces are removed from every line."""
        formatter = CodeFormatter(TargetLanguage.PYTHON)
        assert formatter.format_code("a = 1   \nb = 2\t") == "a = 1\nb = 2\n"

    def test_drops_leading_blank_lines(self):
        """Test output never starts with blank lines."""
        formatter = CodeFormatter(TargetLanguage.JAVA)
        assert formatter.format_code("\n\n  \nclass A {}") == "class A {}\n"

    def test_caps_blank_runs(self):
        """Test runs of blank lines are capped."""
        formatter = CodeFormatter(TargetLanguage.PYTHON)
        assert formatter.format_code("a\n\n\n\n\nb") == "a\n\n\nb\n"

    def test_custom_blank_limit(self):
        """Test the blank line cap is configurable."""
        formatter = CodeFormatter(TargetLanguage.CSHARP, max_blank_lines=1)
        assert formatter.format_code("a\n\n\nb") == "a\n\nb\n"

    def test_single_trailing_newline(self):
        """Test trailing blanks collapse to one final newline."""
        formatter = CodeFormatter(TargetLanguage.JAVASCRIPT)
        assert formatter.format_code("x();\n\n\n") == "x();\n"

    def test_indentation_is_untouched(self):
        """Test leading whitespace inside lines is preserved."""
        formatter = CodeFormatter(TargetLanguage.PYTHON)
        code = "def f():\n    if x:\n        pass"
        assert formatter.format_code(code) == code + "\n"

    def test_idempotent(self):
        """Test formatting formatted code changes nothing."""
        formatter = CodeFormatter(TargetLanguage.JAVA)
        once = formatter.format_code("\n a  \n\n\n\n b \n")
        assert formatter.format_code(once) == once
