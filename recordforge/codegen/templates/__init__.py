"""Code generation templates for each language and framework."""

from ..models import TargetFramework, TargetLanguage
from .base import ANY, BaseTemplate, Expr, UnsupportedRender
from .csharp import CSharpTemplate
from .csharp_playwright import CSharpPlaywrightTemplate
from .csharp_selenium import CSharpSeleniumTemplate
from .java import JavaTemplate
from .java_selenium import JavaSeleniumTemplate
from .javascript import JavaScriptTemplate
from .javascript_cypress import JavaScriptCypressTemplate
from .javascript_playwright import JavaScriptPlaywrightTemplate
from .python import PythonTemplate
from .python_playwright import PythonPlaywrightTemplate
from .python_selenium import PythonSeleniumTemplate

# Language templates: skeleton, expressions and container blocks
LANGUAGE_TEMPLATES: dict[TargetLanguage, BaseTemplate] = {
    TargetLanguage.JAVA: JavaTemplate(),
    TargetLanguage.JAVASCRIPT: JavaScriptTemplate(),
    TargetLanguage.PYTHON: PythonTemplate(),
    TargetLanguage.CSHARP: CSharpTemplate(),
}

# Framework templates: leaf steps and framework skeletons
FRAMEWORK_TEMPLATES: dict[tuple[TargetLanguage, TargetFramework], BaseTemplate] = {
    (TargetLanguage.JAVA, TargetFramework.SELENIUM): JavaSeleniumTemplate(),
    (TargetLanguage.JAVASCRIPT, TargetFramework.PLAYWRIGHT): JavaScriptPlaywrightTemplate(),
    (TargetLanguage.JAVASCRIPT, TargetFramework.CYPRESS): JavaScriptCypressTemplate(),
    (TargetLanguage.PYTHON, TargetFramework.SELENIUM): PythonSeleniumTemplate(),
    (TargetLanguage.PYTHON, TargetFramework.PLAYWRIGHT): PythonPlaywrightTemplate(),
    (TargetLanguage.CSHARP, TargetFramework.SELENIUM): CSharpSeleniumTemplate(),
    (TargetLanguage.CSHARP, TargetFramework.PLAYWRIGHT): CSharpPlaywrightTemplate(),
}

TEMPLATES: list[BaseTemplate] = [*LANGUAGE_TEMPLATES.values(), *FRAMEWORK_TEMPLATES.values()]


def template_for(language: TargetLanguage, framework: TargetFramework | str) -> BaseTemplate:
    """Framework template when one exists, else the bare language template."""
    return FRAMEWORK_TEMPLATES.get((language, framework)) or LANGUAGE_TEMPLATES[language]


__all__ = [
    "ANY",
    "BaseTemplate",
    "Expr",
    "UnsupportedRender",
    "JavaTemplate",
    "JavaScriptTemplate",
    "PythonTemplate",
    "CSharpTemplate",
    "JavaSeleniumTemplate",
    "JavaScriptPlaywrightTemplate",
    "JavaScriptCypressTemplate",
    "PythonSeleniumTemplate",
    "PythonPlaywrightTemplate",
    "CSharpSeleniumTemplate",
    "CSharpPlaywrightTemplate",
    "LANGUAGE_TEMPLATES",
    "FRAMEWORK_TEMPLATES",
    "TEMPLATES",
    "template_for",
]
