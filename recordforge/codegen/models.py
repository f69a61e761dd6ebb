"""Data models for code generation."""

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..recording.events import RecordedEvent, events_from_list


class TargetLanguage(str, Enum):
    """Languages the generator emits."""

    JAVA = "java"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    CSHARP = "csharp"


class TargetFramework(str, Enum):
    """Browser automation frameworks with dedicated templates."""

    SELENIUM = "selenium"
    PLAYWRIGHT = "playwright"
    CYPRESS = "cypress"


# Language/framework combinations with full leaf-step support
FRAMEWORK_SUPPORT = {
    TargetLanguage.JAVA: [TargetFramework.SELENIUM],
    TargetLanguage.JAVASCRIPT: [TargetFramework.PLAYWRIGHT, TargetFramework.CYPRESS],
    TargetLanguage.PYTHON: [TargetFramework.SELENIUM, TargetFramework.PLAYWRIGHT],
    TargetLanguage.CSHARP: [TargetFramework.SELENIUM, TargetFramework.PLAYWRIGHT],
}

DEFAULT_FRAMEWORKS = {
    TargetLanguage.JAVA: TargetFramework.SELENIUM,
    TargetLanguage.JAVASCRIPT: TargetFramework.PLAYWRIGHT,
    TargetLanguage.PYTHON: TargetFramework.PLAYWRIGHT,
    TargetLanguage.CSHARP: TargetFramework.SELENIUM,
}

# File extensions for each language
FILE_EXTENSIONS = {
    TargetLanguage.JAVA: ".java",
    TargetLanguage.JAVASCRIPT: ".js",
    TargetLanguage.PYTHON: ".py",
    TargetLanguage.CSHARP: ".cs",
}

# Dependencies for each combination
FRAMEWORK_DEPENDENCIES = {
    (TargetLanguage.JAVA, TargetFramework.SELENIUM): [
        "org.seleniumhq.selenium:selenium-java",
        "org.junit.jupiter:junit-jupiter",
    ],
    (TargetLanguage.JAVASCRIPT, TargetFramework.PLAYWRIGHT): ["@playwright/test"],
    (TargetLanguage.JAVASCRIPT, TargetFramework.CYPRESS): ["cypress", "@cypress/xpath"],
    (TargetLanguage.PYTHON, TargetFramework.SELENIUM): ["selenium", "pytest"],
    (TargetLanguage.PYTHON, TargetFramework.PLAYWRIGHT): ["playwright", "pytest", "pytest-playwright"],
    (TargetLanguage.CSHARP, TargetFramework.SELENIUM): ["Selenium.WebDriver", "Selenium.Support", "NUnit"],
    (TargetLanguage.CSHARP, TargetFramework.PLAYWRIGHT): ["Microsoft.Playwright.NUnit", "NUnit"],
}


class VariableType(str, Enum):
    """Declared kind of a test variable."""

    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    OBJECT = "OBJECT"
    ARRAY = "ARRAY"


@dataclass
class Variable:
    """A variable declared at the top of the generated test."""

    name: str
    type: VariableType = VariableType.STRING
    value: Any = None
    description: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.type, str) and not isinstance(self.type, VariableType):
            self.type = VariableType(self.type.upper())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Variable":
        return cls(
            name=data["name"],
            type=data.get("type", VariableType.STRING.value),
            value=data.get("value"),
            description=data.get("description"),
        )


@dataclass
class GenerationOptions:
    """Options controlling code generation.

    Attributes:
        language: Target programming language
        framework: Target framework; unknown names still yield a skeleton
        include_comments: Emit a descriptive comment before each step
        include_imports: Emit the import/using block
        prettify: Normalize whitespace in the output
        test_name: Name used for the generated class/function
    """

    language: TargetLanguage | str = TargetLanguage.JAVA
    framework: TargetFramework | str | None = None
    include_comments: bool = True
    include_imports: bool = True
    prettify: bool = True
    test_name: str = "Recorded Test"

    def __post_init__(self):
        """Convert string values to enums where possible."""
        if isinstance(self.language, str) and not isinstance(self.language, TargetLanguage):
            self.language = TargetLanguage(self.language.lower())
        if self.framework is None:
            self.framework = DEFAULT_FRAMEWORKS[self.language]
        elif isinstance(self.framework, str) and not isinstance(self.framework, TargetFramework):
            name = self.framework.lower()
            try:
                self.framework = TargetFramework(name)
            except ValueError:
                self.framework = name

    @property
    def framework_name(self) -> str:
        return self.framework.value if isinstance(self.framework, TargetFramework) else self.framework

    @property
    def is_supported(self) -> bool:
        return self.framework in FRAMEWORK_SUPPORT.get(self.language, [])

    def validate(self) -> list[str]:
        """Validate the options.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        if not self.framework_name:
            errors.append("Framework name must not be empty")
        if not self.test_name or not self.test_name.strip():
            errors.append("Test name must not be empty")
        return errors

    def to_dict(self) -> dict:
        return {
            "language": self.language.value,
            "framework": self.framework_name,
            "includeComments": self.include_comments,
            "includeImports": self.include_imports,
            "prettify": self.prettify,
            "testName": self.test_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GenerationOptions":
        return cls(
            language=data.get("language", TargetLanguage.JAVA.value),
            framework=data.get("framework"),
            include_comments=data.get("includeComments", True),
            include_imports=data.get("includeImports", True),
            prettify=data.get("prettify", True),
            test_name=data.get("testName", "Recorded Test"),
        )


@dataclass
class GenerationRequest:
    """Everything one generation call depends on."""

    steps: list[RecordedEvent] = field(default_factory=list)
    variables: list[Variable] = field(default_factory=list)
    options: GenerationOptions = field(default_factory=GenerationOptions)

    def to_dict(self) -> dict:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "variables": [var.to_dict() for var in self.variables],
            "options": self.options.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GenerationRequest":
        return cls(
            steps=events_from_list(data.get("steps")),
            variables=[Variable.from_dict(v) for v in data.get("variables") or []],
            options=GenerationOptions.from_dict(data.get("options") or {}),
        )

    def fingerprint(self) -> str:
        """SHA-256 over the canonical JSON form of the request."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class GeneratedCode:
    """Result from generating code.

    Attributes:
        success: Whether generation succeeded
        code: Generated source text
        language: Language code was generated for
        framework: Framework code was generated for
        file_extension: Suggested file extension
        dependencies: Packages the generated test needs
        error: Error message if failed
        metadata: Step statistics for the render
    """

    success: bool
    code: str = ""
    language: Optional[TargetLanguage] = None
    framework: Optional[str] = None
    file_extension: str = ".txt"
    dependencies: list[str] = field(default_factory=list)
    error: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "success": self.success,
            "code": self.code,
            "language": self.language.value if self.language else None,
            "framework": self.framework,
            "fileExtension": self.file_extension,
            "dependencies": list(self.dependencies),
            "error": self.error,
            "metadata": dict(self.metadata),
        }
