"""Code generation API endpoints.

Turns a recorded event tree into test source for one of:
- Java (Selenium)
- JavaScript (Playwright, Cypress)
- Python (Selenium, Playwright)
- C# (Selenium, Playwright)

Other framework names for a known language still yield a complete
skeleton whose steps are explanatory comments.
"""

from functools import lru_cache
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel
import structlog

from ..config import get_settings
from ..codegen.engine import CodeGenerator
from ..codegen.models import DEFAULT_FRAMEWORKS, GenerationRequest, TargetLanguage
from ..recording.errors import EnvelopeDecodeError, SessionNotFoundError
from ..recording.service import RecorderService
from .recording import get_recorder_service

logger = structlog.get_logger()

router = APIRouter(prefix="/api/codegen", tags=["Codegen"])


@lru_cache
def get_code_generator() -> CodeGenerator:
    return CodeGenerator(cache_size=get_settings().codegen_cache_size)


class LanguageInfo(BaseModel):
    """A language and the frameworks it has full step support for."""
    language: str
    default_framework: str
    frameworks: list[dict[str, Any]]


def _parse_request(body: dict[str, Any]) -> GenerationRequest:
    try:
        return GenerationRequest.from_dict(body)
    except (ValueError, KeyError, EnvelopeDecodeError) as e:
        logger.debug("Rejected generation request", error=str(e))
        raise HTTPException(status_code=400, detail=f"Invalid generation request: {e}")


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/generate")
async def generate(
    body: dict[str, Any] = Body(...),
    generator: CodeGenerator = Depends(get_code_generator),
) -> dict:
    """Generate test code from steps, variables and options."""
    result = generator.generate(_parse_request(body))
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


@router.post("/preview")
async def preview(
    body: dict[str, Any] = Body(...),
    max_lines: int = 50,
    generator: CodeGenerator = Depends(get_code_generator),
) -> dict:
    """Generate and truncate for quick display."""
    request = _parse_request(body)
    text = generator.preview(request, max_lines=max_lines)
    return {
        "language": request.options.language.value,
        "framework": request.options.framework_name,
        "preview": text,
        "lineCount": len(text.split("\n")),
    }


@router.post("/sessions/{session_id}")
async def generate_from_session(
    session_id: str,
    body: Optional[dict[str, Any]] = Body(None),
    generator: CodeGenerator = Depends(get_code_generator),
    service: RecorderService = Depends(get_recorder_service),
) -> dict:
    """Generate code from a live session's current event tree."""
    try:
        snapshot = service.snapshot(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    payload = dict(body or {})
    payload["steps"] = [event.to_dict() for event in snapshot.events]
    options = dict(payload.get("options") or {})
    options.setdefault("testName", snapshot.name)
    payload["options"] = options

    result = generator.generate(_parse_request(payload))
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.to_dict()


@router.get("/languages")
async def list_languages(
    generator: CodeGenerator = Depends(get_code_generator),
) -> list[LanguageInfo]:
    """List languages with their supported frameworks."""
    combinations = generator.supported_combinations()
    return [
        LanguageInfo(
            language=language.value,
            default_framework=DEFAULT_FRAMEWORKS[language].value,
            frameworks=[c for c in combinations if c["language"] == language.value],
        )
        for language in TargetLanguage
    ]
