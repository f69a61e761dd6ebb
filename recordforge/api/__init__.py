"""FastAPI routers for recording, ingestion and code generation."""

from .codegen import router as codegen_router
from .recording import router as recording_router
from .recording import ws_router as recorder_channel_router

__all__ = ["codegen_router", "recording_router", "recorder_channel_router"]
