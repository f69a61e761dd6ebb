"""FastAPI application for the RecordForge recorder service.

Provides:
- Recording session lifecycle and HTTP fallback ingestion
- The duplex WebSocket channel for capture agents
- Code generation
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import structlog

from . import __version__
from .api import codegen_router, recorder_channel_router, recording_router
from .config import Settings, get_settings
from .utils.logging import configure_logging

logger = structlog.get_logger()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("RecordForge API starting", version=__version__)
    yield
    logger.info("RecordForge API shutting down")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with every router mounted."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title="RecordForge API",
        description="Record web interactions and generate test code",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(recording_router)
    app.include_router(recorder_channel_router)
    app.include_router(codegen_router)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    return app


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port)


if __name__ == "__main__":
    run()
