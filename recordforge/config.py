"""Configuration management for RecordForge."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RECORDFORGE_",
        extra="ignore",
    )

    # Server
    server_host: str = Field("0.0.0.0", description="Host the recorder API binds to")
    server_port: int = Field(8000, description="Port the recorder API binds to")
    public_base_url: Optional[str] = Field(
        None, description="Externally reachable base URL handed to capture agents"
    )

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Emit logs as JSON")

    # Session admission
    max_event_count: int = Field(1000, ge=1, description="Maximum events per recording session")

    # Ingestion debounce windows (milliseconds)
    click_debounce_ms: int = Field(300, ge=0, description="Duplicate click suppression window")
    input_debounce_ms: int = Field(500, ge=0, description="Duplicate input suppression window")
    navigation_debounce_ms: int = Field(1000, ge=0, description="Duplicate navigation suppression window")
    default_debounce_ms: int = Field(100, ge=0, description="Suppression window for other kinds")
    recent_events_per_session: int = Field(100, ge=1, description="Fingerprints kept per session")

    # Capture agent transport
    max_reconnect_attempts: int = Field(5, ge=1, description="Duplex connect attempts before HTTP fallback")
    reconnect_backoff_seconds: float = Field(2.0, gt=0, description="Base reconnect delay")
    reconnect_backoff_max_seconds: float = Field(30.0, gt=0, description="Reconnect delay ceiling")
    connect_timeout_seconds: float = Field(5.0, gt=0, description="Duplex connect timeout")
    heartbeat_interval_seconds: float = Field(30.0, gt=0, description="Heartbeat period while connected")
    retry_interval_seconds: float = Field(60.0, gt=0, description="Retry queue flush period")
    retry_batch_size: int = Field(5, ge=1, description="Queued items re-sent per retry cycle")
    retry_queue_capacity: int = Field(50, ge=1, description="Bounded retry queue size")
    retry_max_age_seconds: float = Field(300.0, gt=0, description="Queued items older than this are dropped")
    url_poll_interval_seconds: float = Field(1.0, gt=0, description="SPA URL polling period")
    http_timeout_seconds: float = Field(10.0, gt=0, description="HTTP fallback request timeout")

    # Code generation
    codegen_cache_size: int = Field(256, ge=0, description="Memoized generation results kept")


@lru_cache
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
