"""Data models for the capture agent."""

from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlsplit, urlunsplit


class ConnectionState(str, Enum):
    """Duplex channel state.

    HTTP_FALLBACK is terminal for the page lifetime: once the reconnect
    budget is spent the agent never dials the duplex channel again.
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    RECONNECTING = "RECONNECTING"
    HTTP_FALLBACK = "HTTP_FALLBACK"
    CLOSED = "CLOSED"


class AgentState(str, Enum):
    """Local recording state of one agent."""

    IDLE = "IDLE"
    RECORDING = "RECORDING"
    PAUSED = "PAUSED"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class AgentSettings:
    """Transport timings and limits for one capture agent."""

    max_reconnect_attempts: int = 5
    reconnect_backoff_seconds: float = 2.0
    reconnect_backoff_max_seconds: float = 30.0
    connect_timeout_seconds: float = 5.0
    heartbeat_interval_seconds: float = 30.0
    retry_interval_seconds: float = 60.0
    retry_batch_size: int = 5
    retry_queue_capacity: int = 50
    retry_max_age_seconds: float = 300.0
    url_poll_interval_seconds: float = 1.0
    http_timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Any) -> "AgentSettings":
        return cls(
            max_reconnect_attempts=settings.max_reconnect_attempts,
            reconnect_backoff_seconds=settings.reconnect_backoff_seconds,
            reconnect_backoff_max_seconds=settings.reconnect_backoff_max_seconds,
            connect_timeout_seconds=settings.connect_timeout_seconds,
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
            retry_interval_seconds=settings.retry_interval_seconds,
            retry_batch_size=settings.retry_batch_size,
            retry_queue_capacity=settings.retry_queue_capacity,
            retry_max_age_seconds=settings.retry_max_age_seconds,
            url_poll_interval_seconds=settings.url_poll_interval_seconds,
            http_timeout_seconds=settings.http_timeout_seconds,
        )

    def backoff(self, attempt: int) -> float:
        """Delay before reconnect attempt ``attempt + 1`` (exponential, capped)."""
        delay = self.reconnect_backoff_seconds * (2 ** max(attempt - 1, 0))
        return min(delay, self.reconnect_backoff_max_seconds)


_WS_SCHEMES = {"http": "ws", "https": "wss", "ws": "ws", "wss": "wss"}
_HTTP_SCHEMES = {"ws": "http", "wss": "https", "http": "http", "https": "https"}


def channel_url(server_url: str, session_id: str) -> str:
    """Duplex channel URL for a session; keeps the server's security level."""
    parts = urlsplit(server_url)
    scheme = _WS_SCHEMES.get(parts.scheme, "ws")
    path = parts.path.rstrip("/") + f"/ws-recorder/{session_id}"
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def http_base_url(server_url: str) -> str:
    parts = urlsplit(server_url)
    scheme = _HTTP_SCHEMES.get(parts.scheme, "http")
    return urlunsplit((scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def insecure_url(url: str) -> str:
    """``wss://`` to ``ws://``; other URLs unchanged."""
    if url.startswith("wss://"):
        return "ws://" + url[len("wss://"):]
    return url
