"""Capture agent - page signals to events, with resilient delivery.

Provides:
- Duplex channel connection manager with capped reconnects
- HTTP fallback transport and bounded retry queue
- The capture agent that ties them together
- A Playwright page bridge
"""

from .agent import CaptureAgent
from .connection import ConnectionManager
from .delivery import HttpFallbackTransport, QueuedEnvelope, RetryQueue
from .models import AgentSettings, AgentState, ConnectionState, channel_url, http_base_url
from .page_bridge import PageBridge

__all__ = [
    "CaptureAgent",
    "ConnectionManager",
    "HttpFallbackTransport",
    "QueuedEnvelope",
    "RetryQueue",
    "AgentSettings",
    "AgentState",
    "ConnectionState",
    "channel_url",
    "http_base_url",
    "PageBridge",
]
