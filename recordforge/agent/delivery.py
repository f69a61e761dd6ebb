"""HTTP fallback transport and bounded retry queue."""

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from ..recording.wire import WireEnvelope

logger = structlog.get_logger()

FALLBACK_PATH = "/api/recorder/events/{session_id}"


class HttpFallbackTransport:
    """POSTs envelopes to the recorder's fallback endpoint.

    Uses the same envelope shape as the duplex channel. Failures are
    reported as ``False``; callers queue the envelope for retry.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.log = logger.bind(component="http_fallback")

    async def send(self, envelope: WireEnvelope) -> bool:
        path = FALLBACK_PATH.format(session_id=envelope.session_id)
        try:
            response = await self._client.post(path, json=envelope.to_wire())
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            self.log.debug("Fallback send failed", path=path, type=envelope.type, error=str(e))
            return False

    async def aclose(self) -> None:
        await self._client.aclose()


@dataclass
class QueuedEnvelope:
    envelope: WireEnvelope
    enqueued_at: float
    attempts: int = 0


class RetryQueue:
    """Bounded FIFO of envelopes awaiting re-delivery.

    Full queues reject new items rather than evicting old ones. Items
    older than ``max_age_seconds`` are discarded when a batch is taken.
    """

    def __init__(
        self,
        capacity: int = 50,
        batch_size: int = 5,
        max_age_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.capacity = capacity
        self.batch_size = batch_size
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._items: deque[QueuedEnvelope] = deque()
        self.discarded = 0
        self.log = logger.bind(component="retry_queue")

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    def push(self, envelope: WireEnvelope) -> bool:
        if self.is_full:
            self.discarded += 1
            self.log.debug("Retry queue full, dropping envelope", type=envelope.type)
            return False
        self._items.append(QueuedEnvelope(envelope, self._clock()))
        return True

    def requeue(self, item: QueuedEnvelope) -> bool:
        """Put a failed item back, keeping its original age."""
        if self.is_full:
            self.discarded += 1
            return False
        item.attempts += 1
        self._items.append(item)
        return True

    def drop_expired(self) -> int:
        now = self._clock()
        kept = deque(i for i in self._items if now - i.enqueued_at <= self.max_age_seconds)
        dropped = len(self._items) - len(kept)
        if dropped:
            self._items = kept
            self.discarded += dropped
            self.log.debug("Discarded expired envelopes", count=dropped)
        return dropped

    def take_batch(self) -> list[QueuedEnvelope]:
        """Pop up to ``batch_size`` live items from the front."""
        self.drop_expired()
        batch = []
        while self._items and len(batch) < self.batch_size:
            batch.append(self._items.popleft())
        return batch
