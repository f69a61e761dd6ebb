"""Capture agent - turns page signals into envelopes and delivers them.

Producers call ``emit``/``emit_signal``, which only enqueue; a background
sender owns all network I/O, trying the duplex channel first, then the
HTTP fallback, then the bounded retry queue.
"""

import asyncio
import base64
import json
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import structlog

from .. import __version__
from ..config import get_settings
from ..recording.errors import EnvelopeDecodeError
from ..recording.events import RecordedEvent, event_from_dict
from ..recording.wire import CommandAction, CommandEnvelope, MessageType, WireEnvelope
from .connection import ConnectionManager
from .delivery import HttpFallbackTransport, RetryQueue
from .models import AgentSettings, AgentState, channel_url, http_base_url

logger = structlog.get_logger()


class CaptureAgent:
    """Capture & transport agent for one page of one recording session.

    Example:
        agent = CaptureAgent(session_id, "https://recorder.example.com")
        await agent.start()
        agent.emit_signal({"type": "CLICK", "element": {...}})
        ...
        await agent.stop()
    """

    def __init__(
        self,
        session_id: str,
        server_url: str,
        settings: Optional[AgentSettings] = None,
        connection: Optional[ConnectionManager] = None,
        fallback: Optional[HttpFallbackTransport] = None,
        retry_queue: Optional[RetryQueue] = None,
        screenshot: Optional[Callable[[], Awaitable[bytes]]] = None,
        page_url: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.session_id = session_id
        self.server_url = server_url
        self.settings = settings or AgentSettings.from_settings(get_settings())

        self.connection = connection or ConnectionManager(
            channel_url(server_url, session_id), self.settings
        )
        self.connection.on_message = self.handle_message
        self.connection.on_open = self._on_open
        self.connection.heartbeat = self._heartbeat_message

        self.fallback = fallback or HttpFallbackTransport(
            http_base_url(server_url), timeout=self.settings.http_timeout_seconds
        )
        self.retry_queue = retry_queue or RetryQueue(
            capacity=self.settings.retry_queue_capacity,
            batch_size=self.settings.retry_batch_size,
            max_age_seconds=self.settings.retry_max_age_seconds,
        )
        self.screenshot = screenshot
        self.page_url = page_url

        self.state = AgentState.IDLE
        self.stats: Counter = Counter()
        self._initialized = False
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []
        self._stop_task: Optional[asyncio.Task] = None
        self.log = logger.bind(component="capture_agent", session_id=session_id)

        self._command_handlers: dict[CommandAction, Callable[[], Awaitable[None]]] = {
            CommandAction.PAUSE: self._pause,
            CommandAction.RESUME: self._resume,
            CommandAction.STOP: self._stop_requested,
            CommandAction.STATUS: self._noop,
            CommandAction.CAPTURE_SCREENSHOT: self._capture_screenshot,
        }

    @property
    def is_recording(self) -> bool:
        return self.state == AgentState.RECORDING

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> bool:
        """Install the agent once; later calls are no-ops returning False."""
        if self._initialized:
            return False
        self._initialized = True
        self.state = AgentState.RECORDING
        await self.connection.start()
        self._tasks = [
            asyncio.create_task(self._sender_loop()),
            asyncio.create_task(self._retry_loop()),
        ]
        self.log.info("Capture agent started", url=self.connection.url)
        return True

    async def stop(self) -> None:
        """Stop recording, flush what is queued and release transports."""
        if self.state == AgentState.STOPPED and not self._tasks:
            return
        self.state = AgentState.STOPPED
        if self._tasks:
            try:
                await asyncio.wait_for(self._outbox.join(), timeout=self.settings.http_timeout_seconds)
            except asyncio.TimeoutError:
                self.log.warning("Outbox not drained before stop", pending=self._outbox.qsize())
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        await self.connection.stop()
        await self.fallback.aclose()
        self.log.info("Capture agent stopped", **dict(self.stats))

    # -- producers -----------------------------------------------------------

    def emit(self, event: RecordedEvent) -> bool:
        """Queue an event for delivery without waiting on I/O.

        Returns False when the agent is not recording.
        """
        if not self.is_recording:
            return False
        self._outbox.put_nowait(WireEnvelope.for_event(self.session_id, event))
        self.stats["emitted"] += 1
        return True

    def emit_signal(self, signal: dict[str, Any]) -> bool:
        """Convert a page signal to an event and queue it."""
        if not self.is_recording:
            return False
        try:
            event = event_from_dict(signal)
        except EnvelopeDecodeError as e:
            self.stats["malformed"] += 1
            self.log.debug("Ignoring malformed page signal", error=str(e))
            return False
        return self.emit(event)

    async def drain(self) -> None:
        """Wait until every emitted envelope has had one delivery attempt."""
        await self._outbox.join()

    # -- delivery ------------------------------------------------------------

    async def _send_once(self, envelope: WireEnvelope) -> bool:
        if self.connection.is_connected and await self.connection.send(envelope.to_json()):
            self.stats["sent_duplex"] += 1
            return True
        if await self.fallback.send(envelope):
            self.stats["sent_http"] += 1
            return True
        return False

    async def deliver(self, envelope: WireEnvelope) -> bool:
        """Duplex first, then HTTP; failures go to the retry queue."""
        if await self._send_once(envelope):
            return True
        if self.retry_queue.push(envelope):
            self.stats["queued"] += 1
        else:
            self.stats["dropped"] += 1
        return False

    async def flush_retries(self) -> int:
        """Re-send one batch from the retry queue; returns how many went out."""
        sent = 0
        for item in self.retry_queue.take_batch():
            if await self._send_once(item.envelope):
                sent += 1
            else:
                self.retry_queue.requeue(item)
        if sent:
            self.log.debug("Retried queued envelopes", sent=sent, remaining=len(self.retry_queue))
        return sent

    async def _sender_loop(self) -> None:
        while True:
            envelope = await self._outbox.get()
            try:
                await self.deliver(envelope)
            finally:
                self._outbox.task_done()

    async def _retry_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.retry_interval_seconds)
            await self.flush_retries()

    # -- inbound -------------------------------------------------------------

    async def handle_message(self, raw: str) -> None:
        """Handle one message from the duplex channel."""
        try:
            data = json.loads(raw)
        except ValueError:
            self.log.debug("Ignoring non-JSON message")
            return
        if not isinstance(data, dict):
            return

        message_type = str(data.get("type", "")).upper()
        if message_type == MessageType.COMMAND.value:
            try:
                command = CommandEnvelope.parse(data)
            except EnvelopeDecodeError as e:
                self.log.debug("Ignoring malformed command", error=str(e))
                return
            await self.handle_command(command)
        elif message_type == MessageType.PING.value:
            await self._reply(MessageType.PONG)

    async def handle_command(self, command: CommandEnvelope) -> None:
        """Apply a server command to local state and acknowledge it."""
        self.log.info("Command received", action=command.action.value)
        ack = {"action": command.action.value}
        try:
            await self._command_handlers[command.action]()
        except Exception as e:
            self.log.error("Command failed", action=command.action.value, error=str(e) or type(e).__name__)
            ack["error"] = str(e) or type(e).__name__
        await self._reply(MessageType.STATUS, {**ack, **self.status()})

    async def _pause(self) -> None:
        if self.state == AgentState.RECORDING:
            self.state = AgentState.PAUSED

    async def _resume(self) -> None:
        if self.state == AgentState.PAUSED:
            self.state = AgentState.RECORDING

    async def _stop_requested(self) -> None:
        # The handler runs inside the connection task, so stop from a new task
        self.state = AgentState.STOPPED
        self._stop_task = asyncio.create_task(self.stop())

    async def _noop(self) -> None:
        return None

    async def _capture_screenshot(self) -> None:
        if self.screenshot is None:
            self.log.debug("Screenshot requested but no provider is attached")
            return
        image = await self.screenshot()
        await self._reply(
            MessageType.SCREENSHOT,
            {"format": "png", "data": base64.b64encode(image).decode("ascii")},
        )

    async def _reply(self, message_type: MessageType, payload: Optional[dict] = None) -> None:
        envelope = WireEnvelope.control(message_type, self.session_id, payload)
        if not await self._send_once(envelope):
            self.log.debug("Reply not delivered", type=message_type.value)

    # -- connection callbacks ------------------------------------------------

    async def _on_open(self) -> None:
        init = WireEnvelope.control(
            MessageType.INIT,
            self.session_id,
            {"url": self._current_url(), "agentVersion": __version__, **self.status()},
        )
        await self.connection.send(init.to_json())

    def _heartbeat_message(self) -> str:
        return WireEnvelope.control(MessageType.HEARTBEAT, self.session_id, {"state": self.state.value}).to_json()

    def _current_url(self) -> Optional[str]:
        return self.page_url() if self.page_url else None

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "connection": self.connection.state.value,
            "eventsEmitted": self.stats["emitted"],
            "queued": len(self.retry_queue),
        }
