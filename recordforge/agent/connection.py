"""Duplex channel connection manager.

Owns the reconnect counter, backoff timer and heartbeat task for one
agent. Attempts are counted for the whole page lifetime; when the budget
is spent the manager settles in HTTP_FALLBACK and never dials again.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .models import AgentSettings, ConnectionState, insecure_url

logger = structlog.get_logger()

MessageHandler = Callable[[str], Awaitable[None]]
Connector = Callable[[str], Awaitable[Any]]


class ConnectionManager:
    """Connects to the duplex channel with capped, backed-off retries.

    Example:
        manager = ConnectionManager(
            "wss://recorder.example.com/ws-recorder/abc",
            on_message=agent.handle_message,
        )
        await manager.start()
        ...
        await manager.stop()
    """

    def __init__(
        self,
        url: str,
        settings: Optional[AgentSettings] = None,
        on_message: Optional[MessageHandler] = None,
        on_open: Optional[Callable[[], Awaitable[None]]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        heartbeat: Optional[Callable[[], str]] = None,
        connect: Optional[Connector] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.url = url
        self.settings = settings or AgentSettings()
        self.on_message = on_message
        self.on_open = on_open
        self.on_state_change = on_state_change
        self.heartbeat = heartbeat
        self._connect = connect or self._default_connect
        self._sleep = sleep

        self._state = ConnectionState.IDLE
        self._attempts = 0
        self._secure_failed = False
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self.log = logger.bind(component="connection_manager")

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and self._ws is not None

    @property
    def in_fallback(self) -> bool:
        return self._state == ConnectionState.HTTP_FALLBACK

    async def _default_connect(self, url: str) -> Any:
        return await websockets.connect(url, open_timeout=self.settings.connect_timeout_seconds)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        self.log.info("Connection state changed", previous=previous.value, state=state.value)
        if self.on_state_change:
            self.on_state_change(state)

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Start connecting in the background."""
        if self._task is not None:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Close the channel and cancel every owned task."""
        self._stopped = True
        if self._ws is not None:
            await self._close_quietly(self._ws)
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._state != ConnectionState.HTTP_FALLBACK:
            self._set_state(ConnectionState.CLOSED)

    async def wait_closed(self) -> None:
        """Wait until the manager stops dialing (fallback or stop)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    # -- sending -------------------------------------------------------------

    async def send(self, message: str) -> bool:
        """Send over the duplex channel.

        Returns False when not connected or when the send fails; a failed
        send closes the socket so the reader loop reconnects.
        """
        ws = self._ws
        if ws is None or self._state != ConnectionState.CONNECTED:
            return False
        try:
            await ws.send(message)
            return True
        except (ConnectionClosed, WebSocketException, OSError) as e:
            self.log.warning("Duplex send failed", error=str(e))
            await self._close_quietly(ws)
            return False

    # -- internals -----------------------------------------------------------

    def _next_url(self) -> str:
        if self._secure_failed:
            return insecure_url(self.url)
        return self.url

    async def _dial(self) -> Any:
        """Dial until connected or the attempt budget is spent."""
        max_attempts = self.settings.max_reconnect_attempts
        while self._attempts < max_attempts and not self._stopped:
            url = self._next_url()
            self._attempts += 1
            self._set_state(
                ConnectionState.CONNECTING if self._attempts == 1 else ConnectionState.RECONNECTING
            )
            try:
                return await asyncio.wait_for(
                    self._connect(url), timeout=self.settings.connect_timeout_seconds
                )
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                self.log.warning(
                    "Duplex connect failed",
                    url=url,
                    attempt=self._attempts,
                    max_attempts=max_attempts,
                    error=str(e) or type(e).__name__,
                )
                if url.startswith("wss://") and not self._secure_failed:
                    # Retry the insecure URL immediately, no backoff
                    self._secure_failed = True
                    continue
                if self._attempts < max_attempts:
                    await self._sleep(self.settings.backoff(self._attempts))
        return None

    async def _run(self) -> None:
        while not self._stopped:
            ws = await self._dial()
            if ws is None:
                if not self._stopped:
                    self.log.warning(
                        "Reconnect attempts exhausted, switching to HTTP fallback",
                        attempts=self._attempts,
                    )
                    self._set_state(ConnectionState.HTTP_FALLBACK)
                return

            self._ws = ws
            self._set_state(ConnectionState.CONNECTED)
            heartbeat_task = asyncio.create_task(self._heartbeat_loop())
            try:
                if self.on_open:
                    await self.on_open()
                async for message in ws:
                    if isinstance(message, bytes):
                        message = message.decode("utf-8", errors="replace")
                    if self.on_message:
                        await self._dispatch(message)
            except ConnectionClosed as e:
                self.log.info("Duplex channel closed", code=getattr(e, "code", None))
            finally:
                heartbeat_task.cancel()
                self._ws = None

            if not self._stopped:
                self._set_state(ConnectionState.DISCONNECTED)

    async def _dispatch(self, message: str) -> None:
        try:
            await self.on_message(message)
        except ConnectionClosed:
            raise
        except Exception as e:
            # one bad message must not end the reader
            self.log.error("Inbound message handler failed", error=str(e) or type(e).__name__)

    async def _heartbeat_loop(self) -> None:
        if self.heartbeat is None:
            return
        while True:
            await asyncio.sleep(self.settings.heartbeat_interval_seconds)
            if not await self.send(self.heartbeat()):
                return

    async def _close_quietly(self, ws: Any) -> None:
        try:
            await ws.close()
        except (ConnectionClosed, WebSocketException, OSError) as e:
            self.log.debug("Close failed", error=str(e))
