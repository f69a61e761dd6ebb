"""Tests for the duplex channel connection manager."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from recordforge.agent.connection import ConnectionManager
from recordforge.agent.models import (
    AgentSettings,
    ConnectionState,
    channel_url,
    http_base_url,
    insecure_url,
)


# =============================================================================
# Test Doubles
# =============================================================================


class FakeWebSocket:
    """In-memory socket; iteration ends when it is closed."""

    def __init__(self, messages=()):
        self.incoming: asyncio.Queue = asyncio.Queue()
        for message in messages:
            self.incoming.put_nowait(message)
        self.sent = []
        self.closed = False
        self.fail_sends = False

    async def send(self, message):
        if self.fail_sends:
            raise OSError("broken pipe")
        self.sent.append(message)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self.incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


class ScriptedConnect:
    """Connect callable that replays a script of sockets and failures."""

    def __init__(self, *outcomes, default=None):
        self.outcomes = list(outcomes)
        self.default = default
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if outcome is None:
            outcome = OSError("connection refused")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture
def sleep():
    """Backoff sleep that returns immediately."""
    return AsyncMock()


# =============================================================================
# Reconnect Budget
# =============================================================================


class TestReconnectBudget:
    """Tests for capped, backed-off reconnects."""

    @pytest.mark.asyncio
    async def test_falls_back_after_five_attempts(self, sleep):
        """Test the manager settles in HTTP_FALLBACK after the budget."""
        connect = ScriptedConnect()
        states = []
        manager = ConnectionManager(
            "ws://recorder.test/ws-recorder/s1",
            connect=connect,
            sleep=sleep,
            on_state_change=states.append,
        )

        await manager.start()
        await manager.wait_closed()

        assert manager.state == ConnectionState.HTTP_FALLBACK
        assert manager.in_fallback
        assert manager.attempts == 5
        assert len(connect.urls) == 5
        assert [c.args[0] for c in sleep.await_args_list] == [2, 4, 8, 16]
        assert states[0] == ConnectionState.CONNECTING
        assert states[-1] == ConnectionState.HTTP_FALLBACK

    @pytest.mark.asyncio
    async def test_fallback_is_terminal(self, sleep):
        """Test nothing dials again once in fallback."""
        connect = ScriptedConnect()
        manager = ConnectionManager("ws://recorder.test/ws-recorder/s1", connect=connect, sleep=sleep)
        await manager.start()
        await manager.wait_closed()

        await manager.start()
        await manager.stop()

        assert len(connect.urls) == 5
        assert manager.state == ConnectionState.HTTP_FALLBACK
        assert not await manager.send("late")

    @pytest.mark.asyncio
    async def test_secure_failure_retries_insecure_immediately(self, sleep):
        """Test a wss failure retries ws without waiting."""
        connect = ScriptedConnect()
        manager = ConnectionManager("wss://recorder.test/ws-recorder/s1", connect=connect, sleep=sleep)

        await manager.start()
        await manager.wait_closed()

        assert connect.urls[0] == "wss://recorder.test/ws-recorder/s1"
        assert connect.urls[1:] == ["ws://recorder.test/ws-recorder/s1"] * 4
        assert [c.args[0] for c in sleep.await_args_list] == [4, 8, 16]

    @pytest.mark.asyncio
    async def test_custom_budget(self, sleep):
        """Test the attempt budget comes from settings."""
        settings = AgentSettings(max_reconnect_attempts=2, reconnect_backoff_seconds=1.0)
        connect = ScriptedConnect()
        manager = ConnectionManager(
            "ws://recorder.test/ws-recorder/s1", settings, connect=connect, sleep=sleep
        )

        await manager.start()
        await manager.wait_closed()

        assert len(connect.urls) == 2
        assert [c.args[0] for c in sleep.await_args_list] == [1.0]

    def test_backoff_is_capped(self):
        """Test exponential backoff stops at the configured maximum."""
        settings = AgentSettings(reconnect_backoff_seconds=2.0, reconnect_backoff_max_seconds=10.0)
        assert [settings.backoff(n) for n in range(1, 6)] == [2.0, 4.0, 8.0, 10.0, 10.0]


# =============================================================================
# Connected Channel
# =============================================================================


class TestConnectedChannel:
    """Tests for an open duplex channel."""

    @pytest.mark.asyncio
    async def test_connect_open_and_receive(self, sleep):
        """Test a successful connect calls on_open and delivers messages."""
        ws = FakeWebSocket(["hello", b"bytes"])
        received = []

        async def on_message(message):
            received.append(message)

        on_open = AsyncMock()
        manager = ConnectionManager(
            "ws://recorder.test/ws-recorder/s1",
            connect=ScriptedConnect(ws),
            sleep=sleep,
            on_message=on_message,
            on_open=on_open,
        )

        await manager.start()
        await wait_until(lambda: len(received) == 2)

        assert manager.is_connected
        assert manager.state == ConnectionState.CONNECTED
        on_open.assert_awaited_once()
        assert received == ["hello", "bytes"]

        assert await manager.send("out")
        assert ws.sent == ["out"]

        await manager.stop()
        assert ws.closed
        assert manager.state == ConnectionState.CLOSED
        assert not manager.is_connected

    @pytest.mark.asyncio
    async def test_reconnects_after_disconnect(self, sleep):
        """Test a dropped channel is redialed and counts against the budget."""
        first, second = FakeWebSocket(), FakeWebSocket()
        connect = ScriptedConnect(first, second)
        manager = ConnectionManager("ws://recorder.test/ws-recorder/s1", connect=connect, sleep=sleep)

        await manager.start()
        await wait_until(lambda: manager.is_connected)
        await first.close()
        await wait_until(lambda: len(connect.urls) == 2 and manager.is_connected)

        assert manager.attempts == 2
        assert await manager.send("again")
        assert second.sent == ["again"]
        await manager.stop()

    @pytest.mark.asyncio
    async def test_failed_send_closes_socket(self, sleep):
        """Test a send error reports False and drops the socket."""
        ws = FakeWebSocket()
        ws.fail_sends = True
        manager = ConnectionManager(
            "ws://recorder.test/ws-recorder/s1",
            connect=ScriptedConnect(ws, default=FakeWebSocket()),
            sleep=sleep,
        )

        await manager.start()
        await wait_until(lambda: manager.is_connected)

        assert not await manager.send("lost")
        assert ws.closed
        await manager.stop()

    @pytest.mark.asyncio
    async def test_failing_handler_keeps_channel(self, sleep):
        """Test a message handler that raises does not end the reader or the connection."""
        ws = FakeWebSocket(["boom", "next"])
        received = []

        async def on_message(message):
            if message == "boom":
                raise RuntimeError("page closed")
            received.append(message)

        connect = ScriptedConnect(ws)
        manager = ConnectionManager(
            "ws://recorder.test/ws-recorder/s1",
            connect=connect,
            sleep=sleep,
            on_message=on_message,
        )

        await manager.start()
        await wait_until(lambda: received == ["next"])

        assert manager.state == ConnectionState.CONNECTED
        assert manager.attempts == 1
        assert await manager.send("still open")
        assert ws.sent == ["still open"]
        await manager.stop()
        assert manager.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_send_before_connect(self):
        """Test sends fail cleanly when no channel is open."""
        manager = ConnectionManager("ws://recorder.test/ws-recorder/s1")
        assert manager.state == ConnectionState.IDLE
        assert not await manager.send("nothing")


class TestChannelUrls:
    """Tests for server URL helpers."""

    @pytest.mark.parametrize(
        "server_url,expected",
        [
            ("https://recorder.test", "wss://recorder.test/ws-recorder/s1"),
            ("http://recorder.test/base/", "ws://recorder.test/base/ws-recorder/s1"),
            ("wss://recorder.test", "wss://recorder.test/ws-recorder/s1"),
        ],
    )
    def test_channel_url_keeps_security(self, server_url, expected):
        """Test the duplex URL follows the server's scheme."""
        assert channel_url(server_url, "s1") == expected

    def test_http_base_url(self):
        """Test duplex URLs map back to HTTP for the fallback."""
        assert http_base_url("wss://recorder.test/base/") == "https://recorder.test/base"
        assert insecure_url("wss://recorder.test/x") == "ws://recorder.test/x"
        assert insecure_url("ws://recorder.test/x") == "ws://recorder.test/x"
