"""Tests for the Playwright page bridge."""

from unittest.mock import AsyncMock, MagicMock, call

import pytest

from recordforge.agent import AgentSettings, CaptureAgent, PageBridge
from recordforge.recording.capture_script import CaptureScriptConfig


@pytest.fixture
def page():
    """Playwright page double."""
    page = MagicMock()
    page.url = "https://shop.test/"
    page.expose_binding = AsyncMock()
    page.add_init_script = AsyncMock()
    page.evaluate = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png")
    return page


@pytest.fixture
def agent():
    """Agent with mocked transports."""
    return CaptureAgent(
        "s1",
        "http://recorder.test",
        settings=AgentSettings(url_poll_interval_seconds=0.5),
        connection=MagicMock(url="ws://recorder.test/ws-recorder/s1"),
        fallback=MagicMock(),
    )


class TestPageBridge:
    """Tests for PageBridge."""

    @pytest.mark.asyncio
    async def test_attach_installs_script(self, page, agent):
        """Test attach exposes the binding, then installs and runs the script."""
        bridge = PageBridge(page, agent)

        assert await bridge.attach()

        binding, callback = page.expose_binding.await_args.args
        assert binding == "__recordforgeEmit"
        assert callback == bridge._on_signal
        script = page.add_init_script.await_args.args[0]
        assert page.evaluate.await_args == call(script)
        assert "}, 500);" in script

    @pytest.mark.asyncio
    async def test_attach_is_one_shot(self, page, agent):
        """Test a second attach does nothing."""
        bridge = PageBridge(page, agent)
        await bridge.attach()

        assert not await bridge.attach()
        page.expose_binding.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_custom_binding_name(self, page, agent):
        """Test a custom script config controls the binding name."""
        bridge = PageBridge(page, agent, CaptureScriptConfig(binding_name="__emit"))
        await bridge.attach()
        assert page.expose_binding.await_args.args[0] == "__emit"

    def test_signals_reach_the_agent(self, page, agent):
        """Test object signals are forwarded and others ignored."""
        agent.emit_signal = MagicMock(return_value=True)
        bridge = PageBridge(page, agent)

        bridge._on_signal({"frame": None}, {"type": "CLICK", "element": {"id": "buy"}})
        bridge._on_signal({"frame": None}, "garbage")

        agent.emit_signal.assert_called_once_with({"type": "CLICK", "element": {"id": "buy"}})

    @pytest.mark.asyncio
    async def test_provides_page_hooks(self, page, agent):
        """Test the bridge supplies screenshot and URL providers."""
        PageBridge(page, agent)

        assert agent.page_url() == "https://shop.test/"
        assert await agent.screenshot() == b"png"
        page.screenshot.assert_awaited_once_with(type="png", full_page=False)

    def test_existing_hooks_are_kept(self, page):
        """Test providers already set on the agent are not replaced."""
        provider = AsyncMock()
        agent = CaptureAgent(
            "s1",
            "http://recorder.test",
            settings=AgentSettings(),
            connection=MagicMock(),
            fallback=MagicMock(),
            screenshot=provider,
        )
        PageBridge(page, agent)
        assert agent.screenshot is provider
