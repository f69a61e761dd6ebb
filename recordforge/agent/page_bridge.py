"""Bridge between a Playwright page and a capture agent."""

from typing import Any, Optional

import structlog
from playwright.async_api import Page

from ..recording.capture_script import CaptureScriptConfig, CaptureScriptGenerator
from .agent import CaptureAgent

logger = structlog.get_logger()


class PageBridge:
    """Installs the capture script into a page and forwards its signals.

    The binding callback only enqueues, so page listeners never wait on
    delivery. ``attach`` is one-shot per bridge.

    Example:
        agent = CaptureAgent(session_id, server_url)
        bridge = PageBridge(page, agent)
        await bridge.attach()
        await agent.start()
    """

    def __init__(
        self,
        page: Page,
        agent: CaptureAgent,
        script_config: Optional[CaptureScriptConfig] = None,
    ):
        self.page = page
        self.agent = agent
        self.script_config = script_config or CaptureScriptConfig(
            url_poll_interval_ms=int(agent.settings.url_poll_interval_seconds * 1000)
        )
        self._attached = False
        self.log = logger.bind(component="page_bridge", session_id=agent.session_id)

        if agent.screenshot is None:
            agent.screenshot = self.screenshot
        if agent.page_url is None:
            agent.page_url = lambda: self.page.url

    async def attach(self) -> bool:
        """Expose the binding and install the init script; False if already attached."""
        if self._attached:
            return False
        self._attached = True

        script = CaptureScriptGenerator(self.script_config).generate_init_script()
        await self.page.expose_binding(self.script_config.binding_name, self._on_signal)
        await self.page.add_init_script(script)
        # Pages already loaded never run init scripts; the install guard makes this safe
        await self.page.evaluate(script)
        self.log.info("Capture script installed", url=self.page.url)
        return True

    def _on_signal(self, source: Any, signal: Any) -> None:
        if not isinstance(signal, dict):
            self.log.debug("Ignoring non-object signal")
            return
        self.agent.emit_signal(signal)

    async def screenshot(self) -> bytes:
        return await self.page.screenshot(type="png", full_page=False)
