"""Playwright 引擎适配器"""

import logging
from typing import Any, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .base import DEFAULT_VIEWPORT, SCREENSHOT_QUALITY, SETTLE_TIMEOUT_MS, BrowserDriver
from .queries import PageQuery

logger = logging.getLogger(__name__)


class PlaywrightDriver(BrowserDriver):
    """基于 playwright.async_api 的 chromium 会话"""

    name = "playwright"

    def __init__(self, timeout: int = 30000):
        super().__init__(timeout=timeout)
        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.page: Optional[Page] = None

    async def _start(self, headless: bool, user_agent: Optional[str]) -> None:
        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(headless=headless)
            context = await self.browser.new_context(viewport=DEFAULT_VIEWPORT, user_agent=user_agent)
            self.page = await context.new_page()
            self.page.set_default_timeout(self.timeout)
        except Exception:
            await self._stop()
            raise

    async def _stop(self) -> None:
        try:
            if self.browser:
                await self.browser.close()
        finally:
            if self._playwright:
                await self._playwright.stop()
            self.browser = None
            self.page = None
            self._playwright = None

    async def _goto(self, url: str) -> None:
        await self.page.goto(url, wait_until="networkidle", timeout=self.timeout)

    async def _screenshot(self) -> bytes:
        return await self.page.screenshot(type="jpeg", quality=SCREENSHOT_QUALITY)

    async def _evaluate(self, query: PageQuery, arg: Any) -> Any:
        return await self.page.evaluate(query.script.strip(), arg)

    async def _click_at(self, x: float, y: float) -> None:
        await self.page.mouse.click(x, y)

    async def _wait_until_settled(self) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=SETTLE_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.debug("点击后等待 networkidle 超时，继续执行")

    async def _type(self, text: str) -> None:
        await self.page.keyboard.type(text)

    async def _press(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def _scroll(self, dx: int, dy: int) -> None:
        await self.page.mouse.wheel(dx, dy)
