"""Selenium WebDriver 引擎适配器

WebDriver 是同步 API，所有调用通过 asyncio.to_thread 放到线程里执行。
"""

import asyncio
import io
import logging
import re
from typing import Any, Optional

from PIL import Image
from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.actions.action_builder import ActionBuilder
from selenium.webdriver.common.keys import Keys

from .base import DEFAULT_VIEWPORT, SCREENSHOT_QUALITY, SETTLE_TIMEOUT_MS, BrowserDriver
from .queries import PageQuery, wrap_for_webdriver

logger = logging.getLogger(__name__)

_SETTLE_POLL_SECONDS = 0.1


def to_selenium_key(key: str) -> str:
    """Playwright 风格的按键名（Enter、PageDown、ArrowUp）转成 Keys 常量"""
    if len(key) == 1:
        return key
    name = re.sub(r"(?<!^)(?=[A-Z])", "_", key).upper()
    name = {"ESC": "ESCAPE", "DEL": "DELETE"}.get(name, name)
    if not hasattr(Keys, name):
        raise ValueError(f"Unsupported key for selenium: {key}")
    return getattr(Keys, name)


def chrome_options(headless: bool, user_agent: Optional[str] = None) -> Options:
    options = Options()
    if headless:
        options.add_argument("--headless=new")
    options.add_argument(f"--window-size={DEFAULT_VIEWPORT['width']},{DEFAULT_VIEWPORT['height']}")
    if user_agent:
        options.add_argument(f"--user-agent={user_agent}")
    return options


def png_to_jpeg(png: bytes, quality: int = SCREENSHOT_QUALITY) -> bytes:
    image = Image.open(io.BytesIO(png)).convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class SeleniumDriver(BrowserDriver):
    """基于 Chrome WebDriver 的会话"""

    name = "selenium"

    def __init__(self, timeout: int = 30000):
        super().__init__(timeout=timeout)
        self.driver: Optional[webdriver.Chrome] = None

    async def _start(self, headless: bool, user_agent: Optional[str]) -> None:
        self.driver = await asyncio.to_thread(webdriver.Chrome, options=chrome_options(headless, user_agent))
        try:
            await asyncio.to_thread(self.driver.set_page_load_timeout, self.timeout / 1000)
            await asyncio.to_thread(self.driver.set_script_timeout, self.timeout / 1000)
        except Exception:
            await self._stop()
            raise

    async def _stop(self) -> None:
        if self.driver:
            driver, self.driver = self.driver, None
            await asyncio.to_thread(driver.quit)

    async def _goto(self, url: str) -> None:
        await asyncio.to_thread(self.driver.get, url)

    async def _screenshot(self) -> bytes:
        png = await asyncio.to_thread(self.driver.get_screenshot_as_png)
        return png_to_jpeg(png)

    async def _evaluate(self, query: PageQuery, arg: Any) -> Any:
        return await asyncio.to_thread(self.driver.execute_script, wrap_for_webdriver(query), arg)

    async def _click_at(self, x: float, y: float) -> None:
        def click():
            builder = ActionBuilder(self.driver)
            builder.pointer_action.move_to_location(int(x), int(y))
            builder.pointer_action.click()
            builder.perform()

        await asyncio.to_thread(click)

    async def _wait_until_settled(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + SETTLE_TIMEOUT_MS / 1000
        while loop.time() < deadline:
            try:
                state = await self._evaluate(PageQuery.READY_STATE, None)
            except Exception as e:
                # 点击触发跳转时脚本可能短暂不可用
                logger.debug("等待页面稳定时查询失败: %s", e)
                state = None
            if state == "complete":
                return
            await asyncio.sleep(_SETTLE_POLL_SECONDS)
        logger.debug("点击后等待页面稳定超时，继续执行")

    async def _type(self, text: str) -> None:
        await asyncio.to_thread(lambda: ActionChains(self.driver).send_keys(text).perform())

    async def _press(self, key: str) -> None:
        selenium_key = to_selenium_key(key)
        await asyncio.to_thread(lambda: ActionChains(self.driver).send_keys(selenium_key).perform())

    async def _scroll(self, dx: int, dy: int) -> None:
        await asyncio.to_thread(lambda: ActionChains(self.driver).scroll_by_amount(dx, dy).perform())
