"""执行模块：在单个驱动之上提供统一返回值的动作 API"""

import asyncio
import logging
from enum import Enum
from typing import Dict, Optional

from .browser import BrowserDriver, PageQuery, create_driver
from .config import AgentConfig
from .models import ActionResult, Position

logger = logging.getLogger(__name__)

NOT_INITIALIZED = "Browser not initialized"

_READY_POLL_SECONDS = 0.05


class BrowserState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


class ActionAgent:
    """
    动作代理：独占一个 BrowserDriver。

    每个动作先检查状态，再把驱动异常转换成失败的 ActionResult，
    驱动层的异常不会越过这一层。
    """

    def __init__(self, config: Optional[AgentConfig] = None, driver: Optional[BrowserDriver] = None):
        self.config = config or AgentConfig()
        self.driver = driver or create_driver(self.config.engine, timeout=self.config.timeout)
        self.state = BrowserState.UNINITIALIZED

    @property
    def is_initialized(self) -> bool:
        return self.state == BrowserState.INITIALIZED

    async def initialize(self) -> ActionResult:
        """启动驱动，失败时保持未初始化"""
        if self.state == BrowserState.INITIALIZED:
            return ActionResult.ok()
        if self.state == BrowserState.CLOSED:
            return ActionResult.fail("Browser already closed")

        # 启动失败时驱动自行清理并保持可重试，同一个实例继续使用
        try:
            await self.driver.initialize(headless=self.config.headless, user_agent=self.config.user_agent)
        except Exception as e:
            logger.error("❌ 浏览器启动失败: %s", e)
            return ActionResult.fail(f"Failed to initialize browser: {e}")

        self.state = BrowserState.INITIALIZED
        logger.info("✓ 浏览器已启动 (engine=%s)", self.driver.name)
        return ActionResult.ok()

    async def navigate_to(self, url: str) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            await self.driver.goto(url)
            current = await self.driver.evaluate(PageQuery.PAGE_URL)
            logger.info("✓ 打开 %s", current)
            return ActionResult.ok({"url": current})
        except Exception as e:
            logger.warning("❌ 导航失败: %s", e)
            return ActionResult.fail(f"Failed to navigate to {url}: {e}")

    async def get_current_url(self) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            return ActionResult.ok({"url": await self.driver.evaluate(PageQuery.PAGE_URL)})
        except Exception as e:
            return ActionResult.fail(f"Failed to get current url: {e}")

    async def get_page_title(self) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            return ActionResult.ok({"title": await self.driver.evaluate(PageQuery.PAGE_TITLE)})
        except Exception as e:
            return ActionResult.fail(f"Failed to get page title: {e}")

    async def _element_center(self, selector: str) -> Optional[Position]:
        """存在 -> 滚动到可见 -> 包围盒中心；不存在返回 None"""
        if not await self.driver.evaluate(PageQuery.ELEMENT_EXISTS, selector):
            return None
        await self.driver.evaluate(PageQuery.SCROLL_INTO_VIEW, selector)
        center = await self.driver.evaluate(PageQuery.ELEMENT_CENTER, selector)
        if not center:
            return None
        return Position(x=center["x"], y=center["y"])

    async def click_element(self, selector: str) -> ActionResult:
        """点击 CSS 选择器匹配的第一个元素"""
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            position = await self._element_center(selector)
            if position is None:
                logger.warning("❌ 找不到元素 %s", selector)
                return ActionResult.fail(f'Element with selector "{selector}" not found')
            await self.driver.click_at(position.x, position.y)
            logger.info("✓ 点击 %s", selector)
            return ActionResult.ok({"position": position})
        except Exception as e:
            logger.warning("❌ 点击失败: %s", e)
            return ActionResult.fail(f'Failed to click element with selector "{selector}": {e}')

    async def click_at(self, x: float, y: float) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            await self.driver.click_at(x, y)
            return ActionResult.ok({"position": Position(x=x, y=y)})
        except Exception as e:
            logger.warning("❌ 坐标点击失败: %s", e)
            return ActionResult.fail(f"Failed to click at ({x}, {y}): {e}")

    async def type_text(self, text: str, selector: Optional[str] = None) -> ActionResult:
        """
        输入文本。给了 selector 时先点击该元素获得焦点，否则输入到当前焦点元素。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            if selector:
                position = await self._element_center(selector)
                if position is None:
                    logger.warning("❌ 找不到输入框 %s", selector)
                    return ActionResult.fail(f'Element with selector "{selector}" not found')
                await self.driver.click_at(position.x, position.y)
                await self.driver.evaluate(PageQuery.FOCUS_ELEMENT, selector)
            await self.driver.type(text)
            logger.info("✓ 输入 '%s'", text)
            return ActionResult.ok()
        except Exception as e:
            logger.warning("❌ 输入失败: %s", e)
            target = f' into "{selector}"' if selector else ""
            return ActionResult.fail(f"Failed to type text{target}: {e}")

    async def press_key(self, key: str) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            await self.driver.press(key)
            logger.info("✓ 按键 %s", key)
            return ActionResult.ok()
        except Exception as e:
            logger.warning("❌ 按键失败: %s", e)
            return ActionResult.fail(f'Failed to press key "{key}": {e}')

    async def scroll(self, direction: str, distance: int = 500) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            await self.driver.scroll(direction, distance)
            logger.info("✓ 滚动 %s %s", direction, distance)
            return ActionResult.ok()
        except Exception as e:
            logger.warning("❌ 滚动失败: %s", e)
            return ActionResult.fail(f"Failed to scroll {direction}: {e}")

    async def extract_text(self, selector: str) -> ActionResult:
        """提取所有匹配元素的非空文本"""
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            texts = await self.driver.evaluate(PageQuery.EXTRACT_TEXTS, selector)
            return ActionResult.ok({"texts": list(texts or [])})
        except Exception as e:
            logger.warning("❌ 提取文本失败: %s", e)
            return ActionResult.fail(f'Failed to extract text from "{selector}": {e}')

    async def find_elements(self, selector: Optional[str] = None, text: Optional[str] = None) -> ActionResult:
        """
        按 CSS 选择器或文本包含查找元素，返回 {tagName, text, rect} 列表。
        text 模式只返回最深层的匹配元素。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        if (selector is None) == (text is None):
            return ActionResult.fail("Exactly one of selector or text is required")
        try:
            if selector is not None:
                elements = await self.driver.evaluate(PageQuery.QUERY_ELEMENTS, selector)
            else:
                elements = await self.driver.evaluate(PageQuery.QUERY_ELEMENTS_BY_TEXT, text)
            return ActionResult.ok({"elements": list(elements or [])})
        except Exception as e:
            logger.warning("❌ 查找元素失败: %s", e)
            return ActionResult.fail(f'Failed to query elements "{selector or text}": {e}')

    async def extract_structured(self, selectors: Dict[str, str]) -> ActionResult:
        """
        按 {key: selector} 提取结构化数据。

        每个 key 独立求值：0 个匹配为 None，1 个为字符串，多个为字符串列表。
        调用方需要区分这三种情况。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            data = await self.driver.evaluate(PageQuery.EXTRACT_STRUCTURED, dict(selectors))
            return ActionResult.ok({key: data.get(key) for key in selectors})
        except Exception as e:
            logger.warning("❌ 结构化提取失败: %s", e)
            return ActionResult.fail(f"Failed to extract data: {e}")

    async def take_screenshot(self) -> ActionResult:
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            return ActionResult.ok({"screenshot": await self.driver.screenshot()})
        except Exception as e:
            logger.warning("❌ 截图失败: %s", e)
            return ActionResult.fail(f"Failed to take screenshot: {e}")

    async def wait_for_navigation(self, timeout: Optional[int] = None) -> ActionResult:
        """
        等待 document.readyState 变为 complete，最多 timeout 毫秒。
        超时不算失败，只在 data 里标记 ready=False。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)

        timeout_ms = self.config.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while True:
            # 单次查询也受剩余时间限制，引擎卡住时不会越过 deadline
            remaining = max(deadline - loop.time(), 0)
            try:
                state = await asyncio.wait_for(self.driver.evaluate(PageQuery.READY_STATE), timeout=remaining)
            except asyncio.TimeoutError:
                state = None
            except Exception as e:
                # 跳转过程中执行上下文可能被销毁，按未就绪处理
                logger.debug("查询 readyState 失败: %s", e)
                state = None
            if state == "complete":
                return ActionResult.ok({"ready": True})
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.info("等待页面加载超时 (%sms)", timeout_ms)
                return ActionResult.ok({"ready": False})
            await asyncio.sleep(min(_READY_POLL_SECONDS, remaining))

    async def close(self) -> ActionResult:
        """未初始化时什么也不做，重复调用安全"""
        if not self.is_initialized:
            return ActionResult.ok()
        self.state = BrowserState.CLOSED
        try:
            await self.driver.close()
            logger.info("✓ 浏览器已关闭")
            return ActionResult.ok()
        except Exception as e:
            logger.warning("❌ 关闭浏览器失败: %s", e)
            return ActionResult.fail(f"Failed to close browser: {e}")
