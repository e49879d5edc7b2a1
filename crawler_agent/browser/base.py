"""驱动抽象：所有浏览器引擎必须实现的最小能力集"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..errors import DriverNotInitializedError
from .queries import PageQuery

logger = logging.getLogger(__name__)

SCROLL_DIRECTIONS = ("up", "down", "left", "right")

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
SCREENSHOT_QUALITY = 80
# click_at 之后等待页面稳定的上限（毫秒）
SETTLE_TIMEOUT_MS = 5000


def scroll_delta(direction: str, distance: int) -> tuple:
    """方向 + 距离 -> (dx, dy) 滚轮增量"""
    if direction not in SCROLL_DIRECTIONS:
        raise ValueError(f"Unsupported scroll direction: {direction}")
    dx = -distance if direction == "left" else distance if direction == "right" else 0
    dy = -distance if direction == "up" else distance if direction == "down" else 0
    return dx, dy


class BrowserDriver(ABC):
    """
    浏览器驱动适配器。

    生命周期：创建（未初始化）-> initialize 一次 -> 若干操作 -> close 一次。
    初始化前或关闭后调用页面操作会抛出 DriverNotInitializedError。
    一个实例只归属一个 ActionAgent。
    """

    name = "base"

    def __init__(self, timeout: int = 30000):
        self.timeout = timeout
        self._started = False
        self._closed = False

    @property
    def is_active(self) -> bool:
        return self._started and not self._closed

    def _ensure_active(self, operation: str):
        if not self.is_active:
            raise DriverNotInitializedError(operation)

    async def initialize(self, headless: bool = False, user_agent: Optional[str] = None) -> None:
        """
        启动引擎会话，只能成功一次。
        user_agent 在创建会话时设置，对之后的所有页面和请求头生效。
        启动失败时实例保持未初始化，可以再次调用。
        """
        if self._started:
            raise RuntimeError(f"{self.name} driver already initialized")
        await self._start(headless=headless, user_agent=user_agent)
        self._started = True
        logger.debug("✓ %s 驱动已启动 (headless=%s)", self.name, headless)

    async def close(self) -> None:
        """关闭引擎会话，只会真正执行一次"""
        if not self._started or self._closed:
            return
        self._closed = True
        await self._stop()
        logger.debug("✓ %s 驱动已关闭", self.name)

    async def goto(self, url: str) -> None:
        self._ensure_active("goto")
        await self._goto(url)

    async def screenshot(self) -> bytes:
        """JPEG 截图"""
        self._ensure_active("screenshot")
        return await self._screenshot()

    async def evaluate(self, query: PageQuery, arg: Any = None) -> Any:
        """按名称执行页面查询"""
        self._ensure_active("evaluate")
        return await self._evaluate(PageQuery(query), arg)

    async def get_dimensions(self) -> Dict[str, int]:
        self._ensure_active("get_dimensions")
        return await self._evaluate(PageQuery.VIEWPORT_SIZE, None)

    async def click_at(self, x: float, y: float) -> None:
        """坐标点击，随后尽力等待页面稳定"""
        self._ensure_active("click_at")
        await self._click_at(x, y)
        await self._wait_until_settled()

    async def type(self, text: str) -> None:
        self._ensure_active("type")
        await self._type(text)

    async def press(self, key: str) -> None:
        self._ensure_active("press")
        await self._press(key)

    async def scroll(self, direction: str, distance: int = 500) -> None:
        self._ensure_active("scroll")
        dx, dy = scroll_delta(direction, distance)
        await self._scroll(dx, dy)

    # ── 引擎实现 ─────────────────────────────────

    @abstractmethod
    async def _start(self, headless: bool, user_agent: Optional[str]) -> None:
        """启动失败时自行释放已创建的资源"""

    @abstractmethod
    async def _stop(self) -> None: ...

    @abstractmethod
    async def _goto(self, url: str) -> None: ...

    @abstractmethod
    async def _screenshot(self) -> bytes: ...

    @abstractmethod
    async def _evaluate(self, query: PageQuery, arg: Any) -> Any: ...

    @abstractmethod
    async def _click_at(self, x: float, y: float) -> None: ...

    @abstractmethod
    async def _wait_until_settled(self) -> None:
        """尽力而为：超时自行吞掉，不得抛出"""

    @abstractmethod
    async def _type(self, text: str) -> None: ...

    @abstractmethod
    async def _press(self, key: str) -> None: ...

    @abstractmethod
    async def _scroll(self, dx: int, dy: int) -> None: ...
