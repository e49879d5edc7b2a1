"""感知模块：采集交给推理服务的页面上下文"""

import base64
import logging

from .browser import BrowserDriver, PageQuery
from .errors import ContextCaptureError
from .models import PageContext

logger = logging.getLogger(__name__)

DEFAULT_TREE_DEPTH = 3


class Perception:
    """
    感知模块：截图 + 视口尺寸 + 标题/URL + 浅层 DOM 树。

    DOM 树只展开到固定深度，保证上下文大小与页面复杂度无关。
    上下文每次重新采集，不跨导航缓存。
    """

    def __init__(self, driver: BrowserDriver, max_depth: int = DEFAULT_TREE_DEPTH):
        self.driver = driver
        self.max_depth = max_depth

    async def capture(self) -> PageContext:
        """
        采集页面上下文。截图失败直接抛 ContextCaptureError：
        没有截图就没法做视觉推理。
        """
        try:
            screenshot = await self.driver.screenshot()
        except Exception as e:
            raise ContextCaptureError(f"Failed to take screenshot: {e}") from e

        size = await self.driver.get_dimensions()
        title = await self.driver.evaluate(PageQuery.PAGE_TITLE)
        url = await self.driver.evaluate(PageQuery.PAGE_URL)
        tree = await self.driver.evaluate(PageQuery.DOM_TREE, self.max_depth)

        logger.debug("✓ 采集页面上下文 %s (截图 %.1f KB)", url, len(screenshot) / 1024)
        return PageContext(
            screenshot=encode_screenshot(screenshot),
            tree=tree,
            size={"width": size["width"], "height": size["height"]},
            title=title or "",
            url=url or "",
        )


def encode_screenshot(data: bytes) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(data).decode("ascii")


def summarize_tree(node, indent: int = 0, lines=None) -> str:
    """把浅层 DOM 树压成缩进文本，给 LLM 看"""
    if lines is None:
        lines = []
    if node:
        ident = f"#{node['id']}" if node.get("id") else ""
        cls = "." + ".".join(node["className"].split()) if node.get("className") else ""
        text = f' "{node["text"][:40]}"' if node.get("text") and not node.get("children") else ""
        lines.append(f"{'  ' * indent}{node.get('tag', '?')}{ident}{cls}{text}")
        for child in node.get("children") or []:
            summarize_tree(child, indent + 1, lines)
    return "\n".join(lines)
