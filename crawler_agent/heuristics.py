"""推理服务不可用时的启发式选择器策略"""

from dataclasses import dataclass

BUTTON_SELECTOR = 'button, [role="button"], .btn, a.button'
INPUT_SELECTOR = "input, textarea"
LINK_SELECTOR = "a"

FALLBACK_PLAN_SELECTOR = "h1, h2, .content, article"


@dataclass(frozen=True)
class HeuristicTarget:
    """kind 为 selector（CSS 选择器）或 text（文本包含匹配）"""
    kind: str
    value: str


def heuristic_target(description: str) -> HeuristicTarget:
    """按关键词把自然语言描述归类成固定的选择器"""
    desc = description.lower()
    if "button" in desc:
        return HeuristicTarget("selector", BUTTON_SELECTOR)
    if "input" in desc or "text" in desc or "field" in desc:
        return HeuristicTarget("selector", INPUT_SELECTOR)
    if "link" in desc:
        return HeuristicTarget("selector", LINK_SELECTOR)
    return HeuristicTarget("text", description.strip())
