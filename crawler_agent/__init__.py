"""Crawler Agent 包

包含各个模块：
- models: 数据模型
- config: 配置
- browser: 驱动抽象与工厂（playwright / selenium）
- controller: 执行模块（ActionAgent）
- perception: 感知模块（页面上下文）
- heuristics: 启发式定位策略
- reasoning: 推理服务能力接口
- planner: 基于 LLM 的推理服务实现
- memory: 记忆模块
- core: AI 增强智能体
"""

from .browser import BrowserDriver, PageQuery, create_driver, register_driver
from .config import AgentConfig, AIAgentConfig
from .controller import ActionAgent, BrowserState
from .core import AIEnhancedAgent
from .errors import (
    ContextCaptureError,
    CrawlerAgentError,
    DriverNotInitializedError,
    PlanParseError,
    ReasoningServiceError,
    UnsupportedEngineError,
)
from .memory import SessionMemory
from .models import (
    ActionResult,
    ClickStep,
    ExtractStep,
    InputStep,
    LocatedElement,
    LocateResponse,
    PageContext,
    Plan,
    Position,
    Rect,
    UnsupportedStep,
)
from .perception import Perception
from .planner import LLMReasoner
from .reasoning import ActionPlanner, ElementLocator

__all__ = [
    "ActionAgent",
    "ActionPlanner",
    "ActionResult",
    "AgentConfig",
    "AIAgentConfig",
    "AIEnhancedAgent",
    "BrowserDriver",
    "BrowserState",
    "ClickStep",
    "ContextCaptureError",
    "CrawlerAgentError",
    "DriverNotInitializedError",
    "ElementLocator",
    "ExtractStep",
    "InputStep",
    "LLMReasoner",
    "LocatedElement",
    "LocateResponse",
    "PageContext",
    "PageQuery",
    "Perception",
    "Plan",
    "PlanParseError",
    "Position",
    "ReasoningServiceError",
    "Rect",
    "SessionMemory",
    "UnsupportedEngineError",
    "UnsupportedStep",
    "create_driver",
    "register_driver",
]
