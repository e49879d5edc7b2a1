"""配置：构造后不可变"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AgentConfig:
    """ActionAgent 配置

    timeout 单位为毫秒，用于导航和 wait_for_navigation 的默认上限。
    """
    engine: str = "playwright"
    headless: bool = False
    timeout: int = 30000
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AIAgentConfig(AgentConfig):
    """AIEnhancedAgent 配置"""
    output_dir: Optional[str] = "./crawler-ai-output"
    ai_api_key: Optional[str] = None
    visual_model: str = "basic"  # basic|advanced|custom
    planning_model: str = "basic"
    use_visual_understanding: bool = True
    use_autonomous_planning: bool = True
    confidence_threshold: float = 0.7
    max_retries: int = 3

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")

    @classmethod
    def from_env(cls, **overrides) -> "AIAgentConfig":
        """从环境变量（以及 .env 文件）构造配置，overrides 优先"""
        load_dotenv()
        values = dict(
            engine=os.getenv("CRAWLER_ENGINE", "playwright"),
            headless=_env_bool("CRAWLER_HEADLESS", False),
            timeout=int(os.getenv("CRAWLER_TIMEOUT", "30000")),
            user_agent=os.getenv("CRAWLER_USER_AGENT") or None,
            output_dir=os.getenv("CRAWLER_OUTPUT_DIR", "./crawler-ai-output"),
            ai_api_key=os.getenv("OPENAI_API_KEY") or None,
            use_visual_understanding=_env_bool("CRAWLER_USE_VISUAL", True),
            use_autonomous_planning=_env_bool("CRAWLER_USE_PLANNING", True),
            confidence_threshold=float(os.getenv("CRAWLER_CONFIDENCE", "0.7")),
            max_retries=int(os.getenv("CRAWLER_MAX_RETRIES", "3")),
        )
        values.update(overrides)
        return cls(**values)
