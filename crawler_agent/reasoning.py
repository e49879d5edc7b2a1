"""推理服务能力接口

两个能力都是可选的：AIEnhancedAgent 构造时传入或不传，
不传即走启发式 / 固定计划降级路径。
"""

from abc import ABC, abstractmethod

from .models import LocateResponse, PageContext, Plan


class ElementLocator(ABC):
    """自然语言描述 -> 页面元素"""

    @abstractmethod
    async def locate(self, context: PageContext, description: str) -> LocateResponse:
        """返回匹配元素（按可信度排序）及第一个元素的包围盒"""


class ActionPlanner(ABC):
    """自然语言指令 -> 多步计划"""

    @abstractmethod
    async def plan(self, instruction: str, context: PageContext) -> Plan:
        ...
