"""规划模块：基于 OpenAI 兼容接口的推理服务实现（元素定位 + 计划生成）"""

import asyncio
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI, OpenAIError

from .config import AIAgentConfig
from .errors import PlanParseError, ReasoningServiceError
from .models import LocateResponse, PageContext, Plan, Rect
from .perception import summarize_tree
from .reasoning import ActionPlanner, ElementLocator

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

# visual_model / planning_model 的档位；custom 使用 OPENAI_MODEL
MODEL_PRESETS = {
    "basic": "gpt-4o-mini",
    "advanced": "gpt-4o",
}

LOCATE_SYSTEM_PROMPT = (
    "你是一个网页元素定位助手。\n"
    "你会看到页面截图、视口尺寸和浅层 DOM 结构，需要找出与用户描述最匹配的元素。\n"
    "坐标使用视口像素，原点在左上角。\n"
    "你必须且只能输出 JSON 字符串，格式如下：\n"
    "{\n"
    "  \"elements\": [\n"
    "    {\n"
    "      \"tagName\": \"button\",\n"
    "      \"text\": \"元素上的文字\",\n"
    "      \"confidence\": 0.9,\n"
    "      \"rect\": {\"left\": 10, \"top\": 20, \"width\": 100, \"height\": 30}\n"
    "    }\n"
    "  ]\n"
    "}\n"
    "按可信度从高到低排序；找不到时返回空数组。"
)

PLAN_SYSTEM_PROMPT = (
    "你是一个 Web 自动化规划助手。\n"
    "根据用户指令和当前页面，输出按顺序执行的动作列表。\n"
    "只允许三种动作：\n"
    "- click: params = {\"element\": \"要点击元素的自然语言描述\"}\n"
    "- input: params = {\"element\": \"输入框的自然语言描述\", \"text\": \"要输入的内容\"}\n"
    "- extract: params = {\"selector\": \"CSS 选择器\"}\n"
    "失败也不影响后续步骤的动作可以标记 \"optional\": true。\n"
    "你必须且只能输出 JSON 字符串，格式如下：\n"
    "{\n"
    "  \"actions\": [\n"
    "    {\"type\": \"click\", \"params\": {\"element\": \"搜索按钮\"}, \"optional\": false}\n"
    "  ]\n"
    "}"
)


def _context_prompt(context: PageContext) -> str:
    return (
        f"页面标题：{context.title}\n"
        f"URL：{context.url}\n"
        f"视口尺寸：{context.size['width']}x{context.size['height']}\n"
        f"DOM 结构：\n{summarize_tree(context.tree) or '(空)'}"
    )


class LLMReasoner(ElementLocator, ActionPlanner):
    """用多模态 LLM 同时实现 locate 和 plan 两个能力"""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = DEFAULT_MODEL,
        planning_model: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.client = client
        self.model = model
        self.planning_model = planning_model or model
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @classmethod
    def from_env(cls, **kwargs) -> "LLMReasoner":
        """
        读取 OPENAI_API_KEY / OPENAI_BASE_URL / OPENAI_MODEL。
        """
        load_dotenv()
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("请设置环境变量 OPENAI_API_KEY，例如：export OPENAI_API_KEY='sk-...'")
        client = AsyncOpenAI(api_key=api_key, base_url=os.getenv("OPENAI_BASE_URL") or None)
        kwargs.setdefault("model", os.getenv("OPENAI_MODEL", DEFAULT_MODEL))
        return cls(client, **kwargs)

    @classmethod
    def from_config(cls, config: AIAgentConfig) -> "LLMReasoner":
        load_dotenv()
        api_key = config.ai_api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("未提供 API Key，请设置 OPENAI_API_KEY 环境变量或 ai_api_key 配置")
        custom = os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        client = AsyncOpenAI(api_key=api_key, base_url=os.getenv("OPENAI_BASE_URL") or None)
        return cls(
            client,
            model=MODEL_PRESETS.get(config.visual_model, custom),
            planning_model=MODEL_PRESETS.get(config.planning_model, custom),
            max_retries=config.max_retries,
        )

    async def _ask(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        screenshot: str,
        parse: Callable[[Dict[str, Any]], Any] = dict,
    ) -> Any:
        """
        调用 LLM 并解析 JSON 对象，再交给 parse 转换。
        调用失败、JSON 无效或 parse 抛出 PlanParseError 都计入同一个 max_retries。
        """
        last_error: Optional[Exception] = None
        for attempt in range(self.max_retries):
            try:
                response = await self.client.chat.completions.create(
                    model=model,
                    temperature=0,
                    response_format={"type": "json_object"},
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": user_prompt},
                                {"type": "image_url", "image_url": {"url": screenshot}},
                            ],
                        },
                    ],
                )
                output_str = response.choices[0].message.content or ""
                data = json.loads(output_str)
                if not isinstance(data, dict):
                    raise ReasoningServiceError(f"Expected a JSON object, got: {output_str[:200]}")
                return parse(data)
            except (OpenAIError, json.JSONDecodeError, ReasoningServiceError, PlanParseError) as e:
                last_error = e
                logger.warning("第 %d 次调用 LLM 失败: %s", attempt + 1, e)
                if attempt + 1 < self.max_retries:
                    await asyncio.sleep(self.retry_delay)
        if isinstance(last_error, PlanParseError):
            raise ReasoningServiceError(f"LLM returned an invalid plan: {last_error}")
        raise ReasoningServiceError(f"LLM call failed after {self.max_retries} attempts: {last_error}")

    async def locate(self, context: PageContext, description: str) -> LocateResponse:
        user_prompt = f"{_context_prompt(context)}\n\n要定位的元素：{description}"
        data = await self._ask(self.model, LOCATE_SYSTEM_PROMPT, user_prompt, context.screenshot)

        elements: List[Dict[str, Any]] = [e for e in data.get("elements") or [] if isinstance(e, dict)]
        rect = Rect.from_dict(elements[0].get("rect")) if elements else None
        logger.debug("LLM 定位 '%s' -> %d 个候选", description, len(elements))
        return LocateResponse(elements=elements, rect=rect)

    async def plan(self, instruction: str, context: PageContext) -> Plan:
        user_prompt = f"用户指令：{instruction}\n\n{_context_prompt(context)}\n\n请给出动作列表。"
        return await self._ask(
            self.planning_model,
            PLAN_SYSTEM_PROMPT,
            user_prompt,
            context.screenshot,
            parse=lambda data: Plan.from_dict(data, strict=True),
        )
