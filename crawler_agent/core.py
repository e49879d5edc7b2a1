"""AI 增强的自动化智能体：自然语言定位、计划生成与计划执行"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .browser import BrowserDriver
from .config import AIAgentConfig
from .controller import NOT_INITIALIZED, ActionAgent
from .heuristics import FALLBACK_PLAN_SELECTOR, heuristic_target
from .memory import SessionMemory
from .models import (
    ActionResult,
    ClickStep,
    ExtractStep,
    InputStep,
    LocatedElement,
    Plan,
    PlanStep,
    Rect,
    UnsupportedStep,
)
from .perception import Perception
from .reasoning import ActionPlanner, ElementLocator

logger = logging.getLogger(__name__)

PAGE_ANALYSIS_INSTRUCTION = "Analyze this page and find the most important information"


def fallback_plan() -> Plan:
    """推理服务不可用时的固定计划：提取常见正文区域"""
    return Plan(steps=[ExtractStep(selector=FALLBACK_PLAN_SELECTOR)])


class AIEnhancedAgent:
    """
    AI 增强智能体。

    组合一个 ActionAgent，基础动作显式委托给它；在其上增加：
    - locate_element: 推理服务定位，失败或缺席时退回启发式选择器
    - create_plan_for_page: 推理服务规划，缺席时返回固定的提取计划
    - execute_plan: 按顺序解释执行 click / input / extract 步骤

    locator / planner 在构造时给定，缺席即降级模式。
    """

    def __init__(
        self,
        config: Optional[AIAgentConfig] = None,
        locator: Optional[ElementLocator] = None,
        planner: Optional[ActionPlanner] = None,
        driver: Optional[BrowserDriver] = None,
    ):
        self.config = config or AIAgentConfig()
        self.agent = ActionAgent(self.config, driver=driver)
        self.locator = locator
        self.planner = planner
        self.memory = SessionMemory()
        self.last_page_plan: Optional[Plan] = None
        self._screenshot_counter = 0

    @property
    def is_initialized(self) -> bool:
        return self.agent.is_initialized

    async def initialize(self) -> ActionResult:
        result = await self.agent.initialize()
        if result.success:
            self._screenshot_counter = 0
            logger.debug("AI-enhanced agent initialized")
        return result

    async def close(self) -> ActionResult:
        return await self.agent.close()

    # ── 导航 ─────────────────────────────────────

    async def navigate_to(self, url: str) -> ActionResult:
        """
        导航；开启自动规划时顺带为新页面生成一次计划。
        规划只是尽力而为，成败都不影响导航结果。
        """
        result = await self.agent.navigate_to(url)
        if not result.success:
            return result
        self.memory.record_url(result.data["url"])

        if self.config.use_autonomous_planning:
            plan_result = await self.create_plan_for_page(PAGE_ANALYSIS_INSTRUCTION)
            if plan_result.success:
                self.last_page_plan = plan_result.data["plan"]
            else:
                logger.warning("AI planning failed, continuing with navigation: %s", plan_result.error)
        return result

    # ── 元素定位 ─────────────────────────────────

    async def _capture_context(self):
        return await Perception(self.agent.driver).capture()

    async def _locate_with_service(self, context, description: str) -> Optional[LocatedElement]:
        response = await self.locator.locate(context, description)
        for index, element in enumerate(response.elements):
            confidence = element.get("confidence")
            if confidence is not None and float(confidence) < self.config.confidence_threshold:
                logger.debug("丢弃低可信度候选 %.2f: %s", float(confidence), element)
                continue
            rect = Rect.from_dict(element.get("rect"))
            if rect is None and index == 0:
                rect = response.rect
            return LocatedElement.from_rect(element, rect)
        return None

    async def _locate_with_heuristics(self, description: str) -> Optional[LocatedElement]:
        target = heuristic_target(description)
        if target.kind == "selector":
            found = await self.agent.find_elements(selector=target.value)
        else:
            found = await self.agent.find_elements(text=target.value)
        if not found.success:
            raise RuntimeError(found.error)
        elements = found.data["elements"]
        if not elements:
            return None
        element = elements[0]
        return LocatedElement.from_rect(element, Rect.from_dict(element.get("rect")))

    async def locate_element(self, description: str) -> ActionResult:
        """
        自然语言描述 -> 元素 + 包围盒 + 中心坐标。

        先走推理服务；服务缺席、关闭视觉理解、调用出错或没有可信候选时
        退回关键词启发式。data 中 position 缺失表示定位成功但无法确定点击位置。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)

        try:
            context = await self._capture_context()

            located = None
            if self.locator is not None and self.config.use_visual_understanding:
                try:
                    located = await self._locate_with_service(context, description)
                except Exception as e:
                    logger.warning("推理服务定位失败，改用启发式: %s", e)
            else:
                logger.debug("locator not available, using heuristic fallback")

            source = "service"
            if located is None:
                source = "heuristic"
                located = await self._locate_with_heuristics(description)
            if located is None:
                return ActionResult.fail(f"Could not find element: {description}")

            data: Dict[str, Any] = {"element": located.element, "rect": located.rect, "source": source}
            if located.position is not None:
                data["position"] = located.position
            logger.info("✓ 定位 '%s' (%s)", description, source)
            return ActionResult.ok(data)
        except Exception as e:
            logger.warning("❌ 定位失败: %s", e)
            return ActionResult.fail(f'Failed to locate element "{description}": {e}')

    async def click_on_element(self, description: str) -> ActionResult:
        located = await self.locate_element(description)
        if not located.success:
            return located
        position = located.data.get("position")
        if position is None:
            return ActionResult.fail(
                f'Located element "{description}" but could not determine position for clicking'
            )

        clicked = await self.agent.click_at(position.x, position.y)
        if not clicked.success:
            return ActionResult.fail(f'Failed to click on element "{description}": {clicked.error}')
        return ActionResult.ok({"clicked": True, "element": located.data["element"], "position": position})

    async def input_text_into_element(self, description: str, text: str) -> ActionResult:
        located = await self.locate_element(description)
        if not located.success:
            return located
        position = located.data.get("position")
        if position is None:
            return ActionResult.fail(
                f'Located element "{description}" but could not determine position for clicking'
            )

        # 先点击获得焦点再输入
        clicked = await self.agent.click_at(position.x, position.y)
        if not clicked.success:
            return ActionResult.fail(f'Failed to input text into element "{description}": {clicked.error}')
        typed = await self.agent.type_text(text)
        if not typed.success:
            return ActionResult.fail(f'Failed to input text into element "{description}": {typed.error}')
        return ActionResult.ok({"inputted": True, "text": text, "element": located.data["element"]})

    # ── 规划与执行 ───────────────────────────────

    async def create_plan_for_page(self, instruction: str) -> ActionResult:
        """
        为当前页面生成计划。推理服务缺席或出错时返回固定的提取计划，
        降级计划同样是成功结果。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)

        try:
            context = await self._capture_context()
        except Exception as e:
            return ActionResult.fail(f"Failed to create plan: {e}")

        if self.planner is not None:
            try:
                plan = await self.planner.plan(instruction, context)
                logger.info("✓ 生成计划 %d 步", len(plan.steps))
                return ActionResult.ok({"plan": plan, "source": "service"})
            except Exception as e:
                logger.warning("推理服务规划失败，使用固定计划: %s", e)
        else:
            logger.debug("planner not available, using fallback plan")

        return ActionResult.ok({"plan": fallback_plan(), "source": "fallback"})

    async def _run_step(self, step: PlanStep) -> ActionResult:
        if isinstance(step, ClickStep):
            return await self.click_on_element(step.element)
        if isinstance(step, InputStep):
            return await self.input_text_into_element(step.element, step.text)
        if isinstance(step, ExtractStep):
            return await self.agent.extract_text(step.selector or "body")
        logger.warning("Unsupported action type: %s", step.type)
        return ActionResult.fail(f"Unsupported action type: {step.type}")

    async def _step_url(self, step: PlanStep) -> Optional[str]:
        # 未执行的步骤不访问引擎
        if isinstance(step, UnsupportedStep):
            return None
        current = await self.agent.get_current_url()
        return current.data["url"] if current.success else None

    async def execute_plan(self, plan: Union[Plan, Mapping[str, Any]]) -> ActionResult:
        """
        按顺序执行计划。

        非 optional 的步骤失败即停止，后续步骤不再尝试。
        data["actions"] 始终是已尝试步骤的结果前缀；全部成功才算成功。
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        try:
            if not isinstance(plan, Plan):
                plan = Plan.from_dict(plan)
        except Exception as e:
            return ActionResult.fail(f"Failed to execute plan: {e}")

        results: List[Dict[str, Any]] = []
        for step in plan.steps:
            outcome = await self._run_step(step)
            results.append({
                "type": step.type,
                "success": outcome.success,
                "data": outcome.data,
                "error": outcome.error,
            })
            self.memory.record(step.type, _step_target(step), outcome.success, url=await self._step_url(step))

            if not outcome.success and not step.optional:
                logger.warning("❌ 第 %d 步失败，停止执行: %s", len(results), outcome.error)
                break

        data = {"actions": results}
        failed = [r for r in results if not r["success"]]
        if failed:
            return ActionResult.fail(failed[0]["error"], data=data)
        return ActionResult.ok(data)

    # ── 截图 ─────────────────────────────────────

    async def save_screenshot(self) -> ActionResult:
        """
        截图写入 <output_dir>/screenshots/screenshot-<epoch_ms>-<counter>.jpg
        """
        if not self.is_initialized:
            return ActionResult.fail(NOT_INITIALIZED)
        if not self.config.output_dir:
            return ActionResult.fail("Output directory not configured")
        shot = await self.agent.take_screenshot()
        if not shot.success:
            return shot
        try:
            screenshots_dir = Path(self.config.output_dir) / "screenshots"
            screenshots_dir.mkdir(parents=True, exist_ok=True)
            self._screenshot_counter += 1
            filename = f"screenshot-{int(time.time() * 1000)}-{self._screenshot_counter}.jpg"
            path = screenshots_dir / filename
            path.write_bytes(shot.data["screenshot"])
            logger.info("✓ 截图保存到 %s", path)
            return ActionResult.ok({"path": str(path)})
        except OSError as e:
            logger.warning("❌ 保存截图失败: %s", e)
            return ActionResult.fail(f"Failed to save screenshot: {e}")

    # ── 委托给 ActionAgent 的基础动作 ─────────────

    async def click_element(self, selector: str) -> ActionResult:
        return await self.agent.click_element(selector)

    async def type_text(self, text: str, selector: Optional[str] = None) -> ActionResult:
        return await self.agent.type_text(text, selector)

    async def press_key(self, key: str) -> ActionResult:
        return await self.agent.press_key(key)

    async def scroll(self, direction: str, distance: int = 500) -> ActionResult:
        return await self.agent.scroll(direction, distance)

    async def extract_text(self, selector: str) -> ActionResult:
        return await self.agent.extract_text(selector)

    async def extract_structured(self, selectors: Dict[str, str]) -> ActionResult:
        return await self.agent.extract_structured(selectors)

    async def take_screenshot(self) -> ActionResult:
        return await self.agent.take_screenshot()

    async def wait_for_navigation(self, timeout: Optional[int] = None) -> ActionResult:
        return await self.agent.wait_for_navigation(timeout)

    async def get_current_url(self) -> ActionResult:
        return await self.agent.get_current_url()

    async def get_page_title(self) -> ActionResult:
        return await self.agent.get_page_title()


def _step_target(step: PlanStep) -> Optional[str]:
    if isinstance(step, (ClickStep, InputStep)):
        return step.element
    if isinstance(step, ExtractStep):
        return step.selector
    return None
