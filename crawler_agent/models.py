"""数据模型定义"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import PlanParseError


@dataclass
class ActionResult:
    """所有公开操作的统一返回值

    success=False 时 error 必须有值；data 只在成功时携带
    （execute_plan 例外：失败时仍返回已执行的步骤前缀）。
    """
    success: bool
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None) -> "ActionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data: Any = None) -> "ActionResult":
        return cls(success=False, error=error or "Unknown error", data=data)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = self.error
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass(frozen=True)
class Position:
    """视口像素坐标"""
    x: float
    y: float


@dataclass(frozen=True)
class Rect:
    """元素包围盒 {left, top, width, height}"""
    left: float
    top: float
    width: float
    height: float

    def center(self) -> Position:
        return Position(x=self.left + self.width / 2, y=self.top + self.height / 2)

    def contains(self, position: Position) -> bool:
        return (
            self.left <= position.x <= self.left + self.width
            and self.top <= position.y <= self.top + self.height
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["Rect"]:
        """兼容 {left, top} 与 {x, y} 两种写法，缺字段返回 None"""
        if not data:
            return None
        left = data.get("left", data.get("x"))
        top = data.get("top", data.get("y"))
        width = data.get("width")
        height = data.get("height")
        if left is None or top is None or width is None or height is None:
            return None
        return cls(left=float(left), top=float(top), width=float(width), height=float(height))


@dataclass
class PageContext:
    """交给推理服务的页面快照，每次定位/规划时重新采集"""
    screenshot: str  # data:image/jpeg;base64,...
    tree: Optional[Dict[str, Any]]
    size: Dict[str, int]  # {width, height}
    title: str
    url: str


@dataclass
class LocatedElement:
    """定位结果；position 仅在 rect 可解析时存在"""
    element: Dict[str, Any]
    rect: Optional[Rect] = None
    position: Optional[Position] = None

    @classmethod
    def from_rect(cls, element: Dict[str, Any], rect: Optional[Rect]) -> "LocatedElement":
        return cls(element=element, rect=rect, position=rect.center() if rect else None)


@dataclass
class StepRecord:
    """单条执行记录"""
    step_num: int
    action: str
    target: Optional[str]
    url: Optional[str]
    result: str  # success|failed


@dataclass
class LocateResponse:
    """推理服务 locate 能力的返回"""
    elements: List[Dict[str, Any]] = field(default_factory=list)
    rect: Optional[Rect] = None


# ── 计划步骤：封闭的 tagged variant ──────────────────────────


@dataclass
class ClickStep:
    element: str
    optional: bool = False
    type: str = field(default="click", init=False)


@dataclass
class InputStep:
    element: str
    text: str
    optional: bool = False
    type: str = field(default="input", init=False)


@dataclass
class ExtractStep:
    selector: str = "body"
    optional: bool = False
    type: str = field(default="extract", init=False)


@dataclass
class UnsupportedStep:
    """宽松解析时保留下来的未知动作，执行时记为失败"""
    type: str
    params: Dict[str, Any] = field(default_factory=dict)
    optional: bool = False


PlanStep = Union[ClickStep, InputStep, ExtractStep, UnsupportedStep]

SUPPORTED_ACTION_TYPES = ("click", "input", "extract")


def parse_step(raw: Mapping[str, Any], strict: bool = False) -> PlanStep:
    """把 {type, params, optional?} 解析为具体步骤"""
    if not isinstance(raw, Mapping):
        raise PlanParseError(f"Plan action must be a mapping, got {type(raw).__name__}")

    action_type = raw.get("type")
    params = raw.get("params") or {}
    if not isinstance(params, Mapping):
        raise PlanParseError(f"Params of action '{action_type}' must be a mapping")
    # 原实现把 optional 放在 params 里，两处都认
    optional = bool(raw.get("optional") or params.get("optional"))

    if action_type == "click":
        return ClickStep(element=str(params.get("element") or ""), optional=optional)
    if action_type == "input":
        return InputStep(
            element=str(params.get("element") or ""),
            text=str(params.get("text") or ""),
            optional=optional,
        )
    if action_type == "extract":
        return ExtractStep(selector=params.get("selector") or "body", optional=optional)

    if strict:
        raise PlanParseError(f"Unsupported action type: {action_type}")
    return UnsupportedStep(type=str(action_type), params=dict(params), optional=optional)


@dataclass
class Plan:
    """有序的步骤序列"""
    steps: List[PlanStep] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], strict: bool = False) -> "Plan":
        if not isinstance(data, Mapping):
            raise PlanParseError(f"Plan must be a mapping, got {type(data).__name__}")
        actions = data.get("actions") or []
        if not isinstance(actions, list):
            raise PlanParseError("Plan 'actions' must be a list")
        return cls(steps=[parse_step(a, strict=strict) for a in actions])

    def to_dict(self) -> Dict[str, Any]:
        actions = []
        for step in self.steps:
            if isinstance(step, ClickStep):
                params: Dict[str, Any] = {"element": step.element}
            elif isinstance(step, InputStep):
                params = {"element": step.element, "text": step.text}
            elif isinstance(step, ExtractStep):
                params = {"selector": step.selector}
            else:
                params = dict(step.params)
            action: Dict[str, Any] = {"type": step.type, "params": params}
            if step.optional:
                action["optional"] = True
            actions.append(action)
        return {"actions": actions}
