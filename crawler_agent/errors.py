"""异常定义：核心内部抛出，在动作边界统一转换为 ActionResult"""


class CrawlerAgentError(Exception):
    """所有 crawler_agent 异常的基类"""


class UnsupportedEngineError(CrawlerAgentError):
    """未知的浏览器引擎名称"""

    def __init__(self, name: str):
        super().__init__(f"Unsupported browser type: {name}")
        self.name = name


class DriverNotInitializedError(CrawlerAgentError):
    """在 initialize 之前或 close 之后调用驱动"""

    def __init__(self, operation: str):
        super().__init__(f"Driver not initialized (operation: {operation})")
        self.operation = operation


class ContextCaptureError(CrawlerAgentError):
    """页面上下文（截图）采集失败"""


class PlanParseError(CrawlerAgentError):
    """计划结构不合法，或严格模式下出现未知动作类型"""


class ReasoningServiceError(CrawlerAgentError):
    """推理服务调用失败或返回无法解析的内容"""
