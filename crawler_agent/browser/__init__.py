"""驱动工厂：按引擎名称创建驱动适配器"""

from typing import Dict, Type

from ..errors import UnsupportedEngineError
from .base import BrowserDriver
from .queries import PageQuery

_REGISTRY: Dict[str, Type[BrowserDriver]] = {}


def register_driver(name: str, driver_cls: Type[BrowserDriver]) -> None:
    """注册额外的引擎实现"""
    if not (isinstance(driver_cls, type) and issubclass(driver_cls, BrowserDriver)):
        raise TypeError(f"{driver_cls!r} is not a BrowserDriver subclass")
    _REGISTRY[name] = driver_cls


def available_engines():
    return sorted(set(_REGISTRY) | {"playwright", "selenium"})


def create_driver(name: str, timeout: int = 30000) -> BrowserDriver:
    """
    创建未初始化的驱动。未知名称直接报错，不做默认回退。
    """
    if name in _REGISTRY:
        return _REGISTRY[name](timeout=timeout)
    # 内置引擎延迟导入，只装一个引擎也能用
    if name == "playwright":
        from .playwright_driver import PlaywrightDriver
        return PlaywrightDriver(timeout=timeout)
    if name == "selenium":
        from .selenium_driver import SeleniumDriver
        return SeleniumDriver(timeout=timeout)
    raise UnsupportedEngineError(name)


__all__ = [
    "BrowserDriver",
    "PageQuery",
    "available_engines",
    "create_driver",
    "register_driver",
]
