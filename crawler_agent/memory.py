"""记忆模块：保存会话内访问过的 URL 和执行过的步骤（仅内存）"""

from typing import List, Optional

from .models import StepRecord


class SessionMemory:
    """记忆模块：保存会话内访问过的 URL 和执行过的步骤"""

    def __init__(self):
        self.history: List[StepRecord] = []
        self.visited_urls: List[str] = []
        self.step_counter = 0

    def record(self, action: str, target: Optional[str], success: bool, url: Optional[str] = None):
        """记录单步操作，url 为该步执行后所在的页面"""
        self.step_counter += 1
        self.history.append(StepRecord(
            step_num=self.step_counter,
            action=action,
            target=target,
            url=url,
            result="success" if success else "failed",
        ))

    def record_url(self, url: str):
        """记录访问过的 URL"""
        if url and url not in self.visited_urls:
            self.visited_urls.append(url)

    def clear(self):
        self.history.clear()
        self.visited_urls.clear()
        self.step_counter = 0

    def format_history(self, last_n: int = 5) -> str:
        if not self.history:
            return "(无历史)"

        lines = []
        for rec in self.history[-last_n:]:
            target_str = f" ({rec.target})" if rec.target else ""
            lines.append(f"Step {rec.step_num}: {rec.action}{target_str} → {rec.result}")
        return "\n".join(lines)
