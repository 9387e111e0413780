"""
性能监控模块

measure_time 用于临时测量任意代码块；PerformanceMonitor 按调用实例化，
记录一次补丁调用中各阶段（校验、匹配与替换）的耗时，不保存跨调用的统计。
"""

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger(__name__)


@contextmanager
def measure_time(operation: str, *, level: int = logging.DEBUG):
    """
    代码块执行时间测量上下文管理器

    使用示例:
        with measure_time("匹配定位"):
            resolver.find_best_match(...)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, f"[Performance] {operation} 耗时: {time.perf_counter() - started:.3f}s")


class PerformanceMonitor:
    """单次调用的阶段耗时记录"""

    def __init__(self):
        self.stages: dict[str, float] = {}

    @contextmanager
    def stage(self, name: str):
        """
        记录一个阶段的耗时；同名阶段重复进入时累加。

        阶段内抛出异常时仍会记录已经消耗的时间。
        """
        started = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = self.stages.get(name, 0.0) + time.perf_counter() - started

    @property
    def total(self) -> float:
        return sum(self.stages.values())

    def summary(self) -> str:
        if not self.stages:
            return "no stages recorded"
        parts = [f"{name}={duration:.3f}s" for name, duration in self.stages.items()]
        return " ".join(parts) + f" (total {self.total:.3f}s)"


__all__ = ["PerformanceMonitor", "measure_time"]
