"""补丁引擎的异常类型。"""

from __future__ import annotations

from typing import Any


class PatchEngineError(Exception):
    """补丁引擎异常基类"""


class RequestValidationError(PatchEngineError, ValueError):
    """请求载荷类型错误：整个调用失败，不返回部分结果"""


class PatchCancelledError(PatchEngineError):
    """取消令牌在批处理过程中被触发"""


class PatchTimeoutError(PatchEngineError, TimeoutError):
    """调用方等待 worker 结果超时"""


class PatchWorkerError(PatchEngineError):
    """worker 返回了 error 消息（在调用方一侧抛出）"""

    def __init__(
        self,
        message: str,
        *,
        error_type: str | None = None,
        stack: str | None = None,
        data: Any = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.stack = stack
        self.data = data


__all__ = [
    "PatchCancelledError",
    "PatchEngineError",
    "PatchTimeoutError",
    "PatchWorkerError",
    "RequestValidationError",
]
