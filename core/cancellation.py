"""协作式取消令牌。"""

from __future__ import annotations

import threading

from core.errors import PatchCancelledError


class CancellationToken:
    """
    在调用方与 worker 线程之间共享的取消标志。

    补丁批处理只在逐条编辑之间检查该令牌，匹配算法内部不会被中断。
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PatchCancelledError(f"Patch computation cancelled: {self.reason}")


__all__ = ["CancellationToken"]
