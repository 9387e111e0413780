"""
补丁计算的消息边界。

调用方通过 post_message 提交请求，worker 在后台线程中运行整个批处理，
并按顺序回传 progress → complete | error 消息。apply_edits_with_worker
在此基础上提供带超时与进度回调的便捷调用。
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any

from config.config import Config, MatchingSettings, WorkerSettings
from core.cancellation import CancellationToken
from core.errors import PatchCancelledError, PatchTimeoutError, PatchWorkerError, RequestValidationError
from core.match_resolver import MatchResolver
from core.message_types import (
    CompleteMessage,
    DiffPayload,
    ErrorMessage,
    PatchResultPayload,
    ProgressMessage,
    WorkerMessage,
    parse_request,
)
from core.patch_manager import EditRequest, apply_edits
from utils.error_handler import ErrorHandler
from utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

Emit = Callable[[WorkerMessage], None]
ProgressCallback = Callable[[str], None]


def internal_error_message(exc: BaseException, payload: Any, *, error_type: str = "internal") -> ErrorMessage:
    """将未预期的异常转换为附带堆栈与原始载荷的 error 消息"""
    return ErrorMessage(
        error=str(exc) or type(exc).__name__,
        error_type=error_type,
        stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        data=payload,
    )


class PatchWorker:
    """
    在独立线程中执行补丁批处理的 worker。

    worker 本身无状态，每次调用相互独立；所有异常都在边界内
    转换为 error 消息，调用方不会收到未处理的异常。
    """

    def __init__(
        self,
        matching: MatchingSettings | None = None,
        settings: WorkerSettings | None = None,
    ):
        self.matching = matching or MatchingSettings()
        self.settings = settings or WorkerSettings()
        self.resolver = MatchResolver(self.matching)

    @classmethod
    def from_config(cls, config: Config) -> PatchWorker:
        return cls(matching=config.matching, settings=config.worker)

    def handle(
        self,
        payload: Any,
        emit: Emit,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """同步处理一条请求，通过 emit 依次发送消息。"""
        monitor = PerformanceMonitor()

        try:
            with monitor.stage("validate"):
                request = parse_request(payload)
        except RequestValidationError as exc:
            logger.warning(f"请求校验失败: {exc}")
            emit(ErrorMessage(error=str(exc), error_type="validation", data=payload))
            return

        emit(ProgressMessage(message=self.settings.progress_message))

        threshold = request.threshold
        if threshold is None:
            threshold = self.matching.similarity_threshold

        try:
            with monitor.stage("patch"):
                result = apply_edits(
                    request.content,
                    request.to_edits(),
                    threshold,
                    resolver=self.resolver,
                    cancellation=cancellation,
                )
            complete = CompleteMessage(result=PatchResultPayload.from_result(result))
            logger.info(
                f"补丁批处理完成: {result.applied_count}/{len(result.results)} 条已应用 [{monitor.summary()}]"
            )
        except (RequestValidationError, PatchCancelledError) as exc:
            friendly = ErrorHandler.from_exception(exc)
            emit(ErrorMessage(error=str(exc), error_type=friendly.error_type.value, data=payload))
            return
        except Exception as exc:
            friendly = ErrorHandler.from_exception(
                exc,
                context={"diff_count": len(request.diffs), "content_length": len(request.content)},
            )
            emit(internal_error_message(exc, payload, error_type=friendly.error_type.value))
            return

        emit(complete)

    def process(self, payload: Any, cancellation: CancellationToken | None = None) -> list[WorkerMessage]:
        """同步执行并收集全部消息。"""
        messages: list[WorkerMessage] = []
        self.handle(payload, messages.append, cancellation)
        return messages

    async def post_message(
        self,
        payload: Any,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[WorkerMessage]:
        """
        提交请求并异步迭代 worker 回传的消息。

        迭代在收到 complete 或 error 后结束。若调用方提前停止迭代，
        取消令牌会被触发，批处理在下一条编辑之前终止。
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[WorkerMessage] = asyncio.Queue()
        token = cancellation or CancellationToken()
        finished = False

        def deliver(message: WorkerMessage) -> None:
            nonlocal finished
            if finished:
                return
            finished = not isinstance(message, ProgressMessage)
            queue.put_nowait(message)

        def emit(message: WorkerMessage) -> None:
            loop.call_soon_threadsafe(deliver, message)

        def on_done(task: asyncio.Task) -> None:
            # worker 线程异常退出或未发送结果时补发 error 消息，避免调用方永久等待
            if task.cancelled() or finished:
                return
            exc = task.exception()
            if exc is None:
                exc = PatchWorkerError("Worker finished without sending a result")
            ErrorHandler.from_exception(exc)
            deliver(internal_error_message(exc, payload))

        task = asyncio.create_task(asyncio.to_thread(self.handle, payload, emit, token))
        task.add_done_callback(on_done)
        try:
            while True:
                message = await queue.get()
                yield message
                if not isinstance(message, ProgressMessage):
                    break
        finally:
            if not task.done():
                token.cancel("caller stopped listening")


def _diff_to_wire(item: Any) -> Any:
    if isinstance(item, EditRequest):
        return {"oldText": item.old_text, "newText": item.new_text}
    if isinstance(item, DiffPayload):
        return item.to_wire()
    return item


async def apply_edits_with_worker(
    content: str,
    diffs: Sequence[Mapping[str, Any] | DiffPayload | EditRequest],
    threshold: float | None = None,
    on_progress: ProgressCallback | None = None,
    *,
    timeout: float | None = None,
    worker: PatchWorker | None = None,
    cancellation: CancellationToken | None = None,
) -> PatchResultPayload:
    """
    通过 worker 应用一批编辑并等待结果。

    Args:
        content: 文档全文
        diffs: {oldText, newText} 列表
        threshold: 相似度阈值，缺省时使用配置值
        on_progress: 进度回调，收到 progress 消息时调用
        timeout: 超时秒数，缺省时使用 WorkerSettings.timeout_seconds
        worker: 复用的 PatchWorker
        cancellation: 外部取消令牌

    Returns:
        PatchResultPayload

    Raises:
        PatchWorkerError: worker 返回 error 消息
        PatchTimeoutError: 在超时时间内未收到结果
    """
    worker = worker or PatchWorker()
    if timeout is None:
        timeout = worker.settings.timeout_seconds
    token = cancellation or CancellationToken()

    payload: dict[str, Any] = {
        "content": content,
        "diffs": [_diff_to_wire(item) for item in diffs] if isinstance(diffs, (list, tuple)) else diffs,
    }
    if threshold is not None:
        payload["threshold"] = threshold

    async def _consume() -> PatchResultPayload:
        async for message in worker.post_message(payload, token):
            if isinstance(message, ProgressMessage):
                if on_progress is not None:
                    on_progress(message.message)
            elif isinstance(message, CompleteMessage):
                return message.result
            else:
                raise PatchWorkerError(
                    message.error,
                    error_type=message.error_type,
                    stack=message.stack,
                    data=message.data,
                )
        raise PatchWorkerError("Worker finished without sending a result", error_type="internal")

    try:
        return await asyncio.wait_for(_consume(), timeout)
    except asyncio.TimeoutError:
        token.cancel("timeout")
        ErrorHandler.from_exception(PatchTimeoutError(f"timeout after {timeout}s"))
        raise PatchTimeoutError(f"Patch computation timed out after {timeout:.1f}s") from None


__all__ = ["PatchWorker", "apply_edits_with_worker"]
