"""
worker 边界的请求/响应消息模型。

请求：{content, diffs: [{oldText, newText}], threshold?}
响应：progress | complete | error 三种消息组成的标签联合（以 type 字段区分）。
线上字段使用 camelCase，Python 属性使用 snake_case。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, ValidationError

from core.errors import RequestValidationError
from core.patch_manager import EditOutcome, EditRequest, PatchResult


class WireModel(BaseModel):
    """线上消息的公共基类"""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ------------------------------------------------------------------------------
# Request
# ------------------------------------------------------------------------------


class DiffPayload(WireModel):
    """单条替换请求。"""

    old_text: StrictStr = Field(..., alias="oldText", description="生成方认为文档中存在的文本，不要求逐字一致。")
    new_text: StrictStr = Field(..., alias="newText", description="替换后的文本。")

    def to_edit(self) -> EditRequest:
        return EditRequest(old_text=self.old_text, new_text=self.new_text)


class PatchRequest(WireModel):
    """一次补丁调用的请求载荷。"""

    content: StrictStr = Field(..., description="当前文档全文。")
    diffs: list[DiffPayload] = Field(..., description="按调用方顺序排列的替换请求。")
    threshold: float | None = Field(default=None, ge=0.0, le=1.0, strict=True, description="相似度阈值；省略时使用配置值。")

    def to_edits(self) -> list[EditRequest]:
        return [diff.to_edit() for diff in self.diffs]


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "request"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def parse_request(payload: Any) -> PatchRequest:
    """
    在任何算法工作之前显式校验请求载荷。

    Raises:
        RequestValidationError: 载荷类型不符合要求
    """
    if isinstance(payload, PatchRequest):
        return payload
    if not isinstance(payload, Mapping):
        raise RequestValidationError(f"Invalid request type: expected object, got {type(payload).__name__}")

    content = payload.get("content")
    if not isinstance(content, str):
        raise RequestValidationError(f"Invalid content type: expected string, got {type(content).__name__}")
    diffs = payload.get("diffs")
    if not isinstance(diffs, list):
        raise RequestValidationError(f"Invalid diffs type: expected array, got {type(diffs).__name__}")

    try:
        return PatchRequest.model_validate(dict(payload))
    except ValidationError as exc:
        raise RequestValidationError(f"Invalid request: {_describe_validation_error(exc)}") from exc


# ------------------------------------------------------------------------------
# Responses
# ------------------------------------------------------------------------------


class EditOutcomePayload(WireModel):
    """单条编辑的处理结果。"""

    old_text: str = Field(..., alias="oldText")
    new_text: str = Field(..., alias="newText")
    applied: bool
    index: int | None = None
    similarity: float | None = None
    matched_text: str | None = Field(default=None, alias="matchedText")
    strategy: Literal["exact", "normalized", "fuzzy"] | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: EditOutcome) -> EditOutcomePayload:
        return cls(
            old_text=outcome.old_text,
            new_text=outcome.new_text,
            applied=outcome.applied,
            index=outcome.index,
            similarity=outcome.similarity,
            matched_text=outcome.matched_text,
            strategy=outcome.strategy,
            error=outcome.error,
        )


class PatchResultPayload(WireModel):
    content: str
    results: list[EditOutcomePayload] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PatchResult) -> PatchResultPayload:
        return cls(
            content=result.content,
            results=[EditOutcomePayload.from_outcome(outcome) for outcome in result.results],
        )


class ProgressMessage(WireModel):
    type: Literal["progress"] = "progress"
    message: str


class CompleteMessage(WireModel):
    type: Literal["complete"] = "complete"
    result: PatchResultPayload


class ErrorMessage(WireModel):
    type: Literal["error"] = "error"
    error: str
    error_type: str | None = Field(default=None, alias="errorType")
    stack: str | None = None
    data: Any = None


WorkerMessage = Annotated[ProgressMessage | CompleteMessage | ErrorMessage, Field(discriminator="type")]
_WORKER_MESSAGE_ADAPTER: TypeAdapter[WorkerMessage] = TypeAdapter(WorkerMessage)


def parse_worker_message(payload: Any) -> ProgressMessage | CompleteMessage | ErrorMessage:
    """将线上字典解析为对应的消息模型"""
    return _WORKER_MESSAGE_ADAPTER.validate_python(payload)


__all__ = [
    "CompleteMessage",
    "DiffPayload",
    "EditOutcomePayload",
    "ErrorMessage",
    "PatchRequest",
    "PatchResultPayload",
    "ProgressMessage",
    "WorkerMessage",
    "parse_request",
    "parse_worker_message",
]
