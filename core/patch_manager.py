"""
批量补丁应用模块

在原始文档上为每条编辑定位匹配位置，按偏移从后向前替换，
拒绝相互重叠的匹配，并按输入顺序返回每条编辑的结果。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, cast

from config.config import MatchingSettings
from core.cancellation import CancellationToken
from core.errors import PatchEngineError, RequestValidationError
from core.match_resolver import MatchCandidate, MatchResolver
from utils.error_handler import ErrorHandler, ErrorType

# 注意：编辑载荷可能来自外部JSON，因此在此适配层中保持`Any`类型，
# 由 _coerce_edit 在进入算法之前完成校验
JsonDict = dict[str, Any]


@dataclass(frozen=True)
class EditRequest:
    old_text: str
    new_text: str


@dataclass
class EditOutcome:
    old_text: str
    new_text: str
    applied: bool
    index: int | None = None
    similarity: float | None = None
    matched_text: str | None = None
    strategy: str | None = None
    error: str | None = None


@dataclass
class PatchResult:
    """
    单次批量补丁的结果。

    results 与输入的编辑请求一一对应、顺序一致。
    """

    content: str
    results: list[EditOutcome] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return sum(1 for outcome in self.results if outcome.applied)

    @property
    def failed_count(self) -> int:
        return len(self.results) - self.applied_count


def _normalize_mapping(mapping: Any) -> JsonDict:
    if not isinstance(mapping, Mapping):
        return {}
    typed_mapping = cast(Mapping[Any, Any], mapping)
    return {str(key): value for key, value in typed_mapping.items()}


def _coerce_edit(position: int, item: Any) -> EditRequest:
    """将 EditRequest / 映射 / pydantic 模型统一转换为 EditRequest"""
    if isinstance(item, EditRequest):
        return item
    if isinstance(item, Mapping):
        data = _normalize_mapping(item)
    elif hasattr(item, "model_dump"):
        data = _normalize_mapping(item.model_dump(by_alias=True))
    else:
        raise RequestValidationError(
            f"Invalid diff at position {position}: expected object, got {type(item).__name__}"
        )

    old_text = data.get("oldText", data.get("old_text"))
    new_text = data.get("newText", data.get("new_text"))
    if not isinstance(old_text, str) or not isinstance(new_text, str):
        raise RequestValidationError(
            f"Invalid diff at position {position}: oldText and newText must be strings, "
            f"got {type(old_text).__name__} and {type(new_text).__name__}"
        )
    return EditRequest(old_text=old_text, new_text=new_text)


def unmatched_error(threshold: float) -> str:
    return f"No matching text found (similarity threshold: {threshold * 100:.0f}%)"


def apply_edits(
    document: str,
    edits: Iterable[Any],
    threshold: float | None = None,
    *,
    resolver: MatchResolver | None = None,
    cancellation: CancellationToken | None = None,
) -> PatchResult:
    """
    将一批 {oldText, newText} 编辑应用到文档。

    所有匹配都针对原始文档计算；匹配结果按 index 降序依次替换，
    保证后应用的编辑（偏移更小）不受已应用编辑的影响。

    Args:
        document: 原始文档（不会被就地修改）
        edits: 编辑请求列表
        threshold: 相似度阈值，缺省时使用配置值
        resolver: 复用的 MatchResolver
        cancellation: 协作式取消令牌，在逐条编辑之间检查

    Returns:
        PatchResult，results 顺序与输入一致

    Raises:
        RequestValidationError: document 不是字符串或编辑格式错误
        PatchCancelledError: 取消令牌被触发
    """
    if not isinstance(document, str):
        raise RequestValidationError(f"Invalid content type: expected string, got {type(document).__name__}")
    if isinstance(edits, (str, bytes, Mapping)) or not isinstance(edits, Iterable):
        raise RequestValidationError(f"Invalid diffs type: expected array, got {type(edits).__name__}")

    requests = [_coerce_edit(position, item) for position, item in enumerate(edits)]
    resolver = resolver or MatchResolver()
    settings: MatchingSettings = resolver.settings
    if threshold is None:
        threshold = settings.similarity_threshold
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0.0 <= threshold <= 1.0:
        raise RequestValidationError(f"Invalid threshold: expected a number within [0, 1], got {threshold}")

    if len(document) > settings.large_document_warning_chars:
        logging.warning(
            "⚠️  文档过大 (%s 字符 ≈ %sKB)，补丁匹配可能较慢",
            f"{len(document):,}",
            len(document) // 1024,
        )

    logging.info("--- 开始应用 %s 条补丁 (阈值 %.2f) ---", len(requests), threshold)

    outcomes: list[EditOutcome | None] = [None] * len(requests)
    matched: list[tuple[int, MatchCandidate]] = []
    for position, request in enumerate(requests):
        if cancellation is not None:
            cancellation.raise_if_cancelled()
        candidate = resolver.find_best_match(document, request.old_text, threshold)
        if candidate is None:
            logging.debug("  - 补丁 %s 未命中: '%s...'", position + 1, request.old_text[:50])
            outcomes[position] = EditOutcome(
                old_text=request.old_text,
                new_text=request.new_text,
                applied=False,
                error=unmatched_error(threshold),
            )
            continue
        if document[candidate.index : candidate.end] != candidate.matched_text:
            raise PatchEngineError(
                f"Resolved match for diff {position} does not agree with the document at "
                f"[{candidate.index}, {candidate.end})"
            )
        matched.append((position, candidate))

    if cancellation is not None:
        cancellation.raise_if_cancelled()

    # 从文档末尾向前替换，已应用的编辑不会影响尚未应用的偏移
    matched.sort(key=lambda item: (-item[1].index, item[0]))
    content = document
    lowest_applied_start: int | None = None
    for position, candidate in matched:
        request = requests[position]
        if lowest_applied_start is not None and candidate.end > lowest_applied_start:
            logging.debug("  - 补丁 %s 与已应用的补丁重叠，跳过", position + 1)
            outcomes[position] = EditOutcome(
                old_text=request.old_text,
                new_text=request.new_text,
                applied=False,
                index=candidate.index,
                similarity=candidate.similarity,
                matched_text=candidate.matched_text,
                strategy=candidate.strategy.value,
                error=(
                    f"Matched text at [{candidate.index}, {candidate.end}) overlaps "
                    f"another edit that was already applied"
                ),
            )
            continue

        content = content[: candidate.index] + request.new_text + content[candidate.end :]
        lowest_applied_start = candidate.index
        outcomes[position] = EditOutcome(
            old_text=request.old_text,
            new_text=request.new_text,
            applied=True,
            index=candidate.index,
            similarity=candidate.similarity,
            matched_text=candidate.matched_text,
            strategy=candidate.strategy.value,
        )
        if candidate.similarity < 1.0:
            logging.info(
                "    · 补丁 %s 命中 (%s · similarity=%.2f)",
                position + 1,
                candidate.strategy.value,
                candidate.similarity,
            )

    result = PatchResult(content=content, results=[outcome for outcome in outcomes if outcome is not None])

    logging.info("--- 所有补丁应用完毕 ---")
    logging.info("  · 成功命中的补丁条数：%s", result.applied_count)
    if result.failed_count:
        logging.info("  · 未命中的补丁条数：%s", result.failed_count)
        ErrorHandler.handle_error(
            ErrorType.MATCH_FAILURE,
            {"diff_count": len(requests), "content_length": len(document)},
            technical_details=f"{result.failed_count}/{len(requests)} diffs were not applied",
        )
    return result


__all__ = ["EditOutcome", "EditRequest", "PatchResult", "apply_edits", "unmatched_error"]
