"""
三级匹配策略：精确 -> 规范化精确 -> 模糊（Bitap + 窗口细化）。

所有返回的 MatchCandidate 的 index / matched_text 都以原文坐标表示，
规范化文本只用于搜索。
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import cached_property

from config.config import MatchingSettings
from core.bitap import ApproximateLocator, estimate_location
from core.similarity import prefix_distances
from utils.performance_monitor import measure_time
from utils.text_normalizer import NormalizedText, normalize_text, normalize_with_offsets

logger = logging.getLogger(__name__)


class MatchStrategy(str, Enum):
    """命中匹配的策略层级"""

    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class MatchCandidate:
    index: int
    similarity: float
    matched_text: str
    strategy: MatchStrategy

    @property
    def end(self) -> int:
        return self.index + len(self.matched_text)


@dataclass
class _SearchContext:
    haystack: str
    needle: str
    threshold: float

    @cached_property
    def normalized_haystack(self) -> NormalizedText:
        return normalize_with_offsets(self.haystack)

    @cached_property
    def normalized_needle(self) -> str:
        return normalize_text(self.needle)


Strategy = Callable[[_SearchContext], MatchCandidate | None]


class MatchResolver:
    """
    为单条编辑请求在文档中定位最佳匹配。

    实例不保存任何跨调用状态，可在同一批次内重复使用。
    """

    def __init__(self, settings: MatchingSettings | None = None):
        self.settings = settings or MatchingSettings()
        self._locator = ApproximateLocator(
            match_threshold=self.settings.fuzzy_match_threshold,
            match_distance=self.settings.fuzzy_match_distance,
        )

    def find_best_match(self, haystack: str, needle: str, threshold: float | None = None) -> MatchCandidate | None:
        """
        依次尝试精确、规范化精确、模糊三种策略，第一个达到阈值的结果胜出。

        Args:
            haystack: 原始文档
            needle: 期望出现在文档中的文本
            threshold: 相似度阈值，缺省时使用配置值

        Returns:
            MatchCandidate，三种策略均未达到阈值时返回 None
        """
        if threshold is None:
            threshold = self.settings.similarity_threshold
        if not needle or not needle.strip():
            logger.debug("空白的 oldText 不参与匹配")
            return None

        context = _SearchContext(haystack=haystack, needle=needle, threshold=threshold)
        strategies: tuple[Strategy, ...] = (
            self._try_exact,
            self._try_normalized,
            self._try_fuzzy,
        )
        for strategy in strategies:
            candidate = strategy(context)
            if candidate is not None and candidate.similarity >= threshold:
                return candidate
        return None

    # --- Strategy implementations -------------------------------------------------

    def _try_exact(self, context: _SearchContext) -> MatchCandidate | None:
        index = context.haystack.find(context.needle)
        if index == -1:
            return None
        return MatchCandidate(index, 1.0, context.needle, MatchStrategy.EXACT)

    def _try_normalized(self, context: _SearchContext) -> MatchCandidate | None:
        needle = context.normalized_needle
        normalized = context.normalized_haystack
        if not needle:
            return None
        normalized_index = normalized.text.find(needle)
        if normalized_index == -1:
            return None

        start, end = normalized.to_original_span(normalized_index, normalized_index + len(needle))
        logger.debug("规范化匹配命中: normalized=%s -> original=[%s, %s)", normalized_index, start, end)
        return MatchCandidate(
            start,
            self.settings.normalized_similarity,
            context.haystack[start:end],
            MatchStrategy.NORMALIZED,
        )

    def _try_fuzzy(self, context: _SearchContext) -> MatchCandidate | None:
        needle = context.normalized_needle
        normalized = context.normalized_haystack
        if not needle or not normalized.text:
            return None

        hint = estimate_location(normalized.text, needle)
        located = self._locator.locate(normalized.text, needle, hint)
        if located is None or located.score < context.threshold:
            logger.debug(
                "模糊定位未达到阈值 (score=%s, threshold=%.2f)",
                f"{located.score:.2f}" if located else "n/a",
                context.threshold,
            )
            return None

        original_offset = normalized.to_original_index(located.index)
        with measure_time("模糊窗口细化"):
            refined = self._refine_window(context, original_offset)
        if refined is None:
            return None

        index, window_similarity, matched_text = refined
        return MatchCandidate(
            index,
            window_similarity * located.score,
            matched_text,
            MatchStrategy.FUZZY,
        )

    # --- Helper utilities --------------------------------------------------------

    def _refine_window(self, context: _SearchContext, original_offset: int) -> tuple[int, float, str] | None:
        """
        在原文偏移附近的有限窗口中寻找与规范化 needle 最相似的字面子串。

        长度范围为 needle 长度的 [min_ratio, max_ratio] 倍；首尾为空白的候选会被跳过，
        避免替换时吞掉相邻的空格。窗口只规范化一次，每个起点用一次位并行计算
        得到所有候选长度的编辑距离。
        """
        settings = self.settings
        haystack = context.haystack
        needle_length = len(context.needle)
        target = context.normalized_needle
        threshold = context.threshold

        window_start = max(0, original_offset - settings.fuzzy_window_before)
        window_end = min(len(haystack), original_offset + needle_length + settings.fuzzy_window_after)
        window = haystack[window_start:window_end]
        normalized = normalize_with_offsets(window)
        text, offsets = normalized.text, normalized.offsets
        min_length = max(int(needle_length * settings.fuzzy_min_length_ratio), 1)
        max_length = int(needle_length * settings.fuzzy_max_length_ratio)

        # 规范化长度 c 的候选至少相差 |c - len(target)| 个字符，
        # 因此 c < threshold * len(target) 或 c > len(target) / threshold 时不可能达到阈值
        min_consumed = math.ceil(threshold * len(target)) - 1
        max_consumed = int(len(target) / threshold) + 1 if threshold > 0 else len(text)

        best: tuple[int, float, str] | None = None
        best_similarity = 0.0
        for k, start in enumerate(offsets):
            if best_similarity >= 1.0:
                break
            if text[k] == " ":
                continue
            limit = min(max_length, len(window) - start)
            if limit < min_length:
                continue
            stop = min(normalized.count_before(start + limit), k + max_consumed)
            if stop - k < min_consumed:
                continue

            distances = prefix_distances(target, text[k:stop])
            for end in range(k, stop):
                if text[end] == " ":
                    continue
                length = offsets[end] + 1 - start
                if length < min_length:
                    continue
                consumed = end - k + 1
                longest = max(consumed, len(target))
                score = (longest - distances[consumed]) / longest
                if score > best_similarity and score >= threshold:
                    best_similarity = score
                    best = (window_start + start, score, window[start : start + length])

        return best


def find_best_match(
    haystack: str,
    needle: str,
    threshold: float = 0.7,
    settings: MatchingSettings | None = None,
) -> MatchCandidate | None:
    """便捷函数：使用一次性 MatchResolver 查找最佳匹配"""
    return MatchResolver(settings).find_best_match(haystack, needle, threshold)


__all__ = ["MatchCandidate", "MatchResolver", "MatchStrategy", "find_best_match"]
