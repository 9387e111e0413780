"""
位并行近似子串搜索（Bitap）。

在（规范化后的）文本中寻找与 pattern 最匹配的起始位置，
综合评分 = 错误率 + 与预期位置的距离惩罚，允许有限数量的插入/删除/替换。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from difflib import SequenceMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocatorMatch:
    index: int
    score: float
    matched_text: str
    errors: int


def estimate_location(haystack: str, pattern: str) -> int:
    """
    根据最长公共块估计 pattern 在 haystack 中的预期起点。

    没有公共字符时返回 0。
    """
    if not haystack or not pattern:
        return 0
    matcher = SequenceMatcher(None, haystack, pattern, autojunk=False)
    block = matcher.find_longest_match(0, len(haystack), 0, len(pattern))
    if block.size == 0:
        return 0
    return max(0, min(len(haystack), block.a - block.b))


class ApproximateLocator:
    """
    Bitap 近似匹配器。

    Args:
        match_threshold: 综合评分上限（0.0 = 仅精确匹配，1.0 = 任意匹配）
        match_distance: 距离惩罚的尺度；偏离预期位置 match_distance 个字符相当于整串错误
    """

    def __init__(self, match_threshold: float = 0.5, match_distance: int = 1000):
        if not 0.0 <= match_threshold <= 1.0:
            raise ValueError(f"match_threshold must be within [0, 1], got {match_threshold}")
        if match_distance < 0:
            raise ValueError(f"match_distance must be >= 0, got {match_distance}")
        self.match_threshold = match_threshold
        self.match_distance = match_distance

    @staticmethod
    def _alphabet(pattern: str) -> dict[str, int]:
        alphabet: dict[str, int] = {}
        length = len(pattern)
        for i, char in enumerate(pattern):
            alphabet[char] = alphabet.get(char, 0) | (1 << (length - i - 1))
        return alphabet

    def _score(self, errors: int, location: int, expected: int, pattern_length: int) -> float:
        accuracy = errors / pattern_length
        proximity = abs(expected - location)
        if not self.match_distance:
            return 1.0 if proximity else accuracy
        return accuracy + proximity / self.match_distance

    def locate(self, haystack: str, pattern: str, loc: int = 0) -> LocatorMatch | None:
        """
        在 haystack 中搜索 pattern 的最佳起点。

        Args:
            haystack: 被搜索的文本
            pattern: 目标片段
            loc: 预期位置

        Returns:
            LocatorMatch（score 为 1 - 错误数/模式长度），找不到时返回 None
        """
        if not haystack or not pattern:
            return None

        pattern_length = len(pattern)
        text_length = len(haystack)
        loc = max(0, min(loc, text_length))
        alphabet = self._alphabet(pattern)

        score_threshold = self.match_threshold
        # 附近的精确匹配可以直接收紧阈值
        exact = haystack.find(pattern, loc)
        if exact != -1:
            score_threshold = min(self._score(0, exact, loc, pattern_length), score_threshold)
            exact = haystack.rfind(pattern, 0, loc + 2 * pattern_length)
            if exact != -1:
                score_threshold = min(self._score(0, exact, loc, pattern_length), score_threshold)

        match_mask = 1 << (pattern_length - 1)
        best_loc = -1
        best_errors = 0
        bin_max = pattern_length + text_length
        last_rd: list[int] = []

        for errors in range(pattern_length):
            # 二分搜索：在当前错误数下最多能偏离 loc 多远
            bin_min = 0
            bin_mid = bin_max
            while bin_min < bin_mid:
                if self._score(errors, loc + bin_mid, loc, pattern_length) <= score_threshold:
                    bin_min = bin_mid
                else:
                    bin_max = bin_mid
                bin_mid = (bin_max - bin_min) // 2 + bin_min
            bin_max = bin_mid

            start = max(1, loc - bin_mid + 1)
            finish = min(loc + bin_mid, text_length) + pattern_length

            rd = [0] * (finish + 2)
            rd[finish + 1] = (1 << errors) - 1
            j = finish
            while j >= start:
                char_match = alphabet.get(haystack[j - 1], 0) if j - 1 < text_length else 0
                if errors == 0:
                    rd[j] = ((rd[j + 1] << 1) | 1) & char_match
                else:
                    rd[j] = (
                        (((rd[j + 1] << 1) | 1) & char_match)
                        | (((last_rd[j + 1] | last_rd[j]) << 1) | 1)
                        | last_rd[j + 1]
                    )
                if rd[j] & match_mask:
                    score = self._score(errors, j - 1, loc, pattern_length)
                    if score <= score_threshold:
                        score_threshold = score
                        best_loc = j - 1
                        best_errors = errors
                        if best_loc > loc:
                            # 越过 loc 之后，不再超过当前与 loc 的距离
                            start = max(1, 2 * loc - best_loc)
                        else:
                            break
                j -= 1

            # 更多错误不可能得到更好的分数
            if self._score(errors + 1, loc, loc, pattern_length) > score_threshold:
                break
            last_rd = rd

        if best_loc == -1:
            logger.debug("Bitap 未找到匹配 (pattern_length=%s, loc=%s)", pattern_length, loc)
            return None

        return LocatorMatch(
            index=best_loc,
            score=1.0 - best_errors / pattern_length,
            matched_text=haystack[best_loc : best_loc + pattern_length],
            errors=best_errors,
        )


__all__ = ["ApproximateLocator", "LocatorMatch", "estimate_location"]
