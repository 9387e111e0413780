"""
文本规范化模块

为补丁匹配提供仅用于比较的文本规范化：统一换行、压缩空白、全角转半角。
规范化结果只用于定位候选匹配，绝不会写回文档或作为 matchedText 返回。
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_left
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LINE_ENDING_PATTERN = re.compile(r"\r\n?")
WHITESPACE_RUN_PATTERN = re.compile(r"\s+")

# 全角字符 -> 半角字符
FULL_WIDTH_TABLE: dict[str, str] = {chr(code): chr(code - 0xFEE0) for code in range(0xFF01, 0xFF5F)}
FULL_WIDTH_TABLE.update(
    {
        "　": " ",  # 全角空格
        "〜": "~",
        "～": "~",
        "－": "-",
        "＿": "_",
        "！": "!",
        "？": "?",
        "（": "(",
        "）": ")",
        "［": "[",
        "］": "]",
        "｛": "{",
        "｝": "}",
        "＜": "<",
        "＞": ">",
        "：": ":",
        "；": ";",
        "，": ",",
        "．": ".",
    }
)
_FULL_WIDTH_TRANSLATION = str.maketrans(FULL_WIDTH_TABLE)


def normalize_line_endings(text: str) -> str:
    """将 CRLF / CR 统一为 LF"""
    if not text:
        return text
    return LINE_ENDING_PATTERN.sub("\n", text)


def collapse_whitespace(text: str) -> str:
    """
    将连续空白（含换行与全角空格）压缩为单个空格，并去除首尾空白

    Args:
        text: 原始文本

    Returns:
        压缩后的文本
    """
    if not text:
        return text
    return WHITESPACE_RUN_PATTERN.sub(" ", text).strip()


def fold_full_width(text: str) -> str:
    """按固定映射表将全角拉丁字母、数字和标点折叠为半角"""
    if not text:
        return text
    return text.translate(_FULL_WIDTH_TRANSLATION)


def normalize_text(text: str) -> str:
    """
    规范化文本用于匹配比较

    按固定顺序执行：统一换行 -> 压缩空白 -> 全角转半角。
    该变换是幂等的：normalize_text(normalize_text(x)) == normalize_text(x)。

    Args:
        text: 原始文本

    Returns:
        规范化后的文本
    """
    if not text:
        return ""
    return fold_full_width(collapse_whitespace(normalize_line_endings(text)))


@dataclass(frozen=True)
class NormalizedText:
    """
    规范化文本及其到原文的位置映射。

    offsets[i] 是规范化文本第 i 个字符在原文中的下标；被压缩的空白段映射到该段的第一个空白字符。
    """

    text: str
    offsets: tuple[int, ...]
    source_length: int

    def __len__(self) -> int:
        return len(self.text)

    def to_original_index(self, index: int) -> int:
        """将规范化文本中的起始位置映射回原文位置"""
        if index < 0:
            raise ValueError(f"normalized index must be >= 0, got {index}")
        if index >= len(self.offsets):
            return self.source_length
        return self.offsets[index]

    def to_original_span(self, start: int, end: int) -> tuple[int, int]:
        """将规范化文本中的半开区间 [start, end) 映射回原文的半开区间"""
        if end < start:
            raise ValueError(f"invalid normalized span [{start}, {end})")
        original_start = self.to_original_index(start)
        if end == start:
            return original_start, original_start
        original_end = self.offsets[min(end, len(self.offsets)) - 1] + 1
        return original_start, original_end

    def count_before(self, original_index: int) -> int:
        """原文前 original_index 个字符贡献的规范化字符数"""
        return bisect_left(self.offsets, original_index)


def normalize_with_offsets(text: str) -> NormalizedText:
    """
    对整段文本执行与 normalize_text 相同的规范化，同时记录每个规范化字符的原文下标。

    换行统一和空白压缩在同一次遍历中完成（CR/LF 本身即空白），
    因此映射与整串规范化的结果始终一致。
    """
    chars: list[str] = []
    offsets: list[int] = []
    run_start: int | None = None

    for index, ch in enumerate(text or ""):
        if ch.isspace():
            if run_start is None:
                run_start = index
            continue
        if run_start is not None:
            if chars:
                chars.append(" ")
                offsets.append(run_start)
            run_start = None
        chars.append(FULL_WIDTH_TABLE.get(ch, ch))
        offsets.append(index)

    return NormalizedText("".join(chars), tuple(offsets), len(text or ""))


__all__ = [
    "FULL_WIDTH_TABLE",
    "NormalizedText",
    "collapse_whitespace",
    "fold_full_width",
    "normalize_line_endings",
    "normalize_text",
    "normalize_with_offsets",
]
