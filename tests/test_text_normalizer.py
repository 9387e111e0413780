"""
文本规范化模块的单元测试
"""

import unittest

from utils.text_normalizer import (
    collapse_whitespace,
    fold_full_width,
    normalize_line_endings,
    normalize_text,
    normalize_with_offsets,
)

SAMPLES = [
    "",
    "plain text",
    "  leading and trailing  ",
    "line one\r\nline two\rline three\n\n\nline four",
    "速い　狐",
    "ＡＢＣ１２３（テスト）！？",
    "tabs\tand　mixed \r\n whitespace",
    "全角〜波浪号，句号．冒号：分号；",
]


class TestNormalizeSteps(unittest.TestCase):
    """测试单个规范化步骤"""

    def test_line_endings(self):
        """测试统一换行符"""
        self.assertEqual(normalize_line_endings("a\r\nb\rc\n"), "a\nb\nc\n")

    def test_collapse_whitespace(self):
        """测试空白压缩与首尾去除"""
        self.assertEqual(collapse_whitespace("  hello \n\t  world  "), "hello world")

    def test_collapse_full_width_space(self):
        """测试全角空格被视为空白"""
        self.assertEqual(collapse_whitespace("速い　狐"), "速い 狐")

    def test_fold_full_width(self):
        """测试全角转半角"""
        self.assertEqual(fold_full_width("ＡＢＣ１２３"), "ABC123")
        self.assertEqual(fold_full_width("（ａ）［ｂ］｛ｃ｝"), "(a)[b]{c}")
        self.assertEqual(fold_full_width("〜－＿！？：；，．"), "~-_!?:;,.")

    def test_fold_keeps_cjk(self):
        """测试中日文字符不被折叠"""
        self.assertEqual(fold_full_width("中文かな"), "中文かな")


class TestNormalizeText(unittest.TestCase):
    """测试完整规范化"""

    def test_empty(self):
        """测试空字符串"""
        self.assertEqual(normalize_text(""), "")

    def test_combined(self):
        """测试组合规范化"""
        self.assertEqual(normalize_text("  Ｈｅｌｌｏ\r\n\r\n  ｗｏｒｌｄ！ "), "Hello world!")

    def test_idempotent(self):
        """测试幂等性"""
        for sample in SAMPLES:
            once = normalize_text(sample)
            self.assertEqual(normalize_text(once), once, sample)


class TestNormalizeWithOffsets:
    """测试带位置映射的规范化"""

    def test_text_matches_normalize_text(self):
        """测试映射版本与整串规范化一致"""
        for sample in SAMPLES:
            assert normalize_with_offsets(sample).text == normalize_text(sample)

    def test_offsets_point_to_source_characters(self):
        """测试每个规范化字符都映射到对应的原文字符"""
        for sample in SAMPLES:
            normalized = normalize_with_offsets(sample)
            assert len(normalized.offsets) == len(normalized.text)
            for char, offset in zip(normalized.text, normalized.offsets):
                source = sample[offset]
                if char == " ":
                    assert source.isspace()
                else:
                    assert fold_full_width(source) == char

    def test_offsets_strictly_increasing(self):
        """测试映射单调递增"""
        normalized = normalize_with_offsets("a \r\n b　ｃ")
        assert list(normalized.offsets) == sorted(set(normalized.offsets))

    def test_span_covers_whitespace_run(self):
        """测试区间映射包含被压缩的原文空白"""
        text = "xx速い　狐yy"
        normalized = normalize_with_offsets(text)
        start = normalized.text.find("速い 狐")
        original_start, original_end = normalized.to_original_span(start, start + len("速い 狐"))
        assert text[original_start:original_end] == "速い　狐"

    def test_span_across_crlf(self):
        """测试跨越 CRLF 的区间映射"""
        text = "line one\r\nline two"
        normalized = normalize_with_offsets(text)
        assert normalized.to_original_span(0, len(normalized.text)) == (0, len(text))

    def test_to_original_index_past_end(self):
        """测试越界位置映射到原文末尾"""
        normalized = normalize_with_offsets("abc  ")
        assert normalized.to_original_index(10) == 5

    def test_count_before(self):
        """测试原文前缀对应的规范化字符数"""
        normalized = normalize_with_offsets("ab   cd")
        assert normalized.count_before(2) == 2
        assert normalized.count_before(6) == 4
        assert normalized.count_before(7) == 5
