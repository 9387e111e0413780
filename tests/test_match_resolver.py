"""测试三级匹配策略"""

import pytest

from config.config import MatchingSettings
from core.match_resolver import MatchResolver, MatchStrategy, find_best_match

SENTENCE = "The quick brown fox jumps over the lazy dog."


class TestExactTier:
    """测试精确匹配"""

    def test_exact_match(self):
        """测试精确命中"""
        candidate = find_best_match(SENTENCE, "quick brown fox")

        assert candidate is not None
        assert candidate.index == 4
        assert candidate.similarity == 1.0
        assert candidate.strategy is MatchStrategy.EXACT
        assert candidate.matched_text == "quick brown fox"

    def test_first_occurrence_wins(self):
        """测试返回第一次出现的位置"""
        candidate = find_best_match("abc abc abc", "abc")

        assert candidate is not None
        assert candidate.index == 0
        assert candidate.strategy is MatchStrategy.EXACT

    def test_exact_even_at_threshold_one(self):
        """测试阈值为1时精确匹配仍然成功"""
        candidate = find_best_match(SENTENCE, "lazy dog", threshold=1.0)

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.EXACT


class TestNormalizedTier:
    """测试规范化匹配"""

    def test_full_width_space(self):
        """测试全角空格与半角空格"""
        haystack = "前文。速い　狐が走る。"
        candidate = find_best_match(haystack, "速い 狐")

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.NORMALIZED
        assert candidate.similarity == pytest.approx(0.95)
        assert candidate.matched_text == "速い　狐"
        assert haystack[candidate.index : candidate.end] == "速い　狐"

    def test_line_endings_and_whitespace(self):
        """测试换行符与空白差异"""
        haystack = "intro\r\nline one\r\n   line two\r\noutro"
        candidate = find_best_match(haystack, "line one\nline two")

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.NORMALIZED
        assert candidate.matched_text == "line one\r\n   line two"

    def test_full_width_latin(self):
        """测试全角字母数字"""
        haystack = "版本 ＶＥＲ２ 已发布"
        candidate = find_best_match(haystack, "VER2")

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.NORMALIZED
        assert candidate.matched_text == "ＶＥＲ２"

    def test_configured_similarity(self):
        """测试规范化得分来自配置"""
        resolver = MatchResolver(MatchingSettings(normalized_similarity=0.9))
        candidate = resolver.find_best_match("速い　狐", "速い 狐")

        assert candidate is not None
        assert candidate.similarity == pytest.approx(0.9)


class TestFuzzyTier:
    """测试模糊匹配"""

    def test_transposed_letters(self):
        """测试字母交换的模糊命中"""
        candidate = find_best_match(SENTENCE, "quikc brown fox", threshold=0.6)

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.FUZZY
        assert candidate.index == 4
        assert candidate.matched_text == "quick brown fox"
        assert candidate.similarity == pytest.approx((13 / 15) ** 2)
        assert SENTENCE[candidate.index : candidate.end] == candidate.matched_text

    def test_fuzzy_below_threshold(self):
        """测试模糊得分低于阈值时拒绝"""
        assert find_best_match(SENTENCE, "quikc brown fox", threshold=0.8) is None

    def test_matched_text_never_normalized(self):
        """测试返回的文本总是原文切片"""
        haystack = "Ｔｈｅ　ｑｕｉｃｋ brown fox"
        candidate = find_best_match(haystack, "The quikc brown fox", threshold=0.5)

        assert candidate is not None
        assert haystack[candidate.index : candidate.end] == candidate.matched_text

    def test_long_reworded_paragraph(self):
        """测试长段落改写后仍能定位到原文"""
        words = [f"word{i}" for i in range(120)]
        original = " ".join(words)
        reworded = " ".join(word.upper() if i % 20 == 5 else word for i, word in enumerate(words))
        filler = "Lorem ipsum dolor sit amet. " * 100
        haystack = filler + original + ". " + filler

        candidate = find_best_match(haystack, reworded)

        assert len(reworded) >= 700
        assert candidate is not None
        assert candidate.strategy is MatchStrategy.FUZZY
        assert candidate.index == len(filler)
        assert candidate.matched_text == original


class TestNoMatch:
    """测试无匹配的情况"""

    def test_absent_phrase(self):
        """测试完全不存在的短语"""
        assert find_best_match(SENTENCE, "nonexistent phrase entirely absent") is None

    @pytest.mark.parametrize("needle", ["", "   ", "\r\n\t"])
    def test_blank_needle(self, needle):
        """测试空白 needle 不匹配"""
        assert find_best_match(SENTENCE, needle) is None

    def test_empty_haystack(self):
        """测试空文档"""
        assert find_best_match("", "anything") is None

    def test_default_threshold_from_settings(self):
        """测试未指定阈值时使用配置值"""
        resolver = MatchResolver(MatchingSettings(similarity_threshold=0.6))
        candidate = resolver.find_best_match(SENTENCE, "quikc brown fox")

        assert candidate is not None
        assert candidate.strategy is MatchStrategy.FUZZY
