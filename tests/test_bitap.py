"""测试 Bitap 近似定位"""

import pytest

from core.bitap import ApproximateLocator, estimate_location


class TestApproximateLocator:
    """测试 ApproximateLocator"""

    def test_exact_match(self):
        """测试精确匹配"""
        match = ApproximateLocator().locate("hello world", "world", 0)

        assert match is not None
        assert match.index == 6
        assert match.errors == 0
        assert match.score == 1.0
        assert match.matched_text == "world"

    def test_single_substitution(self):
        """测试单个替换错误"""
        match = ApproximateLocator().locate("the quick brown fox", "quack", 4)

        assert match is not None
        assert match.index == 4
        assert match.errors == 1
        assert match.score == pytest.approx(0.8)
        assert match.matched_text == "quick"

    def test_transposed_letters(self):
        """测试相邻字母交换"""
        haystack = "The quick brown fox jumps over the lazy dog."
        match = ApproximateLocator().locate(haystack, "quikc brown fox", 4)

        assert match is not None
        assert match.index == 4
        assert match.errors == 2

    def test_no_match(self):
        """测试无共同字符时返回 None"""
        assert ApproximateLocator().locate("abcdef", "xyz", 0) is None

    def test_empty_inputs(self):
        """测试空输入"""
        locator = ApproximateLocator()
        assert locator.locate("", "abc") is None
        assert locator.locate("abc", "") is None

    def test_pattern_longer_than_machine_word(self):
        """测试超过64个字符的模式"""
        body = "".join(chr(ord("a") + (i * 7) % 26) for i in range(100))
        haystack = "x" * 150 + body + "y" * 50
        pattern = body[:40] + "Z" + body[41:]

        match = ApproximateLocator().locate(haystack, pattern, 150)

        assert match is not None
        assert match.index == 150
        assert match.errors == 1

    def test_distance_penalty_prefers_nearby(self):
        """测试距离惩罚优先选择靠近预期位置的匹配"""
        haystack = "abcde" + "-" * 200 + "abcde"
        match = ApproximateLocator().locate(haystack, "abcde", 200)

        assert match is not None
        assert match.index == 205

    def test_invalid_threshold(self):
        """测试非法阈值"""
        with pytest.raises(ValueError):
            ApproximateLocator(match_threshold=1.5)


class TestEstimateLocation:
    """测试预期位置估计"""

    def test_longest_block(self):
        """测试根据最长公共块估计起点"""
        haystack = "The quick brown fox jumps over the lazy dog."
        assert estimate_location(haystack, "quikc brown fox") == 4

    def test_no_common_characters(self):
        """测试无公共字符时返回0"""
        assert estimate_location("abc", "xyz") == 0

    def test_clamped_at_zero(self):
        """测试估计值不小于0"""
        assert estimate_location("brown fox", "the quick brown fox") == 0
