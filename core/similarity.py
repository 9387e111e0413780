"""编辑距离与相似度评分。"""

from __future__ import annotations


def levenshtein_distance(left: str, right: str) -> int:
    """
    经典动态规划编辑距离（插入/删除/替换代价均为1）。

    完整计算两个字符串，不做提前退出；结果位于 [0, max(len(left), len(right))]。
    """
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            if left_char == right_char:
                current.append(previous[j - 1])
            else:
                current.append(
                    min(
                        previous[j - 1] + 1,  # 替换
                        current[j - 1] + 1,  # 插入
                        previous[j] + 1,  # 删除
                    )
                )
        previous = current
    return previous[-1]


def similarity(left: str, right: str) -> float:
    """
    归一化相似度：(maxLen - distance) / maxLen。

    similarity(x, x) == 1，similarity("", "") == 1，且对两个参数对称。
    """
    max_len = max(len(left), len(right))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein_distance(left, right)) / max_len


def prefix_distances(pattern: str, text: str) -> list[int]:
    """
    计算 pattern 与 text 每个前缀 text[:k]（k = 0..len(text)）的编辑距离。

    使用位并行的逐列计算（Myers / Hyyrö），pattern 的每一行占一个比特，
    每读入 text 的一个字符只需常数次整数运算，总代价约为 O(len(text) * len(pattern) / 字长)。

    Returns:
        长度为 len(text) + 1 的列表，第 k 项为 levenshtein_distance(pattern, text[:k])
    """
    length = len(pattern)
    if length == 0:
        return list(range(len(text) + 1))

    mask = (1 << length) - 1
    last_row = 1 << (length - 1)
    peq: dict[str, int] = {}
    for i, char in enumerate(pattern):
        peq[char] = peq.get(char, 0) | (1 << i)

    # 垂直差分：pv 为 +1，mv 为 -1；初始列 D[i][0] = i
    pv = mask
    mv = 0
    score = length
    distances = [score]
    for char in text:
        eq = peq.get(char, 0)
        xv = eq | mv
        xh = ((((eq & pv) + pv) ^ pv) | eq) & mask
        ph = (mv | ~(xh | pv)) & mask
        mh = pv & xh
        if ph & last_row:
            score += 1
        elif mh & last_row:
            score -= 1
        # 第0行 D[0][k] = k，水平差分恒为 +1
        ph = ((ph << 1) | 1) & mask
        mh = (mh << 1) & mask
        pv = (mh | ~(xv | ph)) & mask
        mv = ph & xv
        distances.append(score)
    return distances


__all__ = ["levenshtein_distance", "prefix_distances", "similarity"]
