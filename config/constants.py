"""
配置常量模块

集中管理补丁引擎的阈值、窗口大小和默认值。
"""


# ==================== 匹配参数 ====================

class MatchDefaults:
    """三级匹配策略的默认参数"""

    # 相似度阈值（低于该值的候选被拒绝）
    SIMILARITY_THRESHOLD: float = 0.7

    # 规范化精确匹配的折扣相似度（略低于真正的精确匹配）
    NORMALIZED_SIMILARITY: float = 0.95

    # Bitap 综合评分上限（0.0 = 仅精确匹配，1.0 = 任意匹配）
    FUZZY_MATCH_THRESHOLD: float = 0.5

    # 距离惩罚尺度（字符）
    FUZZY_MATCH_DISTANCE: int = 1000

    # 模糊结果细化窗口：原文偏移之前/之后的字符数
    FUZZY_WINDOW_BEFORE: int = 10
    FUZZY_WINDOW_AFTER: int = 20

    # 细化窗口候选长度相对 needle 长度的比例
    FUZZY_MIN_LENGTH_RATIO: float = 0.5
    FUZZY_MAX_LENGTH_RATIO: float = 1.5

    # 超过该长度的文档会记录性能警告
    LARGE_DOCUMENT_WARNING_CHARS: int = 1_000_000


# ==================== Worker ====================

class WorkerDefaults:
    """消息边界相关默认值"""

    # 调用方等待结果的超时（秒）
    TIMEOUT_SECONDS: float = 30.0

    # 开始处理时发送的进度消息
    PROGRESS_MESSAGE: str = "Patch computation started..."


# ==================== 日志 ====================

class LoggingDefaults:
    """日志输出默认值"""

    LEVEL: str = "INFO"
    CONSOLE_LEVEL: str = "WARNING"
    SESSION_BASE_DIR: str = "./sessions"


__all__ = ["LoggingDefaults", "MatchDefaults", "WorkerDefaults"]
