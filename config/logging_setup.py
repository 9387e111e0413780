from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

from .constants import LoggingDefaults

if TYPE_CHECKING:
    from .config import Config  # pragma: no cover


def _resolve_console_level(configured: str | None = None, default: str = LoggingDefaults.CONSOLE_LEVEL) -> str:
    """确定控制台日志级别"""
    explicit_level = configured or os.getenv("CONSOLE_LOG_LEVEL")
    if explicit_level:
        return explicit_level.strip().upper()
    return default


def _level_name(logging_level: str | int) -> str:
    # 将 int 级别转换为 str（兼容标准 logging.INFO 等常量）
    if isinstance(logging_level, int):
        level_name = logging.getLevelName(logging_level)
        if isinstance(level_name, str) and not level_name.startswith("Level"):
            return level_name
        return "INFO"
    return logging_level.strip().upper()


def _is_json_line(message: str) -> bool:
    return message.startswith("{") and message.endswith("}")


class InterceptHandler(logging.Handler):
    """将标准 logging 记录转发给 loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        # 获取对应的 loguru 级别
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 找到调用者
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_session_logging(config: Config, logging_level: str | int = "INFO") -> None:
    """为当前会话配置日志输出（使用 loguru，自动拦截标准 logging）"""
    level = _level_name(logging_level)
    session_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config.session_dir = os.path.join(config.session_base_dir, f"session_{session_timestamp}")
    os.makedirs(config.session_dir, exist_ok=True)
    config.log_file_path = os.path.join(config.session_dir, "session.log")
    json_log_path = os.path.join(config.session_dir, "diagnostics.jsonl")

    logger.remove()

    # 所有现有代码继续使用标准 logging，由拦截器转交 loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # 控制台日志（非 JSON，带颜色）；stdout 留给结果输出
    logger.add(
        sys.stderr,
        format="<level>{message}</level>",
        level=_resolve_console_level(config.logging_settings.console_log_level),
        filter=lambda record: not _is_json_line(str(record["message"])),
        colorize=True,
    )

    # 文件日志（所有日志，传统格式）
    logger.add(
        config.log_file_path,
        format="{time:YYYY-MM-DD HH:mm:ss} - {level} - [{file}:{line}] - {message}",
        level=level,
        encoding="utf-8",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        enqueue=True,
    )

    # JSON 诊断日志（ErrorHandler 输出的结构化错误）
    logger.add(
        json_log_path,
        format="{message}",
        level=level,
        filter=lambda record: _is_json_line(str(record["message"])),
        encoding="utf-8",
        rotation="5 MB",
        retention="3 days",
        compression="zip",
        enqueue=True,
    )

    logger.info("日志记录已初始化（loguru + 标准 logging 拦截）。会话目录: {}", config.session_dir)
    logger.debug("日志文件: {} / JSON 日志: {}", config.log_file_path, json_log_path)


__all__ = ["InterceptHandler", "logger", "setup_session_logging"]
