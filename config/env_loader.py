from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import LoggingDefaults, MatchDefaults, WorkerDefaults

logger = logging.getLogger(__name__)

# 获取env文件的绝对路径（相对于此模块所在的config目录的父目录）
_CONFIG_DIR = Path(__file__).parent
_PROJECT_ROOT = _CONFIG_DIR.parent
_ENV_FILES = [
    str(_PROJECT_ROOT / "env"),
    str(_PROJECT_ROOT / ".env"),
    str(_PROJECT_ROOT / ".env.local"),
]


class EnvironmentSettings(BaseSettings):
    """环境配置（使用 pydantic-settings 自动解析和验证）"""

    model_config = SettingsConfigDict(
        env_file=tuple(_ENV_FILES),  # 使用绝对路径，支持从任何目录运行
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 忽略未定义的环境变量
        populate_by_name=True,  # 支持使用字段别名
    )

    # 匹配配置
    similarity_threshold: float = Field(default=MatchDefaults.SIMILARITY_THRESHOLD, ge=0.0, le=1.0, alias="patch_similarity_threshold")
    normalized_match_similarity: float = Field(default=MatchDefaults.NORMALIZED_SIMILARITY, ge=0.0, le=1.0)
    fuzzy_match_threshold: float = Field(default=MatchDefaults.FUZZY_MATCH_THRESHOLD, ge=0.0, le=1.0)
    fuzzy_match_distance: int = Field(default=MatchDefaults.FUZZY_MATCH_DISTANCE, ge=0)
    fuzzy_window_before: int = Field(default=MatchDefaults.FUZZY_WINDOW_BEFORE, ge=0)
    fuzzy_window_after: int = Field(default=MatchDefaults.FUZZY_WINDOW_AFTER, ge=0)
    fuzzy_min_length_ratio: float = Field(default=MatchDefaults.FUZZY_MIN_LENGTH_RATIO, gt=0.0)
    fuzzy_max_length_ratio: float = Field(default=MatchDefaults.FUZZY_MAX_LENGTH_RATIO, gt=0.0)
    large_document_warning_chars: int = Field(default=MatchDefaults.LARGE_DOCUMENT_WARNING_CHARS, ge=0)

    # Worker 配置
    worker_timeout_seconds: float = Field(default=WorkerDefaults.TIMEOUT_SECONDS, gt=0.0)

    # 日志配置
    log_level: str = LoggingDefaults.LEVEL
    console_log_level: str | None = None
    session_base_dir: str = LoggingDefaults.SESSION_BASE_DIR

    @field_validator("*", mode="before")
    @classmethod
    def strip_quotes(cls, v: Any) -> Any:
        """移除环境变量中的引号"""
        if isinstance(v, str):
            v = v.strip()
            if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                return v[1:-1]
        return v

    @field_validator("log_level", "console_log_level", mode="after")
    @classmethod
    def upper_level(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @model_validator(mode="after")
    def check_length_ratios(self) -> EnvironmentSettings:
        if self.fuzzy_min_length_ratio > self.fuzzy_max_length_ratio:
            raise ValueError(
                "FUZZY_MIN_LENGTH_RATIO 不能大于 FUZZY_MAX_LENGTH_RATIO "
                f"({self.fuzzy_min_length_ratio} > {self.fuzzy_max_length_ratio})"
            )
        return self


def load_environment_settings(**overrides: Any) -> EnvironmentSettings:
    """
    加载环境变量，验证它们，并返回 EnvironmentSettings 实例。
    使用 pydantic-settings 自动加载 .env 文件和系统环境变量；overrides 优先级最高。
    """
    try:
        settings = EnvironmentSettings(**overrides)
        logger.debug(".env 文件和环境变量加载成功。")
        return settings
    except ValidationError as exc:
        logger.critical("配置初始化失败，请检查环境变量设置: %s", exc)
        raise


__all__ = ["EnvironmentSettings", "load_environment_settings"]
