from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, cast

from .constants import LoggingDefaults, MatchDefaults, WorkerDefaults
from .env_loader import EnvironmentSettings, load_environment_settings
from .logging_setup import setup_session_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchingSettings:
    """三级匹配策略与模糊窗口的配置。"""

    similarity_threshold: float = MatchDefaults.SIMILARITY_THRESHOLD
    normalized_similarity: float = MatchDefaults.NORMALIZED_SIMILARITY
    fuzzy_match_threshold: float = MatchDefaults.FUZZY_MATCH_THRESHOLD
    fuzzy_match_distance: int = MatchDefaults.FUZZY_MATCH_DISTANCE
    fuzzy_window_before: int = MatchDefaults.FUZZY_WINDOW_BEFORE
    fuzzy_window_after: int = MatchDefaults.FUZZY_WINDOW_AFTER
    fuzzy_min_length_ratio: float = MatchDefaults.FUZZY_MIN_LENGTH_RATIO
    fuzzy_max_length_ratio: float = MatchDefaults.FUZZY_MAX_LENGTH_RATIO
    large_document_warning_chars: int = MatchDefaults.LARGE_DOCUMENT_WARNING_CHARS

    def __post_init__(self) -> None:
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}")
        if self.fuzzy_min_length_ratio > self.fuzzy_max_length_ratio:
            raise ValueError("fuzzy_min_length_ratio must not exceed fuzzy_max_length_ratio")

    @classmethod
    def from_env(cls, env: EnvironmentSettings) -> MatchingSettings:
        return cls(
            similarity_threshold=env.similarity_threshold,
            normalized_similarity=env.normalized_match_similarity,
            fuzzy_match_threshold=env.fuzzy_match_threshold,
            fuzzy_match_distance=env.fuzzy_match_distance,
            fuzzy_window_before=env.fuzzy_window_before,
            fuzzy_window_after=env.fuzzy_window_after,
            fuzzy_min_length_ratio=env.fuzzy_min_length_ratio,
            fuzzy_max_length_ratio=env.fuzzy_max_length_ratio,
            large_document_warning_chars=env.large_document_warning_chars,
        )


@dataclass(frozen=True)
class WorkerSettings:
    """消息边界（worker）的配置。"""

    timeout_seconds: float = WorkerDefaults.TIMEOUT_SECONDS
    progress_message: str = WorkerDefaults.PROGRESS_MESSAGE

    @classmethod
    def from_env(cls, env: EnvironmentSettings) -> WorkerSettings:
        return cls(timeout_seconds=env.worker_timeout_seconds)


@dataclass(frozen=True)
class LoggingSettings:
    """日志级别与会话目录。"""

    log_level: str = LoggingDefaults.LEVEL
    console_log_level: str | None = None
    session_base_dir: str = LoggingDefaults.SESSION_BASE_DIR

    @classmethod
    def from_env(cls, env: EnvironmentSettings) -> LoggingSettings:
        return cls(
            log_level=env.log_level,
            console_log_level=env.console_log_level,
            session_base_dir=env.session_base_dir,
        )


class Config:
    """
    补丁引擎的运行配置。

    分组设置保存在 matching / worker / logging_settings 上，
    同时把各字段平铺到实例属性，便于直接访问。
    """

    similarity_threshold: float
    normalized_similarity: float
    fuzzy_match_threshold: float
    fuzzy_match_distance: int
    fuzzy_window_before: int
    fuzzy_window_after: int
    fuzzy_min_length_ratio: float
    fuzzy_max_length_ratio: float
    large_document_warning_chars: int

    timeout_seconds: float
    progress_message: str

    log_level: str
    console_log_level: str | None

    # Runtime-populated attributes
    session_base_dir: str
    session_dir: str
    log_file_path: str

    def __init__(self, **overrides: Any):
        env_settings = load_environment_settings(**overrides)
        self._env_settings: EnvironmentSettings = env_settings

        self.matching = self._assign_settings(MatchingSettings.from_env(env_settings), alias="matching")
        self.worker = self._assign_settings(WorkerSettings.from_env(env_settings), alias="worker")
        self.logging_settings = self._assign_settings(
            LoggingSettings.from_env(env_settings),
            alias="logging_settings",
        )

        self._initialize_paths(env_settings)

    @staticmethod
    def _dataclass_as_dict(section: Any) -> dict[str, Any]:
        if is_dataclass(section) and not isinstance(section, type):
            return asdict(section)
        if isinstance(section, Mapping):
            mapping_section = cast(Mapping[str, Any], section)
            return {str(key): value for key, value in mapping_section.items()}
        raise TypeError(
            f"Unsupported settings section type: {type(section)!r}. "
            "Expected dataclass or mapping."
        )

    def _assign_settings(self, section: Any, *, alias: str | None = None) -> Any:
        """
        Copy fields from a dataclass section onto the config instance.
        """
        for key, value in self._dataclass_as_dict(section).items():
            setattr(self, key, value)
        if alias:
            setattr(self, alias, section)
        return section

    def _initialize_paths(self, env_settings: EnvironmentSettings) -> None:
        """
        Resolve the session base directory; it is created when logging is set up.
        """
        project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        session_base = env_settings.session_base_dir
        if not os.path.isabs(session_base):
            session_base = os.path.join(project_root, session_base)
        self.session_base_dir = os.path.abspath(os.path.normpath(session_base))
        self.session_dir = ""
        self.log_file_path = ""

    def setup_logging(self, logging_level: str | int | None = None) -> None:
        """为当前运行会话配置日志记录器。"""
        setup_session_logging(self, logging_level or self.logging_settings.log_level)


__all__ = ["Config", "EnvironmentSettings", "LoggingSettings", "MatchingSettings", "WorkerSettings"]
