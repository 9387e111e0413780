"""配置辅助工具的便捷导出。"""

from .config import Config, EnvironmentSettings, LoggingSettings, MatchingSettings, WorkerSettings
from .env_loader import load_environment_settings

__all__ = [
    "Config",
    "EnvironmentSettings",
    "LoggingSettings",
    "MatchingSettings",
    "WorkerSettings",
    "load_environment_settings",
]
