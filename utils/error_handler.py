# utils/error_handler.py

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum

from config.constants import MatchDefaults
from core.errors import PatchCancelledError, PatchTimeoutError, RequestValidationError


class ErrorSeverity(Enum):
    """错误严重程度"""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorType(Enum):
    """错误类型"""

    VALIDATION_ERROR = "validation"
    MATCH_FAILURE = "match_failure"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    INTERNAL_ERROR = "internal"


_SEVERITY_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class FriendlyError:
    """面向调用方的错误描述，附带处理建议"""

    error_type: ErrorType
    title: str
    message: str
    suggestions: list[str] = field(default_factory=list)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    recoverable: bool = True
    technical_details: str | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["error_type"] = self.error_type.value
        data["severity"] = self.severity.value
        return {"type": "error", **data}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


class ErrorHandler:
    """统一错误处理和友好提示"""

    # 错误模板定义
    ERROR_TEMPLATES = {
        ErrorType.VALIDATION_ERROR: {
            "title": "请求格式错误",
            "message": "content 必须是字符串，diffs 必须是包含 oldText/newText 字符串的列表",
            "suggestions": [
                "检查调用方传入的载荷类型",
                "threshold 必须是 0 到 1 之间的数字或省略",
            ],
            "severity": ErrorSeverity.ERROR,
            "recoverable": False,
        },
        ErrorType.MATCH_FAILURE: {
            "title": "未找到匹配文本",
            "message": "编辑的 oldText 在文档中找不到达到阈值的匹配",
            "suggestions": [
                "确认 oldText 引用的是当前文档内容",
                "适当降低相似度阈值",
            ],
            "severity": ErrorSeverity.WARNING,
            "recoverable": True,
        },
        ErrorType.CANCELLED: {
            "title": "补丁计算已取消",
            "message": "取消令牌在批处理过程中被触发，文档未被修改",
            "suggestions": ["如需结果，请重新提交请求"],
            "severity": ErrorSeverity.INFO,
            "recoverable": True,
        },
        ErrorType.TIMEOUT: {
            "title": "补丁计算超时",
            "message": "worker 未在限定时间内返回结果",
            "suggestions": [
                "减少单次提交的编辑数量",
                "调大 WORKER_TIMEOUT_SECONDS",
            ],
            "severity": ErrorSeverity.WARNING,
            "recoverable": True,
        },
        ErrorType.INTERNAL_ERROR: {
            "title": "内部错误",
            "message": "补丁计算过程中发生了意外错误",
            "suggestions": ["请查看详细日志", "错误消息中附带了原始请求载荷以便排查"],
            "severity": ErrorSeverity.ERROR,
            "recoverable": False,
        },
    }

    @classmethod
    def handle_error(
        cls,
        error_type: ErrorType,
        context: dict | None = None,
        technical_details: str | None = None,
    ) -> FriendlyError:
        """处理错误并返回友好的错误信息"""
        template = cls.ERROR_TEMPLATES.get(error_type, cls.ERROR_TEMPLATES[ErrorType.INTERNAL_ERROR])

        message = template["message"]
        suggestions = template["suggestions"].copy()

        if context:
            # 根据上下文添加额外建议
            if context.get("diff_count", 0) > 50:
                suggestions.append("单次请求的编辑数量较多，建议分批提交")

            if context.get("content_length", 0) > MatchDefaults.LARGE_DOCUMENT_WARNING_CHARS:
                suggestions.append("文档较大，建议按章节拆分后再应用补丁")

        error = FriendlyError(
            error_type=error_type,
            title=template["title"],
            message=message,
            suggestions=suggestions,
            severity=template["severity"],
            recoverable=template["recoverable"],
            technical_details=technical_details,
        )

        # 记录到日志
        cls._log_error(error)

        return error

    @classmethod
    def _log_error(cls, error: FriendlyError):
        """以单行 JSON 记录错误，供诊断日志收集"""
        level = _SEVERITY_LEVELS.get(error.severity, logging.ERROR)
        logging.log(level, json.dumps(error.to_dict(), ensure_ascii=False))

    @classmethod
    def detect_error_type(cls, exception: BaseException) -> ErrorType:
        """从异常对象检测错误类型"""
        if isinstance(exception, RequestValidationError):
            return ErrorType.VALIDATION_ERROR
        elif isinstance(exception, PatchCancelledError):
            return ErrorType.CANCELLED
        elif isinstance(exception, PatchTimeoutError):
            return ErrorType.TIMEOUT
        else:
            return ErrorType.INTERNAL_ERROR

    @classmethod
    def from_exception(cls, exception: BaseException, context: dict | None = None) -> FriendlyError:
        """从异常创建友好错误"""
        error_type = cls.detect_error_type(exception)
        technical_details = f"{type(exception).__name__}: {str(exception)}"

        return cls.handle_error(error_type, context, technical_details)


__all__ = ["ErrorHandler", "ErrorSeverity", "ErrorType", "FriendlyError"]
