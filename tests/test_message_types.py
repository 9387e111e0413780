"""测试 worker 消息模型"""

import pytest
from pydantic import ValidationError

from core.errors import RequestValidationError
from core.message_types import (
    CompleteMessage,
    DiffPayload,
    ErrorMessage,
    PatchRequest,
    PatchResultPayload,
    ProgressMessage,
    parse_request,
    parse_worker_message,
)
from core.patch_manager import apply_edits


class TestParseRequest:
    """测试请求校验"""

    def test_valid_request(self):
        """测试合法请求"""
        request = parse_request(
            {
                "content": "hello world",
                "diffs": [{"oldText": "world", "newText": "there"}],
                "threshold": 0.8,
            }
        )

        assert isinstance(request, PatchRequest)
        assert request.threshold == 0.8
        assert request.diffs[0].old_text == "world"
        assert request.to_edits()[0].new_text == "there"

    def test_threshold_optional(self):
        """测试阈值可省略"""
        request = parse_request({"content": "", "diffs": []})

        assert request.threshold is None
        assert request.diffs == []

    def test_passthrough_model(self):
        """测试已解析的模型直接返回"""
        request = PatchRequest(content="a", diffs=[])
        assert parse_request(request) is request

    @pytest.mark.parametrize("payload", [None, "text", 42, ["content"]])
    def test_not_an_object(self, payload):
        """测试载荷不是对象"""
        with pytest.raises(RequestValidationError, match="expected object"):
            parse_request(payload)

    def test_content_not_string(self):
        """测试 content 类型错误"""
        with pytest.raises(RequestValidationError, match="Invalid content type: expected string, got int"):
            parse_request({"content": 1, "diffs": []})

    def test_diffs_not_list(self):
        """测试 diffs 类型错误"""
        with pytest.raises(RequestValidationError, match="Invalid diffs type: expected array, got dict"):
            parse_request({"content": "a", "diffs": {"oldText": "a", "newText": "b"}})

    @pytest.mark.parametrize(
        "diff",
        [
            {"oldText": "a"},
            {"oldText": 1, "newText": "b"},
            {"oldText": "a", "newText": None},
            "a -> b",
        ],
    )
    def test_invalid_diff(self, diff):
        """测试编辑项格式错误"""
        with pytest.raises(RequestValidationError, match="diffs"):
            parse_request({"content": "a", "diffs": [diff]})

    @pytest.mark.parametrize("threshold", [1.5, -0.1, "0.5", True])
    def test_invalid_threshold(self, threshold):
        """测试阈值越界或类型错误"""
        with pytest.raises(RequestValidationError, match="threshold"):
            parse_request({"content": "a", "diffs": [], "threshold": threshold})


class TestWireFormat:
    """测试线上格式"""

    def test_diff_payload_aliases(self):
        """测试 camelCase 别名"""
        diff = DiffPayload(old_text="a", new_text="b")
        assert diff.to_wire() == {"oldText": "a", "newText": "b"}

    def test_result_payload_from_result(self):
        """测试结果转换为线上格式"""
        result = apply_edits(
            "hello world",
            [{"oldText": "world", "newText": "there"}, {"oldText": "absent text here", "newText": "x"}],
        )
        wire = PatchResultPayload.from_result(result).to_wire()

        assert wire["content"] == "hello there"
        assert wire["results"][0] == {
            "oldText": "world",
            "newText": "there",
            "applied": True,
            "index": 6,
            "similarity": 1.0,
            "matchedText": "world",
            "strategy": "exact",
        }
        assert wire["results"][1]["applied"] is False
        assert "index" not in wire["results"][1]
        assert "error" in wire["results"][1]

    def test_error_message_wire(self):
        """测试错误消息字段"""
        message = ErrorMessage(error="boom", error_type="internal", stack="trace", data={"content": 1})
        wire = message.to_wire()

        assert wire["type"] == "error"
        assert wire["errorType"] == "internal"
        assert wire["data"] == {"content": 1}

    def test_error_message_optional_fields_omitted(self):
        """测试可选字段省略"""
        assert ErrorMessage(error="boom").to_wire() == {"type": "error", "error": "boom"}


class TestParseWorkerMessage:
    """测试消息标签联合"""

    def test_progress(self):
        """测试 progress 消息"""
        message = parse_worker_message({"type": "progress", "message": "started"})
        assert isinstance(message, ProgressMessage)
        assert message.message == "started"

    def test_complete(self):
        """测试 complete 消息"""
        message = parse_worker_message(
            {"type": "complete", "result": {"content": "x", "results": []}}
        )
        assert isinstance(message, CompleteMessage)
        assert message.result.content == "x"

    def test_error(self):
        """测试 error 消息"""
        message = parse_worker_message({"type": "error", "error": "bad", "errorType": "validation"})
        assert isinstance(message, ErrorMessage)
        assert message.error_type == "validation"

    def test_round_trip(self):
        """测试线上格式可以重新解析"""
        original = ProgressMessage(message="working")
        assert parse_worker_message(original.to_wire()) == original

    def test_unknown_type(self):
        """测试未知消息类型"""
        with pytest.raises(ValidationError):
            parse_worker_message({"type": "unknown"})
