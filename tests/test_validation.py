"""Tests for argument decoding, ToolValidator and ToolExecutor."""

import json

import pytest

from toolrelay.errors import ArgumentDecodeError, ToolExecutionError
from toolrelay.llm.types import ToolCall
from toolrelay.tools.executor import ToolExecutor
from toolrelay.tools.registry import ToolRegistry
from toolrelay.tools.validation import ToolValidator, decode_arguments
from toolrelay.types import ErrorCode, ToolResult
from tests.mock_tools import AddTool, EchoTool, FailingTool, SlowTool


class TestDecodeArguments:
    @pytest.mark.parametrize("raw", [None, "", "null", "{}"])
    def test_empty_forms(self, raw):
        assert decode_arguments(raw) == {}

    def test_json_object(self):
        assert decode_arguments('{"a": 1, "b": [2]}') == {"a": 1, "b": [2]}

    def test_dict_is_copied(self):
        raw = {"a": 1}
        decoded = decode_arguments(raw)
        assert decoded == raw
        assert decoded is not raw

    @pytest.mark.parametrize("raw", ["{bad", "[1]", "42", '"text"'])
    def test_rejects_non_objects(self, raw):
        with pytest.raises(ArgumentDecodeError):
            decode_arguments(raw)

    def test_rejects_other_types(self):
        with pytest.raises(ArgumentDecodeError, match="list"):
            decode_arguments([1, 2])


class TestToolValidator:
    def test_valid_args_pass(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello"})
        assert ok is True
        assert err is None

    def test_missing_required_arg_fails(self):
        ok, err = ToolValidator.validate(EchoTool(), {})
        assert ok is False
        assert "message" in err

    def test_type_mismatch(self):
        ok, err = ToolValidator.validate(AddTool(), {"a": 1, "b": "2"})
        assert ok is False
        assert err is not None

    def test_no_required_fields_accepts_empty(self):
        ok, err = ToolValidator.validate(FailingTool(), {})
        assert ok is True


class TestToolExecutor:
    @pytest.fixture
    def executor(self):
        return ToolExecutor(ToolRegistry([EchoTool(), AddTool(), FailingTool()]))

    async def test_success_records_duration(self, executor):
        result = await executor.execute(ToolCall("c1", "add", '{"a": 1, "b": 2}'))
        assert result.success
        assert result.content == "3"
        assert result.metadata["duration_ms"] >= 0

    async def test_unknown_tool(self, executor):
        result = await executor.execute(ToolCall("c1", "missing", "{}"))
        assert not result.success
        assert result.error_code == ErrorCode.UNKNOWN_TOOL

    async def test_decode_error(self, executor):
        result = await executor.execute(ToolCall("c1", "echo", "{oops"))
        assert result.error_code == ErrorCode.ARGUMENT_DECODE_ERROR

    async def test_validation_error(self, executor):
        result = await executor.execute(ToolCall("c1", "echo", "{}"))
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.startswith("Validation error:")

    async def test_handler_exception(self, executor):
        result = await executor.execute(ToolCall("c1", "explode", "{}"))
        assert result.error_code == ErrorCode.TOOL_EXCEPTION
        assert result.error == "Tool exception: boom"

    async def test_tool_execution_error_keeps_message(self):
        executor = ToolExecutor(ToolRegistry([FailingTool(exc=ToolExecutionError)]))
        result = await executor.execute(ToolCall("c1", "explode", "{}"))
        assert result.error == "handler gave up"

    async def test_handler_timeout_error_is_not_a_deadline(self):
        executor = ToolExecutor(ToolRegistry([FailingTool(exc=TimeoutError)]), timeout=5.0)
        result = await executor.execute(ToolCall("c1", "explode", "{}"))
        assert result.error_code == ErrorCode.TOOL_EXCEPTION
        assert result.error == "Tool exception: boom"

    async def test_handler_timeout_error_without_deadline(self):
        executor = ToolExecutor(ToolRegistry([FailingTool(exc=TimeoutError)]), timeout=None)
        result = await executor.execute(ToolCall("c1", "explode", "{}"))
        assert result.error_code == ErrorCode.TOOL_EXCEPTION

    async def test_timeout(self):
        executor = ToolExecutor(ToolRegistry([SlowTool(delay=1.0)]), timeout=0.02)
        result = await executor.execute(ToolCall("c1", "slow", "{}"))
        assert result.error_code == ErrorCode.TIMEOUT


class TestToolResult:
    def test_success_content_passes_through(self):
        assert ToolResult(success=True, content="plain").to_message_content() == "plain"

    def test_failure_content_is_error_payload(self):
        result = ToolResult.failure("nope", ErrorCode.UPSTREAM_ERROR, url="x")
        payload = json.loads(result.to_message_content())
        assert payload == {"error": {"code": "upstream_error", "message": "nope"}}
        assert result.metadata == {"url": "x"}
