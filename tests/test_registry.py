"""Tests for ToolRegistry and FunctionTool."""

import pytest

from toolrelay.errors import DuplicateNameError, RegistryFrozenError, UnknownToolError
from toolrelay.tools.base import FunctionTool, as_tool_result, tool
from toolrelay.tools.registry import ToolRegistry
from toolrelay.types import ToolResult
from tests.mock_tools import AddTool, EchoTool, FailingTool


class TestToolRegistry:
    """Test suite for ToolRegistry."""

    def test_register_and_get(self):
        reg = ToolRegistry()
        t = EchoTool()
        reg.register(t)
        assert reg.get("echo") is t
        assert "echo" in reg
        assert len(reg) == 1

    def test_get_returns_none_for_unknown(self):
        reg = ToolRegistry()
        assert reg.get("nonexistent") is None

    def test_lookup_returns_tool(self):
        reg = ToolRegistry([EchoTool()])
        assert reg.lookup("echo").name == "echo"

    def test_lookup_raises_for_unknown(self):
        reg = ToolRegistry()
        with pytest.raises(UnknownToolError, match="nonexistent"):
            reg.lookup("nonexistent")

    def test_unknown_tool_is_a_keyerror(self):
        with pytest.raises(KeyError):
            ToolRegistry().lookup("nope")

    def test_duplicate_registration_raises(self):
        reg = ToolRegistry()
        reg.register(EchoTool())
        with pytest.raises(DuplicateNameError, match="already registered"):
            reg.register(EchoTool())

    def test_duplicate_is_a_valueerror(self):
        reg = ToolRegistry([EchoTool()])
        with pytest.raises(ValueError):
            reg.register(EchoTool())

    def test_frozen_registry_rejects_registration(self):
        reg = ToolRegistry([EchoTool()])
        assert reg.freeze() is reg
        assert reg.frozen
        with pytest.raises(RegistryFrozenError):
            reg.register(AddTool())
        assert reg.names() == ["echo"]

    def test_freeze_is_idempotent(self):
        reg = ToolRegistry().freeze().freeze()
        assert reg.frozen

    def test_list_returns_all_sorted_by_name(self):
        reg = ToolRegistry([FailingTool(), EchoTool(), AddTool()])
        assert reg.names() == ["add", "echo", "explode"]

    def test_to_openai_schema(self):
        reg = ToolRegistry([EchoTool(), AddTool()])
        schema = reg.to_openai_schema()
        assert len(schema) == 2
        for entry in schema:
            assert entry["type"] == "function"
            fn = entry["function"]
            assert set(fn) == {"name", "description", "parameters"}
            assert fn["parameters"]["type"] == "object"

    def test_schema_normalized_when_tool_omits_type(self):
        bare = FunctionTool("bare", "No schema", {}, lambda: "ok")
        fn = ToolRegistry([bare]).to_openai_schema()[0]["function"]
        assert fn["parameters"] == {"type": "object", "properties": {}}

    def test_empty_registry(self):
        reg = ToolRegistry()
        assert reg.list() == []
        assert reg.to_openai_schema() == []


class TestFunctionTool:
    async def test_sync_handler(self):
        t = FunctionTool("shout", "Upper-cases text", {}, lambda text: text.upper())
        result = await t.execute(text="hi")
        assert result.success
        assert result.content == "HI"

    async def test_async_handler_returning_json(self):
        async def lookup(key):
            return {"key": key, "found": True}

        t = FunctionTool("lookup", "Looks up a key", {}, lookup)
        result = await t.execute(key="a")
        assert result.content == '{"key": "a", "found": true}'
        assert result.data == {"key": "a", "found": True}

    async def test_decorator_uses_docstring(self):
        @tool("ping")
        def ping():
            """Answers pong."""
            return "pong"

        assert ping.name == "ping"
        assert ping.description == "Answers pong."
        assert (await ping.execute()).content == "pong"

    def test_as_tool_result_passthrough_and_none(self):
        r = ToolResult(success=False, content="x")
        assert as_tool_result(r) is r
        assert as_tool_result(None).content == ""
        assert as_tool_result(3).content == "3"
