"""Tests for the CLI commands and the chat handler."""

from __future__ import annotations

import io

from rich.console import Console
from typer.testing import CliRunner

from tests.mock_clients import LoopingModelClient, ScriptedModelClient, text_turn
from tests.mock_tools import EchoTool
from toolrelay import __version__
from toolrelay.cli.app import app
from toolrelay.cli.chat import ChatHandler
from toolrelay.llm.router import ModelRouter
from toolrelay.orchestrator.core import ConversationLoop
from toolrelay.tools.registry import ToolRegistry
from toolrelay.vector.search import VectorSearchError

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_validate(tmp_path):
    cfg = tmp_path / "toolrelay.yaml"
    cfg.write_text("loop:\n  max_rounds: 3\n")
    result = runner.invoke(app, ["--config", str(cfg), "config", "validate"])
    assert result.exit_code == 0
    assert "Config is valid" in result.output
    assert "Max rounds: 3" in result.output


def test_config_validate_reports_wiring_errors(tmp_path):
    cfg = tmp_path / "toolrelay.yaml"
    cfg.write_text("vector:\n  enabled: true\n")
    result = runner.invoke(app, ["--config", str(cfg), "config", "validate"])
    assert result.exit_code == 1
    assert "hostname" in result.output


def test_tools_info_unknown(tmp_path):
    cfg = tmp_path / "toolrelay.yaml"
    cfg.write_text("weather:\n  enabled: true\n")
    result = runner.invoke(app, ["--config", str(cfg), "tools", "info", "nope"])
    assert result.exit_code == 1
    assert "Tool not found" in result.output


class _BrokenSearch:
    async def index_document(self, *args, **kwargs):
        raise VectorSearchError("Bulk indexing into kb-acme-com failed")


def test_index_reports_upstream_failure(tmp_path, monkeypatch):
    import toolrelay.stack

    monkeypatch.setattr(toolrelay.stack, "build_vector_search", lambda cfg: _BrokenSearch())
    cfg = tmp_path / "toolrelay.yaml"
    cfg.write_text("vector:\n  hostname: acme.com\n")
    doc = tmp_path / "guide.txt"
    doc.write_text("some text")

    result = runner.invoke(app, ["--config", str(cfg), "index", str(doc), "--doc-id", "guide"])
    assert result.exit_code == 1
    assert "Indexing failed" in result.output
    assert "kb-acme-com" in result.output


def _handler(model_client, max_rounds: int = 10) -> tuple[ChatHandler, io.StringIO]:
    out = io.StringIO()
    loop = ConversationLoop(ToolRegistry([EchoTool()]), model_client, max_rounds=max_rounds)
    return ChatHandler(loop, console=Console(file=out, width=120)), out


class TestChatHandler:
    async def test_answer_printed(self):
        handler, out = _handler(ScriptedModelClient([text_turn("**sunny**")]))
        assert await handler.handle_input("weather?") == "**sunny**"
        assert "sunny" in out.getvalue()

    async def test_loop_errors_reported(self):
        handler, out = _handler(LoopingModelClient(), max_rounds=2)
        assert await handler.handle_input("go") is None
        assert "No final answer within 2" in out.getvalue()

    async def test_quit(self):
        handler, _ = _handler(ScriptedModelClient())
        assert await handler.handle_command("/quit")
        assert not handler.running

    async def test_switch(self):
        router = ModelRouter()
        router.register_client("a", ScriptedModelClient())
        router.register_client("b", ScriptedModelClient())
        handler, out = _handler(router)

        await handler.handle_command("/switch b")
        assert router.active_name == "b"
        await handler.handle_command("/switch zzz")
        assert "Error" in out.getvalue()

    async def test_unknown_command_not_handled(self):
        handler, _ = _handler(ScriptedModelClient())
        assert await handler.handle_command("/dance") is False
