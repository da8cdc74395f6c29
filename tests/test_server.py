"""Tests for the HTTP API."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.mock_clients import FailingModelClient, ScriptedModelClient, text_turn, tool_calls_turn
from tests.mock_tools import AddTool, EchoTool
from toolrelay.orchestrator.core import ConversationLoop
from toolrelay.server.app import create_app
from toolrelay.tools.registry import ToolRegistry


def _client(model_client) -> TestClient:
    loop = ConversationLoop(ToolRegistry([EchoTool(), AddTool()]), model_client)
    return TestClient(create_app(loop))


class TestChatbot:
    def test_answer(self):
        client = _client(ScriptedModelClient([
            tool_calls_turn(("c1", "add", {"a": 1, "b": 1})),
            text_turn("It is 2."),
        ]))
        resp = client.post("/chatbot", json={"query": "1+1?"})
        assert resp.status_code == 200
        assert resp.json() == {"response": "It is 2."}

    @pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}, {"query": 5}])
    def test_invalid_query(self, body):
        resp = _client(ScriptedModelClient()).post("/chatbot", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid or missing query parameter"}

    def test_model_failure(self):
        resp = _client(FailingModelClient()).post("/chatbot", json={"query": "hi"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to process query"}

    def test_error_responses_documented(self):
        schema_doc = _client(ScriptedModelClient()).get("/openapi.json").json()
        responses = schema_doc["paths"]["/chatbot"]["post"]["responses"]
        for status in ("400", "500"):
            schema = responses[status]["content"]["application/json"]["schema"]
            assert schema == {"$ref": "#/components/schemas/ErrorResponse"}


class TestToolsEndpoints:
    def test_list(self):
        resp = _client(ScriptedModelClient()).get("/tools")
        assert resp.status_code == 200
        assert [t["name"] for t in resp.json()] == ["add", "echo"]
        assert "inputSchema" in resp.json()[0]

    def test_call(self):
        resp = _client(ScriptedModelClient()).post(
            "/tools/call", json={"name": "echo", "arguments": {"message": "hey"}}
        )
        assert resp.json() == {
            "content": [{"type": "text", "text": "hey"}],
            "isError": False,
            "errorCode": None,
        }

    def test_call_unknown(self):
        resp = _client(ScriptedModelClient()).post("/tools/call", json={"name": "nope"})
        body = resp.json()
        assert resp.status_code == 200
        assert body["isError"] is True
        assert body["errorCode"] == "unknown_tool"

    def test_call_missing_name(self):
        resp = _client(ScriptedModelClient()).post("/tools/call", json={})
        assert resp.status_code == 400


def test_health():
    assert _client(ScriptedModelClient()).get("/health").json() == {"status": "ok"}


def test_cors_preflight():
    resp = _client(ScriptedModelClient()).options(
        "/chatbot",
        headers={"Origin": "https://app.test", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] in ("*", "https://app.test")
