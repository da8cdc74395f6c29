"""
Tool channel -- session-oriented access to a registry's tools.

A ``ToolChannel`` is what a remote process talks to: it lists tools and
executes calls by name.  ``ChannelTool`` goes the other way and wraps a
channel's tool as a local ``Tool``, so a conversation loop can drive tools
that live behind a channel.

Example::

    channel = ToolChannel(server_registry)

    local = ToolRegistry()
    await register_channel_tools(channel, local, prefix="weather")
    answer = await run("Any alerts in CA?", local, model_client)
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Protocol

from toolrelay.llm.types import ToolCall
from toolrelay.tools.base import Tool
from toolrelay.tools.executor import ToolExecutor
from toolrelay.tools.registry import ToolRegistry
from toolrelay.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


@dataclass
class ToolInfo:
    name: str
    description: str
    input_schema: dict

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass
class CallToolResult:
    content: list[dict] = field(default_factory=list)
    is_error: bool = False
    error_code: str | None = None

    @property
    def text(self) -> str:
        return "\n".join(c.get("text", "") for c in self.content if c.get("type") == "text")

    def to_dict(self) -> dict:
        d: dict = {"content": self.content, "isError": self.is_error}
        if self.error_code:
            d["errorCode"] = self.error_code
        return d

    @classmethod
    def from_tool_result(cls, result: ToolResult) -> "CallToolResult":
        return cls(
            content=[{"type": "text", "text": result.to_message_content()}],
            is_error=not result.success,
            error_code=result.error_code,
        )


class ToolSession(Protocol):
    """What a tool-invocation channel exposes to its peer."""

    async def list_tools(self) -> list[ToolInfo]: ...

    async def call_tool(self, name: str, arguments: dict | str | None = None) -> CallToolResult: ...


class ToolChannel:
    """
    Serves a registry's tools by name.

    ``call_tool`` never raises for unknown tools, bad arguments or handler
    failures; they come back as ``is_error`` results.
    """

    def __init__(self, registry: ToolRegistry, timeout: float | None = 30.0) -> None:
        self.registry = registry.freeze()
        self._executor = ToolExecutor(self.registry, timeout=timeout)
        self.session_id = uuid.uuid4().hex

    async def list_tools(self) -> list[ToolInfo]:
        return [
            ToolInfo(name=t.name, description=t.description, input_schema=t.parameters)
            for t in self.registry.list()
        ]

    async def call_tool(self, name: str, arguments: dict | str | None = None) -> CallToolResult:
        call = ToolCall(id=f"chan_{uuid.uuid4().hex[:12]}", name=name, arguments=arguments or {})
        logger.info("Channel %s: call_tool %s", self.session_id[:8], name)
        result = await self._executor.execute(call)
        return CallToolResult.from_tool_result(result)


class ChannelTool(Tool):
    """A local ``Tool`` that forwards to a tool behind a channel."""

    def __init__(self, session: ToolSession, info: ToolInfo, local_name: str | None = None) -> None:
        self._session = session
        self._info = info
        self._local_name = local_name or info.name

    @property
    def name(self) -> str:
        return self._local_name

    @property
    def description(self) -> str:
        return self._info.description

    @property
    def parameters(self) -> dict:
        return self._info.input_schema

    async def execute(self, **kwargs) -> ToolResult:
        result = await self._session.call_tool(self._info.name, kwargs)
        if result.is_error:
            message = _error_message(result.text)
            return ToolResult(
                success=False,
                content=message,
                error=message,
                error_code=result.error_code or ErrorCode.TOOL_EXCEPTION,
            )
        return ToolResult(success=True, content=result.text)


def _error_message(text: str) -> str:
    """Unwrap the error payload produced by ``ToolResult.to_message_content``."""
    try:
        return json.loads(text)["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return text


async def register_channel_tools(
    session: ToolSession,
    registry: ToolRegistry,
    prefix: str | None = None,
) -> list[str]:
    """Register every tool the channel lists; returns the local names."""
    names = []
    for info in await session.list_tools():
        local_name = f"{prefix}__{info.name}" if prefix else info.name
        registry.register(ChannelTool(session, info, local_name=local_name))
        names.append(local_name)
    logger.info("Registered %d channel tool(s): %s", len(names), names)
    return names
