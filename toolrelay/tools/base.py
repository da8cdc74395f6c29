from __future__ import annotations

import inspect
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from toolrelay.types import ToolResult


def normalize_schema(schema: dict) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    return s


class Tool(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def parameters(self) -> dict: ...

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult: ...

    def to_openai_schema(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": normalize_schema(self.parameters),
            },
        }


Handler = Callable[..., Any] | Callable[..., Awaitable[Any]]


class FunctionTool(Tool):
    """
    A tool built from a plain function.

    The handler receives the decoded arguments as keyword arguments and may
    be sync or async.  Whatever it returns is turned into a ``ToolResult``:
    results pass through, strings become the content, anything else is
    serialized to JSON.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: dict,
        handler: Handler,
    ) -> None:
        self._name = name
        self._description = description
        self._parameters = parameters
        self._handler = handler

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict:
        return self._parameters

    async def execute(self, **kwargs) -> ToolResult:
        value = self._handler(**kwargs)
        if inspect.isawaitable(value):
            value = await value
        return as_tool_result(value)


def as_tool_result(value: Any) -> ToolResult:
    if isinstance(value, ToolResult):
        return value
    if isinstance(value, str):
        return ToolResult(success=True, content=value)
    if value is None:
        return ToolResult(success=True, content="")
    return ToolResult(
        success=True,
        content=json.dumps(value, default=str),
        data=value if isinstance(value, (dict, list)) else None,
    )


def tool(
    name: str,
    description: str = "",
    parameters: dict | None = None,
) -> Callable[[Handler], FunctionTool]:
    """Decorator form of ``FunctionTool``."""

    def wrap(fn: Handler) -> FunctionTool:
        return FunctionTool(
            name=name,
            description=description or (inspect.getdoc(fn) or ""),
            parameters=parameters or {"type": "object", "properties": {}},
            handler=fn,
        )

    return wrap
