"""Core types for the LLM subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field


class Role:
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"
    DEVELOPER = "developer"


class FinishReason:
    STOP = "stop"
    TOOL_CALLS = "tool_calls"


@dataclass(frozen=True)
class ToolCall:
    """
    A tool call requested by the model.

    *arguments* stays in the form it arrived in: the raw JSON string from the
    chat-completions wire, or an already-parsed mapping when the call came in
    through a tool channel.  It is decoded when the call is executed.
    """

    id: str
    name: str
    arguments: str | dict = "{}"


@dataclass(frozen=True)
class Message:
    """A single message in a conversation."""

    role: str  # "user", "assistant", "system", "developer", "tool"
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "Message":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


@dataclass
class ModelOptions:
    """Per-request knobs forwarded to the model endpoint."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass
class CompletionResult:
    """
    One model turn.

    ``finish_reason`` is ``"stop"`` (``content`` holds the answer) or
    ``"tool_calls"`` (``tool_calls`` holds the requests).
    """

    finish_reason: str
    content: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    model: str | None = None
    usage: dict = field(default_factory=dict)
