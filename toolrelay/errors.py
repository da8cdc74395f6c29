"""Error taxonomy shared by the loop, the model clients and the tools."""

from __future__ import annotations


class ToolRelayError(Exception):
    """Base class for every error raised by toolrelay."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class ModelCallError(ToolRelayError):
    """The model endpoint failed (transport, auth, quota, malformed response)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, code="model_call_error")
        self.status_code = status_code


class ToolExecutionError(ToolRelayError):
    """A tool handler failed. Recovered by the loop."""

    def __init__(self, message: str, tool_name: str = ""):
        super().__init__(message, code="tool_exception")
        self.tool_name = tool_name


class UnknownToolError(ToolRelayError, KeyError):
    """The model asked for a tool that is not registered. Recovered by the loop."""

    def __init__(self, name: str):
        ToolRelayError.__init__(self, f"Unknown tool: {name}", code="unknown_tool")
        self.tool_name = name

    def __str__(self) -> str:
        return self.args[0]


class ArgumentDecodeError(ToolRelayError):
    """A tool call's argument payload could not be decoded. Recovered by the loop."""

    def __init__(self, message: str):
        super().__init__(message, code="argument_decode_error")


class DuplicateNameError(ToolRelayError, ValueError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool already registered: {name}", code="duplicate_name")
        self.tool_name = name


class RegistryFrozenError(ToolRelayError):
    """The registry no longer accepts registrations."""


class LoopBudgetExceededError(ToolRelayError):
    """The conversation used up its tool-call rounds without a final answer."""

    def __init__(self, max_rounds: int):
        super().__init__(
            f"No final answer within {max_rounds} model rounds",
            code="loop_budget_exceeded",
        )
        self.max_rounds = max_rounds


class LoopDeadlineExceededError(ToolRelayError):
    """A round or the whole query ran past its deadline."""

    def __init__(self, message: str):
        super().__init__(message, code="loop_deadline_exceeded")


class ConfigError(ToolRelayError):
    """Configuration is missing or inconsistent."""
