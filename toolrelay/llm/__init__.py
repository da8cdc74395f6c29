"""LLM subsystem -- model clients, routing, and conversation types."""

from toolrelay.llm.types import (
    CompletionResult,
    FinishReason,
    Message,
    ModelOptions,
    Role,
    ToolCall,
)
from toolrelay.llm.providers.base import ModelClient
from toolrelay.llm.providers.openai_compat import OpenAICompatClient
from toolrelay.llm.router import ModelRouter

__all__ = [
    "CompletionResult",
    "FinishReason",
    "Message",
    "ModelClient",
    "ModelOptions",
    "ModelRouter",
    "OpenAICompatClient",
    "Role",
    "ToolCall",
]
