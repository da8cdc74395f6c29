"""Abstract base class for model clients."""

from __future__ import annotations

from abc import ABC, abstractmethod

from toolrelay.llm.types import CompletionResult, Message, ModelOptions


class ModelClient(ABC):
    """
    A model client encapsulates access to a single chat-completion endpoint.

    Implementations must be stateless across calls so that one instance can
    serve concurrent conversations.  Transport, auth and quota failures are
    raised as ``ModelCallError``.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        options: ModelOptions | None = None,
    ) -> CompletionResult:
        """Submit the conversation and return the model's next turn."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable client name (e.g. ``"openai-compat"``)."""
        ...
