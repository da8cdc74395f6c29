"""
Model router -- holds named model clients and forwards to the active one.

The router is itself a ``ModelClient`` so the conversation loop never needs
to know whether it is talking to one endpoint or a switchable set of them.
"""

from __future__ import annotations

import logging

from toolrelay.llm.providers.base import ModelClient
from toolrelay.llm.types import CompletionResult, Message, ModelOptions

logger = logging.getLogger(__name__)


class ModelRouter(ModelClient):
    """
    Routes completion requests to a named client.
    """

    def __init__(self) -> None:
        self._clients: dict[str, ModelClient] = {}
        self._active: str | None = None

    # ------------------------------------------------------------------
    # Client management
    # ------------------------------------------------------------------

    def register_client(self, name: str, client: ModelClient) -> None:
        """Register a client under *name*.  Overwrites any existing entry."""
        self._clients[name] = client
        if self._active is None:
            self._active = name

    def set_active(self, name: str) -> None:
        """
        Switch the active client.

        Raises ``KeyError`` if *name* has not been registered.
        """
        if name not in self._clients:
            raise KeyError(
                f"Unknown model client {name!r}. "
                f"Registered: {list(self._clients)}"
            )
        logger.info("Switching model client: %s -> %s", self._active, name)
        self._active = name

    @property
    def active_name(self) -> str | None:
        """Return the name of the currently active client (or ``None``)."""
        return self._active

    @property
    def active_client(self) -> ModelClient:
        """
        Return the active ``ModelClient`` instance.

        Raises ``RuntimeError`` if no client is active.
        """
        if self._active is None or self._active not in self._clients:
            raise RuntimeError("No active model client")
        return self._clients[self._active]

    @property
    def client_names(self) -> list[str]:
        return list(self._clients)

    # ------------------------------------------------------------------
    # ModelClient interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return f"router:{self._active or '-'}"

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        options: ModelOptions | None = None,
    ) -> CompletionResult:
        return await self.active_client.complete(messages, tools=tools, options=options)
