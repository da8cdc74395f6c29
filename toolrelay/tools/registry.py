from __future__ import annotations

from toolrelay.errors import DuplicateNameError, RegistryFrozenError, UnknownToolError
from toolrelay.tools.base import Tool


class ToolRegistry:
    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        for t in tools or []:
            self.register(t)

    def register(self, tool: Tool) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Registry is frozen, cannot add {tool.name}")
        if tool.name in self._tools:
            raise DuplicateNameError(tool.name)
        self._tools[tool.name] = tool

    def freeze(self) -> "ToolRegistry":
        """Stop accepting registrations.  Idempotent."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def lookup(self, name: str) -> Tool:
        t = self.get(name)
        if t is None:
            raise UnknownToolError(name)
        return t

    def list(self) -> list[Tool]:
        return sorted(self._tools.values(), key=lambda t: t.name)

    def names(self) -> list[str]:
        return [t.name for t in self.list()]

    def to_openai_schema(self) -> list[dict]:
        return [t.to_openai_schema() for t in self.list()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
