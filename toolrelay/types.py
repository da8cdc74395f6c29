from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class ToolResult:
    success: bool
    content: str
    data: dict | list | None = None
    error: str | None = None
    error_code: str | None = None
    metadata: dict = field(default_factory=dict)

    def to_message_content(self) -> str:
        """Text placed in the ``tool`` message answering the call."""
        if self.success:
            return self.content
        return json.dumps(
            {
                "error": {
                    "code": self.error_code or ErrorCode.TOOL_EXCEPTION,
                    "message": self.error or self.content,
                }
            }
        )

    @classmethod
    def failure(cls, message: str, error_code: str, **metadata) -> "ToolResult":
        return cls(
            success=False,
            content=message,
            error=message,
            error_code=error_code,
            metadata=dict(metadata),
        )


class ErrorCode:
    UNKNOWN_TOOL = "unknown_tool"
    ARGUMENT_DECODE_ERROR = "argument_decode_error"
    VALIDATION_ERROR = "validation_error"
    TOOL_EXCEPTION = "tool_exception"
    TIMEOUT = "timeout"
    UPSTREAM_ERROR = "upstream_error"
