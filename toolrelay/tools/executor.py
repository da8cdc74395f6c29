"""
Tool-call lifecycle shared by the conversation loop and the tool channel.

Every failure mode ends up as an error ``ToolResult``; nothing raised by a
tool escapes ``execute``.
"""

from __future__ import annotations

import asyncio
import logging
import time

from toolrelay.errors import ArgumentDecodeError, ToolExecutionError, UnknownToolError
from toolrelay.llm.types import ToolCall
from toolrelay.tools.base import as_tool_result
from toolrelay.tools.registry import ToolRegistry
from toolrelay.tools.validation import ToolValidator, decode_arguments
from toolrelay.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)


class ToolExecutor:
    """
    Runs tool calls against a registry.

    Parameters
    ----------
    registry : ToolRegistry
        Where tool names are resolved.
    timeout : float | None
        Max seconds for a single tool execution.
    """

    def __init__(self, registry: ToolRegistry, timeout: float | None = 30.0) -> None:
        self.registry = registry
        self.timeout = timeout

    async def execute(self, tool_call: ToolCall) -> ToolResult:
        """
        Execute a single tool call.

        Steps:
        1. Registry lookup
        2. Decode arguments
        3. Validate against the tool's schema
        4. Execute with timeout
        """
        # 1. Registry lookup
        try:
            tool = self.registry.lookup(tool_call.name)
        except UnknownToolError as e:
            logger.warning("Unknown tool requested: %r", tool_call.name)
            return ToolResult.failure(str(e), ErrorCode.UNKNOWN_TOOL)

        # 2. Decode arguments
        try:
            arguments = decode_arguments(tool_call.arguments)
        except ArgumentDecodeError as e:
            logger.warning("Could not decode arguments for %s: %s", tool_call.name, e)
            return ToolResult.failure(str(e), ErrorCode.ARGUMENT_DECODE_ERROR)

        # 3. Validate args
        valid, error_msg = ToolValidator.validate(tool, arguments)
        if not valid:
            logger.warning("Invalid arguments for %s: %s", tool_call.name, error_msg)
            return ToolResult.failure(
                f"Validation error: {error_msg}", ErrorCode.VALIDATION_ERROR
            )

        # 4. Execute with timeout
        start = time.monotonic()
        try:
            if self.timeout is None:
                result = await _invoke(tool, arguments)
            else:
                result = await asyncio.wait_for(_invoke(tool, arguments), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %ss", tool_call.name, self.timeout)
            return ToolResult.failure(
                f"Tool timed out after {self.timeout}s", ErrorCode.TIMEOUT
            )
        except ToolExecutionError as e:
            logger.warning("Tool %s failed: %s", tool_call.name, e)
            return ToolResult.failure(str(e), ErrorCode.TOOL_EXCEPTION)
        except Exception as e:
            logger.exception("Tool %s raised", tool_call.name)
            return ToolResult.failure(f"Tool exception: {e}", ErrorCode.TOOL_EXCEPTION)

        result = as_tool_result(result)
        duration_ms = int((time.monotonic() - start) * 1000)
        result.metadata.setdefault("duration_ms", duration_ms)
        logger.info(
            "Tool %s finished in %dms (success=%s)", tool_call.name, duration_ms, result.success
        )
        return result


async def _invoke(tool, arguments: dict):
    # a TimeoutError raised by the handler is its own failure, not the executor's deadline
    try:
        return await tool.execute(**arguments)
    except asyncio.TimeoutError as e:
        raise ToolExecutionError(f"Tool exception: {e}", tool_name=tool.name) from e
