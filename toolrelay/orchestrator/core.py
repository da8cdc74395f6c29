"""
Conversation loop -- drives a model through tool-calling rounds.

The loop:
1. Sends the conversation and the registry's tool schemas to the model
2. Returns the content as the final answer when the model stops
3. Otherwise records the assistant's tool calls, executes them concurrently,
   and appends one tool message per call in request order
4. Repeats until the model stops or the round budget is spent

Tool failures (unknown tool, undecodable arguments, schema violations,
handler exceptions, timeouts) are folded into the conversation as error
results.  Model-client failures, budget exhaustion and deadlines propagate.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from toolrelay.errors import LoopBudgetExceededError, LoopDeadlineExceededError
from toolrelay.llm.providers.base import ModelClient
from toolrelay.llm.types import (
    CompletionResult,
    FinishReason,
    Message,
    ModelOptions,
    Role,
)
from toolrelay.tools.executor import ToolExecutor
from toolrelay.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 10


@dataclass
class Conversation:
    """The outcome of one query: the final answer and the full message log."""

    final_text: str
    messages: list[Message] = field(default_factory=list)
    rounds: int = 0


class ConversationLoop:
    """
    Tool-calling conversation loop.

    Parameters
    ----------
    registry : ToolRegistry
        Tools the model may call.  Frozen on construction.
    model_client : ModelClient
        Chat-completion client.
    system_prompt : str
        Prepended as a system message when non-empty.
    max_rounds : int
        Max model calls per query.  A tool request on the last one raises
        ``LoopBudgetExceededError`` without running the tools.
    tool_timeout : float | None
        Max seconds for a single tool execution.  A timeout is reported to
        the model as a tool failure.
    round_timeout : float | None
        Max seconds for one model call plus its tool executions.
    query_timeout : float | None
        Max seconds for the whole query.
    model_options : ModelOptions | None
        Forwarded to every model call.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        model_client: ModelClient,
        system_prompt: str = "",
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        tool_timeout: float | None = 30.0,
        round_timeout: float | None = None,
        query_timeout: float | None = None,
        model_options: ModelOptions | None = None,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.registry = registry.freeze()
        self.model_client = model_client
        self.system_prompt = system_prompt
        self.max_rounds = max_rounds
        self.executor = ToolExecutor(self.registry, timeout=tool_timeout)
        self.round_timeout = round_timeout
        self.query_timeout = query_timeout
        self.model_options = model_options

    async def run(self, initial_messages: list[Message] | str) -> str:
        """Process a query and return the model's final text."""
        conversation = await self.converse(initial_messages)
        return conversation.final_text

    async def converse(self, initial_messages: list[Message] | str) -> Conversation:
        """
        Process a query and return the final text with the message log.

        *initial_messages* may be a plain string, taken as a single user
        message.
        """
        if isinstance(initial_messages, str):
            initial_messages = [Message.user(initial_messages)]

        messages: list[Message] = []
        if self.system_prompt:
            messages.append(Message.system(self.system_prompt))
        messages.extend(initial_messages)

        coro = self._drive(messages)
        if self.query_timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=self.query_timeout)
        except asyncio.TimeoutError:
            raise LoopDeadlineExceededError(
                f"Query exceeded its {self.query_timeout}s deadline"
            ) from None

    async def _drive(self, messages: list[Message]) -> Conversation:
        tools_schema = self.registry.to_openai_schema()

        for round_no in range(1, self.max_rounds + 1):
            round_coro = self._round(messages, tools_schema, last=round_no == self.max_rounds)
            if self.round_timeout is None:
                final = await round_coro
            else:
                try:
                    final = await asyncio.wait_for(round_coro, timeout=self.round_timeout)
                except asyncio.TimeoutError:
                    raise LoopDeadlineExceededError(
                        f"Round {round_no} exceeded its {self.round_timeout}s deadline"
                    ) from None

            if final is not None:
                logger.info("Conversation finished after %d round(s)", round_no)
                return Conversation(final_text=final, messages=list(messages), rounds=round_no)

        # unreachable: the last round either returns or raises
        raise LoopBudgetExceededError(self.max_rounds)

    async def _round(
        self, messages: list[Message], tools_schema: list[dict], last: bool = False
    ) -> str | None:
        """
        Run one model call and, if requested, its tool calls.

        Returns the final text when the model stopped, ``None`` when the
        loop should continue.  On the *last* round a tool request raises
        ``LoopBudgetExceededError`` before any tool runs.
        """
        completion: CompletionResult = await self.model_client.complete(
            list(messages),
            tools=tools_schema or None,
            options=self.model_options,
        )

        if completion.finish_reason != FinishReason.TOOL_CALLS:
            text = completion.content or ""
            messages.append(Message(role=Role.ASSISTANT, content=text))
            return text

        if not completion.tool_calls:
            # a tool_calls turn with nothing to call ends the query empty
            messages.append(Message(role=Role.ASSISTANT, content=""))
            return ""

        if last:
            logger.warning(
                "Round budget of %d exhausted with %d tool call(s) pending",
                self.max_rounds,
                len(completion.tool_calls),
            )
            raise LoopBudgetExceededError(self.max_rounds)

        calls = tuple(completion.tool_calls)
        messages.append(Message(role=Role.ASSISTANT, content=None, tool_calls=calls))
        logger.info("Model requested %d tool call(s): %s", len(calls), [c.name for c in calls])

        # gather preserves argument order, whatever order the calls finish in
        results = await asyncio.gather(*(self.executor.execute(c) for c in calls))
        for call, result in zip(calls, results):
            messages.append(Message.tool(call.id, result.to_message_content()))
        return None


async def run(
    initial_messages: list[Message] | str,
    registry: ToolRegistry,
    model_client: ModelClient,
    **options,
) -> str:
    """Run one query through a fresh ``ConversationLoop``; see its parameters."""
    return await ConversationLoop(registry, model_client, **options).run(initial_messages)
