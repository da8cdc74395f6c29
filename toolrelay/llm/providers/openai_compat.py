"""
OpenAI-compatible chat-completion client.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, Azure OpenAI deployments, vLLM, LM Studio, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import json
import logging

import httpx

from toolrelay.errors import ModelCallError
from toolrelay.llm.providers.base import ModelClient
from toolrelay.llm.types import (
    CompletionResult,
    FinishReason,
    Message,
    ModelOptions,
    ToolCall,
)

logger = logging.getLogger(__name__)


class OpenAICompatClient(ModelClient):
    """
    Non-streaming client for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"`` or an Azure
        deployment URL ``"https://x.openai.azure.com/openai/deployments/gpt-4o"``.
    model:
        Default model identifier sent in the ``model`` field.
    api_key:
        Secret.  Pass ``""`` for unauthenticated local endpoints.
    auth_style:
        ``"bearer"`` sends ``Authorization: Bearer``; ``"azure"`` sends an
        ``api-key`` header.
    api_version:
        Appended as the ``api-version`` query parameter when set (Azure).
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429).
    max_tokens, temperature:
        Defaults used when the per-call ``ModelOptions`` leave them unset.
    transport:
        Optional ``httpx`` transport, used by tests.
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        api_key: str = "",
        auth_style: str = "bearer",
        api_version: str = "",
        timeout: float = 120.0,
        max_retries: int = 2,
        max_tokens: int | None = 1000,
        temperature: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._auth_style = auth_style
        self._api_version = api_version
        self._timeout = timeout
        self._max_retries = max_retries
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._transport = transport

    @property
    def name(self) -> str:
        return "openai-compat"

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        options: ModelOptions | None = None,
    ) -> CompletionResult:
        body = self._build_body(messages, tools, options or ModelOptions())
        data = await self._post(body)
        return self._parse_response(data)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._api_key:
            if self._auth_style == "azure":
                headers["api-key"] = self._api_key
            else:
                headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        messages: list[Message],
        tools: list[dict] | None,
        options: ModelOptions,
    ) -> dict:
        wire_messages = [to_wire_message(msg) for msg in messages]

        body: dict = {
            "model": options.model or self._model,
            "messages": wire_messages,
        }
        max_tokens = options.max_tokens if options.max_tokens is not None else self._max_tokens
        if max_tokens is not None:
            body["max_tokens"] = max_tokens
        temperature = options.temperature if options.temperature is not None else self._temperature
        if temperature is not None:
            body["temperature"] = temperature
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        logger.info(
            "REQUEST: model=%s tools=%d messages=%d",
            body["model"],
            len(tools) if tools else 0,
            len(wire_messages),
        )
        return body

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, body: dict) -> dict:
        url = f"{self._url}/chat/completions"
        params = {"api-version": self._api_version} if self._api_version else None
        headers = self._build_headers()

        last_error: Exception | None = None
        for attempt in range(1 + self._max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    resp = await client.post(url, json=body, headers=headers, params=params)
            except httpx.TransportError as exc:
                last_error = exc
                logger.warning("Model transport error (attempt %d): %s", attempt + 1, exc)
                continue

            if resp.status_code == 429 or resp.status_code >= 500:
                last_error = ModelCallError(
                    f"HTTP {resp.status_code} from model endpoint",
                    status_code=resp.status_code,
                )
                logger.warning("Retryable model response (attempt %d): HTTP %d", attempt + 1, resp.status_code)
                continue

            if resp.status_code >= 400:
                raise ModelCallError(
                    f"HTTP {resp.status_code} from model endpoint: {resp.text[:200]}",
                    status_code=resp.status_code,
                )

            try:
                return resp.json()
            except ValueError as exc:
                raise ModelCallError(f"Model endpoint returned invalid JSON: {exc}") from exc

        if isinstance(last_error, ModelCallError):
            raise last_error
        raise ModelCallError(f"Model endpoint unreachable: {last_error}") from last_error

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def _parse_response(self, data) -> CompletionResult:
        if not isinstance(data, dict):
            raise ModelCallError("Malformed model response")
        choices = data.get("choices") or []
        if not choices:
            raise ModelCallError("Model response carried no choices")

        choice = choices[0] if isinstance(choices, list) else None
        if not isinstance(choice, dict):
            raise ModelCallError("Malformed model response")
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise ModelCallError("Malformed model response")
        raw_calls = message.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise ModelCallError("Malformed model response")

        tool_calls = []
        for idx, raw in enumerate(raw_calls):
            func = raw.get("function") if isinstance(raw, dict) else None
            if not isinstance(func, dict):
                raise ModelCallError("Malformed model response")
            tool_calls.append(
                ToolCall(
                    id=raw.get("id") or f"call_{idx}",
                    name=func.get("name", ""),
                    arguments=func.get("arguments") or "{}",
                )
            )

        wire_reason = choice.get("finish_reason")
        if tool_calls or wire_reason == FinishReason.TOOL_CALLS:
            finish_reason = FinishReason.TOOL_CALLS
        else:
            # "length", "content_filter" and friends end the loop like "stop".
            finish_reason = FinishReason.STOP

        return CompletionResult(
            finish_reason=finish_reason,
            content=message.get("content"),
            tool_calls=tool_calls,
            model=data.get("model"),
            usage=data.get("usage") or {},
        )


def to_wire_message(msg: Message) -> dict:
    """Render a ``Message`` in chat-completions wire form."""
    m: dict = {"role": msg.role, "content": msg.content}
    if msg.tool_calls:
        m["tool_calls"] = [
            {
                "id": tc.id,
                "type": "function",
                "function": {
                    "name": tc.name,
                    "arguments": tc.arguments if isinstance(tc.arguments, str) else json.dumps(tc.arguments),
                },
            }
            for tc in msg.tool_calls
        ]
    if msg.tool_call_id:
        m["tool_call_id"] = msg.tool_call_id
    return m
