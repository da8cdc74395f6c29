"""
Wiring -- turn a ``ToolRelayConfig`` into a registry, a model client and a loop.

This is the only place where secrets are read from the environment.
"""

from __future__ import annotations

import logging

from toolrelay.config import ToolRelayConfig, resolve_secret
from toolrelay.errors import ConfigError
from toolrelay.llm.providers.openai_compat import OpenAICompatClient
from toolrelay.llm.router import ModelRouter
from toolrelay.llm.types import ModelOptions
from toolrelay.orchestrator.core import ConversationLoop
from toolrelay.prompts.system import build_system_prompt
from toolrelay.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


def build_model_client(cfg: ToolRelayConfig, environ: dict[str, str] | None = None) -> ModelRouter:
    router = ModelRouter()
    client = OpenAICompatClient(
        url=cfg.llm.api_base,
        model=cfg.llm.model,
        api_key=resolve_secret(cfg.llm.api_key_env, environ),
        auth_style=cfg.llm.auth_style,
        api_version=cfg.llm.api_version,
        timeout=float(cfg.llm.timeout_seconds),
        max_retries=cfg.llm.max_retries,
        max_tokens=cfg.llm.max_tokens,
        temperature=cfg.llm.temperature,
    )
    router.register_client(cfg.llm.name, client)
    return router


def build_registry(cfg: ToolRelayConfig, environ: dict[str, str] | None = None) -> ToolRegistry:
    """Register every tool family enabled in *cfg*."""
    registry = ToolRegistry()

    if cfg.weather.enabled:
        from toolrelay.tools.weather import GetAlertsTool, GetForecastTool, NWSClient

        nws = NWSClient(
            api_base=cfg.weather.api_base,
            user_agent=cfg.weather.user_agent,
            timeout=cfg.weather.timeout_seconds,
        )
        registry.register(GetAlertsTool(nws))
        registry.register(GetForecastTool(nws))

    if cfg.odata.enabled:
        from toolrelay.tools.odata import ODataClient, ODataQueryTool, ProcessDiscoveryTool

        if not cfg.odata.base_url or not cfg.odata.token_endpoint:
            raise ConfigError("odata.base_url and odata.token_endpoint are required")
        odata = ODataClient(
            base_url=cfg.odata.base_url,
            token_endpoint=cfg.odata.token_endpoint,
            client_id=cfg.odata.client_id,
            client_secret=resolve_secret(cfg.odata.client_secret_env, environ),
            scope=cfg.odata.scope,
            process_discovery_url=cfg.odata.process_discovery_url,
            timeout=cfg.odata.timeout_seconds,
        )
        registry.register(ODataQueryTool(odata, cfg.odata.entities))
        if cfg.odata.process_discovery_url:
            registry.register(ProcessDiscoveryTool(odata, cfg.odata.entities))

    if cfg.vector.enabled:
        from toolrelay.tools.vector import VectorSearchTool

        if not cfg.vector.hostname:
            raise ConfigError("vector.hostname is required")
        registry.register(
            VectorSearchTool(
                build_vector_search(cfg, environ),
                hostname=cfg.vector.hostname,
                default_top_k=cfg.vector.top_k,
                threshold=cfg.vector.threshold,
            )
        )

    logger.info("Registered tools: %s", registry.names())
    return registry


def build_vector_search(cfg: ToolRelayConfig, environ: dict[str, str] | None = None):
    from toolrelay.vector.embeddings import EmbeddingProcessor
    from toolrelay.vector.search import VectorSearch

    v = cfg.vector
    if not v.endpoint or not v.index_prefix:
        raise ConfigError("vector.endpoint and vector.index_prefix are required")
    embeddings = EmbeddingProcessor(
        endpoint=v.embeddings_endpoint,
        api_key=resolve_secret(v.embeddings_api_key_env, environ),
        deployment=v.embeddings_deployment,
        api_version=v.embeddings_api_version,
        vector_dim=v.vector_dim,
        timeout=v.timeout_seconds,
    )
    return VectorSearch(
        endpoint=v.endpoint,
        embeddings=embeddings,
        index_prefix=v.index_prefix,
        username=v.username,
        password=resolve_secret(v.password_env, environ),
        timeout=v.timeout_seconds,
    )


def build_loop(
    cfg: ToolRelayConfig,
    registry: ToolRegistry | None = None,
    model_client=None,
    environ: dict[str, str] | None = None,
) -> ConversationLoop:
    registry = registry if registry is not None else build_registry(cfg, environ)
    model_client = model_client if model_client is not None else build_model_client(cfg, environ)
    system_prompt = cfg.system_prompt or build_system_prompt(tools=registry.list())
    return ConversationLoop(
        registry=registry,
        model_client=model_client,
        system_prompt=system_prompt,
        max_rounds=cfg.loop.max_rounds,
        tool_timeout=cfg.loop.tool_timeout,
        round_timeout=cfg.loop.round_timeout,
        query_timeout=cfg.loop.query_timeout,
        model_options=ModelOptions(
            model=cfg.llm.model,
            max_tokens=cfg.llm.max_tokens,
            temperature=cfg.llm.temperature,
        ),
    )
