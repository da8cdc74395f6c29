"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < env vars < CLI flags

Secrets are never stored in the config itself: sections name the
environment variable holding them (``*_env`` fields) and ``resolve_secret``
reads it when the stack is wired up.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml

from toolrelay.errors import ConfigError


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LLMConfig:
    name: str = "openai"
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    auth_style: str = "bearer"
    api_version: str = ""
    max_tokens: int = 1000
    temperature: float | None = None
    timeout_seconds: int = 120
    max_retries: int = 2


@dataclass
class LoopConfig:
    max_rounds: int = 10
    tool_timeout: float = 30.0
    round_timeout: float | None = 120.0
    query_timeout: float | None = 300.0


@dataclass
class WeatherConfig:
    enabled: bool = True
    api_base: str = "https://api.weather.gov"
    user_agent: str = "weather-app/1.0"
    timeout_seconds: float = 15.0


@dataclass
class ODataConfig:
    enabled: bool = False
    base_url: str = ""
    token_endpoint: str = ""
    client_id: str = ""
    client_secret_env: str = "ODATA_CLIENT_SECRET"
    scope: str = ""
    process_discovery_url: str = ""
    timeout_seconds: float = 30.0
    # entity id -> {endpoint, type, media_type, context_name, ...}
    entities: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class VectorConfig:
    enabled: bool = False
    endpoint: str = ""
    username: str = ""
    password_env: str = "OPENSEARCH_PASSWORD"
    index_prefix: str = ""
    hostname: str = ""
    top_k: int = 10
    threshold: float = 0.4
    embeddings_endpoint: str = ""
    embeddings_deployment: str = ""
    embeddings_api_version: str = ""
    embeddings_api_key_env: str = "AZURE_OPENAI_API_KEY"
    vector_dim: int = 3072
    chunk_size: int = 1000
    chunk_overlap: int = 200
    batch_size: int = 100
    timeout_seconds: float = 30.0


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class ToolRelayConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    weather: WeatherConfig = field(default_factory=WeatherConfig)
    odata: ODataConfig = field(default_factory=ODataConfig)
    vector: VectorConfig = field(default_factory=VectorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    system_prompt: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    if not hasattr(obj, parts[-1]):
        raise ConfigError(f"Unknown config key: {dotpath}")
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


def resolve_secret(env_var: str, environ: dict[str, str] | None = None) -> str:
    """Read a secret from the environment variable named in the config."""
    if not env_var:
        return ""
    env = os.environ if environ is None else environ
    return env.get(env_var, "")


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "TOOLRELAY_LLM_NAME":              ("llm.name", str),
    "TOOLRELAY_LLM_MODEL":             ("llm.model", str),
    "TOOLRELAY_LLM_API_BASE":          ("llm.api_base", str),
    "TOOLRELAY_LLM_API_KEY_ENV":       ("llm.api_key_env", str),
    "TOOLRELAY_LLM_AUTH_STYLE":        ("llm.auth_style", str),
    "TOOLRELAY_LLM_API_VERSION":       ("llm.api_version", str),
    "TOOLRELAY_LLM_MAX_TOKENS":        ("llm.max_tokens", int),
    "TOOLRELAY_LLM_TEMPERATURE":       ("llm.temperature", float),
    "TOOLRELAY_LLM_TIMEOUT":           ("llm.timeout_seconds", int),
    "TOOLRELAY_LOOP_MAX_ROUNDS":       ("loop.max_rounds", int),
    "TOOLRELAY_LOOP_TOOL_TIMEOUT":     ("loop.tool_timeout", float),
    "TOOLRELAY_LOOP_ROUND_TIMEOUT":    ("loop.round_timeout", float),
    "TOOLRELAY_LOOP_QUERY_TIMEOUT":    ("loop.query_timeout", float),
    "TOOLRELAY_WEATHER_ENABLED":       ("weather.enabled", bool),
    "TOOLRELAY_WEATHER_API_BASE":      ("weather.api_base", str),
    "TOOLRELAY_ODATA_ENABLED":         ("odata.enabled", bool),
    "TOOLRELAY_ODATA_BASE_URL":        ("odata.base_url", str),
    "TOOLRELAY_ODATA_TOKEN_ENDPOINT":  ("odata.token_endpoint", str),
    "TOOLRELAY_ODATA_CLIENT_ID":       ("odata.client_id", str),
    "TOOLRELAY_ODATA_SCOPE":           ("odata.scope", str),
    "TOOLRELAY_ODATA_DISCOVERY_URL":   ("odata.process_discovery_url", str),
    "TOOLRELAY_VECTOR_ENABLED":        ("vector.enabled", bool),
    "TOOLRELAY_VECTOR_ENDPOINT":       ("vector.endpoint", str),
    "TOOLRELAY_VECTOR_USERNAME":       ("vector.username", str),
    "TOOLRELAY_VECTOR_INDEX_PREFIX":   ("vector.index_prefix", str),
    "TOOLRELAY_VECTOR_HOSTNAME":       ("vector.hostname", str),
    "TOOLRELAY_VECTOR_TOP_K":          ("vector.top_k", int),
    "TOOLRELAY_VECTOR_THRESHOLD":      ("vector.threshold", float),
    "TOOLRELAY_EMBEDDINGS_ENDPOINT":   ("vector.embeddings_endpoint", str),
    "TOOLRELAY_EMBEDDINGS_DEPLOYMENT": ("vector.embeddings_deployment", str),
    "TOOLRELAY_EMBEDDINGS_API_VERSION": ("vector.embeddings_api_version", str),
    "TOOLRELAY_SERVER_HOST":           ("server.host", str),
    "TOOLRELAY_SERVER_PORT":           ("server.port", int),
    "TOOLRELAY_SERVER_CORS_ORIGINS":   ("server.cors_origins", list),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> ToolRelayConfig:
    """
    Build a ToolRelayConfig by layering sources in precedence order:

        defaults  <  config file  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    cli_overrides : dict of dotpath -> value CLI flag overrides
    environ : environment mapping, ``os.environ`` when omitted
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            if not isinstance(file_data, dict):
                raise ConfigError(f"Config file {p} must hold a mapping")
            raw = _deep_merge(raw, file_data)

    # --- Build sections from raw ---
    cfg = ToolRelayConfig(
        llm=_build_section(LLMConfig, raw.get("llm", {})),
        loop=_build_section(LoopConfig, raw.get("loop", {})),
        weather=_build_section(WeatherConfig, raw.get("weather", {})),
        odata=_build_section(ODataConfig, raw.get("odata", {})),
        vector=_build_section(VectorConfig, raw.get("vector", {})),
        server=_build_section(ServerConfig, raw.get("server", {})),
        system_prompt=raw.get("system_prompt", "") or "",
    )

    # --- 2. Env var overrides ---
    env = os.environ if environ is None else environ
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = env.get(env_var)
        if val is not None:
            try:
                _apply_dotpath(cfg, dotpath, _coerce(val, target_type))
            except ValueError as e:
                raise ConfigError(f"Bad value for {env_var}: {val!r}") from e

    # --- 3. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            _apply_dotpath(cfg, dotpath, value)

    if cfg.loop.max_rounds < 1:
        raise ConfigError("loop.max_rounds must be at least 1")

    return cfg
