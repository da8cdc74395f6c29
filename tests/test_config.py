"""Tests for config loading and stack wiring."""

from __future__ import annotations

import pytest

from toolrelay.config import ToolRelayConfig, load_config, resolve_secret
from toolrelay.errors import ConfigError
from toolrelay.llm.router import ModelRouter
from toolrelay.prompts.system import DATA_WORKFLOW_SECTION, build_system_prompt
from toolrelay.stack import build_loop, build_model_client, build_registry

YAML = """
llm:
  model: gpt-4o
  max_tokens: 500
loop:
  max_rounds: 4
weather:
  enabled: false
odata:
  enabled: true
  base_url: https://erp.test/odata
  token_endpoint: https://auth.test/token
  client_id: app
  entities:
    "42":
      endpoint: sales/
      type: Orders
vector:
  enabled: true
  endpoint: https://search.test
  index_prefix: kb
  hostname: acme.com
  embeddings_endpoint: https://embed.test
  embeddings_deployment: embed
system_prompt: ""
"""


@pytest.fixture
def config_file(tmp_path):
    p = tmp_path / "toolrelay.yaml"
    p.write_text(YAML)
    return p


class TestLoadConfig:
    def test_defaults(self):
        cfg = load_config(environ={})
        assert cfg.llm.model == "gpt-4o-mini"
        assert cfg.loop.max_rounds == 10
        assert cfg.weather.enabled
        assert not cfg.odata.enabled
        assert cfg.server.port == 3000

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nope.yaml", environ={})
        assert cfg == ToolRelayConfig()

    def test_yaml_layer(self, config_file):
        cfg = load_config(config_file, environ={})
        assert cfg.llm.model == "gpt-4o"
        assert cfg.llm.max_tokens == 500
        assert cfg.loop.max_rounds == 4
        assert cfg.odata.entities["42"]["type"] == "Orders"
        # untouched keys keep their defaults
        assert cfg.llm.api_base == "https://api.openai.com/v1"

    def test_env_overrides_yaml(self, config_file):
        cfg = load_config(
            config_file,
            environ={
                "TOOLRELAY_LLM_MODEL": "from-env",
                "TOOLRELAY_WEATHER_ENABLED": "yes",
                "TOOLRELAY_SERVER_CORS_ORIGINS": "https://a.test, https://b.test",
            },
        )
        assert cfg.llm.model == "from-env"
        assert cfg.weather.enabled is True
        assert cfg.server.cors_origins == ["https://a.test", "https://b.test"]

    def test_cli_overrides_env(self, config_file):
        cfg = load_config(
            config_file,
            environ={"TOOLRELAY_LOOP_MAX_ROUNDS": "6"},
            cli_overrides={"loop.max_rounds": 8},
        )
        assert cfg.loop.max_rounds == 8

    def test_unknown_cli_key(self):
        with pytest.raises(ConfigError, match="Unknown config key"):
            load_config(environ={}, cli_overrides={"loop.nonsense": 1})

    def test_bad_env_value(self):
        with pytest.raises(ConfigError, match="TOOLRELAY_SERVER_PORT"):
            load_config(environ={"TOOLRELAY_SERVER_PORT": "eighty"})

    def test_non_mapping_file(self, tmp_path):
        p = tmp_path / "bad.yaml"
        p.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(p, environ={})

    def test_max_rounds_validated(self):
        with pytest.raises(ConfigError):
            load_config(environ={"TOOLRELAY_LOOP_MAX_ROUNDS": "0"})

    def test_resolve_secret(self):
        assert resolve_secret("MY_KEY", {"MY_KEY": "s3cret"}) == "s3cret"
        assert resolve_secret("MY_KEY", {}) == ""
        assert resolve_secret("", {"": "x"}) == ""


class TestStack:
    def test_registry_follows_enabled_flags(self, config_file):
        cfg = load_config(config_file, environ={})
        registry = build_registry(cfg, environ={})
        assert registry.names() == ["get_data_via_odata", "search_knowledge_base"]

    def test_default_registry_has_weather_tools(self):
        registry = build_registry(ToolRelayConfig(), environ={})
        assert registry.names() == ["get_alerts", "get_forecast"]

    def test_odata_requires_endpoints(self):
        cfg = ToolRelayConfig()
        cfg.odata.enabled = True
        with pytest.raises(ConfigError, match="odata"):
            build_registry(cfg, environ={})

    def test_vector_requires_hostname(self):
        cfg = ToolRelayConfig()
        cfg.vector.enabled = True
        with pytest.raises(ConfigError, match="hostname"):
            build_registry(cfg, environ={})

    def test_model_client_is_router(self):
        cfg = ToolRelayConfig()
        client = build_model_client(cfg, environ={"OPENAI_API_KEY": "sk"})
        assert isinstance(client, ModelRouter)
        assert client.active_name == "openai"

    def test_build_loop(self, config_file):
        cfg = load_config(config_file, environ={})
        loop = build_loop(cfg, environ={})

        assert loop.max_rounds == 4
        assert loop.registry.frozen
        assert loop.model_options.max_tokens == 500
        assert DATA_WORKFLOW_SECTION in loop.system_prompt

    def test_configured_system_prompt_wins(self):
        cfg = ToolRelayConfig(system_prompt="Only answer in haiku.")
        assert build_loop(cfg, environ={}).system_prompt == "Only answer in haiku."


def test_system_prompt_lists_tools():
    registry = build_registry(ToolRelayConfig(), environ={})
    prompt = build_system_prompt(registry.list())
    assert "- **get_alerts**: Get weather alerts for a state" in prompt
    assert DATA_WORKFLOW_SECTION not in prompt
