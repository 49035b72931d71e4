from __future__ import annotations

import json

from agent_builder.engine.context import Account, ExecutionContext
from agent_builder.utils.config import AppConfig, ConfigManager, ProviderConfig, apply_environment


def test_environment_overlays_credentials_and_engine_settings() -> None:
    config = apply_environment(AppConfig(), {
        "GEMINI_API_KEY": "g-key",
        "DEFAULT_MODEL": "gpt-4o",
        "DEFAULT_NETWORK": "kusama",
        "COINGECKO_API_URL": "https://prices.example/api",
        "AGENT_BUILDER_HTTP_TIMEOUT": "5",
        "AGENT_BUILDER_ALLOW_CYCLES": "yes",
    })

    assert config.providers.api_key("gemini") == "g-key"
    assert config.providers.default_model == "gpt-4o"
    assert config.chain.default_network == "kusama"
    assert config.engine.price_api_url == "https://prices.example/api"
    assert config.engine.http_timeout == 5.0
    assert config.engine.allow_cycles is True


def test_invalid_timeout_is_ignored() -> None:
    config = apply_environment(AppConfig(), {"AGENT_BUILDER_HTTP_TIMEOUT": "soon"})

    assert config.engine.http_timeout == 30.0


def test_placeholder_and_blank_keys_are_absent() -> None:
    providers = ProviderConfig(openai_api_key="YOUR_OPENAI_API_KEY_HERE", anthropic_api_key="  ")

    assert providers.api_key("openai") is None
    assert providers.api_key("anthropic") is None
    assert providers.api_key("gemini") is None


def test_config_file_round_trip(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    manager = ConfigManager(tmp_path / "cfg" / "config.json")
    config = AppConfig()
    config.engine.http_timeout = 12.0
    manager.save(config)

    stored = json.loads((tmp_path / "cfg" / "config.json").read_text(encoding="utf-8"))
    loaded = ConfigManager(tmp_path / "cfg" / "config.json").load()

    assert stored["engine"]["http_timeout"] == 12.0
    assert loaded.engine.http_timeout == 12.0
    assert loaded.providers.api_key("openai") == "from-env"


def test_unreadable_config_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    assert ConfigManager(path).load().engine.http_timeout == 30.0


def test_context_settings_fall_back_to_global_config(isolated_config) -> None:
    assert ExecutionContext().settings is isolated_config.load()


def test_context_from_request_payload() -> None:
    from_address = ExecutionContext.from_dict({"account": "5Abc"})
    from_object = ExecutionContext.from_dict({"isConnected": False,
                                              "account": {"address": "5Abc", "meta": {"name": "Al"}}})

    assert from_address.is_connected and from_address.account == Account(address="5Abc")
    assert not from_object.is_connected and from_object.account.name == "Al"
    assert ExecutionContext.from_dict(None) == ExecutionContext()


def test_clear_credentials_removes_stored_keys(tmp_path) -> None:
    path = tmp_path / "config.json"
    manager = ConfigManager(path)
    config = AppConfig()
    config.providers.gemini_api_key = "g-key"
    manager.save(config)

    manager.clear_credentials()

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["providers"]["gemini_api_key"] is None
