#!/usr/bin/env python3
"""
Test explicit configuration requirements.
"""

import pytest
import yaml

from llm_gateway.config import Configuration
from llm_gateway.llm.exceptions import ConfigurationError

VALID_CONFIG = {
    "llm": {
        "base_url": "https://llm.example/api/v1",
        "default_model": "yaml-model",
        "timeouts": {"request": 45, "stream_connect": 10, "stream_read": 5.5},
        "app": {"url": "https://app.example", "name": "Planner"},
    },
    "logging": {"level": "DEBUG"},
}


@pytest.fixture
def write_config(tmp_path):
    def write(data) -> str:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(data))
        return str(path)
    return write


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test")
    monkeypatch.delenv("OPENROUTER_DEFAULT_MODEL", raising=False)
    monkeypatch.delenv("WEB_URL", raising=False)
    return monkeypatch


def test_bundled_config_loads(clean_env):
    """The packaged config.yaml is complete."""
    config = Configuration()
    client_config = config.get_client_config()

    assert client_config.base_url == "https://openrouter.ai/api/v1"
    assert client_config.request_timeout == 60.0
    assert client_config.stream_connect_timeout == 30.0
    assert client_config.stream_read_timeout == 30.0


def test_client_config_from_yaml(clean_env, write_config):
    config = Configuration(write_config(VALID_CONFIG))
    client_config = config.get_client_config()

    assert client_config.api_key == "sk-or-test"
    assert client_config.base_url == "https://llm.example/api/v1"
    assert client_config.default_model == "yaml-model"
    assert client_config.request_timeout == 45.0
    assert client_config.stream_read_timeout == 5.5
    assert client_config.app_url == "https://app.example"
    assert client_config.app_name == "Planner"
    assert config.get_logging_config() == {"level": "DEBUG"}


def test_environment_overrides_yaml(clean_env, write_config):
    clean_env.setenv("OPENROUTER_DEFAULT_MODEL", "env-model")
    clean_env.setenv("WEB_URL", "https://web.example")

    client_config = Configuration(write_config(VALID_CONFIG)).get_client_config()
    assert client_config.default_model == "env-model"
    assert client_config.app_url == "https://web.example"


def test_missing_api_key(clean_env, write_config):
    clean_env.delenv("OPENROUTER_API_KEY")
    config = Configuration(write_config(VALID_CONFIG))

    with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY"):
        config.get_client_config()


@pytest.mark.parametrize("key", ["base_url", "default_model", "timeouts", "app"])
def test_llm_keys_required(clean_env, write_config, key):
    data = {"llm": {k: v for k, v in VALID_CONFIG["llm"].items() if k != key}}
    config = Configuration(write_config(data))

    with pytest.raises(ValueError, match=f"llm.{key} must be explicitly configured"):
        config.get_llm_config()


def test_timeouts_required_and_positive(clean_env, write_config):
    missing = {"llm": {**VALID_CONFIG["llm"], "timeouts": {"request": 1, "stream_connect": 1}}}
    with pytest.raises(ValueError, match="llm.timeouts.stream_read"):
        Configuration(write_config(missing)).get_llm_config()

    negative = {
        "llm": {
            **VALID_CONFIG["llm"],
            "timeouts": {"request": 1, "stream_connect": 0, "stream_read": 1},
        }
    }
    with pytest.raises(ValueError, match="positive number"):
        Configuration(write_config(negative)).get_llm_config()


def test_yaml_must_be_mapping(clean_env, write_config):
    with pytest.raises(ValueError, match="Config file must be YAML dict"):
        Configuration(write_config(["not", "a", "dict"]))
