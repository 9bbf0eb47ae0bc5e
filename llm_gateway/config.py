"""Configuration management for the LLM gateway."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from llm_gateway.llm.exceptions import ConfigurationError
from llm_gateway.llm.models import API_KEY_ENV, APP_URL_ENV, DEFAULT_MODEL_ENV, ClientConfig

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the gateway."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self._config = self._load_yaml_config(config_path or DEFAULT_CONFIG_PATH)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def llm_api_key(self) -> str:
        """Get the upstream API key.

        Raises:
            ConfigurationError: If the API key is not set in the environment.
        """
        api_key = os.getenv(API_KEY_ENV)
        if not api_key or not api_key.strip():
            raise ConfigurationError(
                f"API key '{API_KEY_ENV}' not found in environment variables"
            )
        return api_key.strip()

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_llm_config(self) -> dict[str, Any]:
        """Get the LLM configuration section with validated values.

        Raises:
            ValueError: If required parameters are missing or invalid.
        """
        llm_config = self._config.get("llm", {})

        required_keys = ["base_url", "default_model", "timeouts", "app"]
        for key in required_keys:
            if key not in llm_config:
                raise ValueError(
                    f"llm.{key} must be explicitly configured in config.yaml"
                )

        timeouts = llm_config["timeouts"]
        for key in ["request", "stream_connect", "stream_read"]:
            if key not in timeouts:
                raise ValueError(
                    f"llm.timeouts.{key} must be explicitly configured in config.yaml"
                )
            value = timeouts[key]
            if not isinstance(value, int | float) or value <= 0:
                raise ValueError(f"llm.timeouts.{key} must be a positive number")

        app = llm_config["app"]
        for key in ["url", "name"]:
            if key not in app:
                raise ValueError(
                    f"llm.app.{key} must be explicitly configured in config.yaml"
                )

        return llm_config

    def get_client_config(self) -> ClientConfig:
        """Build the client configuration.

        The environment overrides YAML for the default model and app URL.
        """
        llm_config = self.get_llm_config()
        timeouts = llm_config["timeouts"]
        app = llm_config["app"]

        return ClientConfig.resolve(
            self.llm_api_key,
            os.getenv(DEFAULT_MODEL_ENV) or llm_config["default_model"],
            base_url=llm_config["base_url"],
            request_timeout=timeouts["request"],
            stream_connect_timeout=timeouts["stream_connect"],
            stream_read_timeout=timeouts["stream_read"],
            app_url=os.getenv(APP_URL_ENV) or app["url"],
            app_name=app["name"],
        )

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})
