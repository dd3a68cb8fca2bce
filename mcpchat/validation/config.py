"""
mcpchat Configuration - Configuration loading and validation.

This module provides the Config class for managing mcpchat configuration
from both global (~/.mcpchat/config.yaml) and local (.mcpchat/config.yaml)
sources, plus credentials from the environment or a ``.env`` file.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Raised when there's a configuration error."""

    pass


# Environment variable holding the API key of each provider.
API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "groq": "GROQ_API_KEY",
    "together": "TOGETHER_API_KEY",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ProviderConfig(BaseModel):
    """Configuration for an LLM provider."""

    api_key: Optional[str] = None
    api_base: Optional[str] = None
    enabled: bool = True


class AgentConfig(BaseModel):
    """Configuration for the chat session."""

    model: str = "gpt-4o"
    max_tokens: int = 1000
    temperature: Optional[float] = None
    timeout: int = 120
    max_tool_rounds: int = Field(default=1, ge=1)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "WARNING"
    file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class McpChatConfig(BaseModel):
    """Complete mcpchat configuration schema."""

    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class Config:
    """
    mcpchat configuration manager.

    Handles loading, merging, and validating configuration from:
    - Global: ~/.mcpchat/config.yaml
    - Local: .mcpchat/config.yaml (project-specific)
    - Overrides: values passed on the command line

    Later sources override earlier ones.

    Example:
        >>> config = Config.load()
        >>> config.merged.agent.model
        'gpt-4o'
        >>> config.require_api_key("openai")
    """

    GLOBAL_CONFIG_DIR = Path.home() / ".mcpchat"
    LOCAL_CONFIG_DIR = Path(".mcpchat")

    def __init__(
        self,
        global_config: Optional[Dict[str, Any]] = None,
        local_config: Optional[Dict[str, Any]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize Config.

        Args:
            global_config: Global configuration dictionary.
            local_config: Local (project) configuration dictionary.
            overrides: Highest-priority values, e.g. from CLI options.
        """
        self._global_config = global_config or {}
        self._local_config = local_config or {}
        self._overrides = overrides or {}
        self._merged: Optional[McpChatConfig] = None

    @classmethod
    def load(cls, overrides: Optional[Dict[str, Any]] = None, dotenv: bool = True) -> "Config":
        """
        Load configuration from default locations.

        Args:
            overrides: Highest-priority values, e.g. from CLI options.
            dotenv: Whether to read a ``.env`` file into the environment.

        Returns:
            Config instance with loaded configuration.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        global_config = cls._load_yaml(cls.GLOBAL_CONFIG_DIR / "config.yaml")
        local_config = cls._load_yaml(cls._find_local_config())

        return cls(global_config=global_config, local_config=local_config, overrides=overrides)

    @classmethod
    def _load_yaml(cls, path: Optional[Path]) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if path is None or not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @classmethod
    def _find_local_config(cls) -> Optional[Path]:
        """Find the local config file by walking up the directory tree."""
        current = Path.cwd()
        while current != current.parent:
            config_path = current / cls.LOCAL_CONFIG_DIR / "config.yaml"
            if config_path.exists():
                return config_path
            current = current.parent
        return None

    def get_merged_config(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        merged = self._deep_merge(self._global_config.copy(), self._local_config)
        return self._deep_merge(merged, self._overrides)

    @property
    def merged(self) -> McpChatConfig:
        """Get the validated merged configuration."""
        if self._merged is None:
            try:
                self._merged = McpChatConfig(**self.get_merged_config())
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration: {e}")
        return self._merged

    def get_provider_config(self, provider_name: str) -> Optional[ProviderConfig]:
        """Get configuration for a specific provider."""
        return self.merged.providers.get(provider_name)

    def get_api_key(self, provider_name: str) -> Optional[str]:
        """
        Get API key for a provider.

        Checks config first, then environment variables.
        """
        provider = self.get_provider_config(provider_name)
        if provider and provider.api_key:
            return provider.api_key

        env_var = API_KEY_ENV_VARS.get(provider_name)
        if env_var:
            return os.environ.get(env_var) or None

        return None

    def require_api_key(self, provider_name: str) -> str:
        """Return the provider's API key or raise ConfigError if it is missing."""
        api_key = self.get_api_key(provider_name)
        if not api_key:
            env_var = API_KEY_ENV_VARS.get(provider_name, f"{provider_name.upper()}_API_KEY")
            raise ConfigError(
                f"{env_var} is not set. Export it, add it to .env, "
                f"or set providers.{provider_name}.api_key in .mcpchat/config.yaml"
            )
        return api_key

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
