"""Tests for configuration management."""

import tempfile
from pathlib import Path

import pytest

from mcpchat.validation.config import Config, ConfigError, McpChatConfig


class TestConfig:
    """Tests for Config class."""

    @pytest.fixture
    def temp_config_dir(self):
        """Create a temporary config directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_deep_merge(self):
        """Test deep merging of dictionaries."""
        config = Config()

        base = {
            "a": 1,
            "b": {"c": 2, "d": 3},
            "e": [1, 2, 3],
        }

        override = {
            "b": {"c": 10, "f": 5},
            "g": "new",
        }

        result = config._deep_merge(base, override)

        assert result["a"] == 1
        assert result["b"]["c"] == 10
        assert result["b"]["d"] == 3
        assert result["b"]["f"] == 5
        assert result["e"] == [1, 2, 3]
        assert result["g"] == "new"

    def test_get_merged_config(self):
        """Test that local overrides global and overrides beat both."""
        config = Config(
            global_config={
                "providers": {"openai": {"api_base": "https://proxy.example.com/v1"}},
                "agent": {"model": "gpt-4o", "max_tokens": 500},
            },
            local_config={"agent": {"model": "groq/llama-3.3-70b-versatile"}},
            overrides={"agent": {"max_tokens": 2000}},
        )
        merged = config.get_merged_config()

        assert merged["agent"]["model"] == "groq/llama-3.3-70b-versatile"
        assert merged["agent"]["max_tokens"] == 2000
        assert merged["providers"]["openai"]["api_base"] == "https://proxy.example.com/v1"

    def test_invalid_config(self):
        """Test that schema violations surface as ConfigError."""
        config = Config(global_config={"agent": {"max_tool_rounds": 0}})

        with pytest.raises(ConfigError, match="Invalid configuration"):
            config.merged

    def test_invalid_log_level(self):
        config = Config(global_config={"logging": {"level": "LOUD"}})

        with pytest.raises(ConfigError):
            config.merged

    def test_log_level_normalised(self):
        config = Config(overrides={"logging": {"level": "debug"}})

        assert config.merged.logging.level == "DEBUG"

    def test_api_key_from_config(self, monkeypatch):
        """Test that a configured key wins over the environment."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        config = Config(global_config={"providers": {"openai": {"api_key": "sk-config"}}})

        assert config.get_api_key("openai") == "sk-config"

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

        assert Config().get_api_key("openai") == "sk-env"

    def test_require_api_key_missing(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)

        with pytest.raises(ConfigError, match="GROQ_API_KEY is not set"):
            Config().require_api_key("groq")

    def test_empty_env_key_is_missing(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "")

        assert Config().get_api_key("openai") is None

    def test_load_yaml(self, temp_config_dir):
        """Test reading a YAML config file."""
        path = temp_config_dir / "config.yaml"
        path.write_text("agent:\n  model: gpt-4o-mini\n")

        assert Config._load_yaml(path) == {"agent": {"model": "gpt-4o-mini"}}

    def test_load_yaml_missing_and_empty(self, temp_config_dir):
        assert Config._load_yaml(temp_config_dir / "nope.yaml") == {}
        assert Config._load_yaml(None) == {}

        empty = temp_config_dir / "empty.yaml"
        empty.write_text("")
        assert Config._load_yaml(empty) == {}

    def test_load_yaml_not_a_mapping(self, temp_config_dir):
        path = temp_config_dir / "config.yaml"
        path.write_text("- one\n- two\n")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            Config._load_yaml(path)

    def test_load_yaml_syntax_error(self, temp_config_dir):
        path = temp_config_dir / "config.yaml"
        path.write_text("agent: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to load config"):
            Config._load_yaml(path)

    def test_load_finds_local_config(self, temp_config_dir, monkeypatch):
        """Test that load() picks up .mcpchat/config.yaml from a parent directory."""
        (temp_config_dir / ".mcpchat").mkdir()
        (temp_config_dir / ".mcpchat" / "config.yaml").write_text("agent:\n  max_tokens: 42\n")
        nested = temp_config_dir / "src" / "pkg"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", temp_config_dir / "home")

        config = Config.load(overrides={"agent": {"model": "gpt-4o-mini"}}, dotenv=False)

        assert config.merged.agent.max_tokens == 42
        assert config.merged.agent.model == "gpt-4o-mini"

    def test_load_reads_dotenv(self, temp_config_dir, monkeypatch):
        # setenv first so the variable written by load() is removed afterwards
        monkeypatch.setenv("OPENAI_API_KEY", "")
        monkeypatch.delenv("OPENAI_API_KEY")
        (temp_config_dir / ".env").write_text("OPENAI_API_KEY=sk-dotenv\n")
        monkeypatch.chdir(temp_config_dir)
        monkeypatch.setattr(Config, "GLOBAL_CONFIG_DIR", temp_config_dir / "home")

        config = Config.load()

        assert config.get_api_key("openai") == "sk-dotenv"


class TestMcpChatConfig:
    """Tests for McpChatConfig schema."""

    def test_default_config(self):
        """Test creating default configuration."""
        config = McpChatConfig()

        assert config.agent.model == "gpt-4o"
        assert config.agent.max_tokens == 1000
        assert config.agent.temperature is None
        assert config.agent.max_tool_rounds == 1
        assert config.logging.level == "WARNING"
        assert len(config.providers) == 0

    def test_config_with_providers(self):
        """Test configuration with providers."""
        config = McpChatConfig(
            providers={
                "openai": {
                    "api_key": "test",
                    "enabled": True,
                }
            }
        )

        assert "openai" in config.providers
        assert config.providers["openai"].enabled is True
        assert config.providers["openai"].api_base is None
