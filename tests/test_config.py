"""
Unit tests for configuration loading and validation.

Tests environment credentials, strict YAML validation and error handling.
"""

import os
import tempfile

import pytest
import yaml

from ai_provider_router.config.loader import (
    ModelConfig,
    QuotaConfig,
    Settings,
    load_settings,
)
from ai_provider_router.core.errors import ConfigurationError


class TestConfigLoading:
    """Test configuration loading and validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, config_data, filename: str = "config.yaml") -> str:
        """Write configuration data to temporary file."""
        config_path = os.path.join(self.temp_dir, filename)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f)
        return config_path

    def test_defaults_from_environment_only(self):
        """Test that defaults apply when no file is given."""
        settings = load_settings(environ={"GEMINI_API_KEY": "g-key"})

        assert settings.gemini_api_key == "g-key"
        assert settings.openai_api_key is None
        assert settings.models == ModelConfig()
        assert settings.quota.daily_limit == 1500
        assert settings.quota.warning_threshold == 300
        assert settings.temperature == 0.7
        assert settings.log_dir == ".cost-logs"

    def test_empty_keys_treated_as_missing(self):
        """Test that blank environment values count as unset."""
        settings = load_settings(environ={"GEMINI_API_KEY": "", "OPENAI_API_KEY": ""})

        with pytest.raises(ConfigurationError):
            settings.require_credentials()

    def test_valid_config_loads_correctly(self):
        """Test that a valid configuration loads correctly."""
        config_path = self._write_config({
            "models": {"gemini": "gemini-2.0-flash", "mini": "gpt-5-mini-2025"},
            "quota": {"daily_limit": 1000, "warning_threshold": 100},
            "ledger": {"log_dir": "/var/log/ai-costs"},
            "temperature": 0.2
        })

        settings = load_settings(config_path, environ={"OPENAI_API_KEY": "o-key"})

        assert settings.models.gemini == "gemini-2.0-flash"
        assert settings.models.nano == "gpt-5-nano"
        assert settings.models.mini == "gpt-5-mini-2025"
        assert settings.quota == QuotaConfig(daily_limit=1000, warning_threshold=100)
        assert settings.log_dir == "/var/log/ai-costs"
        assert settings.temperature == 0.2

    def test_log_dir_environment_override(self):
        """Test that AI_ROUTER_LOG_DIR wins over the file."""
        config_path = self._write_config({"ledger": {"log_dir": "from-file"}})

        settings = load_settings(config_path, environ={"AI_ROUTER_LOG_DIR": "from-env"})

        assert settings.log_dir == "from-env"

    def test_null_temperature_uses_model_default(self):
        """Test null temperature is kept as None."""
        config_path = self._write_config({"temperature": None})
        assert load_settings(config_path, environ={}).temperature is None

    def test_missing_file_fails(self):
        """Test that missing config file raises error."""
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_settings(os.path.join(self.temp_dir, "missing.yaml"), environ={})

    def test_invalid_yaml_fails(self):
        """Test that malformed YAML raises error."""
        config_path = os.path.join(self.temp_dir, "bad.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("models: [unclosed")

        with pytest.raises(yaml.YAMLError):
            load_settings(config_path, environ={})

    def test_empty_file_fails(self):
        """Test that an empty config file raises error."""
        config_path = os.path.join(self.temp_dir, "empty.yaml")
        open(config_path, 'w').close()

        with pytest.raises(ValueError, match="empty"):
            load_settings(config_path, environ={})

    def test_non_mapping_file_fails(self):
        """Test that a non-mapping config file raises error."""
        config_path = self._write_config(["models", "quota"])

        with pytest.raises(ValueError, match="mapping"):
            load_settings(config_path, environ={})

    def test_unknown_top_level_key_fails(self):
        """Test that unknown keys cause failure."""
        config_path = self._write_config({"budget": {"daily": 10}})

        with pytest.raises(ValueError, match="Unknown configuration keys"):
            load_settings(config_path, environ={})

    def test_unknown_section_key_fails(self):
        """Test that unknown section keys cause failure."""
        config_path = self._write_config({"quota": {"daily_limit": 10, "hourly_limit": 1}})

        with pytest.raises(ValueError, match="Unknown keys in quota"):
            load_settings(config_path, environ={})

    def test_section_must_be_mapping(self):
        """Test that sections must be mappings."""
        config_path = self._write_config({"models": "gpt-5-nano"})

        with pytest.raises(ValueError, match="'models' must be a dictionary"):
            load_settings(config_path, environ={})

    def test_quota_must_be_integer(self):
        """Test that quota values must be integers."""
        config_path = self._write_config({"quota": {"daily_limit": "1500"}})

        with pytest.raises(ValueError, match="must be an integer"):
            load_settings(config_path, environ={})

    def test_non_positive_limit_fails(self):
        """Test that a zero daily limit fails."""
        config_path = self._write_config({"quota": {"daily_limit": 0}})

        with pytest.raises(ValueError, match="daily_limit must be > 0"):
            load_settings(config_path, environ={})

    def test_negative_temperature_fails(self):
        """Test that negative temperature fails."""
        config_path = self._write_config({"temperature": -1})

        with pytest.raises(ValueError, match="temperature"):
            load_settings(config_path, environ={})

    def test_empty_model_name_fails(self):
        """Test that blank model names fail."""
        config_path = self._write_config({"models": {"nano": " "}})

        with pytest.raises(ValueError, match="model 'nano'"):
            load_settings(config_path, environ={})


class TestSettings:
    """Test Settings behavior."""

    def test_repr_masks_credentials(self):
        """Test that repr never shows API keys."""
        settings = Settings(gemini_api_key="secret-g", openai_api_key="secret-o")

        text = repr(settings)

        assert "secret-g" not in text
        assert "secret-o" not in text
        assert "***" in text

    def test_require_credentials_accepts_either_key(self):
        """Test that either API key is enough."""
        Settings(openai_api_key="o").require_credentials()
        Settings(gemini_api_key="g").require_credentials()

    def test_require_credentials_rejects_none(self):
        """Test that no API key fails."""
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY or OPENAI_API_KEY"):
            Settings().require_credentials()
