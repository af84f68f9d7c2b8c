"""
Configuration management and loading.

Handles API credentials from the environment and optional YAML overrides.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from ai_provider_router.core.errors import ConfigurationError
from ai_provider_router.core.quota import DEFAULT_DAILY_LIMIT
from ai_provider_router.core.report import DEFAULT_WARNING_THRESHOLD
from ai_provider_router.providers.gemini_client import DEFAULT_GEMINI_MODEL
from ai_provider_router.providers.openai_client import DEFAULT_TEMPERATURE
from ai_provider_router.storage.ledger import DEFAULT_LOG_DIR


@dataclass(frozen=True)
class ModelConfig:
    """Model name used for each tier."""
    gemini: str = DEFAULT_GEMINI_MODEL
    nano: str = "gpt-5-nano"
    mini: str = "gpt-5-mini"

    def __post_init__(self):
        """Validate model names are non-empty."""
        for name in ("gemini", "nano", "mini"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"model '{name}' must be a non-empty string")


@dataclass(frozen=True)
class QuotaConfig:
    """Free-tier quota and warning settings."""
    daily_limit: int = DEFAULT_DAILY_LIMIT
    warning_threshold: int = DEFAULT_WARNING_THRESHOLD

    def __post_init__(self):
        """Validate quota values."""
        if self.daily_limit <= 0:
            raise ValueError("daily_limit must be > 0")
        if self.warning_threshold < 0:
            raise ValueError("warning_threshold cannot be negative")


@dataclass(frozen=True)
class Settings:
    """Complete router configuration."""
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    models: ModelConfig = ModelConfig()
    quota: QuotaConfig = QuotaConfig()
    temperature: Optional[float] = DEFAULT_TEMPERATURE
    log_dir: str = DEFAULT_LOG_DIR

    def __repr__(self) -> str:
        # Never expose credentials in logs or tracebacks
        return (
            f"Settings(gemini_api_key={'***' if self.gemini_api_key else None}, "
            f"openai_api_key={'***' if self.openai_api_key else None}, "
            f"models={self.models!r}, quota={self.quota!r}, "
            f"temperature={self.temperature!r}, log_dir={self.log_dir!r})"
        )

    def require_credentials(self) -> None:
        """Raise if no provider can be built.

        Raises:
            ConfigurationError: If neither API key is set
        """
        if not self.gemini_api_key and not self.openai_api_key:
            raise ConfigurationError(
                "At least one API key (GEMINI_API_KEY or OPENAI_API_KEY) is required"
            )


def load_settings(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Load settings from the environment and an optional YAML file.

    When ``environ`` is omitted, a ``.env`` file is loaded first without
    overriding variables already set in the process.

    Args:
        path: Optional path to a YAML configuration file
        environ: Environment mapping; defaults to ``os.environ``

    Returns:
        Validated Settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if environ is None:
        load_dotenv(override=False)
        environ = os.environ

    raw_config: Dict[str, Any] = {}
    if path is not None:
        raw_config = _read_yaml(path)

    allowed_top_keys = {"models", "quota", "ledger", "temperature"}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    models = ModelConfig(**_section(raw_config, "models", {"gemini", "nano", "mini"}))

    quota_data = _section(raw_config, "quota", {"daily_limit", "warning_threshold"})
    for key, value in quota_data.items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"'quota.{key}' must be an integer")
    quota = QuotaConfig(**quota_data)

    ledger_data = _section(raw_config, "ledger", {"log_dir"})
    log_dir = environ.get("AI_ROUTER_LOG_DIR") or ledger_data.get("log_dir", DEFAULT_LOG_DIR)

    temperature = raw_config.get("temperature", DEFAULT_TEMPERATURE)
    if temperature is not None and (not isinstance(temperature, (int, float)) or temperature < 0):
        raise ValueError("'temperature' must be a non-negative number")

    return Settings(
        gemini_api_key=environ.get("GEMINI_API_KEY") or None,
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        models=models,
        quota=quota,
        temperature=float(temperature) if temperature is not None else None,
        log_dir=str(log_dir)
    )


def _read_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")
    return raw_config


def _section(raw_config: Dict[str, Any], name: str, allowed_keys: set) -> Dict[str, Any]:
    """Extract an optional sub-mapping, rejecting unknown keys."""
    data = raw_config.get(name, {})
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data
