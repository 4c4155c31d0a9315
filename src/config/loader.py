"""Configuration loader for the Re-Prompt traceability engine.

Provides centralized access to all engine configuration parameters.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from models.engine_config import EngineConfig

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path(__file__).parent / "engine_config.yaml"

# Placeholder values shipped in sample .env files
_PLACEHOLDER_MARKERS = ("YOUR_GROQ", "YOUR_API_KEY", "changeme")


class ConfigLoader:
    """Loads and provides access to engine configuration."""

    _instance: Optional[ConfigLoader] = None
    _config: Optional[dict[str, Any]] = None

    def __new__(cls) -> ConfigLoader:
        """Singleton pattern - ensure only one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize config loader (only runs once due to singleton)."""
        if self._config is None:
            self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if CONFIG_FILE.exists():
            with open(CONFIG_FILE) as f:
                self._config = yaml.safe_load(f) or {}
            logger.info("config_loaded", path=str(CONFIG_FILE))
        else:
            logger.warning("config_file_not_found", path=str(CONFIG_FILE))
            self._config = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Examples:
            config.get("thresholds.tfidf_traceable")
            config.get("limits.abort_timeout_ms")
            config.get("nonexistent.key", default=100)
        """
        if not self._config:
            return default

        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def get_section(self, section: str) -> dict[str, Any]:
        """Get entire configuration section.

        Examples:
            config.get_section("thresholds")
            config.get_section("confidence")
        """
        return self.get(section, default={})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._config = None
        self._load_config()


# Singleton instance
_config = ConfigLoader()


def get_config() -> ConfigLoader:
    """Get the global config instance."""
    return _config


def get_thresholds() -> dict[str, float]:
    """Get lexical, judge and confidence-floor thresholds."""
    return _config.get_section("thresholds")


def get_limits() -> dict[str, int]:
    """Get per-request limits (judge budget, timeouts, window sizes)."""
    return _config.get_section("limits")


def get_judge_provider() -> str:
    """Get judge provider name. JUDGE_PROVIDER overrides the YAML value."""
    return os.getenv("JUDGE_PROVIDER") or _config.get("judge.provider", "groq")


def get_judge_model() -> str:
    """Get judge model name. GROQ_MODEL overrides the YAML value."""
    return os.getenv("GROQ_MODEL") or _config.get("judge.model", "llama-3.1-8b-instant")


def is_llm_judge_enabled() -> bool:
    """Judge fallback switch. USE_LLM_JUDGE=false disables it."""
    env_value = os.getenv("USE_LLM_JUDGE")
    if env_value is not None:
        return env_value.lower() in ("1", "true", "yes")
    return bool(_config.get("features.use_llm_judge", True))


def build_engine_config() -> EngineConfig:
    """Build the typed EngineConfig from the YAML file and environment.

    Sections missing from the YAML fall back to the model defaults.
    """
    sections = {
        name: _config.get_section(name)
        for name in ("version", "thresholds", "limits", "circuit_breaker", "confidence", "features", "judge")
    }
    sections["version"] = {**sections["version"], "build": os.getenv("BUILD_HASH", "dev")}
    sections["features"] = {**sections["features"], "use_llm_judge": is_llm_judge_enabled()}
    sections["judge"] = {
        **sections["judge"],
        "provider": get_judge_provider(),
        "model": get_judge_model(),
    }
    return EngineConfig.model_validate(sections)


def validate_config(provider: Optional[str] = None) -> bool:
    """Warn on startup when the judge API key is missing.

    Returns True when a usable key is present. The key itself is never logged.
    """
    provider = provider or get_judge_provider()
    env_name = "ANTHROPIC_API_KEY" if provider == "anthropic" else "GROQ_API_KEY"
    key = os.getenv(env_name, "")

    if not key or any(marker in key for marker in _PLACEHOLDER_MARKERS):
        logger.warning("judge_api_key_missing", env_var=env_name, provider=provider)
        return False

    logger.info("judge_api_key_loaded", env_var=env_name, provider=provider)
    return True
