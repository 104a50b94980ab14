"""
Configuration management for IdeaPile.

Uses XDG base directories:
- Config: ~/.config/ideapile/config.toml
- Data: ~/ideapile/ (the idea store)

Configuration is read fresh on every call to load_config(); callers should not
hold on to the result beyond a single operation.
"""

from pathlib import Path
from typing import Any
import os

# XDG defaults
DEFAULT_CONFIG_HOME = Path.home() / ".config"
DEFAULT_DATA_HOME = Path.home() / "ideapile"

# Default models for each provider
DEFAULT_MODELS = {
    "openai": "gpt-3.5-turbo",
    "anthropic": "claude-haiku-4-5-20251001",
}

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
}

API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def get_config_dir() -> Path:
    """Get the config directory (XDG_CONFIG_HOME/ideapile)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", DEFAULT_CONFIG_HOME))
    return base / "ideapile"


def get_ideapile_home() -> Path:
    """Get the data directory (~/ideapile or IDEAPILE_HOME)."""
    if env_home := os.environ.get("IDEAPILE_HOME"):
        return Path(env_home)
    return DEFAULT_DATA_HOME


def get_config_path() -> Path:
    """Get the path to config.toml."""
    return get_config_dir() / "config.toml"


def get_db_path() -> Path:
    """Get the path to ideapile.db."""
    return get_ideapile_home() / "ideapile.db"


def ensure_dirs() -> None:
    """Ensure all required directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_ideapile_home().mkdir(parents=True, exist_ok=True)


def load_config() -> dict[str, Any]:
    """
    Load configuration from config.toml.

    Returns default config if file doesn't exist. Sections present in the
    file are layered over the defaults key by key.
    """
    config = get_default_config()
    config_path = get_config_path()

    if not config_path.exists():
        return config

    # Lazy import tomli only when needed
    import tomli

    with open(config_path, "rb") as f:
        user_config = tomli.load(f)

    for section, values in user_config.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


def get_default_config() -> dict[str, Any]:
    """Return default configuration."""
    return {
        "ideapile": {
            "home": str(get_ideapile_home()),
        },
        "llm": {
            "provider": "openai",  # or "anthropic"
            "temperature": 0.7,
            "timeout": 30.0,
        },
        "features": {
            "speech_to_text": True,
            "auto_tagging": False,
        },
    }


def get_llm_settings(config: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Resolve the remote completion settings from config and environment.

    The API key comes from the config file first, then the provider's
    environment variable. A missing key is reported as None, never raised.
    """
    config = config if config is not None else load_config()
    llm_config = config.get("llm", {})

    provider = llm_config.get("provider", "openai")
    if provider not in DEFAULT_MODELS:
        provider = "openai"

    api_key = (
        llm_config.get(f"{provider}_api_key")
        or os.environ.get(API_KEY_ENV_VARS[provider])
    )

    return {
        "provider": provider,
        "api_key": api_key or None,
        "model": llm_config.get("model", DEFAULT_MODELS[provider]),
        "base_url": llm_config.get("base_url", DEFAULT_BASE_URLS[provider]),
        "temperature": float(llm_config.get("temperature", 0.7)),
        "timeout": float(llm_config.get("timeout", 30.0)),
    }


def feature_enabled(name: str, config: dict[str, Any] | None = None) -> bool:
    """Check a toggle in the [features] section."""
    config = config if config is not None else load_config()
    return bool(config.get("features", {}).get(name, False))
