"""Configuration loading for Upshift.

Usage:
    from upshift.config import get_settings

    settings = get_settings()
    retry_after = settings.upgrade.guard.retry_after_seconds
"""

from functools import lru_cache

from upshift.config.loader import load_config
from upshift.config.settings import Settings, set_toml_config


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached settings instance.

    Falls back to code defaults plus environment variables when no
    config/default.toml can be found. Call `get_settings.cache_clear()`
    to reload configuration.
    """
    try:
        set_toml_config(load_config())
    except FileNotFoundError:
        set_toml_config({})
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


__all__ = ["get_settings", "reload_settings", "Settings"]
