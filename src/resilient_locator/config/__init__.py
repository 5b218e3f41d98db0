"""
Configuration module - Centralized settings management.

This module provides type-safe configuration management using Pydantic,
supporting environment variables and YAML files.

Usage:
    from resilient_locator.config import get_settings, load_config
    
    # Get global settings (loaded once)
    settings = get_settings()
    
    # Or load fresh settings with overrides
    settings = load_config(resolver={"min_confidence": 0.5})

Environment Variables:
    RESILIENT_LOCATOR__RESOLVER__MIN_CONFIDENCE=0.4
    RESILIENT_LOCATOR__RESOLVER__TIE_BAND=0.1
    RESILIENT_LOCATOR__CACHE__ENABLED=false
"""

from resilient_locator.config.settings import (
    Settings,
    ResolverSettings,
    WeightSettings,
    StabilitySettings,
    CacheSettings,
    LoggingSettings,
)
from resilient_locator.config.loader import ConfigLoader, load_config

# Global settings singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).
    
    Settings are loaded once from environment variables and config files.
    Call reset_settings() to reload.
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "ResolverSettings",
    "WeightSettings",
    "StabilitySettings",
    "CacheSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
