"""Configuration package for the whitelist services."""
from .community import CommunityConfig, ConfigField, apply_field, normalize_snowflake
from .settings import Settings, settings

__all__ = [
    "CommunityConfig",
    "ConfigField",
    "apply_field",
    "normalize_snowflake",
    "Settings",
    "settings",
]
