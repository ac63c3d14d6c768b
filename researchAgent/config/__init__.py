"""Configuration: environment settings and the YAML application config."""

from .settings import Settings, get_settings
from .app_config import AppConfig, MCPServerConfig, load_app_config

__all__ = [
    "Settings",
    "get_settings",
    "AppConfig",
    "MCPServerConfig",
    "load_app_config",
]
