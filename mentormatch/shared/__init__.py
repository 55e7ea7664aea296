# Shared utilities package
from .config import Config, Settings, get_config, get_settings, init_config

__all__ = [
    "Config",
    "Settings",
    "get_config",
    "get_settings",
    "init_config",
]
