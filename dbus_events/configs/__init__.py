"""
Configuration for the D-Bus event router.

Usage:
    from dbus_events.configs import get_global_config

    rules = get_global_config().load_rule_set()
"""
from .config_manager import ConfigManager, default_config_path, get_global_config

__all__ = [
    "ConfigManager",
    "default_config_path",
    "get_global_config",
]
