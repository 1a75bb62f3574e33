"""
Configuration Manager for the D-Bus event router

Reads rule declarations from ``$XDG_CONFIG_HOME/dbuseventshandler/config.yml``.
The file is a YAML mapping of rule name to rule fields::

    waybar-bluetooth:
      path: ^/org/bluez/
      member: PropertiesChanged
      data: Connected
      signal: 13
      signal_process: waybar

    notify-usb:
      member: UnitNew
      data: sys-subsystem-usb
      exec: notify-send "USB device added"

A missing file is created empty. An empty file means "nothing to do" and
``load()`` returns ``None``. Rules are loaded once; there is no reload.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.errors import ConfigError
from ..core.rules import RuleSet, load_rules

logger = logging.getLogger(__name__)

APP_DIR = "dbuseventshandler"
CONFIG_FILE = "config.yml"


class DuplicateKeyError(yaml.constructor.ConstructorError):
    def __init__(self, key: Any, top_level: bool, mark):
        self.key = key
        self.top_level = top_level
        super().__init__(None, None, f"duplicate key {key!r}", mark)


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects a key repeated within one mapping."""

    _root = None

    def construct_document(self, node):
        self._root = node
        return super().construct_document(node)

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue
            key = self.construct_object(key_node, deep=deep)
            try:
                repeated = key in seen
            except TypeError:
                continue
            if repeated:
                raise DuplicateKeyError(key, node is self._root, key_node.start_mark)
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def default_config_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / APP_DIR / CONFIG_FILE


class ConfigManager:
    """
    Loads and validates the rule configuration.

    Args:
        config_path: file to read, defaults to ``default_config_path()``
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path is not None else default_config_path()
        self._config: Optional[Dict[str, Any]] = None

    def ensure_exists(self) -> None:
        """Create the config directory and an empty config file when missing."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.config_path.exists():
            self.config_path.touch()
            logger.info(f"Created empty config file {self.config_path}")

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the rule declarations, or None when the file is empty."""
        self.ensure_exists()
        logger.debug(f"Loading configuration from {self.config_path}")
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.load(f, Loader=UniqueKeyLoader)
        except DuplicateKeyError as e:
            line = e.problem_mark.line + 1
            if e.top_level:
                raise ConfigError(f"rule declared more than once (line {line})", rule=str(e.key)) from e
            raise ConfigError(f"field {e.key!r} declared more than once (line {line})", field=str(e.key)) from e
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {self.config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read {self.config_path}: {e}") from e

        if data is None:
            self._config = None
            return None
        if not isinstance(data, dict):
            raise ConfigError(
                f"{self.config_path} must contain a mapping of rule name to rule fields, "
                f"got {type(data).__name__}"
            )
        self._config = data
        return data

    def load_rule_set(self) -> Optional[RuleSet]:
        """Load and compile the rules; None when the config file is empty."""
        declarations = self.load()
        if declarations is None:
            return None
        return load_rules(declarations)

    def get(self, rule: str, default: Any = None) -> Any:
        if self._config is None:
            return default
        return self._config.get(rule, default)

    @property
    def rule_names(self) -> list:
        return list(self._config or {})


# Global instance
_global_config: Optional[ConfigManager] = None


def get_global_config() -> ConfigManager:
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager()
    return _global_config
