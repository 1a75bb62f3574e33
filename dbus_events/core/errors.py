"""Exception types for the D-Bus event router."""
from __future__ import annotations

from typing import Optional


class DBusEventsError(Exception):
    """Base class for all router errors."""


class ConfigError(DBusEventsError):
    """Invalid rule configuration, detected at load time."""

    def __init__(self, message: str, rule: Optional[str] = None, field: Optional[str] = None):
        self.rule = rule
        self.field = field
        prefix = ""
        if rule is not None:
            prefix = f"[{rule}]" if field is None else f"[{rule}.{field}]"
        super().__init__(f"{prefix} {message}" if prefix else message)


class BusFatalError(DBusEventsError):
    """Connection, subscription or stream failure. Never retried."""


class MessageShapeError(DBusEventsError):
    """A signal arrived without its required path or member header."""
