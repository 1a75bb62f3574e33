"""
Signal normalizer.

Turns a raw ``dbus_fast.Message`` into a ``NormalizedSignal``: the object
path, the member name and a text rendering of the body that rules can
match against with a regex. Non-signal messages normalize to ``None``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from dbus_fast import MessageType, Variant

from .errors import MessageShapeError

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ",\n"


@dataclass(frozen=True)
class NormalizedSignal:
    path: str
    member: str
    data: str = ""


class _Undecodable(Exception):
    pass


def _plain(value: Any) -> Any:
    """Reduce a D-Bus body value to JSON-compatible data.

    The accepted shapes are the D-Bus type families as unmarshalled by
    dbus-fast: scalars, strings (object paths and signatures included),
    byte arrays, arrays, structs, dicts and variants.
    """
    if isinstance(value, Variant):
        return _plain(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if not isinstance(key, (bool, int, float, str)):
                raise _Undecodable(f"unsupported dict key {type(key).__name__}")
            out[key] = _plain(item)
        return out
    raise _Undecodable(f"unsupported body value {type(value).__name__}")


def render_body(signature: Optional[str], body: Optional[Sequence[Any]]) -> str:
    """Pretty-print every top-level body field and join them with ``,\\n``.

    Returns ``""`` when there is no body or it cannot be reduced to plain
    data.
    """
    if not signature or not body:
        return ""
    try:
        fields = [json.dumps(_plain(field), indent=2, ensure_ascii=False) for field in body]
    except (_Undecodable, TypeError, ValueError) as exc:
        logger.debug(f"Body with signature '{signature}' not decodable: {exc}")
        return ""
    return FIELD_SEPARATOR.join(fields)


def is_signal(message: Any) -> bool:
    return getattr(message, "message_type", None) == MessageType.SIGNAL


def normalize(message: Any) -> Optional[NormalizedSignal]:
    """
    Build the matchable record for one bus message.

    Returns:
        ``None`` for method calls, returns and errors

    Raises:
        MessageShapeError: a signal without path or member
    """
    if not is_signal(message):
        return None
    path = getattr(message, "path", None)
    member = getattr(message, "member", None)
    if not path:
        raise MessageShapeError(f"signal without object path (member={member!r})")
    if not member:
        raise MessageShapeError(f"signal without member name (path={path!r})")
    data = render_body(getattr(message, "signature", None), getattr(message, "body", None))
    return NormalizedSignal(path=str(path), member=str(member), data=data)
