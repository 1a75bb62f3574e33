"""Rule model, normalizer, matcher, dispatcher and router for D-Bus signals."""
from .errors import BusFatalError, ConfigError, DBusEventsError, MessageShapeError
from .rules import Rule, RuleDeclaration, RuleSet, load_rules
from .normalizer import NormalizedSignal, normalize, render_body
from .matcher import match_rules, rule_matches
from .dispatcher import ActionDispatcher, DispatchOutcome
from .bus import BusConnection, BusKind
from .router import Router, RouterMode, RouterState

__all__ = [
    "ActionDispatcher",
    "BusConnection",
    "BusFatalError",
    "BusKind",
    "ConfigError",
    "DBusEventsError",
    "DispatchOutcome",
    "MessageShapeError",
    "NormalizedSignal",
    "Router",
    "RouterMode",
    "RouterState",
    "Rule",
    "RuleDeclaration",
    "RuleSet",
    "load_rules",
    "match_rules",
    "normalize",
    "render_body",
    "rule_matches",
]
