"""
Rule model for the D-Bus event router.

A rule is plain data: up to three compiled patterns (path, member, data),
each independently negatable, plus the actions to run on a match. Rules are
compiled once from the parsed configuration and never mutated afterwards.
"""
from __future__ import annotations

import logging
import re
import signal
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

PATTERN_FIELDS = ("path", "member", "data")


class RuleDeclaration(BaseModel):
    """One rule as written in the config file."""

    model_config = ConfigDict(extra="forbid")

    path: Optional[str] = Field(None, description="Regex over the signal object path")
    path_not: bool = Field(False, description="Invert the path condition")
    member: Optional[str] = Field(None, description="Regex over the signal member name")
    member_not: bool = Field(False, description="Invert the member condition")
    data: Optional[str] = Field(None, description="Regex over the rendered signal body")
    data_not: bool = Field(False, description="Invert the data condition")
    exec: Optional[str] = Field(None, description="Shell command run on match")
    signal: Optional[int] = Field(None, ge=0, description="Offset from SIGRTMIN to deliver on match")
    signal_process: Optional[str] = Field(None, description="Exact name of the process to signal")


@dataclass(frozen=True)
class Rule:
    name: str
    path_pattern: Optional[re.Pattern] = None
    path_negate: bool = False
    member_pattern: Optional[re.Pattern] = None
    member_negate: bool = False
    data_pattern: Optional[re.Pattern] = None
    data_negate: bool = False
    exec: Optional[str] = None
    signal_number: Optional[int] = None
    signal_target_process: Optional[str] = None

    @property
    def has_actions(self) -> bool:
        return self.exec is not None or self.signal_number is not None

    def describe(self) -> str:
        parts = []
        for field in PATTERN_FIELDS:
            pattern = getattr(self, f"{field}_pattern")
            if pattern is not None:
                op = "!~" if getattr(self, f"{field}_negate") else "~"
                parts.append(f"{field}{op}{pattern.pattern!r}")
        return " ".join(parts) or "<any signal>"


class RuleSet:
    """Ordered, read-only collection of rules in declaration order."""

    __slots__ = ("_rules",)

    def __init__(self, rules: Tuple[Rule, ...] = ()):
        self._rules = tuple(rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __bool__(self) -> bool:
        return bool(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({[rule.name for rule in self._rules]!r})"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(rule.name for rule in self._rules)


def _realtime_span() -> Optional[int]:
    rtmin = getattr(signal, "SIGRTMIN", None)
    rtmax = getattr(signal, "SIGRTMAX", None)
    if rtmin is None or rtmax is None:
        return None
    return int(rtmax) - int(rtmin)


def _compile(name: str, field: str, source: Optional[str]) -> Optional[re.Pattern]:
    if source is None:
        return None
    try:
        return re.compile(source)
    except re.error as exc:
        raise ConfigError(f"invalid pattern {source!r}: {exc}", rule=name, field=field) from exc


def _first_error_field(exc: ValidationError) -> Optional[str]:
    for error in exc.errors():
        loc = error.get("loc") or ()
        if loc:
            return str(loc[0])
    return None


def compile_rule(name: str, raw: Any) -> Rule:
    """Validate one declaration and compile its patterns."""
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"rule must be a table of fields, got {type(raw).__name__}", rule=name)
    try:
        decl = RuleDeclaration.model_validate(dict(raw))
    except ValidationError as exc:
        details = "; ".join(error["msg"] for error in exc.errors())
        raise ConfigError(details, rule=name, field=_first_error_field(exc)) from exc

    if decl.signal is not None:
        if not decl.signal_process:
            raise ConfigError("'signal' is set but 'signal_process' is missing", rule=name, field="signal_process")
        span = _realtime_span()
        if span is not None and decl.signal > span:
            raise ConfigError(
                f"signal offset {decl.signal} is outside the realtime range 0..{span}",
                rule=name,
                field="signal",
            )

    return Rule(
        name=name,
        path_pattern=_compile(name, "path", decl.path),
        path_negate=decl.path_not,
        member_pattern=_compile(name, "member", decl.member),
        member_negate=decl.member_not,
        data_pattern=_compile(name, "data", decl.data),
        data_negate=decl.data_not,
        exec=decl.exec,
        signal_number=decl.signal,
        signal_target_process=decl.signal_process if decl.signal is not None else None,
    )


def load_rules(declarations: Mapping[str, Any]) -> RuleSet:
    """
    Compile a mapping of rule name -> rule fields into a RuleSet.

    Iteration order of ``declarations`` is kept, so the first declared rule
    dispatches first when several rules match the same signal.

    Raises:
        ConfigError: on the first invalid rule
    """
    rules = []
    for name, raw in declarations.items():
        rule = compile_rule(str(name), raw)
        if not rule.has_actions:
            logger.warning(f"Rule '{rule.name}' has no exec or signal action; it will only be logged")
        rules.append(rule)
    logger.info(f"Loaded {len(rules)} rule(s)")
    return RuleSet(tuple(rules))
