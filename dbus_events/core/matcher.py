"""Rule matching: a conjunction of three independently negatable regex conditions."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .normalizer import NormalizedSignal
from .rules import Rule


def condition_holds(pattern: Optional[re.Pattern], negate: bool, value: str) -> bool:
    # no pattern means the condition is always satisfied
    if pattern is None:
        return True
    return negate ^ (pattern.search(value) is not None)


def rule_matches(rule: Rule, signal: NormalizedSignal) -> bool:
    return (
        condition_holds(rule.path_pattern, rule.path_negate, signal.path)
        and condition_holds(rule.member_pattern, rule.member_negate, signal.member)
        and condition_holds(rule.data_pattern, rule.data_negate, signal.data)
    )


def match_rules(signal: NormalizedSignal, rules: Iterable[Rule]) -> List[Rule]:
    """Return the rules matching ``signal``, in rule-set order."""
    return [rule for rule in rules if rule_matches(rule, signal)]
