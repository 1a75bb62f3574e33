"""
Action dispatcher.

Runs the actions of one matched rule: first the realtime signal to the
target process (inline, a single process table scan), then the shell
command (handed to the background ``ShellRunner``). Failures are logged
and never propagate to the message loop.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..tools.process import notify_process
from ..tools.shell import ShellRunner
from .normalizer import NormalizedSignal
from .rules import Rule

logger = logging.getLogger(__name__)

Notifier = Callable[[str, int], bool]


@dataclass
class DispatchOutcome:
    rule: str
    signalled: Optional[bool] = None
    launched: bool = False
    actions: List[str] = field(default_factory=list)


class ActionDispatcher:
    def __init__(self, runner: ShellRunner, notifier: Notifier = notify_process):
        self.runner = runner
        self.notifier = notifier

    def dispatch(self, rule: Rule, signal: NormalizedSignal) -> DispatchOutcome:
        outcome = DispatchOutcome(rule=rule.name)

        if rule.signal_number is not None:
            logger.info(
                f"[{rule.name}] {signal.member} on {signal.path}: "
                f"notify '{rule.signal_target_process}' with signal {rule.signal_number}"
            )
            outcome.actions.append("signal")
            outcome.signalled = self.notifier(rule.signal_target_process, rule.signal_number)

        if rule.exec is not None:
            logger.info(f"[{rule.name}] {signal.member} on {signal.path}: exec `{rule.exec}`")
            outcome.actions.append("exec")
            try:
                self.runner.launch(rule.name, rule.exec)
                outcome.launched = True
            except RuntimeError as e:
                logger.error(f"[{rule.name}] Could not schedule `{rule.exec}`: {e}")

        if not outcome.actions:
            logger.info(f"[{rule.name}] {signal.member} on {signal.path}: matched, no action configured")
        return outcome
