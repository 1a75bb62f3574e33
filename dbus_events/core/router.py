"""
Event loop / router.

Owns the bus subscription and the rule set. A single consumer pulls
messages in arrival order and, for each one, runs normalize -> match ->
dispatch before pulling the next. Shell commands run off this path in the
background, so only matching and signal delivery are serialized with
message consumption.

States: IDLE -> LISTENING (after connect + subscribe) -> TERMINATED (stream
ended or fatal error). There is no reconnection.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, AsyncIterator, List, Optional, Protocol

from rich.console import Console
from rich.text import Text

from .dispatcher import ActionDispatcher
from .errors import BusFatalError
from .matcher import match_rules
from .normalizer import NormalizedSignal, normalize
from .rules import Rule, RuleSet

logger = logging.getLogger(__name__)


class RouterState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    TERMINATED = "terminated"


class RouterMode(str, Enum):
    EVENT = "event"
    WATCH = "watch"


class Connection(Protocol):
    async def connect(self) -> None: ...

    async def subscribe_all_signals(self) -> None: ...

    def messages(self) -> AsyncIterator[Any]: ...


class Router:
    def __init__(
        self,
        connection: Connection,
        rules: RuleSet,
        dispatcher: ActionDispatcher,
        mode: RouterMode = RouterMode.EVENT,
        console: Optional[Console] = None,
    ):
        self.connection = connection
        self.rules = rules
        self.dispatcher = dispatcher
        self.mode = RouterMode(mode)
        self.console = console or Console(highlight=False)
        self.state = RouterState.IDLE
        self.processed = 0

    async def start(self) -> None:
        if self.state is not RouterState.IDLE:
            raise RuntimeError(f"router cannot start from state {self.state.value}")
        try:
            await self.connection.connect()
            await self.connection.subscribe_all_signals()
        except BusFatalError:
            self.state = RouterState.TERMINATED
            raise
        self.state = RouterState.LISTENING
        logger.info(f"Listening to all D-Bus signals ({self.mode.value} mode, {len(self.rules)} rule(s))")

    def handle(self, message: Any) -> List[Rule]:
        """Process one message synchronously and return the rules that fired."""
        signal = normalize(message)
        if signal is None:
            return []
        self.processed += 1
        if signal.data:
            logger.debug(f"Path:{signal.path} Member:{signal.member}\n{signal.data}")
        else:
            logger.debug(f"Path:{signal.path} Member:{signal.member}")

        if self.mode is RouterMode.WATCH:
            self._print(signal)
            return []

        matched = match_rules(signal, self.rules)
        for rule in matched:
            self.dispatcher.dispatch(rule, signal)
        return matched

    def _print(self, signal: NormalizedSignal) -> None:
        line = Text.assemble("Path:", (signal.path, "cyan"), " Member:", (signal.member, "bright_cyan"))
        self.console.print(line)
        if signal.data:
            self.console.print(Text(signal.data, style="white"))

    async def run(self) -> None:
        """
        Consume messages until the stream ends.

        Raises:
            BusFatalError: the stream ended or failed
            MessageShapeError: a signal arrived without path or member
        """
        if self.state is RouterState.IDLE:
            await self.start()
        elif self.state is RouterState.TERMINATED:
            raise BusFatalError("router already terminated")

        try:
            async for message in self.connection.messages():
                self.handle(message)
        finally:
            self.state = RouterState.TERMINATED
        raise BusFatalError(f"message stream ended after {self.processed} signal(s)")
