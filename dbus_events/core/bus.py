"""
Bus connection.

Thin wrapper over ``dbus_fast.aio.MessageBus`` that exposes the three
operations the router needs: connect, subscribe to every signal, and an
ordered pull-style stream of incoming messages. The stream ends when the
bus disconnects; a disconnect caused by an error is raised as
``BusFatalError``. There is no reconnection.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Optional

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus

from .errors import BusFatalError

logger = logging.getLogger(__name__)

ALL_SIGNALS_RULE = "type='signal'"

_END = object()


class BusKind(str, Enum):
    SESSION = "session"
    SYSTEM = "system"

    @property
    def bus_type(self) -> BusType:
        return BusType.SYSTEM if self is BusKind.SYSTEM else BusType.SESSION


class BusConnection:
    def __init__(self, kind: BusKind = BusKind.SESSION):
        self.kind = BusKind(kind)
        self.bus: Optional[MessageBus] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._watcher: Optional[asyncio.Task] = None
        self._error: Optional[BaseException] = None

    @property
    def connected(self) -> bool:
        return self.bus is not None and self.bus.connected

    async def connect(self) -> None:
        try:
            self.bus = await MessageBus(bus_type=self.kind.bus_type).connect()
        except Exception as e:
            raise BusFatalError(f"cannot connect to the {self.kind.value} bus: {e}") from e
        self.bus.add_message_handler(self._on_message)
        self._watcher = asyncio.get_running_loop().create_task(self._watch_disconnect())
        logger.info(f"Connected to the {self.kind.value} bus as {self.bus.unique_name}")

    async def subscribe_all_signals(self) -> None:
        if self.bus is None:
            raise BusFatalError("subscribe called before connect")
        request = Message(
            destination="org.freedesktop.DBus",
            path="/org/freedesktop/DBus",
            interface="org.freedesktop.DBus",
            member="AddMatch",
            signature="s",
            body=[ALL_SIGNALS_RULE],
        )
        try:
            reply = await self.bus.call(request)
        except Exception as e:
            raise BusFatalError(f"AddMatch failed: {e}") from e
        if reply is None or reply.message_type == MessageType.ERROR:
            detail = reply.body if reply is not None else "no reply"
            error_name = reply.error_name if reply is not None else None
            raise BusFatalError(f"AddMatch rejected: {error_name} {detail}")
        logger.info(f"Subscribed with match rule {ALL_SIGNALS_RULE}")

    def _on_message(self, message: Message) -> None:
        self._queue.put_nowait(message)

    async def _watch_disconnect(self) -> None:
        try:
            await self.bus.wait_for_disconnect()
        except Exception as e:
            self._error = e
        finally:
            self._queue.put_nowait(_END)

    async def messages(self) -> AsyncIterator[Message]:
        """Yield incoming messages in arrival order until the bus goes away."""
        while True:
            item = await self._queue.get()
            if item is _END:
                if self._error is not None:
                    raise BusFatalError(f"bus connection lost: {self._error}") from self._error
                return
            yield item

    async def disconnect(self) -> None:
        if self.bus is None:
            return
        self.bus.remove_message_handler(self._on_message)
        if self.bus.connected:
            self.bus.disconnect()
        if self._watcher is not None:
            try:
                await self._watcher
            except asyncio.CancelledError:
                pass
            self._watcher = None
