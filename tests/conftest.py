"""
Pytest Configuration and Fixtures
"""
import asyncio
from types import SimpleNamespace
from typing import List, Optional

import pytest
from dbus_fast import Message, MessageType, Variant

from dbus_events.core import ActionDispatcher, RuleSet, load_rules


def make_signal(
    path: str = "/org/bluez/hci0/dev_00",
    member: str = "PropertiesChanged",
    interface: str = "org.freedesktop.DBus.Properties",
    signature: str = "",
    body: Optional[list] = None,
) -> Message:
    return Message(
        message_type=MessageType.SIGNAL,
        path=path,
        interface=interface,
        member=member,
        signature=signature,
        body=body or [],
    )


def properties_changed(path: str = "/org/bluez/hci0/dev_00", connected: bool = True) -> Message:
    return make_signal(
        path=path,
        signature="sa{sv}as",
        body=["org.bluez.Device1", {"Connected": Variant("b", connected)}, []],
    )


def make_method_call(path: str = "/org/bluez/hci0", member: str = "Connect") -> Message:
    return Message(
        destination="org.bluez",
        path=path,
        interface="org.bluez.Device1",
        member=member,
    )


def raw_message(message_type=MessageType.SIGNAL, path=None, member=None, signature="", body=None):
    """Message-like object that skips dbus-fast header validation."""
    return SimpleNamespace(
        message_type=message_type,
        path=path,
        member=member,
        signature=signature,
        body=body or [],
    )


class FakeConnection:
    """Bus connection double that replays a fixed list of messages."""

    def __init__(self, messages=(), error: Optional[Exception] = None, connect_error: Optional[Exception] = None):
        self._messages = list(messages)
        self.error = error
        self.connect_error = connect_error
        self.connected = False
        self.subscribed = False
        self.disconnected = False

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def subscribe_all_signals(self):
        self.subscribed = True

    async def messages(self):
        for message in self._messages:
            yield message
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def disconnect(self):
        self.disconnected = True


class RecordingRunner:
    """ShellRunner double that records launches instead of spawning."""

    def __init__(self, calls: Optional[list] = None):
        self.calls = calls if calls is not None else []

    def launch(self, rule_name: str, command: str):
        self.calls.append(("exec", rule_name, command))

    async def close(self):
        pass


class RecordingNotifier:
    def __init__(self, calls: Optional[list] = None, found: bool = True):
        self.calls = calls if calls is not None else []
        self.found = found

    def __call__(self, process: str, offset: int) -> bool:
        self.calls.append(("signal", process, offset))
        return self.found


@pytest.fixture
def calls() -> List[tuple]:
    return []


@pytest.fixture
def dispatcher(calls) -> ActionDispatcher:
    return ActionDispatcher(RecordingRunner(calls), notifier=RecordingNotifier(calls))


@pytest.fixture
def bluez_rules() -> RuleSet:
    return load_rules({
        "bluez": {"path": "/org/bluez/.*", "exec": "echo A"},
        "everything": {"path": ".*", "exec": "echo B"},
    })
