"""
Tests for the action dispatcher
"""
import logging

from dbus_events.core import ActionDispatcher, NormalizedSignal
from dbus_events.core.rules import compile_rule

from .conftest import RecordingNotifier, RecordingRunner

SIGNAL = NormalizedSignal("/org/bluez/hci0/dev_00", "PropertiesChanged", "")


def test_signal_then_exec(dispatcher, calls):
    rule = compile_rule("both", {"exec": "echo hi", "signal": 13, "signal_process": "waybar"})
    outcome = dispatcher.dispatch(rule, SIGNAL)
    assert calls == [("signal", "waybar", 13), ("exec", "both", "echo hi")]
    assert outcome.actions == ["signal", "exec"]
    assert outcome.signalled is True
    assert outcome.launched is True


def test_exec_only(dispatcher, calls):
    dispatcher.dispatch(compile_rule("cmd", {"exec": "true"}), SIGNAL)
    assert calls == [("exec", "cmd", "true")]


def test_missing_process_does_not_stop_exec(calls, caplog):
    dispatcher = ActionDispatcher(RecordingRunner(calls), notifier=RecordingNotifier(calls, found=False))
    rule = compile_rule("r", {"exec": "true", "signal": 1, "signal_process": "ghost"})
    outcome = dispatcher.dispatch(rule, SIGNAL)
    assert outcome.signalled is False
    assert outcome.launched is True
    assert calls[-1] == ("exec", "r", "true")


def test_logs_one_line_per_action(dispatcher, caplog):
    caplog.set_level(logging.INFO, logger="dbus_events")
    dispatcher.dispatch(compile_rule("waybar", {"signal": 2, "signal_process": "waybar"}), SIGNAL)
    lines = [r.getMessage() for r in caplog.records if r.name == "dbus_events.core.dispatcher"]
    assert len(lines) == 1
    assert "[waybar]" in lines[0]
    assert "PropertiesChanged" in lines[0]


def test_rule_without_actions(dispatcher, calls):
    outcome = dispatcher.dispatch(compile_rule("quiet", {"member": "X"}), SIGNAL)
    assert calls == []
    assert outcome.actions == []


def test_unscheduled_exec_is_logged(calls, caplog):
    class NoLoopRunner:
        def launch(self, rule_name, command):
            raise RuntimeError("no running event loop")

    dispatcher = ActionDispatcher(NoLoopRunner(), notifier=RecordingNotifier(calls))
    outcome = dispatcher.dispatch(compile_rule("r", {"exec": "true"}), SIGNAL)
    assert outcome.launched is False
    assert "Could not schedule" in caplog.text
