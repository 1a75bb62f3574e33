"""Side-effecting helpers: process signalling and background shell commands"""

from .process import find_pid, notify_process, realtime_signal
from .shell import CommandResult, ShellRunner

__all__ = [
    "CommandResult",
    "ShellRunner",
    "find_pid",
    "notify_process",
    "realtime_signal",
]
