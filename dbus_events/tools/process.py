"""
Process directory: resolve a process by exact name and deliver a realtime
signal to it. Every lookup scans the live process table; nothing is cached.
"""
from __future__ import annotations

import logging
import os
import signal
from typing import Optional

import psutil

logger = logging.getLogger(__name__)


def find_pid(name: str) -> Optional[int]:
    """Return the pid of the first running process named exactly ``name``."""
    for proc in psutil.process_iter(["name"]):
        if proc.info.get("name") == name:
            return proc.pid
    return None


def realtime_signal(offset: int) -> int:
    return int(signal.SIGRTMIN) + offset


def notify_process(name: str, offset: int) -> bool:
    """
    Send ``SIGRTMIN + offset`` to the process called ``name``.

    Returns:
        True if the signal was delivered, False otherwise (already logged)
    """
    pid = find_pid(name)
    if pid is None:
        logger.warning(f"Process '{name}' not running, signal {offset} not delivered")
        return False
    signum = realtime_signal(offset)
    try:
        os.kill(pid, signum)
    except (ProcessLookupError, PermissionError) as e:
        logger.warning(f"Failed to signal '{name}' (pid {pid}) with SIGRTMIN+{offset}: {e}")
        return False
    logger.debug(f"Sent SIGRTMIN+{offset} ({signum}) to '{name}' (pid {pid})")
    return True
