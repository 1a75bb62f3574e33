from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from dataclasses import asdict, dataclass
from typing import IO, Any, Dict, Optional, Set, Tuple

logger = logging.getLogger(__name__)

MAX_OUTPUT = 10000


@dataclass
class CommandResult:
    rule: str
    command: str
    exit_code: int
    success: bool
    stdout: str
    stderr: str
    execution_time: float
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_summary(self) -> str:
        status = "ok" if self.success else f"failed (exit code: {self.exit_code})"
        return f"[{self.rule}] `{self.command}` {status} in {self.execution_time:.2f}s"


def _read_capped(handle: IO[bytes]) -> Tuple[str, bool]:
    """Read at most MAX_OUTPUT characters of captured output."""
    handle.seek(0)
    raw = handle.read(MAX_OUTPUT + 1)
    text = raw.decode("utf-8", errors="replace").strip()
    return text[:MAX_OUTPUT], len(raw) > MAX_OUTPUT


class ShellRunner:
    """
    Fire-and-forget shell command execution for matched rules.

    Each command runs in its own asyncio task so a slow or hanging command
    never stalls the message loop. Results are only logged. By default the
    number of concurrent commands is not limited; pass ``max_concurrent``
    to bound it.
    """

    def __init__(self, shell: str = "/bin/sh", max_concurrent: Optional[int] = None):
        self.shell = shell
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def launch(self, rule_name: str, command: str) -> asyncio.Task:
        """Start ``command`` in the background and return without waiting for it."""
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(rule_name, command))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, rule_name: str, command: str) -> Optional[CommandResult]:
        if self._semaphore is None:
            return await self._execute(rule_name, command)
        async with self._semaphore:
            return await self._execute(rule_name, command)

    async def _execute(self, rule_name: str, command: str) -> Optional[CommandResult]:
        start_time = time.time()
        # files, not pipes: background children of the command may keep them open
        with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
            try:
                process = await asyncio.create_subprocess_shell(
                    command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    executable=self.shell,
                )
            except OSError as e:
                logger.error(f"[{rule_name}] Failed to launch `{command}`: {e}")
                return None

            try:
                await process.wait()
            except asyncio.CancelledError:
                if process.returncode is None:
                    process.kill()
                    await process.wait()
                logger.info(f"[{rule_name}] Cancelled `{command}`")
                raise

            stdout, stdout_cut = _read_capped(out)
            stderr, stderr_cut = _read_capped(err)

        result = CommandResult(
            rule=rule_name,
            command=command,
            exit_code=process.returncode,
            success=process.returncode == 0,
            stdout=stdout,
            stderr=stderr,
            execution_time=time.time() - start_time,
            truncated=stdout_cut or stderr_cut,
        )

        if result.success:
            logger.info(f"[{rule_name}] Command exited with code {result.exit_code}")
        else:
            logger.warning(f"[{rule_name}] Command exited with code {result.exit_code}: {result.stderr[:500]}")
        if result.stdout:
            logger.debug(f"[{rule_name}] stdout:\n{result.stdout}")
        return result

    async def wait_idle(self) -> None:
        """Wait for every command launched so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Cancel outstanding commands, killing their processes."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
