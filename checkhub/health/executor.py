"""Command executor — runs one diagnostic command with a bounded lifetime.

stdout and stderr are captured interleaved as a single blob. Output larger
than ``output_limit_bytes`` keeps its tail and gets a truncation marker line.
Check failures (non-zero exit, command not found, timeout) are reported in
the result; only a failure to spawn the process raises.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime

from .errors import ExecutionInfrastructureError
from .models import utcnow

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_LIMIT = 64 * 1024
KILL_GRACE_SECONDS = 2.0  # drain time after a kill before the pipe is abandoned


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of a single command execution."""

    output: str
    succeeded: bool
    start_time: datetime
    end_time: datetime
    exit_code: int | None = None
    timed_out: bool = False


def _shell_argv(command: str) -> list[str]:
    if sys.platform == "win32":
        return ["cmd", "/c", command]
    return ["sh", "-c", command]


def truncate_output(data: bytes, limit: int) -> str:
    """Decode captured bytes, keeping only the last ``limit`` bytes."""
    if limit > 0 and len(data) > limit:
        omitted = len(data) - limit
        tail = data[-limit:].decode("utf-8", errors="replace")
        return f"[output truncated: {omitted} bytes omitted]\n{tail}"
    return data.decode("utf-8", errors="replace")


def _kill_process_tree(proc: subprocess.Popen[bytes]) -> None:
    if sys.platform != "win32":
        try:
            os.killpg(os.getpgid(proc.pid), signal.SIGKILL)
            return
        except (ProcessLookupError, OSError):
            pass  # group already gone
    proc.kill()


def _drain_after_kill(proc: subprocess.Popen[bytes]) -> bytes:
    """Collect what is left on the pipe without waiting on escaped descendants."""
    try:
        raw, _ = proc.communicate(timeout=KILL_GRACE_SECONDS)
        return raw or b""
    except subprocess.TimeoutExpired as e:
        # A process outside the group still holds the write end open.
        logger.warning("Output pipe of pid %s still open after kill, abandoning it", proc.pid)
        if proc.stdout is not None:
            proc.stdout.close()
        proc.wait()
        return e.output or b""


class CommandExecutor:
    """Runs shell commands in their own process group."""

    def __init__(self, output_limit_bytes: int = DEFAULT_OUTPUT_LIMIT) -> None:
        self.output_limit_bytes = output_limit_bytes

    def execute(self, command: str, timeout: float) -> ExecutionResult:
        """Run ``command`` and wait at most ``timeout`` seconds."""
        argv = _shell_argv(command)
        start = utcnow()
        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                start_new_session=sys.platform != "win32",
            )
        except OSError as e:
            logger.exception("Could not spawn command: %s", command)
            raise ExecutionInfrastructureError(
                f"Unable to start command: {type(e).__name__}: {e}"
            ) from e

        timed_out = False
        try:
            raw, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill_process_tree(proc)
            raw = _drain_after_kill(proc)
        end = max(utcnow(), start)  # wall clock may step backwards

        output = truncate_output(raw or b"", self.output_limit_bytes)
        if timed_out:
            logger.warning("Command timed out after %ss: %s", timeout, command)
            if output and not output.endswith("\n"):
                output += "\n"
            output += f"[timed out after {timeout:g}s]"
            return ExecutionResult(
                output=output, succeeded=False,
                start_time=start, end_time=end,
                exit_code=None, timed_out=True,
            )

        code = proc.returncode
        if code == 127 and not output.strip():
            output = f"Command not found: {command}"
        return ExecutionResult(
            output=output, succeeded=code == 0,
            start_time=start, end_time=end, exit_code=code,
        )
