"""Read-only projections over registry snapshots."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from .models import ExecutionLog, HealthCheck

NO_OUTPUT = "No output captured."


class LastStatus(str, Enum):
    NEVER_RUN = "NEVER_RUN"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


def last_status(check: HealthCheck, running: bool = False) -> LastStatus:
    """Derived display status: RUNNING beats history, empty history is NEVER_RUN."""
    if running:
        return LastStatus.RUNNING
    if not check.execution_logs:
        return LastStatus.NEVER_RUN
    return LastStatus(check.execution_logs[0].status.value)


def search_by_name(checks: Iterable[HealthCheck], substring: str | None) -> list[HealthCheck]:
    """Case-insensitive substring match on ``name`` only."""
    needle = (substring or "").lower()
    if not needle:
        return list(checks)
    return [c for c in checks if needle in c.name.lower()]


def duration_seconds(log: ExecutionLog) -> float:
    return log.duration_seconds


def display_output(log: ExecutionLog) -> str:
    return log.output if log.output else NO_OUTPUT
