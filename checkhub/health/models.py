"""Data models for health checks and their execution history."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Status(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


# Only terminal outcomes are ever stored inside a log.
TERMINAL_STATUSES = (Status.SUCCESS, Status.FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(ts: datetime) -> str:
    """ISO-8601 UTC with fixed microsecond precision (sorts lexicographically)."""
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def new_check_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class ExecutionLog:
    """One immutable record of a single run of a health check."""

    start_time: datetime
    end_time: datetime
    status: Status
    output: str = ""
    triggered_by: str = ""
    exit_code: int | None = None

    def __post_init__(self) -> None:
        if self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        if self.status not in TERMINAL_STATUSES:
            raise ValueError(f"Stored logs must be SUCCESS or FAILED, got {self.status.value}")

    @property
    def duration_seconds(self) -> float:
        return max((self.end_time - self.start_time).total_seconds(), 0.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": format_ts(self.start_time),
            "endTime": format_ts(self.end_time),
            "status": self.status.value,
            "output": self.output,
            "triggeredBy": self.triggered_by,
            "exitCode": self.exit_code,
            "durationSeconds": round(self.duration_seconds, 3),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ExecutionLog":
        return cls(
            start_time=parse_ts(row["start_time"]),
            end_time=parse_ts(row["end_time"]),
            status=Status(row["status"]),
            output=row.get("output") or "",
            triggered_by=row.get("triggered_by") or "",
            exit_code=row.get("exit_code"),
        )


@dataclass(frozen=True)
class HealthCheck:
    """A named, owned, repeatable diagnostic command.

    Instances handed out by the registry are snapshots: ``execution_logs`` is
    a tuple already sorted most-recent-first.
    """

    id: str
    name: str
    owner: str
    command: str
    created_at: datetime = field(default_factory=utcnow)
    execution_logs: tuple[ExecutionLog, ...] = ()

    def with_logs(self, logs: list[ExecutionLog] | tuple[ExecutionLog, ...]) -> "HealthCheck":
        return replace(self, execution_logs=tuple(logs))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "command": self.command,
            "createdAt": format_ts(self.created_at),
            "executionLogs": [log.to_dict() for log in self.execution_logs],
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "HealthCheck":
        return cls(
            id=row["id"],
            name=row["name"],
            owner=row["owner"],
            command=row["command"],
            created_at=parse_ts(row["created_at"]),
        )
