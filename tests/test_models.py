"""Tests for health check data models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from checkhub.health.models import (
    ExecutionLog,
    HealthCheck,
    Status,
    format_ts,
    new_check_id,
    parse_ts,
)

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestExecutionLog:
    def test_duration(self) -> None:
        log = ExecutionLog(start_time=T0, end_time=T0 + timedelta(seconds=1.5), status=Status.SUCCESS)
        assert log.duration_seconds == 1.5

    def test_zero_duration_allowed(self) -> None:
        log = ExecutionLog(start_time=T0, end_time=T0, status=Status.FAILED)
        assert log.duration_seconds == 0.0

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValueError, match="end_time"):
            ExecutionLog(start_time=T0, end_time=T0 - timedelta(seconds=1), status=Status.SUCCESS)

    @pytest.mark.parametrize("status", [Status.PENDING, Status.RUNNING])
    def test_transient_status_rejected(self, status: Status) -> None:
        with pytest.raises(ValueError, match="SUCCESS or FAILED"):
            ExecutionLog(start_time=T0, end_time=T0, status=status)

    def test_to_dict_wire_shape(self) -> None:
        log = ExecutionLog(
            start_time=T0, end_time=T0 + timedelta(seconds=2),
            status=Status.FAILED, output="boom", triggered_by="ops", exit_code=2,
        )
        d = log.to_dict()
        assert d["startTime"] == "2025-01-01T12:00:00.000000+00:00"
        assert d["endTime"] == "2025-01-01T12:00:02.000000+00:00"
        assert d["status"] == "FAILED"
        assert d["output"] == "boom"
        assert d["triggeredBy"] == "ops"
        assert d["exitCode"] == 2
        assert d["durationSeconds"] == 2.0

    def test_from_row(self) -> None:
        log = ExecutionLog.from_row({
            "start_time": "2025-01-01T12:00:00.000000+00:00",
            "end_time": "2025-01-01T12:00:01.000000+00:00",
            "status": "SUCCESS",
            "output": None,
            "triggered_by": "api",
            "exit_code": 0,
        })
        assert log.status == Status.SUCCESS
        assert log.output == ""
        assert log.start_time == T0


class TestHealthCheck:
    def test_defaults(self) -> None:
        check = HealthCheck(id="abc", name="n", owner="o", command="true")
        assert check.execution_logs == ()
        assert check.created_at.tzinfo is not None

    def test_with_logs_returns_new_snapshot(self) -> None:
        check = HealthCheck(id="abc", name="n", owner="o", command="true")
        log = ExecutionLog(start_time=T0, end_time=T0, status=Status.SUCCESS)
        updated = check.with_logs([log])
        assert updated.execution_logs == (log,)
        assert check.execution_logs == ()

    def test_to_dict(self) -> None:
        check = HealthCheck(id="abc", name="Google DNS Ping", owner="DevOps Team", command="ping -c 4 google.com")
        d = check.to_dict()
        assert d["id"] == "abc"
        assert d["name"] == "Google DNS Ping"
        assert d["executionLogs"] == []


class TestTimestamps:
    def test_format_is_lexicographically_sortable(self) -> None:
        a = format_ts(T0)
        b = format_ts(T0 + timedelta(microseconds=1))
        c = format_ts(T0 + timedelta(seconds=10))
        assert a < b < c

    def test_parse_accepts_z_suffix(self) -> None:
        assert parse_ts("2025-01-01T12:00:00Z") == T0

    def test_parse_naive_assumes_utc(self) -> None:
        assert parse_ts("2025-01-01T12:00:00") == T0

    def test_new_ids_are_unique(self) -> None:
        ids = {new_check_id() for _ in range(200)}
        assert len(ids) == 200
