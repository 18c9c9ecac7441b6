"""Shared test fixtures."""

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path

import pytest

from checkhub.health.coordinator import RunCoordinator
from checkhub.health.executor import CommandExecutor, ExecutionResult
from checkhub.health.models import utcnow
from checkhub.health.registry import HealthCheckRegistry
from checkhub.health.store import HealthCheckStore


class FakeExecutor:
    """Executor double that returns a canned result.

    When ``gate`` is set up via ``hold()``, execute() blocks until
    ``release()`` is called, which keeps a run in flight for as long as a
    test needs.
    """

    def __init__(self, succeeded: bool = True, output: str = "ok", exit_code: int | None = 0) -> None:
        self.succeeded = succeeded
        self.output = output
        self.exit_code = exit_code
        self.calls: list[tuple[str, float]] = []
        self.started = threading.Event()
        self._gate: threading.Event | None = None
        self.error: Exception | None = None

    def hold(self) -> None:
        self._gate = threading.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()

    def execute(self, command: str, timeout: float) -> ExecutionResult:
        self.calls.append((command, timeout))
        start = utcnow()
        self.started.set()
        if self._gate is not None:
            self._gate.wait(timeout=10)
        if self.error is not None:
            raise self.error
        return ExecutionResult(
            output=self.output,
            succeeded=self.succeeded,
            start_time=start,
            end_time=max(utcnow(), start + timedelta(microseconds=1)),
            exit_code=self.exit_code if self.succeeded else (self.exit_code or 1),
        )


@pytest.fixture
def store(tmp_path: Path) -> HealthCheckStore:
    s = HealthCheckStore(db_path=tmp_path / "test_checkhub.db")
    yield s
    s.close()


@pytest.fixture
def registry(store: HealthCheckStore) -> HealthCheckRegistry:
    return HealthCheckRegistry(store)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
async def coordinator(registry: HealthCheckRegistry, fake_executor: FakeExecutor) -> RunCoordinator:
    coord = RunCoordinator(registry, fake_executor, timeout=5, max_timeout=30, max_workers=4)
    yield coord
    fake_executor.release()
    await coord.shutdown()


@pytest.fixture
async def shell_coordinator(registry: HealthCheckRegistry) -> RunCoordinator:
    """Coordinator backed by the real subprocess executor."""
    coord = RunCoordinator(registry, CommandExecutor(), timeout=10, max_workers=4)
    yield coord
    await coord.shutdown()
