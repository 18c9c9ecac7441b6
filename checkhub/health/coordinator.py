"""Run coordinator — per-check run-locks around the executor.

A check is either IDLE or RUN_IN_PROGRESS. The only way in is a non-blocking
try-acquire of its run-lock; contention is rejected with AlreadyRunningError,
never queued. The lock is released after the log append attempt on every exit
path, including executor crashes and a check deleted mid-run.

Runs execute in a thread pool so many checks proceed in parallel without
blocking the event loop. Completion is pushed to subscribers as RunEvents.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from .errors import AlreadyRunningError, ExecutionInfrastructureError, NotFoundError
from .executor import CommandExecutor
from .models import ExecutionLog, HealthCheck, Status
from .registry import HealthCheckRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunEvent:
    """Published after a run's log has been appended."""

    check_id: str
    log: ExecutionLog

    def to_dict(self) -> dict[str, Any]:
        return {"checkId": self.check_id, "log": self.log.to_dict()}


class RunCoordinator:
    """Starts runs, enforcing at most one in-flight run per check."""

    def __init__(
        self,
        registry: HealthCheckRegistry,
        executor: CommandExecutor,
        timeout: float = 60,
        max_timeout: float | None = None,
        max_workers: int = 8,
        default_triggered_by: str = "api",
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.timeout = timeout
        self.max_timeout = max_timeout or timeout
        self.default_triggered_by = default_triggered_by
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="checkhub-run")
        self._locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()
        self._tasks: set[asyncio.Task[ExecutionLog | None]] = set()
        self._subscribers: list[Callable[[RunEvent], Any]] = []

    # ── Run-lock state ────────────────────────────────────────────────────

    def _acquire(self, check_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.setdefault(check_id, threading.Lock())
        if not lock.acquire(blocking=False):
            raise AlreadyRunningError(check_id)
        return lock

    def _forget_idle(self, check_id: str) -> None:
        with self._guard:
            lock = self._locks.get(check_id)
            if lock is not None and not lock.locked():
                del self._locks[check_id]

    def is_running(self, check_id: str) -> bool:
        with self._guard:
            lock = self._locks.get(check_id)
        return lock is not None and lock.locked()

    def running_ids(self) -> set[str]:
        with self._guard:
            return {cid for cid, lock in self._locks.items() if lock.locked()}

    # ── Subscribers ───────────────────────────────────────────────────────

    def subscribe(self, callback: Callable[[RunEvent], Any]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[RunEvent], Any]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _publish(self, event: RunEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Run event subscriber error")

    # ── Running ───────────────────────────────────────────────────────────

    def _resolve_timeout(self, timeout: float | None) -> float:
        if timeout is None or timeout <= 0:
            return self.timeout
        return min(timeout, self.max_timeout)

    def _run_locked(
        self,
        check: HealthCheck,
        lock: threading.Lock,
        triggered_by: str,
        timeout: float,
    ) -> ExecutionLog | None:
        """Execute and record one run. Always releases ``lock``."""
        try:
            logger.info("Running %s (%s) triggered by %s", check.id, check.name, triggered_by)
            result = self.executor.execute(check.command, timeout)
            log = ExecutionLog(
                start_time=result.start_time,
                end_time=result.end_time,
                status=Status.SUCCESS if result.succeeded else Status.FAILED,
                output=result.output,
                triggered_by=triggered_by,
                exit_code=result.exit_code,
            )
            try:
                self.registry.append_log(check.id, log)
            except NotFoundError:
                logger.warning("Check %s was deleted during its run; result discarded", check.id)
                return None
            logger.info(
                "Finished %s: %s in %.2fs", check.id, log.status.value, log.duration_seconds,
            )
            return log
        finally:
            lock.release()
            # Covers a delete that raced with this run.
            if not self.registry.exists(check.id):
                self._forget_idle(check.id)

    def start_run(
        self,
        check_id: str,
        triggered_by: str | None = None,
        timeout: float | None = None,
    ) -> asyncio.Task[ExecutionLog | None]:
        """Accept a run and return immediately.

        Must be called from a running event loop. The returned task resolves
        to the appended log, or None if the check was deleted mid-run.
        Raises NotFoundError or AlreadyRunningError synchronously.
        """
        check = self.registry.get_definition(check_id)
        lock = self._acquire(check.id)
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(
                self._pool,
                self._run_locked,
                check,
                lock,
                triggered_by or self.default_triggered_by,
                self._resolve_timeout(timeout),
            )
        except BaseException:
            lock.release()
            raise

        task = asyncio.ensure_future(self._complete(check.id, future))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def delete(self, check_id: str) -> None:
        """Delete a check and drop its run-lock once idle.

        A run still in flight finishes, and its result is discarded.
        """
        self.registry.delete(check_id)
        self._forget_idle(check_id)

    async def run(
        self,
        check_id: str,
        triggered_by: str | None = None,
        timeout: float | None = None,
    ) -> ExecutionLog | None:
        """Start a run and wait for its completion."""
        task = self.start_run(check_id, triggered_by, timeout)
        # A cancelled caller must not cancel the run itself.
        return await asyncio.shield(task)

    async def _complete(
        self, check_id: str, future: asyncio.Future[ExecutionLog | None],
    ) -> ExecutionLog | None:
        try:
            log = await future
        except ExecutionInfrastructureError:
            logger.error("Run of %s aborted: executor could not start", check_id)
            raise
        except Exception:
            logger.exception("Run of %s crashed", check_id)
            raise
        if log is not None:
            self._publish(RunEvent(check_id=check_id, log=log))
        return log

    def _on_task_done(self, task: asyncio.Task[ExecutionLog | None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled():
            # Mark fire-and-forget failures as retrieved; they are logged above.
            task.exception()

    async def wait_idle(self) -> None:
        """Wait for every in-flight run to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        await self.wait_idle()
        self._pool.shutdown(wait=True)
        logger.info("Run coordinator stopped")
