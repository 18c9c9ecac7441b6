"""Health check registry — the only way in or out of the store.

Validates input, assigns ids and converts missing rows into NotFoundError.
Everything it returns is an immutable snapshot.
"""

from __future__ import annotations

import logging

from .errors import NotFoundError, ValidationError
from .models import ExecutionLog, HealthCheck, new_check_id
from .store import HealthCheckStore

logger = logging.getLogger(__name__)


def _require(field_name: str, value: str | None) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"'{field_name}' must not be empty")
    return cleaned


class HealthCheckRegistry:
    """Maps check ids to definitions and their execution history."""

    def __init__(self, store: HealthCheckStore, history_limit: int = 0) -> None:
        self.store = store
        self.history_limit = history_limit

    def create(self, name: str, owner: str, command: str) -> HealthCheck:
        """Create a check with an empty history. Names need not be unique."""
        check = HealthCheck(
            id=new_check_id(),
            name=_require("name", name),
            owner=_require("owner", owner),
            command=_require("command", command),
        )
        self.store.insert_check(check)
        logger.info("Created health check %s (%s)", check.id, check.name)
        return check

    def list(self) -> list[HealthCheck]:
        return self.store.list_checks()

    def get(self, check_id: str) -> HealthCheck:
        check = self.store.get_check(check_id)
        if check is None:
            raise NotFoundError(check_id)
        return check

    def get_definition(self, check_id: str) -> HealthCheck:
        """Like get, but without loading the execution history."""
        check = self.store.get_definition(check_id)
        if check is None:
            raise NotFoundError(check_id)
        return check

    def exists(self, check_id: str) -> bool:
        return self.store.has_check(check_id)

    def delete(self, check_id: str) -> None:
        if not self.store.delete_check(check_id):
            raise NotFoundError(check_id)
        logger.info("Deleted health check %s", check_id)

    def history(self, check_id: str, limit: int | None = None) -> list[ExecutionLog]:
        """Execution logs, most recent first."""
        logs = self.store.get_history(check_id, limit)
        if logs is None:
            raise NotFoundError(check_id)
        return logs

    def append_log(self, check_id: str, log: ExecutionLog) -> None:
        if not self.store.append_log(check_id, log):
            raise NotFoundError(check_id)
        if self.history_limit > 0:
            removed = self.store.prune_logs(check_id, self.history_limit)
            if removed:
                logger.debug("Pruned %d old logs for %s", removed, check_id)

    def count(self) -> int:
        return self.store.count_checks()
