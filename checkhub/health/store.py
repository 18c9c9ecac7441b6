"""SQLite storage for health check definitions and execution logs.

Logs are append-only. Reads always come back most-recent-first
(start_time DESC, then insertion order DESC).
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from .models import ExecutionLog, HealthCheck, format_ts

logger = logging.getLogger(__name__)

DB_PATH = Path(__file__).parent.parent.parent / "data" / "checkhub.db"

_LOG_ORDER = "ORDER BY start_time DESC, id DESC"


class HealthCheckStore:
    """SQLite-backed storage keyed by check id.

    A single connection is shared between the event loop and the worker
    threads; every statement runs under ``self._lock``.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or DB_PATH)
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys=ON")
            if self._db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    def _init_db(self) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS health_checks (
                    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
                    id          TEXT NOT NULL UNIQUE,
                    name        TEXT NOT NULL,
                    owner       TEXT NOT NULL,
                    command     TEXT NOT NULL,
                    created_at  TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS execution_logs (
                    id            INTEGER PRIMARY KEY AUTOINCREMENT,
                    check_id      TEXT NOT NULL
                                  REFERENCES health_checks (id) ON DELETE CASCADE,
                    start_time    TEXT NOT NULL,
                    end_time      TEXT NOT NULL,
                    status        TEXT NOT NULL,
                    output        TEXT NOT NULL DEFAULT '',
                    triggered_by  TEXT NOT NULL DEFAULT '',
                    exit_code     INTEGER
                );

                CREATE INDEX IF NOT EXISTS idx_logs_check
                    ON execution_logs (check_id, start_time DESC);
            """)
            conn.commit()

    # ── Checks ────────────────────────────────────────────────────────────

    def insert_check(self, check: HealthCheck) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                "INSERT INTO health_checks (id, name, owner, command, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (check.id, check.name, check.owner, check.command, format_ts(check.created_at)),
            )
            conn.commit()

    def _definition_locked(self, check_id: str) -> HealthCheck | None:
        row = self._get_conn().execute(
            "SELECT * FROM health_checks WHERE id = ?", (check_id,),
        ).fetchone()
        return HealthCheck.from_row(dict(row)) if row else None

    def get_definition(self, check_id: str) -> HealthCheck | None:
        """Return the check without its history, or None."""
        with self._lock:
            return self._definition_locked(check_id)

    def get_check(self, check_id: str) -> HealthCheck | None:
        """Return the check with its full history, or None."""
        with self._lock:
            check = self._definition_locked(check_id)
            if check is None:
                return None
            logs = self._logs_locked(check_id)
        return check.with_logs(logs)

    def list_checks(self) -> list[HealthCheck]:
        """All checks in insertion order, each with its history."""
        with self._lock:
            conn = self._get_conn()
            rows = conn.execute("SELECT * FROM health_checks ORDER BY seq").fetchall()
            log_rows = conn.execute(f"SELECT * FROM execution_logs {_LOG_ORDER}").fetchall()

        by_check: dict[str, list[ExecutionLog]] = {}
        for r in log_rows:
            d = dict(r)
            by_check.setdefault(d["check_id"], []).append(ExecutionLog.from_row(d))
        return [
            HealthCheck.from_row(dict(r)).with_logs(by_check.get(r["id"], []))
            for r in rows
        ]

    def has_check(self, check_id: str) -> bool:
        with self._lock:
            row = self._get_conn().execute(
                "SELECT 1 FROM health_checks WHERE id = ?", (check_id,),
            ).fetchone()
        return row is not None

    def count_checks(self) -> int:
        with self._lock:
            row = self._get_conn().execute("SELECT COUNT(*) FROM health_checks").fetchone()
        return int(row[0])

    def delete_check(self, check_id: str) -> bool:
        """Remove a check and its history. Returns False if it did not exist."""
        with self._lock:
            conn = self._get_conn()
            conn.execute("DELETE FROM execution_logs WHERE check_id = ?", (check_id,))
            cursor = conn.execute("DELETE FROM health_checks WHERE id = ?", (check_id,))
            conn.commit()
        return cursor.rowcount > 0

    # ── Logs ──────────────────────────────────────────────────────────────

    def append_log(self, check_id: str, log: ExecutionLog) -> bool:
        """Insert one log in a single transaction. Returns False if the check is gone."""
        with self._lock:
            conn = self._get_conn()
            exists = conn.execute(
                "SELECT 1 FROM health_checks WHERE id = ?", (check_id,),
            ).fetchone()
            if not exists:
                return False
            conn.execute(
                "INSERT INTO execution_logs "
                "(check_id, start_time, end_time, status, output, triggered_by, exit_code) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    check_id, format_ts(log.start_time), format_ts(log.end_time),
                    log.status.value, log.output, log.triggered_by, log.exit_code,
                ),
            )
            conn.commit()
        return True

    def get_logs(self, check_id: str, limit: int | None = None) -> list[ExecutionLog]:
        with self._lock:
            return self._logs_locked(check_id, limit)

    def get_history(self, check_id: str, limit: int | None = None) -> list[ExecutionLog] | None:
        """Logs of an existing check, or None if it does not exist."""
        with self._lock:
            if self._definition_locked(check_id) is None:
                return None
            return self._logs_locked(check_id, limit)

    def _logs_locked(self, check_id: str, limit: int | None = None) -> list[ExecutionLog]:
        sql = f"SELECT * FROM execution_logs WHERE check_id = ? {_LOG_ORDER}"
        params: tuple[object, ...] = (check_id,)
        if limit is not None:
            sql += " LIMIT ?"
            params = (check_id, limit)
        rows = self._get_conn().execute(sql, params).fetchall()
        return [ExecutionLog.from_row(dict(r)) for r in rows]

    def prune_logs(self, check_id: str, keep: int) -> int:
        """Keep only the newest ``keep`` logs of a check. Returns rows removed."""
        if keep <= 0:
            return 0
        with self._lock:
            conn = self._get_conn()
            cursor = conn.execute(
                "DELETE FROM execution_logs WHERE check_id = ? AND id NOT IN ("
                f"  SELECT id FROM execution_logs WHERE check_id = ? {_LOG_ORDER} LIMIT ?"
                ")",
                (check_id, check_id, keep),
            )
            conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
