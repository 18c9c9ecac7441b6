"""httpx-based client for the checkhub HTTP API.

All methods return typed responses or raise CheckhubOfflineError /
CheckhubAPIError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


# ── Response models ──────────────────────────────────────────────────────────


class ExecutionLogOut(BaseModel):
    startTime: str
    endTime: str
    status: str
    output: str
    triggeredBy: str
    exitCode: int | None = None
    durationSeconds: float = 0.0


class HealthCheckOut(BaseModel):
    id: str
    name: str
    owner: str
    command: str
    createdAt: str = ""
    executionLogs: list[ExecutionLogOut] = []
    running: bool = False
    lastStatus: str = "NEVER_RUN"


class RunAccepted(BaseModel):
    status: str
    checkId: str
    log: ExecutionLogOut | None = None


# ── Errors ───────────────────────────────────────────────────────────────────


class CheckhubOfflineError(Exception):
    """Raised when the server is unreachable."""


class CheckhubAPIError(Exception):
    """Raised when the server returns an error response."""

    def __init__(self, status_code: int, detail: str, kind: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        self.kind = kind
        super().__init__(f"{kind or 'Error'} ({status_code}): {detail}")


# ── Client ───────────────────────────────────────────────────────────────────


class CheckhubClient:
    """Synchronous client for a running checkhub server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        run_timeout: float = 960.0,
        triggered_by: str = "",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._run_timeout = run_timeout  # waiting runs outlive normal requests
        self._triggered_by = triggered_by

    @property
    def _headers(self) -> dict[str, str]:
        h: dict[str, str] = {}
        if self._triggered_by:
            h["X-Triggered-By"] = self._triggered_by
        return h

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        try:
            with httpx.Client(timeout=timeout or self._timeout) as client:
                resp = client.request(
                    method,
                    f"{self._base_url}/api{path}",
                    headers=self._headers,
                    params=params,
                    json=json_data,
                )
        except httpx.ConnectError as e:
            raise CheckhubOfflineError(f"checkhub server unreachable at {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise CheckhubOfflineError("checkhub request timed out") from e

        if resp.status_code >= 400:
            detail, kind = resp.text, ""
            try:
                body = resp.json()
                detail = body.get("detail", resp.text)
                kind = body.get("error", "")
            except ValueError:
                pass
            raise CheckhubAPIError(resp.status_code, str(detail), kind)
        return resp

    # ── High-level methods ───────────────────────────────────────────────

    def list_checks(self, query: str | None = None) -> list[HealthCheckOut]:
        """GET /health-checks"""
        params = {"q": query} if query else None
        resp = self._request("GET", "/health-checks", params=params)
        return [HealthCheckOut(**c) for c in resp.json()]

    def get_check(self, check_id: str) -> HealthCheckOut:
        resp = self._request("GET", f"/health-checks/{check_id}")
        return HealthCheckOut(**resp.json())

    def create_check(self, name: str, owner: str, command: str) -> HealthCheckOut:
        """PUT /health-checks"""
        resp = self._request(
            "PUT", "/health-checks",
            json_data={"name": name, "owner": owner, "command": command},
        )
        return HealthCheckOut(**resp.json())

    def delete_check(self, check_id: str) -> None:
        self._request("DELETE", f"/health-checks/{check_id}")

    def run_check(
        self, check_id: str, wait: bool = True, timeout: float | None = None,
    ) -> RunAccepted:
        """PUT /health-checks/{id}/run — waits for the result unless ``wait`` is False."""
        params: dict[str, Any] = {"wait": "true" if wait else "false"}
        if timeout:
            params["timeout"] = timeout
        request_timeout = (timeout + 30 if timeout else self._run_timeout) if wait else None
        resp = self._request(
            "PUT", f"/health-checks/{check_id}/run",
            params=params, timeout=request_timeout,
        )
        return RunAccepted(**resp.json())

    def history(self, check_id: str, limit: int | None = None) -> list[ExecutionLogOut]:
        params = {"limit": limit} if limit else None
        resp = self._request("GET", f"/health-checks/{check_id}/history", params=params)
        return [ExecutionLogOut(**log) for log in resp.json()]

    def status(self) -> dict[str, Any]:
        resp = self._request("GET", "/status", timeout=5.0)
        return resp.json()
