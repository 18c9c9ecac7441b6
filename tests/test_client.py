"""Tests for the httpx API client."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from checkhub.client import CheckhubAPIError, CheckhubClient, CheckhubOfflineError

CHECK = {
    "id": "abc123",
    "name": "Google DNS Ping",
    "owner": "DevOps Team",
    "command": "ping -c 4 google.com",
    "createdAt": "2025-01-01T00:00:00.000000+00:00",
    "executionLogs": [],
    "running": False,
    "lastStatus": "NEVER_RUN",
}

LOG = {
    "startTime": "2025-01-01T00:00:00.000000+00:00",
    "endTime": "2025-01-01T00:00:01.000000+00:00",
    "status": "SUCCESS",
    "output": "ok",
    "triggeredBy": "cli",
    "exitCode": 0,
    "durationSeconds": 1.0,
}


@pytest.fixture
def mock_transport(monkeypatch: pytest.MonkeyPatch) -> Callable[[Callable[[httpx.Request], httpx.Response]], list[httpx.Request]]:
    """Route every httpx.Client created by the client module through a handler."""
    real_client = httpx.Client
    seen: list[httpx.Request] = []

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> list[httpx.Request]:
        def recording(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        monkeypatch.setattr(
            httpx, "Client",
            lambda **kwargs: real_client(transport=httpx.MockTransport(recording), **kwargs),
        )
        return seen

    return install


@pytest.fixture
def client() -> CheckhubClient:
    return CheckhubClient("http://checkhub.test/", triggered_by="cli")


class TestCheckhubClient:
    def test_list_checks(self, client, mock_transport) -> None:
        seen = mock_transport(lambda req: httpx.Response(200, json=[CHECK]))
        checks = client.list_checks("dns")

        assert len(checks) == 1
        assert checks[0].name == "Google DNS Ping"
        assert seen[0].url.path == "/api/health-checks"
        assert seen[0].url.params["q"] == "dns"
        assert seen[0].headers["X-Triggered-By"] == "cli"

    def test_create_check(self, client, mock_transport) -> None:
        seen = mock_transport(lambda req: httpx.Response(201, json=CHECK))
        check = client.create_check("Google DNS Ping", "DevOps Team", "ping -c 4 google.com")

        assert check.id == "abc123"
        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == {
            "name": "Google DNS Ping",
            "owner": "DevOps Team",
            "command": "ping -c 4 google.com",
        }

    def test_run_check_wait(self, client, mock_transport) -> None:
        seen = mock_transport(lambda req: httpx.Response(200, json={
            "status": "completed", "checkId": "abc123", "log": LOG,
        }))
        result = client.run_check("abc123", wait=True, timeout=5)

        assert result.log is not None
        assert result.log.status == "SUCCESS"
        assert seen[0].url.path == "/api/health-checks/abc123/run"
        assert seen[0].url.params["wait"] == "true"
        assert seen[0].url.params["timeout"] == "5"

    def test_run_check_accepted(self, client, mock_transport) -> None:
        mock_transport(lambda req: httpx.Response(202, json={"status": "accepted", "checkId": "abc123"}))
        result = client.run_check("abc123", wait=False)
        assert result.status == "accepted"
        assert result.log is None

    def test_history(self, client, mock_transport) -> None:
        seen = mock_transport(lambda req: httpx.Response(200, json=[LOG, LOG]))
        logs = client.history("abc123", limit=2)
        assert len(logs) == 2
        assert seen[0].url.params["limit"] == "2"

    def test_delete(self, client, mock_transport) -> None:
        seen = mock_transport(lambda req: httpx.Response(204))
        client.delete_check("abc123")
        assert seen[0].method == "DELETE"

    def test_error_response(self, client, mock_transport) -> None:
        mock_transport(lambda req: httpx.Response(409, json={
            "error": "AlreadyRunningError", "detail": "Health check is already running: abc123",
        }))
        with pytest.raises(CheckhubAPIError) as exc_info:
            client.run_check("abc123", wait=False)
        assert exc_info.value.status_code == 409
        assert exc_info.value.kind == "AlreadyRunningError"

    def test_non_json_error(self, client, mock_transport) -> None:
        mock_transport(lambda req: httpx.Response(502, text="bad gateway"))
        with pytest.raises(CheckhubAPIError) as exc_info:
            client.status()
        assert exc_info.value.detail == "bad gateway"
        assert exc_info.value.kind == ""

    def test_offline(self, client, mock_transport) -> None:
        def refuse(req: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=req)

        mock_transport(refuse)
        with pytest.raises(CheckhubOfflineError):
            client.list_checks()
