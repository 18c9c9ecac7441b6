"""API routes for health checks.

Endpoints:
  GET    /api/health-checks               — list checks (optional ?q= name search)
  PUT    /api/health-checks               — create a check (POST also accepted)
  GET    /api/health-checks/stream        — SSE stream of run completions
  GET    /api/health-checks/{id}          — single check with history
  DELETE /api/health-checks/{id}          — delete a check and its history
  PUT    /api/health-checks/{id}/run      — trigger a run (POST also accepted)
  GET    /api/health-checks/{id}/history  — execution logs, most recent first
  GET    /api/status                      — service status
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from checkhub import __version__
from checkhub.health.coordinator import RunCoordinator, RunEvent
from checkhub.health.errors import NotFoundError
from checkhub.health.models import HealthCheck
from checkhub.health.query import last_status, search_by_name
from checkhub.health.registry import HealthCheckRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request models ───────────────────────────────────────────────────────────


class CreateCheckBody(BaseModel):
    # Blank/missing fields are rejected by the registry with ValidationError.
    name: str = ""
    owner: str = ""
    command: str = ""


# ── Helpers ──────────────────────────────────────────────────────────────────


def _registry(request: Request) -> HealthCheckRegistry:
    return request.app.state.registry  # type: ignore[no-any-return]


def _coordinator(request: Request) -> RunCoordinator:
    return request.app.state.coordinator  # type: ignore[no-any-return]


def _check_to_dict(check: HealthCheck, coordinator: RunCoordinator) -> dict[str, Any]:
    running = coordinator.is_running(check.id)
    d = check.to_dict()
    d["running"] = running
    d["lastStatus"] = last_status(check, running).value
    return d


# ── Health check endpoints ───────────────────────────────────────────────────


@router.get("/health-checks")
def list_checks(request: Request, q: str | None = None) -> list[dict[str, Any]]:
    """List all checks, each with its history most-recent-first."""
    coordinator = _coordinator(request)
    checks = search_by_name(_registry(request).list(), q)
    return [_check_to_dict(c, coordinator) for c in checks]


@router.put("/health-checks", status_code=201)
@router.post("/health-checks", status_code=201)
def create_check(request: Request, body: CreateCheckBody) -> dict[str, Any]:
    """Create a new health check."""
    check = _registry(request).create(body.name, body.owner, body.command)
    return _check_to_dict(check, _coordinator(request))


@router.get("/health-checks/stream")
async def run_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of completed runs."""
    coordinator = _coordinator(request)
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=50)

    def _on_event(event: RunEvent) -> None:
        try:
            queue.put_nowait(event.to_dict())
        except asyncio.QueueFull:
            pass  # slow consumer, drop

    coordinator.subscribe(_on_event)

    async def event_generator():
        try:
            yield f"event: init\ndata: {json.dumps({'running': sorted(coordinator.running_ids())})}\n\n"
            while True:
                if await request.is_disconnected():
                    break
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30)
                    yield f"event: run\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            coordinator.unsubscribe(_on_event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/health-checks/{check_id}")
def get_check(request: Request, check_id: str) -> dict[str, Any]:
    check = _registry(request).get(check_id)
    return _check_to_dict(check, _coordinator(request))


@router.delete("/health-checks/{check_id}", status_code=204)
def delete_check(request: Request, check_id: str) -> Response:
    """Delete a check and its entire history."""
    _coordinator(request).delete(check_id)
    return Response(status_code=204)


@router.put("/health-checks/{check_id}/run")
@router.post("/health-checks/{check_id}/run")
async def run_check(
    request: Request,
    check_id: str,
    wait: bool = False,
    triggered_by: str | None = None,
    timeout: float | None = Query(None, gt=0),
    x_triggered_by: str | None = Header(None),
) -> Any:
    """Trigger a run.

    Returns 202 immediately by default. With ``?wait=true`` the response is
    the resulting execution log once the run completes.
    """
    coordinator = _coordinator(request)
    actor = triggered_by or x_triggered_by or None
    task = coordinator.start_run(check_id, triggered_by=actor, timeout=timeout)

    if not wait:
        return JSONResponse(
            status_code=202,
            content={"status": "accepted", "checkId": check_id},
        )

    log = await asyncio.shield(task)
    if log is None:
        raise NotFoundError(check_id)
    return {"status": "completed", "checkId": check_id, "log": log.to_dict()}


@router.get("/health-checks/{check_id}/history")
def check_history(
    request: Request,
    check_id: str,
    limit: int | None = Query(None, ge=1),
) -> list[dict[str, Any]]:
    """Execution logs for one check, most recent first."""
    logs = _registry(request).history(check_id, limit)
    return [log.to_dict() for log in logs]


# ── Service status ───────────────────────────────────────────────────────────


@router.get("/status")
def service_status(request: Request) -> dict[str, Any]:
    coordinator = _coordinator(request)
    return {
        "status": "ok",
        "version": __version__,
        "checks": _registry(request).count(),
        "running": sorted(coordinator.running_ids()),
    }
