"""FastAPI server for checkhub."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkhub import __version__
from checkhub.api.routes import router
from checkhub.config import Settings, settings
from checkhub.health.coordinator import RunCoordinator
from checkhub.health.errors import HealthCheckError
from checkhub.health.executor import CommandExecutor
from checkhub.health.registry import HealthCheckRegistry
from checkhub.health.seed import seed_registry
from checkhub.health.store import HealthCheckStore

logger = logging.getLogger(__name__)


def _make_lifespan(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Own the store, registry and coordinator for the life of the app."""
        store = HealthCheckStore(db_path=config.db_path)
        registry = HealthCheckRegistry(store, history_limit=config.history_limit)
        coordinator = RunCoordinator(
            registry,
            CommandExecutor(output_limit_bytes=config.output_limit_bytes),
            timeout=config.command_timeout,
            max_timeout=config.max_command_timeout,
            max_workers=config.max_workers,
            default_triggered_by=config.default_triggered_by,
        )
        app.state.store = store
        app.state.registry = registry
        app.state.coordinator = coordinator

        if config.seed_file:
            try:
                seed_registry(registry, Path(config.seed_file))
            except Exception:
                logger.exception("Seeding from %s failed", config.seed_file)

        logger.info("checkhub ready: %d checks in %s", registry.count(), config.db_path)

        yield

        # Shutdown
        await coordinator.shutdown()
        store.close()

    return lifespan


async def _health_check_error(request: Request, exc: HealthCheckError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": str(exc)},
    )


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or settings
    app = FastAPI(
        title="checkhub - Health Check Service",
        version=__version__,
        lifespan=_make_lifespan(config),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(HealthCheckError, _health_check_error)
    app.include_router(router, prefix="/api")

    return app


app = create_app()
