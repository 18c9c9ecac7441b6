"""Health check core — executor, SQLite history store, registry, run coordinator."""

from .coordinator import RunCoordinator, RunEvent
from .errors import (
    AlreadyRunningError,
    ExecutionInfrastructureError,
    HealthCheckError,
    NotFoundError,
    ValidationError,
)
from .executor import CommandExecutor, ExecutionResult
from .models import ExecutionLog, HealthCheck, Status
from .query import LastStatus, last_status, search_by_name
from .registry import HealthCheckRegistry
from .store import HealthCheckStore
