"""Error taxonomy for the health check core.

Every error carries a ``kind`` so the HTTP layer and the client can tell them
apart without string matching.
"""

from __future__ import annotations


class HealthCheckError(Exception):
    """Base class for all recoverable health check errors."""

    kind = "HealthCheckError"
    status_code = 500


class ValidationError(HealthCheckError):
    """Raised when create input is missing or blank."""

    kind = "ValidationError"
    status_code = 400


class NotFoundError(HealthCheckError):
    """Raised when an operation targets a check that does not exist."""

    kind = "NotFoundError"
    status_code = 404

    def __init__(self, check_id: str) -> None:
        self.check_id = check_id
        super().__init__(f"Health check not found: {check_id}")


class AlreadyRunningError(HealthCheckError):
    """Raised when a run is requested while one is already in flight."""

    kind = "AlreadyRunningError"
    status_code = 409

    def __init__(self, check_id: str) -> None:
        self.check_id = check_id
        super().__init__(f"Health check is already running: {check_id}")


class ExecutionInfrastructureError(HealthCheckError):
    """Raised when the executor could not start the command at all.

    Distinct from a failed check: a command that runs and exits non-zero is a
    normal FAILED result, not this error.
    """

    kind = "ExecutionInfrastructureError"
    status_code = 500
