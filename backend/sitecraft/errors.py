"""Error taxonomy shared by every pipeline component.

Component operations raise these typed errors; the request boundary in
``sitecraft.main`` turns them into ``{"error": {"message", "code"}}`` bodies.
Anything that is not an ``AppError`` is logged and reduced to a generic
``INTERNAL_ERROR`` response.
"""

from __future__ import annotations

from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base class for errors that carry a stable code and HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, *, details: Any | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """A precondition was not met (wrong status, missing field)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{target}'",
            details={"entity": entity, "from": current, "to": target},
        )
        self.current = current
        self.target = target


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    code = "UNAUTHORIZED"
    status_code = 401


class ConflictError(AppError):
    """Raised when another generation is already in flight for a project."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ProjectNotFoundError(NotFoundError):
    """Raised when a project identifier cannot be resolved for the caller."""

    def __init__(self, project_id: str):
        super().__init__("Project")
        self.project_id = project_id


class VersionNotFoundError(NotFoundError):
    def __init__(self, version_id: str):
        super().__init__("Generation version")
        self.version_id = version_id


class DomainNotFoundError(NotFoundError):
    def __init__(self, domain_id: str):
        super().__init__("Domain")
        self.domain_id = domain_id


class DeploymentError(AppError):
    """The hosting provider rejected an upload, deployment or alias request."""

    code = "DEPLOYMENT_ERROR"
    status_code = 502

    def __init__(self, message: str, *, provider_message: str | None = None, details: Any = None):
        super().__init__(message, details=details)
        self.provider_message = provider_message


class OperationTimeoutError(AppError):
    """A bounded wait (publish budget, deployment call) was exceeded."""

    code = "TIMEOUT"
    status_code = 504


class UnexpectedError(AppError):
    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)


def format_error_response(error: BaseException) -> tuple[dict[str, Any], int]:
    """Translate an exception into a response body and HTTP status."""
    if isinstance(error, AppError):
        body: dict[str, Any] = {"message": error.message, "code": error.code}
        if error.details:
            body["details"] = error.details
        return {"error": body}, error.status_code

    logger.error(
        "unexpected_error",
        error_type=type(error).__name__,
        exc_info=error,
    )
    fallback = UnexpectedError()
    return {"error": {"message": fallback.message, "code": fallback.code}}, fallback.status_code
