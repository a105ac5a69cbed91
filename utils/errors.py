"""
Application error taxonomy for the Kanban API.

Handlers and services raise these exceptions; the ``api_errors`` decorator
turns them into the standard JSON error envelope. Client-facing messages are
stable strings, internal detail goes to the logs only.
"""

from typing import Any, Dict, Optional

from .responses import HTTPStatus


class KanbanError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(KanbanError):
    status_code = HTTPStatus.BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class AuthRequiredError(KanbanError):
    status_code = HTTPStatus.UNAUTHORIZED
    code = "AUTH_REQUIRED"
    default_message = "Authentication required"


class AccessDeniedError(KanbanError):
    status_code = HTTPStatus.FORBIDDEN
    code = "ACCESS_DENIED"
    default_message = "Access denied"


class NotFoundError(KanbanError):
    status_code = HTTPStatus.NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found"


class MethodNotAllowedError(KanbanError):
    status_code = HTTPStatus.METHOD_NOT_ALLOWED
    code = "METHOD_NOT_ALLOWED"
    default_message = "Method not allowed"


class ConflictError(KanbanError):
    status_code = HTTPStatus.CONFLICT
    code = "CONFLICT"
    default_message = "Resource was modified concurrently"


class UpstreamError(KanbanError):
    """The identity provider (or another remote dependency) failed."""

    status_code = HTTPStatus.BAD_GATEWAY
    code = "UPSTREAM_FAILURE"
    default_message = "Upstream service failure"


class StorageError(KanbanError):
    """Any DynamoDB failure that is not an expected condition check."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "STORAGE_UNAVAILABLE"
    default_message = "Storage unavailable"
