"""
Utils package for shared utilities and cross-cutting concerns.

This package contains decorators, logging utilities, response formatters,
the error taxonomy, cookie helpers and PKCE helpers used across the
application.
"""

from .decorators import (api_errors, extract_path_params, get_http_method,
                         lambda_handler, parse_json_body, require_auth)
from .errors import (AccessDeniedError, AuthRequiredError, ConflictError,
                     KanbanError, MethodNotAllowedError, NotFoundError,
                     StorageError, UpstreamError, ValidationError)
from .logging import (log_error, log_lambda_event, log_lambda_response,
                      setup_logger)
from .responses import (HTTPStatus, error_response, redirect_response,
                        success_response, validation_error_response)

__all__ = [
    # Decorators
    "lambda_handler",
    "api_errors",
    "require_auth",
    "extract_path_params",
    "get_http_method",
    "parse_json_body",
    # Errors
    "KanbanError",
    "ValidationError",
    "AuthRequiredError",
    "AccessDeniedError",
    "NotFoundError",
    "MethodNotAllowedError",
    "ConflictError",
    "UpstreamError",
    "StorageError",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "validation_error_response",
    "redirect_response",
]
