"""
Decorators for Lambda function handlers.

This module provides decorators that add consistent logging, error handling,
authentication and response formatting to Lambda functions. The usual stack
for a protected resource handler is::

    @lambda_handler()
    @api_errors
    @require_auth
    @extract_path_params("boardId")
    def handler(event, context): ...
"""

import base64
import json
import os
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

import pydantic

from .errors import AuthRequiredError, KanbanError, ValidationError
from .logging import log_error, log_lambda_event, log_lambda_response, setup_logger
from .responses import (HTTPStatus, error_response, preflight_response,
                        validation_error_response)

logger = setup_logger(__name__)


def get_http_method(event: Dict[str, Any]) -> str:
    """HTTP method for payload format 2.0 or 1.0 events."""
    method = (event.get("requestContext") or {}).get("http", {}).get(
        "method"
    ) or event.get("httpMethod")
    if not method:
        raise ValidationError("Unable to determine HTTP method")
    return method.upper()


def get_path(event: Dict[str, Any]) -> str:
    return event.get("rawPath") or event.get("path") or "/"


def parse_json_body(event: Dict[str, Any], required: bool = True) -> Dict[str, Any]:
    """
    Decode the JSON request body.

    Raises:
        ValidationError: If the body is missing (when required), not valid
            JSON, or not a JSON object.
    """
    raw = event.get("body")
    if raw and event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")

    if not raw:
        if required:
            raise ValidationError("Request body is required")
        return {}

    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "Invalid JSON in request body", {"json_error": str(e)}
        ) from e

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable:
    """
    Decorator for Lambda function handlers that provides:
    - Consistent logging setup
    - Automatic event/response logging
    - Last-resort error handling and response formatting
    - Execution time tracking

    Args:
        logger_name: Logger name (defaults to function module name)
        log_event: Whether to log incoming events
        log_response: Whether to log responses
        structured_logging: Whether to use structured JSON logging

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            handler_logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )

            start_time = time.time()

            try:
                if log_event:
                    log_lambda_event(handler_logger, event, context)

                response = func(event, context)

                if not isinstance(response, dict) or "statusCode" not in response:
                    handler_logger.warning("Handler returned invalid response format")
                    response = error_response(
                        "Internal server error",
                        HTTPStatus.INTERNAL_SERVER_ERROR,
                        "INTERNAL_ERROR",
                    )

                if log_response:
                    execution_time = (time.time() - start_time) * 1000
                    log_lambda_response(handler_logger, response, execution_time)

                return response

            except Exception as e:
                execution_time = (time.time() - start_time) * 1000

                log_error(
                    handler_logger,
                    e,
                    {
                        "function_name": getattr(context, "function_name", "unknown"),
                        "request_id": getattr(context, "aws_request_id", "unknown"),
                        "execution_time_ms": execution_time,
                        "event_path": event.get("path") or event.get("rawPath"),
                        "event_method": event.get("httpMethod")
                        or (event.get("requestContext") or {})
                        .get("http", {})
                        .get("method"),
                    },
                )

                return error_response(
                    "Internal server error",
                    HTTPStatus.INTERNAL_SERVER_ERROR,
                    "INTERNAL_ERROR",
                )

        return wrapper

    return decorator


def api_errors(func: Callable) -> Callable:
    """
    Map application exceptions onto the JSON error envelope.

    ``KanbanError`` subclasses carry their own status and code; pydantic
    validation failures become 400s. Anything else propagates to
    ``lambda_handler``, which logs it and answers with a generic 500.
    Also answers CORS preflight requests before any authentication runs.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        try:
            if get_http_method(event) == "OPTIONS":
                return preflight_response()
            return func(event, context)
        except KanbanError as e:
            if e.status_code.value >= 500:
                log_error(logger, e, {"error_code": e.code})
            else:
                logger.info(
                    "Request rejected",
                    extra={"error_code": e.code, "status_code": e.status_code.value},
                )
            return error_response(e.message, e.status_code, e.code, e.details)
        except pydantic.ValidationError as e:
            return validation_error_response(
                errors={
                    "validation_errors": e.errors(
                        include_url=False, include_context=False, include_input=False
                    )
                }
            )

    return wrapper


def _local_user_claims(event: Dict[str, Any]) -> Dict[str, Any]:
    headers = event.get("headers") or {}
    raw = headers.get("x-local-user") or headers.get("X-Local-User")
    if not raw:
        raise AuthRequiredError()
    try:
        claims = json.loads(raw)
    except json.JSONDecodeError as e:
        raise AuthRequiredError() from e
    return claims if isinstance(claims, dict) else {}


def extract_claims(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Identity claims placed on the request by the API Gateway authorizer.

    HTTP API JWT authorizers use ``authorizer.jwt.claims``; REST API
    Cognito authorizers use ``authorizer.claims``. With ``LOCAL_AUTH=true``
    a JSON ``X-Local-User`` header stands in for the authorizer.
    """
    if os.getenv("LOCAL_AUTH", "").lower() == "true":
        return _local_user_claims(event)

    authorizer = (event.get("requestContext") or {}).get("authorizer") or {}
    claims = (authorizer.get("jwt") or {}).get("claims") or authorizer.get("claims")
    return claims or {}


def require_auth(func: Callable) -> Callable:
    """
    Decorator that ensures the request carries an authenticated identity.

    Adds ``event["auth"]`` with ``user_id``, ``email`` and ``name``.

    Raises:
        AuthRequiredError: If no ``sub`` claim is present.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        claims = extract_claims(event)
        sub = claims.get("sub")

        if not sub:
            logger.info(
                "Authorization failed - no valid claims found",
                extra={"claim_keys": sorted(claims.keys())},
            )
            raise AuthRequiredError()

        given = claims.get("given_name") or ""
        family = claims.get("family_name") or ""
        event["auth"] = {
            "user_id": sub,
            "email": claims.get("email") or "",
            "name": f"{given} {family}".strip() or "Unknown User",
        }

        return func(event, context)

    return wrapper


def extract_path_params(*required: str) -> Callable:
    """
    Decorator that extracts path parameters and validates required ones.

    All path parameters end up in ``event["path_params"]``; optional ones
    that are absent are simply missing from the mapping.

    Args:
        required: Names of path parameters that must be present
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            path_params = {
                name: value
                for name, value in (event.get("pathParameters") or {}).items()
                if value
            }

            missing_params = [param for param in required if param not in path_params]

            if missing_params:
                raise ValidationError(
                    f"Missing path parameters: {', '.join(missing_params)}",
                    {"missing_parameters": missing_params},
                )

            event["path_params"] = path_params

            return func(event, context)

        return wrapper

    return decorator
