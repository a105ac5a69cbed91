"""
Standardized HTTP response utilities for Lambda functions.

This module provides the ``{success, data}`` / ``{success, error}`` JSON
envelope, redirects, and CORS headers shared by every endpoint.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class HTTPStatus(Enum):
    """HTTP status codes for API responses."""

    OK = 200
    CREATED = 201
    FOUND = 302
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502


# CORS headers for API responses
cors_headers = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


class APIJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for API responses that handles:
    - Decimal objects (from DynamoDB)
    - datetime objects
    - Pydantic models
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "model_dump"):  # Pydantic models
            return obj.model_dump(by_alias=True)
        return super().default(obj)


def create_response(
    status_code: Union[int, HTTPStatus],
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    cookies: Optional[List[str]] = None,
    cors_enabled: bool = True,
) -> Dict[str, Any]:
    """
    Create a Lambda HTTP response (API Gateway payload format 2.0).

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON serialized)
        headers: Additional headers
        cookies: Serialized ``Set-Cookie`` values
        cors_enabled: Whether to include CORS headers

    Returns:
        Lambda HTTP response dictionary
    """
    if isinstance(status_code, HTTPStatus):
        status_code = status_code.value

    response_headers = {"Content-Type": "application/json"}

    if cors_enabled:
        response_headers.update(cors_headers)

    if headers:
        response_headers.update(headers)

    response: Dict[str, Any] = {
        "statusCode": status_code,
        "headers": response_headers,
    }

    if cookies:
        response["cookies"] = list(cookies)

    if body is not None:
        if isinstance(body, (dict, list)) or hasattr(body, "model_dump"):
            response["body"] = json.dumps(body, cls=APIJSONEncoder)
        else:
            response["headers"]["Content-Type"] = "text/plain; charset=utf-8"
            response["body"] = str(body)

    return response


def success_response(
    data: Any = None,
    status_code: Union[int, HTTPStatus] = HTTPStatus.OK,
    cookies: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create a success response: ``{"success": true, "data": ...}``.

    Args:
        data: Response data
        status_code: HTTP status code
        cookies: Optional ``Set-Cookie`` values

    Returns:
        Lambda HTTP response dictionary
    """
    return create_response(
        status_code, {"success": True, "data": data}, cookies=cookies
    )


def error_response(
    message: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    cookies: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create an error response: ``{"success": false, "error": {message, code}}``.

    Args:
        message: Error message
        status_code: HTTP status code
        error_code: Application-specific error code
        details: Additional error details
        cookies: Optional ``Set-Cookie`` values

    Returns:
        Lambda HTTP response dictionary
    """
    error: Dict[str, Any] = {"message": message}

    if error_code:
        error["code"] = error_code

    if details:
        error["details"] = details

    return create_response(
        status_code, {"success": False, "error": error}, cookies=cookies
    )


def validation_error_response(
    message: str = "Invalid request data", errors: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create a validation error response."""
    return error_response(
        message=message,
        status_code=HTTPStatus.BAD_REQUEST,
        error_code="VALIDATION_ERROR",
        details=errors,
    )


def redirect_response(
    location: str, cookies: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create a 302 redirect, optionally setting cookies."""
    response = create_response(
        HTTPStatus.FOUND, headers={"Location": location}, cookies=cookies
    )
    response["headers"].pop("Content-Type", None)
    return response


def preflight_response() -> Dict[str, Any]:
    """Answer a CORS preflight request."""
    return create_response(HTTPStatus.OK, "")
