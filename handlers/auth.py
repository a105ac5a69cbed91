"""
Authentication handlers for the Kanban web app.

One Lambda serves the browser-facing OAuth routes:

- ``GET /api/auth/login``: start the Cognito hosted-UI login (PKCE)
- ``GET|POST /api/auth/callback``: exchange the code and open the session
- ``GET /api/auth/logout``: drop the session and end the Cognito session
- ``GET /api/auth/session``: ``{isLoggedIn, userInfo}`` for the current cookie
- ``POST /api/refresh-token``: a valid access token, refreshed if needed

Sessions are server-side; the browser only holds the ``sid`` cookie.
"""

import base64
import threading
import urllib.parse
from typing import Any, Dict, Optional

from services.auth_flow import AuthFlow
from utils.cookies import expired_session_cookie, get_session_id, session_cookie
from utils.decorators import api_errors, get_http_method, get_path, lambda_handler
from utils.errors import MethodNotAllowedError, NotFoundError
from utils.logging import setup_logger
from utils.responses import redirect_response, success_response

logger = setup_logger(__name__)

LOGIN_PATH = "/api/auth/login"
CALLBACK_PATH = "/api/auth/callback"
LOGOUT_PATH = "/api/auth/logout"
SESSION_PATH = "/api/auth/session"
REFRESH_PATH = "/api/refresh-token"


def callback_params(event: Dict[str, Any]) -> Dict[str, str]:
    """
    OAuth callback parameters from the query string, or from an
    ``application/x-www-form-urlencoded`` body (``response_mode=form_post``).
    """
    query = event.get("queryStringParameters") or {}
    if query:
        return {k: v for k, v in query.items() if v is not None}

    raw = event.get("body")
    if not raw:
        return {}
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")
    return {k: v[0] for k, v in urllib.parse.parse_qs(raw).items() if v}


def _login(flow: AuthFlow, event):
    login = flow.start_login()
    cookie = session_cookie(
        login.session_id,
        max_age=flow.settings.login_session_ttl_seconds,
        secure=flow.settings.cookie_secure,
    )
    return redirect_response(login.authorization_url, cookies=[cookie])


def _callback(flow: AuthFlow, event):
    session_id = get_session_id(event)
    flow.complete_callback(session_id, callback_params(event))
    cookie = session_cookie(
        session_id,
        max_age=flow.settings.session_ttl_seconds,
        secure=flow.settings.cookie_secure,
    )
    return redirect_response(flow.settings.login_redirect_uri, cookies=[cookie])


def _logout(flow: AuthFlow, event):
    location = flow.logout(get_session_id(event))
    cookie = expired_session_cookie(secure=flow.settings.cookie_secure)
    return redirect_response(location, cookies=[cookie])


def _session(flow: AuthFlow, event):
    return success_response(flow.session_summary(get_session_id(event)))


def _refresh(flow: AuthFlow, event):
    token = flow.require_access_token(get_session_id(event))
    return success_response(
        {"accessToken": token, "message": "Token refreshed successfully"}
    )


ROUTES = {
    LOGIN_PATH: ({"GET"}, _login),
    CALLBACK_PATH: ({"GET", "POST"}, _callback),
    LOGOUT_PATH: ({"GET"}, _logout),
    SESSION_PATH: ({"GET"}, _session),
    REFRESH_PATH: ({"POST"}, _refresh),
}


def _match_route(path: str) -> Optional[str]:
    path = path.rstrip("/")
    for route in ROUTES:
        # A stage name may prefix the path on REST APIs
        if path == route or path.endswith(route):
            return route
    return None


def create_handler(flow: Optional[AuthFlow] = None):
    """
    Build the auth Lambda entry point.

    Without an explicit flow, one is assembled from configuration on the
    first request, since loading settings may call Parameter Store.
    """
    state = {"flow": flow}
    lock = threading.Lock()

    def get_flow() -> AuthFlow:
        if state["flow"] is None:
            with lock:
                if state["flow"] is None:
                    state["flow"] = AuthFlow.from_environment()
        return state["flow"]

    @lambda_handler()
    @api_errors
    def handler(event, context):
        path = get_path(event)
        route = _match_route(path)
        if route is None:
            logger.info("Unknown auth route", extra={"path": path})
            raise NotFoundError("Route not found")

        methods, action = ROUTES[route]
        if get_http_method(event) not in methods:
            raise MethodNotAllowedError()

        return action(get_flow(), event)

    return handler


handler = create_handler()
