"""
Session cookie helpers.

Reads cookies from both API Gateway payload formats (``event["cookies"]``
for HTTP APIs, the ``Cookie`` header for REST APIs) and serializes the
``sid`` cookie with the attributes the login flow requires.
"""

from http.cookies import SimpleCookie
from typing import Any, Dict, List, Optional, Tuple

SESSION_COOKIE = "sid"


def _split_cookie_pairs(raw: str) -> List[Tuple[str, str]]:
    # Each pair parses on its own; a malformed value never drops its neighbours.
    pairs = []
    for piece in raw.split(";"):
        name, sep, value = piece.strip().partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1]
        pairs.append((name, value))
    return pairs


def parse_cookies(event: Dict[str, Any]) -> Dict[str, str]:
    """Collect request cookies into a name -> value mapping."""
    headers = event.get("headers") or {}
    parts: List[str] = []

    cookie_header = headers.get("cookie") or headers.get("Cookie")
    if cookie_header:
        parts.append(cookie_header)

    event_cookies = event.get("cookies") or []
    if isinstance(event_cookies, str):
        event_cookies = [event_cookies]
    parts.extend(c for c in event_cookies if isinstance(c, str))

    cookies: Dict[str, str] = {}
    for part in parts:
        for name, value in _split_cookie_pairs(part):
            cookies[name] = value
    return cookies


def get_session_id(event: Dict[str, Any]) -> Optional[str]:
    return parse_cookies(event).get(SESSION_COOKIE) or None


def session_cookie(session_id: str, max_age: int, secure: bool) -> str:
    """Serialize the HTTP-only, SameSite=Lax session cookie."""
    jar = SimpleCookie()
    jar[SESSION_COOKIE] = session_id
    morsel = jar[SESSION_COOKIE]
    morsel["path"] = "/"
    morsel["max-age"] = str(max_age)
    morsel["httponly"] = True
    morsel["samesite"] = "Lax"
    if secure:
        morsel["secure"] = True
    return morsel.OutputString()


def expired_session_cookie(secure: bool) -> str:
    """A cookie that makes the browser drop ``sid``."""
    return session_cookie("", max_age=0, secure=secure)
