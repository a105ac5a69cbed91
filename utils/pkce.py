"""
PKCE and OIDC request parameters.

Generates the code verifier / S256 challenge pair (RFC 7636) plus the
anti-CSRF ``state`` and OIDC ``nonce`` values sent on the authorize request.
"""

import base64
import hashlib
import secrets
from typing import NamedTuple

# Random bytes behind the verifier; 128 bytes encode to 171 characters
VERIFIER_BYTES = 128
STATE_BYTES = 16
NONCE_BYTES = 16


def base64url(data: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_code_verifier(length: int = VERIFIER_BYTES) -> str:
    return base64url(secrets.token_bytes(length))


def generate_code_challenge(verifier: str) -> str:
    """S256 challenge for a verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64url(digest)


def generate_state() -> str:
    return base64url(secrets.token_bytes(STATE_BYTES))


def generate_nonce() -> str:
    return base64url(secrets.token_bytes(NONCE_BYTES))


class PKCEParameters(NamedTuple):
    verifier: str
    challenge: str
    state: str
    nonce: str


def new_login_parameters() -> PKCEParameters:
    """Fresh verifier, challenge, state and nonce for one login round trip."""
    verifier = generate_code_verifier()
    return PKCEParameters(
        verifier=verifier,
        challenge=generate_code_challenge(verifier),
        state=generate_state(),
        nonce=generate_nonce(),
    )


def constant_time_equals(left: str, right: str) -> bool:
    """Compare two secrets without leaking timing information."""
    return secrets.compare_digest(left.encode("utf-8"), right.encode("utf-8"))
