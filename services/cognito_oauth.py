"""
Cognito OAuth 2.0 / OIDC client.

Builds the hosted-UI authorize and logout URLs, calls the token endpoint for
the authorization-code (PKCE) and refresh-token grants, and verifies ID
tokens against the user pool's published JWKS.
"""

import urllib.parse
from typing import Any, Dict, Optional

import jwt
import requests

from services.parameter_store import Settings
from utils.errors import AuthRequiredError, UpstreamError
from utils.logging import setup_logger
from utils.pkce import constant_time_equals

logger = setup_logger(__name__)

DEFAULT_TOKEN_LIFETIME = 3600
# Allowed clock skew when checking exp/iat on ID tokens
LEEWAY_SECONDS = 10


class CognitoOAuthClient:
    """
    Talks to a Cognito user pool app client (public client, no secret).

    ``http`` defaults to the ``requests`` module and ``jwks_client`` to a
    ``jwt.PyJWKClient`` for the issuer's JWKS; both can be injected.
    """

    def __init__(self, settings: Settings, http: Any = None, jwks_client: Any = None):
        self.settings = settings
        self.http = http or requests
        self._jwks_client = jwks_client

        self.authorize_endpoint = f"{settings.cognito_domain}/oauth2/authorize"
        self.token_endpoint = f"{settings.cognito_domain}/oauth2/token"
        self.logout_endpoint = f"{settings.cognito_domain}/logout"

    @property
    def jwks_client(self) -> jwt.PyJWKClient:
        if self._jwks_client is None:
            self._jwks_client = jwt.PyJWKClient(
                self.settings.jwks_uri,
                cache_keys=True,
                timeout=int(self.settings.oauth_http_timeout),
            )
        return self._jwks_client

    def authorization_url(self, challenge: str, state: str, nonce: str) -> str:
        params = {
            "client_id": self.settings.cognito_client_id,
            "response_type": "code",
            "scope": self.settings.oauth_scope,
            "redirect_uri": self.settings.redirect_uri,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
            "state": state,
            "nonce": nonce,
        }
        return f"{self.authorize_endpoint}?{urllib.parse.urlencode(params)}"

    def end_session_url(self) -> str:
        params = {
            "client_id": self.settings.cognito_client_id,
            "logout_uri": self.settings.logout_redirect_uri,
        }
        return f"{self.logout_endpoint}?{urllib.parse.urlencode(params)}"

    def _token_request(self, grant: str, data: Dict[str, str]) -> Dict[str, Any]:
        """
        POST a grant to the token endpoint.

        Raises:
            UpstreamError: On a transport failure, a non-2xx response or a
                body that is not JSON.
        """
        try:
            response = self.http.post(
                self.token_endpoint,
                data=data,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                timeout=self.settings.oauth_http_timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "Token endpoint unreachable",
                extra={"grant_type": grant, "error": type(e).__name__},
            )
            raise UpstreamError("Token exchange failed") from e

        if not response.ok:
            error_type = "unknown"
            try:
                error_type = response.json().get("error", "unknown")
            except ValueError:
                pass
            logger.error(
                "Token endpoint error",
                extra={
                    "grant_type": grant,
                    "status_code": response.status_code,
                    "error_type": error_type,
                },
            )
            raise UpstreamError("Token exchange failed")

        try:
            return response.json()
        except ValueError as e:
            logger.error("Token endpoint returned invalid JSON", extra={"grant_type": grant})
            raise UpstreamError("Token exchange failed") from e

    def exchange_code(self, code: str, verifier: str) -> Dict[str, Any]:
        """
        Exchange an authorization code plus its PKCE verifier for tokens.

        Returns:
            The token response (``access_token``, ``id_token``,
            ``refresh_token``, ``expires_in``).
        """
        tokens = self._token_request(
            "authorization_code",
            {
                "grant_type": "authorization_code",
                "client_id": self.settings.cognito_client_id,
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
                "code_verifier": verifier,
            },
        )
        if not tokens.get("id_token") or not tokens.get("access_token"):
            logger.error("Token response missing tokens")
            raise UpstreamError("Token exchange failed")
        return tokens

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Run the refresh-token grant. Cognito does not rotate refresh tokens."""
        return self._token_request(
            "refresh_token",
            {
                "grant_type": "refresh_token",
                "client_id": self.settings.cognito_client_id,
                "refresh_token": refresh_token,
            },
        )

    def verify_id_token(self, id_token: str, nonce: Optional[str]) -> Dict[str, Any]:
        """
        Verify an ID token's signature, issuer, audience, expiry and nonce.

        Returns:
            The token claims.

        Raises:
            AuthRequiredError: If any check fails.
        """
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(id_token)
            claims = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.settings.cognito_client_id,
                issuer=self.settings.cognito_issuer_url,
                leeway=LEEWAY_SECONDS,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as e:
            logger.warning(
                "ID token verification failed", extra={"error": type(e).__name__}
            )
            raise AuthRequiredError("Invalid ID token") from e

        if nonce and not constant_time_equals(str(claims.get("nonce", "")), nonce):
            logger.warning("ID token nonce mismatch")
            raise AuthRequiredError("Invalid ID token")

        return claims
