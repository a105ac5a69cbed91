"""
Login, callback, session read, token refresh and logout.

A session starts as a short-lived ``PendingLogin`` record created when the
browser is sent to Cognito, and is overwritten with an ``ActiveSession``
once the callback has exchanged the code and verified the ID token.
"""

import time
from typing import Any, Dict, NamedTuple, Optional

from pydantic import ValidationError as PydanticValidationError

from models.session import ActiveSession, PendingLogin, UserInfo
from services.cognito_oauth import DEFAULT_TOKEN_LIFETIME, CognitoOAuthClient
from services.parameter_store import Settings
from services.sessions import SessionStore
from utils.errors import (AccessDeniedError, AuthRequiredError, KanbanError,
                          ValidationError)
from utils.logging import setup_logger
from utils.pkce import constant_time_equals, new_login_parameters

logger = setup_logger(__name__)


class LoginRedirect(NamedTuple):
    session_id: str
    authorization_url: str


class AuthFlow:
    def __init__(
        self,
        sessions: SessionStore,
        oauth: CognitoOAuthClient,
        settings: Settings,
        clock=time.time,
    ):
        self.sessions = sessions
        self.oauth = oauth
        self.settings = settings
        self._clock = clock

    @classmethod
    def from_environment(cls) -> "AuthFlow":
        settings = Settings.load()
        return cls(
            SessionStore(
                table_name=settings.session_table_name,
                max_attempts=settings.ddb_max_attempts,
            ),
            CognitoOAuthClient(settings),
            settings,
        )

    def _now(self) -> int:
        return int(self._clock())

    def start_login(self) -> LoginRedirect:
        """Persist fresh PKCE parameters and build the authorize URL."""
        params = new_login_parameters()
        pending = PendingLogin(
            verifier=params.verifier,
            state=params.state,
            nonce=params.nonce,
            createdAt=int(self._clock() * 1000),
        )
        session_id = self.sessions.create(
            pending.model_dump(), ttl_seconds=self.settings.login_session_ttl_seconds
        )
        url = self.oauth.authorization_url(params.challenge, params.state, params.nonce)
        return LoginRedirect(session_id, url)

    def complete_callback(
        self, session_id: Optional[str], params: Dict[str, str]
    ) -> ActiveSession:
        """
        Finish the login round trip.

        Raises:
            ValidationError: Missing cookie, expired login session or no code.
            AccessDeniedError: ``state`` does not match; the session is
                destroyed first.
            UpstreamError: The token endpoint failed.
            AuthRequiredError: The ID token did not verify.
        """
        if not session_id:
            raise ValidationError("Missing session cookie")

        stored = self.sessions.get(session_id)
        if not stored:
            raise ValidationError("Session expired")

        code = params.get("code")
        if not code:
            raise ValidationError("Missing code")

        try:
            pending = PendingLogin.model_validate(stored)
        except PydanticValidationError as e:
            raise ValidationError("Session expired") from e

        returned_state = params.get("state") or ""
        if not constant_time_equals(returned_state, pending.state):
            self.sessions.destroy(session_id)
            logger.warning("OAuth state mismatch, login session destroyed")
            raise AccessDeniedError("Invalid state")

        tokens = self.oauth.exchange_code(code, pending.verifier)
        claims = self.oauth.verify_id_token(tokens["id_token"], pending.nonce)

        active = ActiveSession(
            accessToken=tokens["access_token"],
            idToken=tokens["id_token"],
            refreshToken=tokens.get("refresh_token"),
            tokenExpiry=self._now()
            + int(tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME),
            userInfo=UserInfo.from_claims(claims),
        )
        self.sessions.update(
            session_id,
            active.model_dump(),
            ttl_seconds=self.settings.session_ttl_seconds,
        )
        logger.info("Login completed", extra={"user_id": active.userInfo.sub})
        return active

    def read_session(self, session_id: Optional[str]) -> Optional[ActiveSession]:
        """The logged-in session, or None when there is none."""
        stored = self.sessions.get(session_id) if session_id else None
        if not stored or not stored.get("isLoggedIn"):
            return None
        try:
            return ActiveSession.model_validate(stored)
        except PydanticValidationError:
            logger.warning("Discarding malformed session record")
            return None

    def session_summary(self, session_id: Optional[str]) -> Dict[str, Any]:
        session = self.read_session(session_id)
        if session is None:
            return {"isLoggedIn": False, "userInfo": None}
        return {"isLoggedIn": True, "userInfo": session.userInfo.model_dump()}

    def get_valid_access_token(self, session_id: Optional[str]) -> Optional[str]:
        """
        Return an access token with more than the refresh buffer left,
        refreshing it first when needed.

        Returns None when there is no logged-in session or the refresh
        failed; the stored session is left in place either way.
        """
        session = self.read_session(session_id)
        if session is None:
            return None

        now = self._now()
        buffer = self.settings.token_refresh_buffer_seconds
        if not session.expires_within(buffer, now):
            return session.accessToken

        if not session.refreshToken:
            logger.info("Access token expiring and no refresh token stored")
            return None

        try:
            tokens = self.oauth.refresh(session.refreshToken)
        except KanbanError as e:
            logger.warning("Token refresh failed", extra={"error_code": e.code})
            return None

        if not tokens.get("access_token"):
            logger.warning("Token refresh returned no access token")
            return None

        refreshed = session.model_copy(
            update={
                "accessToken": tokens["access_token"],
                "idToken": tokens.get("id_token") or session.idToken,
                "refreshToken": tokens.get("refresh_token") or session.refreshToken,
                "tokenExpiry": now
                + int(tokens.get("expires_in") or DEFAULT_TOKEN_LIFETIME),
            }
        )
        self.sessions.update(
            session_id,
            refreshed.model_dump(),
            ttl_seconds=self.settings.session_ttl_seconds,
        )
        logger.info("Access token refreshed", extra={"user_id": session.userInfo.sub})
        return refreshed.accessToken

    def require_access_token(self, session_id: Optional[str]) -> str:
        """
        Raises:
            AuthRequiredError: No session or the token could not be refreshed.
        """
        if not session_id:
            raise AuthRequiredError("No session")
        token = self.get_valid_access_token(session_id)
        if not token:
            raise AuthRequiredError("Session expired")
        return token

    def logout(self, session_id: Optional[str]) -> str:
        """
        Destroy the session and return where to send the browser: the
        Cognito logout endpoint when a logged-in session existed, otherwise
        straight back to the app.
        """
        if not session_id:
            return self.settings.logout_redirect_uri

        stored = self.sessions.get(session_id)
        self.sessions.destroy(session_id)
        if not stored or not stored.get("idToken"):
            return self.settings.logout_redirect_uri
        return self.oauth.end_session_url()
