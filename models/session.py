"""Server-side session models for the OAuth login flow."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class PendingLogin(BaseModel):
    """Stored between the authorize redirect and the callback."""

    verifier: str
    state: str
    nonce: str
    createdAt: int  # epoch milliseconds


class UserInfo(BaseModel):
    sub: str
    email: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "UserInfo":
        return cls(
            sub=claims["sub"],
            email=claims.get("email"),
            given_name=claims.get("given_name"),
            family_name=claims.get("family_name"),
            picture=claims.get("picture"),
        )


class ActiveSession(BaseModel):
    """Stored once the callback has exchanged the code for tokens."""

    isLoggedIn: bool = True
    accessToken: str
    idToken: str
    refreshToken: Optional[str] = None
    tokenExpiry: int  # epoch seconds
    userInfo: UserInfo

    def expires_within(self, seconds: int, now: int) -> bool:
        return self.tokenExpiry - now < seconds
