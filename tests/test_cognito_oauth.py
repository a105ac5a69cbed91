import time
import urllib.parse

import jwt
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa

from services.cognito_oauth import CognitoOAuthClient
from utils.errors import AuthRequiredError, UpstreamError


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeHTTP:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StaticJWKS:
    def __init__(self, public_key):
        self.key = public_key

    def get_signing_key_from_jwt(self, token):
        return self


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _id_token(private_key, settings, **overrides):
    now = int(time.time())
    claims = {
        "sub": "user-1",
        "email": "user@example.com",
        "iss": settings.cognito_issuer_url,
        "aud": settings.cognito_client_id,
        "iat": now,
        "exp": now + 3600,
        "nonce": "nonce-1",
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256")


def test_authorization_url_carries_pkce_parameters(settings):
    client = CognitoOAuthClient(settings, http=FakeHTTP())
    url = client.authorization_url("challenge", "state-1", "nonce-1")

    parsed = urllib.parse.urlparse(url)
    query = dict(urllib.parse.parse_qsl(parsed.query))
    assert f"{parsed.scheme}://{parsed.netloc}" == settings.cognito_domain
    assert parsed.path == "/oauth2/authorize"
    assert query == {
        "client_id": "client-123",
        "response_type": "code",
        "scope": "openid profile email",
        "redirect_uri": "https://app.example.com/api/auth/callback",
        "code_challenge": "challenge",
        "code_challenge_method": "S256",
        "state": "state-1",
        "nonce": "nonce-1",
    }


def test_end_session_url(settings):
    url = CognitoOAuthClient(settings).end_session_url()
    assert url == (
        "https://kanban.auth.us-east-1.amazoncognito.com/logout"
        "?client_id=client-123&logout_uri=https%3A%2F%2Fapp.example.com"
    )


def test_exchange_code_posts_verifier_with_timeout(settings):
    http = FakeHTTP(
        FakeResponse(200, {"access_token": "a", "id_token": "i", "expires_in": 3600})
    )
    tokens = CognitoOAuthClient(settings, http=http).exchange_code("code-1", "verifier-1")

    assert tokens["access_token"] == "a"
    ((url, kwargs),) = http.calls
    assert url.endswith("/oauth2/token")
    assert kwargs["data"]["code_verifier"] == "verifier-1"
    assert kwargs["data"]["grant_type"] == "authorization_code"
    assert kwargs["timeout"] == settings.oauth_http_timeout


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(400, {"error": "invalid_grant"}),
        FakeResponse(500),
        FakeResponse(200),
        FakeResponse(200, {"access_token": "a"}),
        requests.ConnectionError("down"),
    ],
)
def test_exchange_code_failures_are_upstream_errors(settings, response):
    client = CognitoOAuthClient(settings, http=FakeHTTP(response))
    with pytest.raises(UpstreamError):
        client.exchange_code("code", "verifier")


def test_refresh_uses_refresh_grant(settings):
    http = FakeHTTP(FakeResponse(200, {"access_token": "new"}))
    tokens = CognitoOAuthClient(settings, http=http).refresh("refresh-1")

    assert tokens == {"access_token": "new"}
    assert http.calls[0][1]["data"] == {
        "grant_type": "refresh_token",
        "client_id": "client-123",
        "refresh_token": "refresh-1",
    }


def test_verify_id_token_accepts_valid_token(settings, rsa_key):
    client = CognitoOAuthClient(settings, jwks_client=StaticJWKS(rsa_key.public_key()))
    claims = client.verify_id_token(_id_token(rsa_key, settings), "nonce-1")
    assert claims["sub"] == "user-1"


@pytest.mark.parametrize(
    "overrides,nonce",
    [
        ({"nonce": "other"}, "nonce-1"),
        ({"aud": "someone-else"}, "nonce-1"),
        ({"iss": "https://evil.example.com"}, "nonce-1"),
        ({"exp": int(time.time()) - 3600}, "nonce-1"),
    ],
)
def test_verify_id_token_rejects_bad_claims(settings, rsa_key, overrides, nonce):
    client = CognitoOAuthClient(settings, jwks_client=StaticJWKS(rsa_key.public_key()))
    with pytest.raises(AuthRequiredError):
        client.verify_id_token(_id_token(rsa_key, settings, **overrides), nonce)


def test_verify_id_token_rejects_foreign_signature(settings, rsa_key):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    client = CognitoOAuthClient(settings, jwks_client=StaticJWKS(rsa_key.public_key()))
    with pytest.raises(AuthRequiredError):
        client.verify_id_token(_id_token(other_key, settings), "nonce-1")
