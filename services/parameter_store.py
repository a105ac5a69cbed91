"""
Configuration for the Kanban backend.

Values resolve from environment variables first (a local ``.env`` file is
loaded with python-dotenv for development), then from AWS Systems Manager
Parameter Store under ``/kanban/...``. Lookups are cached for the lifetime
of the Lambda execution environment.
"""

import os
from functools import lru_cache
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

DEFAULT_PREFIX = "/kanban"

# Cache for Parameter Store client
_ssm_client = None


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


@lru_cache(maxsize=128)
def get_parameter(parameter_name: str, decrypt: bool = True) -> Optional[str]:
    """
    Get a parameter from AWS Parameter Store with caching.

    Args:
        parameter_name: The full name of the parameter to retrieve
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Parameter value or None if not found or unreachable
    """
    try:
        response = get_ssm_client().get_parameter(
            Name=parameter_name, WithDecryption=decrypt
        )
        logger.debug(f"Retrieved parameter {parameter_name} from Parameter Store")
        return response["Parameter"]["Value"]

    except ClientError as e:
        if e.response["Error"]["Code"] == "ParameterNotFound":
            logger.warning(f"Parameter {parameter_name} not found in Parameter Store")
        else:
            logger.error(f"Error retrieving parameter {parameter_name}: {e}")
        return None
    except BotoCoreError as e:
        logger.error(f"Unexpected error retrieving parameter {parameter_name}: {e}")
        return None


class ParameterStoreConfig:
    """
    Loads configuration values from the environment or Parameter Store.

    ``get("cognito/client-id", "COGNITO_CLIENT_ID")`` checks the environment
    variable first and falls back to ``/kanban/cognito/client-id``.
    """

    def __init__(self, parameter_prefix: str = DEFAULT_PREFIX, use_ssm: bool = True):
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self.use_ssm = use_ssm
        self._config_cache: Dict[str, Any] = {}

    def get(self, key: str, env_var: str, default: Any = None) -> Any:
        if key in self._config_cache:
            return self._config_cache[key]

        value = os.getenv(env_var)
        if value is None and self.use_ssm:
            value = get_parameter(f"{self.parameter_prefix}/{key}")
        if value is None:
            value = default

        self._config_cache[key] = value
        return value

    def get_required(self, key: str, env_var: str) -> str:
        """
        Raises:
            ValueError: If the value is neither in the environment nor in
                Parameter Store.
        """
        value = self.get(key, env_var)
        if value is None:
            raise ValueError(
                f"Required setting {env_var} "
                f"({self.parameter_prefix}/{key}) not found"
            )
        return value


class Settings(BaseModel):
    """Runtime settings shared by the API and auth handlers."""

    session_table_name: str = "KanbanSessions"
    cognito_domain: str
    cognito_issuer_url: str
    cognito_client_id: str
    oauth_scope: str = "openid profile email"
    app_url: str = "http://localhost:3000"
    session_ttl_seconds: int = Field(604800, gt=0)
    login_session_ttl_seconds: int = Field(300, gt=0)
    token_refresh_buffer_seconds: int = Field(300, ge=0)
    oauth_http_timeout: float = Field(10.0, gt=0)
    ddb_max_attempts: int = Field(5, ge=1)
    cookie_secure: bool = True

    @field_validator("cognito_domain", "cognito_issuer_url", "app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.rstrip("/")
        if v and "://" not in v:
            v = f"https://{v}"
        return v

    @property
    def redirect_uri(self) -> str:
        return f"{self.app_url}/api/auth/callback"

    @property
    def login_redirect_uri(self) -> str:
        return f"{self.app_url}/dashboard"

    @property
    def logout_redirect_uri(self) -> str:
        return self.app_url

    @property
    def jwks_uri(self) -> str:
        return f"{self.cognito_issuer_url}/.well-known/jwks.json"

    @classmethod
    def load(cls, config: Optional[ParameterStoreConfig] = None) -> "Settings":
        """
        Assemble settings from the environment / Parameter Store.

        Raises:
            ValueError: If a required Cognito setting is missing.
        """
        config = config or ParameterStoreConfig()
        stage = os.getenv("STAGE", "prod").lower()

        values = {
            "session_table_name": config.get(
                "session-table-name", "SESSION_TABLE_NAME", "KanbanSessions"
            ),
            "cognito_domain": config.get_required("cognito/domain", "COGNITO_DOMAIN"),
            "cognito_issuer_url": config.get_required(
                "cognito/issuer-url", "COGNITO_ISSUER_URL"
            ),
            "cognito_client_id": config.get_required(
                "cognito/client-id", "COGNITO_CLIENT_ID"
            ),
            "oauth_scope": config.get(
                "oauth/scope", "OAUTH_SCOPE", "openid profile email"
            ),
            "app_url": config.get("app-url", "APP_URL", "http://localhost:3000"),
            "session_ttl_seconds": config.get(
                "session/ttl-seconds", "SESSION_TTL_SECONDS", 604800
            ),
            "login_session_ttl_seconds": config.get(
                "session/login-ttl-seconds", "LOGIN_SESSION_TTL_SECONDS", 300
            ),
            "token_refresh_buffer_seconds": config.get(
                "session/refresh-buffer-seconds", "TOKEN_REFRESH_BUFFER_SECONDS", 300
            ),
            "oauth_http_timeout": config.get(
                "oauth/http-timeout", "OAUTH_HTTP_TIMEOUT", 10
            ),
            "ddb_max_attempts": config.get(
                "dynamodb/max-attempts", "DDB_MAX_ATTEMPTS", 5
            ),
            "cookie_secure": config.get(
                "session/cookie-secure", "COOKIE_SECURE", stage != "local"
            ),
        }

        settings = cls(**values)
        logger.info(
            "Loaded Kanban configuration",
            extra={
                "session_table_name": settings.session_table_name,
                "cognito_domain": settings.cognito_domain,
                "app_url": settings.app_url,
            },
        )
        return settings


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameter.cache_clear()
    logger.info("Parameter Store cache cleared")
