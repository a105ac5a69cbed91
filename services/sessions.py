"""
Server-side session storage.

Sessions live in their own DynamoDB table keyed by ``sessionId``. Each item
carries a ``ttl`` attribute (epoch seconds) that DynamoDB TTL uses for
passive expiry; because TTL deletion can lag, reads also treat an elapsed
``ttl`` as a missing session.
"""

import os
import secrets
import threading
import time
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from utils.errors import StorageError
from utils.logging import setup_logger

logger = setup_logger(__name__)

SESSION_ID_BYTES = 18
LOGIN_SESSION_TTL = 300
SESSION_TTL = 604800

_RESERVED = ("sessionId", "ttl")


def new_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


class SessionStore:
    """Create, read, overwrite and destroy session records."""

    def __init__(
        self,
        table: Any = None,
        table_name: Optional[str] = None,
        max_attempts: int = 5,
        clock=time.time,
    ):
        self.table_name = table_name or os.environ.get(
            "SESSION_TABLE_NAME", "KanbanSessions"
        )
        self.max_attempts = max_attempts
        self._table = table
        self._lock = threading.Lock()
        self._clock = clock

    @property
    def table(self):
        if self._table is None:
            with self._lock:
                if self._table is None:
                    resource = boto3.resource(
                        "dynamodb",
                        config=Config(
                            retries={
                                "mode": "standard",
                                "max_attempts": self.max_attempts,
                            }
                        ),
                    )
                    self._table = resource.Table(self.table_name)
        return self._table

    def _now(self) -> int:
        return int(self._clock())

    def _write(self, session_id: str, data: Dict[str, Any], ttl_seconds: int) -> None:
        item = {k: v for k, v in data.items() if k not in _RESERVED}
        item["sessionId"] = session_id
        item["ttl"] = self._now() + ttl_seconds
        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as err:
            logger.error(
                "Failed to write session", extra={"error": type(err).__name__}
            )
            raise StorageError() from err

    def create(self, data: Dict[str, Any], ttl_seconds: int = LOGIN_SESSION_TTL) -> str:
        """
        Store a new session.

        :return: The generated session id.
        """
        session_id = new_session_id()
        self._write(session_id, data, ttl_seconds)
        logger.info("Session created", extra={"ttl_seconds": ttl_seconds})
        return session_id

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        Load a session's data, or None if it is missing or has expired.
        """
        if not session_id:
            return None
        try:
            response = self.table.get_item(Key={"sessionId": session_id})
        except (ClientError, BotoCoreError) as err:
            logger.error("Failed to read session", extra={"error": type(err).__name__})
            raise StorageError() from err

        item = response.get("Item")
        if not item:
            return None
        if int(item.get("ttl", 0)) <= self._now():
            return None
        return {k: v for k, v in item.items() if k not in _RESERVED}

    def update(
        self, session_id: str, data: Dict[str, Any], ttl_seconds: int = SESSION_TTL
    ) -> None:
        """Overwrite a session's data and push its expiry out."""
        self._write(session_id, data, ttl_seconds)

    def destroy(self, session_id: str) -> None:
        if not session_id:
            return
        try:
            self.table.delete_item(Key={"sessionId": session_id})
        except (ClientError, BotoCoreError) as err:
            logger.error(
                "Failed to delete session", extra={"error": type(err).__name__}
            )
            raise StorageError() from err
        logger.info("Session destroyed")
