"""
DynamoDB service for the Kanban board.

This module wraps the single Kanban table behind a small keyed-item API
(get / put / query / update / delete plus transactional writes). Transient
failures are retried by botocore with exponential backoff; anything that
still fails surfaces as ``StorageError``.
"""

import os
import threading
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from utils.errors import ConflictError, NotFoundError, StorageError
from utils.logging import setup_logger

logger = setup_logger(__name__)

GSI1_INDEX = "GSI1"
DEFAULT_MAX_ATTEMPTS = 5

# Attribute names that can never be changed through ``update``
_KEY_ATTRIBUTES = frozenset({"PK", "SK", "GSI1PK", "GSI1SK"})


def _boto_config(max_attempts: int) -> Config:
    return Config(retries={"mode": "standard", "max_attempts": max_attempts})


class KanbanTable:
    """
    Encapsulates operations on the Amazon DynamoDB Kanban table.

    The boto3 ``Table`` can be passed in (tests, custom sessions); otherwise
    it is created on first use from ``TABLE_NAME`` so importing a handler
    never touches AWS.
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        table: Any = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """
        :param table_name: Name of the DynamoDB table.
        :param table: Pre-built boto3 Table (or compatible) object.
        :param max_attempts: Total attempts per call, including retries.
        """
        self.table_name = table_name or os.environ.get("TABLE_NAME", "KanbanTable")
        self.max_attempts = max_attempts
        self._table = table
        self._lock = threading.Lock()

    @property
    def table(self):
        if self._table is None:
            with self._lock:
                if self._table is None:
                    resource = boto3.resource(
                        "dynamodb", config=_boto_config(self.max_attempts)
                    )
                    self._table = resource.Table(self.table_name)
        return self._table

    def _storage_error(self, operation: str, err: Exception, **context) -> StorageError:
        if isinstance(err, ClientError):
            code = err.response["Error"]["Code"]
            message = err.response["Error"]["Message"]
        else:
            code, message = type(err).__name__, str(err)
        logger.error(
            "DynamoDB %s failed on table %s. Error: %s: %s",
            operation,
            self.table_name,
            code,
            message,
            extra=context,
        )
        return StorageError()

    def get(self, pk: str, sk: str) -> Optional[Dict[str, Any]]:
        """
        Gets a single item.

        :return: The item if found, None otherwise.
        """
        try:
            response = self.table.get_item(Key={"PK": pk, "SK": sk})
        except (ClientError, BotoCoreError) as err:
            raise self._storage_error("get", err, pk=pk, sk=sk) from err
        return response.get("Item")

    def put(self, item: Dict[str, Any]) -> None:
        """Writes an item, replacing any item with the same key."""
        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as err:
            raise self._storage_error(
                "put", err, pk=item.get("PK"), sk=item.get("SK")
            ) from err

    def query(
        self,
        pk: str,
        sk_prefix: Optional[str] = None,
        index_name: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Lists every item in a partition, optionally limited to sort keys
        beginning with ``sk_prefix``. Follows pagination to the end.

        :param index_name: Query ``GSI1`` instead of the base table.
        :return: The matching items; empty when nothing matches.
        """
        pk_name, sk_name = ("GSI1PK", "GSI1SK") if index_name else ("PK", "SK")
        expression = f"{pk_name} = :pk"
        values: Dict[str, Any] = {":pk": pk}
        if sk_prefix:
            expression += f" AND begins_with({sk_name}, :sk_prefix)"
            values[":sk_prefix"] = sk_prefix

        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": expression,
            "ExpressionAttributeValues": values,
        }
        if index_name:
            kwargs["IndexName"] = index_name

        items: List[Dict[str, Any]] = []
        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as err:
            raise self._storage_error(
                "query", err, pk=pk, sk_prefix=sk_prefix
            ) from err
        return items

    def update(self, pk: str, sk: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Applies a sparse set of attribute assignments to an existing item.

        :return: The full item after the update.
        :raises NotFoundError: If no item exists at the key.
        """
        changes = {k: v for k, v in changes.items() if k not in _KEY_ATTRIBUTES}
        if not changes:
            item = self.get(pk, sk)
            if item is None:
                raise NotFoundError()
            return item

        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        for i, (attr, value) in enumerate(sorted(changes.items())):
            names[f"#f{i}"] = attr
            values[f":v{i}"] = value
            assignments.append(f"#f{i} = :v{i}")

        try:
            response = self.table.update_item(
                Key={"PK": pk, "SK": sk},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(PK)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as err:
            if err.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise NotFoundError() from err
            raise self._storage_error("update", err, pk=pk, sk=sk) from err
        except BotoCoreError as err:
            raise self._storage_error("update", err, pk=pk, sk=sk) from err
        return response["Attributes"]

    def delete(self, pk: str, sk: str) -> None:
        """Deletes an item. Deleting a missing item is not an error."""
        try:
            self.table.delete_item(Key={"PK": pk, "SK": sk})
        except (ClientError, BotoCoreError) as err:
            raise self._storage_error("delete", err, pk=pk, sk=sk) from err

    def transact_write(self, operations: Sequence[Dict[str, Any]]) -> None:
        """
        Runs several writes as one all-or-nothing transaction.

        Each operation is ``{"Put": {...}}``, ``{"Delete": {...}}`` or
        ``{"Update": {...}}`` without ``TableName``; attribute values use
        plain Python types.

        :raises NotFoundError: If a condition on an existing item failed.
        :raises ConflictError: If the transaction collided with another one.
        """
        transact_items = []
        for operation in operations:
            ((kind, params),) = operation.items()
            transact_items.append({kind: {"TableName": self.table_name, **params}})

        try:
            self.table.meta.client.transact_write_items(TransactItems=transact_items)
        except ClientError as err:
            error = err.response["Error"]
            if error["Code"] == "TransactionCanceledException":
                reasons = [
                    r.get("Code")
                    for r in err.response.get("CancellationReasons", [])
                ]
                logger.warning(
                    "Transaction cancelled",
                    extra={"cancellation_reasons": reasons},
                )
                if "ConditionalCheckFailed" in reasons:
                    raise NotFoundError() from err
                raise ConflictError() from err
            raise self._storage_error("transact_write", err) from err
        except BotoCoreError as err:
            raise self._storage_error("transact_write", err) from err
