import copy
import json
import re

import pytest
from botocore.exceptions import ClientError

from services.auth_flow import AuthFlow
from services.dynamodb import KanbanTable
from services.kanban import KanbanService
from services.parameter_store import Settings
from services.sessions import SessionStore

_ASSIGNMENT = re.compile(r"(#\w+)\s*=\s*(:\w+)")


def _client_error(code, operation, **extra):
    response = {"Error": {"Code": code, "Message": code}}
    response.update(extra)
    return ClientError(response, operation)


class FakeClient:
    def __init__(self, table):
        self._table = table
        self.transactions = []

    def transact_write_items(self, *, TransactItems):
        self.transactions.append(TransactItems)
        reasons = []
        for entry in TransactItems:
            ((kind, params),) = entry.items()
            key = params.get("Key") or self._table._key_of(params["Item"])
            exists = self._table._key_tuple(key) in self._table.items
            condition = params.get("ConditionExpression")
            failed = (condition == "attribute_not_exists(PK)" and exists) or (
                condition == "attribute_exists(PK)" and not exists
            )
            reasons.append({"Code": "ConditionalCheckFailed" if failed else "None"})

        if any(r["Code"] != "None" for r in reasons):
            raise _client_error(
                "TransactionCanceledException",
                "TransactWriteItems",
                CancellationReasons=reasons,
            )

        for entry in TransactItems:
            ((kind, params),) = entry.items()
            if kind == "Put":
                self._table.put_item(Item=params["Item"])
            elif kind == "Delete":
                self._table.delete_item(Key=params["Key"])
            else:
                raise NotImplementedError(kind)


class FakeMeta:
    def __init__(self, table):
        self.client = FakeClient(table)


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB ``Table``."""

    def __init__(self, key_names=("PK", "SK"), page_size=None):
        self.key_names = key_names
        self.page_size = page_size
        self.items = {}
        self.meta = FakeMeta(self)
        self.fail_with = None

    def _key_of(self, item):
        return {name: item[name] for name in self.key_names}

    def _key_tuple(self, key):
        return tuple(key[name] for name in self.key_names)

    def _maybe_fail(self, operation):
        if self.fail_with:
            raise _client_error(self.fail_with, operation)

    def get_item(self, *, Key):
        self._maybe_fail("GetItem")
        item = self.items.get(self._key_tuple(Key))
        return {"Item": copy.deepcopy(item)} if item else {}

    def put_item(self, *, Item):
        self._maybe_fail("PutItem")
        self.items[self._key_tuple(Item)] = copy.deepcopy(Item)
        return {}

    def delete_item(self, *, Key):
        self._maybe_fail("DeleteItem")
        self.items.pop(self._key_tuple(Key), None)
        return {}

    def update_item(
        self,
        *,
        Key,
        UpdateExpression,
        ExpressionAttributeNames,
        ExpressionAttributeValues,
        ConditionExpression=None,
        ReturnValues=None,
    ):
        self._maybe_fail("UpdateItem")
        existing = self.items.get(self._key_tuple(Key))
        if existing is None:
            if ConditionExpression == "attribute_exists(PK)":
                raise _client_error("ConditionalCheckFailedException", "UpdateItem")
            existing = dict(Key)
            self.items[self._key_tuple(Key)] = existing

        for name, value in _ASSIGNMENT.findall(UpdateExpression):
            existing[ExpressionAttributeNames[name]] = copy.deepcopy(
                ExpressionAttributeValues[value]
            )
        return {"Attributes": copy.deepcopy(existing)}

    def query(
        self,
        *,
        KeyConditionExpression,
        ExpressionAttributeValues,
        IndexName=None,
        ExclusiveStartKey=None,
    ):
        self._maybe_fail("Query")
        pk_name, sk_name = ("GSI1PK", "GSI1SK") if IndexName else ("PK", "SK")
        pk = ExpressionAttributeValues[":pk"]
        prefix = ExpressionAttributeValues.get(":sk_prefix", "")

        matches = sorted(
            (
                item
                for item in self.items.values()
                if item.get(pk_name) == pk
                and str(item.get(sk_name, "")).startswith(prefix)
            ),
            key=lambda item: item[sk_name],
        )
        if ExclusiveStartKey:
            matches = [m for m in matches if m[sk_name] > ExclusiveStartKey[sk_name]]

        response = {}
        if self.page_size and len(matches) > self.page_size:
            matches = matches[: self.page_size]
            last = matches[-1]
            response["LastEvaluatedKey"] = {
                "PK": last["PK"],
                "SK": last["SK"],
                pk_name: last[pk_name],
                sk_name: last[sk_name],
            }
        response["Items"] = [copy.deepcopy(m) for m in matches]
        return response


class FakeClock:
    def __init__(self, now=1_700_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeOAuth:
    """Records calls; token responses are configured per test."""

    def __init__(self):
        self.exchange_calls = []
        self.refresh_calls = []
        self.tokens = {
            "access_token": "access-1",
            "id_token": "id-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
        }
        self.claims = {"sub": "user-1", "email": "user@example.com", "given_name": "Ada"}
        self.refresh_result = {"access_token": "access-2", "expires_in": 3600}
        self.verify_error = None
        self.exchange_error = None
        self.verified_nonces = []

    def authorization_url(self, challenge, state, nonce):
        return f"https://auth.example.com/oauth2/authorize?state={state}"

    def exchange_code(self, code, verifier):
        self.exchange_calls.append((code, verifier))
        if self.exchange_error:
            raise self.exchange_error
        return dict(self.tokens)

    def verify_id_token(self, id_token, nonce):
        self.verified_nonces.append(nonce)
        if self.verify_error:
            raise self.verify_error
        return dict(self.claims)

    def refresh(self, refresh_token):
        self.refresh_calls.append(refresh_token)
        if isinstance(self.refresh_result, Exception):
            raise self.refresh_result
        return dict(self.refresh_result)

    def end_session_url(self):
        return "https://auth.example.com/logout?client_id=client-123"


@pytest.fixture
def fake_table():
    return FakeTable()


@pytest.fixture
def kanban_table(fake_table):
    return KanbanTable(table_name="KanbanTable", table=fake_table)


@pytest.fixture
def service(kanban_table):
    return KanbanService(kanban_table)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_table():
    return FakeTable(key_names=("sessionId",))


@pytest.fixture
def sessions(session_table, clock):
    return SessionStore(table=session_table, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        cognito_domain="https://kanban.auth.us-east-1.amazoncognito.com",
        cognito_issuer_url="https://cognito-idp.us-east-1.amazonaws.com/us-east-1_TEST",
        cognito_client_id="client-123",
        app_url="https://app.example.com",
        cookie_secure=True,
    )


@pytest.fixture
def api_event():
    """Builder for API Gateway HTTP API (payload 2.0) events."""

    def build(method, path="/", path_params=None, body=None, user="u1", **extra):
        event = {
            "version": "2.0",
            "rawPath": path,
            "headers": {"content-type": "application/json"},
            "pathParameters": path_params,
            "body": json.dumps(body) if isinstance(body, (dict, list)) else body,
            "isBase64Encoded": False,
            "requestContext": {
                "requestId": "req-1",
                "http": {"method": method, "path": path, "sourceIp": "127.0.0.1"},
            },
        }
        if user:
            event["requestContext"]["authorizer"] = {
                "jwt": {"claims": {"sub": user, "email": f"{user}@example.com"}}
            }
        event.update(extra)
        return event

    return build


@pytest.fixture
def oauth():
    return FakeOAuth()


@pytest.fixture
def flow(sessions, oauth, settings, clock):
    return AuthFlow(sessions, oauth, settings, clock=clock)
