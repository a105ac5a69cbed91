import re

import pytest

from services.sessions import SessionStore
from utils.errors import StorageError


def test_create_returns_hex_id_and_stores_ttl(sessions, session_table, clock):
    session_id = sessions.create({"state": "abc"}, ttl_seconds=300)

    assert re.fullmatch(r"[0-9a-f]{36}", session_id)
    stored = session_table.items[(session_id,)]
    assert stored["ttl"] == clock.now + 300
    assert sessions.get(session_id) == {"state": "abc"}


def test_session_ids_are_unique(sessions):
    ids = {sessions.create({}) for _ in range(20)}
    assert len(ids) == 20


def test_expired_session_reads_as_missing(sessions, clock):
    session_id = sessions.create({"state": "abc"}, ttl_seconds=300)
    clock.advance(300)
    assert sessions.get(session_id) is None


def test_update_overwrites_data_and_extends_ttl(sessions, session_table, clock):
    session_id = sessions.create({"state": "abc", "verifier": "v"}, ttl_seconds=300)

    sessions.update(session_id, {"isLoggedIn": True}, ttl_seconds=604800)
    clock.advance(3600)

    assert sessions.get(session_id) == {"isLoggedIn": True}
    assert session_table.items[(session_id,)]["ttl"] == clock.now - 3600 + 604800


def test_reserved_attributes_cannot_be_overridden(sessions):
    session_id = sessions.create({"sessionId": "forged", "ttl": 0, "x": 1})
    assert sessions.get(session_id) == {"x": 1}


def test_destroy_and_missing_ids(sessions):
    session_id = sessions.create({"x": 1})
    sessions.destroy(session_id)

    assert sessions.get(session_id) is None
    assert sessions.get("") is None
    assert sessions.get(None) is None
    sessions.destroy(session_id)


def test_storage_failures_raise_storage_error(sessions, session_table):
    session_table.fail_with = "InternalServerError"
    with pytest.raises(StorageError):
        sessions.get("abc")
    with pytest.raises(StorageError):
        sessions.create({})


def test_table_name_from_environment(monkeypatch):
    monkeypatch.setenv("SESSION_TABLE_NAME", "Sessions-dev")
    assert SessionStore().table_name == "Sessions-dev"
