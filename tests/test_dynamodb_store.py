import pytest

from services.dynamodb import GSI1_INDEX, KanbanTable
from utils.errors import ConflictError, NotFoundError, StorageError

from conftest import FakeTable


def _put(table, pk, sk, **attrs):
    table.put({"PK": pk, "SK": sk, "GSI1PK": pk, "GSI1SK": sk, **attrs})


def test_get_missing_item_returns_none(kanban_table):
    assert kanban_table.get("USER#u1", "BOARD#nope") is None


def test_put_then_get(kanban_table):
    _put(kanban_table, "USER#u1", "BOARD#b1", title="Sprint 1")
    assert kanban_table.get("USER#u1", "BOARD#b1")["title"] == "Sprint 1"


def test_query_without_matches_returns_empty_list(kanban_table):
    assert kanban_table.query("BOARD#empty", "LIST#") == []


def test_query_filters_by_sort_key_prefix(kanban_table):
    _put(kanban_table, "BOARD#b1", "LIST#l1")
    _put(kanban_table, "BOARD#b1", "LIST#l2")
    _put(kanban_table, "BOARD#b1", "OWNER")

    items = kanban_table.query("BOARD#b1", "LIST#")
    assert [item["SK"] for item in items] == ["LIST#l1", "LIST#l2"]
    assert len(kanban_table.query("BOARD#b1")) == 3


def test_query_follows_pagination():
    table = KanbanTable(table=FakeTable(page_size=2))
    for i in range(5):
        _put(table, "LIST#l1", f"CARD#{i}")

    assert len(table.query("LIST#l1", "CARD#")) == 5


def test_query_on_secondary_index(kanban_table):
    _put(kanban_table, "USER#u1", "BOARD#b1")
    items = kanban_table.query("USER#u1", "BOARD#", index_name=GSI1_INDEX)
    assert items[0]["SK"] == "BOARD#b1"


def test_update_returns_full_item_and_keeps_other_fields(kanban_table):
    _put(kanban_table, "USER#u1", "BOARD#b1", title="Old", description="keep")

    updated = kanban_table.update("USER#u1", "BOARD#b1", {"title": "New"})

    assert updated["title"] == "New"
    assert updated["description"] == "keep"


def test_update_missing_item_raises_not_found(kanban_table, fake_table):
    with pytest.raises(NotFoundError):
        kanban_table.update("USER#u1", "BOARD#gone", {"title": "x"})
    assert fake_table.items == {}


def test_update_ignores_key_attributes(kanban_table):
    _put(kanban_table, "USER#u1", "BOARD#b1", title="Old")
    updated = kanban_table.update("USER#u1", "BOARD#b1", {"PK": "USER#u2"})
    assert updated["PK"] == "USER#u1"


def test_delete_is_idempotent(kanban_table):
    _put(kanban_table, "USER#u1", "BOARD#b1")
    kanban_table.delete("USER#u1", "BOARD#b1")
    kanban_table.delete("USER#u1", "BOARD#b1")
    assert kanban_table.get("USER#u1", "BOARD#b1") is None


def test_transaction_condition_failure_raises_not_found(kanban_table, fake_table):
    with pytest.raises(NotFoundError):
        kanban_table.transact_write(
            [
                {"Put": {"Item": {"PK": "LIST#l2", "SK": "CARD#c1"}}},
                {
                    "Delete": {
                        "Key": {"PK": "LIST#l1", "SK": "CARD#c1"},
                        "ConditionExpression": "attribute_exists(PK)",
                    }
                },
            ]
        )
    assert fake_table.items == {}


def test_transaction_adds_table_name(kanban_table, fake_table):
    kanban_table.transact_write([{"Put": {"Item": {"PK": "A", "SK": "B"}}}])
    (sent,) = fake_table.meta.client.transactions
    assert sent[0]["Put"]["TableName"] == "KanbanTable"


def test_transaction_conflict_raises_conflict(kanban_table, fake_table):
    from botocore.exceptions import ClientError

    def conflict(**kwargs):
        raise ClientError(
            {
                "Error": {"Code": "TransactionCanceledException", "Message": "x"},
                "CancellationReasons": [{"Code": "TransactionConflict"}],
            },
            "TransactWriteItems",
        )

    fake_table.meta.client.transact_write_items = conflict
    with pytest.raises(ConflictError):
        kanban_table.transact_write([{"Put": {"Item": {"PK": "A", "SK": "B"}}}])


@pytest.mark.parametrize("operation", ["get", "put", "query", "delete", "update"])
def test_client_errors_surface_as_storage_errors(kanban_table, fake_table, operation):
    fake_table.fail_with = "ProvisionedThroughputExceededException"
    calls = {
        "get": lambda: kanban_table.get("A", "B"),
        "put": lambda: kanban_table.put({"PK": "A", "SK": "B"}),
        "query": lambda: kanban_table.query("A"),
        "delete": lambda: kanban_table.delete("A", "B"),
        "update": lambda: kanban_table.update("A", "B", {"x": 1}),
    }
    with pytest.raises(StorageError):
        calls[operation]()
