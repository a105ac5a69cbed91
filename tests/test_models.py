import uuid

import pydantic
import pytest

from models.dynamodb import (BoardItem, BoardOwnerItem, CardItem, KeyBuilder,
                             ListItem, parse_item)
from models.kanban import (BoardCreate, BoardUpdate, CardUpdate, ListCreate,
                           ListUpdate)
from models.session import ActiveSession, UserInfo

NOW = "2026-01-01T00:00:00+00:00"


def test_key_builder_prefixes():
    assert KeyBuilder.user("u1") == "USER#u1"
    assert KeyBuilder.board("b1") == "BOARD#b1"
    assert KeyBuilder.list("l1") == "LIST#l1"
    assert KeyBuilder.card("c1") == "CARD#c1"


def test_key_builder_strip_rejects_wrong_prefix():
    assert KeyBuilder.strip("BOARD#b1", "BOARD#") == "b1"
    with pytest.raises(ValueError):
        KeyBuilder.strip("LIST#l1", "BOARD#")
    with pytest.raises(ValueError):
        KeyBuilder.strip("BOARD#", "BOARD#")


def test_gsi_keys_mirror_primary_key():
    board = BoardItem(
        PK="USER#u1", SK="BOARD#b1", title="Sprint 1", createdAt=NOW, updatedAt=NOW
    )
    item = board.to_item()

    assert item["GSI1PK"] == "USER#u1"
    assert item["GSI1SK"] == "BOARD#b1"
    assert item["itemType"] == "BOARD"
    assert "description" not in item


def test_response_shapes_use_bare_ids():
    card = CardItem(
        PK="LIST#l1", SK="CARD#c1", title="Task", createdAt=NOW, updatedAt=NOW
    )
    response = card.to_response()

    assert response["id"] == "c1"
    assert response["listId"] == "l1"
    assert response["status"] == "open"
    assert response["order"] == 0

    kanban_list = ListItem(
        PK="BOARD#b1", SK="LIST#l1", title="Todo", order=2, createdAt=NOW, updatedAt=NOW
    )
    assert kanban_list.to_response()["boardId"] == "b1"


def test_parse_item_uses_item_type_discriminator():
    item = {
        "PK": "BOARD#b1",
        "SK": "LIST#l1",
        "itemType": "LIST",
        "title": "Todo",
        "order": 1,
        "createdAt": NOW,
        "updatedAt": NOW,
    }
    assert isinstance(parse_item(item), ListItem)

    with pytest.raises(pydantic.ValidationError):
        parse_item({**item, "itemType": "BOARD_OWNER"})


def test_owner_marker_defaults_sort_key():
    owner = BoardOwnerItem(PK="BOARD#b1", ownerId="u1")
    assert owner.key() == {"PK": "BOARD#b1", "SK": "OWNER"}


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"title": ""},
        {"title": "x" * 101},
        {"title": "ok", "description": "d" * 501},
    ],
)
def test_board_create_rejects_bad_input(payload):
    with pytest.raises(pydantic.ValidationError):
        BoardCreate(**payload)


def test_list_order_must_be_non_negative_integer():
    with pytest.raises(pydantic.ValidationError):
        ListCreate(title="Todo", order=-1)
    with pytest.raises(pydantic.ValidationError):
        ListCreate(title="Todo", order="3")
    assert ListCreate(title="Todo").order is None


def test_update_changes_only_contain_sent_fields():
    assert BoardUpdate(title="New").changes() == {"title": "New"}
    assert ListUpdate(order=0).changes() == {"order": 0}
    assert BoardUpdate(title="New", description=None).changes() == {"title": "New"}


def test_card_update_keeps_list_id_out_of_changes():
    target = uuid.uuid4()
    update = CardUpdate(status="done", listId=str(target))

    assert update.listId == target
    assert update.changes() == {"status": "done"}


def test_active_session_expiry_window():
    session = ActiveSession(
        accessToken="a",
        idToken="i",
        tokenExpiry=1000,
        userInfo=UserInfo.from_claims({"sub": "u1", "email": "u1@example.com"}),
    )
    assert session.expires_within(300, now=800)
    assert not session.expires_within(300, now=600)
