"""
Board, list and card operations scoped to the authenticated user.

Every nested resource is reached through its ownership chain: the board must
live in the caller's ``USER#`` partition, the list under that board and the
card under that list. ``KanbanService`` is HTTP-agnostic; handlers translate
its return values and exceptions into responses.
"""

import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from models.dynamodb import (BOARD_PREFIX, CARD_PREFIX, LIST_PREFIX, OWNER_SK,
                             BoardItem, BoardOwnerItem, CardItem, KeyBuilder,
                             ListItem)
from models.kanban import (BoardCreate, BoardUpdate, CardCreate, CardUpdate,
                           ListCreate, ListUpdate)
from services.dynamodb import DEFAULT_MAX_ATTEMPTS, KanbanTable
from utils.errors import AccessDeniedError, NotFoundError
from utils.logging import setup_logger

logger = setup_logger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


def _by_order(items):
    return sorted(items, key=lambda item: (item.order, item.createdAt))


class KanbanService:
    """CRUD over boards, lists and cards with ownership checks."""

    def __init__(self, table: KanbanTable):
        self.table = table

    @classmethod
    def from_environment(cls) -> "KanbanService":
        """Build against ``TABLE_NAME``; no AWS call happens until first use."""
        max_attempts = int(os.getenv("DDB_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
        return cls(KanbanTable(max_attempts=max_attempts))

    # -- ownership chain -------------------------------------------------

    def _get_board(self, user_id: str, board_id: str) -> BoardItem:
        """
        Load a board the caller owns.

        Raises:
            AccessDeniedError: The board exists but belongs to someone else.
            NotFoundError: No such board.
        """
        item = self.table.get(KeyBuilder.user(user_id), KeyBuilder.board(board_id))
        if item:
            return BoardItem.model_validate(item)

        owner = self.table.get(KeyBuilder.board(board_id), OWNER_SK)
        if owner:
            logger.warning(
                "Board access denied",
                extra={"user_id": user_id, "board_id": board_id},
            )
            raise AccessDeniedError()
        raise NotFoundError("Board not found")

    def verify_board_access(self, user_id: str, board_id: str) -> BoardItem:
        return self._get_board(user_id, board_id)

    def verify_list_exists(self, board_id: str, list_id: str) -> ListItem:
        item = self.table.get(KeyBuilder.board(board_id), KeyBuilder.list(list_id))
        if not item:
            raise NotFoundError("List not found")
        return ListItem.model_validate(item)

    def _next_order(self, parent_key: str, prefix: str) -> int:
        # Sibling count, not max+1: duplicates are possible after deletes.
        return len(self.table.query(parent_key, prefix))

    # -- boards ------------------------------------------------------------

    def list_boards(self, user_id: str) -> List[Dict[str, Any]]:
        items = self.table.query(KeyBuilder.user(user_id), BOARD_PREFIX)
        return [BoardItem.model_validate(item).to_response() for item in items]

    def get_board(self, user_id: str, board_id: str) -> Dict[str, Any]:
        return self._get_board(user_id, board_id).to_response()

    def create_board(self, user_id: str, data: BoardCreate) -> Dict[str, Any]:
        board_id = new_id()
        now = utc_now()
        board = BoardItem(
            PK=KeyBuilder.user(user_id),
            SK=KeyBuilder.board(board_id),
            title=data.title,
            description=data.description,
            createdAt=now,
            updatedAt=now,
        )
        owner = BoardOwnerItem(PK=KeyBuilder.board(board_id), ownerId=user_id)

        self.table.transact_write(
            [
                {
                    "Put": {
                        "Item": board.to_item(),
                        "ConditionExpression": "attribute_not_exists(PK)",
                    }
                },
                {"Put": {"Item": owner.to_item()}},
            ]
        )
        logger.info("Board created", extra={"user_id": user_id, "board_id": board_id})
        return board.to_response()

    def update_board(
        self, user_id: str, board_id: str, data: BoardUpdate
    ) -> Dict[str, Any]:
        board = self._get_board(user_id, board_id)
        changes = {**data.changes(), "updatedAt": utc_now()}
        updated = self.table.update(board.PK, board.SK, changes)
        return BoardItem.model_validate(updated).to_response()

    def delete_board(self, user_id: str, board_id: str) -> Dict[str, Any]:
        board = self._get_board(user_id, board_id)

        orphaned = len(self.table.query(KeyBuilder.board(board_id), LIST_PREFIX))
        if orphaned:
            logger.warning(
                "Deleting board leaves orphaned lists",
                extra={"board_id": board_id, "orphaned_lists": orphaned},
            )

        self.table.transact_write(
            [
                {"Delete": {"Key": board.key()}},
                {"Delete": {"Key": {"PK": KeyBuilder.board(board_id), "SK": OWNER_SK}}},
            ]
        )
        return {"deleted": True}

    # -- lists -------------------------------------------------------------

    def list_lists(self, user_id: str, board_id: str) -> List[Dict[str, Any]]:
        self._get_board(user_id, board_id)
        items = self.table.query(KeyBuilder.board(board_id), LIST_PREFIX)
        lists = [ListItem.model_validate(item) for item in items]
        return [item.to_response() for item in _by_order(lists)]

    def create_list(
        self, user_id: str, board_id: str, data: ListCreate
    ) -> Dict[str, Any]:
        self._get_board(user_id, board_id)
        board_key = KeyBuilder.board(board_id)
        order = data.order
        if order is None:
            order = self._next_order(board_key, LIST_PREFIX)

        now = utc_now()
        kanban_list = ListItem(
            PK=board_key,
            SK=KeyBuilder.list(new_id()),
            title=data.title,
            order=order,
            createdAt=now,
            updatedAt=now,
        )
        self.table.put(kanban_list.to_item())
        return kanban_list.to_response()

    def update_list(
        self, user_id: str, board_id: str, list_id: str, data: ListUpdate
    ) -> Dict[str, Any]:
        self._get_board(user_id, board_id)
        existing = self.verify_list_exists(board_id, list_id)
        changes = {**data.changes(), "updatedAt": utc_now()}
        updated = self.table.update(existing.PK, existing.SK, changes)
        return ListItem.model_validate(updated).to_response()

    def delete_list(self, user_id: str, board_id: str, list_id: str) -> Dict[str, Any]:
        self._get_board(user_id, board_id)
        existing = self.verify_list_exists(board_id, list_id)

        orphaned = len(self.table.query(KeyBuilder.list(list_id), CARD_PREFIX))
        if orphaned:
            logger.warning(
                "Deleting list leaves orphaned cards",
                extra={"list_id": list_id, "orphaned_cards": orphaned},
            )

        self.table.delete(existing.PK, existing.SK)
        return {"deleted": True}

    # -- cards -------------------------------------------------------------

    def _card_chain(self, user_id: str, board_id: str, list_id: str) -> ListItem:
        self._get_board(user_id, board_id)
        return self.verify_list_exists(board_id, list_id)

    def _get_card(self, list_id: str, card_id: str) -> CardItem:
        item = self.table.get(KeyBuilder.list(list_id), KeyBuilder.card(card_id))
        if not item:
            raise NotFoundError("Card not found")
        return CardItem.model_validate(item)

    def list_cards(
        self, user_id: str, board_id: str, list_id: str
    ) -> List[Dict[str, Any]]:
        self._card_chain(user_id, board_id, list_id)
        items = self.table.query(KeyBuilder.list(list_id), CARD_PREFIX)
        cards = [CardItem.model_validate(item) for item in items]
        return [card.to_response() for card in _by_order(cards)]

    def create_card(
        self, user_id: str, board_id: str, list_id: str, data: CardCreate
    ) -> Dict[str, Any]:
        self._card_chain(user_id, board_id, list_id)
        list_key = KeyBuilder.list(list_id)
        order = data.order
        if order is None:
            order = self._next_order(list_key, CARD_PREFIX)

        now = utc_now()
        card = CardItem(
            PK=list_key,
            SK=KeyBuilder.card(new_id()),
            title=data.title,
            description=data.description,
            order=order,
            createdAt=now,
            updatedAt=now,
        )
        self.table.put(card.to_item())
        return card.to_response()

    def update_card(
        self,
        user_id: str,
        board_id: str,
        list_id: str,
        card_id: str,
        data: CardUpdate,
    ) -> Dict[str, Any]:
        self._card_chain(user_id, board_id, list_id)
        existing = self._get_card(list_id, card_id)

        target_list = str(data.listId) if data.listId else None
        if target_list and target_list != list_id:
            return self.move_card(board_id, existing, target_list, data)

        changes = {**data.changes(), "updatedAt": utc_now()}
        updated = self.table.update(existing.PK, existing.SK, changes)
        return CardItem.model_validate(updated).to_response()

    def move_card(
        self,
        board_id: str,
        card: CardItem,
        target_list_id: str,
        data: Optional[CardUpdate] = None,
    ) -> Dict[str, Any]:
        """
        Move a card to another list of the same board in one transaction.

        The new record is written under the destination list and the old one
        deleted atomically; either both happen or neither does.
        """
        self.verify_list_exists(board_id, target_list_id)
        target_key = KeyBuilder.list(target_list_id)

        changes = data.changes() if data else {}
        if "order" not in changes:
            changes["order"] = self._next_order(target_key, CARD_PREFIX)

        moved = card.model_copy(
            update={**changes, "PK": target_key, "updatedAt": utc_now()}
        )
        moved = CardItem.model_validate(moved.model_dump())

        self.table.transact_write(
            [
                {
                    "Put": {
                        "Item": moved.to_item(),
                        "ConditionExpression": "attribute_not_exists(PK)",
                    }
                },
                {
                    "Delete": {
                        "Key": card.key(),
                        "ConditionExpression": "attribute_exists(PK)",
                    }
                },
            ]
        )
        logger.info(
            "Card moved",
            extra={
                "card_id": card.card_id,
                "from_list": card.list_id,
                "to_list": target_list_id,
            },
        )
        return moved.to_response()

    def delete_card(
        self, user_id: str, board_id: str, list_id: str, card_id: str
    ) -> Dict[str, Any]:
        self._card_chain(user_id, board_id, list_id)
        existing = self._get_card(list_id, card_id)
        self.table.delete(existing.PK, existing.SK)
        return {"deleted": True}
