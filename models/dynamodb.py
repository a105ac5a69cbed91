"""DynamoDB data models for the Kanban single-table design.

Key layout::

    Board  PK=USER#<userId>   SK=BOARD#<boardId>
    Owner  PK=BOARD#<boardId> SK=OWNER            (board owner marker)
    List   PK=BOARD#<boardId> SK=LIST#<listId>
    Card   PK=LIST#<listId>   SK=CARD#<cardId>

GSI1PK/GSI1SK mirror PK/SK on every entity.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

USER_PREFIX = "USER#"
BOARD_PREFIX = "BOARD#"
LIST_PREFIX = "LIST#"
CARD_PREFIX = "CARD#"
OWNER_SK = "OWNER"


class KeyBuilder:
    """Builds and parses the prefixed key components."""

    @staticmethod
    def user(user_id: str) -> str:
        return f"{USER_PREFIX}{user_id}"

    @staticmethod
    def board(board_id: str) -> str:
        return f"{BOARD_PREFIX}{board_id}"

    @staticmethod
    def list(list_id: str) -> str:
        return f"{LIST_PREFIX}{list_id}"

    @staticmethod
    def card(card_id: str) -> str:
        return f"{CARD_PREFIX}{card_id}"

    @staticmethod
    def strip(key: str, prefix: str) -> str:
        """
        Recover the id from a prefixed key, e.g. ``USER#123`` -> ``123``.

        Raises:
            ValueError: If the key does not carry the prefix or has no id.
        """
        if not key.startswith(prefix) or len(key) == len(prefix):
            raise ValueError(f"Invalid key format: expected {prefix}<id>")
        return key[len(prefix):]


class DynamoDBItem(BaseModel):
    """Base class for all DynamoDB items."""

    PK: str
    SK: str

    def key(self) -> Dict[str, str]:
        return {"PK": self.PK, "SK": self.SK}

    def to_item(self) -> Dict[str, Any]:
        """Attributes to write; unset optional attributes are omitted."""
        return self.model_dump(exclude_none=True)


class KanbanItemBase(DynamoDBItem):
    """Shape shared by boards, lists and cards."""

    GSI1PK: Optional[str] = None
    GSI1SK: Optional[str] = None
    createdAt: str
    updatedAt: str

    @model_validator(mode="after")
    def mirror_gsi_keys(self):
        """GSI1 keys always mirror the primary key."""
        self.GSI1PK = self.PK
        self.GSI1SK = self.SK
        return self


class BoardItem(KanbanItemBase):
    """Represents a board item in DynamoDB."""

    itemType: Literal["BOARD"] = "BOARD"
    title: str
    description: Optional[str] = None

    @property
    def board_id(self) -> str:
        return KeyBuilder.strip(self.SK, BOARD_PREFIX)

    @property
    def user_id(self) -> str:
        return KeyBuilder.strip(self.PK, USER_PREFIX)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.board_id,
            "title": self.title,
            "description": self.description,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }


class ListItem(KanbanItemBase):
    """Represents a list item in DynamoDB."""

    itemType: Literal["LIST"] = "LIST"
    title: str
    order: int = Field(0, ge=0)

    @property
    def list_id(self) -> str:
        return KeyBuilder.strip(self.SK, LIST_PREFIX)

    @property
    def board_id(self) -> str:
        return KeyBuilder.strip(self.PK, BOARD_PREFIX)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.list_id,
            "boardId": self.board_id,
            "title": self.title,
            "order": self.order,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }


class CardItem(KanbanItemBase):
    """Represents a card item in DynamoDB."""

    itemType: Literal["CARD"] = "CARD"
    title: str
    description: Optional[str] = None
    status: str = "open"
    order: int = Field(0, ge=0)

    @property
    def card_id(self) -> str:
        return KeyBuilder.strip(self.SK, CARD_PREFIX)

    @property
    def list_id(self) -> str:
        return KeyBuilder.strip(self.PK, LIST_PREFIX)

    def to_response(self) -> Dict[str, Any]:
        return {
            "id": self.card_id,
            "listId": self.list_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "order": self.order,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
        }


class BoardOwnerItem(DynamoDBItem):
    """Marks which user owns a board so foreign access reads as 403, not 404."""

    SK: str = OWNER_SK
    itemType: Literal["BOARD_OWNER"] = "BOARD_OWNER"
    ownerId: str


KanbanItem = Annotated[
    Union[BoardItem, ListItem, CardItem], Field(discriminator="itemType")
]

_kanban_item_adapter = TypeAdapter(KanbanItem)


def parse_item(item: Dict[str, Any]) -> Union[BoardItem, ListItem, CardItem]:
    """
    Build the model matching an item's ``itemType``.

    Raises:
        pydantic.ValidationError: If ``itemType`` is missing or unknown, or the
            attributes do not fit the selected model.
    """
    return _kanban_item_adapter.validate_python(item)
