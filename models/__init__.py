"""
Models package for data structures and database entities.

This package contains Pydantic models for request validation, the
DynamoDB item representations of boards, lists and cards, and the
server-side session records.
"""

from .dynamodb import (BoardItem, BoardOwnerItem, CardItem, DynamoDBItem,
                       KanbanItem, KeyBuilder, ListItem, parse_item)
from .kanban import (BoardCreate, BoardUpdate, CardCreate, CardUpdate,
                     ListCreate, ListUpdate)
from .session import ActiveSession, PendingLogin, UserInfo

__all__ = [
    "DynamoDBItem",
    "KanbanItem",
    "KeyBuilder",
    "BoardItem",
    "BoardOwnerItem",
    "ListItem",
    "CardItem",
    "parse_item",
    "BoardCreate",
    "BoardUpdate",
    "ListCreate",
    "ListUpdate",
    "CardCreate",
    "CardUpdate",
    "PendingLogin",
    "ActiveSession",
    "UserInfo",
]
