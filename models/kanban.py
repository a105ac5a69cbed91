"""Request models for the board, list and card endpoints."""

import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class UpdateModel(BaseModel):
    """Partial update: only fields the caller actually sent are applied."""

    def changes(self) -> Dict[str, Any]:
        # An explicit null leaves the stored value unchanged.
        return self.model_dump(exclude_unset=True, exclude_none=True)


class BoardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class BoardUpdate(UpdateModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class ListCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    order: Optional[int] = Field(None, ge=0, strict=True)


class ListUpdate(UpdateModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    order: Optional[int] = Field(None, ge=0, strict=True)


class CardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    order: Optional[int] = Field(None, ge=0, strict=True)


class CardUpdate(UpdateModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[str] = Field(None, max_length=50)
    order: Optional[int] = Field(None, ge=0, strict=True)
    listId: Optional[uuid.UUID] = Field(
        None, description="Destination list when moving the card"
    )

    def changes(self) -> Dict[str, Any]:
        changes = super().changes()
        changes.pop("listId", None)
        return changes
