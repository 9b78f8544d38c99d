# This project was developed with assistance from AI tools.
"""Needs-list reconciliation schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

FolderColor = Literal["tan", "blue", "red"]


class NeedsListItemState(BaseModel):
    """Fulfillment state of a single required-document slot."""

    id: int
    name: str
    category: str | None = None
    description: str | None = None
    loan_type: str | None = None
    is_required: bool = True
    document_count: int = 0
    reviewed_count: int = 0
    fulfilled: bool = False
    last_upload: datetime | None = None
    color: FolderColor = "tan"


class FolderState(BaseModel):
    """Read-model aggregate of all items sharing a category."""

    name: str
    items_count: int
    documents_count: int
    last_upload: datetime | None = None
    color: FolderColor = "tan"


class ReconciliationResult(BaseModel):
    loan_id: int
    items: list[NeedsListItemState]
    folders: list[FolderState]
    verdict: bool
    missing_items: list[str] = Field(default_factory=list)
    total_required: int = 0


class NeedsListItemCreate(BaseModel):
    document_type: str = Field(min_length=1, max_length=255)
    folder_name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    required: bool = True


class NeedsListItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    name: str
    category: str | None = None
    description: str | None = None
    loan_type: str | None = None
    is_required: bool | None = True


class CleanupResult(BaseModel):
    removed: int
    remaining: int
