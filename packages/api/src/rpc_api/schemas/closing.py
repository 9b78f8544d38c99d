# This project was developed with assistance from AI tools.
"""Closing checklist schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ChecklistItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class ChecklistItemUpdate(BaseModel):
    """Borrower edit. Omitted fields are left unchanged."""

    completed: bool | None = None
    notes: str | None = Field(default=None, max_length=2000)


class ChecklistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    name: str
    description: str | None = None
    completed: bool = False
    completed_by: str | None = None
    completed_at: datetime | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime


class ClosingChecklistResponse(BaseModel):
    loan_id: int
    checklist: list[ChecklistItemResponse]
    completed_count: int
    total_count: int
