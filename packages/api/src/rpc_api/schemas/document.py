# This project was developed with assistance from AI tools.
"""Document schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from rpc_db.enums import DocumentStatus


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    needs_list_item_id: int | None = None
    uploaded_by: str
    name: str
    category: str | None = None
    file_url: str | None = None
    content_type: str | None = None
    size_bytes: int | None = None
    status: DocumentStatus
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    uploaded_at: datetime | None = None


class DocumentListResponse(BaseModel):
    data: list[DocumentResponse]
    count: int


class DocumentReviewRequest(BaseModel):
    status: Literal["reviewed", "rejected"]
    notes: str | None = None
