# This project was developed with assistance from AI tools.
"""Notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int | None = None
    type: str
    title: str
    message: str
    read: bool
    created_at: datetime | None = None


class NotificationListResponse(BaseModel):
    data: list[NotificationResponse]
    unread: int
