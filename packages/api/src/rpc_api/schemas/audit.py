# This project was developed with assistance from AI tools.
"""Audit trail schemas."""

from datetime import datetime

from pydantic import BaseModel


class AuditEventItem(BaseModel):
    id: int
    timestamp: datetime
    event_type: str
    user_id: str | None = None
    user_role: str | None = None
    loan_id: int | None = None
    event_data: dict | None = None


class AuditChainVerifyResponse(BaseModel):
    """Result of walking the audit hash chain."""

    status: str
    events_checked: int
    first_break_id: int | None = None
