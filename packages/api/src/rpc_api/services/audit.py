# This project was developed with assistance from AI tools.
"""Loan audit trail.

Ops overrides, status overrides, ownership transfers, confirmed fee
payments and closing checklist updates each append one row. Rows form a
SHA-256 hash chain: ``prev_hash`` is the digest of the predecessor's id,
timestamp, event type, loan and payload, so editing a row or moving it
to another loan breaks the following link. On PostgreSQL a
transaction-scoped advisory lock serializes writers.
"""

import enum
import hashlib
import json
import logging

from rpc_db import AuditEvent, LoanRequest
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

GENESIS = "genesis"

# Fixed advisory lock key for audit trail serialization.
AUDIT_LOCK_KEY = 910_001


class AuditEventType(str, enum.Enum):
    OPS_OVERRIDE = "ops_override"
    STATUS_OVERRIDE = "status_override"
    OWNERSHIP_TRANSFER = "ownership_transfer"
    PAYMENT_CONFIRMED = "payment_confirmed"
    CHECKLIST_UPDATED = "closing_checklist_updated"


def chain_hash(event: AuditEvent) -> str:
    payload = json.dumps(
        [event.id, str(event.timestamp), event.event_type, event.loan_id, event.event_data],
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode()).hexdigest()


async def record_loan_event(
    session: AsyncSession,
    loan: LoanRequest,
    event_type: AuditEventType,
    *,
    user_id: str | None = None,
    user_role: str | None = None,
    details: dict | None = None,
) -> AuditEvent:
    """Append an audit row for ``loan`` inside the caller's transaction.

    ``details`` become the event payload together with the loan number.
    The row commits or rolls back with the change it describes.
    """
    if session.get_bind().dialect.name == "postgresql":
        await session.execute(text(f"SELECT pg_advisory_xact_lock({AUDIT_LOCK_KEY})"))

    prev_event = (
        await session.execute(select(AuditEvent).order_by(AuditEvent.id.desc()).limit(1))
    ).scalar_one_or_none()

    event = AuditEvent(
        event_type=event_type.value,
        user_id=user_id,
        user_role=user_role,
        loan_id=loan.id,
        event_data={"loan_number": loan.loan_number, **(details or {})},
        prev_hash=GENESIS if prev_event is None else chain_hash(prev_event),
    )
    session.add(event)
    await session.flush()
    # Re-read so the hashed timestamp matches what later readers will see
    await session.refresh(event, attribute_names=["timestamp"])
    return event


async def verify_audit_chain(session: AsyncSession) -> dict:
    """Recompute every link in id order.

    Returns ``{"status": "OK", "events_checked": N}`` or, at the first
    mismatch, ``{"status": "TAMPERED", "first_break_id": id, "events_checked": N}``.
    """
    result = await session.execute(select(AuditEvent).order_by(AuditEvent.id.asc()))
    expected = GENESIS
    checked = 0
    for event in result.scalars():
        checked += 1
        if event.prev_hash != expected:
            logger.error("Audit chain break at event %s (loan %s)", event.id, event.loan_id)
            return {"status": "TAMPERED", "first_break_id": event.id, "events_checked": checked}
        expected = chain_hash(event)
    return {"status": "OK", "events_checked": checked}


async def get_loan_audit_events(session: AsyncSession, loan_id: int) -> list[AuditEvent]:
    """Audit events for one loan, oldest first."""
    result = await session.execute(
        select(AuditEvent).where(AuditEvent.loan_id == loan_id).order_by(AuditEvent.id.asc())
    )
    return list(result.scalars().all())
