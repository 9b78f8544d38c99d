# This project was developed with assistance from AI tools.
"""Closing checklist.

Operations add pre-closing tasks to a loan; the borrower ticks them off
with optional notes. Completion can be undone, which clears the
completer and timestamp.
"""

import logging
from datetime import UTC, datetime

from rpc_db import ClosingChecklistItem, LoanRequest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import Actor, UserContext
from ..schemas.closing import ChecklistItemCreate, ChecklistItemUpdate
from .audit import AuditEventType, record_loan_event
from .errors import LoanNotFound
from .loans import get_loan, load_loan_for_actor

logger = logging.getLogger(__name__)


async def list_checklist(
    session: AsyncSession,
    user: UserContext,
    loan_id: int,
) -> list[ClosingChecklistItem]:
    """Checklist items in creation order for a loan visible to ``user``."""
    if await get_loan(session, user, loan_id) is None:
        raise LoanNotFound("Loan not found")
    result = await session.execute(
        select(ClosingChecklistItem)
        .where(ClosingChecklistItem.loan_id == loan_id)
        .order_by(ClosingChecklistItem.created_at, ClosingChecklistItem.id)
    )
    return list(result.scalars().all())


async def add_checklist_item(
    session: AsyncSession,
    actor: Actor,
    loan: LoanRequest,
    payload: ChecklistItemCreate,
) -> ClosingChecklistItem:
    item = ClosingChecklistItem(
        loan_id=loan.id,
        name=payload.name,
        description=payload.description,
        created_by=actor.user_id,
    )
    session.add(item)
    await session.commit()
    logger.info("Added closing checklist item '%s' to loan %s", item.name, loan.loan_number)
    return item


async def update_checklist_item(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    item_id: int,
    payload: ChecklistItemUpdate,
) -> ClosingChecklistItem:
    """Set completion and/or notes on one item of the actor's loan."""
    loan = await load_loan_for_actor(session, actor, loan_id, for_update=False)
    item = (
        await session.execute(
            select(ClosingChecklistItem).where(
                ClosingChecklistItem.id == item_id,
                ClosingChecklistItem.loan_id == loan.id,
            )
        )
    ).scalar_one_or_none()
    if item is None:
        raise LoanNotFound("Checklist item not found")

    if payload.completed is not None:
        item.completed = payload.completed
        if payload.completed:
            item.completed_by = actor.user_id
            item.completed_at = datetime.now(UTC)
        else:
            item.completed_by = None
            item.completed_at = None
    if payload.notes is not None:
        item.notes = payload.notes

    await record_loan_event(
        session,
        loan,
        AuditEventType.CHECKLIST_UPDATED,
        user_id=actor.user_id,
        user_role=actor.role.value,
        details={"item_id": item.id, "name": item.name, "completed": item.completed},
    )
    await session.commit()
    logger.info(
        "Closing checklist item %s on loan %s set completed=%s",
        item.id, loan.loan_number, item.completed,
    )
    return item
