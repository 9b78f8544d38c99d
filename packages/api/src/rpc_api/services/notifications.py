# This project was developed with assistance from AI tools.
"""In-app notifications and outbound email.

Notification rows are written inside the caller's transaction so they
commit atomically with the transition that produced them. Email is an
injected collaborator dispatched after commit; a failed send is logged
and never fails the transition.
"""

import logging
from typing import Protocol

from rpc_db import Notification
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import UserContext
from .background import fire_and_forget
from .users import get_active_ops_users

logger = logging.getLogger(__name__)


class EmailDispatcher(Protocol):
    async def send_email(self, template: str, recipient: str, data: dict) -> None: ...


class LoggingEmailDispatcher:
    """Default dispatcher: records the email in the application log."""

    async def send_email(self, template: str, recipient: str, data: dict) -> None:
        logger.info("Email '%s' -> %s %s", template, recipient, data)


_dispatcher: EmailDispatcher = LoggingEmailDispatcher()


def get_email_dispatcher() -> EmailDispatcher:
    return _dispatcher


def set_email_dispatcher(dispatcher: EmailDispatcher) -> None:
    """Swap the email backend (app startup, tests)."""
    global _dispatcher  # noqa: PLW0603
    _dispatcher = dispatcher


def send_email_later(template: str, recipient: str | None, data: dict) -> None:
    """Queue an email as a fire-and-forget task. Call only after commit."""
    if not recipient:
        logger.warning("Skipping email '%s': no recipient", template)
        return
    fire_and_forget(
        get_email_dispatcher().send_email(template, recipient, data),
        name=f"email-{template}",
    )


def notify_ops_email_later(template: str, data: dict) -> None:
    send_email_later(template, settings.OPS_NOTIFICATION_EMAIL, data)


async def notify_user(
    session: AsyncSession,
    user_id: str,
    *,
    loan_id: int | None,
    notification_type: str,
    title: str,
    message: str,
) -> Notification:
    """Add a notification row for one user. Flushes but does not commit."""
    note = Notification(
        user_id=user_id, loan_id=loan_id, type=notification_type, title=title, message=message,
    )
    session.add(note)
    await session.flush()
    return note


async def notify_ops_users(
    session: AsyncSession,
    *,
    loan_id: int | None,
    notification_type: str,
    title: str,
    message: str,
) -> int:
    """Add a notification row for every active operations/admin user.

    Returns the number of rows written. Flushes but does not commit.
    """
    recipients = await get_active_ops_users(session)
    for recipient in recipients:
        session.add(
            Notification(
                user_id=recipient.id, loan_id=loan_id, type=notification_type, title=title, message=message,
            )
        )
    if recipients:
        await session.flush()
    logger.info("Queued '%s' notification for %d ops users", notification_type, len(recipients))
    return len(recipients)


async def list_notifications(
    session: AsyncSession,
    user: UserContext,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> tuple[list[Notification], int]:
    """Return (notifications, unread_count) for the caller, newest first."""
    stmt = select(Notification).where(Notification.user_id == user.user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.id.desc()).limit(limit)
    result = await session.execute(stmt)

    unread_stmt = select(func.count(Notification.id)).where(
        Notification.user_id == user.user_id,
        Notification.read.is_(False),
    )
    unread = (await session.execute(unread_stmt)).scalar() or 0
    return list(result.scalars().all()), unread


async def mark_read(session: AsyncSession, user: UserContext, notification_id: int) -> bool:
    """Mark one of the caller's notifications read. False if not found."""
    result = await session.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user.user_id)
        .values(read=True)
    )
    await session.commit()
    return result.rowcount > 0
