# This project was developed with assistance from AI tools.
"""Local user records mirroring Keycloak identities."""

import logging

from rpc_db import User
from rpc_db.enums import UserRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import UserContext

logger = logging.getLogger(__name__)


async def ensure_user(session: AsyncSession, user: UserContext) -> User:
    """Return the local row for the caller, creating or refreshing it.

    Flushes but does not commit; the caller's transaction owns the write.
    """
    record = await session.get(User, user.user_id)
    if record is None:
        record = User(
            id=user.user_id,
            email=user.email,
            full_name=user.name or None,
            role=user.role,
            email_verified=user.email_verified,
        )
        session.add(record)
        await session.flush()
        logger.info("Registered local user %s (%s)", user.user_id, user.role.value)
        return record

    # Token claims are authoritative for role and verification state
    record.role = user.role
    record.email = user.email or record.email
    if user.email_verified:
        record.email_verified = True
    return record


async def get_active_ops_users(session: AsyncSession) -> list[User]:
    """Active operations and admin users (notification recipients)."""
    stmt = select(User).where(
        User.role.in_([r for r in UserRole.ops_roles()]),
        User.is_active.is_(True),
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
