# This project was developed with assistance from AI tools.
"""Loan request service with role-based data scope filtering.

Read paths filter through the caller's DataScope and return None for
out-of-scope loans (mapped to 404). Mutation paths load the row with
``SELECT ... FOR UPDATE`` and distinguish a missing loan from an
ownership mismatch.
"""

import logging
from datetime import UTC, datetime

from rpc_db import LoanRequest, LoanStatusHistory, User
from rpc_db.enums import HistoryEvent, LoanStatus, UserRole
from sqlalchemy import func, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..schemas.auth import Actor, UserContext
from ..schemas.loan import LoanCreateRequest, LoanResponse, LoanUpdateRequest
from .eligibility import calculate_dscr, calculate_loan_amount, calculate_noi
from .errors import AccessDenied, InvalidTransitionError, LoanNotFound, LoanWorkflowError
from .needs_list import ensure_needs_list
from .scope import apply_data_scope
from .users import ensure_user

logger = logging.getLogger(__name__)

LOAN_NUMBER_PREFIX = "RPC"
# Serializes loan-number allocation on PostgreSQL.
LOAN_NUMBER_LOCK_KEY = 910_002

# Details may be edited until a formal term sheet exists.
EDITABLE_STATUSES = frozenset(
    {LoanStatus.NEW_REQUEST, LoanStatus.QUOTE_REQUESTED, LoanStatus.SOFT_QUOTE_ISSUED}
)

_SEARCH_COLUMNS = (
    LoanRequest.loan_number,
    LoanRequest.property_address,
    LoanRequest.property_city,
)


async def next_loan_number(session: AsyncSession, year: int | None = None) -> str:
    """``RPC-{year}-{seq:04d}`` where seq follows the highest issued this year."""
    year = year or datetime.now(UTC).year
    prefix = f"{LOAN_NUMBER_PREFIX}-{year}-"
    if session.get_bind().dialect.name == "postgresql":
        await session.execute(text(f"SELECT pg_advisory_xact_lock({LOAN_NUMBER_LOCK_KEY})"))

    result = await session.execute(
        select(LoanRequest.loan_number).where(LoanRequest.loan_number.like(f"{prefix}%"))
    )
    sequences = [
        int(number[len(prefix):])
        for number in result.scalars().all()
        if number[len(prefix):].isdigit()
    ]
    return f"{prefix}{max(sequences, default=0) + 1:04d}"


def apply_derived_fields(loan: LoanRequest) -> None:
    """Recompute loan_amount, noi, and dscr_ratio from their inputs."""
    loan_amount = calculate_loan_amount(loan.property_value, loan.requested_ltv)
    if loan_amount is not None:
        loan.loan_amount = loan_amount
    loan.noi = calculate_noi(loan.annual_rental_income, loan.annual_operating_expenses)
    loan.dscr_ratio = calculate_dscr(
        loan.annual_rental_income, loan.annual_operating_expenses, loan.annual_loan_payments
    )


def loan_snapshot(loan: LoanRequest) -> dict:
    """JSON-safe copy of a loan for background side effects."""
    return LoanResponse.model_validate(loan).model_dump(mode="json")


async def create_loan(
    session: AsyncSession,
    user: UserContext,
    info: LoanCreateRequest,
) -> LoanRequest:
    """Create a loan for the caller with its standard needs-list folders."""
    await ensure_user(session, user)

    fields = info.model_dump(exclude_unset=True, exclude_none=True, exclude={"broker_id"})
    broker_id = info.broker_id
    if user.role == UserRole.BROKER:
        broker_id = user.user_id
    if broker_id is not None:
        broker = await session.get(User, broker_id)
        if broker is None or broker.role != UserRole.BROKER:
            raise LoanWorkflowError(f"Unknown broker: {broker_id}")

    loan = LoanRequest(
        loan_number=await next_loan_number(session),
        user_id=user.user_id,
        broker_id=broker_id,
        status=LoanStatus.NEW_REQUEST,
        current_step=1,
        **fields,
    )
    apply_derived_fields(loan)
    session.add(loan)
    await session.flush()

    await ensure_needs_list(session, loan)
    session.add(
        LoanStatusHistory(
            loan_id=loan.id,
            status=loan.status,
            step=loan.current_step,
            event=HistoryEvent.TRANSITION,
            changed_by=user.user_id,
            notes="New loan request created",
        )
    )
    await session.commit()
    logger.info("Created loan %s for user %s", loan.loan_number, user.user_id)
    return loan


async def get_loan(
    session: AsyncSession,
    user: UserContext,
    loan_id: int,
) -> LoanRequest | None:
    """Return a single loan if visible to the current user.

    Returns None (which the route maps to 404) for out-of-scope loans
    rather than 403, to avoid leaking existence of resources.
    """
    stmt = select(LoanRequest).where(LoanRequest.id == loan_id)
    stmt = apply_data_scope(stmt, user.data_scope)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def load_loan_for_actor(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    *,
    for_update: bool = True,
) -> LoanRequest:
    """Load a loan the actor may mutate.

    Raises LoanNotFound when the id does not resolve and AccessDenied when a
    non-ops caller does not own it. A matching email on the owner record is
    reported (``ownership_claimable``) but never acted on here; re-owning a
    loan goes through ``transfer_ownership``.
    """
    stmt = select(LoanRequest).where(LoanRequest.id == loan_id)
    if for_update:
        stmt = stmt.with_for_update()
    loan = (await session.execute(stmt)).scalar_one_or_none()
    if loan is None:
        raise LoanNotFound("Loan not found")

    if actor.can_override or loan.user_id == actor.user_id:
        return loan

    owner = await session.get(User, loan.user_id)
    claimable = bool(
        owner is not None
        and actor.email
        and owner.email
        and owner.email.lower() == actor.email.lower()
    )
    if claimable:
        logger.warning(
            "User %s shares email with owner %s of loan %s; ownership transfer requires an admin",
            actor.user_id,
            loan.user_id,
            loan.loan_number,
        )
    raise AccessDenied(
        "Access denied. This loan does not belong to you.",
        ownership_claimable=claimable,
    )


async def list_loans(
    session: AsyncSession,
    user: UserContext,
    *,
    offset: int = 0,
    limit: int = 20,
    status: LoanStatus | None = None,
    search: str | None = None,
) -> tuple[list[LoanRequest], int]:
    """Return loans visible to the current user, newest first."""

    def _filters(stmt):
        stmt = apply_data_scope(stmt, user.data_scope)
        if status is not None:
            stmt = stmt.where(LoanRequest.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(*(col.ilike(pattern) for col in _SEARCH_COLUMNS)))
        return stmt

    total = (await session.execute(_filters(select(func.count(LoanRequest.id))))).scalar() or 0
    stmt = _filters(select(LoanRequest)).order_by(LoanRequest.id.desc()).offset(offset).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def get_history(session: AsyncSession, loan_id: int) -> list[LoanStatusHistory]:
    """Status history for a loan, oldest first.

    Does NOT enforce data scope -- caller must check access to the loan first.
    """
    result = await session.execute(
        select(LoanStatusHistory)
        .where(LoanStatusHistory.loan_id == loan_id)
        .order_by(LoanStatusHistory.id.asc())
    )
    return list(result.scalars().all())


async def update_loan(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    updates: LoanUpdateRequest,
) -> LoanRequest:
    """Edit property/financing details and recompute derived fields."""
    loan = await load_loan_for_actor(session, actor, loan_id)
    if loan.status not in EDITABLE_STATUSES:
        raise InvalidTransitionError(
            f"Loan details cannot be edited in status '{loan.status.value}'."
        )

    for field, value in updates.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(loan, field, value)
    apply_derived_fields(loan)
    loan.current_step = max(loan.current_step, 2)

    await session.commit()
    logger.info("Updated loan %s (step=%s)", loan.loan_number, loan.current_step)
    return loan


async def generate_needs_list(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
) -> tuple[bool, int]:
    """Create the standard needs list when a loan has none. Idempotent."""
    loan = await load_loan_for_actor(session, actor, loan_id)
    generated, count = await ensure_needs_list(session, loan)
    await session.commit()
    return generated, count


async def assign_processor(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    processor_id: str,
) -> LoanRequest:
    loan = await load_loan_for_actor(session, actor, loan_id)
    loan.processor_id = processor_id
    await session.commit()
    logger.info("Assigned processor %s to loan %s", processor_id, loan.loan_number)
    return loan
