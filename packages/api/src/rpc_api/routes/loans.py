# This project was developed with assistance from AI tools.
"""Loan request routes: CRUD plus the borrower-driven transitions.

Transition endpoints hand the caller to the service layer as an ``Actor``;
workflow exceptions are rendered by the handlers in ``main.py``.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from rpc_db import get_db
from rpc_db.enums import LoanStatus, UserRole
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.auth import Actor
from ..schemas.closing import (
    ChecklistItemResponse,
    ChecklistItemUpdate,
    ClosingChecklistResponse,
)
from ..schemas.loan import (
    CompleteNeedsListRequest,
    CompleteNeedsListResponse,
    FullApplicationRequest,
    FullApplicationResponse,
    GenerateNeedsListResponse,
    LoanCreateRequest,
    LoanDetailResponse,
    LoanListResponse,
    LoanResponse,
    LoanUpdateRequest,
    OverrideRequest,
    SoftQuoteResponse,
    StatusHistoryEntry,
    TransitionResponse,
)
from ..services import closing as closing_service
from ..services import loans as loan_service
from ..services import transitions
from ..services.users import ensure_user

router = APIRouter()

_ALL_AUTHENTICATED = (
    UserRole.BORROWER,
    UserRole.BROKER,
    UserRole.INVESTOR,
    UserRole.OPERATIONS,
    UserRole.ADMIN,
)

# Investors are read-only.
_WRITE_ROLES = (
    UserRole.BORROWER,
    UserRole.BROKER,
    UserRole.OPERATIONS,
    UserRole.ADMIN,
)


def _actor(user, body: OverrideRequest | None = None) -> Actor:
    return Actor.from_user(user, body.override_reason if body else None)


@router.get(
    "/",
    response_model=LoanListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_loans(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    status_filter: LoanStatus | None = Query(default=None, alias="status"),
) -> LoanListResponse:
    """List loans visible to the current user's role and data scope."""
    await ensure_user(session, user)
    await session.commit()
    loans, total = await loan_service.list_loans(
        session, user, offset=offset, limit=limit, status=status_filter,
    )
    return LoanListResponse(
        data=[LoanResponse.model_validate(loan) for loan in loans],
        pagination=Pagination(
            total=total,
            offset=offset,
            limit=limit,
            has_more=(offset + limit) < total,
        ),
    )


@router.post(
    "/",
    response_model=LoanResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def create_loan(
    body: LoanCreateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanResponse:
    """Create a loan request with its standard needs-list folders."""
    loan = await loan_service.create_loan(session, user, body)
    return LoanResponse.model_validate(loan)


@router.get(
    "/{loan_id}",
    response_model=LoanDetailResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_loan(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanDetailResponse:
    """Loan detail with its status history."""
    loan = await loan_service.get_loan(session, user, loan_id)
    if loan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loan not found",
        )
    history = await loan_service.get_history(session, loan_id)
    return LoanDetailResponse(
        **LoanResponse.model_validate(loan).model_dump(),
        history=[StatusHistoryEntry.model_validate(row) for row in history],
    )


@router.put(
    "/{loan_id}",
    response_model=LoanResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def update_loan(
    loan_id: int,
    body: LoanUpdateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanResponse:
    """Edit property/financing details before a term sheet exists."""
    loan = await loan_service.update_loan(session, _actor(user), loan_id, body)
    return LoanResponse.model_validate(loan)


@router.post(
    "/{loan_id}/generate-needs-list",
    response_model=GenerateNeedsListResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def generate_needs_list(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> GenerateNeedsListResponse:
    generated, count = await loan_service.generate_needs_list(session, _actor(user), loan_id)
    return GenerateNeedsListResponse(generated=generated, items_count=count)


@router.post(
    "/{loan_id}/submit",
    response_model=TransitionResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def submit_for_quote(
    loan_id: int,
    user: CurrentUser,
    body: OverrideRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    """Submit the request for a quote (may auto-decline on DSCR)."""
    return await transitions.submit_for_quote(session, _actor(user, body), loan_id)


@router.post(
    "/{loan_id}/soft-quote",
    response_model=SoftQuoteResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def generate_soft_quote(
    loan_id: int,
    user: CurrentUser,
    body: OverrideRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db),
) -> SoftQuoteResponse:
    """Issue the free soft quote."""
    return await transitions.generate_soft_quote(session, _actor(user, body), loan_id)


@router.post(
    "/{loan_id}/full-application",
    response_model=FullApplicationResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def submit_full_application(
    loan_id: int,
    body: FullApplicationRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> FullApplicationResponse:
    """Submit the full application; the formal term sheet is generated."""
    return await transitions.submit_full_application(
        session, _actor(user), loan_id, body.model_dump(mode="json", exclude_none=True),
    )


@router.post(
    "/{loan_id}/sign-term-sheet",
    response_model=TransitionResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def sign_term_sheet(
    loan_id: int,
    user: CurrentUser,
    body: OverrideRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    """Sign the term sheet; the needs list is sent in the same step."""
    return await transitions.sign_term_sheet(session, _actor(user, body), loan_id)


@router.post(
    "/{loan_id}/complete-needs-list",
    response_model=CompleteNeedsListResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def complete_needs_list(
    loan_id: int,
    user: CurrentUser,
    body: CompleteNeedsListRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db),
) -> CompleteNeedsListResponse:
    """Mark the needs list complete once every required document is uploaded."""
    return await transitions.complete_needs_list(
        session, _actor(user, body), loan_id, bypass=bool(body and body.bypass),
    )


@router.get(
    "/{loan_id}/history",
    response_model=list[StatusHistoryEntry],
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_loan_history(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[StatusHistoryEntry]:
    loan = await loan_service.get_loan(session, user, loan_id)
    if loan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loan not found",
        )
    history = await loan_service.get_history(session, loan_id)
    return [StatusHistoryEntry.model_validate(row) for row in history]


@router.get(
    "/{loan_id}/closing-checklist",
    response_model=ClosingChecklistResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_closing_checklist(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ClosingChecklistResponse:
    items = await closing_service.list_checklist(session, user, loan_id)
    return ClosingChecklistResponse(
        loan_id=loan_id,
        checklist=[ChecklistItemResponse.model_validate(item) for item in items],
        completed_count=sum(1 for item in items if item.completed),
        total_count=len(items),
    )


@router.put(
    "/{loan_id}/closing-checklist/{item_id}",
    response_model=ChecklistItemResponse,
    dependencies=[Depends(require_roles(*_WRITE_ROLES))],
)
async def update_closing_checklist_item(
    loan_id: int,
    item_id: int,
    body: ChecklistItemUpdate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ChecklistItemResponse:
    """Tick off (or reopen) a checklist item and attach notes."""
    item = await closing_service.update_checklist_item(session, _actor(user), loan_id, item_id, body)
    return ChecklistItemResponse.model_validate(item)
