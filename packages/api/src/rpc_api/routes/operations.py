# This project was developed with assistance from AI tools.
"""Operations endpoints: pipeline, overrides, needs-list upkeep, closing, audit."""

from fastapi import APIRouter, Depends, Query, status
from rpc_db import LoanRequest, get_db
from rpc_db.enums import DocumentStatus, LoanStatus, UserRole
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas import Pagination
from ..schemas.audit import AuditChainVerifyResponse, AuditEventItem
from ..schemas.auth import Actor
from ..schemas.closing import ChecklistItemCreate, ChecklistItemResponse
from ..schemas.document import DocumentResponse, DocumentReviewRequest
from ..schemas.loan import (
    AssignProcessorRequest,
    DisapproveQuoteRequest,
    FundLoanRequest,
    LoanListResponse,
    LoanResponse,
    OverrideRequest,
    ScheduleClosingRequest,
    SoftQuoteResponse,
    StatusOption,
    StatusUpdateRequest,
    TransferOwnershipRequest,
    TransitionResponse,
)
from ..schemas.needs_list import CleanupResult, NeedsListItemCreate, NeedsListItemResponse
from ..services import audit as audit_service
from ..services import closing as closing_service
from ..services import document as doc_service
from ..services import loans as loan_service
from ..services import needs_list as needs_list_service
from ..services import transitions
from ..services.errors import LoanNotFound

router = APIRouter()

_OPS = Depends(require_roles(UserRole.OPERATIONS, UserRole.ADMIN))
_ADMIN = Depends(require_roles(UserRole.ADMIN))


async def _ops_loan(session: AsyncSession, user, loan_id: int) -> LoanRequest:
    return await loan_service.load_loan_for_actor(session, Actor.from_user(user), loan_id)


@router.get("/pipeline", response_model=LoanListResponse, dependencies=[_OPS])
async def get_pipeline(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    status_filter: LoanStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=100),
) -> LoanListResponse:
    """Every loan, newest first, filtered by status and loan number / address search."""
    loans, total = await loan_service.list_loans(
        session, user, offset=offset, limit=limit, status=status_filter, search=search,
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


@router.get("/status-options", response_model=list[StatusOption], dependencies=[_OPS])
async def get_status_options() -> list[StatusOption]:
    steps = LoanStatus.step_for()
    return [
        StatusOption(status=s, step=steps[s], label=s.value.replace("_", " ").title())
        for s in LoanStatus
    ]


@router.put("/loans/{loan_id}/status", response_model=TransitionResponse, dependencies=[_OPS])
async def update_status(
    loan_id: int,
    body: StatusUpdateRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    """Set any status. Not validated against the forward graph; always recorded as an override."""
    return await transitions.update_status(
        session,
        Actor.from_user(user, body.override_reason),
        loan_id,
        body.status,
        body.notes,
    )


@router.post(
    "/loans/{loan_id}/approve-quote", response_model=SoftQuoteResponse, dependencies=[_OPS],
)
async def approve_quote(
    loan_id: int,
    user: CurrentUser,
    body: OverrideRequest | None = None,
    session: AsyncSession = Depends(get_db),
) -> SoftQuoteResponse:
    """Issue the soft quote on the borrower's behalf."""
    actor = Actor.from_user(user, body.override_reason if body else None)
    return await transitions.generate_soft_quote(session, actor, loan_id)


@router.post(
    "/loans/{loan_id}/disapprove-quote", response_model=TransitionResponse, dependencies=[_OPS],
)
async def disapprove_quote(
    loan_id: int,
    body: DisapproveQuoteRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    return await transitions.decline_quote(session, Actor.from_user(user), loan_id, body.reason)


@router.post(
    "/loans/{loan_id}/needs-list",
    response_model=NeedsListItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_OPS],
)
async def add_needs_list_item(
    loan_id: int,
    body: NeedsListItemCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> NeedsListItemResponse:
    """Add an ad-hoc required-document slot."""
    loan = await _ops_loan(session, user, loan_id)
    item = await needs_list_service.add_needs_list_item(session, loan, body)
    return NeedsListItemResponse.model_validate(item)


@router.post(
    "/loans/{loan_id}/cleanup-needs-list", response_model=CleanupResult, dependencies=[_OPS],
)
async def cleanup_needs_list(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> CleanupResult:
    """Remove duplicate (name, category) items, keeping the oldest."""
    loan = await _ops_loan(session, user, loan_id)
    removed, remaining = await needs_list_service.cleanup_needs_list(session, loan)
    return CleanupResult(removed=removed, remaining=remaining)


@router.post(
    "/loans/{loan_id}/assign-processor", response_model=LoanResponse, dependencies=[_OPS],
)
async def assign_processor(
    loan_id: int,
    body: AssignProcessorRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> LoanResponse:
    loan = await loan_service.assign_processor(
        session, Actor.from_user(user), loan_id, body.processor_id,
    )
    return LoanResponse.model_validate(loan)


@router.post(
    "/loans/{loan_id}/schedule-closing", response_model=TransitionResponse, dependencies=[_OPS],
)
async def schedule_closing(
    loan_id: int,
    body: ScheduleClosingRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    return await transitions.schedule_closing(
        session, Actor.from_user(user), loan_id, body.closing_date,
    )


@router.post(
    "/loans/{loan_id}/closing-checklist",
    response_model=ChecklistItemResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[_OPS],
)
async def add_closing_checklist_item(
    loan_id: int,
    body: ChecklistItemCreate,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> ChecklistItemResponse:
    loan = await _ops_loan(session, user, loan_id)
    item = await closing_service.add_checklist_item(session, Actor.from_user(user), loan, body)
    return ChecklistItemResponse.model_validate(item)


@router.post("/loans/{loan_id}/fund", response_model=TransitionResponse, dependencies=[_OPS])
async def fund_loan(
    loan_id: int,
    body: FundLoanRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    return await transitions.fund_loan(session, Actor.from_user(user), loan_id, body.funded_amount)


@router.post(
    "/loans/{loan_id}/transfer-ownership",
    response_model=TransitionResponse,
    dependencies=[_ADMIN],
)
async def transfer_ownership(
    loan_id: int,
    body: TransferOwnershipRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> TransitionResponse:
    """Re-own a loan after identity verification. Admin only; reason required."""
    return await transitions.transfer_ownership(
        session, Actor.from_user(user), loan_id, body.new_owner_id, body.reason,
    )


@router.put(
    "/documents/{document_id}/review", response_model=DocumentResponse, dependencies=[_OPS],
)
async def review_document(
    document_id: int,
    body: DocumentReviewRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    doc = await doc_service.review_document(
        session, Actor.from_user(user), document_id, DocumentStatus(body.status), body.notes,
    )
    return DocumentResponse.model_validate(doc)


@router.get(
    "/loans/{loan_id}/audit", response_model=list[AuditEventItem], dependencies=[_OPS],
)
async def get_loan_audit(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[AuditEventItem]:
    loan = await loan_service.get_loan(session, user, loan_id)
    if loan is None:
        raise LoanNotFound("Loan not found")
    events = await audit_service.get_loan_audit_events(session, loan_id)
    return [
        AuditEventItem(
            id=e.id,
            timestamp=e.timestamp,
            event_type=e.event_type,
            user_id=e.user_id,
            user_role=e.user_role,
            loan_id=e.loan_id,
            event_data=e.event_data,
        )
        for e in events
    ]


@router.get("/audit/verify", response_model=AuditChainVerifyResponse, dependencies=[_ADMIN])
async def verify_audit_chain(
    session: AsyncSession = Depends(get_db),
) -> AuditChainVerifyResponse:
    """Walk the audit hash chain and report the first break, if any."""
    result = await audit_service.verify_audit_chain(session)
    return AuditChainVerifyResponse(**result)
