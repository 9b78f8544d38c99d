# This project was developed with assistance from AI tools.
"""Loan status state machine.

Every operation follows the same shape inside one transaction:

  1. load the loan ``FOR UPDATE`` (plus the ``version`` check on flush)
  2. evaluate gates -- ops actors may bypass borrower-facing gates, and each
     bypass is collected for the history note, the log, and the audit trail
  3. apply status / step / flag / derived-field writes
  4. append one LoanStatusHistory row per status change
  5. commit, then dispatch email/rendering side effects

``current_step`` only moves through ``max()`` and fee flags only flip to
True; the model validators reject anything else.
"""

import logging
from datetime import UTC, datetime

from rpc_db import LoanRequest, LoanStatusHistory, User
from rpc_db.enums import HistoryEvent, LoanStatus, PaymentType, UserRole
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..schemas.auth import Actor
from ..schemas.loan import (
    CompleteNeedsListResponse,
    FullApplicationResponse,
    SoftQuoteResponse,
    TransitionResponse,
)
from .audit import AuditEventType, record_loan_event
from .eligibility import check_eligibility, missing_quote_fields
from .errors import (
    AccessDenied,
    ConcurrentModification,
    EligibilityDeclined,
    InvalidTransitionError,
    LoanNotFound,
    PreconditionFailed,
)
from .fees import FEE_LABELS, PAID_FLAG, fee_amount
from .loans import load_loan_for_actor, loan_snapshot
from .needs_list import ensure_needs_list, reconcile_needs_list
from .notifications import notify_ops_email_later, notify_ops_users, notify_user, send_email_later
from .quote import generate_soft_quote_data
from .rendering import application_key, render_full_application_later, term_sheet_key

logger = logging.getLogger(__name__)

_VALID_TRANSITIONS = LoanStatus.valid_transitions()
_STEP_FOR = LoanStatus.step_for()


class _Gates:
    """Collects the preconditions an ops actor bypassed during one operation."""

    def __init__(self, actor: Actor, operation: str):
        self.actor = actor
        self.operation = operation
        self.bypassed: list[str] = []

    def require(self, satisfied: bool, error: PreconditionFailed | InvalidTransitionError) -> None:
        if satisfied:
            return
        if not self.actor.can_override:
            raise error
        self.bypassed.append(error.message)

    def edge(self, loan: LoanRequest, target: LoanStatus) -> None:
        allowed = _VALID_TRANSITIONS.get(loan.status, frozenset())
        self.require(
            target in allowed,
            InvalidTransitionError(
                f"Cannot transition from '{loan.status.value}' to '{target.value}'. "
                f"Allowed: {sorted(s.value for s in allowed) if allowed else 'none (terminal status)'}."
            ),
        )

    def note(self, base: str) -> str:
        """History note, flagged when anything was bypassed."""
        if not self.bypassed:
            return base
        return f"{base} [override] {self.reason}"

    @property
    def reason(self) -> str:
        if self.actor.override_reason:
            return self.actor.override_reason
        return f"{self.actor.role.value} bypass: " + "; ".join(self.bypassed)

    async def record(self, session: AsyncSession, loan: LoanRequest) -> None:
        """Log and audit any bypasses. Joins the caller's transaction."""
        if not self.bypassed:
            return
        logger.warning(
            "Ops override by %s (%s) on loan %s during %s: %s",
            self.actor.user_id,
            self.actor.role.value,
            loan.loan_number,
            self.operation,
            self.bypassed,
        )
        await record_loan_event(
            session,
            loan,
            AuditEventType.OPS_OVERRIDE,
            user_id=self.actor.user_id,
            user_role=self.actor.role.value,
            details={
                "operation": self.operation,
                "bypassed": self.bypassed,
                "reason": self.reason,
            },
        )


def _advance(loan: LoanRequest, status: LoanStatus, step: int) -> None:
    loan.status = status
    loan.current_step = max(loan.current_step, step)


def _history(
    session: AsyncSession,
    loan: LoanRequest,
    actor: Actor,
    notes: str,
    event: HistoryEvent = HistoryEvent.TRANSITION,
) -> LoanStatusHistory:
    """Append a history row mirroring the loan's current status/step."""
    row = LoanStatusHistory(
        loan_id=loan.id,
        status=loan.status,
        step=loan.current_step,
        event=event,
        changed_by=actor.user_id,
        notes=notes,
    )
    session.add(row)
    return row


async def _commit(session: AsyncSession, loan: LoanRequest) -> None:
    try:
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        logger.warning("Concurrent modification of loan %s", loan.loan_number)
        raise ConcurrentModification(
            "This loan was modified by another request. Reload and try again."
        ) from exc


def _response(loan: LoanRequest, message: str, gates: _Gates | None = None) -> TransitionResponse:
    return TransitionResponse(
        loan_id=loan.id,
        status=loan.status,
        current_step=loan.current_step,
        message=message,
        overrides=list(gates.bypassed) if gates else [],
    )


async def _auto_decline(
    session: AsyncSession,
    loan: LoanRequest,
    actor: Actor,
    reason: str,
    dscr: float | None,
) -> EligibilityDeclined:
    """Commit the DSCR decline and return the error for the caller to raise."""
    loan.dscr_ratio = dscr
    loan.dscr_auto_declined = True
    loan.decline_reason = reason
    _advance(loan, LoanStatus.DECLINED, _STEP_FOR[LoanStatus.DECLINED])
    _history(session, loan, actor, f"Auto-declined: {reason}")
    await _commit(session, loan)
    logger.info("Loan %s auto-declined: %s", loan.loan_number, reason)
    return EligibilityDeclined(
        "Loan request does not meet minimum DSCR requirements", reason=reason
    )


async def _check_quote_eligibility(
    session: AsyncSession,
    loan: LoanRequest,
    actor: Actor,
) -> float | None:
    """Run eligibility rules; commit an auto-decline or raise on errors.

    Returns the computed DSCR for an eligible loan.
    """
    result = check_eligibility(loan)
    if result.auto_decline:
        raise await _auto_decline(session, loan, actor, result.decline_reason, result.dscr)
    if result.errors:
        raise EligibilityDeclined(
            "Loan does not meet eligibility requirements",
            reason="; ".join(result.errors),
            declined=False,
            eligibility_errors=result.errors,
        )
    return result.dscr


# ---------------------------------------------------------------------------
# Borrower-driven transitions
# ---------------------------------------------------------------------------


async def submit_for_quote(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
) -> TransitionResponse:
    """new_request -> quote_requested (step 2), or declined (step 3) on a DSCR shortfall."""
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "submit_for_quote")

    gates.require(
        actor.email_verified,
        PreconditionFailed(
            "Please verify your email address before submitting a loan request",
            requires_verification=True,
        ),
    )
    missing = missing_quote_fields(loan)
    if missing:
        raise PreconditionFailed(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing,
        )
    gates.edge(loan, LoanStatus.QUOTE_REQUESTED)

    loan.dscr_ratio = await _check_quote_eligibility(session, loan, actor)

    _advance(loan, LoanStatus.QUOTE_REQUESTED, 2)
    message = "Loan request submitted - awaiting admin approval"
    _history(session, loan, actor, gates.note(message))
    await notify_ops_users(
        session,
        loan_id=loan.id,
        notification_type="quote_request",
        title="New Quote Request",
        message=f"{loan.loan_number} requires quote approval",
    )
    await gates.record(session, loan)
    await _commit(session, loan)

    notify_ops_email_later(
        "quote_request",
        {"loan_number": loan.loan_number, "loan_amount": loan_snapshot(loan)["loan_amount"]},
    )
    return _response(loan, message, gates)


async def generate_soft_quote(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
) -> SoftQuoteResponse:
    """Issue (or re-issue) the free soft quote. Status soft_quote_issued, step max(current, 1)."""
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "generate_soft_quote")
    gates.edge(loan, LoanStatus.SOFT_QUOTE_ISSUED)

    missing = missing_quote_fields(loan)
    if loan.requested_ltv is None:
        missing.append("Requested LTV")
    if missing:
        raise PreconditionFailed(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing,
        )

    await _check_quote_eligibility(session, loan, actor)
    quote = generate_soft_quote_data(loan)

    loan.soft_quote_generated = True
    loan.soft_quote_data = quote.model_dump(mode="json")
    loan.interest_rate_min = quote.interest_rate_min
    loan.interest_rate_max = quote.interest_rate_max
    loan.dscr_ratio = quote.dscr
    _advance(loan, LoanStatus.SOFT_QUOTE_ISSUED, 1)
    message = f"Soft quote generated (FREE): {quote.rate_range}"
    _history(session, loan, actor, gates.note(message))
    if actor.user_id != loan.user_id:
        await notify_user(
            session,
            loan.user_id,
            loan_id=loan.id,
            notification_type="quote_ready",
            title="Your Quote Is Ready",
            message=f"{loan.loan_number}: {quote.rate_range}",
        )
    await gates.record(session, loan)
    await _commit(session, loan)

    return SoftQuoteResponse(
        **_response(loan, message, gates).model_dump(),
        quote=quote,
    )


async def submit_full_application(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    application: dict,
) -> FullApplicationResponse:
    """soft_quote_issued -> term_sheet_issued (step max(current, 6)).

    Requires the credit check and application fee. Artifact keys are
    stored in this transaction; rendering runs after commit.
    """
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "submit_full_application")
    gates.edge(loan, LoanStatus.TERM_SHEET_ISSUED)

    gates.require(
        bool(loan.credit_payment_id),
        PreconditionFailed(
            "Credit check authorization required",
            payment_type=PaymentType.CREDIT_CHECK.value,
            amount=fee_amount(loan, PaymentType.CREDIT_CHECK),
        ),
    )
    gates.require(
        bool(loan.application_fee_paid),
        PreconditionFailed(
            "Application fee payment required",
            payment_type=PaymentType.APPLICATION_FEE.value,
            amount=fee_amount(loan, PaymentType.APPLICATION_FEE),
        ),
    )
    if not loan.soft_quote_data:
        raise PreconditionFailed("A soft quote must be generated before the full application")

    loan.application_data = application
    loan.application_pdf_url = application_key(loan.loan_number)
    loan.term_sheet_url = term_sheet_key(loan.loan_number)
    loan.full_application_completed = True
    _advance(loan, LoanStatus.TERM_SHEET_ISSUED, 6)
    message = "Full loan application submitted - Formal term sheet generated"
    _history(session, loan, actor, gates.note(message))
    await notify_ops_users(
        session,
        loan_id=loan.id,
        notification_type="full_application",
        title="Full Application Submitted",
        message=f"{loan.loan_number} submitted a full application",
    )
    await gates.record(session, loan)
    await _commit(session, loan)

    render_full_application_later(loan_snapshot(loan), dict(loan.soft_quote_data), application)
    return FullApplicationResponse(
        **_response(loan, message, gates).model_dump(),
        pdf_url=loan.application_pdf_url,
        term_sheet_url=loan.term_sheet_url,
    )


async def sign_term_sheet(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
) -> TransitionResponse:
    """term_sheet_issued -> term_sheet_signed -> needs_list_sent, in one transaction."""
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "sign_term_sheet")
    gates.edge(loan, LoanStatus.TERM_SHEET_SIGNED)

    gates.require(
        bool(loan.term_sheet_url),
        PreconditionFailed(
            "Formal term sheet must be generated first (complete application and pay fees)"
        ),
    )
    gates.require(
        bool(loan.appraisal_paid),
        PreconditionFailed(
            "Appraisal payment authorization required",
            payment_type=PaymentType.APPRAISAL.value,
            amount=fee_amount(loan, PaymentType.APPRAISAL),
        ),
    )

    loan.term_sheet_signed = True
    loan.term_sheet_signed_at = datetime.now(UTC)
    _advance(loan, LoanStatus.TERM_SHEET_SIGNED, 6)
    _history(
        session, loan, actor,
        gates.note("Term sheet signed by borrower - Appraisal can now be ordered"),
    )

    await ensure_needs_list(session, loan)
    _advance(loan, LoanStatus.NEEDS_LIST_SENT, 6)
    message = "Needs list sent to borrower after term sheet signing"
    _history(session, loan, actor, message)

    owner = await session.get(User, loan.user_id)
    await gates.record(session, loan)
    await _commit(session, loan)

    send_email_later(
        "needs_list",
        owner.email if owner else None,
        {"loan_number": loan.loan_number, "name": owner.full_name if owner else None},
    )
    return _response(loan, message, gates)


async def complete_needs_list(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    *,
    bypass: bool = False,
) -> CompleteNeedsListResponse:
    """-> needs_list_complete (step max(current, 7)) once every required item has a document.

    Ops callers always pass the gate (recorded as an override). Other
    callers pass with ``bypass=True`` only when NEEDS_LIST_DEV_BYPASS is on.
    """
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "complete_needs_list")
    gates.edge(loan, LoanStatus.NEEDS_LIST_COMPLETE)

    result = await reconcile_needs_list(session, loan.id)
    if not result.verdict:
        missing_error = PreconditionFailed(
            f"{len(result.missing_items)} required document(s) missing",
            missing_items=result.missing_items,
            total_required=result.total_required,
        )
        if bypass and settings.NEEDS_LIST_DEV_BYPASS and not actor.can_override:
            gates.bypassed.append(f"development bypass: {missing_error.message}")
        else:
            gates.require(False, missing_error)

    _advance(loan, LoanStatus.NEEDS_LIST_COMPLETE, 7)
    message = "Borrower submitted all required documents"
    _history(session, loan, actor, gates.note(message))
    await notify_ops_users(
        session,
        loan_id=loan.id,
        notification_type="documents_submitted",
        title="Documents Submitted",
        message=f"{loan.loan_number}: all required documents submitted",
    )
    await gates.record(session, loan)
    await _commit(session, loan)

    notify_ops_email_later("documents_submitted", {"loan_number": loan.loan_number})
    return CompleteNeedsListResponse(
        **_response(loan, message, gates).model_dump(),
        missing_items=result.missing_items,
    )


# ---------------------------------------------------------------------------
# Payment confirmation (no status change)
# ---------------------------------------------------------------------------


async def record_fee_payment(
    session: AsyncSession,
    loan: LoanRequest,
    payment_type: PaymentType,
    payment_id: str,
    actor_id: str | None,
) -> bool:
    """Set the fee's paid flag and write one history row.

    Returns False (and writes nothing) when the fee was already recorded.
    Joins the caller's transaction; does not commit.
    """
    flag = PAID_FLAG[payment_type]
    already = bool(getattr(loan, flag))
    if payment_type == PaymentType.CREDIT_CHECK:
        already = already and bool(loan.credit_payment_id)
    if already:
        return False

    setattr(loan, flag, True)
    if payment_type == PaymentType.CREDIT_CHECK:
        loan.credit_payment_id = payment_id
    elif payment_type == PaymentType.APPRAISAL:
        loan.appraisal_payment_id = payment_id
        loan.current_step = max(loan.current_step, 8)

    session.add(
        LoanStatusHistory(
            loan_id=loan.id,
            status=loan.status,
            step=loan.current_step,
            event=HistoryEvent.PAYMENT,
            changed_by=actor_id,
            notes=f"{FEE_LABELS[payment_type]} payment completed",
        )
    )
    await record_loan_event(
        session,
        loan,
        AuditEventType.PAYMENT_CONFIRMED,
        user_id=actor_id,
        details={"payment_type": payment_type.value, "payment_id": payment_id},
    )
    return True


# ---------------------------------------------------------------------------
# Operations paths
# ---------------------------------------------------------------------------


def _require_ops(actor: Actor) -> None:
    if not actor.can_override:
        raise AccessDenied("Operations or admin role required")


async def update_status(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    new_status: LoanStatus,
    notes: str | None = None,
) -> TransitionResponse:
    """Ops override: set any status, not validated against the forward graph."""
    _require_ops(actor)
    loan = await load_loan_for_actor(session, actor, loan_id)
    previous = loan.status

    _advance(loan, new_status, _STEP_FOR[new_status])
    if new_status == LoanStatus.DECLINED and notes:
        loan.decline_reason = notes
    message = f"Status changed from {previous.value} to {new_status.value}"
    if notes:
        message = f"{message}: {notes}"
    reason = actor.override_reason or "operations status update"
    _history(session, loan, actor, f"{message} [override] {reason}", event=HistoryEvent.OVERRIDE)
    await record_loan_event(
        session,
        loan,
        AuditEventType.STATUS_OVERRIDE,
        user_id=actor.user_id,
        user_role=actor.role.value,
        details={"from": previous.value, "to": new_status.value, "notes": notes, "reason": reason},
    )
    await notify_user(
        session,
        loan.user_id,
        loan_id=loan.id,
        notification_type="status_update",
        title="Loan Status Updated",
        message=f"{loan.loan_number} is now {new_status.value.replace('_', ' ')}",
    )
    await _commit(session, loan)
    logger.warning(
        "Status override by %s on loan %s: %s -> %s",
        actor.user_id, loan.loan_number, previous.value, new_status.value,
    )
    return _response(loan, message)


async def decline_quote(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    reason: str,
) -> TransitionResponse:
    """Ops disapproval of a quote request: -> declined (step max(current, 3))."""
    _require_ops(actor)
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "decline_quote")
    gates.edge(loan, LoanStatus.DECLINED)

    loan.decline_reason = reason
    _advance(loan, LoanStatus.DECLINED, _STEP_FOR[LoanStatus.DECLINED])
    message = f"Quote declined: {reason}"
    _history(session, loan, actor, gates.note(message))
    await notify_user(
        session,
        loan.user_id,
        loan_id=loan.id,
        notification_type="quote_declined",
        title="Quote Request Declined",
        message=f"{loan.loan_number}: {reason}",
    )
    await gates.record(session, loan)
    await _commit(session, loan)
    return _response(loan, message, gates)


async def schedule_closing(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    closing_date: datetime,
) -> TransitionResponse:
    """clear_to_close -> closing_scheduled (step 11)."""
    _require_ops(actor)
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "schedule_closing")
    gates.edge(loan, LoanStatus.CLOSING_SCHEDULED)

    loan.closing_date = closing_date
    _advance(loan, LoanStatus.CLOSING_SCHEDULED, _STEP_FOR[LoanStatus.CLOSING_SCHEDULED])
    message = f"Closing scheduled for {closing_date.date().isoformat()}"
    _history(session, loan, actor, gates.note(message))
    await notify_user(
        session,
        loan.user_id,
        loan_id=loan.id,
        notification_type="closing_scheduled",
        title="Closing Scheduled",
        message=f"{loan.loan_number}: {message}",
    )
    await gates.record(session, loan)
    await _commit(session, loan)
    return _response(loan, message, gates)


async def fund_loan(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    funded_amount,
) -> TransitionResponse:
    """closing_scheduled -> funded (step 12)."""
    _require_ops(actor)
    loan = await load_loan_for_actor(session, actor, loan_id)
    gates = _Gates(actor, "fund_loan")
    gates.edge(loan, LoanStatus.FUNDED)

    loan.funded_amount = funded_amount
    loan.funded_at = datetime.now(UTC)
    _advance(loan, LoanStatus.FUNDED, _STEP_FOR[LoanStatus.FUNDED])
    message = f"Loan funded: ${float(funded_amount):,.2f}"
    _history(session, loan, actor, gates.note(message))
    await gates.record(session, loan)
    await _commit(session, loan)
    logger.info("Loan %s funded", loan.loan_number)
    return _response(loan, message, gates)


async def transfer_ownership(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    new_owner_id: str,
    reason: str,
) -> TransitionResponse:
    """Admin-confirmed re-ownership of a loan (status unchanged)."""
    if actor.role != UserRole.ADMIN:
        raise AccessDenied("Admin role required to transfer loan ownership")
    loan = await load_loan_for_actor(session, actor, loan_id)
    new_owner = await session.get(User, new_owner_id)
    if new_owner is None:
        raise LoanNotFound("User not found")

    previous = loan.user_id
    loan.user_id = new_owner.id
    message = f"Ownership transferred from {previous} to {new_owner.id}: {reason}"
    _history(session, loan, actor, message, event=HistoryEvent.NOTE)
    await record_loan_event(
        session,
        loan,
        AuditEventType.OWNERSHIP_TRANSFER,
        user_id=actor.user_id,
        user_role=actor.role.value,
        details={"from": previous, "to": new_owner.id, "reason": reason},
    )
    await _commit(session, loan)
    logger.warning("Loan %s ownership transferred %s -> %s", loan.loan_number, previous, new_owner.id)
    return _response(loan, message)
