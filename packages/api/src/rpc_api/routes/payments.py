# This project was developed with assistance from AI tools.
"""Fee payment routes: intents, confirmations, and the provider webhook."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import ValidationError
from rpc_db import get_db
from rpc_db.enums import UserRole
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.auth import Actor
from ..schemas.payment import (
    PaymentConfirmRequest,
    PaymentConfirmResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentResponse,
    PaymentStatusResponse,
    WebhookEvent,
)
from ..services import loans as loan_service
from ..services import payments as payment_service

logger = logging.getLogger(__name__)

router = APIRouter()

_PAYER_ROLES = (
    UserRole.BORROWER,
    UserRole.BROKER,
    UserRole.OPERATIONS,
    UserRole.ADMIN,
)

_CONFIRMED_EVENTS = {"payment_intent.succeeded"}


@router.post(
    "/intent",
    response_model=PaymentIntentResponse,
    dependencies=[Depends(require_roles(*_PAYER_ROLES))],
)
async def create_payment_intent(
    body: PaymentIntentRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PaymentIntentResponse:
    return await payment_service.create_payment_intent(
        session, Actor.from_user(user), body.loan_id, body.payment_type,
    )


@router.post(
    "/confirm",
    response_model=PaymentConfirmResponse,
    dependencies=[Depends(require_roles(*_PAYER_ROLES))],
)
async def confirm_payment(
    body: PaymentConfirmRequest,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PaymentConfirmResponse:
    """Client-side confirmation after the provider reports success."""
    return await payment_service.confirm_payment(
        session, Actor.from_user(user), body.loan_id, body.payment_intent_id,
    )


@router.post("/webhook", response_model=None)
async def payment_webhook(
    request: Request,
    x_payment_signature: str | None = Header(default=None),
    session: AsyncSession = Depends(get_db),
):
    """Provider callback. Unauthenticated; trusted only via the HMAC signature."""
    body = await request.body()
    if not payment_service.verify_webhook_signature(body, x_payment_signature):
        logger.warning("Rejected payment webhook with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )
    try:
        event = WebhookEvent.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc.errors()),
        ) from exc

    if event.type not in _CONFIRMED_EVENTS:
        logger.info("Ignoring payment webhook event %s", event.type)
        return {"received": True}
    return await payment_service.on_payment_confirmed(
        session, event.payment_intent_id, event.loan_id, event.payment_type,
    )


@router.get(
    "/loan/{loan_id}",
    response_model=PaymentStatusResponse,
    dependencies=[Depends(require_roles(*_PAYER_ROLES, UserRole.INVESTOR))],
)
async def get_loan_payments(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> PaymentStatusResponse:
    """Payments for a loan plus the fee flag summary."""
    loan = await loan_service.get_loan(session, user, loan_id)
    if loan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loan not found",
        )
    payments = await payment_service.list_payments(session, loan_id)
    return PaymentStatusResponse(
        loan_id=loan.id,
        payments=[PaymentResponse.model_validate(p) for p in payments],
        credit_authorized=loan.credit_authorized,
        application_fee_paid=loan.application_fee_paid,
        appraisal_paid=loan.appraisal_paid,
        underwriting_fee_paid=loan.underwriting_fee_paid,
        closing_fee_paid=loan.closing_fee_paid,
    )
