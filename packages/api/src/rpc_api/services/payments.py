# This project was developed with assistance from AI tools.
"""Fee payment intents and confirmations.

The payment provider is an injected collaborator. Confirmation arrives
either from the client (``/confirm``) or from a signed provider webhook;
both funnel into ``on_payment_confirmed``, which is idempotent per
provider payment id.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime
from typing import Protocol

from rpc_db import LoanRequest, Payment
from rpc_db.enums import PaymentStatus, PaymentType
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import Actor
from ..schemas.payment import PaymentConfirmResponse, PaymentIntentResponse
from .errors import LoanNotFound, LoanWorkflowError, PaymentInProgress, PreconditionFailed
from .fees import FEE_LABELS, fee_amount_cents, is_fee_paid
from .loans import load_loan_for_actor
from .transitions import record_fee_payment

logger = logging.getLogger(__name__)


class PaymentProvider(Protocol):
    async def create_payment_intent(self, amount_cents: int, metadata: dict) -> dict: ...


class MockPaymentProvider:
    """Provider used when no real gateway is configured. Every intent succeeds."""

    mock = True

    async def create_payment_intent(self, amount_cents: int, metadata: dict) -> dict:
        intent_id = f"pi_mock_{secrets.token_hex(12)}"
        return {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_{secrets.token_hex(8)}",
            "amount": amount_cents,
            "metadata": metadata,
        }


_provider: PaymentProvider = MockPaymentProvider()


def get_payment_provider() -> PaymentProvider:
    return _provider


def set_payment_provider(provider: PaymentProvider) -> None:
    """Swap the payment backend (app startup, tests)."""
    global _provider  # noqa: PLW0603
    _provider = provider


async def create_payment_intent(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    payment_type: PaymentType,
) -> PaymentIntentResponse:
    """Open a provider intent for one fee and record it as pending."""
    loan = await load_loan_for_actor(session, actor, loan_id, for_update=False)
    if is_fee_paid(loan, payment_type):
        raise LoanWorkflowError(f"Fee already paid: {FEE_LABELS[payment_type]}")
    if payment_type == PaymentType.APPRAISAL and not loan.term_sheet_url:
        raise PreconditionFailed(
            "Formal term sheet must be generated before authorizing the appraisal"
        )
    pending = await session.scalar(
        select(Payment.provider_payment_id)
        .where(
            Payment.loan_id == loan.id,
            Payment.payment_type == payment_type,
            Payment.status == PaymentStatus.PENDING,
        )
        .limit(1)
    )
    if pending is not None:
        raise PaymentInProgress(
            f"Payment already in progress: {FEE_LABELS[payment_type]}",
            payment_intent_id=pending,
        )

    amount_cents = fee_amount_cents(loan, payment_type)
    provider = get_payment_provider()
    intent = await provider.create_payment_intent(
        amount_cents,
        {
            "loan_id": str(loan.id),
            "loan_number": loan.loan_number,
            "payment_type": payment_type.value,
            "user_id": actor.user_id,
        },
    )

    session.add(
        Payment(
            loan_id=loan.id,
            payment_type=payment_type,
            amount_cents=amount_cents,
            provider_payment_id=intent["id"],
            status=PaymentStatus.PENDING,
            created_by=actor.user_id,
        )
    )
    await session.commit()
    logger.info(
        "Payment intent %s created for loan %s (%s, %d cents)",
        intent["id"], loan.loan_number, payment_type.value, amount_cents,
    )
    return PaymentIntentResponse(
        client_secret=intent["client_secret"],
        payment_intent_id=intent["id"],
        payment_type=payment_type,
        amount=amount_cents / 100,
        mock=bool(getattr(provider, "mock", False)),
    )


async def on_payment_confirmed(
    session: AsyncSession,
    payment_id: str,
    loan_id: int,
    payment_type: PaymentType | None = None,
    *,
    actor_id: str | None = None,
) -> PaymentConfirmResponse:
    """Mark a payment succeeded and set its loan flag.

    A second confirmation of the same payment writes nothing.
    """
    result = await session.execute(
        select(Payment)
        .where(Payment.provider_payment_id == payment_id)
        .with_for_update()
    )
    payment = result.scalar_one_or_none()
    if payment is None or payment.loan_id != loan_id:
        raise LoanNotFound("Payment not found")
    if payment_type is not None and payment.payment_type != payment_type:
        raise LoanWorkflowError(
            f"Payment {payment_id} is a {payment.payment_type.value} payment, not {payment_type.value}"
        )

    loan = (
        await session.execute(
            select(LoanRequest).where(LoanRequest.id == loan_id).with_for_update()
        )
    ).scalar_one()

    if payment.status == PaymentStatus.SUCCEEDED:
        logger.info("Payment %s already confirmed", payment_id)
        return PaymentConfirmResponse(
            loan_id=loan.id,
            payment_type=payment.payment_type,
            already_confirmed=True,
            current_step=loan.current_step,
        )

    payment.status = PaymentStatus.SUCCEEDED
    payment.confirmed_at = datetime.now(UTC)
    await record_fee_payment(session, loan, payment.payment_type, payment_id, actor_id)
    await session.commit()
    logger.info(
        "Payment %s confirmed for loan %s (%s)",
        payment_id, loan.loan_number, payment.payment_type.value,
    )
    return PaymentConfirmResponse(
        loan_id=loan.id,
        payment_type=payment.payment_type,
        already_confirmed=False,
        current_step=loan.current_step,
    )


async def confirm_payment(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    payment_id: str,
) -> PaymentConfirmResponse:
    """Client-side confirmation. The caller must be able to act on the loan."""
    await load_loan_for_actor(session, actor, loan_id, for_update=False)
    return await on_payment_confirmed(session, payment_id, loan_id, actor_id=actor.user_id)


def sign_webhook_payload(body: bytes, secret: str | None = None) -> str:
    secret = settings.PAYMENT_WEBHOOK_SECRET if secret is None else secret
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_webhook_signature(body: bytes, signature: str | None, secret: str | None = None) -> bool:
    """Constant-time check of the ``X-Payment-Signature`` header (hex HMAC-SHA256)."""
    if not signature:
        return False
    return hmac.compare_digest(sign_webhook_payload(body, secret), signature.strip().lower())


async def list_payments(session: AsyncSession, loan_id: int) -> list[Payment]:
    """Payments for a loan, oldest first.

    Does NOT enforce data scope -- caller must check access to the loan first.
    """
    result = await session.execute(
        select(Payment).where(Payment.loan_id == loan_id).order_by(Payment.id.asc())
    )
    return list(result.scalars().all())
