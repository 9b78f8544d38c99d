# This project was developed with assistance from AI tools.
"""Fee payment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from rpc_db.enums import PaymentStatus, PaymentType


class PaymentIntentRequest(BaseModel):
    loan_id: int
    payment_type: PaymentType


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    payment_type: PaymentType
    amount: float
    mock: bool = False


class PaymentConfirmRequest(BaseModel):
    loan_id: int
    payment_intent_id: str


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_id: int
    payment_type: PaymentType
    amount_cents: int
    provider_payment_id: str
    status: PaymentStatus
    created_at: datetime | None = None
    confirmed_at: datetime | None = None


class PaymentConfirmResponse(BaseModel):
    loan_id: int
    payment_type: PaymentType
    already_confirmed: bool
    current_step: int


class PaymentStatusResponse(BaseModel):
    loan_id: int
    payments: list[PaymentResponse]
    credit_authorized: bool
    application_fee_paid: bool
    appraisal_paid: bool
    underwriting_fee_paid: bool
    closing_fee_paid: bool


class WebhookEvent(BaseModel):
    """Provider callback body (signature verified before parsing)."""

    type: str
    payment_intent_id: str
    loan_id: int
    payment_type: PaymentType
