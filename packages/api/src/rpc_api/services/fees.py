# This project was developed with assistance from AI tools.
"""Fee schedule and the loan flag each fee type sets."""

from rpc_db.enums import PaymentType, PropertyType

from ..core.config import settings

FEE_LABELS: dict[PaymentType, str] = {
    PaymentType.CREDIT_CHECK: "Credit check",
    PaymentType.APPLICATION_FEE: "Application fee",
    PaymentType.APPRAISAL: "Appraisal",
    PaymentType.UNDERWRITING_FEE: "Underwriting fee",
    PaymentType.CLOSING_FEE: "Closing fee",
}

# Loan flag that becomes (and stays) True once the fee is confirmed.
PAID_FLAG: dict[PaymentType, str] = {
    PaymentType.CREDIT_CHECK: "credit_authorized",
    PaymentType.APPLICATION_FEE: "application_fee_paid",
    PaymentType.APPRAISAL: "appraisal_paid",
    PaymentType.UNDERWRITING_FEE: "underwriting_fee_paid",
    PaymentType.CLOSING_FEE: "closing_fee_paid",
}


def fee_amount_cents(loan, payment_type: PaymentType) -> int:
    if payment_type == PaymentType.CREDIT_CHECK:
        return settings.CREDIT_CHECK_FEE_CENTS
    if payment_type == PaymentType.APPLICATION_FEE:
        return settings.APPLICATION_FEE_CENTS
    if payment_type == PaymentType.UNDERWRITING_FEE:
        return settings.UNDERWRITING_FEE_CENTS
    if payment_type == PaymentType.CLOSING_FEE:
        return settings.CLOSING_FEE_CENTS
    if loan.property_type == PropertyType.COMMERCIAL:
        return settings.APPRAISAL_FEE_COMMERCIAL_CENTS
    return settings.APPRAISAL_FEE_RESIDENTIAL_CENTS


def fee_amount(loan, payment_type: PaymentType) -> float:
    """Fee in dollars."""
    return fee_amount_cents(loan, payment_type) / 100


def is_fee_paid(loan, payment_type: PaymentType) -> bool:
    return bool(getattr(loan, PAID_FLAG[payment_type]))
