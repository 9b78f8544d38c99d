# This project was developed with assistance from AI tools.
"""Soft-quote generation.

Pure math, no I/O. Given identical loan inputs the quote is identical
apart from its ``generated_at`` / ``valid_until`` timestamps.
"""

from datetime import UTC, datetime, timedelta

from rpc_db.enums import PropertyType

from ..core.config import settings
from ..schemas.quote import QuoteTerm, SoftQuote
from .eligibility import as_float, calculate_dscr, calculate_loan_amount

BASE_RATE: dict[PropertyType, float] = {
    PropertyType.RESIDENTIAL: 6.5,
    PropertyType.COMMERCIAL: 7.0,
}
LTV_PIVOT = 70.0
LTV_RATE_STEP = 0.1
NO_RENTAL_BASIS_PREMIUM = 0.5
NO_RENTAL_BASIS_TRANSACTIONS = frozenset({"fix_and_flip", "ground_up_construction"})
STRONG_DSCR = 1.25
STRONG_DSCR_DISCOUNT = 0.25
RATE_SPREAD = 1.0
MIN_POINTS = 1.0

PROCESSING_FEE = 995.0
UNDERWRITING_FEE = 1495.0
APPRAISAL_FEE = {PropertyType.COMMERCIAL: 750.0, PropertyType.RESIDENTIAL: 500.0}

TERM_OPTIONS = ((12, 0.0), (18, 0.25), (24, 0.5))

DISCLAIMER = (
    "This soft quote is an estimate based on the information provided and is not a "
    "commitment to lend. Final terms are subject to credit review, appraisal, and "
    "underwriting approval."
)


def base_rate(property_type, ltv: float, transaction_type: str | None, dscr: float | None) -> float:
    rate = BASE_RATE.get(property_type, BASE_RATE[PropertyType.COMMERCIAL])
    rate += (ltv - LTV_PIVOT) * LTV_RATE_STEP
    if (transaction_type or "").lower() in NO_RENTAL_BASIS_TRANSACTIONS:
        rate += NO_RENTAL_BASIS_PREMIUM
    if dscr is not None and dscr >= STRONG_DSCR:
        rate -= STRONG_DSCR_DISCOUNT
    return round(rate, 3)


def generate_soft_quote_data(loan, *, now: datetime | None = None) -> SoftQuote:
    """Compute rate range, fees, and payment for a loan.

    Raises ValueError when property value or LTV is missing; callers check
    quote fields first.
    """
    property_value = as_float(loan.property_value)
    ltv = as_float(loan.requested_ltv)
    if property_value is None or ltv is None:
        raise ValueError("Property value and requested LTV are required to quote")

    loan_amount = as_float(loan.loan_amount) or calculate_loan_amount(property_value, ltv)
    dscr = calculate_dscr(
        loan.annual_rental_income, loan.annual_operating_expenses, loan.annual_loan_payments
    )

    rate_min = base_rate(loan.property_type, ltv, loan.transaction_type, dscr)
    rate_max = round(rate_min + RATE_SPREAD, 3)
    points = round(max(MIN_POINTS, (rate_min - 6.0) * 0.5), 2)

    origination_fee = round(loan_amount * points / 100, 2)
    appraisal_fee = APPRAISAL_FEE.get(loan.property_type, APPRAISAL_FEE[PropertyType.RESIDENTIAL])
    total_closing_costs = round(
        origination_fee + PROCESSING_FEE + UNDERWRITING_FEE + appraisal_fee, 2
    )
    avg_rate = (rate_min + rate_max) / 2
    monthly_payment = round(loan_amount * avg_rate / 100 / 12, 2)

    terms = [
        QuoteTerm(
            months=months,
            rate_min=round(rate_min + add_on, 3),
            rate_max=round(rate_max + add_on, 3),
            label=f"{months} Months",
        )
        for months, add_on in TERM_OPTIONS
    ]

    generated_at = now or datetime.now(UTC)
    return SoftQuote(
        loan_amount=loan_amount,
        property_value=property_value,
        ltv=ltv,
        dscr=dscr,
        interest_rate_min=rate_min,
        interest_rate_max=rate_max,
        rate_range=f"{rate_min:.2f}% - {rate_max:.2f}%",
        origination_points=points,
        origination_fee=origination_fee,
        processing_fee=PROCESSING_FEE,
        underwriting_fee=UNDERWRITING_FEE,
        appraisal_fee=appraisal_fee,
        total_closing_costs=total_closing_costs,
        estimated_monthly_payment=monthly_payment,
        terms=terms,
        disclaimer=DISCLAIMER,
        generated_at=generated_at,
        valid_until=generated_at + timedelta(days=settings.QUOTE_VALIDITY_DAYS),
    )
