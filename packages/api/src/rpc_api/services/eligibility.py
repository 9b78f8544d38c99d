# This project was developed with assistance from AI tools.
"""DSCR and eligibility rules.

Pure math over loan attributes, no I/O. Evaluated at submit-for-quote
time and again before a soft quote is issued.
"""

from decimal import Decimal

from rpc_db.enums import BorrowerType, PropertyType

from ..core.config import settings
from ..schemas.quote import EligibilityResult

# Loans whose repayment does not come from rental income are not DSCR-gated.
DSCR_EXEMPT_BORROWER_TYPES = frozenset({BorrowerType.OWNER_OCCUPIED})
DSCR_EXEMPT_TRANSACTION_TYPES = frozenset({"fix_and_flip", "ground_up_construction", "bridge"})

MAX_LTV: dict[PropertyType, float] = {
    PropertyType.RESIDENTIAL: 80.0,
    PropertyType.COMMERCIAL: 75.0,
}
MIN_LOAN_AMOUNT = 75_000
MAX_LOAN_AMOUNT = 20_000_000
MAX_RESIDENTIAL_UNITS = 4

# Fields that must be present before a quote can be requested, with labels.
REQUIRED_QUOTE_FIELDS: dict[str, str] = {
    "property_type": "Property Type",
    "request_type": "Request Type",
    "property_value": "Property Value",
}


def as_float(value) -> float | None:
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


def calculate_noi(income, expenses) -> float | None:
    """Net operating income; None unless both inputs are present."""
    income, expenses = as_float(income), as_float(expenses)
    if income is None or expenses is None:
        return None
    return round(income - expenses, 2)


def dscr_ratio(income, expenses, payments) -> float | None:
    """Unrounded (income - expenses) / payments, or None when inputs are incomplete."""
    income, expenses, payments = as_float(income), as_float(expenses), as_float(payments)
    if income is None or expenses is None or payments is None or payments <= 0:
        return None
    return (income - expenses) / payments


def calculate_dscr(income, expenses, payments) -> float | None:
    """DSCR rounded to 3 decimals for storage and display."""
    ratio = dscr_ratio(income, expenses, payments)
    return None if ratio is None else round(ratio, 3)


def _format_ratio(value: float, minimum: float) -> str:
    # 2 decimals unless that would round a shortfall up to the minimum
    text = f"{value:.2f}"
    return text if float(text) < minimum else f"{value:.4f}"


def calculate_loan_amount(property_value, requested_ltv) -> float | None:
    property_value, requested_ltv = as_float(property_value), as_float(requested_ltv)
    if property_value is None or requested_ltv is None:
        return None
    return round(property_value * requested_ltv / 100, 2)


def missing_quote_fields(loan) -> list[str]:
    """Labels of the fields a quote request still needs."""
    return [label for field, label in REQUIRED_QUOTE_FIELDS.items() if getattr(loan, field) in (None, "")]


def is_dscr_exempt(loan) -> bool:
    """True when the loan's repayment is not underwritten on rental income."""
    if loan.borrower_type in DSCR_EXEMPT_BORROWER_TYPES:
        return True
    return (loan.transaction_type or "").lower() in DSCR_EXEMPT_TRANSACTION_TYPES


def check_eligibility(loan, dscr_minimum: float | None = None) -> EligibilityResult:
    """Evaluate underwriting rules for a loan.

    ``auto_decline`` is set only for a DSCR shortfall on a non-exempt loan;
    other failures are returned as ``errors`` for the borrower to correct.
    """
    dscr_minimum = settings.DSCR_MINIMUM if dscr_minimum is None else dscr_minimum
    errors: list[str] = []

    property_value = as_float(loan.property_value)
    if property_value is None or property_value <= 0:
        errors.append("Property value must be greater than zero.")

    ltv = as_float(loan.requested_ltv)
    max_ltv = MAX_LTV.get(loan.property_type, MAX_LTV[PropertyType.COMMERCIAL])
    if ltv is not None and not 0 < ltv <= max_ltv:
        errors.append(f"Requested LTV of {ltv:g}% exceeds the {max_ltv:g}% maximum for this property type.")

    loan_amount = as_float(loan.loan_amount) or calculate_loan_amount(property_value, ltv)
    if loan_amount is not None and not MIN_LOAN_AMOUNT <= loan_amount <= MAX_LOAN_AMOUNT:
        errors.append(
            f"Loan amount must be between ${MIN_LOAN_AMOUNT:,} and ${MAX_LOAN_AMOUNT:,}."
        )

    if loan.is_portfolio:
        if (loan.portfolio_count or 0) < 2:
            errors.append("Portfolio loans require at least 2 properties.")
    elif loan.property_type == PropertyType.RESIDENTIAL and loan.residential_units is not None:
        if not 1 <= loan.residential_units <= MAX_RESIDENTIAL_UNITS:
            errors.append(f"Residential loans cover 1-{MAX_RESIDENTIAL_UNITS} units.")

    ratio = dscr_ratio(
        loan.annual_rental_income, loan.annual_operating_expenses, loan.annual_loan_payments
    )
    dscr = None if ratio is None else round(ratio, 3)
    exempt = is_dscr_exempt(loan)
    auto_decline = ratio is not None and ratio < dscr_minimum and not exempt
    decline_reason = None
    if auto_decline:
        decline_reason = (
            f"DSCR of {_format_ratio(ratio, dscr_minimum)} is below the minimum requirement "
            f"of {dscr_minimum:.2f}"
        )

    return EligibilityResult(
        eligible=not errors and not auto_decline,
        errors=errors,
        dscr=dscr,
        dscr_exempt=exempt,
        auto_decline=auto_decline,
        decline_reason=decline_reason,
    )
