# This project was developed with assistance from AI tools.
"""Tests for DSCR math and underwriting eligibility rules."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from rpc_db.enums import BorrowerType, PropertyType, RequestType

from rpc_api.services.eligibility import (
    calculate_dscr,
    calculate_loan_amount,
    calculate_noi,
    check_eligibility,
    is_dscr_exempt,
    missing_quote_fields,
)


def _loan(**overrides):
    fields = {
        "property_type": PropertyType.RESIDENTIAL,
        "request_type": RequestType.PURCHASE,
        "transaction_type": "rental",
        "borrower_type": BorrowerType.INVESTMENT,
        "property_value": Decimal("500000"),
        "requested_ltv": 70.0,
        "loan_amount": None,
        "residential_units": 1,
        "is_portfolio": False,
        "portfolio_count": None,
        "annual_rental_income": Decimal("60000"),
        "annual_operating_expenses": Decimal("15000"),
        "annual_loan_payments": Decimal("24000"),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ---------------------------------------------------------------------------
# DSCR math
# ---------------------------------------------------------------------------


def test_dscr_is_noi_over_debt_service():
    assert calculate_dscr(60000, 15000, 24000) == 1.875


def test_dscr_accepts_decimals():
    assert calculate_dscr(Decimal("30000"), Decimal("12000"), Decimal("21000")) == 0.857


@pytest.mark.parametrize(
    "income,expenses,payments",
    [(None, 1000, 1000), (1000, None, 1000), (1000, 100, None), (1000, 100, 0)],
)
def test_dscr_undefined_for_incomplete_inputs(income, expenses, payments):
    assert calculate_dscr(income, expenses, payments) is None


def test_noi_and_loan_amount():
    assert calculate_noi(60000, 15000) == 45000
    assert calculate_loan_amount(Decimal("500000"), 70.0) == 350000
    assert calculate_loan_amount(None, 70.0) is None


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------


def test_default_loan_is_eligible():
    result = check_eligibility(_loan())

    assert result.eligible is True
    assert result.errors == []
    assert result.auto_decline is False
    assert result.dscr == 1.875


def test_low_dscr_auto_declines_with_reason():
    result = check_eligibility(
        _loan(annual_rental_income=30000, annual_operating_expenses=12000, annual_loan_payments=21000)
    )

    assert result.eligible is False
    assert result.auto_decline is True
    assert result.decline_reason == "DSCR of 0.86 is below the minimum requirement of 1.00"


def test_dscr_exactly_at_minimum_is_eligible():
    result = check_eligibility(
        _loan(annual_rental_income=30000, annual_operating_expenses=10000, annual_loan_payments=20000)
    )

    assert result.dscr == 1.0
    assert result.auto_decline is False


def test_dscr_that_rounds_up_to_minimum_still_declines():
    # (60000 - 35010) / 25000 = 0.9996
    result = check_eligibility(
        _loan(annual_rental_income=60000, annual_operating_expenses=35010, annual_loan_payments=25000)
    )

    assert result.dscr == 1.0
    assert result.eligible is False
    assert result.auto_decline is True
    assert result.decline_reason == "DSCR of 0.9996 is below the minimum requirement of 1.00"


def test_configurable_dscr_minimum():
    result = check_eligibility(_loan(), dscr_minimum=2.0)

    assert result.auto_decline is True
    assert "minimum requirement of 2.00" in result.decline_reason


@pytest.mark.parametrize(
    "overrides",
    [
        {"borrower_type": BorrowerType.OWNER_OCCUPIED},
        {"transaction_type": "fix_and_flip"},
        {"transaction_type": "Ground_Up_Construction"},
    ],
)
def test_exempt_loans_are_not_declined(overrides):
    loan = _loan(annual_rental_income=10000, annual_operating_expenses=5000, **overrides)

    assert is_dscr_exempt(loan) is True
    result = check_eligibility(loan)
    assert result.dscr_exempt is True
    assert result.auto_decline is False


def test_missing_dscr_inputs_do_not_decline():
    result = check_eligibility(_loan(annual_loan_payments=None))

    assert result.dscr is None
    assert result.eligible is True


def test_ltv_above_property_type_maximum():
    result = check_eligibility(_loan(property_type=PropertyType.COMMERCIAL, requested_ltv=78.0))

    assert result.eligible is False
    assert result.errors == [
        "Requested LTV of 78% exceeds the 75% maximum for this property type."
    ]


def test_loan_amount_bounds():
    result = check_eligibility(_loan(property_value=Decimal("100000"), requested_ltv=50.0))

    assert any("Loan amount must be between" in e for e in result.errors)


def test_portfolio_requires_two_properties():
    result = check_eligibility(_loan(is_portfolio=True, portfolio_count=1))

    assert "Portfolio loans require at least 2 properties." in result.errors


def test_residential_unit_cap():
    result = check_eligibility(_loan(residential_units=6))

    assert "Residential loans cover 1-4 units." in result.errors


def test_non_positive_property_value():
    result = check_eligibility(_loan(property_value=None, requested_ltv=None))

    assert result.errors == ["Property value must be greater than zero."]


def test_missing_quote_fields_uses_labels():
    loan = _loan(property_type=None, request_type="", property_value=None)

    assert missing_quote_fields(loan) == ["Property Type", "Request Type", "Property Value"]
    assert missing_quote_fields(_loan()) == []
