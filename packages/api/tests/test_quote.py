# This project was developed with assistance from AI tools.
"""Tests for soft-quote generation."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from rpc_db.enums import PropertyType

from rpc_api.services.quote import base_rate, generate_soft_quote_data

NOW = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)


def _loan(**overrides):
    fields = {
        "property_type": PropertyType.RESIDENTIAL,
        "transaction_type": "rental",
        "property_value": Decimal("500000"),
        "requested_ltv": 70.0,
        "loan_amount": Decimal("350000"),
        "annual_rental_income": Decimal("60000"),
        "annual_operating_expenses": Decimal("15000"),
        "annual_loan_payments": Decimal("24000"),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_default_quote_terms():
    quote = generate_soft_quote_data(_loan(), now=NOW)

    assert quote.interest_rate_min == pytest.approx(6.25)
    assert quote.interest_rate_max == pytest.approx(7.25)
    assert quote.rate_range == "6.25% - 7.25%"
    assert quote.origination_points == pytest.approx(1.0)
    assert quote.loan_amount == pytest.approx(350000)
    assert quote.origination_fee == pytest.approx(3500)
    assert quote.total_closing_costs == pytest.approx(6490)
    assert quote.estimated_monthly_payment == pytest.approx(1968.75)
    assert quote.dscr == pytest.approx(1.875)


def test_quote_is_deterministic_apart_from_timestamps():
    first = generate_soft_quote_data(_loan(), now=NOW)
    second = generate_soft_quote_data(_loan(), now=NOW + timedelta(hours=3))

    exclude = {"generated_at", "valid_until"}
    assert first.model_dump(exclude=exclude) == second.model_dump(exclude=exclude)


def test_quote_validity_window():
    quote = generate_soft_quote_data(_loan(), now=NOW)

    assert quote.generated_at == NOW
    assert quote.valid_until == NOW + timedelta(days=30)


def test_term_options_add_on():
    quote = generate_soft_quote_data(_loan(), now=NOW)

    assert [(t.months, t.rate_min) for t in quote.terms] == [(12, 6.25), (18, 6.5), (24, 6.75)]
    assert quote.terms[0].label == "12 Months"


def test_commercial_quote_uses_commercial_base_and_appraisal():
    quote = generate_soft_quote_data(
        _loan(property_type=PropertyType.COMMERCIAL), now=NOW
    )

    assert quote.interest_rate_min == pytest.approx(6.75)
    assert quote.appraisal_fee == pytest.approx(750)


def test_loan_amount_derived_when_missing():
    quote = generate_soft_quote_data(_loan(loan_amount=None, requested_ltv=60.0), now=NOW)

    assert quote.loan_amount == pytest.approx(300000)


@pytest.mark.parametrize(
    "ltv,transaction,dscr,expected",
    [
        (70.0, "rental", 1.3, 6.25),
        (75.0, "rental", 1.1, 7.0),
        (65.0, "fix_and_flip", None, 6.5),
    ],
)
def test_base_rate_adjustments(ltv, transaction, dscr, expected):
    assert base_rate(PropertyType.RESIDENTIAL, ltv, transaction, dscr) == pytest.approx(expected)


def test_higher_rate_raises_points():
    quote = generate_soft_quote_data(
        _loan(
            property_type=PropertyType.COMMERCIAL,
            transaction_type="fix_and_flip",
            requested_ltv=80.0,
            loan_amount=None,
            annual_loan_payments=Decimal("44000"),
        ),
        now=NOW,
    )

    # 7.0 base + 1.0 LTV + 0.5 no-rental premium, no strong-DSCR discount
    assert quote.interest_rate_min == pytest.approx(8.5)
    assert quote.origination_points == pytest.approx(1.25)
    assert quote.origination_fee == pytest.approx(5000)


def test_missing_inputs_raise():
    with pytest.raises(ValueError):
        generate_soft_quote_data(_loan(requested_ltv=None), now=NOW)
