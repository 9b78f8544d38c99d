# This project was developed with assistance from AI tools.
"""Eligibility and soft-quote schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class EligibilityResult(BaseModel):
    """Outcome of the underwriting rule check for a loan."""

    eligible: bool
    errors: list[str] = Field(default_factory=list)
    dscr: float | None = None
    dscr_exempt: bool = False
    auto_decline: bool = False
    decline_reason: str | None = None


class QuoteTerm(BaseModel):
    months: int
    rate_min: float
    rate_max: float
    label: str


class SoftQuote(BaseModel):
    """Indicative (free) quote. Deterministic for identical loan inputs."""

    approved: bool = True
    decline_reason: str | None = None
    loan_amount: float
    property_value: float
    ltv: float
    dscr: float | None = None
    interest_rate_min: float
    interest_rate_max: float
    rate_range: str
    origination_points: float
    origination_fee: float
    processing_fee: float
    underwriting_fee: float
    appraisal_fee: float
    total_closing_costs: float
    estimated_monthly_payment: float
    terms: list[QuoteTerm]
    disclaimer: str
    generated_at: datetime
    valid_until: datetime
