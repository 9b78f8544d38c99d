# This project was developed with assistance from AI tools.
"""Loan request schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from rpc_db.enums import (
    BorrowerType,
    HistoryEvent,
    LoanStatus,
    PropertyType,
    RequestType,
)

from . import Pagination
from .quote import SoftQuote


class PropertyInfo(BaseModel):
    """Property and financing fields a borrower supplies."""

    property_address: str | None = None
    property_city: str | None = None
    property_state: str | None = Field(default=None, max_length=2)
    property_zip: str | None = Field(default=None, max_length=10)
    property_type: PropertyType | None = None
    residential_units: int | None = Field(default=None, ge=1)
    is_portfolio: bool | None = None
    portfolio_count: int | None = Field(default=None, ge=1)
    commercial_type: str | None = None
    request_type: RequestType | None = None
    transaction_type: str | None = None
    borrower_type: BorrowerType | None = None
    documentation_type: str | None = None
    loan_product: str | None = None
    property_value: Decimal | None = Field(default=None, gt=0)
    requested_ltv: float | None = Field(default=None, gt=0, le=100)
    annual_rental_income: Decimal | None = Field(default=None, ge=0)
    annual_operating_expenses: Decimal | None = Field(default=None, ge=0)
    annual_loan_payments: Decimal | None = Field(default=None, ge=0)


class LoanCreateRequest(PropertyInfo):
    broker_id: str | None = None


class LoanUpdateRequest(PropertyInfo):
    pass


class StatusHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: LoanStatus
    step: int
    event: HistoryEvent
    changed_by: str | None = None
    notes: str | None = None
    created_at: datetime | None = None


class LoanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    loan_number: str
    user_id: str
    broker_id: str | None = None
    processor_id: str | None = None
    property_address: str | None = None
    property_city: str | None = None
    property_state: str | None = None
    property_zip: str | None = None
    property_type: PropertyType | None = None
    residential_units: int | None = None
    is_portfolio: bool = False
    portfolio_count: int | None = None
    commercial_type: str | None = None
    request_type: RequestType | None = None
    transaction_type: str | None = None
    borrower_type: BorrowerType | None = None
    documentation_type: str | None = None
    loan_product: str | None = None
    property_value: Decimal | None = None
    requested_ltv: float | None = None
    loan_amount: Decimal | None = None
    annual_rental_income: Decimal | None = None
    annual_operating_expenses: Decimal | None = None
    annual_loan_payments: Decimal | None = None
    noi: Decimal | None = None
    dscr_ratio: float | None = None
    status: LoanStatus
    current_step: int
    decline_reason: str | None = None
    soft_quote_generated: bool = False
    term_sheet_signed: bool = False
    credit_authorized: bool = False
    appraisal_paid: bool = False
    application_fee_paid: bool = False
    underwriting_fee_paid: bool = False
    closing_fee_paid: bool = False
    full_application_completed: bool = False
    dscr_auto_declined: bool = False
    soft_quote_data: dict | None = None
    interest_rate_min: float | None = None
    interest_rate_max: float | None = None
    application_pdf_url: str | None = None
    term_sheet_url: str | None = None
    term_sheet_signed_at: datetime | None = None
    closing_date: datetime | None = None
    funded_amount: Decimal | None = None
    funded_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoanDetailResponse(LoanResponse):
    history: list[StatusHistoryEntry] = Field(default_factory=list)


class LoanListResponse(BaseModel):
    data: list[LoanResponse]
    pagination: Pagination


class TransitionResponse(BaseModel):
    """Result of a borrower- or ops-driven status change."""

    loan_id: int
    status: LoanStatus
    current_step: int
    message: str
    overrides: list[str] = Field(default_factory=list)


class FullApplicationRequest(BaseModel):
    """Free-form application payload snapshotted onto the loan."""

    model_config = ConfigDict(extra="allow")

    entity_name: str | None = None
    entity_type: str | None = None
    guarantor_name: str | None = None
    experience_years: int | None = Field(default=None, ge=0)
    notes: str | None = None


class FullApplicationResponse(TransitionResponse):
    pdf_url: str
    term_sheet_url: str


class OverrideRequest(BaseModel):
    """Optional justification an ops caller supplies when bypassing a gate."""

    override_reason: str | None = Field(default=None, max_length=1000)


class CompleteNeedsListRequest(OverrideRequest):
    bypass: bool = False


class CompleteNeedsListResponse(TransitionResponse):
    missing_items: list[str] = Field(default_factory=list)


class StatusUpdateRequest(OverrideRequest):
    status: LoanStatus
    notes: str | None = None


class DisapproveQuoteRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class AssignProcessorRequest(BaseModel):
    processor_id: str


class ScheduleClosingRequest(BaseModel):
    closing_date: datetime


class FundLoanRequest(BaseModel):
    funded_amount: Decimal = Field(gt=0)


class TransferOwnershipRequest(BaseModel):
    new_owner_id: str
    reason: str = Field(min_length=1, max_length=1000)


class GenerateNeedsListResponse(BaseModel):
    generated: bool
    items_count: int


class StatusOption(BaseModel):
    status: LoanStatus
    step: int
    label: str


class SoftQuoteResponse(TransitionResponse):
    quote: SoftQuote
