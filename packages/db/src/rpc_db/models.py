# This project was developed with assistance from AI tools.
"""
RPC Lending -- domain models

Bridge-loan origination models covering borrowers, loan requests, the
status history log, needs-list slots, uploaded documents, fee payments,
notifications, closing checklist items, and the audit trail.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship, validates

from .database import Base
from .enums import (
    BorrowerType,
    DocumentStatus,
    HistoryEvent,
    LoanStatus,
    PaymentStatus,
    PaymentType,
    PropertyType,
    RequestType,
    UserRole,
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _enum_values(enum_cls) -> list[str]:
    """Persist enum values (not member names) so rows match migration defaults."""
    return [member.value for member in enum_cls]


# Gating flags that may flip False -> True but never back.
MONOTONE_FLAGS = (
    "soft_quote_generated",
    "term_sheet_signed",
    "credit_authorized",
    "appraisal_paid",
    "application_fee_paid",
    "underwriting_fee_paid",
    "closing_fee_paid",
    "full_application_completed",
    "dscr_auto_declined",
)


class User(Base):
    """Platform user linked to a Keycloak identity (``id`` is the token subject)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=UserRole.BORROWER,
    )
    email_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', role='{self.role}')>"


class LoanRequest(Base):
    """One bridge-loan request per borrower-property application."""

    __tablename__ = "loan_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_number = Column(String(20), unique=True, nullable=False, index=True)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=False, index=True)
    broker_id = Column(String(255), ForeignKey("users.id"), nullable=True, index=True)
    processor_id = Column(String(255), nullable=True)

    # Property
    property_address = Column(Text, nullable=True)
    property_city = Column(String(100), nullable=True)
    property_state = Column(String(2), nullable=True)
    property_zip = Column(String(10), nullable=True)
    property_type = Column(
        Enum(PropertyType, name="property_type", native_enum=False, values_callable=_enum_values),
        nullable=True,
    )
    residential_units = Column(Integer, nullable=True)
    is_portfolio = Column(Boolean, nullable=False, default=False)
    portfolio_count = Column(Integer, nullable=True)
    commercial_type = Column(String(100), nullable=True)

    # Financing request
    request_type = Column(
        Enum(RequestType, name="request_type", native_enum=False, values_callable=_enum_values),
        nullable=True,
    )
    transaction_type = Column(String(50), nullable=True)
    borrower_type = Column(
        Enum(BorrowerType, name="borrower_type", native_enum=False, values_callable=_enum_values),
        nullable=True,
    )
    documentation_type = Column(String(50), nullable=True)
    loan_product = Column(String(50), nullable=True)
    property_value = Column(Numeric(14, 2), nullable=True)
    requested_ltv = Column(Float, nullable=True)
    loan_amount = Column(Numeric(14, 2), nullable=True)
    annual_rental_income = Column(Numeric(14, 2), nullable=True)
    annual_operating_expenses = Column(Numeric(14, 2), nullable=True)
    annual_loan_payments = Column(Numeric(14, 2), nullable=True)
    noi = Column(Numeric(14, 2), nullable=True)
    dscr_ratio = Column(Float, nullable=True)

    # Lifecycle
    status = Column(
        Enum(LoanStatus, name="loan_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=LoanStatus.NEW_REQUEST,
    )
    current_step = Column(Integer, nullable=False, default=1)
    decline_reason = Column(Text, nullable=True)

    # Gating flags
    soft_quote_generated = Column(Boolean, nullable=False, default=False)
    term_sheet_signed = Column(Boolean, nullable=False, default=False)
    credit_authorized = Column(Boolean, nullable=False, default=False)
    appraisal_paid = Column(Boolean, nullable=False, default=False)
    application_fee_paid = Column(Boolean, nullable=False, default=False)
    underwriting_fee_paid = Column(Boolean, nullable=False, default=False)
    closing_fee_paid = Column(Boolean, nullable=False, default=False)
    full_application_completed = Column(Boolean, nullable=False, default=False)
    dscr_auto_declined = Column(Boolean, nullable=False, default=False)
    credit_payment_id = Column(String(255), nullable=True)
    appraisal_payment_id = Column(String(255), nullable=True)

    # Quote and artifacts
    soft_quote_data = Column(JSON, nullable=True)
    interest_rate_min = Column(Float, nullable=True)
    interest_rate_max = Column(Float, nullable=True)
    application_data = Column(JSON, nullable=True)
    application_pdf_url = Column(Text, nullable=True)
    term_sheet_url = Column(Text, nullable=True)
    term_sheet_signed_at = Column(DateTime(timezone=True), nullable=True)

    # Closing
    closing_date = Column(DateTime(timezone=True), nullable=True)
    funded_amount = Column(Numeric(14, 2), nullable=True)
    funded_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    owner = relationship("User", foreign_keys=[user_id])
    history = relationship(
        "LoanStatusHistory", back_populates="loan", cascade="all, delete-orphan",
        order_by="LoanStatusHistory.id",
    )
    needs_list_items = relationship(
        "NeedsListItem", back_populates="loan", cascade="all, delete-orphan",
    )
    documents = relationship(
        "Document", back_populates="loan", cascade="all, delete-orphan",
    )
    payments = relationship(
        "Payment", back_populates="loan", cascade="all, delete-orphan",
    )
    closing_checklist_items = relationship(
        "ClosingChecklistItem", back_populates="loan", cascade="all, delete-orphan",
        order_by="ClosingChecklistItem.id",
    )

    @validates(*MONOTONE_FLAGS)
    def _validate_monotone_flag(self, key, value):
        if getattr(self, key, None) and not value:
            raise ValueError(f"{key} is set-once and cannot be cleared")
        return value

    @validates("current_step")
    def _validate_current_step(self, key, value):
        current = getattr(self, key, None)
        if current is not None and value is not None and value < current:
            raise ValueError(f"current_step cannot decrease ({current} -> {value})")
        return value

    def __repr__(self):
        return f"<LoanRequest(id={self.id}, number='{self.loan_number}', status='{self.status}')>"


class LoanStatusHistory(Base):
    """Append-only transition log. One row per committed transition."""

    __tablename__ = "loan_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(
        Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = Column(
        Enum(LoanStatus, name="loan_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    step = Column(Integer, nullable=False)
    event = Column(
        Enum(HistoryEvent, name="history_event", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=HistoryEvent.TRANSITION,
    )
    changed_by = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)

    loan = relationship("LoanRequest", back_populates="history")

    def __repr__(self):
        return f"<LoanStatusHistory(loan_id={self.loan_id}, status='{self.status}', step={self.step})>"


class NeedsListItem(Base):
    """A required-document slot for a loan. ``category`` names the folder."""

    __tablename__ = "needs_list_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(
        Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    loan_type = Column(String(50), nullable=True)
    is_required = Column(Boolean, nullable=True, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)

    loan = relationship("LoanRequest", back_populates="needs_list_items")

    def __repr__(self):
        return f"<NeedsListItem(id={self.id}, name='{self.name}')>"


class Document(Base):
    """Uploaded file. Fulfills a needs-list slot via needs_list_item_id (or legacy category)."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(
        Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    needs_list_item_id = Column(
        Integer, ForeignKey("needs_list_items.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    uploaded_by = Column(String(255), nullable=False)
    name = Column(String(500), nullable=False)
    category = Column(String(255), nullable=True)
    file_url = Column(Text, nullable=True)
    content_type = Column(String(100), nullable=True)
    size_bytes = Column(Integer, nullable=True)
    status = Column(
        Enum(DocumentStatus, name="document_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=DocumentStatus.PENDING,
    )
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)

    loan = relationship("LoanRequest", back_populates="documents")

    def __repr__(self):
        return f"<Document(id={self.id}, name='{self.name}', category='{self.category}')>"


class Payment(Base):
    """A fee payment intent and its confirmation state."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(
        Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    payment_type = Column(
        Enum(PaymentType, name="payment_type", native_enum=False, values_callable=_enum_values),
        nullable=False,
    )
    amount_cents = Column(Integer, nullable=False)
    provider_payment_id = Column(String(255), unique=True, nullable=False, index=True)
    status = Column(
        Enum(PaymentStatus, name="payment_status", native_enum=False, values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    loan = relationship("LoanRequest", back_populates="payments")

    def __repr__(self):
        return f"<Payment(id={self.id}, type='{self.payment_type}', status='{self.status}')>"


class ClosingChecklistItem(Base):
    """A pre-closing task the borrower ticks off (title, wiring, insurance binder)."""

    __tablename__ = "closing_checklist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(
        Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_by = Column(String(255), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    loan = relationship("LoanRequest", back_populates="closing_checklist_items")

    def __repr__(self):
        return f"<ClosingChecklistItem(id={self.id}, name='{self.name}', completed={self.completed})>"


class Notification(Base):
    """In-app notification row for a single user."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=False, index=True)
    loan_id = Column(Integer, ForeignKey("loan_requests.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id='{self.user_id}', type='{self.type}')>"


class AuditEvent(Base):
    """Append-only audit trail. INSERT + SELECT only -- no UPDATE or DELETE."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), default=_utcnow, nullable=False)
    prev_hash = Column(String(64), nullable=True)
    user_id = Column(String(255), nullable=True)
    user_role = Column(String(50), nullable=True)
    event_type = Column(String(100), nullable=False, index=True)
    loan_id = Column(Integer, nullable=True, index=True)
    event_data = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<AuditEvent(id={self.id}, type='{self.event_type}')>"
