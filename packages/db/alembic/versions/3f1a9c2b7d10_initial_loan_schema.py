# This project was developed with assistance from AI tools.
"""initial loan schema

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-10-05 09:12:41.518203

"""

import sqlalchemy as sa
from alembic import op

revision = "3f1a9c2b7d10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="borrower"),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "loan_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_number", sa.String(20), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("broker_id", sa.String(255), nullable=True),
        sa.Column("processor_id", sa.String(255), nullable=True),
        sa.Column("property_address", sa.Text(), nullable=True),
        sa.Column("property_city", sa.String(100), nullable=True),
        sa.Column("property_state", sa.String(2), nullable=True),
        sa.Column("property_zip", sa.String(10), nullable=True),
        sa.Column("property_type", sa.String(50), nullable=True),
        sa.Column("residential_units", sa.Integer(), nullable=True),
        sa.Column("is_portfolio", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("portfolio_count", sa.Integer(), nullable=True),
        sa.Column("commercial_type", sa.String(100), nullable=True),
        sa.Column("request_type", sa.String(50), nullable=True),
        sa.Column("transaction_type", sa.String(50), nullable=True),
        sa.Column("borrower_type", sa.String(50), nullable=True),
        sa.Column("documentation_type", sa.String(50), nullable=True),
        sa.Column("loan_product", sa.String(50), nullable=True),
        sa.Column("property_value", sa.Numeric(14, 2), nullable=True),
        sa.Column("requested_ltv", sa.Float(), nullable=True),
        sa.Column("loan_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("annual_rental_income", sa.Numeric(14, 2), nullable=True),
        sa.Column("annual_operating_expenses", sa.Numeric(14, 2), nullable=True),
        sa.Column("annual_loan_payments", sa.Numeric(14, 2), nullable=True),
        sa.Column("noi", sa.Numeric(14, 2), nullable=True),
        sa.Column("dscr_ratio", sa.Float(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="new_request"),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("soft_quote_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("term_sheet_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("credit_authorized", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("appraisal_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("application_fee_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("underwriting_fee_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("closing_fee_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("full_application_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dscr_auto_declined", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("credit_payment_id", sa.String(255), nullable=True),
        sa.Column("appraisal_payment_id", sa.String(255), nullable=True),
        sa.Column("soft_quote_data", sa.JSON(), nullable=True),
        sa.Column("interest_rate_min", sa.Float(), nullable=True),
        sa.Column("interest_rate_max", sa.Float(), nullable=True),
        sa.Column("application_data", sa.JSON(), nullable=True),
        sa.Column("application_pdf_url", sa.Text(), nullable=True),
        sa.Column("term_sheet_url", sa.Text(), nullable=True),
        sa.Column("term_sheet_signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("funded_amount", sa.Numeric(14, 2), nullable=True),
        sa.Column("funded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["broker_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("loan_number"),
    )
    op.create_index("ix_loan_requests_loan_number", "loan_requests", ["loan_number"])
    op.create_index("ix_loan_requests_user_id", "loan_requests", ["user_id"])
    op.create_index("ix_loan_requests_broker_id", "loan_requests", ["broker_id"])

    op.create_table(
        "loan_status_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("event", sa.String(50), nullable=False, server_default="transition"),
        sa.Column("changed_by", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["loan_id"], ["loan_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_loan_status_history_loan_id", "loan_status_history", ["loan_id"])

    op.create_table(
        "needs_list_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("loan_type", sa.String(50), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["loan_id"], ["loan_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_needs_list_items_loan_id", "needs_list_items", ["loan_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("needs_list_item_id", sa.Integer(), nullable=True),
        sa.Column("uploaded_by", sa.String(255), nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("category", sa.String(255), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("content_type", sa.String(100), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", sa.String(255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["loan_id"], ["loan_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["needs_list_item_id"], ["needs_list_items.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_loan_id", "documents", ["loan_id"])
    op.create_index("ix_documents_needs_list_item_id", "documents", ["needs_list_item_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("payment_type", sa.String(50), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("provider_payment_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["loan_id"], ["loan_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider_payment_id"),
    )
    op.create_index("ix_payments_loan_id", "payments", ["loan_id"])
    op.create_index("ix_payments_provider_payment_id", "payments", ["provider_payment_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["loan_id"], ["loan_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("prev_hash", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("user_role", sa.String(50), nullable=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=True),
        sa.Column("event_data", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_events_event_type", "audit_events", ["event_type"])
    op.create_index("ix_audit_events_loan_id", "audit_events", ["loan_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("notifications")
    op.drop_table("payments")
    op.drop_table("documents")
    op.drop_table("needs_list_items")
    op.drop_table("loan_status_history")
    op.drop_table("loan_requests")
    op.drop_table("users")
