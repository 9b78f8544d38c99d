# This project was developed with assistance from AI tools.
"""
Domain enums for the bridge-loan lifecycle.

Shared domain types used by both SQLAlchemy models (rpc_db package)
and Pydantic schemas (rpc_api package).
"""

import enum


class LoanStatus(str, enum.Enum):
    NEW_REQUEST = "new_request"
    QUOTE_REQUESTED = "quote_requested"
    SOFT_QUOTE_ISSUED = "soft_quote_issued"
    TERM_SHEET_ISSUED = "term_sheet_issued"
    TERM_SHEET_SIGNED = "term_sheet_signed"
    NEEDS_LIST_SENT = "needs_list_sent"
    NEEDS_LIST_COMPLETE = "needs_list_complete"
    APPRAISAL_ORDERED = "appraisal_ordered"
    APPRAISAL_RECEIVED = "appraisal_received"
    CONDITIONALLY_APPROVED = "conditionally_approved"
    CONDITIONAL_ITEMS_NEEDED = "conditional_items_needed"
    CLEAR_TO_CLOSE = "clear_to_close"
    CLOSING_SCHEDULED = "closing_scheduled"
    FUNDED = "funded"
    DECLINED = "declined"

    @classmethod
    def terminal_stages(cls) -> frozenset["LoanStatus"]:
        """Statuses where a loan is no longer active."""
        return frozenset({cls.FUNDED, cls.DECLINED})

    @classmethod
    def valid_transitions(cls) -> dict["LoanStatus", frozenset["LoanStatus"]]:
        """Forward edges of the borrower-driven lifecycle.

        Operations overrides are not validated against this graph.
        """
        return {
            cls.NEW_REQUEST: frozenset({cls.QUOTE_REQUESTED, cls.SOFT_QUOTE_ISSUED, cls.DECLINED}),
            cls.QUOTE_REQUESTED: frozenset({cls.SOFT_QUOTE_ISSUED, cls.DECLINED}),
            cls.SOFT_QUOTE_ISSUED: frozenset({cls.SOFT_QUOTE_ISSUED, cls.TERM_SHEET_ISSUED, cls.DECLINED}),
            cls.TERM_SHEET_ISSUED: frozenset({cls.TERM_SHEET_SIGNED, cls.NEEDS_LIST_COMPLETE}),
            cls.TERM_SHEET_SIGNED: frozenset({cls.NEEDS_LIST_SENT, cls.NEEDS_LIST_COMPLETE}),
            cls.NEEDS_LIST_SENT: frozenset({cls.NEEDS_LIST_COMPLETE}),
            cls.NEEDS_LIST_COMPLETE: frozenset({cls.APPRAISAL_ORDERED}),
            cls.APPRAISAL_ORDERED: frozenset({cls.APPRAISAL_RECEIVED}),
            cls.APPRAISAL_RECEIVED: frozenset({cls.CONDITIONALLY_APPROVED}),
            cls.CONDITIONALLY_APPROVED: frozenset({cls.CONDITIONAL_ITEMS_NEEDED, cls.CLEAR_TO_CLOSE}),
            cls.CONDITIONAL_ITEMS_NEEDED: frozenset({cls.CLEAR_TO_CLOSE}),
            cls.CLEAR_TO_CLOSE: frozenset({cls.CLOSING_SCHEDULED}),
            cls.CLOSING_SCHEDULED: frozenset({cls.FUNDED}),
            cls.FUNDED: frozenset(),
            cls.DECLINED: frozenset(),
        }

    @classmethod
    def step_for(cls) -> dict["LoanStatus", int]:
        """Progress watermark associated with each status (1-12)."""
        return {
            cls.NEW_REQUEST: 1,
            cls.QUOTE_REQUESTED: 2,
            cls.SOFT_QUOTE_ISSUED: 2,
            cls.TERM_SHEET_ISSUED: 6,
            cls.TERM_SHEET_SIGNED: 6,
            cls.NEEDS_LIST_SENT: 6,
            cls.NEEDS_LIST_COMPLETE: 7,
            cls.APPRAISAL_ORDERED: 8,
            cls.APPRAISAL_RECEIVED: 8,
            cls.CONDITIONALLY_APPROVED: 9,
            cls.CONDITIONAL_ITEMS_NEEDED: 9,
            cls.CLEAR_TO_CLOSE: 10,
            cls.CLOSING_SCHEDULED: 11,
            cls.FUNDED: 12,
            cls.DECLINED: 3,
        }


class UserRole(str, enum.Enum):
    BORROWER = "borrower"
    BROKER = "broker"
    INVESTOR = "investor"
    OPERATIONS = "operations"
    ADMIN = "admin"

    @classmethod
    def ops_roles(cls) -> frozenset["UserRole"]:
        """Roles allowed to act on any loan and bypass borrower preconditions."""
        return frozenset({cls.OPERATIONS, cls.ADMIN})


class PropertyType(str, enum.Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"


class RequestType(str, enum.Enum):
    PURCHASE = "purchase"
    REFINANCE = "refinance"


class BorrowerType(str, enum.Enum):
    OWNER_OCCUPIED = "owner_occupied"
    INVESTMENT = "investment"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    REJECTED = "rejected"


class PaymentType(str, enum.Enum):
    CREDIT_CHECK = "credit_check"
    APPLICATION_FEE = "application_fee"
    APPRAISAL = "appraisal"
    UNDERWRITING_FEE = "underwriting_fee"
    CLOSING_FEE = "closing_fee"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class HistoryEvent(str, enum.Enum):
    TRANSITION = "transition"
    OVERRIDE = "override"
    PAYMENT = "payment"
    NOTE = "note"
