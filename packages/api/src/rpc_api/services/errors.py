# This project was developed with assistance from AI tools.
"""Loan workflow exceptions.

Each exception carries the machine-readable remediation fields that the
error handlers in ``main.py`` copy onto the Problem Details body.
"""


class LoanWorkflowError(Exception):
    """Base class for rejected loan operations."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extensions(self) -> dict:
        """Structured fields surfaced to the caller alongside the message."""
        return {}


class PreconditionFailed(LoanWorkflowError):
    """A required prior step (payment, signature, documents, fields) is missing."""

    def __init__(
        self,
        message: str,
        *,
        payment_type: str | None = None,
        amount: float | None = None,
        missing_items: list[str] | None = None,
        total_required: int | None = None,
        missing_fields: list[str] | None = None,
        requires_verification: bool = False,
    ):
        super().__init__(message)
        self.payment_type = payment_type
        self.amount = amount
        self.missing_items = missing_items
        self.total_required = total_required
        self.missing_fields = missing_fields
        self.requires_verification = requires_verification
        if requires_verification:
            self.status_code = 403

    def extensions(self) -> dict:
        ext: dict = {}
        if self.payment_type is not None:
            ext["payment_required"] = True
            ext["payment_type"] = self.payment_type
            ext["amount"] = self.amount
        if self.missing_items is not None:
            ext["missing_items"] = self.missing_items
            ext["missing_count"] = len(self.missing_items)
            ext["total_required"] = self.total_required
        if self.missing_fields is not None:
            ext["missing_fields"] = self.missing_fields
        if self.requires_verification:
            ext["requires_verification"] = True
        return ext


class EligibilityDeclined(LoanWorkflowError):
    """Underwriting rules failed.

    For DSCR auto-declines the ``declined`` status has already been
    committed by the time this is raised.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: str | None = None,
        declined: bool = True,
        eligibility_errors: list[str] | None = None,
    ):
        super().__init__(message)
        self.reason = reason or message
        self.declined = declined
        self.eligibility_errors = eligibility_errors

    def extensions(self) -> dict:
        ext: dict = {"reason": self.reason, "declined": self.declined}
        if self.eligibility_errors:
            ext["eligibility_errors"] = self.eligibility_errors
        return ext


class InvalidTransitionError(LoanWorkflowError, ValueError):
    """Raised when a loan status transition is not allowed."""

    status_code = 422


class LoanNotFound(LoanWorkflowError):
    """Loan, document, or needs-list item does not resolve for this caller."""

    status_code = 404


class AccessDenied(LoanWorkflowError):
    """Caller does not own the loan.

    ``ownership_claimable`` is set when the caller's email matches the
    owner's; an admin can then transfer the loan explicitly.
    """

    status_code = 403

    def __init__(self, message: str, *, ownership_claimable: bool = False):
        super().__init__(message)
        self.ownership_claimable = ownership_claimable

    def extensions(self) -> dict:
        return {"ownership_claimable": True} if self.ownership_claimable else {}


class ConcurrentModification(LoanWorkflowError):
    """Another transition committed first; the caller should reload and retry."""

    status_code = 409


class PaymentInProgress(LoanWorkflowError):
    """An unconfirmed intent for the same fee is already open on the loan."""

    status_code = 409

    def __init__(self, message: str, *, payment_intent_id: str):
        super().__init__(message)
        self.payment_intent_id = payment_intent_id

    def extensions(self) -> dict:
        return {"payment_intent_id": self.payment_intent_id}
