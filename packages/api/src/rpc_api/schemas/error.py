# This project was developed with assistance from AI tools.
"""RFC 7807 Problem Details error response schema."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    See https://datatracker.ietf.org/doc/html/rfc7807

    Loan workflow rejections add remediation members (``payment_type``,
    ``missing_items`` ...) so clients can route the user to the fix.
    """

    type: str = Field(
        default="about:blank",
        description="URI reference identifying the problem type.",
    )
    title: str = Field(description="Short human-readable summary of the problem.")
    status: int = Field(description="HTTP status code.")
    detail: str = Field(
        default="",
        description="Human-readable explanation specific to this occurrence.",
    )
    request_id: str = Field(
        default="",
        description="Correlation ID for tracing this request in logs.",
    )
    instance: str = Field(
        default="",
        description="URI reference identifying the specific occurrence of the problem.",
    )

    # -- Loan workflow extensions --
    payment_required: bool | None = None
    payment_type: str | None = None
    amount: float | None = None
    missing_items: list[str] | None = None
    missing_count: int | None = None
    total_required: int | None = None
    missing_fields: list[str] | None = None
    requires_verification: bool | None = None
    eligibility_errors: list[str] | None = None
    declined: bool | None = None
    reason: str | None = None
    ownership_claimable: bool | None = None
    payment_intent_id: str | None = None
