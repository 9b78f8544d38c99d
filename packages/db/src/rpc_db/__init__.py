# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, SessionLocal, get_db, get_db_service
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
from .models import (
    AuditEvent,
    ClosingChecklistItem,
    Document,
    LoanRequest,
    LoanStatusHistory,
    NeedsListItem,
    Notification,
    Payment,
    User,
)

__all__ = [
    "Base",
    "DatabaseService",
    "SessionLocal",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "BorrowerType",
    "DocumentStatus",
    "HistoryEvent",
    "LoanStatus",
    "PaymentStatus",
    "PaymentType",
    "PropertyType",
    "RequestType",
    "UserRole",
    # Models
    "AuditEvent",
    "ClosingChecklistItem",
    "Document",
    "LoanRequest",
    "LoanStatusHistory",
    "NeedsListItem",
    "Notification",
    "Payment",
    "User",
]
