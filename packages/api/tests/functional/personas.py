# This project was developed with assistance from AI tools.
"""Persona factories for functional tests.

Each function returns a UserContext matching the DataScope built by
``core/auth.py:build_data_scope()`` for that role. Fixed user IDs
ensure cross-test consistency.
"""

from rpc_db.enums import UserRole

from rpc_api.core.auth import build_data_scope
from rpc_api.schemas.auth import UserContext

# Fixed IDs for cross-test referencing
ALEX_USER_ID = "alex-rivera-001"
JORDAN_USER_ID = "jordan-blake-002"
BROKER_USER_ID = "kim-broker"
INVESTOR_USER_ID = "lee-investor"
OPS_USER_ID = "riley-ops"
ADMIN_USER_ID = "admin-user"


def _persona(
    role: UserRole, user_id: str, email: str, name: str, *, email_verified: bool = True
) -> UserContext:
    return UserContext(
        user_id=user_id,
        role=role,
        email=email,
        name=name,
        email_verified=email_verified,
        data_scope=build_data_scope(role, user_id),
    )


def borrower_alex(*, email_verified: bool = True) -> UserContext:
    return _persona(
        UserRole.BORROWER, ALEX_USER_ID, "alex@example.com", "Alex Rivera",
        email_verified=email_verified,
    )


def borrower_jordan() -> UserContext:
    return _persona(UserRole.BORROWER, JORDAN_USER_ID, "jordan@example.com", "Jordan Blake")


def broker_kim() -> UserContext:
    return _persona(UserRole.BROKER, BROKER_USER_ID, "kim@brokerage.example", "Kim Broker")


def investor_lee() -> UserContext:
    return _persona(UserRole.INVESTOR, INVESTOR_USER_ID, "lee@fund.example", "Lee Investor")


def operations_riley() -> UserContext:
    return _persona(UserRole.OPERATIONS, OPS_USER_ID, "riley@rpc-lending.local", "Riley Ops")


def admin() -> UserContext:
    return _persona(UserRole.ADMIN, ADMIN_USER_ID, "admin@rpc-lending.local", "Admin User")
