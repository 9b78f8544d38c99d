# This project was developed with assistance from AI tools.
"""Pure auth utility functions with no FastAPI or HTTP dependencies.

Used by the middleware layer and by services that need to reason about a
principal outside the request lifecycle.
"""

from rpc_db.enums import UserRole

from ..schemas.auth import DataScope


def build_data_scope(role: UserRole, user_id: str) -> DataScope:
    """Build data scope rules based on the user's role."""
    if role == UserRole.BORROWER:
        return DataScope(own_data_only=True, user_id=user_id)
    if role == UserRole.BROKER:
        return DataScope(broker_id=user_id)
    if role == UserRole.INVESTOR:
        return DataScope(funded_only=True, read_only=True)
    if role in UserRole.ops_roles():
        return DataScope(full_pipeline=True)
    return DataScope(own_data_only=True, user_id=user_id)
