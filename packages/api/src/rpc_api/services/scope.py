# This project was developed with assistance from AI tools.
"""Shared data scope filtering for service queries.

Centralizes the DataScope -> SQL WHERE logic so that each resource service
applies the same rules. The join_to_loan parameter handles child-entity
queries (Documents, Payments, ...) that reach LoanRequest through a
relationship.
"""

from rpc_db import LoanRequest
from rpc_db.enums import LoanStatus

from ..schemas.auth import DataScope


def apply_data_scope(stmt, scope: DataScope, *, join_to_loan=None):
    """Apply data scope filtering to a SQLAlchemy query.

    Args:
        stmt: A SQLAlchemy select statement.
        scope: The caller's DataScope.
        join_to_loan: ORM relationship attribute to join to reach
            LoanRequest (e.g., ``Document.loan``). Pass ``None`` when
            querying LoanRequest directly.

    Returns:
        The filtered statement.
    """
    if scope.full_pipeline:
        return stmt
    if join_to_loan is not None:
        stmt = stmt.join(join_to_loan)
    if scope.own_data_only and scope.user_id:
        return stmt.where(LoanRequest.user_id == scope.user_id)
    if scope.broker_id:
        return stmt.where(LoanRequest.broker_id == scope.broker_id)
    if scope.funded_only:
        return stmt.where(LoanRequest.status == LoanStatus.FUNDED)
    # No recognised scope: match nothing
    return stmt.where(LoanRequest.id.is_(None))
