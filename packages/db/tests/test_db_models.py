# This project was developed with assistance from AI tools.
"""Model-level invariants and lifecycle tables (no database required)."""

import pytest
from rpc_db import DatabaseService, LoanRequest
from rpc_db.enums import LoanStatus, UserRole
from rpc_db.models import MONOTONE_FLAGS
from sqlalchemy.ext.asyncio import create_async_engine


@pytest.mark.parametrize("flag", MONOTONE_FLAGS)
def test_flags_cannot_be_cleared(flag):
    loan = LoanRequest(loan_number="RPC-2026-0001", user_id="u1")
    setattr(loan, flag, True)

    with pytest.raises(ValueError, match="set-once"):
        setattr(loan, flag, False)


def test_flag_can_be_set_again():
    loan = LoanRequest(loan_number="RPC-2026-0001", user_id="u1", credit_authorized=True)

    loan.credit_authorized = True

    assert loan.credit_authorized is True


def test_current_step_never_decreases():
    loan = LoanRequest(loan_number="RPC-2026-0001", user_id="u1", current_step=6)

    loan.current_step = 8
    with pytest.raises(ValueError, match="cannot decrease"):
        loan.current_step = 2
    assert loan.current_step == 8


def test_every_status_has_a_step_and_edges():
    steps = LoanStatus.step_for()
    graph = LoanStatus.valid_transitions()

    assert set(steps) == set(LoanStatus)
    assert set(graph) == set(LoanStatus)
    assert all(1 <= step <= 12 for step in steps.values())


def test_terminal_statuses_have_no_exits():
    graph = LoanStatus.valid_transitions()

    for status in LoanStatus.terminal_stages():
        assert graph[status] == frozenset()


def test_forward_edges_never_lower_the_step():
    steps = LoanStatus.step_for()

    for source, targets in LoanStatus.valid_transitions().items():
        for target in targets - {LoanStatus.DECLINED}:
            assert steps[target] >= steps[source], f"{source} -> {target}"


def test_ops_roles():
    assert UserRole.ops_roles() == {UserRole.OPERATIONS, UserRole.ADMIN}


async def test_health_check_reports_connectivity():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        assert await DatabaseService(engine).health_check() is True
    finally:
        await engine.dispose()


async def test_health_check_failure_is_false(caplog):
    engine = create_async_engine("sqlite+aiosqlite:////nonexistent-dir/none.db")
    try:
        assert await DatabaseService(engine).health_check() is False
    finally:
        await engine.dispose()
    assert "Database health check failed" in caplog.text
