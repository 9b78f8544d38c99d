# This project was developed with assistance from AI tools.
"""Tests for the hash-chained audit trail."""

from rpc_db import AuditEvent
from sqlalchemy import update

from rpc_api.services.audit import (
    GENESIS,
    AuditEventType,
    chain_hash,
    get_loan_audit_events,
    record_loan_event,
    verify_audit_chain,
)

from .factories import admin, create_test_loan, operations


async def _write(session, n: int, loan=None) -> list[AuditEvent]:
    loan = loan or await create_test_loan(session)
    events = []
    for i in range(n):
        events.append(
            await record_loan_event(
                session,
                loan,
                AuditEventType.STATUS_OVERRIDE,
                user_id="ops-riley",
                user_role="operations",
                details={"seq": i},
            )
        )
    await session.commit()
    return events


async def test_first_event_links_to_genesis(db_session):
    [event] = await _write(db_session, 1)

    assert event.prev_hash == GENESIS


async def test_each_event_hashes_its_predecessor(db_session):
    first, second = await _write(db_session, 2)

    assert second.prev_hash == chain_hash(first)
    assert len(second.prev_hash) == 64


async def test_empty_chain_verifies(db_session):
    assert await verify_audit_chain(db_session) == {"status": "OK", "events_checked": 0}


async def test_intact_chain_verifies(db_session):
    await _write(db_session, 4)

    assert await verify_audit_chain(db_session) == {"status": "OK", "events_checked": 4}


async def test_tampered_payload_breaks_the_next_link(db_session):
    events = await _write(db_session, 3)
    await db_session.execute(
        update(AuditEvent).where(AuditEvent.id == events[1].id).values(event_data={"seq": 99})
    )
    await db_session.commit()
    db_session.expire_all()

    result = await verify_audit_chain(db_session)

    assert result == {"status": "TAMPERED", "first_break_id": events[2].id, "events_checked": 3}


async def test_moving_an_event_to_another_loan_breaks_the_chain(db_session):
    events = await _write(db_session, 2)
    other = await create_test_loan(db_session)
    await db_session.execute(
        update(AuditEvent).where(AuditEvent.id == events[0].id).values(loan_id=other.id)
    )
    await db_session.commit()
    db_session.expire_all()

    result = await verify_audit_chain(db_session)

    assert result["status"] == "TAMPERED"
    assert result["first_break_id"] == events[1].id


async def test_events_carry_the_loan_number(db_session):
    loan = await create_test_loan(db_session)

    [event] = await _write(db_session, 1, loan=loan)

    assert event.loan_id == loan.id
    assert event.event_data == {"loan_number": loan.loan_number, "seq": 0}


async def test_loan_events_are_filtered(db_session):
    loan = await create_test_loan(db_session)
    await _write(db_session, 2, loan=loan)
    await _write(db_session, 1)

    events = await get_loan_audit_events(db_session, loan.id)

    assert [e.event_data["seq"] for e in events] == [0, 1]


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def test_verify_route_is_admin_only(db_session, api):
    await _write(db_session, 2)

    denied = await api.as_user(operations()).get("/api/operations/audit/verify")
    assert denied.status_code == 403

    resp = await api.as_user(admin()).get("/api/operations/audit/verify")
    assert resp.status_code == 200
    assert resp.json()["status"] == "OK"
    assert resp.json()["events_checked"] == 2


async def test_loan_audit_route(db_session, api):
    loan = await create_test_loan(db_session)
    await _write(db_session, 1, loan=loan)

    resp = await api.as_user(operations()).get(f"/api/operations/loans/{loan.id}/audit")

    assert resp.status_code == 200
    [item] = resp.json()
    assert item["event_type"] == "status_override"
    assert item["loan_id"] == loan.id
