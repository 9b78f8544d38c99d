# This project was developed with assistance from AI tools.
"""Tests for needs-list reconciliation (document-to-slot matching)."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from rpc_db import Document, NeedsListItem
from rpc_db.enums import DocumentStatus
from sqlalchemy import select

from rpc_api.schemas.needs_list import NeedsListItemCreate
from rpc_api.services.needs_list import (
    add_needs_list_item,
    cleanup_needs_list,
    folder_color,
    is_required,
    needs_list_verdict,
    reconcile,
    reconcile_needs_list,
)

from .factories import add_document, create_test_loan

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def _item(item_id, category, *, name=None, required=True):
    return SimpleNamespace(
        id=item_id,
        name=name or category or f"Item {item_id}",
        category=category,
        description=None,
        loan_type="rental",
        is_required=required,
    )


def _doc(doc_id, *, item_id=None, category=None, hours_ago=48, status=DocumentStatus.PENDING):
    return SimpleNamespace(
        id=doc_id,
        needs_list_item_id=item_id,
        category=category,
        uploaded_at=NOW - timedelta(hours=hours_ago),
        status=status,
    )


# ---------------------------------------------------------------------------
# Folder color
# ---------------------------------------------------------------------------


def test_empty_folder_is_tan():
    assert folder_color(0, None, now=NOW) == "tan"


def test_recent_upload_is_red():
    assert folder_color(1, NOW - timedelta(hours=2), now=NOW, window_hours=24) == "red"


def test_older_upload_is_blue():
    assert folder_color(3, NOW - timedelta(hours=30), now=NOW, window_hours=24) == "blue"


def test_window_boundary_is_blue():
    assert folder_color(1, NOW - timedelta(hours=24), now=NOW, window_hours=24) == "blue"


def test_naive_timestamp_is_treated_as_utc():
    naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    assert folder_color(1, naive, now=NOW, window_hours=24) == "red"


# ---------------------------------------------------------------------------
# Matching rules
# ---------------------------------------------------------------------------


def test_linked_document_fulfills_only_its_item():
    items = [_item(1, "Application"), _item(2, "Entity Documents")]
    result = reconcile(10, items, [_doc(100, item_id=1)], now=NOW)

    states = {s.id: s for s in result.items}
    assert states[1].fulfilled is True
    assert states[1].document_count == 1
    assert states[2].fulfilled is False
    assert result.missing_items == ["Entity Documents"]


def test_linked_document_is_not_also_counted_by_category():
    items = [_item(1, "Application"), _item(2, "Application", name="Signed Application")]
    result = reconcile(10, items, [_doc(100, item_id=1, category="Application")], now=NOW)

    states = {s.id: s for s in result.items}
    assert states[1].document_count == 1
    assert states[2].document_count == 0


def test_legacy_document_fulfills_every_item_in_its_category():
    items = [
        _item(1, "Property Insurance"),
        _item(2, "Property Insurance", name="Flood Insurance"),
        _item(3, "Application"),
    ]
    result = reconcile(10, items, [_doc(100, category="Property Insurance")], now=NOW)

    fulfilled = {s.id for s in result.items if s.fulfilled}
    assert fulfilled == {1, 2}


def test_category_match_is_exact():
    items = [_item(1, "Application")]
    result = reconcile(10, items, [_doc(100, category="application")], now=NOW)

    assert result.items[0].fulfilled is False


def test_uncategorized_item_counts_every_document():
    items = [_item(1, None, name="Anything"), _item(2, "Application")]
    docs = [_doc(100, item_id=2), _doc(101, category="Misc")]
    result = reconcile(10, items, docs, now=NOW)

    states = {s.id: s for s in result.items}
    assert states[1].document_count == 2


def test_reviewed_documents_are_counted():
    items = [_item(1, "Application")]
    docs = [_doc(100, item_id=1, status=DocumentStatus.REVIEWED), _doc(101, item_id=1)]
    result = reconcile(10, items, docs, now=NOW)

    assert result.items[0].reviewed_count == 1
    assert result.items[0].document_count == 2


# ---------------------------------------------------------------------------
# Verdict and folders
# ---------------------------------------------------------------------------


def test_optional_items_never_block():
    items = [_item(1, "Application"), _item(2, "Extra", required=False)]
    result = reconcile(10, items, [_doc(100, item_id=1)], now=NOW)

    assert result.verdict is True
    assert result.total_required == 1
    assert result.missing_items == []


def test_null_required_counts_as_required():
    assert is_required(SimpleNamespace(is_required=None)) is True
    assert is_required(SimpleNamespace(is_required=False)) is False


def test_empty_needs_list_passes():
    assert needs_list_verdict([]) == (True, [], 0)


def test_folders_aggregate_distinct_documents():
    items = [
        _item(1, "Property Insurance"),
        _item(2, "Property Insurance", name="Flood Insurance"),
        _item(3, "Application"),
    ]
    docs = [_doc(100, category="Property Insurance", hours_ago=1)]
    result = reconcile(10, items, docs, now=NOW, window_hours=24)

    folders = {f.name: f for f in result.folders}
    assert list(folders) == ["Application", "Property Insurance"]
    assert folders["Property Insurance"].items_count == 2
    assert folders["Property Insurance"].documents_count == 1
    assert folders["Property Insurance"].color == "red"
    assert folders["Application"].color == "tan"


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


async def test_reconcile_needs_list_from_database(db_session):
    loan = await create_test_loan(db_session)
    items = (
        await db_session.execute(
            select(NeedsListItem).where(NeedsListItem.loan_id == loan.id).order_by(NeedsListItem.id)
        )
    ).scalars().all()
    await add_document(db_session, loan, item=items[0])
    await add_document(db_session, loan, category="Rent Roll & Leases")

    result = await reconcile_needs_list(db_session, loan.id)

    assert result.total_required == 6
    assert len(result.missing_items) == 4
    assert "Application" not in result.missing_items
    assert "Rent Roll & Leases" not in result.missing_items


async def test_add_needs_list_item(db_session):
    loan = await create_test_loan(db_session)

    item = await add_needs_list_item(
        db_session,
        loan,
        NeedsListItemCreate(document_type="Flood Certificate", folder_name="Property Insurance"),
    )

    assert item.category == "Property Insurance"
    result = await reconcile_needs_list(db_session, loan.id)
    assert result.total_required == 7


async def test_cleanup_removes_duplicates_and_repoints_documents(db_session):
    loan = await create_test_loan(db_session)
    duplicate = await add_needs_list_item(
        db_session, loan, NeedsListItemCreate(document_type="Application", folder_name="Application")
    )
    doc = await add_document(db_session, loan, item=duplicate)

    removed, remaining = await cleanup_needs_list(db_session, loan)

    assert (removed, remaining) == (1, 6)
    kept = await db_session.scalar(
        select(Document.needs_list_item_id).where(Document.id == doc.id)
    )
    assert kept != duplicate.id
    assert kept is not None


@pytest.mark.parametrize("hours_ago,color", [(1, "red"), (72, "blue")])
async def test_folder_color_from_stored_upload(db_session, hours_ago, color):
    loan = await create_test_loan(db_session)
    await add_document(
        db_session,
        loan,
        category="Application",
        uploaded_at=datetime.now(UTC) - timedelta(hours=hours_ago),
    )

    result = await reconcile_needs_list(db_session, loan.id)

    folders = {f.name: f for f in result.folders}
    assert folders["Application"].color == color
