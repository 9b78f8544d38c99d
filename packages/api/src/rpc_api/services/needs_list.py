# This project was developed with assistance from AI tools.
"""Needs-list reconciliation engine.

Matches uploaded documents to required-document slots and derives the
per-item fulfillment state, folder aggregates, and the pass/fail verdict
that gates the ``needs_list_complete`` transition.

Matching rules:
  1. A document with ``needs_list_item_id`` fulfills exactly that item.
  2. An unlinked document (folder upload or legacy row) fulfills every item
     whose ``category`` equals its own ``category`` (exact string match).
  3. An item with a null/empty category counts every document on the loan.
"""

import logging
from datetime import UTC, datetime, timedelta

from rpc_db import Document, LoanRequest, NeedsListItem
from rpc_db.enums import DocumentStatus
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.needs_list import (
    FolderState,
    NeedsListItemCreate,
    NeedsListItemState,
    ReconciliationResult,
)

logger = logging.getLogger(__name__)

# Standard folders created for every new loan (category, description).
STANDARD_FOLDERS: tuple[tuple[str, str], ...] = (
    ("Application", "Loan application documents"),
    ("Entity Documents", "LLC/Corp documents, Operating Agreement, Articles of Organization"),
    ("Property Insurance", "Property insurance documents"),
    ("Personal Financial Statement", "Personal financial statements and supporting documents"),
    (
        "Property Financial Statements",
        "Property income statements, tax returns, and financial records",
    ),
    ("Rent Roll & Leases", "Rent roll and lease agreements"),
)


def _aware(value: datetime | None) -> datetime | None:
    """Treat naive timestamps (SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def is_required(item) -> bool:
    """Missing/null ``is_required`` counts as required."""
    return item.is_required is not False


def folder_color(
    document_count: int,
    last_upload: datetime | None,
    *,
    now: datetime | None = None,
    window_hours: int | None = None,
) -> str:
    """tan = no documents; red = an upload inside the recent window; else blue."""
    if document_count == 0:
        return "tan"
    window_hours = settings.RECENT_UPLOAD_WINDOW_HOURS if window_hours is None else window_hours
    now = now or datetime.now(UTC)
    last_upload = _aware(last_upload)
    if last_upload is not None and now - last_upload < timedelta(hours=window_hours):
        return "red"
    return "blue"


def match_documents(items, documents) -> dict[int, list]:
    """Map each item id to the documents that fulfill it."""
    item_ids = {item.id for item in items}
    linked: dict[int, list] = {item.id: [] for item in items}
    legacy_by_category: dict[str, list] = {}
    for doc in documents:
        if doc.needs_list_item_id is not None and doc.needs_list_item_id in item_ids:
            linked[doc.needs_list_item_id].append(doc)
        else:
            legacy_by_category.setdefault(doc.category or "", []).append(doc)

    matches: dict[int, list] = {}
    for item in items:
        if not item.category:
            matches[item.id] = list(documents)
        else:
            matches[item.id] = linked[item.id] + legacy_by_category.get(item.category, [])
    return matches


def _latest(docs) -> datetime | None:
    stamps = [_aware(d.uploaded_at) for d in docs if d.uploaded_at is not None]
    return max(stamps) if stamps else None


def needs_list_verdict(states: list[NeedsListItemState]) -> tuple[bool, list[str], int]:
    """(passes, missing required item names, required count). Optional items never block."""
    required = [s for s in states if s.is_required]
    missing = [s.name for s in required if not s.fulfilled]
    return not missing, missing, len(required)


def reconcile(
    loan_id: int,
    items,
    documents,
    *,
    now: datetime | None = None,
    window_hours: int | None = None,
) -> ReconciliationResult:
    """Pure reconciliation over already-loaded items and documents."""
    now = now or datetime.now(UTC)
    matches = match_documents(items, documents)

    states: list[NeedsListItemState] = []
    folders: dict[str, dict] = {}
    for item in items:
        docs = matches[item.id]
        last_upload = _latest(docs)
        states.append(
            NeedsListItemState(
                id=item.id,
                name=item.name,
                category=item.category,
                description=item.description,
                loan_type=item.loan_type,
                is_required=is_required(item),
                document_count=len(docs),
                reviewed_count=sum(1 for d in docs if d.status == DocumentStatus.REVIEWED),
                fulfilled=len(docs) > 0,
                last_upload=last_upload,
                color=folder_color(len(docs), last_upload, now=now, window_hours=window_hours),
            )
        )
        folder = folders.setdefault(item.category or item.name, {"items": 0, "docs": {}})
        folder["items"] += 1
        for doc in docs:
            folder["docs"][doc.id] = doc

    folder_states = []
    for name, folder in sorted(folders.items()):
        docs = list(folder["docs"].values())
        last_upload = _latest(docs)
        folder_states.append(
            FolderState(
                name=name,
                items_count=folder["items"],
                documents_count=len(docs),
                last_upload=last_upload,
                color=folder_color(len(docs), last_upload, now=now, window_hours=window_hours),
            )
        )

    verdict, missing, total_required = needs_list_verdict(states)
    return ReconciliationResult(
        loan_id=loan_id,
        items=states,
        folders=folder_states,
        verdict=verdict,
        missing_items=missing,
        total_required=total_required,
    )


async def reconcile_needs_list(
    session: AsyncSession,
    loan_id: int,
    *,
    now: datetime | None = None,
) -> ReconciliationResult:
    """Load a loan's items and documents and reconcile them.

    Does NOT enforce data scope -- caller must check access to the loan first.
    """
    items_result = await session.execute(
        select(NeedsListItem)
        .where(NeedsListItem.loan_id == loan_id)
        .order_by(NeedsListItem.id.asc())
    )
    docs_result = await session.execute(
        select(Document)
        .where(Document.loan_id == loan_id)
        .order_by(Document.uploaded_at.asc())
    )
    return reconcile(
        loan_id,
        list(items_result.scalars().all()),
        list(docs_result.scalars().all()),
        now=now,
    )


def build_standard_items(loan: LoanRequest) -> list[NeedsListItem]:
    """The six standard folders, one required item each."""
    loan_type = loan.transaction_type or loan.loan_product or "general"
    return [
        NeedsListItem(
            loan_id=loan.id,
            name=category,
            category=category,
            description=description,
            loan_type=loan_type,
            is_required=True,
        )
        for category, description in STANDARD_FOLDERS
    ]


async def count_items(session: AsyncSession, loan_id: int) -> int:
    result = await session.execute(
        select(func.count(NeedsListItem.id)).where(NeedsListItem.loan_id == loan_id)
    )
    return result.scalar() or 0


async def ensure_needs_list(session: AsyncSession, loan: LoanRequest) -> tuple[bool, int]:
    """Create the standard items if the loan has none.

    Returns (generated, items_count). Flushes but does not commit.
    """
    existing = await count_items(session, loan.id)
    if existing:
        return False, existing
    items = build_standard_items(loan)
    session.add_all(items)
    await session.flush()
    logger.info("Generated %d needs-list items for loan %s", len(items), loan.loan_number)
    return True, len(items)


async def add_needs_list_item(
    session: AsyncSession,
    loan: LoanRequest,
    payload: NeedsListItemCreate,
) -> NeedsListItem:
    """Add an ad-hoc required-document slot (operations)."""
    item = NeedsListItem(
        loan_id=loan.id,
        name=payload.document_type,
        category=payload.folder_name or payload.document_type,
        description=payload.description,
        loan_type=loan.transaction_type or loan.loan_product or "general",
        is_required=payload.required,
    )
    session.add(item)
    await session.commit()
    logger.info("Added needs-list item '%s' to loan %s", item.name, loan.loan_number)
    return item


async def cleanup_needs_list(session: AsyncSession, loan: LoanRequest) -> tuple[int, int]:
    """Remove duplicate (name, category) items, keeping the oldest.

    Documents linked to a removed item are re-pointed at the kept one.
    Returns (removed, remaining).
    """
    result = await session.execute(
        select(NeedsListItem)
        .where(NeedsListItem.loan_id == loan.id)
        .order_by(NeedsListItem.id.asc())
    )
    items = list(result.scalars().all())

    keep: dict[tuple[str, str | None], NeedsListItem] = {}
    removed = 0
    for item in items:
        key = (item.name, item.category)
        kept = keep.get(key)
        if kept is None:
            keep[key] = item
            continue
        await session.execute(
            update(Document)
            .where(Document.needs_list_item_id == item.id)
            .values(needs_list_item_id=kept.id)
        )
        await session.delete(item)
        removed += 1

    await session.commit()
    if removed:
        logger.info("Removed %d duplicate needs-list items from loan %s", removed, loan.loan_number)
    return removed, len(keep)
