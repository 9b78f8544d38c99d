# This project was developed with assistance from AI tools.
"""Tests for document upload, linking, review, and the needs-list endpoints."""

import logging

import pytest
from rpc_db import Document, NeedsListItem, Notification
from rpc_db.enums import DocumentStatus
from sqlalchemy import select

from rpc_api.core.config import settings
from rpc_api.services.background import drain_background_tasks
from rpc_api.services.document import (
    DocumentUploadError,
    delete_document,
    infer_category,
    list_documents,
    review_document,
    upload_document,
)
from rpc_api.services.errors import AccessDenied, LoanNotFound
from rpc_api.schemas.needs_list import NeedsListItemCreate
from rpc_api.services.needs_list import add_needs_list_item, reconcile_needs_list

from .factories import (
    actor,
    borrower,
    create_test_loan,
    operations,
    other_borrower,
    register_user,
)

PDF = "application/pdf"


async def _item(session, loan, category):
    result = await session.execute(
        select(NeedsListItem).where(
            NeedsListItem.loan_id == loan.id, NeedsListItem.category == category
        )
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Category heuristic
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "folder,expected",
    [
        ("Income Statements", "financial"),
        ("2025 Tax Returns", "financial"),
        ("Rent Roll", "property"),
        ("Property Photos", "property"),
        ("Entity Formation", "identity"),
        ("Construction Budget", "construction"),
        ("Misc", "general"),
        (None, "general"),
    ],
)
def test_infer_category(folder, expected):
    assert infer_category(folder) == expected


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


async def test_upload_rejects_unsupported_type(db_session, mock_storage):
    loan = await create_test_loan(db_session)

    with pytest.raises(DocumentUploadError) as exc_info:
        await upload_document(
            db_session, actor(borrower()), loan.id, "run.exe", "application/x-msdownload", b"MZ"
        )

    assert exc_info.value.status_code == 422
    mock_storage.put_object.assert_not_awaited()


async def test_upload_rejects_oversized_file(db_session, mock_storage, monkeypatch):
    loan = await create_test_loan(db_session)
    monkeypatch.setattr(settings, "UPLOAD_MAX_SIZE_MB", 0)

    with pytest.raises(DocumentUploadError, match="exceeds maximum"):
        await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"%PDF")


async def test_folder_upload_stores_folder_category(db_session, mock_storage, email_outbox):
    await register_user(db_session, operations())
    loan = await create_test_loan(db_session)

    doc = await upload_document(
        db_session,
        actor(borrower()),
        loan.id,
        "operating-agreement.pdf",
        PDF,
        b"%PDF-1.7",
        folder_name="Entity Documents",
        uploader_name="Alex Borrower",
    )

    assert doc.needs_list_item_id is None
    assert doc.category == "Entity Documents"
    assert doc.status == DocumentStatus.PENDING
    assert doc.size_bytes == 8
    assert doc.file_url == (
        f"loans/{loan.loan_number}/documents/{doc.id}/operating-agreement.pdf"
    )
    mock_storage.put_object.assert_awaited_once_with(b"%PDF-1.7", doc.file_url, PDF)

    note = (await db_session.execute(select(Notification))).scalar_one()
    assert note.title == "New Document Uploaded"
    assert note.message == (
        f'Alex Borrower uploaded "operating-agreement.pdf" to Entity Documents folder '
        f"for loan {loan.loan_number}"
    )
    await drain_background_tasks()
    assert email_outbox.templates() == ["document_upload"]


async def test_folder_upload_fulfills_every_item_in_the_folder(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    await add_needs_list_item(
        db_session,
        loan,
        NeedsListItemCreate(document_type="Flood Certificate", folder_name="Property Insurance"),
    )

    await upload_document(
        db_session,
        actor(borrower()),
        loan.id,
        "policy.pdf",
        PDF,
        b"x",
        folder_name="Property Insurance",
    )

    result = await reconcile_needs_list(db_session, loan.id)
    fulfilled = sorted(s.name for s in result.items if s.fulfilled)
    assert fulfilled == ["Flood Certificate", "Property Insurance"]
    assert "Flood Certificate" not in result.missing_items
    assert len(result.missing_items) == 5


async def test_upload_by_item_id_fulfills_slot(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    item = await _item(db_session, loan, "Property Insurance")

    await upload_document(
        db_session, actor(borrower()), loan.id, "binder.pdf", PDF, b"x", needs_list_item_id=item.id
    )

    result = await reconcile_needs_list(db_session, loan.id)
    fulfilled = [s.name for s in result.items if s.fulfilled]
    assert fulfilled == ["Property Insurance"]


async def test_upload_to_free_folder_uses_heuristic(db_session, mock_storage):
    loan = await create_test_loan(db_session)

    doc = await upload_document(
        db_session, actor(borrower()), loan.id, "1040.pdf", PDF, b"x", folder_name="Tax Returns"
    )

    assert doc.needs_list_item_id is None
    assert doc.category == "financial"
    result = await reconcile_needs_list(db_session, loan.id)
    assert len(result.missing_items) == 6


async def test_upload_rejects_item_from_another_loan(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    other = await create_test_loan(db_session)
    foreign_item = await _item(db_session, other, "Application")

    with pytest.raises(LoanNotFound):
        await upload_document(
            db_session,
            actor(borrower()),
            loan.id,
            "app.pdf",
            PDF,
            b"x",
            needs_list_item_id=foreign_item.id,
        )


async def test_upload_to_someone_elses_loan_is_denied(db_session, mock_storage):
    loan = await create_test_loan(db_session)

    with pytest.raises(AccessDenied):
        await upload_document(db_session, actor(other_borrower()), loan.id, "a.pdf", PDF, b"x")
    mock_storage.put_object.assert_not_awaited()


# ---------------------------------------------------------------------------
# Delete, list, review
# ---------------------------------------------------------------------------


async def test_owner_deletes_document_and_object(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    doc = await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"x")
    key = doc.file_url

    await delete_document(db_session, actor(borrower()), doc.id)

    assert await db_session.get(Document, doc.id) is None
    mock_storage.delete_object.assert_awaited_once_with(key)


async def test_storage_failure_on_delete_is_logged(db_session, mock_storage, caplog):
    loan = await create_test_loan(db_session)
    doc = await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"x")
    mock_storage.delete_object.side_effect = RuntimeError("bucket unavailable")

    with caplog.at_level(logging.ERROR):
        await delete_document(db_session, actor(borrower()), doc.id)

    assert await db_session.get(Document, doc.id) is None
    assert "Failed to delete stored object" in caplog.text


async def test_other_borrower_cannot_delete(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    doc = await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"x")

    with pytest.raises(AccessDenied):
        await delete_document(db_session, actor(other_borrower()), doc.id)


async def test_list_documents_respects_scope(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"x")

    assert len(await list_documents(db_session, borrower(), loan.id)) == 1
    assert await list_documents(db_session, other_borrower(), loan.id) is None


async def test_review_requires_ops(db_session, mock_storage):
    loan = await create_test_loan(db_session)
    doc = await upload_document(db_session, actor(borrower()), loan.id, "a.pdf", PDF, b"x")

    with pytest.raises(AccessDenied):
        await review_document(db_session, actor(borrower()), doc.id, DocumentStatus.REVIEWED)

    reviewed = await review_document(
        db_session, actor(operations()), doc.id, DocumentStatus.REVIEWED, "Looks complete"
    )
    assert reviewed.status == DocumentStatus.REVIEWED
    assert reviewed.reviewed_by == operations().user_id
    assert reviewed.review_notes == "Looks complete"


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def test_upload_route_links_and_needs_list_reflects_it(db_session, api, mock_storage):
    loan = await create_test_loan(db_session)
    client = api.as_user(borrower())

    resp = await client.post(
        "/api/documents/upload",
        data={"loan_id": str(loan.id), "folder_name": "Application"},
        files={"file": ("application.pdf", b"%PDF", PDF)},
    )
    assert resp.status_code == 201
    assert resp.json()["category"] == "Application"

    needs = await client.get(f"/api/documents/needs-list/{loan.id}")
    assert needs.status_code == 200
    states = {s["name"]: s for s in needs.json()}
    assert states["Application"]["fulfilled"] is True
    assert states["Application"]["color"] == "red"
    assert states["Entity Documents"]["color"] == "tan"

    folders = await client.get(f"/api/documents/folders/{loan.id}")
    names = [f["name"] for f in folders.json()]
    assert len(names) == 6
    assert names == sorted(names)


async def test_upload_route_rejects_bad_type_as_problem_details(db_session, api, mock_storage):
    loan = await create_test_loan(db_session)

    resp = await api.as_user(borrower()).post(
        "/api/documents/upload",
        data={"loan_id": str(loan.id)},
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 422
    body = resp.json()
    assert body["title"] == "Unprocessable Entity"
    assert body["detail"].startswith("Unsupported content type: text/plain")


async def test_needs_list_of_foreign_loan_is_404(db_session, api):
    loan = await create_test_loan(db_session)

    resp = await api.as_user(other_borrower()).get(f"/api/documents/needs-list/{loan.id}")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Loan not found"
