# This project was developed with assistance from AI tools.
"""Document service: uploads, deletes, listing, and operations review.

An upload with an explicit ``needs_list_item_id`` is linked to that item.
An upload to a ``folder_name`` that names a needs-list category is stored
under that category and left unlinked, so it counts for every item in the
folder (ad-hoc items included).
"""

import logging
from datetime import UTC, datetime

from rpc_db import Document, LoanRequest, NeedsListItem
from rpc_db.enums import DocumentStatus
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..schemas.auth import Actor, UserContext
from .errors import AccessDenied, LoanNotFound, LoanWorkflowError
from .loans import load_loan_for_actor
from .notifications import notify_ops_email_later, notify_ops_users
from .scope import apply_data_scope
from .storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

# Keyword -> category for uploads that resolve to no needs-list item.
_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("financial", ("income", "tax", "bank")),
    ("property", ("property", "lease", "rent")),
    ("identity", ("identification", "entity")),
    ("construction", ("construction", "contract")),
)


class DocumentUploadError(LoanWorkflowError):
    """Raised when a document upload fails validation."""

    status_code = 422


def infer_category(folder_name: str | None) -> str:
    """Coarse category from a free-form folder name; ``general`` when nothing matches."""
    lowered = (folder_name or "").lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "general"


async def _load_item(session: AsyncSession, loan_id: int, item_id: int) -> NeedsListItem:
    item = await session.get(NeedsListItem, item_id)
    if item is None or item.loan_id != loan_id:
        raise LoanNotFound("Needs-list item not found for this loan")
    return item


async def _is_needs_list_folder(session: AsyncSession, loan_id: int, folder_name: str) -> bool:
    result = await session.execute(
        select(NeedsListItem.id)
        .where(NeedsListItem.loan_id == loan_id, NeedsListItem.category == folder_name)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def upload_document(
    session: AsyncSession,
    actor: Actor,
    loan_id: int,
    filename: str,
    content_type: str,
    file_data: bytes,
    *,
    needs_list_item_id: int | None = None,
    folder_name: str | None = None,
    uploader_name: str | None = None,
) -> Document:
    """Store a file and create its Document row.

    1. Validate content type and size
    2. Verify the caller owns the loan (or is ops)
    3. Resolve the needs-list item or folder category
    4. Create the Document row (status=pending) to get its id
    5. Upload to S3 under a key that embeds the document id
    6. Notify ops users in the same transaction, commit, then email
    """
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise DocumentUploadError(
            f"Unsupported content type: {content_type}. "
            f"Allowed: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}"
        )
    max_bytes = settings.UPLOAD_MAX_SIZE_MB * 1024 * 1024
    if len(file_data) > max_bytes:
        raise DocumentUploadError(
            f"File size {len(file_data)} exceeds maximum of {settings.UPLOAD_MAX_SIZE_MB}MB"
        )

    loan = await load_loan_for_actor(session, actor, loan_id, for_update=False)
    item = None
    if needs_list_item_id is not None:
        item = await _load_item(session, loan.id, needs_list_item_id)
        category = item.category or infer_category(folder_name or item.name)
        folder = item.category or item.name
    elif folder_name and await _is_needs_list_folder(session, loan.id, folder_name):
        category = folder = folder_name
    else:
        category = infer_category(folder_name)
        folder = folder_name or "uncategorized"

    doc = Document(
        loan_id=loan.id,
        needs_list_item_id=item.id if item is not None else None,
        uploaded_by=actor.user_id,
        name=filename,
        category=category,
        content_type=content_type,
        size_bytes=len(file_data),
        status=DocumentStatus.PENDING,
    )
    session.add(doc)
    await session.flush()

    storage = get_storage_service()
    object_key = StorageService.document_key(loan.loan_number, doc.id, filename)
    await storage.put_object(file_data, object_key, content_type)
    doc.file_url = object_key

    uploader = uploader_name or actor.email or actor.user_id
    await notify_ops_users(
        session,
        loan_id=loan.id,
        notification_type="document_upload",
        title="New Document Uploaded",
        message=f'{uploader} uploaded "{filename}" to {folder} folder for loan {loan.loan_number}',
    )
    await session.commit()
    logger.info("Document %s uploaded to loan %s (%s)", doc.id, loan.loan_number, category)

    notify_ops_email_later(
        "document_upload",
        {"loan_number": loan.loan_number, "filename": filename, "folder": folder},
    )
    return doc


async def _load_document(session: AsyncSession, actor: Actor, document_id: int) -> Document:
    doc = await session.get(Document, document_id)
    if doc is None:
        raise LoanNotFound("Document not found")
    loan = await session.get(LoanRequest, doc.loan_id)
    if not actor.can_override and (loan is None or loan.user_id != actor.user_id):
        raise AccessDenied("Access denied")
    return doc


async def delete_document(session: AsyncSession, actor: Actor, document_id: int) -> None:
    """Remove a document (owner or ops). Storage cleanup failures are logged only."""
    doc = await _load_document(session, actor, document_id)
    object_key = doc.file_url
    await session.delete(doc)
    await session.commit()
    logger.info("Document %s deleted by %s", document_id, actor.user_id)

    if object_key:
        try:
            await get_storage_service().delete_object(object_key)
        except Exception:
            logger.exception("Failed to delete stored object %s", object_key)


async def list_documents(
    session: AsyncSession,
    user: UserContext,
    loan_id: int,
) -> list[Document] | None:
    """Documents for a loan visible to the caller, newest first.

    Returns None when the loan is outside the caller's scope.
    """
    loan_stmt = apply_data_scope(
        select(LoanRequest.id).where(LoanRequest.id == loan_id), user.data_scope,
    )
    if (await session.execute(loan_stmt)).scalar_one_or_none() is None:
        return None

    result = await session.execute(
        select(Document)
        .where(Document.loan_id == loan_id)
        .order_by(Document.uploaded_at.desc(), Document.id.desc())
    )
    return list(result.scalars().all())


async def review_document(
    session: AsyncSession,
    actor: Actor,
    document_id: int,
    status: DocumentStatus,
    notes: str | None = None,
) -> Document:
    """Operations review: mark a document reviewed or rejected."""
    if not actor.can_override:
        raise AccessDenied("Operations or admin role required")
    doc = await _load_document(session, actor, document_id)
    doc.status = status
    doc.reviewed_by = actor.user_id
    doc.reviewed_at = datetime.now(UTC)
    doc.review_notes = notes
    await session.commit()
    logger.info("Document %s marked %s by %s", document_id, status.value, actor.user_id)
    return doc
