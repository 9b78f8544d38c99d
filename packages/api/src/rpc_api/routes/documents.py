# This project was developed with assistance from AI tools.
"""Document routes: upload, delete, listing, and needs-list views."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from rpc_db import get_db
from rpc_db.enums import UserRole
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser, require_roles
from ..schemas.auth import Actor
from ..schemas.document import DocumentListResponse, DocumentResponse
from ..schemas.needs_list import FolderState, NeedsListItemState
from ..services import document as doc_service
from ..services import loans as loan_service
from ..services.needs_list import reconcile_needs_list

router = APIRouter()

_ALL_AUTHENTICATED = (
    UserRole.BORROWER,
    UserRole.BROKER,
    UserRole.INVESTOR,
    UserRole.OPERATIONS,
    UserRole.ADMIN,
)

_UPLOAD_ROLES = (
    UserRole.BORROWER,
    UserRole.BROKER,
    UserRole.OPERATIONS,
    UserRole.ADMIN,
)


@router.post(
    "/upload",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*_UPLOAD_ROLES))],
)
async def upload_document(
    user: CurrentUser,
    file: UploadFile = File(...),
    loan_id: int = Form(...),
    needs_list_item_id: int | None = Form(default=None),
    folder_name: str | None = Form(default=None),
    session: AsyncSession = Depends(get_db),
) -> DocumentResponse:
    """Upload a document into a loan's needs-list folder."""
    file_data = await file.read()
    doc = await doc_service.upload_document(
        session,
        Actor.from_user(user),
        loan_id,
        filename=file.filename or "document",
        content_type=file.content_type or "",
        file_data=file_data,
        needs_list_item_id=needs_list_item_id,
        folder_name=folder_name,
        uploader_name=user.name,
    )
    return DocumentResponse.model_validate(doc)


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(*_UPLOAD_ROLES))],
)
async def delete_document(
    document_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> Response:
    await doc_service.delete_document(session, Actor.from_user(user), document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/loan/{loan_id}",
    response_model=DocumentListResponse,
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def list_documents(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    documents = await doc_service.list_documents(session, user, loan_id)
    if documents is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loan not found",
        )
    items = [DocumentResponse.model_validate(doc) for doc in documents]
    return DocumentListResponse(data=items, count=len(items))


async def _reconcile_visible(session: AsyncSession, user, loan_id: int):
    loan = await loan_service.get_loan(session, user, loan_id)
    if loan is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Loan not found",
        )
    return await reconcile_needs_list(session, loan_id)


@router.get(
    "/needs-list/{loan_id}",
    response_model=list[NeedsListItemState],
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_needs_list(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[NeedsListItemState]:
    """Per-item fulfillment state (document counts and folder color)."""
    result = await _reconcile_visible(session, user, loan_id)
    return result.items


@router.get(
    "/folders/{loan_id}",
    response_model=list[FolderState],
    dependencies=[Depends(require_roles(*_ALL_AUTHENTICATED))],
)
async def get_folders(
    loan_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> list[FolderState]:
    """Folder aggregates for display; never used for gating."""
    result = await _reconcile_visible(session, user, loan_id)
    return result.folders
