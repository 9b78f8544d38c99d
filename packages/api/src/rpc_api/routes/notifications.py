# This project was developed with assistance from AI tools.
"""In-app notification routes for the current user."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from rpc_db import get_db
from sqlalchemy.ext.asyncio import AsyncSession

from ..middleware.auth import CurrentUser
from ..schemas.notification import NotificationListResponse, NotificationResponse
from ..services import notifications as notification_service
from ..services.users import ensure_user

router = APIRouter()


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
) -> NotificationListResponse:
    """The caller's notifications, newest first, with the unread count."""
    await ensure_user(session, user)
    await session.commit()
    notes, unread = await notification_service.list_notifications(
        session, user, unread_only=unread_only, limit=limit,
    )
    return NotificationListResponse(
        data=[NotificationResponse.model_validate(n) for n in notes],
        unread=unread,
    )


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notification_id: int,
    user: CurrentUser,
    session: AsyncSession = Depends(get_db),
) -> None:
    if not await notification_service.mark_read(session, user, notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )
