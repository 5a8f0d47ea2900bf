"""Notifications API - in-app inbox."""

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, DbSession, Pagination
from src.schemas.notification import NotificationListResponse, NotificationResponse
from src.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user: CurrentUser,
    db: DbSession,
    pagination: Pagination,
    unread_only: bool = Query(False, description="Only unread notifications"),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    items, total = await NotificationService(db).list_for_user(
        user.id, pagination, unread_only=unread_only
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(i) for i in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int, user: CurrentUser, db: DbSession
) -> NotificationResponse:
    notification = await NotificationService(db).mark_read(user.id, notification_id)
    return NotificationResponse.model_validate(notification)
