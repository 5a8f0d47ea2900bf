"""Notification schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from src.models.notification import NotificationType


class NotificationResponse(BaseModel):
    """In-app notification."""

    id: int
    type: NotificationType
    title: str
    body: str
    data: dict[str, Any] = {}
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """Paginated notification list response."""

    items: list[NotificationResponse]
    total: int
    page: int
    page_size: int
