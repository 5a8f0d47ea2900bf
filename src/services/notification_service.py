"""Notification Service - outbox writes and post-commit dispatch.

queue() adds a Notification row to the caller's open transaction, so the
row commits (or rolls back) together with the ledger change it describes.
dispatch() runs after commit and hands each row id to the Celery delivery
task. Dispatch is best effort: a broker or provider failure is logged and
never reported as a failure of the financial operation.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.exceptions import NotFoundError
from src.models.notification import DispatchStatus, Notification, NotificationType
from src.utils.helpers import format_utc_datetime, utcnow
from src.utils.pagination import PaginationParams, paginate_query

logger = logging.getLogger(__name__)

Dispatcher = Callable[[int], Any]


def enqueue_delivery(notification_id: int) -> None:
    """Queue push delivery of one notification on the Celery worker."""
    from src.tasks.notifications import send_notification

    send_notification.delay(notification_id)


class NotificationService:
    """Service for the notification outbox."""

    def __init__(self, db: AsyncSession, dispatcher: Dispatcher | None = None):
        self.db = db
        self._dispatcher = dispatcher

    def queue(
        self,
        user_id: int,
        notification_type: NotificationType,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Add a notification to the current transaction's outbox."""
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            body=body,
            data=data or {},
        )
        self.db.add(notification)
        return notification

    def dispatch(self, notifications: Iterable[Notification]) -> int:
        """Hand committed notifications to the delivery queue.

        Must only be called after the owning transaction committed.

        Returns:
            Number of notifications successfully handed off
        """
        dispatcher = self._dispatcher or enqueue_delivery
        handed_off = 0
        for notification in notifications:
            if notification.id is None:
                logger.warning(f"Skipping uncommitted notification for user {notification.user_id}")
                continue
            try:
                dispatcher(notification.id)
                handed_off += 1
            except Exception as e:
                logger.warning(f"Notification {notification.id} dispatch failed: {e}")
        return handed_off

    async def list_for_user(
        self,
        user_id: int,
        params: PaginationParams,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        """List a user's notifications, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        return await paginate_query(self.db, query, params)

    async def mark_read(self, user_id: int, notification_id: int) -> Notification:
        """Mark one of the user's notifications as read.

        Raises:
            NotFoundError: No such notification for this user
        """
        notification = await self.db.get(Notification, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification not found", {"notification_id": notification_id})
        notification.is_read = True
        self.db.add(notification)
        await self.db.commit()
        return notification

    # =========================================================================
    # Delivery bookkeeping (Celery worker side)
    # =========================================================================

    def build_payload(self, notification: Notification) -> dict[str, Any]:
        """Build the push gateway request body."""
        return {
            "user_id": notification.user_id,
            "type": notification.type.value,
            "title": notification.title,
            "body": notification.body,
            "data": notification.data or {},
            "created_at": format_utc_datetime(notification.created_at),
        }

    async def mark_sent(self, notification: Notification) -> None:
        notification.dispatch_status = DispatchStatus.SENT
        notification.attempts += 1
        notification.dispatched_at = utcnow()
        self.db.add(notification)
        await self.db.commit()

    async def mark_failed(self, notification: Notification) -> None:
        notification.dispatch_status = DispatchStatus.FAILED
        notification.attempts += 1
        self.db.add(notification)
        await self.db.commit()

    async def list_undelivered(self, older_than: datetime, limit: int = 100) -> list[Notification]:
        """Pending outbox rows created before ``older_than``."""
        result = await self.db.execute(
            select(Notification)
            .where(
                Notification.dispatch_status == DispatchStatus.PENDING,
                Notification.created_at < older_than,
            )
            .order_by(Notification.id)
            .limit(limit)
        )
        return list(result.scalars().all())
