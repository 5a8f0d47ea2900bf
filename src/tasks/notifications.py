"""Push delivery of outbox notifications."""

import asyncio
import logging
from datetime import timedelta

import httpx
from celery.exceptions import Retry

from src.core.config import get_settings
from src.db.engine import close_db, get_session
from src.models.notification import DispatchStatus, Notification
from src.services.notification_service import NotificationService
from src.tasks.celery_app import celery_app
from src.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Retry intervals: 30s, 2m, 10m, 1h, 6h
DELIVERY_RETRY_INTERVALS = [30, 120, 600, 3600, 21600]

# Outbox rows still pending after this long are handed to the broker again
REDELIVERY_GRACE = timedelta(minutes=5)


@celery_app.task(name="notifications.send", bind=True, max_retries=len(DELIVERY_RETRY_INTERVALS))
def send_notification(self, notification_id: int) -> dict:
    """Deliver one notification to the push gateway."""
    return asyncio.run(_send_notification(self, notification_id))


async def _send_notification(task, notification_id: int) -> dict:
    settings = get_settings()
    try:
        async with get_session() as db:
            service = NotificationService(db)

            notification = await db.get(Notification, notification_id)
            if not notification:
                logger.error(f"Notification {notification_id} not found")
                return {"success": False, "message": "Notification not found"}

            if notification.dispatch_status == DispatchStatus.SENT:
                logger.info(f"Notification {notification_id} already sent")
                return {"success": True, "message": "Already sent"}

            # In-app only: the inbox row is the delivery
            if not settings.notification_webhook_url:
                await service.mark_sent(notification)
                return {"success": True, "message": "Stored in inbox"}

            payload = service.build_payload(notification)
            try:
                async with httpx.AsyncClient(
                    timeout=settings.notification_timeout_seconds
                ) as client:
                    response = await client.post(settings.notification_webhook_url, json=payload)
            except httpx.RequestError as e:
                logger.warning(f"Notification {notification_id} request error: {e}")
                response = None

            if response is not None and response.is_success:
                await service.mark_sent(notification)
                logger.info(f"Notification {notification_id} delivered to user {notification.user_id}")
                return {"success": True, "message": "Delivered"}

            if response is not None:
                logger.warning(
                    f"Notification {notification_id} rejected: "
                    f"HTTP {response.status_code} - {response.text}"
                )
            await service.mark_failed(notification)

            retry_count = task.request.retries
            if retry_count < len(DELIVERY_RETRY_INTERVALS):
                task.retry(countdown=DELIVERY_RETRY_INTERVALS[retry_count])

            return {"success": False, "message": "Delivery failed"}

    except Retry:
        raise
    except Exception as e:
        logger.exception(f"Notification task error for {notification_id}: {e}")
        raise
    finally:
        await close_db()


@celery_app.task(name="notifications.redeliver_pending")
def redeliver_pending() -> dict:
    """Re-queue outbox rows whose post-commit dispatch never reached the broker."""
    return asyncio.run(_redeliver_pending())


async def _redeliver_pending() -> dict:
    try:
        async with get_session() as db:
            service = NotificationService(db)
            stale = await service.list_undelivered(utcnow() - REDELIVERY_GRACE)
            requeued = service.dispatch(stale)
            if requeued:
                logger.info(f"Re-queued {requeued} undelivered notifications")
            return {"requeued": requeued}
    finally:
        await close_db()
