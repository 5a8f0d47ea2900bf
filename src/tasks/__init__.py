"""LC Credit Ledger Tasks Module."""

from src.tasks.celery_app import celery_app
from src.tasks.notifications import redeliver_pending, send_notification

__all__ = [
    "celery_app",
    "redeliver_pending",
    "send_notification",
]
