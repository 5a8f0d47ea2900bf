"""Celery app for outbox delivery."""

from celery import Celery

from src.core.config import get_settings

settings = get_settings()

# Sweep interval for outbox rows that never reached the broker (seconds)
REDELIVERY_SWEEP_SECONDS = 300.0

celery_app = Celery(
    "lc_credit_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["src.tasks.notifications"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A delivery lost with its worker is redelivered; the task skips rows already sent
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_expires=600,
    task_default_queue="notifications",
    task_routes={"notifications.*": {"queue": "notifications"}},
    beat_schedule={
        "redeliver-notifications": {
            "task": "notifications.redeliver_pending",
            "schedule": REDELIVERY_SWEEP_SECONDS,
        },
    },
)
