"""Outbox delivery task and inbox listing."""

import json
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
from sqlmodel import select

from src.core.config import get_settings
from src.core.exceptions import NotFoundError
from src.models.notification import DispatchStatus, Notification
from src.services.credit_service import CreditService
from src.services.notification_service import NotificationService
from src.tasks.notifications import (
    DELIVERY_RETRY_INTERVALS,
    REDELIVERY_GRACE,
    _redeliver_pending,
    _send_notification,
)
from src.utils.helpers import utcnow
from src.utils.pagination import PaginationParams

REAL_ASYNC_CLIENT = httpx.AsyncClient


def _task(retries: int = 0):
    return SimpleNamespace(request=SimpleNamespace(retries=retries), retry=None)


async def _award(db, user) -> Notification:
    await CreditService(db).award_earned(user.id, Decimal("5"), description="Welcome bonus")
    return (await db.execute(select(Notification))).scalar_one()


def _mock_gateway(monkeypatch, handler) -> None:
    monkeypatch.setattr(get_settings(), "notification_webhook_url", "https://push.test/hooks")
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda **kwargs: REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler), **kwargs),
    )


async def test_without_gateway_notification_stays_in_app(db, alice):
    notification = await _award(db, alice)

    result = await _send_notification(_task(), notification.id)

    assert result["success"] is True
    await db.refresh(notification)
    assert notification.dispatch_status == DispatchStatus.SENT
    assert notification.attempts == 1


async def test_delivers_to_gateway(db, alice, monkeypatch):
    notification = await _award(db, alice)
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(202, json={"queued": True})

    _mock_gateway(monkeypatch, handler)

    result = await _send_notification(_task(), notification.id)

    assert result == {"success": True, "message": "Delivered"}
    (payload,) = requests
    assert payload["user_id"] == alice.id
    assert payload["title"] == "You earned 5 LC Credits!"
    assert payload["created_at"].endswith("Z")
    await db.refresh(notification)
    assert notification.dispatch_status == DispatchStatus.SENT
    assert notification.dispatched_at is not None


async def test_gateway_error_marks_failed(db, alice, monkeypatch):
    notification = await _award(db, alice)
    _mock_gateway(monkeypatch, lambda request: httpx.Response(500, text="down"))

    result = await _send_notification(_task(retries=len(DELIVERY_RETRY_INTERVALS)), notification.id)

    assert result["success"] is False
    await db.refresh(notification)
    assert notification.dispatch_status == DispatchStatus.FAILED
    assert notification.attempts == 1


async def test_unknown_notification(db):
    result = await _send_notification(_task(), 31337)
    assert result["success"] is False


async def _age(db, notification: Notification, by: timedelta, status=DispatchStatus.PENDING) -> None:
    notification.created_at = utcnow() - by
    notification.dispatch_status = status
    db.add(notification)
    await db.commit()


class TestRedelivery:
    async def _three_notifications(self, db, user) -> list[Notification]:
        for n in range(3):
            await CreditService(db).award_earned(user.id, Decimal("1"), description=f"Bonus {n}")
        result = await db.execute(select(Notification).order_by(Notification.id))
        return list(result.scalars().all())

    async def test_list_undelivered_only_stale_pending(self, db, alice):
        stale, delivered, _fresh = await self._three_notifications(db, alice)
        await _age(db, stale, timedelta(minutes=10))
        await _age(db, delivered, timedelta(minutes=10), status=DispatchStatus.SENT)

        rows = await NotificationService(db).list_undelivered(utcnow() - REDELIVERY_GRACE)

        assert [n.id for n in rows] == [stale.id]

    async def test_list_undelivered_respects_limit(self, db, alice):
        rows = await self._three_notifications(db, alice)
        for row in rows:
            await _age(db, row, timedelta(hours=1))

        batch = await NotificationService(db).list_undelivered(utcnow(), limit=2)
        assert [n.id for n in batch] == [rows[0].id, rows[1].id]

    async def test_sweep_requeues_stale_rows(self, db, alice, dispatched):
        stale, delivered, _fresh = await self._three_notifications(db, alice)
        stale_id = stale.id
        await _age(db, stale, timedelta(minutes=10))
        await _age(db, delivered, timedelta(minutes=10), status=DispatchStatus.SENT)
        dispatched.sent.clear()

        result = await _redeliver_pending()

        assert result == {"requeued": 1}
        assert dispatched.sent == [stale_id]

    async def test_sweep_with_nothing_pending(self, db, dispatched):
        result = await _redeliver_pending()
        assert result == {"requeued": 0}
        assert dispatched.sent == []


class TestInbox:
    async def test_list_and_mark_read(self, db, alice, bob):
        await CreditService(db).award_earned(alice.id, Decimal("1"), description="One")
        await CreditService(db).award_earned(alice.id, Decimal("2"), description="Two")
        await CreditService(db).award_earned(bob.id, Decimal("3"), description="Three")
        service = NotificationService(db)

        items, total = await service.list_for_user(alice.id, PaginationParams())
        assert total == 2
        assert [n.body for n in items] == ["Two", "One"]

        await service.mark_read(alice.id, items[0].id)
        unread, unread_total = await service.list_for_user(
            alice.id, PaginationParams(), unread_only=True
        )
        assert unread_total == 1
        assert unread[0].body == "One"

    async def test_cannot_mark_someone_elses(self, db, alice, bob):
        await CreditService(db).award_earned(bob.id, Decimal("3"), description="Three")
        notification = (await db.execute(select(Notification))).scalar_one()
        with pytest.raises(NotFoundError):
            await NotificationService(db).mark_read(alice.id, notification.id)
