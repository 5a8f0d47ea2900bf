"""LC Credit Ledger - Notification outbox.

Rows are written inside the financial transaction that produced them and
handed to the Celery delivery task only after that transaction commits.
The same rows back the in-app notification list.
"""

from datetime import datetime
from enum import Enum
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class NotificationType(str, Enum):
    """Notification categories emitted by the ledger."""

    CREDITS_RECEIVED = "credits_received"
    CONTRIBUTION_VERIFIED = "contribution_verified"
    CONTRIBUTION_REJECTED = "contribution_rejected"
    CREDITS_AWARDED = "credits_awarded"
    TIP_RECEIVED = "tip_received"
    ITEM_SOLD = "item_sold"


class DispatchStatus(str, Enum):
    """Push delivery status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"  # gave up after retries


class Notification(SQLModel, table=True):
    """Outbox / inbox notification row."""

    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    type: NotificationType = Field(index=True)
    title: str = Field(max_length=255)
    body: str = Field(max_length=1000)
    data: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=sa.Column(sa.JSON, nullable=False, default=dict),
    )

    dispatch_status: DispatchStatus = Field(default=DispatchStatus.PENDING, index=True)
    attempts: int = Field(default=0)
    is_read: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    dispatched_at: datetime | None = Field(default=None)
