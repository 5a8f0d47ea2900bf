"""tip_and_sale_notifications

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-20

Notify stream hosts of tips and store sellers of credit sales.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | Sequence[str] | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

OLD_TYPES = ("CREDITS_RECEIVED", "CONTRIBUTION_VERIFIED", "CONTRIBUTION_REJECTED", "CREDITS_AWARDED")
NEW_TYPES = (*OLD_TYPES, "TIP_RECEIVED", "ITEM_SOLD")


def upgrade() -> None:
    with op.batch_alter_table("notifications") as batch_op:
        batch_op.alter_column(
            "type",
            existing_type=sa.Enum(*OLD_TYPES, name="notificationtype"),
            type_=sa.Enum(*NEW_TYPES, name="notificationtype"),
            existing_nullable=False,
        )


def downgrade() -> None:
    op.execute("DELETE FROM notifications WHERE type IN ('TIP_RECEIVED', 'ITEM_SOLD')")
    with op.batch_alter_table("notifications") as batch_op:
        batch_op.alter_column(
            "type",
            existing_type=sa.Enum(*NEW_TYPES, name="notificationtype"),
            type_=sa.Enum(*OLD_TYPES, name="notificationtype"),
            existing_nullable=False,
        )
