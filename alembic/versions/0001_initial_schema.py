"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Initial database schema for the LC Credit Ledger.
"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

REFERENCE_TYPES = ("TRANSFER", "PROJECT", "EVENT", "ORDER", "STREAM_TIP", "GRANT")


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DECIMAL(precision=32, scale=8), nullable=nullable)


def upgrade() -> None:
    """Create initial database schema."""
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("clerk_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("display_name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("role", sa.Enum("ADMIN", "MEMBER", name="userrole"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_clerk_id"), "users", ["clerk_id"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    # Projects / events (owned by other services; read for verifier checks)
    for table in ("projects", "events"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("creator_id", sa.Integer(), nullable=False),
            sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["creator_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f(f"ix_{table}_creator_id"), table, ["creator_id"], unique=False)

    # Account balances
    op.create_table(
        "user_credits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _money("genesis_balance"),
        _money("earned_balance"),
        _money("balance"),
        _money("genesis_lifetime_minted"),
        _money("genesis_burned"),
        _money("lifetime_earned"),
        _money("lifetime_spent"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_credits_user_id"), "user_credits", ["user_id"], unique=True)

    # Ledger
    op.create_table(
        "credit_ledger",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _money("amount"),
        _money("balance_after"),
        sa.Column(
            "type",
            sa.Enum(
                "EARN",
                "SPEND",
                "TRANSFER_IN",
                "TRANSFER_OUT",
                "PAYOUT_CONVERSION",
                "REFUND",
                "PURCHASE",
                "SALE",
                name="ledgerentrytype",
            ),
            nullable=False,
        ),
        sa.Column("credit_type", sa.Enum("GENESIS", "EARNED", name="credittype"), nullable=False),
        _money("genesis_amount"),
        _money("earned_amount"),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=500), nullable=True),
        sa.Column("reference_type", sa.Enum(*REFERENCE_TYPES, name="referencetype"), nullable=True),
        sa.Column("reference_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("verified_by", sa.Integer(), nullable=True),
        sa.Column("verification_type", sqlmodel.sql.sqltypes.AutoString(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["verified_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_credit_ledger_user_id"), "credit_ledger", ["user_id"], unique=False)
    op.create_index(op.f("ix_credit_ledger_type"), "credit_ledger", ["type"], unique=False)
    op.create_index(
        op.f("ix_credit_ledger_credit_type"), "credit_ledger", ["credit_type"], unique=False
    )
    op.create_index(
        op.f("ix_credit_ledger_reference_type"), "credit_ledger", ["reference_type"], unique=False
    )
    op.create_index(
        op.f("ix_credit_ledger_reference_id"), "credit_ledger", ["reference_id"], unique=False
    )
    op.create_index(
        op.f("ix_credit_ledger_created_at"), "credit_ledger", ["created_at"], unique=False
    )

    # Contribution claims
    op.create_table(
        "credit_contributions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "contribution_type",
            sa.Enum(
                "PROJECT_WORK",
                "EVENT_HOSTING",
                "EVENT_PARTICIPATION",
                "MENTORSHIP",
                "COMMUNITY_HELP",
                name="contributiontype",
            ),
            nullable=False,
        ),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=True),
        sa.Column("reference_type", sa.Enum(*REFERENCE_TYPES, name="referencetype"), nullable=True),
        sa.Column("reference_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        _money("amount_requested"),
        _money("amount_earned", nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "VERIFIED", "REJECTED", name="contributionstatus"),
            nullable=False,
        ),
        sa.Column("verified_by", sa.Integer(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["verified_by"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_credit_contributions_user_id"), "credit_contributions", ["user_id"], unique=False
    )
    op.create_index(
        op.f("ix_credit_contributions_reference_type"),
        "credit_contributions",
        ["reference_type"],
        unique=False,
    )
    op.create_index(
        op.f("ix_credit_contributions_reference_id"),
        "credit_contributions",
        ["reference_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_credit_contributions_status"), "credit_contributions", ["status"], unique=False
    )
    op.create_index(
        op.f("ix_credit_contributions_created_at"),
        "credit_contributions",
        ["created_at"],
        unique=False,
    )

    # Rolling earning limits
    op.create_table(
        "credit_earning_limits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        _money("daily_earned"),
        _money("weekly_earned"),
        sa.Column("last_daily_reset", sa.DateTime(), nullable=True),
        sa.Column("last_weekly_reset", sa.DateTime(), nullable=True),
        sa.Column("reputation_multiplier", sa.DECIMAL(precision=6, scale=3), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_credit_earning_limits_user_id"), "credit_earning_limits", ["user_id"], unique=True
    )

    # Notification outbox / inbox
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "CREDITS_RECEIVED",
                "CONTRIBUTION_VERIFIED",
                "CONTRIBUTION_REJECTED",
                "CREDITS_AWARDED",
                name="notificationtype",
            ),
            nullable=False,
        ),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("body", sqlmodel.sql.sqltypes.AutoString(length=1000), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column(
            "dispatch_status",
            sa.Enum("PENDING", "SENT", "FAILED", name="dispatchstatus"),
            nullable=False,
        ),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(op.f("ix_notifications_type"), "notifications", ["type"], unique=False)
    op.create_index(
        op.f("ix_notifications_dispatch_status"), "notifications", ["dispatch_status"], unique=False
    )
    op.create_index(
        op.f("ix_notifications_created_at"), "notifications", ["created_at"], unique=False
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("notifications")
    op.drop_table("credit_earning_limits")
    op.drop_table("credit_contributions")
    op.drop_table("credit_ledger")
    op.drop_table("user_credits")
    op.drop_table("events")
    op.drop_table("projects")
    op.drop_table("users")
