"""LC Credit Ledger - Contribution claims and earning limits."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.models.ledger import ReferenceType


class ContributionType(str, Enum):
    """Kinds of contribution a member can claim credits for."""

    PROJECT_WORK = "project_work"
    EVENT_HOSTING = "event_hosting"
    EVENT_PARTICIPATION = "event_participation"
    MENTORSHIP = "mentorship"
    COMMUNITY_HELP = "community_help"


class ContributionStatus(str, Enum):
    """Contribution claim status.

    State transitions:
    - pending -> verified (credits minted)
    - pending -> rejected
    Both verified and rejected are terminal.
    """

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class CreditContribution(SQLModel, table=True):
    """Contribution claim awaiting (or after) verification.

    Attributes:
        id: Auto-increment primary key
        user_id: Claimant
        contribution_type: What was contributed
        description: Claimant's description
        reference_type: project / event the claim is about (optional)
        reference_id: Id of that project / event

        amount_requested: Credits asked for
        amount_earned: Credits actually minted (set on verify)
        status: pending / verified / rejected
        verified_by: User who resolved the claim
        verified_at: Resolution time
    """

    __tablename__ = "credit_contributions"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    contribution_type: ContributionType = Field(description="Contribution type")
    description: str | None = Field(default=None, max_length=1000)
    reference_type: ReferenceType | None = Field(default=None, index=True)
    reference_id: str | None = Field(default=None, max_length=64, index=True)

    amount_requested: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False),
        description="Credits requested by claimant",
    )
    amount_earned: Decimal | None = Field(
        default=None,
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=True),
        description="Credits awarded after caps",
    )
    status: ContributionStatus = Field(default=ContributionStatus.PENDING, index=True)
    verified_by: int | None = Field(default=None, foreign_key="users.id")
    verified_at: datetime | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class CreditEarningLimit(SQLModel, table=True):
    """Rolling earning accumulators per user.

    Attributes:
        user_id: Account owner (unique)
        daily_earned: Earned in the current 24h window
        weekly_earned: Earned in the current 7d window
        last_daily_reset: Start of the current daily window
        last_weekly_reset: Start of the current weekly window
        reputation_multiplier: Factor applied to awarded amounts
    """

    __tablename__ = "credit_earning_limits"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)

    daily_earned: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False, default=Decimal("0")),
    )
    weekly_earned: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False, default=Decimal("0")),
    )
    last_daily_reset: datetime | None = Field(default=None)
    last_weekly_reset: datetime | None = Field(default=None)
    reputation_multiplier: Decimal = Field(
        default=Decimal("1"),
        sa_column=sa.Column(sa.DECIMAL(6, 3), nullable=False, default=Decimal("1")),
    )

    updated_at: datetime = Field(default_factory=datetime.utcnow)
