"""LC Credit Ledger - Account credit balances.

One row per user holding the two credit pools:
1. Genesis credits - granted or purchased, burned when spent
2. Earned credits - minted by verified contributions or received transfers

The row is only written by the ledger commit in CreditService, under a row
lock, together with the ledger entry that explains the change.
"""

from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def _money_column(**kwargs) -> sa.Column:
    return sa.Column(sa.DECIMAL(32, 8), nullable=False, default=Decimal("0"), **kwargs)


class UserCredits(SQLModel, table=True):
    """Per-account credit balances.

    Attributes:
        id: Auto-increment primary key
        user_id: Account owner (unique)

        genesis_balance: Genesis pool
        earned_balance: Earned pool
        balance: Total, always genesis_balance + earned_balance

        genesis_lifetime_minted: Genesis credits ever issued to this account
        genesis_burned: Genesis credits destroyed by transfers/spends
        lifetime_earned: Earned credits ever received
        lifetime_spent: Credits ever debited (both pools)
    """

    __tablename__ = "user_credits"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)

    genesis_balance: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    earned_balance: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    balance: Decimal = Field(default=Decimal("0"), sa_column=_money_column())

    genesis_lifetime_minted: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    genesis_burned: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    lifetime_earned: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    lifetime_spent: Decimal = Field(default=Decimal("0"), sa_column=_money_column())

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
