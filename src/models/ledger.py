"""LC Credit Ledger - Ledger models.

This module defines the append-only credit ledger:
1. Ledger entry types and credit pools
2. Polymorphic references (what caused an entry)
3. The ledger entry table itself
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from src.core.exceptions import ValidationError

# =============================================================================
# 1. Entry type / credit pool
# =============================================================================


class LedgerEntryType(str, Enum):
    """Ledger entry type."""

    EARN = "earn"  # verified contribution or admin award
    SPEND = "spend"  # tip / store purchase
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PAYOUT_CONVERSION = "payout_conversion"
    REFUND = "refund"
    PURCHASE = "purchase"  # Genesis issuance
    SALE = "sale"


class CreditType(str, Enum):
    """Credit pool an entry affected."""

    GENESIS = "genesis"
    EARNED = "earned"


# =============================================================================
# 2. References
# =============================================================================


class ReferenceType(str, Enum):
    """Kinds of objects a ledger entry or claim can point at."""

    TRANSFER = "transfer"  # reference_id = counterpart user id
    PROJECT = "project"
    EVENT = "event"
    ORDER = "order"
    STREAM_TIP = "stream_tip"
    GRANT = "grant"


@dataclass(frozen=True)
class LedgerReference:
    """Typed (reference_type, reference_id) pair.

    Persisted as two loose columns; parse() validates the tag before the
    pair is used anywhere else.
    """

    type: ReferenceType
    id: str

    @classmethod
    def parse(cls, reference_type: str | None, reference_id: str | int | None) -> "LedgerReference | None":
        """Build a reference from raw values.

        Returns None when both parts are absent.

        Raises:
            ValidationError: Unknown tag, or only one part given
        """
        if reference_type is None and reference_id is None:
            return None
        if reference_type is None or reference_id is None or str(reference_id) == "":
            raise ValidationError("reference_type and reference_id must be given together")
        try:
            ref_type = ReferenceType(reference_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown reference type: {reference_type}",
                {"allowed": [t.value for t in ReferenceType]},
            ) from e
        return cls(type=ref_type, id=str(reference_id))

    @classmethod
    def transfer(cls, counterpart_id: int) -> "LedgerReference":
        return cls(type=ReferenceType.TRANSFER, id=str(counterpart_id))


# =============================================================================
# 3. Ledger entry
# =============================================================================


class CreditLedger(SQLModel, table=True):
    """Credit ledger entry - immutable record of one balance change.

    Replaying every entry of a user in (created_at, id) order and summing
    genesis_amount / earned_amount reproduces the user's current pools.

    Attributes:
        id: Auto-increment primary key
        user_id: Account whose pools changed

        amount: Signed change (positive=credit, negative=debit)
        balance_after: Total balance right after this entry
        type: What happened (earn, spend, transfer_in, ...)
        credit_type: Pool the entry affected
        genesis_amount: Signed Genesis part of amount
        earned_amount: Signed Earned part of amount

        description: Human readable description
        reference_type: Kind of causing object
        reference_id: Id of causing object
        verified_by: Verifier of an earn entry
        verification_type: Contribution type behind an earn entry

        created_at: Record creation time
    """

    __tablename__ = "credit_ledger"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)

    amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False),
        description="Change amount (positive=add, negative=deduct)",
    )
    balance_after: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False),
        description="Total balance after change",
    )
    type: LedgerEntryType = Field(index=True, description="Type of balance change")
    credit_type: CreditType = Field(index=True, description="Affected credit pool")
    genesis_amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False, default=Decimal("0")),
    )
    earned_amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(32, 8), nullable=False, default=Decimal("0")),
    )

    description: str | None = Field(default=None, max_length=500)
    reference_type: ReferenceType | None = Field(default=None, index=True)
    reference_id: str | None = Field(default=None, max_length=64, index=True)
    verified_by: int | None = Field(default=None, foreign_key="users.id")
    verification_type: str | None = Field(default=None, max_length=50)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    @property
    def reference(self) -> LedgerReference | None:
        if self.reference_type is None or self.reference_id is None:
            return None
        return LedgerReference(type=self.reference_type, id=self.reference_id)
