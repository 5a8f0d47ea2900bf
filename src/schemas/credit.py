"""Credit schemas - Request/Response DTOs for balances, transfers and the ledger."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.ledger import CreditType, LedgerEntryType, ReferenceType

# =============================================================================
# Balance Schemas
# =============================================================================


class BalanceResponse(BaseModel):
    """Caller's pools and lifetime counters."""

    user_id: int
    genesis_balance: Decimal
    earned_balance: Decimal
    balance: Decimal
    genesis_lifetime_minted: Decimal = Decimal("0")
    genesis_burned: Decimal = Decimal("0")
    lifetime_earned: Decimal = Decimal("0")
    lifetime_spent: Decimal = Decimal("0")

    class Config:
        from_attributes = True


class EarningLimitsResponse(BaseModel):
    """Effective rate limit state for the caller."""

    user_id: int
    reputation_multiplier: Decimal
    daily_earned: Decimal
    weekly_earned: Decimal
    daily_cap: Decimal
    weekly_cap: Decimal
    daily_remaining: Decimal
    weekly_remaining: Decimal


# =============================================================================
# Transfer Schemas
# =============================================================================


class TransferRequest(BaseModel):
    """Peer-to-peer transfer request."""

    recipient_id: int = Field(..., description="Recipient user ID")
    amount: Decimal = Field(..., description="Credits to transfer")
    message: str | None = Field(default=None, max_length=500, description="Optional note")


class TransferResponse(BaseModel):
    """Transfer outcome."""

    success: bool = True
    amount_transferred: Decimal
    genesis_burned: Decimal
    earned_spent: Decimal
    recipient_name: str | None = None


# =============================================================================
# Ledger Schemas
# =============================================================================


class LedgerEntryResponse(BaseModel):
    """One ledger entry."""

    id: int
    user_id: int
    amount: Decimal
    balance_after: Decimal
    type: LedgerEntryType
    credit_type: CreditType
    genesis_amount: Decimal
    earned_amount: Decimal
    description: str | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    verified_by: int | None = None
    verification_type: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class LedgerListResponse(BaseModel):
    """Paginated ledger list response."""

    items: list[LedgerEntryResponse]
    total: int
    page: int
    page_size: int


# =============================================================================
# Spend Schemas
# =============================================================================


class SpendRequest(BaseModel):
    """Pay a stream host or a store seller in credits."""

    amount: Decimal = Field(..., description="Credits to spend")
    reference_type: ReferenceType = Field(..., description="stream_tip or order")
    reference_id: str = Field(..., min_length=1, max_length=64, description="Stream or order id")
    payee_id: int = Field(..., description="Stream host or store seller")
    description: str | None = Field(default=None, max_length=500)


class SpendResponse(BaseModel):
    """Spend outcome."""

    success: bool = True
    genesis_burned: Decimal
    earned_spent: Decimal
    balance_after: Decimal
    payee_credited: Decimal
    platform_fee: Decimal


class PayoutRequest(BaseModel):
    """Convert Earned credits towards a payout."""

    amount: Decimal = Field(..., description="Earned credits to convert")
    project_id: int | None = Field(default=None, description="Project the payout is for")
    description: str | None = Field(default=None, max_length=500)


class PayoutResponse(BaseModel):
    """Payout conversion outcome."""

    success: bool = True
    ledger_id: int
    amount_converted: Decimal
    earned_balance: Decimal
    balance_after: Decimal


# =============================================================================
# Admin Schemas
# =============================================================================


class GrantGenesisRequest(BaseModel):
    """Mint Genesis credits for a user."""

    user_id: int
    amount: Decimal
    description: str | None = Field(default=None, max_length=500)


class AwardCreditsRequest(BaseModel):
    """Award Earned credits directly (not rate limited)."""

    user_id: int
    amount: Decimal
    description: str = Field(..., min_length=1, max_length=500)
    reference_type: ReferenceType | None = None
    reference_id: str | None = Field(default=None, max_length=64)


class MultiplierUpdateRequest(BaseModel):
    """Set a user's reputation multiplier."""

    reputation_multiplier: Decimal = Field(..., ge=0, le=100)


class ReconcileResponse(BaseModel):
    """Ledger replay compared with the stored balance row."""

    user_id: int
    entry_count: int
    replayed_genesis: Decimal
    replayed_earned: Decimal
    stored_genesis: Decimal
    stored_earned: Decimal
    matches: bool
