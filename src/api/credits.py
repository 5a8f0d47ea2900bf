"""Credits API - balances, transfers, spending, payouts and the ledger."""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.api.deps import CurrentUser, DbSession, Pagination
from src.models.ledger import CreditType, LedgerEntryType, LedgerReference, ReferenceType
from src.schemas.credit import (
    BalanceResponse,
    EarningLimitsResponse,
    LedgerEntryResponse,
    LedgerListResponse,
    PayoutRequest,
    PayoutResponse,
    SpendRequest,
    SpendResponse,
    TransferRequest,
    TransferResponse,
)
from src.services.credit_service import CreditService
from src.services.rate_limit_service import RateLimitService
from src.services.transfer_service import TransferService

router = APIRouter(tags=["Credits"])


def get_credit_service(db: DbSession) -> CreditService:
    """Get credit service instance."""
    return CreditService(db)


def get_transfer_service(db: DbSession) -> TransferService:
    """Get transfer service instance."""
    return TransferService(db)


# =============================================================================
# Transfers
# =============================================================================


@router.post("/transfer", response_model=TransferResponse)
async def transfer_credits(
    user: CurrentUser,
    data: TransferRequest,
    service: Annotated[TransferService, Depends(get_transfer_service)],
) -> TransferResponse:
    """Send credits to another member.

    Genesis credits are spent first and burned; the recipient always
    receives Earned credits.
    """
    result = await service.transfer(
        sender_id=user.id,
        recipient_id=data.recipient_id,
        amount=data.amount,
        message=data.message,
    )
    return TransferResponse(
        amount_transferred=result.amount_transferred,
        genesis_burned=result.genesis_burned,
        earned_spent=result.earned_spent,
        recipient_name=result.recipient_name,
    )


# =============================================================================
# Balances & Ledger
# =============================================================================


@router.get("/credits/balance", response_model=BalanceResponse)
async def get_balance(
    user: CurrentUser,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> BalanceResponse:
    """Get the caller's pools and lifetime counters."""
    account = await service.get_account(user.id)
    if account is None:
        zero = Decimal("0")
        return BalanceResponse(
            user_id=user.id, genesis_balance=zero, earned_balance=zero, balance=zero
        )
    return BalanceResponse.model_validate(account)


@router.get("/credits/ledger", response_model=LedgerListResponse)
async def list_ledger(
    user: CurrentUser,
    pagination: Pagination,
    service: Annotated[CreditService, Depends(get_credit_service)],
    credit_type: CreditType | None = Query(None, description="Filter by pool"),
    entry_type: LedgerEntryType | None = Query(None, alias="type", description="Filter by entry type"),
) -> LedgerListResponse:
    """List the caller's ledger entries, newest first."""
    items, total = await service.list_ledger(
        user.id, pagination, credit_type=credit_type, entry_type=entry_type
    )
    return LedgerListResponse(
        items=[LedgerEntryResponse.model_validate(i) for i in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get("/credits/limits", response_model=EarningLimitsResponse)
async def get_limits(user: CurrentUser, db: DbSession) -> EarningLimitsResponse:
    """Get the caller's effective earning limits."""
    allowance = await RateLimitService(db).get_allowance(user.id)
    return EarningLimitsResponse(
        user_id=user.id,
        reputation_multiplier=allowance.multiplier,
        daily_earned=allowance.daily.total,
        weekly_earned=allowance.weekly.total,
        daily_cap=allowance.daily_cap,
        weekly_cap=allowance.weekly_cap,
        daily_remaining=max(allowance.daily_remaining, 0),
        weekly_remaining=max(allowance.weekly_remaining, 0),
    )


# =============================================================================
# Spending
# =============================================================================


@router.post("/credits/spend", response_model=SpendResponse)
async def spend_credits(
    user: CurrentUser,
    data: SpendRequest,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> SpendResponse:
    """Tip a stream host or pay a store seller.

    The seller of an order receives their share; the rest is the platform fee.
    """
    result = await service.spend(
        user.id,
        data.amount,
        reference=LedgerReference(type=data.reference_type, id=data.reference_id),
        payee_id=data.payee_id,
        description=data.description,
    )
    return SpendResponse(
        genesis_burned=result.allocation.genesis,
        earned_spent=result.allocation.earned,
        balance_after=result.balance_after,
        payee_credited=result.payee_credited,
        platform_fee=result.platform_fee,
    )


@router.post("/credits/payout", response_model=PayoutResponse)
async def convert_to_payout(
    user: CurrentUser,
    data: PayoutRequest,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> PayoutResponse:
    """Convert Earned credits towards a payout. Genesis credits cannot be withdrawn."""
    reference = (
        LedgerReference(ReferenceType.PROJECT, str(data.project_id))
        if data.project_id is not None
        else None
    )
    result = await service.convert_to_payout(
        user.id, data.amount, reference=reference, description=data.description
    )
    return PayoutResponse(
        ledger_id=result.entry.id,
        amount_converted=result.amount,
        earned_balance=result.earned_balance_after,
        balance_after=result.balance_after,
    )
