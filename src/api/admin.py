"""Admin API - credit issuance, awards and account maintenance."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.deps import AdminUser, DbSession
from src.models.ledger import LedgerReference, ReferenceType
from src.schemas.credit import (
    AwardCreditsRequest,
    EarningLimitsResponse,
    GrantGenesisRequest,
    LedgerEntryResponse,
    MultiplierUpdateRequest,
    ReconcileResponse,
)
from src.services.credit_service import CreditService
from src.services.rate_limit_service import RateLimitService, build_allowance
from src.utils.helpers import utcnow

router = APIRouter(prefix="/admin/credits", tags=["Admin"])


def get_credit_service(db: DbSession) -> CreditService:
    """Get credit service instance."""
    return CreditService(db)


@router.post("/genesis", response_model=LedgerEntryResponse, status_code=201)
async def grant_genesis(
    admin: AdminUser,
    data: GrantGenesisRequest,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> LedgerEntryResponse:
    """Mint Genesis credits for a user (purchase or platform grant)."""
    entry = await service.grant_genesis(
        data.user_id,
        data.amount,
        description=data.description,
        reference=LedgerReference(type=ReferenceType.GRANT, id=str(admin.id)),
    )
    return LedgerEntryResponse.model_validate(entry)


@router.post("/award", response_model=LedgerEntryResponse, status_code=201)
async def award_credits(
    admin: AdminUser,
    data: AwardCreditsRequest,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> LedgerEntryResponse:
    """Award Earned credits directly. Not subject to contribution limits."""
    entry = await service.award_earned(
        data.user_id,
        data.amount,
        description=data.description,
        reference=LedgerReference.parse(data.reference_type, data.reference_id),
    )
    return LedgerEntryResponse.model_validate(entry)


@router.get("/{user_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_account(
    user_id: int,
    admin: AdminUser,
    service: Annotated[CreditService, Depends(get_credit_service)],
) -> ReconcileResponse:
    """Replay a user's ledger and compare it with the stored balances."""
    replay = await service.replay(user_id)
    return ReconcileResponse(
        user_id=user_id,
        entry_count=replay.entry_count,
        replayed_genesis=replay.replayed.genesis,
        replayed_earned=replay.replayed.earned,
        stored_genesis=replay.stored.genesis,
        stored_earned=replay.stored.earned,
        matches=replay.matches,
    )


@router.put("/{user_id}/multiplier", response_model=EarningLimitsResponse)
async def set_multiplier(
    user_id: int,
    admin: AdminUser,
    data: MultiplierUpdateRequest,
    db: DbSession,
) -> EarningLimitsResponse:
    """Set a user's reputation multiplier."""
    limits = await RateLimitService(db).set_multiplier(user_id, data.reputation_multiplier)
    allowance = build_allowance(limits, utcnow())
    return EarningLimitsResponse(
        user_id=user_id,
        reputation_multiplier=allowance.multiplier,
        daily_earned=allowance.daily.total,
        weekly_earned=allowance.weekly.total,
        daily_cap=allowance.daily_cap,
        weekly_cap=allowance.weekly_cap,
        daily_remaining=max(allowance.daily_remaining, 0),
        weekly_remaining=max(allowance.weekly_remaining, 0),
    )
