"""Contributions API - claims and verification."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from src.api.deps import CurrentUser, DbSession, Pagination
from src.models.ledger import LedgerReference
from src.schemas.contribution import (
    ContributionCreateRequest,
    ContributionListResponse,
    ContributionResponse,
    VerificationAction,
    VerifyContributionRequest,
    VerifyContributionResponse,
)
from src.services.contribution_service import ContributionService

router = APIRouter(tags=["Contributions"])


def get_contribution_service(db: DbSession) -> ContributionService:
    """Get contribution service instance."""
    return ContributionService(db)


@router.post("/contributions", response_model=ContributionResponse, status_code=201)
async def create_contribution(
    user: CurrentUser,
    data: ContributionCreateRequest,
    service: Annotated[ContributionService, Depends(get_contribution_service)],
) -> ContributionResponse:
    """Submit a contribution claim for verification."""
    contribution = await service.create(
        claimant_id=user.id,
        contribution_type=data.contribution_type,
        amount_requested=data.amount_requested,
        description=data.description,
        reference=LedgerReference.parse(data.reference_type, data.reference_id),
    )
    return ContributionResponse.model_validate(contribution)


@router.get("/contributions", response_model=ContributionListResponse)
async def list_my_contributions(
    user: CurrentUser,
    pagination: Pagination,
    service: Annotated[ContributionService, Depends(get_contribution_service)],
) -> ContributionListResponse:
    """List the caller's claims, newest first."""
    items, total = await service.list_for_user(user.id, pagination)
    return ContributionListResponse(
        items=[ContributionResponse.model_validate(i) for i in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get("/contributions/pending", response_model=ContributionListResponse)
async def list_pending_contributions(
    user: CurrentUser,
    pagination: Pagination,
    service: Annotated[ContributionService, Depends(get_contribution_service)],
    reference_type: str | None = Query(None, description="project or event"),
    reference_id: str | None = Query(None),
) -> ContributionListResponse:
    """List pending claims the caller may resolve.

    Non-admins must pass a project or event they created.
    """
    items, total = await service.list_pending(
        user, pagination, reference=LedgerReference.parse(reference_type, reference_id)
    )
    return ContributionListResponse(
        items=[ContributionResponse.model_validate(i) for i in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post("/verify-contribution", response_model=VerifyContributionResponse)
async def verify_contribution(
    user: CurrentUser,
    data: VerifyContributionRequest,
    service: Annotated[ContributionService, Depends(get_contribution_service)],
) -> VerifyContributionResponse:
    """Verify or reject a pending claim."""
    if data.action == VerificationAction.REJECT:
        result = await service.reject(data.contribution_id, user.id)
    else:
        result = await service.verify(
            data.contribution_id, user.id, amount_override=data.amount_override
        )
    return VerifyContributionResponse(
        status=result.status,
        amount_awarded=result.amount_awarded,
        was_capped=result.was_capped,
    )
