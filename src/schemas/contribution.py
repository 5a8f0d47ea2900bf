"""Contribution schemas - claims and verification."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from src.models.contribution import ContributionStatus, ContributionType
from src.models.ledger import ReferenceType


class VerificationAction(str, Enum):
    """Verifier decision."""

    VERIFY = "verify"
    REJECT = "reject"


class ContributionCreateRequest(BaseModel):
    """Submit a contribution claim."""

    contribution_type: ContributionType
    amount_requested: Decimal = Field(..., description="Credits requested")
    description: str | None = Field(default=None, max_length=1000)
    reference_type: ReferenceType | None = Field(default=None, description="project or event")
    reference_id: str | None = Field(default=None, max_length=64)


class ContributionResponse(BaseModel):
    """Contribution claim."""

    id: int
    user_id: int
    contribution_type: ContributionType
    description: str | None = None
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    amount_requested: Decimal
    amount_earned: Decimal | None = None
    status: ContributionStatus
    verified_by: int | None = None
    verified_at: datetime | None = None
    created_at: datetime

    class Config:
        from_attributes = True


class ContributionListResponse(BaseModel):
    """Paginated contribution list response."""

    items: list[ContributionResponse]
    total: int
    page: int
    page_size: int


class VerifyContributionRequest(BaseModel):
    """Resolve a pending claim."""

    contribution_id: int
    action: VerificationAction
    amount_override: Decimal | None = Field(
        default=None, description="Award this amount instead of the requested one"
    )


class VerifyContributionResponse(BaseModel):
    """Resolution outcome."""

    success: bool = True
    status: ContributionStatus
    amount_awarded: Decimal | None = None
    was_capped: bool | None = None
