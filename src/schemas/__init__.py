"""Schemas module - Pydantic DTOs for request/response."""

from src.schemas.contribution import (
    ContributionCreateRequest,
    ContributionListResponse,
    ContributionResponse,
    VerificationAction,
    VerifyContributionRequest,
    VerifyContributionResponse,
)
from src.schemas.credit import (
    AwardCreditsRequest,
    BalanceResponse,
    EarningLimitsResponse,
    GrantGenesisRequest,
    LedgerEntryResponse,
    LedgerListResponse,
    MultiplierUpdateRequest,
    PayoutRequest,
    PayoutResponse,
    ReconcileResponse,
    SpendRequest,
    SpendResponse,
    TransferRequest,
    TransferResponse,
)
from src.schemas.notification import NotificationListResponse, NotificationResponse

__all__: list[str] = [
    # Credits
    "BalanceResponse",
    "EarningLimitsResponse",
    "TransferRequest",
    "TransferResponse",
    "LedgerEntryResponse",
    "LedgerListResponse",
    "SpendRequest",
    "SpendResponse",
    "PayoutRequest",
    "PayoutResponse",
    # Admin
    "GrantGenesisRequest",
    "AwardCreditsRequest",
    "MultiplierUpdateRequest",
    "ReconcileResponse",
    # Contributions
    "VerificationAction",
    "ContributionCreateRequest",
    "ContributionResponse",
    "ContributionListResponse",
    "VerifyContributionRequest",
    "VerifyContributionResponse",
    # Notifications
    "NotificationResponse",
    "NotificationListResponse",
]
