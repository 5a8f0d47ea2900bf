"""Services module - Business logic layer."""

from src.services.contribution_service import ContributionService, VerificationResult
from src.services.credit_service import CreditService
from src.services.notification_service import NotificationService
from src.services.rate_limit_service import RateLimitService
from src.services.transfer_service import TransferResult, TransferService

__all__ = [
    "ContributionService",
    "CreditService",
    "NotificationService",
    "RateLimitService",
    "TransferResult",
    "TransferService",
    "VerificationResult",
]
