"""Models module - SQLModel database entities."""

from src.models.contribution import (
    ContributionStatus,
    ContributionType,
    CreditContribution,
    CreditEarningLimit,
)
from src.models.credit import UserCredits
from src.models.ledger import (
    CreditLedger,
    CreditType,
    LedgerEntryType,
    LedgerReference,
    ReferenceType,
)
from src.models.notification import DispatchStatus, Notification, NotificationType
from src.models.project import Event, Project
from src.models.user import User, UserRole

__all__ = [
    # User
    "User",
    "UserRole",
    # Externally owned references
    "Project",
    "Event",
    # Balances & ledger
    "UserCredits",
    "CreditLedger",
    "CreditType",
    "LedgerEntryType",
    "LedgerReference",
    "ReferenceType",
    # Contributions
    "CreditContribution",
    "ContributionStatus",
    "ContributionType",
    "CreditEarningLimit",
    # Notifications
    "Notification",
    "NotificationType",
    "DispatchStatus",
]
