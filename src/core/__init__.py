"""Core module - configuration and exceptions."""

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    AlreadyResolvedError,
    AuthenticationError,
    AuthorizationError,
    CreditError,
    DependencyFailureError,
    InsufficientBalanceError,
    InvalidAmountError,
    LimitReachedError,
    NotFoundError,
    RecipientNotFoundError,
    SelfTransferError,
    ValidationError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "CreditError",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "InvalidAmountError",
    "SelfTransferError",
    "NotFoundError",
    "RecipientNotFoundError",
    "InsufficientBalanceError",
    "AlreadyResolvedError",
    "LimitReachedError",
    "DependencyFailureError",
]
