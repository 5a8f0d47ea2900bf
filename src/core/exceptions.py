"""LC Credit Ledger - Custom exceptions."""

from decimal import Decimal
from typing import Any


class CreditError(Exception):
    """Base exception for all credit ledger errors."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(CreditError):
    """Authentication failed."""

    code = "UNAUTHENTICATED"
    status_code = 401


class AuthorizationError(CreditError):
    """User lacks permission for this action."""

    code = "FORBIDDEN"
    status_code = 403


class ValidationError(CreditError):
    """Input validation failed."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidAmountError(ValidationError):
    """Amount is zero or negative."""

    code = "INVALID_AMOUNT"

    def __init__(self, amount: Decimal | None = None, message: str = "Invalid amount") -> None:
        details = {"amount": str(amount)} if amount is not None else None
        super().__init__(message, details)


class SelfTransferError(ValidationError):
    """Sender and recipient are the same account."""

    code = "SELF_TRANSFER"

    def __init__(self, message: str = "Cannot transfer to yourself") -> None:
        super().__init__(message)


class NotFoundError(CreditError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class RecipientNotFoundError(NotFoundError):
    """Transfer recipient cannot be resolved."""

    code = "RECIPIENT_NOT_FOUND"

    def __init__(self, recipient_id: int | None = None, message: str = "Recipient not found") -> None:
        details = {"recipient_id": recipient_id} if recipient_id is not None else None
        super().__init__(message, details)


class InsufficientBalanceError(CreditError):
    """Account has insufficient credits for the debit."""

    code = "INSUFFICIENT_BALANCE"
    status_code = 400

    def __init__(
        self,
        required: Decimal | None = None,
        available: Decimal | None = None,
        message: str = "Insufficient balance",
    ) -> None:
        details = {}
        if required is not None:
            details["required"] = str(required)
        if available is not None:
            details["available"] = str(available)
        super().__init__(message, details)


class AlreadyResolvedError(CreditError):
    """Contribution claim is no longer pending."""

    code = "ALREADY_RESOLVED"
    status_code = 409

    def __init__(self, status: str) -> None:
        super().__init__(f"Contribution already {status}", {"status": status})


class LimitReachedError(CreditError):
    """Daily or weekly earning cap is exhausted."""

    code = "LIMIT_REACHED"
    status_code = 429

    def __init__(
        self,
        daily_remaining: Decimal | None = None,
        weekly_remaining: Decimal | None = None,
        message: str = "Daily or weekly earning limit reached",
    ) -> None:
        details = {}
        if daily_remaining is not None:
            details["daily_remaining"] = str(daily_remaining)
        if weekly_remaining is not None:
            details["weekly_remaining"] = str(weekly_remaining)
        super().__init__(message, details)


class DependencyFailureError(CreditError):
    """Underlying datastore write failed; nothing was committed."""

    code = "DEPENDENCY_FAILURE"
    status_code = 503
