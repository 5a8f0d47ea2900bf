"""Rate Limit Service - rolling daily/weekly earning windows.

The window arithmetic is pure: reading the allowance never writes a reset.
Resets and accumulator increments are persisted only by apply_award(), inside
the same transaction as the ledger entry they account for.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.config import get_settings
from src.core.exceptions import NotFoundError, ValidationError
from src.db.engine import atomic
from src.models.contribution import CreditEarningLimit
from src.models.user import User
from src.utils.helpers import utcnow

logger = logging.getLogger(__name__)

DAILY_WINDOW = timedelta(hours=24)
WEEKLY_WINDOW = timedelta(days=7)

ZERO = Decimal("0")


@dataclass(frozen=True)
class WindowState:
    """Effective state of one rolling window at a point in time.

    Attributes:
        total: Amount earned in the window (0 if the window elapsed)
        reset_at: Window start to persist if an award is applied
        was_reset: True if the stored accumulator is stale
    """

    total: Decimal
    reset_at: datetime
    was_reset: bool


def effective_window(
    now: datetime,
    last_reset: datetime | None,
    earned: Decimal,
    window: timedelta,
) -> WindowState:
    """Resolve a rolling window.

    A window resets exactly when more than ``window`` has elapsed since
    ``last_reset``. A missing ``last_reset`` counts as elapsed.
    """
    if last_reset is None or now - last_reset > window:
        return WindowState(total=ZERO, reset_at=now, was_reset=True)
    return WindowState(total=Decimal(earned), reset_at=last_reset, was_reset=False)


def effective_daily(now: datetime, last_daily_reset: datetime | None, daily_earned: Decimal) -> WindowState:
    return effective_window(now, last_daily_reset, daily_earned, DAILY_WINDOW)


def effective_weekly(
    now: datetime, last_weekly_reset: datetime | None, weekly_earned: Decimal
) -> WindowState:
    return effective_window(now, last_weekly_reset, weekly_earned, WEEKLY_WINDOW)


@dataclass(frozen=True)
class EarningAllowance:
    """Snapshot of what a user may still earn."""

    daily: WindowState
    weekly: WindowState
    multiplier: Decimal
    daily_cap: Decimal
    weekly_cap: Decimal

    @property
    def daily_remaining(self) -> Decimal:
        return self.daily_cap - self.daily.total

    @property
    def weekly_remaining(self) -> Decimal:
        return self.weekly_cap - self.weekly.total


@dataclass(frozen=True)
class AwardDecision:
    """Outcome of applying multiplier and caps to a requested amount."""

    requested: Decimal
    adjusted: Decimal
    capped: Decimal

    @property
    def was_capped(self) -> bool:
        return self.capped < self.adjusted


def compute_award(amount: Decimal, allowance: EarningAllowance) -> AwardDecision:
    """Apply the reputation multiplier (floored) and both caps.

    The result may be zero or negative; callers treat that as limit reached.
    """
    adjusted = (Decimal(amount) * allowance.multiplier).to_integral_value(rounding=ROUND_FLOOR)
    capped = min(adjusted, allowance.daily_remaining, allowance.weekly_remaining)
    return AwardDecision(requested=Decimal(amount), adjusted=adjusted, capped=capped)


def build_allowance(limits: CreditEarningLimit | None, now: datetime) -> EarningAllowance:
    """Compute the allowance for a (possibly missing) limits row."""
    settings = get_settings()
    if limits is None:
        daily = effective_daily(now, None, ZERO)
        weekly = effective_weekly(now, None, ZERO)
        multiplier = Decimal("1")
    else:
        daily = effective_daily(now, limits.last_daily_reset, limits.daily_earned)
        weekly = effective_weekly(now, limits.last_weekly_reset, limits.weekly_earned)
        multiplier = Decimal(limits.reputation_multiplier)
    return EarningAllowance(
        daily=daily,
        weekly=weekly,
        multiplier=multiplier,
        daily_cap=Decimal(settings.daily_earning_cap),
        weekly_cap=Decimal(settings.weekly_earning_cap),
    )


def apply_award(
    limits: CreditEarningLimit,
    allowance: EarningAllowance,
    awarded: Decimal,
    now: datetime,
) -> None:
    """Write accumulators (and any window resets) for an applied award."""
    limits.daily_earned = allowance.daily.total + awarded
    limits.weekly_earned = allowance.weekly.total + awarded
    limits.last_daily_reset = allowance.daily.reset_at
    limits.last_weekly_reset = allowance.weekly.reset_at
    limits.updated_at = now


class RateLimitService:
    """Service for earning limit rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_limits(self, user_id: int) -> CreditEarningLimit | None:
        """Read a limits row without locking."""
        result = await self.db.execute(
            select(CreditEarningLimit).where(CreditEarningLimit.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def lock_limits(self, user_id: int) -> CreditEarningLimit:
        """Lock the user's limits row for update, creating it if missing.

        Must be called inside the transaction that will apply the award.
        """
        result = await self.db.execute(
            select(CreditEarningLimit)
            .where(CreditEarningLimit.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        limits = result.scalar_one_or_none()
        if limits is None:
            limits = CreditEarningLimit(user_id=user_id)
            self.db.add(limits)
            await self.db.flush()
        return limits

    async def get_allowance(self, user_id: int, now: datetime | None = None) -> EarningAllowance:
        """Read-only view of the current allowance (never persists resets)."""
        limits = await self.get_limits(user_id)
        return build_allowance(limits, now or utcnow())

    async def set_multiplier(self, user_id: int, multiplier: Decimal) -> CreditEarningLimit:
        """Set a user's reputation multiplier (admin operation).

        Raises:
            ValidationError: Negative multiplier
            NotFoundError: User does not exist
        """
        if multiplier < 0:
            raise ValidationError("Reputation multiplier must be >= 0")
        async with atomic(self.db):
            if await self.db.get(User, user_id) is None:
                raise NotFoundError("User not found", {"user_id": user_id})
            limits = await self.lock_limits(user_id)
            limits.reputation_multiplier = multiplier
            limits.updated_at = utcnow()
            self.db.add(limits)
        logger.info(f"Reputation multiplier for user {user_id} set to {multiplier}")
        return limits
