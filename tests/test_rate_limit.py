"""Rolling window and cap arithmetic."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.core.exceptions import NotFoundError, ValidationError
from src.models.contribution import CreditEarningLimit
from src.services.rate_limit_service import (
    RateLimitService,
    apply_award,
    build_allowance,
    compute_award,
    effective_daily,
    effective_weekly,
)

NOW = datetime(2026, 3, 10, 12, 0, 0)


def _limits(daily="0", weekly="0", daily_age=timedelta(hours=1), weekly_age=timedelta(days=1), multiplier="1"):
    return CreditEarningLimit(
        user_id=1,
        daily_earned=Decimal(daily),
        weekly_earned=Decimal(weekly),
        last_daily_reset=NOW - daily_age,
        last_weekly_reset=NOW - weekly_age,
        reputation_multiplier=Decimal(multiplier),
    )


class TestWindows:
    def test_missing_reset_timestamp_starts_new_window(self):
        state = effective_daily(NOW, None, Decimal("150"))
        assert state.total == 0
        assert state.reset_at == NOW
        assert state.was_reset

    def test_open_window_keeps_accumulator(self):
        started = NOW - timedelta(hours=23, minutes=59)
        state = effective_daily(NOW, started, Decimal("150"))
        assert state.total == Decimal("150")
        assert state.reset_at == started
        assert not state.was_reset

    def test_exactly_one_window_old_is_still_open(self):
        state = effective_daily(NOW, NOW - timedelta(hours=24), Decimal("80"))
        assert state.total == Decimal("80")

    def test_elapsed_daily_window_resets(self):
        state = effective_daily(NOW, NOW - timedelta(hours=25), Decimal("200"))
        assert state.total == 0
        assert state.reset_at == NOW

    def test_weekly_window_is_seven_days(self):
        assert effective_weekly(NOW, NOW - timedelta(days=6), Decimal("900")).total == Decimal("900")
        assert effective_weekly(NOW, NOW - timedelta(days=8), Decimal("900")).total == 0


class TestComputeAward:
    def test_daily_cap_binds(self):
        allowance = build_allowance(_limits(daily="190", weekly="190"), NOW)
        decision = compute_award(Decimal("50"), allowance)
        assert decision.adjusted == Decimal("50")
        assert allowance.daily_remaining == Decimal("10")
        assert decision.capped == Decimal("10")
        assert decision.was_capped

    def test_weekly_cap_binds(self):
        allowance = build_allowance(_limits(daily="0", weekly="980"), NOW)
        decision = compute_award(Decimal("50"), allowance)
        assert decision.capped == Decimal("20")
        assert decision.was_capped

    def test_uncapped_award(self):
        decision = compute_award(Decimal("40"), build_allowance(None, NOW))
        assert decision.capped == Decimal("40")
        assert not decision.was_capped

    def test_multiplier_is_floored(self):
        allowance = build_allowance(_limits(multiplier="1.5"), NOW)
        decision = compute_award(Decimal("7"), allowance)
        assert decision.adjusted == Decimal("10")  # floor(10.5)

    def test_zero_multiplier_awards_nothing(self):
        allowance = build_allowance(_limits(multiplier="0"), NOW)
        assert compute_award(Decimal("40"), allowance).capped == 0

    def test_exhausted_cap_is_not_positive(self):
        allowance = build_allowance(_limits(daily="200", weekly="200"), NOW)
        assert compute_award(Decimal("5"), allowance).capped <= 0

    def test_elapsed_window_frees_the_cap(self):
        limits = _limits(daily="200", weekly="200", daily_age=timedelta(days=2))
        decision = compute_award(Decimal("30"), build_allowance(limits, NOW))
        assert decision.capped == Decimal("30")


class TestApplyAward:
    def test_accumulates_within_window(self):
        limits = _limits(daily="100", weekly="300")
        started = limits.last_daily_reset
        allowance = build_allowance(limits, NOW)
        apply_award(limits, allowance, Decimal("25"), NOW)
        assert limits.daily_earned == Decimal("125")
        assert limits.weekly_earned == Decimal("325")
        assert limits.last_daily_reset == started

    def test_reset_is_persisted_with_award(self):
        limits = _limits(daily="200", weekly="500", daily_age=timedelta(days=2))
        allowance = build_allowance(limits, NOW)
        apply_award(limits, allowance, Decimal("30"), NOW)
        assert limits.daily_earned == Decimal("30")
        assert limits.last_daily_reset == NOW
        assert limits.weekly_earned == Decimal("530")


class TestRateLimitService:
    async def test_allowance_without_row(self, db, alice):
        allowance = await RateLimitService(db).get_allowance(alice.id, now=NOW)
        assert allowance.multiplier == 1
        assert allowance.daily_remaining == Decimal("200")
        assert allowance.weekly_remaining == Decimal("1000")

    async def test_set_multiplier(self, db, alice):
        limits = await RateLimitService(db).set_multiplier(alice.id, Decimal("1.25"))
        assert limits.reputation_multiplier == Decimal("1.25")
        allowance = await RateLimitService(db).get_allowance(alice.id)
        assert allowance.multiplier == Decimal("1.25")

    async def test_negative_multiplier_rejected(self, db, alice):
        with pytest.raises(ValidationError):
            await RateLimitService(db).set_multiplier(alice.id, Decimal("-1"))

    async def test_multiplier_for_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            await RateLimitService(db).set_multiplier(999, Decimal("2"))
