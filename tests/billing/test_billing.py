"""
tests/billing/test_billing.py

Covers:
  - Next / previous billing dates for every cycle, month-end clamping
  - Weekend and holiday deferral, and the bounded holiday loop
  - Cycle info and subscription info
  - Proration (half-up rounding) and cycle-based prorated amounts
  - Trial periods, renewal and post-trial billing dates
  - Schedules, due / overdue checks, annual billing dates
  - BillingConfig validation and BillingService immutability
"""

import logging
from datetime import date, timedelta

import pytest

from bizcal.billing import (
    BillingConfig,
    BillingService,
    SubscriptionCycle,
    adjust_billing_day,
    annual_billing_dates,
    billing_cycle_info,
    billing_date_after_trial,
    days_between_billing_dates,
    defer_non_business_day,
    generate_billing_schedule,
    is_billing_due,
    is_overdue,
    next_billing_date,
    previous_billing_date,
    prorated_amount,
    proration,
    renewal_date,
    subscription_info,
    trial_period_info,
)
from bizcal.core import ConfigError

MONTHLY = SubscriptionCycle.MONTHLY


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def weekend_skipping():
    """Billing dates never fall on Saturday or Sunday."""
    return BillingConfig(skip_weekends=True)


@pytest.fixture
def holiday_skipping():
    """Weekend and holiday deferral with a Friday holiday on Jan 19 2024."""
    return BillingConfig(
        skip_weekends=True,
        skip_holidays=True,
        holidays=frozenset({"2024-01-15", "2024-01-19"}),
    )


# ── Next / previous billing date ──────────────────────────────────────────────

class TestNextBillingDate:

    def test_month_end_clamps_to_leap_day(self):
        assert next_billing_date(date(2024, 1, 31), MONTHLY, 31) == date(2024, 2, 29)

    def test_clamped_day_recovers_next_month(self):
        assert next_billing_date(date(2024, 2, 29), MONTHLY, 31) == date(2024, 3, 31)

    def test_before_billing_day_in_month(self):
        assert next_billing_date(date(2024, 1, 10), MONTHLY, 15) == date(2024, 1, 15)

    def test_on_billing_day_moves_to_next_cycle(self):
        assert next_billing_date(date(2024, 1, 15), MONTHLY, 15) == date(2024, 2, 15)

    def test_quarterly(self):
        assert next_billing_date(date(2024, 1, 20), SubscriptionCycle.QUARTERLY, 15) == date(2024, 4, 15)

    def test_yearly(self):
        assert next_billing_date(date(2024, 2, 15), SubscriptionCycle.YEARLY, 1) == date(2025, 2, 1)

    def test_weekly(self):
        assert next_billing_date(date(2024, 1, 15), SubscriptionCycle.WEEKLY) == date(2024, 1, 22)

    def test_cycle_as_string(self):
        assert next_billing_date("2024-01-10", "monthly", 15) == date(2024, 1, 15)

    def test_default_billing_day_from_config(self):
        cfg = BillingConfig(default_billing_day=20)
        assert next_billing_date(date(2024, 1, 10), MONTHLY, cfg=cfg) == date(2024, 1, 20)

    def test_unknown_cycle(self):
        with pytest.raises(ValueError):
            next_billing_date(date(2024, 1, 10), "fortnightly", 15)

    def test_always_strictly_later(self, holiday_skipping):
        d = date(2023, 12, 1)
        for _ in range(30):
            nxt = next_billing_date(d, MONTHLY, 31, holiday_skipping)
            assert nxt > d
            d = nxt


class TestPreviousBillingDate:

    def test_after_billing_day(self):
        assert previous_billing_date(date(2024, 1, 20), MONTHLY, 15) == date(2024, 1, 15)

    def test_on_billing_day_goes_back_a_cycle(self):
        assert previous_billing_date(date(2024, 1, 15), MONTHLY, 15) == date(2023, 12, 15)

    def test_clamped_previous(self):
        assert previous_billing_date(date(2024, 3, 10), MONTHLY, 31) == date(2024, 2, 29)

    def test_weekly(self):
        assert previous_billing_date(date(2024, 1, 15), SubscriptionCycle.WEEKLY) == date(2024, 1, 8)

    def test_adjust_billing_day(self):
        assert adjust_billing_day(date(2024, 4, 2), 31) == date(2024, 4, 30)


# ── Deferral ──────────────────────────────────────────────────────────────────

class TestDeferral:

    def test_saturday_moves_to_monday(self, weekend_skipping):
        assert defer_non_business_day(date(2024, 1, 20), weekend_skipping) == date(2024, 1, 22)

    def test_sunday_moves_to_monday(self, weekend_skipping):
        assert defer_non_business_day(date(2024, 1, 21), weekend_skipping) == date(2024, 1, 22)

    def test_weekday_unchanged(self, weekend_skipping):
        assert defer_non_business_day(date(2024, 1, 17), weekend_skipping) == date(2024, 1, 17)

    def test_next_billing_date_skips_weekend(self, weekend_skipping):
        assert next_billing_date(date(2024, 6, 10), MONTHLY, 15, weekend_skipping) == date(2024, 6, 17)
        assert next_billing_date(date(2024, 9, 10), MONTHLY, 15, weekend_skipping) == date(2024, 9, 16)

    def test_holiday_moves_one_day(self, holiday_skipping):
        assert next_billing_date(date(2024, 1, 10), MONTHLY, 15, holiday_skipping) == date(2024, 1, 16)

    def test_holiday_then_weekend(self, holiday_skipping):
        assert next_billing_date(date(2024, 1, 10), MONTHLY, 19, holiday_skipping) == date(2024, 1, 22)

    def test_holidays_ignored_unless_enabled(self):
        cfg = BillingConfig(holidays=frozenset({"2024-01-15"}))
        assert next_billing_date(date(2024, 1, 10), MONTHLY, 15, cfg) == date(2024, 1, 15)

    def test_bounded_loop_returns_best_effort(self, caplog):
        cfg = BillingConfig(
            skip_holidays=True,
            holidays=frozenset({"2024-01-15", "2024-01-16", "2024-01-17", "2024-01-18"}),
            max_deferral_attempts=2,
        )
        with caplog.at_level(logging.WARNING, logger="bizcal.billing"):
            result = defer_non_business_day(date(2024, 1, 15), cfg)
        assert result == date(2024, 1, 17)
        assert "stopped after 2 attempts" in caplog.text

    def test_default_bound_clears_long_closure(self):
        closure = frozenset(f"2024-01-{day:02d}" for day in range(15, 25))
        cfg = BillingConfig(skip_holidays=True, holidays=closure)
        assert defer_non_business_day(date(2024, 1, 15), cfg) == date(2024, 1, 25)


# ── Cycle and subscription info ───────────────────────────────────────────────

class TestCycleInfo:

    def test_monthly_cycle(self):
        info = billing_cycle_info(date(2024, 1, 20), MONTHLY, 15)
        assert info.previous_billing_date == date(2024, 1, 15)
        assert info.next_billing_date == date(2024, 2, 15)
        assert info.current_cycle_start == date(2024, 1, 15)
        assert info.current_cycle_end == date(2024, 2, 14)
        assert info.days_until_billing == 26
        assert info.days_in_current_cycle == 31
        assert info.cycle_progress == pytest.approx(5 / 31)

    def test_sunday_after_deferred_saturday_billing(self, weekend_skipping):
        # Jun 1 2024 is a Saturday; that charge moves to Monday Jun 3.
        info = billing_cycle_info(date(2024, 6, 2), MONTHLY, 1, weekend_skipping)
        assert info.previous_billing_date == date(2024, 5, 1)
        assert info.previous_billing_date < date(2024, 6, 2)
        assert 0 <= info.cycle_progress < 1

    def test_progress_in_unit_interval_with_deferral(self, holiday_skipping):
        d = date(2023, 12, 1)
        while d < date(2024, 12, 31):
            for cycle in (MONTHLY, SubscriptionCycle.WEEKLY):
                info = billing_cycle_info(d, cycle, 1, holiday_skipping)
                assert info.previous_billing_date < d < info.next_billing_date
                assert 0 <= info.cycle_progress < 1
            d += timedelta(days=1)

    def test_subscription_info_monthly(self):
        info = subscription_info(date(2024, 3, 20), date(2024, 1, 10), MONTHLY, 15)
        assert info.start_date == date(2024, 3, 15)
        assert info.end_date == date(2024, 4, 14)
        assert info.billing_date == date(2024, 4, 15)
        assert info.days_remaining == 26
        assert info.cycle_number == 3
        assert not info.is_trial_period

    def test_subscription_info_weekly(self):
        info = subscription_info(date(2024, 1, 24), date(2024, 1, 10), SubscriptionCycle.WEEKLY)
        assert info.cycle_number == 3
        assert info.start_date == date(2024, 1, 17)
        assert info.billing_date == date(2024, 1, 31)

    def test_subscription_info_trial(self):
        cfg = BillingConfig(default_trial_days=14)
        info = subscription_info(date(2024, 1, 12), date(2024, 1, 10), MONTHLY, 15, cfg)
        assert info.is_trial_period
        assert info.cycle_number == 1


# ── Proration ─────────────────────────────────────────────────────────────────

class TestProration:

    def test_mid_month_start(self):
        p = proration(date(2024, 1, 15), date(2024, 1, 31), 100.0)
        assert p.total_days == 31
        assert p.remaining_days == 17
        assert p.used_days == 14
        assert p.prorated_amount == 54.84
        assert p.daily_rate == 3.23

    def test_first_of_month_is_full_amount(self):
        p = proration(date(2024, 2, 1), date(2024, 2, 29), 29.0)
        assert p.used_days == 0
        assert p.prorated_amount == 29.0
        assert p.daily_rate == 1.0

    def test_rounds_half_up(self):
        p = proration(date(2024, 1, 2), date(2024, 1, 2), 0.25)
        assert p.prorated_amount == 0.13
        assert p.daily_rate == 0.13

    def test_prorated_amount_partial(self):
        amount = prorated_amount(100.0, date(2024, 1, 1), date(2024, 1, 31), date(2024, 1, 16))
        assert amount == pytest.approx(100.0 * 16 / 31)

    def test_prorated_amount_after_cycle(self):
        assert prorated_amount(100.0, date(2024, 1, 1), date(2024, 1, 31), date(2024, 2, 5)) == 0.0

    def test_prorated_amount_before_cycle(self):
        assert prorated_amount(100.0, date(2024, 1, 1), date(2024, 1, 31), date(2023, 12, 20)) == 100.0


# ── Trials ────────────────────────────────────────────────────────────────────

class TestTrials:

    def test_in_trial(self):
        t = trial_period_info(date(2024, 1, 1), date(2024, 1, 8), 14)
        assert t.is_in_trial
        assert t.trial_end_date == date(2024, 1, 15)
        assert t.days_remaining == 7
        assert t.trial_progress == pytest.approx(0.5)

    def test_after_trial(self):
        t = trial_period_info(date(2024, 1, 1), date(2024, 1, 20), 14)
        assert not t.is_in_trial
        assert t.days_remaining == 0
        assert t.trial_progress == 1.0

    def test_before_start(self):
        t = trial_period_info(date(2024, 1, 1), date(2023, 12, 31), 14)
        assert not t.is_in_trial
        assert t.days_remaining == 15
        assert t.trial_progress == 0.0

    def test_zero_length_trial(self):
        t = trial_period_info(date(2024, 1, 1), date(2024, 1, 1), 0)
        assert not t.is_in_trial
        assert t.trial_progress == 1.0

    def test_default_trial_from_config(self):
        t = trial_period_info(date(2024, 1, 1), date(2024, 1, 3), cfg=BillingConfig(default_trial_days=7))
        assert t.is_in_trial
        assert t.trial_end_date == date(2024, 1, 8)

    def test_renewal_date(self):
        assert renewal_date(date(2024, 1, 1), MONTHLY, trial_days=14, billing_day=1) == date(2024, 2, 1)

    def test_billing_date_after_trial(self):
        b = billing_date_after_trial(date(2024, 1, 1), MONTHLY, 14, 1, as_of=date(2024, 1, 10))
        assert b.next_billing_date == date(2024, 2, 1)
        assert b.days_until_billing == 22
        assert b.is_trial_period


# ── Schedules and status ──────────────────────────────────────────────────────

class TestSchedules:

    def test_monthly_schedule(self):
        s = generate_billing_schedule(date(2024, 1, 1), date(2024, 6, 30), MONTHLY, 10.0, 15)
        assert s.billing_dates == [date(2024, m, 15) for m in range(1, 7)]
        assert s.total_cycles == 6
        assert s.total_amount == pytest.approx(60.0)

    def test_weekly_schedule(self):
        s = generate_billing_schedule(date(2024, 1, 1), date(2024, 1, 31), SubscriptionCycle.WEEKLY, 5.0)
        assert s.billing_dates == [date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22), date(2024, 1, 29)]

    def test_end_before_first_billing(self):
        s = generate_billing_schedule(date(2024, 1, 1), date(2024, 1, 10), MONTHLY, 10.0, 15)
        assert s.billing_dates == []
        assert s.total_amount == 0

    def test_schedule_logs_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="bizcal.billing"):
            generate_billing_schedule(date(2024, 1, 1), date(2024, 3, 31), MONTHLY, 1.0, 1)
        assert "Generated 2 monthly billing dates" in caplog.text

    def test_schedule_with_weekend_skipping_is_increasing(self, weekend_skipping):
        s = generate_billing_schedule(date(2024, 1, 1), date(2025, 12, 31), MONTHLY, 1.0, 15, weekend_skipping)
        assert s.total_cycles == 24
        assert all(a < b for a, b in zip(s.billing_dates, s.billing_dates[1:]))
        assert all(d.weekday() < 5 for d in s.billing_dates)

    def test_annual_billing_dates(self):
        monthly = annual_billing_dates(2024, MONTHLY, 1)
        assert len(monthly) == 11
        assert monthly[0] == date(2024, 2, 1)
        assert annual_billing_dates(2024, SubscriptionCycle.QUARTERLY, 1) == [
            date(2024, 4, 1), date(2024, 7, 1), date(2024, 10, 1),
        ]

    def test_days_between_billing_dates(self):
        assert days_between_billing_dates(date(2024, 3, 1), date(2024, 1, 1)) == 60
        assert days_between_billing_dates(date(2024, 1, 1), date(2024, 3, 1)) == 60


class TestDueAndOverdue:

    def test_due_within_grace(self):
        assert not is_billing_due(date(2024, 1, 12), MONTHLY, 15)
        assert is_billing_due(date(2024, 1, 12), MONTHLY, 15, grace_period_days=3)

    def test_due_uses_config_grace(self):
        cfg = BillingConfig(grace_period_days=5)
        assert is_billing_due(date(2024, 1, 12), MONTHLY, 15, cfg=cfg)

    def test_overdue(self):
        assert is_overdue(date(2024, 1, 15), MONTHLY, current=date(2024, 2, 16), billing_day=15)

    def test_not_overdue_on_billing_date(self):
        assert not is_overdue(date(2024, 1, 15), MONTHLY, current=date(2024, 2, 15), billing_day=15)

    def test_grace_delays_overdue(self):
        assert not is_overdue(date(2024, 1, 15), MONTHLY, current=date(2024, 2, 16),
                              grace_period_days=3, billing_day=15)


# ── Config and service ────────────────────────────────────────────────────────

class TestBillingConfig:

    @pytest.mark.parametrize("kwargs", [
        {"default_billing_day": 0},
        {"default_billing_day": 32},
        {"grace_period_days": -1},
        {"default_trial_days": -1},
        {"max_deferral_attempts": -1},
        {"holidays": frozenset({"christmas"})},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigError):
            BillingConfig(**kwargs)

    def test_holiday_strings_become_dates(self):
        cfg = BillingConfig(holidays=frozenset({"2024-12-25"}))
        assert date(2024, 12, 25) in cfg.holidays


class TestBillingService:

    def test_with_holidays_returns_new_service(self):
        svc = BillingService(BillingConfig(skip_holidays=True))
        derived = svc.with_holidays(["2024-01-15"])
        assert derived.next_billing_date(date(2024, 1, 10), MONTHLY, 15) == date(2024, 1, 16)
        assert svc.next_billing_date(date(2024, 1, 10), MONTHLY, 15) == date(2024, 1, 15)
        assert svc.config.holidays == frozenset()

    def test_with_config(self):
        svc = BillingService().with_config(default_billing_day=31)
        assert svc.next_billing_date(date(2024, 1, 31), MONTHLY) == date(2024, 2, 29)

    def test_delegates(self):
        svc = BillingService(BillingConfig(default_billing_day=15, grace_period_days=3))
        assert svc.previous_billing_date(date(2024, 1, 20), MONTHLY) == date(2024, 1, 15)
        assert svc.days_until_billing(date(2024, 1, 20), MONTHLY) == 26
        assert svc.align_billing_day(date(2024, 2, 1)) == date(2024, 2, 15)
        assert svc.billing_cycle_info(date(2024, 1, 20), MONTHLY).days_in_current_cycle == 31
        assert svc.subscription_info(date(2024, 3, 20), date(2024, 1, 10), MONTHLY).cycle_number == 3
        assert svc.proration(date(2024, 1, 15), date(2024, 1, 31), 100.0).prorated_amount == 54.84
        assert svc.trial_period_info(date(2024, 1, 1), date(2024, 1, 8), 14).is_in_trial
        assert svc.billing_date_after_trial(date(2024, 1, 1), MONTHLY, 0, as_of=date(2024, 1, 1)) \
            .next_billing_date == date(2024, 1, 15)
        assert svc.generate_billing_schedule(date(2024, 1, 1), date(2024, 3, 31), MONTHLY, 2.0).total_amount == 6.0
        assert svc.is_billing_due(date(2024, 1, 12), MONTHLY)
        assert not svc.is_overdue(date(2024, 1, 15), MONTHLY, current=date(2024, 2, 18))
        assert svc.is_overdue(date(2024, 1, 15), MONTHLY, current=date(2024, 2, 19))

    def test_repr(self):
        assert repr(BillingService()) == "BillingService(billing_day=1, skip_weekends=False, skip_holidays=False)"
