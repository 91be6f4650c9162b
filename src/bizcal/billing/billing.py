from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from bizcal.core import ConfigError, Unit, dates
from bizcal.core.dates import DateLike
from bizcal.logging_setup import get_logger

logger = get_logger("billing")

_TWO_PLACES = Decimal("0.01")
_ONE_DAY = timedelta(days=1)


class SubscriptionCycle(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


_CYCLE_MONTHS = {
    SubscriptionCycle.MONTHLY: 1,
    SubscriptionCycle.QUARTERLY: 3,
    SubscriptionCycle.YEARLY: 12,
}


# ── configuration and value objects ──────────────────────────────────────────

@dataclass(frozen=True)
class BillingConfig:
    """
    Billing defaults and deferral policy.

    ``max_deferral_attempts`` bounds the holiday deferral loop; when it runs
    out the last candidate is used even if it is still a holiday.
    """

    default_billing_day: int = 1
    skip_weekends: bool = False
    skip_holidays: bool = False
    holidays: frozenset[date] = field(default_factory=frozenset)
    grace_period_days: int = 0
    default_trial_days: int = 0
    max_deferral_attempts: int = 30

    def __post_init__(self) -> None:
        if not 1 <= self.default_billing_day <= 31:
            raise ConfigError(
                f"default_billing_day must be between 1 and 31; got {self.default_billing_day}."
            )
        for attr in ("grace_period_days", "default_trial_days", "max_deferral_attempts"):
            if getattr(self, attr) < 0:
                raise ConfigError(f"{attr} must be non-negative; got {getattr(self, attr)}.")
        try:
            holidays = frozenset(dates.to_date(h) for h in self.holidays)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid billing holiday: {exc}") from exc
        object.__setattr__(self, "holidays", holidays)

    def with_holidays(self, holidays: Iterable[DateLike]) -> "BillingConfig":
        return replace(self, holidays=frozenset(holidays))


DEFAULT_BILLING_CONFIG = BillingConfig()


@dataclass(frozen=True)
class BillingCycleInfo:
    current_cycle_start: date
    current_cycle_end: date
    next_billing_date: date
    previous_billing_date: date
    days_until_billing: int
    days_in_current_cycle: int
    cycle_progress: float


@dataclass(frozen=True)
class ProrationInfo:
    total_days: int
    used_days: int
    remaining_days: int
    prorated_amount: float
    daily_rate: float


@dataclass(frozen=True)
class TrialPeriodInfo:
    is_in_trial: bool
    trial_start_date: date
    trial_end_date: date
    days_remaining: int
    trial_progress: float


@dataclass(frozen=True)
class BillingDate:
    next_billing_date: date
    days_until_billing: int
    is_trial_period: bool


@dataclass(frozen=True)
class SubscriptionSchedule:
    billing_dates: list[date]
    total_cycles: int
    total_amount: float


@dataclass(frozen=True)
class SubscriptionInfo:
    cycle: SubscriptionCycle
    start_date: date
    end_date: date
    billing_date: date
    is_trial_period: bool
    days_remaining: int
    cycle_number: int


# ── helpers ──────────────────────────────────────────────────────────────────

def _round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def _billing_day(billing_day: Optional[int], cfg: BillingConfig) -> int:
    return cfg.default_billing_day if billing_day is None else billing_day


def _skip_weekend(d: date) -> date:
    dow = dates.day_of_week(d)
    if dow == 6:
        return d + timedelta(days=2)
    if dow == 0:
        return d + _ONE_DAY
    return d


def adjust_billing_day(d: date, target_day: int) -> date:
    """Move ``d`` to ``target_day`` of its month, clamped to the month length."""
    return dates.set_day(d, target_day)


def _cycle_before(d: date, cycle: SubscriptionCycle, billing_day: int) -> date:
    if cycle is SubscriptionCycle.WEEKLY:
        return d - timedelta(days=7)
    return adjust_billing_day(d - relativedelta(months=_CYCLE_MONTHS[cycle]), billing_day)


def align_billing_day(d: DateLike, billing_day: Optional[int] = None,
                      cfg: BillingConfig = DEFAULT_BILLING_CONFIG) -> date:
    return adjust_billing_day(dates.to_date(d), _billing_day(billing_day, cfg))


def defer_non_business_day(d: date, cfg: BillingConfig = DEFAULT_BILLING_CONFIG) -> date:
    """
    Push a billing date off weekends and holidays as configured.

    Weekends shift Saturday → Monday and Sunday → Monday.  Holidays shift one
    day at a time, re-checking weekends after each step, for at most
    ``cfg.max_deferral_attempts`` steps.
    """
    adjusted = _skip_weekend(d) if cfg.skip_weekends else d

    if cfg.skip_holidays and cfg.holidays:
        attempts = 0
        while adjusted in cfg.holidays and attempts < cfg.max_deferral_attempts:
            adjusted += _ONE_DAY
            attempts += 1
            if cfg.skip_weekends:
                adjusted = _skip_weekend(adjusted)

        if adjusted in cfg.holidays:
            logger.warning(
                "Holiday deferral of %s stopped after %d attempts on holiday %s",
                d, attempts, adjusted,
            )

    return adjusted


# ── billing dates ────────────────────────────────────────────────────────────

def next_billing_date(
    d: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> date:
    """
    First billing date strictly after ``d``.

    Weekly cycles bill seven days later.  Month-based cycles start from the
    billing day in the month of ``d + 1 day`` and advance one cycle at a time
    until past ``d``.
    """
    current = dates.to_date(d)
    cycle = SubscriptionCycle(cycle)
    day = _billing_day(billing_day, cfg)

    if cycle is SubscriptionCycle.WEEKLY:
        return defer_non_business_day(current + timedelta(days=7), cfg)

    months = _CYCLE_MONTHS[cycle]
    candidate = adjust_billing_day(dates.start_of(current + _ONE_DAY, Unit.MONTH), day)
    while candidate <= current:
        candidate = adjust_billing_day(candidate + relativedelta(months=months), day)

    return defer_non_business_day(candidate, cfg)


def previous_billing_date(
    d: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> date:
    """
    Last billing date strictly before ``d``, after deferral.

    A billing day deferred past ``d`` (a Saturday charge moved to Monday when
    ``d`` is the Sunday) has not happened yet, so the cycle before it is used.
    """
    current = dates.to_date(d)
    cycle = SubscriptionCycle(cycle)
    day = _billing_day(billing_day, cfg)

    if cycle is SubscriptionCycle.WEEKLY:
        candidate = _cycle_before(current, cycle, day)
    else:
        candidate = adjust_billing_day(dates.start_of(current, Unit.MONTH), day)
        if candidate >= current:
            candidate = _cycle_before(candidate, cycle, day)

    billed = defer_non_business_day(candidate, cfg)
    while billed >= current:
        candidate = _cycle_before(candidate, cycle, day)
        billed = defer_non_business_day(candidate, cfg)
    return billed


def days_until_billing(
    d: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> int:
    return dates.diff_days(next_billing_date(d, cycle, billing_day, cfg), d)


def billing_cycle_info(
    d: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> BillingCycleInfo:
    current = dates.to_date(d)
    next_date = next_billing_date(current, cycle, billing_day, cfg)
    previous_date = previous_billing_date(current, cycle, billing_day, cfg)

    days_in_cycle = (next_date - previous_date).days
    days_used = (current - previous_date).days

    return BillingCycleInfo(
        current_cycle_start=previous_date,
        current_cycle_end=next_date - _ONE_DAY,
        next_billing_date=next_date,
        previous_billing_date=previous_date,
        days_until_billing=(next_date - current).days,
        days_in_current_cycle=days_in_cycle,
        cycle_progress=days_used / days_in_cycle if days_in_cycle else 0.0,
    )


def subscription_info(
    d: DateLike,
    subscription_start: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> SubscriptionInfo:
    """Current cycle bounds and the 1-based cycle number since ``subscription_start``."""
    current = dates.to_date(d)
    start = dates.to_date(subscription_start)
    cycle = SubscriptionCycle(cycle)

    elapsed = (current - start).days
    next_date = next_billing_date(current, cycle, billing_day, cfg)

    if cycle is SubscriptionCycle.WEEKLY:
        cycle_number = elapsed // 7 + 1
    else:
        cycle_number = dates.diff_months(current, start) // _CYCLE_MONTHS[cycle] + 1

    return SubscriptionInfo(
        cycle=cycle,
        start_date=previous_billing_date(current, cycle, billing_day, cfg),
        end_date=next_date - _ONE_DAY,
        billing_date=next_date,
        is_trial_period=cfg.default_trial_days > 0 and elapsed < cfg.default_trial_days,
        days_remaining=(next_date - current).days,
        cycle_number=max(1, cycle_number),
    )


# ── proration and trials ─────────────────────────────────────────────────────

def proration(subscription_start: DateLike, cycle_end: DateLike, full_amount: float) -> ProrationInfo:
    """
    Prorate ``full_amount`` for a subscription starting mid-cycle.

    The cycle is taken to begin on the first of the start month.  Amounts are
    rounded half-up to two places at the end.
    """
    start = dates.to_date(subscription_start)
    end = dates.to_date(cycle_end)

    total_days = (end - dates.start_of(start, Unit.MONTH)).days + 1
    remaining_days = (end - start).days + 1
    daily_rate = full_amount / total_days

    return ProrationInfo(
        total_days=total_days,
        used_days=total_days - remaining_days,
        remaining_days=remaining_days,
        prorated_amount=_round2(daily_rate * remaining_days),
        daily_rate=_round2(daily_rate),
    )


def prorated_amount(
    total_amount: float,
    cycle_start: DateLike,
    cycle_end: DateLike,
    effective_date: DateLike,
) -> float:
    """Share of ``total_amount`` for the days from ``effective_date`` to ``cycle_end``."""
    total_days = dates.diff_days(cycle_end, cycle_start) + 1
    remaining_days = dates.diff_days(cycle_end, effective_date) + 1

    if remaining_days <= 0:
        return 0.0
    if remaining_days >= total_days:
        return float(total_amount)
    return total_amount * remaining_days / total_days


def trial_period_info(
    subscription_start: DateLike,
    current: DateLike,
    trial_days: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> TrialPeriodInfo:
    start = dates.to_date(subscription_start)
    trial = cfg.default_trial_days if trial_days is None else trial_days
    elapsed = dates.diff_days(current, start)

    # A zero-length trial is already complete.
    progress = min(1.0, max(0.0, elapsed / trial)) if trial > 0 else 1.0

    return TrialPeriodInfo(
        is_in_trial=0 <= elapsed < trial,
        trial_start_date=start,
        trial_end_date=start + timedelta(days=trial),
        days_remaining=max(0, trial - elapsed),
        trial_progress=progress,
    )


def renewal_date(
    subscription_start: DateLike,
    cycle: SubscriptionCycle | str,
    trial_days: int = 0,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> date:
    after_trial = dates.to_date(subscription_start) + timedelta(days=trial_days)
    return next_billing_date(after_trial, cycle, billing_day, cfg)


def billing_date_after_trial(
    subscription_start: DateLike,
    cycle: SubscriptionCycle | str,
    trial_days: Optional[int] = None,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
    as_of: Optional[DateLike] = None,
) -> BillingDate:
    trial = cfg.default_trial_days if trial_days is None else trial_days
    today = dates.to_date(as_of) if as_of is not None else date.today()
    trial_end = dates.to_date(subscription_start) + timedelta(days=trial)
    next_date = next_billing_date(trial_end, cycle, billing_day, cfg)

    return BillingDate(
        next_billing_date=next_date,
        days_until_billing=(next_date - today).days,
        is_trial_period=today < trial_end,
    )


# ── schedules and status ─────────────────────────────────────────────────────

def generate_billing_schedule(
    start: DateLike,
    end: DateLike,
    cycle: SubscriptionCycle | str,
    amount_per_cycle: float,
    billing_day: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> SubscriptionSchedule:
    """Every billing date after ``start`` up to and including ``end``."""
    last = dates.to_date(end)
    billing_dates: list[date] = []

    current = next_billing_date(start, cycle, billing_day, cfg)
    while current <= last:
        billing_dates.append(current)
        current = next_billing_date(current, cycle, billing_day, cfg)

    logger.debug(
        "Generated %d %s billing dates from %s to %s",
        len(billing_dates), SubscriptionCycle(cycle).value, start, end,
    )
    return SubscriptionSchedule(
        billing_dates=billing_dates,
        total_cycles=len(billing_dates),
        total_amount=len(billing_dates) * amount_per_cycle,
    )


def is_billing_due(
    d: DateLike,
    cycle: SubscriptionCycle | str,
    billing_day: Optional[int] = None,
    grace_period_days: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> bool:
    grace = cfg.grace_period_days if grace_period_days is None else grace_period_days
    return days_until_billing(d, cycle, billing_day, cfg) <= grace


def is_overdue(
    last_payment: DateLike,
    cycle: SubscriptionCycle | str,
    current: Optional[DateLike] = None,
    grace_period_days: Optional[int] = None,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
    billing_day: Optional[int] = None,
) -> bool:
    grace = cfg.grace_period_days if grace_period_days is None else grace_period_days
    today = dates.to_date(current) if current is not None else date.today()
    expected = next_billing_date(last_payment, cycle, billing_day, cfg)
    return today > expected + timedelta(days=grace)


def days_between_billing_dates(a: DateLike, b: DateLike) -> int:
    return abs(dates.diff_days(b, a))


def annual_billing_dates(
    year: int,
    cycle: SubscriptionCycle | str,
    billing_day: int = 1,
    cfg: BillingConfig = DEFAULT_BILLING_CONFIG,
) -> list[date]:
    """Billing dates after January 1 of ``year`` through December 31."""
    schedule = generate_billing_schedule(
        date(year, 1, 1), date(year, 12, 31), cycle, 0, billing_day, cfg
    )
    return schedule.billing_dates


# ── service wrapper ──────────────────────────────────────────────────────────

class BillingService:
    """Billing engine bound to one immutable ``BillingConfig``."""

    def __init__(self, config: Optional[BillingConfig] = None) -> None:
        self._config = config if config is not None else DEFAULT_BILLING_CONFIG

    def with_holidays(self, holidays: Iterable[DateLike]) -> "BillingService":
        return BillingService(self._config.with_holidays(holidays))

    def with_config(self, **changes) -> "BillingService":
        return BillingService(replace(self._config, **changes))

    def next_billing_date(self, d: DateLike, cycle: SubscriptionCycle | str,
                          billing_day: Optional[int] = None) -> date:
        return next_billing_date(d, cycle, billing_day, self._config)

    def previous_billing_date(self, d: DateLike, cycle: SubscriptionCycle | str,
                              billing_day: Optional[int] = None) -> date:
        return previous_billing_date(d, cycle, billing_day, self._config)

    def days_until_billing(self, d: DateLike, cycle: SubscriptionCycle | str,
                           billing_day: Optional[int] = None) -> int:
        return days_until_billing(d, cycle, billing_day, self._config)

    def align_billing_day(self, d: DateLike, billing_day: Optional[int] = None) -> date:
        return align_billing_day(d, billing_day, self._config)

    def billing_cycle_info(self, d: DateLike, cycle: SubscriptionCycle | str,
                           billing_day: Optional[int] = None) -> BillingCycleInfo:
        return billing_cycle_info(d, cycle, billing_day, self._config)

    def subscription_info(self, d: DateLike, subscription_start: DateLike,
                          cycle: SubscriptionCycle | str,
                          billing_day: Optional[int] = None) -> SubscriptionInfo:
        return subscription_info(d, subscription_start, cycle, billing_day, self._config)

    def proration(self, subscription_start: DateLike, cycle_end: DateLike,
                  full_amount: float) -> ProrationInfo:
        return proration(subscription_start, cycle_end, full_amount)

    def trial_period_info(self, subscription_start: DateLike, current: DateLike,
                          trial_days: Optional[int] = None) -> TrialPeriodInfo:
        return trial_period_info(subscription_start, current, trial_days, self._config)

    def billing_date_after_trial(self, subscription_start: DateLike,
                                 cycle: SubscriptionCycle | str,
                                 trial_days: Optional[int] = None,
                                 billing_day: Optional[int] = None,
                                 as_of: Optional[DateLike] = None) -> BillingDate:
        return billing_date_after_trial(
            subscription_start, cycle, trial_days, billing_day, self._config, as_of
        )

    def generate_billing_schedule(self, start: DateLike, end: DateLike,
                                  cycle: SubscriptionCycle | str, amount_per_cycle: float,
                                  billing_day: Optional[int] = None) -> SubscriptionSchedule:
        return generate_billing_schedule(start, end, cycle, amount_per_cycle, billing_day, self._config)

    def is_billing_due(self, d: DateLike, cycle: SubscriptionCycle | str,
                       billing_day: Optional[int] = None,
                       grace_period_days: Optional[int] = None) -> bool:
        return is_billing_due(d, cycle, billing_day, grace_period_days, self._config)

    def is_overdue(self, last_payment: DateLike, cycle: SubscriptionCycle | str,
                   current: Optional[DateLike] = None,
                   grace_period_days: Optional[int] = None,
                   billing_day: Optional[int] = None) -> bool:
        return is_overdue(last_payment, cycle, current, grace_period_days, self._config, billing_day)

    @property
    def config(self) -> BillingConfig:
        return self._config

    def __repr__(self) -> str:
        return (
            f"BillingService(billing_day={self._config.default_billing_day}, "
            f"skip_weekends={self._config.skip_weekends}, "
            f"skip_holidays={self._config.skip_holidays})"
        )
