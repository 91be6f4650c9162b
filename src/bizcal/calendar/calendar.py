from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

import numpy as np

from bizcal.core import Unit, dates
from bizcal.core.dates import D, DateLike
from bizcal.fiscal import FiscalCalendar
from .rules import DEFAULT_BUSINESS_RULES, BusinessRules, Holiday

_ONE_DAY = timedelta(days=1)


# ── classification ───────────────────────────────────────────────────────────

def is_workday(d: date, workdays: Iterable[int]) -> bool:
    return dates.day_of_week(d) in workdays


def find_holiday(d: date, holidays: Sequence[Holiday]) -> Optional[Holiday]:
    """First holiday in list order that falls on ``d``, or None."""
    day = dates.to_date(d)
    for holiday in holidays:
        on = holiday.on
        if on == day:
            return holiday
        if holiday.recurring and on.month == day.month and on.day == day.day:
            return holiday
    return None


def is_holiday(d: date, holidays: Sequence[Holiday]) -> bool:
    return find_holiday(d, holidays) is not None


def holiday_info(d: date, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> Optional[Holiday]:
    return find_holiday(d, rules.holidays)


def is_business_day(d: date, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> bool:
    return is_workday(d, rules.workdays) and find_holiday(d, rules.holidays) is None


# ── vectorised classification ────────────────────────────────────────────────

def _holiday_mask(days: np.ndarray, holidays: Sequence[Holiday]) -> np.ndarray:
    exact = np.array([np.datetime64(h.on, "D") for h in holidays], dtype="datetime64[D]")
    hit = np.isin(days, exact)
    recurring = [h.on for h in holidays if h.recurring]
    if recurring:
        month, day = dates.span_month_day(days)
        for on in recurring:
            hit |= (month == on.month) & (day == on.day)
    return hit


def business_day_mask(
    start: DateLike,
    end: DateLike,
    rules: BusinessRules = DEFAULT_BUSINESS_RULES,
) -> np.ndarray:
    """
    Boolean mask over every day of ``[start, end]``: True where the day is a
    business day.  Same result as calling ``is_business_day`` day by day.
    """
    days = dates.date_span(start, end)
    mask = np.isin(dates.span_day_of_week(days), np.fromiter(rules.workdays, dtype=np.int64))
    if rules.holidays:
        mask &= ~_holiday_mask(days, rules.holidays)
    return mask


# ── walking ──────────────────────────────────────────────────────────────────
# Unbounded on purpose: a rule set with no reachable business day never returns.

def next_business_day(d: D, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> D:
    current = d + _ONE_DAY
    while not is_business_day(current, rules):
        current += _ONE_DAY
    return current


def prev_business_day(d: D, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> D:
    current = d - _ONE_DAY
    while not is_business_day(current, rules):
        current -= _ONE_DAY
    return current


def add_business_days(d: D, days: int, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> D:
    """
    Move ``days`` business days forward (or backward when negative).  Only
    days landed on count, so the result is always a business day unless
    ``days == 0``, in which case ``d`` is returned unchanged.
    """
    if days == 0:
        return d

    step = _ONE_DAY if days > 0 else -_ONE_DAY
    remaining = abs(days)
    current = d
    while remaining > 0:
        current += step
        if is_business_day(current, rules):
            remaining -= 1
    return current


def subtract_business_days(d: D, days: int, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> D:
    return add_business_days(d, -days, rules)


# ── counting ─────────────────────────────────────────────────────────────────

def business_days_between(a: date, b: date, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> int:
    """
    Business days after the earlier date up to and including the later one.
    Positive when ``a`` is before ``b``, negative otherwise.
    """
    first, second = dates.to_date(a), dates.to_date(b)
    forward = first < second
    lo, hi = (first, second) if forward else (second, first)
    count = int(business_day_mask(lo + _ONE_DAY, hi, rules).sum())
    return count if forward else -count


def count_business_days_in_range(
    start: DateLike,
    end: DateLike,
    rules: BusinessRules = DEFAULT_BUSINESS_RULES,
) -> int:
    """Business days in the closed interval ``[start, end]``."""
    return int(business_day_mask(start, end, rules).sum())


def has_business_days_in_range(
    start: D,
    end: date,
    rules: BusinessRules = DEFAULT_BUSINESS_RULES,
) -> bool:
    return any(is_business_day(day, rules) for day in dates.iter_days(start, end))


def business_days_in_month(d: D, rules: BusinessRules = DEFAULT_BUSINESS_RULES) -> list[D]:
    first = dates.start_of(d, Unit.MONTH)
    mask = business_day_mask(first, dates.end_of(d, Unit.MONTH), rules)
    return [first + timedelta(days=int(i)) for i in np.flatnonzero(mask)]


# ── service wrapper ──────────────────────────────────────────────────────────

class BusinessCalendar:
    """
    Business-day calendar bound to one immutable ``BusinessRules``.
    The ``with_*`` methods return new calendars; an instance never changes,
    so one calendar per tenant can be shared freely between threads.
    """

    def __init__(self, rules: Optional[BusinessRules] = None) -> None:
        self._rules: BusinessRules = rules if rules is not None else DEFAULT_BUSINESS_RULES

    # ── derived calendars ────────────────────────────────────────────────

    def with_holidays(self, holidays: Iterable[Holiday]) -> "BusinessCalendar":
        return BusinessCalendar(self._rules.with_holidays(holidays))

    def with_holiday(self, holiday: Holiday) -> "BusinessCalendar":
        return BusinessCalendar(self._rules.with_holidays([*self._rules.holidays, holiday]))

    def without_holiday(self, day: DateLike) -> "BusinessCalendar":
        target = dates.to_date(day)
        kept = [h for h in self._rules.holidays if h.on != target]
        return BusinessCalendar(self._rules.with_holidays(kept))

    def with_workdays(self, workdays: Iterable[int]) -> "BusinessCalendar":
        return BusinessCalendar(self._rules.with_workdays(workdays))

    # ── classification ───────────────────────────────────────────────────

    def is_workday(self, d: date) -> bool:
        return is_workday(d, self._rules.workdays)

    def is_holiday(self, d: date) -> bool:
        return is_holiday(d, self._rules.holidays)

    def holiday_info(self, d: date) -> Optional[Holiday]:
        return holiday_info(d, self._rules)

    def is_business_day(self, d: date) -> bool:
        return is_business_day(d, self._rules)

    def mask(self, start: DateLike, end: DateLike) -> np.ndarray:
        return business_day_mask(start, end, self._rules)

    # ── walking / counting ───────────────────────────────────────────────

    def next_business_day(self, d: D) -> D:
        return next_business_day(d, self._rules)

    def prev_business_day(self, d: D) -> D:
        return prev_business_day(d, self._rules)

    def add_business_days(self, d: D, days: int) -> D:
        return add_business_days(d, days, self._rules)

    def subtract_business_days(self, d: D, days: int) -> D:
        return subtract_business_days(d, days, self._rules)

    def business_days_between(self, a: date, b: date) -> int:
        return business_days_between(a, b, self._rules)

    def business_days_in_month(self, d: D) -> list[D]:
        return business_days_in_month(d, self._rules)

    def count_business_days(self, start: DateLike, end: DateLike) -> int:
        return count_business_days_in_range(start, end, self._rules)

    def has_business_days(self, start: D, end: date) -> bool:
        return has_business_days_in_range(start, end, self._rules)

    # ── properties / repr ────────────────────────────────────────────────

    @property
    def rules(self) -> BusinessRules:
        return self._rules

    @property
    def workdays(self) -> frozenset[int]:
        return self._rules.workdays

    @property
    def holidays(self) -> tuple[Holiday, ...]:
        return self._rules.holidays

    @property
    def fiscal_calendar(self) -> FiscalCalendar:
        """Fiscal calendar for the rules' ``fiscal_year_start``; calendar year if unset."""
        return FiscalCalendar(self._rules.fiscal_year_start)

    def __repr__(self) -> str:
        return (
            f"BusinessCalendar(workdays={sorted(self._rules.workdays)}, "
            f"holidays={len(self._rules.holidays)}, "
            f"fiscal_year_start={self._rules.fiscal_year_start})"
        )
