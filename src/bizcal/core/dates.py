from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterator, TypeVar, Union

import numpy as np
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, str, np.datetime64]
D = TypeVar("D", date, datetime)

# 1970-01-01 was a Thursday; with Sunday = 0 that is index 4.
_EPOCH_DAY_OF_WEEK = 4


class Unit(str, Enum):
    """Calendar units understood by add/start_of/end_of."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# ── conversion ───────────────────────────────────────────────────────────────

def to_date(value: DateLike) -> date:
    """
    Normalise a date-like value to a ``date``.

    Accepts ``date``, ``datetime`` (date part), ``numpy.datetime64`` and ISO
    strings such as ``"2024-01-15"`` or ``"2024-01-15T10:30:00+08:00"``.
    The time and offset of a string are ignored.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, np.datetime64):
        return value.astype("datetime64[D]").astype(date)
    if isinstance(value, str):
        return isoparse(value.strip()).date()
    raise TypeError(f"Unsupported type for date: {type(value)!r}")


def to_datetime(value: DateLike) -> datetime:
    """Normalise a date-like value to a ``datetime`` (strings become naive)."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, np.datetime64):
        return datetime.combine(to_date(value), time.min)
    if isinstance(value, str):
        return isoparse(value.strip()).replace(tzinfo=None)
    raise TypeError(f"Unsupported type for datetime: {type(value)!r}")


def format_date(value: DateLike) -> str:
    return to_date(value).isoformat()


# ── field access ─────────────────────────────────────────────────────────────

def day_of_week(value: date) -> int:
    """Day of week with Sunday = 0 … Saturday = 6."""
    return (value.weekday() + 1) % 7


def days_in_month(value: date) -> int:
    return calendar.monthrange(value.year, value.month)[1]


def quarter_of(value: date) -> int:
    return (value.month - 1) // 3 + 1


def set_day(value: D, day: int) -> D:
    """Set the day of month, clamped to ``[1, days_in_month]``."""
    return value.replace(day=min(max(day, 1), days_in_month(value)))


# ── unit arithmetic ──────────────────────────────────────────────────────────

def _delta(amount: int, unit: Unit | str) -> timedelta | relativedelta:
    unit = Unit(unit)
    if unit is Unit.DAY:
        return timedelta(days=amount)
    if unit is Unit.WEEK:
        return timedelta(weeks=amount)
    if unit is Unit.MONTH:
        return relativedelta(months=amount)
    if unit is Unit.QUARTER:
        return relativedelta(months=3 * amount)
    return relativedelta(years=amount)


def add(value: D, amount: int, unit: Unit | str) -> D:
    """
    Add ``amount`` units.  Month-based units clamp to the end of the target
    month, so ``add(date(2024, 1, 31), 1, "month") == date(2024, 2, 29)``.
    """
    return value + _delta(amount, unit)


def subtract(value: D, amount: int, unit: Unit | str) -> D:
    return value + _delta(-amount, unit)


def _first_day(d: date, unit: Unit, week_starts_on: int) -> date:
    if unit is Unit.DAY:
        return d
    if unit is Unit.WEEK:
        return d - timedelta(days=(day_of_week(d) - week_starts_on) % 7)
    if unit is Unit.MONTH:
        return d.replace(day=1)
    if unit is Unit.QUARTER:
        return d.replace(month=3 * (quarter_of(d) - 1) + 1, day=1)
    return d.replace(month=1, day=1)


def _last_day(d: date, unit: Unit, week_starts_on: int) -> date:
    if unit is Unit.DAY:
        return d
    if unit is Unit.WEEK:
        return _first_day(d, unit, week_starts_on) + timedelta(days=6)
    if unit is Unit.MONTH:
        return d.replace(day=days_in_month(d))
    if unit is Unit.QUARTER:
        first = _first_day(d, unit, week_starts_on)
        return first + relativedelta(months=3) - timedelta(days=1)
    return d.replace(month=12, day=31)


def start_of(value: D, unit: Unit | str, week_starts_on: int = 0) -> D:
    """
    First instant of the unit containing ``value``.  A ``datetime`` input
    yields midnight, a ``date`` input yields a ``date``.
    """
    unit = Unit(unit)
    if isinstance(value, datetime):
        first = _first_day(value.date(), unit, week_starts_on)
        return datetime.combine(first, time.min, tzinfo=value.tzinfo)
    return _first_day(value, unit, week_starts_on)


def end_of(value: D, unit: Unit | str, week_starts_on: int = 0) -> D:
    """Last instant (23:59:59.999999) of the unit containing ``value``."""
    unit = Unit(unit)
    if isinstance(value, datetime):
        last = _last_day(value.date(), unit, week_starts_on)
        return datetime.combine(last, time.max, tzinfo=value.tzinfo)
    return _last_day(value, unit, week_starts_on)


def diff_days(a: date, b: date) -> int:
    """Whole calendar days from ``b`` to ``a``."""
    return (to_date(a) - to_date(b)).days


def diff_months(a: date, b: date) -> int:
    """Whole months from ``b`` to ``a``, truncated toward zero."""
    rd = relativedelta(a, b)
    return rd.years * 12 + rd.months


# ── spans ────────────────────────────────────────────────────────────────────

def iter_days(start: D, end: date) -> Iterator[D]:
    """Yield every day from ``start`` through ``end`` (inclusive)."""
    current = start
    last = to_date(end)
    while to_date(current) <= last:
        yield current
        current = current + timedelta(days=1)


def date_span(start: DateLike, end: DateLike) -> np.ndarray:
    """Every day of the closed interval as ``datetime64[D]``; empty if inverted."""
    first = np.datetime64(to_date(start), "D")
    last = np.datetime64(to_date(end), "D")
    return np.arange(first, last + np.timedelta64(1, "D"), dtype="datetime64[D]")


def span_day_of_week(days: np.ndarray) -> np.ndarray:
    """Vectorised ``day_of_week`` for a ``datetime64[D]`` array."""
    return (days.astype(np.int64) + _EPOCH_DAY_OF_WEEK) % 7


def span_month_day(days: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Vectorised (month 1..12, day 1..31) for a ``datetime64[D]`` array."""
    months = days.astype("datetime64[M]")
    month = months.astype(np.int64) % 12 + 1
    day = (days - months.astype("datetime64[D]")).astype(np.int64) + 1
    return month, day
