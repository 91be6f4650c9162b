"""
bizcal.calendar
~~~~~~~~~~~~~~~

Business-day arithmetic.  A day is a business day when its day of week is a
configured workday and no holiday (exact date, or recurring month/day) falls
on it.

Basic usage::

    from datetime import date
    from bizcal.calendar import BusinessCalendar, BusinessRules, Holiday

    rules = BusinessRules(holidays=[Holiday("2024-12-25", "Christmas", recurring=True)])
    cal = BusinessCalendar(rules)
    cal.add_business_days(date(2024, 12, 24), 1)            # → date(2024, 12, 26)
    cal.business_days_between(date(2024, 1, 15), date(2024, 1, 19))   # → 4

The same operations exist as module-level functions taking the rules
explicitly::

    from bizcal.calendar import next_business_day
    next_business_day(date(2024, 1, 19), rules)             # → date(2024, 1, 22)

Counting operations are vectorised with NumPy::

    mask = cal.mask(date(2024, 1, 1), date(2024, 1, 31))    # bool array, 31 days

Public API
----------
BusinessCalendar   Immutable service bound to one BusinessRules.
BusinessRules      Workdays, holidays and optional fiscal year start.
Holiday            A named holiday, optionally recurring every year.
"""

from __future__ import annotations

from bizcal.calendar.calendar import (
    BusinessCalendar,
    add_business_days,
    business_day_mask,
    business_days_between,
    business_days_in_month,
    count_business_days_in_range,
    find_holiday,
    has_business_days_in_range,
    holiday_info,
    is_business_day,
    is_holiday,
    is_workday,
    next_business_day,
    prev_business_day,
    subtract_business_days,
)
from bizcal.calendar.rules import (
    DEFAULT_BUSINESS_RULES,
    DEFAULT_WORKDAYS,
    BusinessRules,
    Holiday,
    HolidayType,
)

__all__ = [
    "BusinessCalendar",
    "BusinessRules",
    "Holiday",
    "HolidayType",
    "DEFAULT_BUSINESS_RULES",
    "DEFAULT_WORKDAYS",
    "is_workday",
    "find_holiday",
    "is_holiday",
    "holiday_info",
    "is_business_day",
    "business_day_mask",
    "next_business_day",
    "prev_business_day",
    "add_business_days",
    "subtract_business_days",
    "business_days_between",
    "business_days_in_month",
    "count_business_days_in_range",
    "has_business_days_in_range",
]
