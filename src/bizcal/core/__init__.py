"""
bizcal.core
~~~~~~~~~~~

Shared building blocks for the bizcal engines: calendar-unit arithmetic on
the standard library's immutable ``date``/``datetime`` values, and the
exception hierarchy.

Basic usage::

    from datetime import date
    from bizcal.core import dates

    dates.add(date(2024, 1, 31), 1, "month")      # → date(2024, 2, 29)
    dates.end_of(date(2024, 5, 10), "quarter")    # → date(2024, 6, 30)
    dates.day_of_week(date(2024, 1, 14))          # → 0 (Sunday)

Public API
----------
dates               Unit arithmetic, conversion and numpy day spans.
Unit                Calendar units (day, week, month, quarter, year).
BizcalError         Base exception for all bizcal errors.
ConfigError         Invalid configuration value.
UnknownPresetError  Unknown analytics preset key.
EmptyInputError     Empty range list where one is required.
"""

from __future__ import annotations

from bizcal.core import dates
from bizcal.core._exceptions import (
    BizcalError,
    ConfigError,
    EmptyInputError,
    UnknownPresetError,
)
from bizcal.core.dates import DateLike, Unit

__all__ = [
    "dates",
    "DateLike",
    "Unit",
    "BizcalError",
    "ConfigError",
    "EmptyInputError",
    "UnknownPresetError",
]
