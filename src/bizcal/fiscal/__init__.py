"""
bizcal.fiscal
~~~~~~~~~~~~~

Fiscal year and quarter mapping for a configurable fiscal year start.  A
fiscal year that does not start on January 1 is labelled after the calendar
year in which it ends.

Basic usage::

    from datetime import date
    from bizcal.fiscal import FiscalCalendar, FiscalYearPresets

    fc = FiscalCalendar(FiscalYearPresets.US_GOVERNMENT)   # Oct 1 start
    fc.fiscal_year(date(2023, 11, 15))                     # → 2024
    fc.fiscal_quarter(date(2023, 11, 15))                  # → 1
    fc.fiscal_quarter_label(date(2024, 2, 15))             # → "Q2 FY2024"

Public API
----------
FiscalCalendar      Service bound to one FiscalYearConfig.
FiscalYearConfig    Start month and day of the fiscal year.
FiscalYearPresets   Named common configurations.
FinancialQuarter    Quarter number, fiscal year and date bounds.
"""

from __future__ import annotations

from bizcal.fiscal.fiscal import (
    DEFAULT_FISCAL_CONFIG,
    PRESETS,
    FinancialQuarter,
    FiscalCalendar,
    FiscalYearConfig,
    FiscalYearPresets,
    add_fiscal_quarters,
    fiscal_quarter,
    fiscal_quarter_end,
    fiscal_quarter_info,
    fiscal_quarter_label,
    fiscal_quarter_start,
    fiscal_quarters_between,
    fiscal_year,
    fiscal_year_end,
    fiscal_year_label,
    fiscal_year_quarters,
    fiscal_year_start,
    get_preset,
    is_same_fiscal_quarter,
    is_same_fiscal_year,
    subtract_fiscal_quarters,
)

__all__ = [
    "FiscalCalendar",
    "FiscalYearConfig",
    "FiscalYearPresets",
    "FinancialQuarter",
    "DEFAULT_FISCAL_CONFIG",
    "PRESETS",
    "get_preset",
    "fiscal_year",
    "fiscal_quarter",
    "fiscal_year_start",
    "fiscal_year_end",
    "fiscal_quarter_start",
    "fiscal_quarter_end",
    "fiscal_quarter_info",
    "fiscal_year_quarters",
    "is_same_fiscal_year",
    "is_same_fiscal_quarter",
    "add_fiscal_quarters",
    "subtract_fiscal_quarters",
    "fiscal_quarters_between",
    "fiscal_year_label",
    "fiscal_quarter_label",
]
