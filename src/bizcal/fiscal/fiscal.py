from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from bizcal.core import ConfigError, Unit, dates
from bizcal.core.dates import D, DateLike


@dataclass(frozen=True)
class FiscalYearConfig:
    """First (month, day) of the fiscal year.  Defaults to the calendar year."""

    start_month: int = 1
    start_day: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.start_month <= 12:
            raise ConfigError(f"Fiscal start month must be 1-12; got {self.start_month}.")
        if not 1 <= self.start_day <= 31:
            raise ConfigError(f"Fiscal start day must be 1-31; got {self.start_day}.")

    @property
    def is_calendar_year(self) -> bool:
        return self.start_month == 1 and self.start_day == 1


@dataclass(frozen=True)
class FinancialQuarter:
    quarter: int
    year: int
    start_date: date
    end_date: date


class FiscalYearPresets:
    """Common fiscal year definitions."""

    CALENDAR = FiscalYearConfig(1, 1)
    US_GOVERNMENT = FiscalYearConfig(10, 1)
    UK_GOVERNMENT = FiscalYearConfig(4, 6)
    APPLE = FiscalYearConfig(10, 1)
    MICROSOFT = FiscalYearConfig(7, 1)
    JAPAN = FiscalYearConfig(4, 1)
    AUSTRALIA = FiscalYearConfig(7, 1)


PRESETS: dict[str, FiscalYearConfig] = {
    name.lower(): value
    for name, value in vars(FiscalYearPresets).items()
    if isinstance(value, FiscalYearConfig)
}

DEFAULT_FISCAL_CONFIG = FiscalYearPresets.CALENDAR


def get_preset(name: str) -> FiscalYearConfig:
    try:
        return PRESETS[name.strip().lower()]
    except KeyError:
        raise ConfigError(
            f"Unknown fiscal year preset {name!r}; expected one of {sorted(PRESETS)}."
        ) from None


# ── year / quarter mapping ───────────────────────────────────────────────────

def _boundary(year: int, k: int, cfg: FiscalYearConfig) -> date:
    """Start of quarter ``k`` (0-based) of the fiscal year starting in ``year``.

    Each boundary clamps ``start_day`` within its own month, so a start day of
    31 gives Apr 30 / Jul 31 / Oct 31 rather than drifting.
    """
    first = date(year, cfg.start_month, 1) + relativedelta(months=3 * k)
    return dates.set_day(first, cfg.start_day)


def _start_year(day: date, cfg: FiscalYearConfig) -> int:
    # Calendar year in which the fiscal year containing ``day`` starts.
    if day >= _boundary(day.year, 0, cfg):
        return day.year
    return day.year - 1


def _quarter_index(day: date, year: int, cfg: FiscalYearConfig) -> int:
    for k in (3, 2, 1):
        if day >= _boundary(year, k, cfg):
            return k
    return 0


def fiscal_year(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> int:
    """
    Fiscal year label for ``d``.

    Dates before the start (month, day) belong to the fiscal year named after
    their calendar year; dates on or after it belong to the next one, so a
    fiscal year starting Oct 1 labelled FY2024 runs Oct 1 2023 to Sep 30 2024.
    A start day past the end of its month falls on that month's last day.
    """
    year = _start_year(dates.to_date(d), cfg)
    return year if cfg.is_calendar_year else year + 1


def fiscal_year_start(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> date:
    return _boundary(_start_year(dates.to_date(d), cfg), 0, cfg)


def fiscal_year_end(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> date:
    return _boundary(_start_year(dates.to_date(d), cfg), 4, cfg) - timedelta(days=1)


def fiscal_quarter(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> int:
    """Quarter 1..4, counted in three-month steps from the fiscal year start."""
    day = dates.to_date(d)
    return _quarter_index(day, _start_year(day, cfg), cfg) + 1


def fiscal_quarter_start(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> date:
    day = dates.to_date(d)
    year = _start_year(day, cfg)
    return _boundary(year, _quarter_index(day, year, cfg), cfg)


def fiscal_quarter_end(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> date:
    day = dates.to_date(d)
    year = _start_year(day, cfg)
    return _boundary(year, _quarter_index(day, year, cfg) + 1, cfg) - timedelta(days=1)


def fiscal_quarter_info(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> FinancialQuarter:
    return FinancialQuarter(
        quarter=fiscal_quarter(d, cfg),
        year=fiscal_year(d, cfg),
        start_date=fiscal_quarter_start(d, cfg),
        end_date=fiscal_quarter_end(d, cfg),
    )


def fiscal_year_quarters(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> list[FinancialQuarter]:
    """The four quarters of the fiscal year containing ``d``."""
    year = _start_year(dates.to_date(d), cfg)
    label = fiscal_year(d, cfg)
    return [
        FinancialQuarter(
            quarter=k + 1,
            year=label,
            start_date=_boundary(year, k, cfg),
            end_date=_boundary(year, k + 1, cfg) - timedelta(days=1),
        )
        for k in range(4)
    ]


# ── comparisons and arithmetic ───────────────────────────────────────────────

def is_same_fiscal_year(a: DateLike, b: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> bool:
    return fiscal_year(a, cfg) == fiscal_year(b, cfg)


def is_same_fiscal_quarter(a: DateLike, b: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> bool:
    return (
        fiscal_year(a, cfg) == fiscal_year(b, cfg)
        and fiscal_quarter(a, cfg) == fiscal_quarter(b, cfg)
    )


def add_fiscal_quarters(d: D, quarters: int) -> D:
    # A fiscal quarter is always three calendar months, whatever the config.
    if quarters == 0:
        return d
    return dates.add(d, quarters, Unit.QUARTER)


def subtract_fiscal_quarters(d: D, quarters: int) -> D:
    return add_fiscal_quarters(d, -quarters)


def fiscal_quarters_between(a: DateLike, b: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG) -> int:
    first = fiscal_year(a, cfg) * 4 + fiscal_quarter(a, cfg)
    second = fiscal_year(b, cfg) * 4 + fiscal_quarter(b, cfg)
    return second - first


# ── labels ───────────────────────────────────────────────────────────────────

def fiscal_year_label(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG, prefix: str = "FY") -> str:
    return f"{prefix}{fiscal_year(d, cfg)}"


def fiscal_quarter_label(d: DateLike, cfg: FiscalYearConfig = DEFAULT_FISCAL_CONFIG, prefix: str = "FY") -> str:
    return f"Q{fiscal_quarter(d, cfg)} {prefix}{fiscal_year(d, cfg)}"


# ── service wrapper ──────────────────────────────────────────────────────────

class FiscalCalendar:
    """Fiscal calendar bound to one ``FiscalYearConfig``."""

    def __init__(self, config: FiscalYearConfig | None = None) -> None:
        self._config = config if config is not None else DEFAULT_FISCAL_CONFIG

    @classmethod
    def from_preset(cls, name: str) -> "FiscalCalendar":
        return cls(get_preset(name))

    def fiscal_year(self, d: DateLike) -> int:
        return fiscal_year(d, self._config)

    def fiscal_quarter(self, d: DateLike) -> int:
        return fiscal_quarter(d, self._config)

    def fiscal_quarter_info(self, d: DateLike) -> FinancialQuarter:
        return fiscal_quarter_info(d, self._config)

    def fiscal_year_quarters(self, d: DateLike) -> list[FinancialQuarter]:
        return fiscal_year_quarters(d, self._config)

    def start_of_fiscal_year(self, d: DateLike) -> date:
        return fiscal_year_start(d, self._config)

    def end_of_fiscal_year(self, d: DateLike) -> date:
        return fiscal_year_end(d, self._config)

    def start_of_fiscal_quarter(self, d: DateLike) -> date:
        return fiscal_quarter_start(d, self._config)

    def end_of_fiscal_quarter(self, d: DateLike) -> date:
        return fiscal_quarter_end(d, self._config)

    def is_same_fiscal_year(self, a: DateLike, b: DateLike) -> bool:
        return is_same_fiscal_year(a, b, self._config)

    def is_same_fiscal_quarter(self, a: DateLike, b: DateLike) -> bool:
        return is_same_fiscal_quarter(a, b, self._config)

    def add_fiscal_quarters(self, d: D, quarters: int) -> D:
        return add_fiscal_quarters(d, quarters)

    def subtract_fiscal_quarters(self, d: D, quarters: int) -> D:
        return subtract_fiscal_quarters(d, quarters)

    def fiscal_quarters_between(self, a: DateLike, b: DateLike) -> int:
        return fiscal_quarters_between(a, b, self._config)

    def fiscal_year_label(self, d: DateLike, prefix: str = "FY") -> str:
        return fiscal_year_label(d, self._config, prefix)

    def fiscal_quarter_label(self, d: DateLike, prefix: str = "FY") -> str:
        return fiscal_quarter_label(d, self._config, prefix)

    @property
    def config(self) -> FiscalYearConfig:
        return self._config

    def __repr__(self) -> str:
        return (
            f"FiscalCalendar(start_month={self._config.start_month}, "
            f"start_day={self._config.start_day})"
        )
