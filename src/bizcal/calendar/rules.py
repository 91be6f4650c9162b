from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, Mapping

from bizcal.core import ConfigError, dates
from bizcal.fiscal import FiscalYearConfig

# Monday to Friday, with Sunday = 0.
DEFAULT_WORKDAYS: frozenset[int] = frozenset({1, 2, 3, 4, 5})


class HolidayType(str, Enum):
    PUBLIC = "public"
    COMPANY = "company"
    REGIONAL = "regional"


@dataclass(frozen=True)
class Holiday:
    """
    A named non-business date.

    ``date`` is an ISO date string; a trailing ``T…`` time/offset is ignored.
    A recurring holiday matches the same month and day in every year.
    """

    date: str
    name: str
    type: HolidayType = HolidayType.PUBLIC
    recurring: bool = False
    _on: date = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "type", HolidayType(self.type))
        except ValueError as exc:
            raise ConfigError(f"Invalid holiday type: {self.type!r}") from exc
        try:
            on = dates.to_date(self.date)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid holiday date: {self.date!r}") from exc
        object.__setattr__(self, "_on", on)

    @property
    def on(self) -> date:
        return self._on

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Holiday":
        return cls(
            date=str(raw["date"]),
            name=raw.get("name", ""),
            type=raw.get("type", HolidayType.PUBLIC),
            recurring=bool(raw.get("recurring", False)),
        )


@dataclass(frozen=True)
class BusinessRules:
    """
    Workdays (0 = Sunday … 6 = Saturday), holidays and an optional fiscal
    year start.  Sequences are frozen on construction.
    """

    workdays: frozenset[int] = DEFAULT_WORKDAYS
    holidays: tuple[Holiday, ...] = ()
    fiscal_year_start: FiscalYearConfig | None = None

    def __post_init__(self) -> None:
        workdays = frozenset(self.workdays)
        for day in workdays:
            if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
                raise ConfigError(f"Workday must be an integer between 0-6; got {day!r}.")
        object.__setattr__(self, "workdays", workdays)
        object.__setattr__(self, "holidays", tuple(self.holidays))

    def with_holidays(self, holidays: Iterable[Holiday]) -> "BusinessRules":
        return BusinessRules(self.workdays, tuple(holidays), self.fiscal_year_start)

    def with_workdays(self, workdays: Iterable[int]) -> "BusinessRules":
        return BusinessRules(frozenset(workdays), self.holidays, self.fiscal_year_start)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BusinessRules":
        fiscal = raw.get("fiscal_year_start")
        return cls(
            workdays=frozenset(raw.get("workdays", DEFAULT_WORKDAYS)),
            holidays=tuple(Holiday.from_dict(h) for h in raw.get("holidays", [])),
            fiscal_year_start=(
                FiscalYearConfig(fiscal.get("month", 1), fiscal.get("day", 1))
                if fiscal else None
            ),
        )


DEFAULT_BUSINESS_RULES = BusinessRules()
