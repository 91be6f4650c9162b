from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
from dateutil.relativedelta import relativedelta

from bizcal.core import ConfigError, EmptyInputError, UnknownPresetError, Unit, dates
from bizcal.core.dates import DateLike
from bizcal.logging_setup import get_logger

logger = get_logger("analytics")

_ONE_DAY = timedelta(days=1)
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class RangePreset(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "thisWeek"
    LAST_WEEK = "lastWeek"
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_QUARTER = "thisQuarter"
    LAST_QUARTER = "lastQuarter"
    THIS_YEAR = "thisYear"
    LAST_YEAR = "lastYear"
    LAST_7_DAYS = "last7Days"
    LAST_14_DAYS = "last14Days"
    LAST_30_DAYS = "last30Days"
    LAST_60_DAYS = "last60Days"
    LAST_90_DAYS = "last90Days"
    LAST_180_DAYS = "last180Days"
    LAST_365_DAYS = "last365Days"
    WEEK_TO_DATE = "weekToDate"
    MONTH_TO_DATE = "monthToDate"
    QUARTER_TO_DATE = "quarterToDate"
    YEAR_TO_DATE = "yearToDate"
    ALL_TIME = "allTime"


DEFAULT_LABELS: dict[RangePreset, str] = {
    RangePreset.TODAY: "Today",
    RangePreset.YESTERDAY: "Yesterday",
    RangePreset.THIS_WEEK: "This Week",
    RangePreset.LAST_WEEK: "Last Week",
    RangePreset.THIS_MONTH: "This Month",
    RangePreset.LAST_MONTH: "Last Month",
    RangePreset.THIS_QUARTER: "This Quarter",
    RangePreset.LAST_QUARTER: "Last Quarter",
    RangePreset.THIS_YEAR: "This Year",
    RangePreset.LAST_YEAR: "Last Year",
    RangePreset.LAST_7_DAYS: "Last 7 Days",
    RangePreset.LAST_14_DAYS: "Last 14 Days",
    RangePreset.LAST_30_DAYS: "Last 30 Days",
    RangePreset.LAST_60_DAYS: "Last 60 Days",
    RangePreset.LAST_90_DAYS: "Last 90 Days",
    RangePreset.LAST_180_DAYS: "Last 180 Days",
    RangePreset.LAST_365_DAYS: "Last 365 Days",
    RangePreset.WEEK_TO_DATE: "Week to Date",
    RangePreset.MONTH_TO_DATE: "Month to Date",
    RangePreset.QUARTER_TO_DATE: "Quarter to Date",
    RangePreset.YEAR_TO_DATE: "Year to Date",
    RangePreset.ALL_TIME: "All Time",
}

_LAST_N_DAYS = {
    RangePreset.LAST_7_DAYS: 7,
    RangePreset.LAST_14_DAYS: 14,
    RangePreset.LAST_30_DAYS: 30,
    RangePreset.LAST_60_DAYS: 60,
    RangePreset.LAST_90_DAYS: 90,
    RangePreset.LAST_180_DAYS: 180,
    RangePreset.LAST_365_DAYS: 365,
}

_TO_DATE_UNITS = {
    RangePreset.MONTH_TO_DATE: Unit.MONTH,
    RangePreset.QUARTER_TO_DATE: Unit.QUARTER,
    RangePreset.YEAR_TO_DATE: Unit.YEAR,
}

_CALENDAR_UNITS = {
    RangePreset.THIS_MONTH: (Unit.MONTH, relativedelta()),
    RangePreset.LAST_MONTH: (Unit.MONTH, relativedelta(months=1)),
    RangePreset.THIS_QUARTER: (Unit.QUARTER, relativedelta()),
    RangePreset.LAST_QUARTER: (Unit.QUARTER, relativedelta(months=3)),
    RangePreset.THIS_YEAR: (Unit.YEAR, relativedelta()),
    RangePreset.LAST_YEAR: (Unit.YEAR, relativedelta(years=1)),
}


class AnalyticsPresets:
    """Preset groups commonly shown together on a dashboard."""

    WEB_ANALYTICS = (
        RangePreset.TODAY, RangePreset.YESTERDAY, RangePreset.LAST_7_DAYS,
        RangePreset.LAST_30_DAYS, RangePreset.THIS_MONTH, RangePreset.LAST_MONTH,
    )
    SALES = (
        RangePreset.TODAY, RangePreset.THIS_WEEK, RangePreset.THIS_MONTH,
        RangePreset.THIS_QUARTER, RangePreset.MONTH_TO_DATE,
        RangePreset.QUARTER_TO_DATE, RangePreset.YEAR_TO_DATE,
    )
    MARKETING = (
        RangePreset.LAST_7_DAYS, RangePreset.LAST_14_DAYS, RangePreset.LAST_30_DAYS,
        RangePreset.LAST_90_DAYS, RangePreset.THIS_QUARTER, RangePreset.LAST_QUARTER,
    )
    FINANCIAL = (
        RangePreset.THIS_MONTH, RangePreset.LAST_MONTH, RangePreset.THIS_QUARTER,
        RangePreset.LAST_QUARTER, RangePreset.THIS_YEAR, RangePreset.LAST_YEAR,
    )


# Monday, with Sunday = 0.  Shared by the week helpers, bucketing and AnalyticsConfig.
DEFAULT_WEEK_STARTS_ON = 1


# ── value objects ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AnalyticsConfig:
    """
    ``week_starts_on`` uses Sunday = 0.  ``custom_labels`` maps preset keys
    (e.g. ``"last7Days"``) to replacement labels.
    """

    week_starts_on: int = DEFAULT_WEEK_STARTS_ON
    include_today: bool = True
    custom_labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.week_starts_on <= 6:
            raise ConfigError(f"week_starts_on must be 0-6; got {self.week_starts_on}.")
        labels = {}
        for key, label in dict(self.custom_labels).items():
            try:
                labels[RangePreset(key).value] = label
            except ValueError:
                raise ConfigError(f"Custom label for unknown range preset {key!r}.") from None
        object.__setattr__(self, "custom_labels", labels)

    def label_for(self, preset: RangePreset) -> str:
        return self.custom_labels.get(preset.value, DEFAULT_LABELS[preset])


DEFAULT_ANALYTICS_CONFIG = AnalyticsConfig()


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive reporting window.  Constructors normalise ``start`` to midnight
    and ``end`` to 23:59:59.999999; a range whose start is after its end is
    the empty set everywhere in this module.
    """

    start: datetime
    end: datetime
    label: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    @property
    def days(self) -> int:
        """Calendar days covered, counting both ends; 0 when empty."""
        if self.is_empty:
            return 0
        return dates.diff_days(self.end, self.start) + 1


@dataclass(frozen=True)
class ComparisonResult:
    current: DateRange
    previous: DateRange
    change_type: str  # "period" | "yoy" | "custom"


@dataclass(frozen=True)
class DateBucket:
    start: datetime
    end: datetime
    label: str
    index: int


@dataclass(frozen=True)
class RangeMetrics:
    total_days: int
    weekdays: int
    weekends: int
    weeks: int
    months: int
    quarters: int


# ── construction ─────────────────────────────────────────────────────────────

def make_range(start: DateLike, end: DateLike, label: Optional[str] = None) -> DateRange:
    """Range from the start of ``start``'s day to the end of ``end``'s day."""
    return DateRange(
        start=dates.start_of(dates.to_datetime(start), Unit.DAY),
        end=dates.end_of(dates.to_datetime(end), Unit.DAY),
        label=label,
    )


def _reference_day(reference: Optional[DateLike]) -> datetime:
    ref = dates.to_datetime(reference) if reference is not None else datetime.now()
    return dates.start_of(ref, Unit.DAY)


def week_start(d: DateLike, week_starts_on: int = DEFAULT_WEEK_STARTS_ON) -> datetime:
    return dates.start_of(dates.to_datetime(d), Unit.WEEK, week_starts_on)


def week_end(d: DateLike, week_starts_on: int = DEFAULT_WEEK_STARTS_ON) -> datetime:
    return dates.end_of(dates.to_datetime(d), Unit.WEEK, week_starts_on)


def _as_preset(preset: RangePreset | str) -> RangePreset:
    try:
        return RangePreset(preset)
    except ValueError:
        raise UnknownPresetError(str(preset)) from None


def preset_range(
    preset: RangePreset | str,
    reference: Optional[DateLike] = None,
    cfg: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
) -> DateRange:
    """
    Resolve a named preset relative to ``reference`` (default: now).

    Raises ``UnknownPresetError`` for keys outside the preset table.
    """
    preset = _as_preset(preset)
    today = _reference_day(reference)
    label = cfg.label_for(preset)
    wso = cfg.week_starts_on

    if preset is RangePreset.TODAY:
        return make_range(today, today, label)

    if preset is RangePreset.YESTERDAY:
        yesterday = today - _ONE_DAY
        return make_range(yesterday, yesterday, label)

    if preset is RangePreset.THIS_WEEK:
        return make_range(week_start(today, wso), week_end(today, wso), label)

    if preset is RangePreset.LAST_WEEK:
        last_week_end = week_start(today, wso) - _ONE_DAY
        return make_range(week_start(last_week_end, wso), last_week_end, label)

    if preset is RangePreset.WEEK_TO_DATE:
        return make_range(week_start(today, wso), today, label)

    if preset in _CALENDAR_UNITS:
        unit, back = _CALENDAR_UNITS[preset]
        anchor = today - back
        return make_range(dates.start_of(anchor, unit), dates.end_of(anchor, unit), label)

    if preset in _TO_DATE_UNITS:
        return make_range(dates.start_of(today, _TO_DATE_UNITS[preset]), today, label)

    if preset in _LAST_N_DAYS:
        end = today if cfg.include_today else today - _ONE_DAY
        return make_range(end - timedelta(days=_LAST_N_DAYS[preset] - 1), end, label)

    # ALL_TIME: a wide window to be narrowed to the data actually present.
    return make_range(today - relativedelta(years=100), today, label)


def preset_ranges(
    presets: Iterable[RangePreset | str],
    reference: Optional[DateLike] = None,
    cfg: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
) -> list[DateRange]:
    return [preset_range(p, reference, cfg) for p in presets]


def custom_range(start: DateLike, end: DateLike, label: str = "Custom Range") -> DateRange:
    return make_range(start, end, label)


def relative_range(
    days: int,
    reference: Optional[DateLike] = None,
    cfg: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
) -> DateRange:
    today = _reference_day(reference)
    end = today if cfg.include_today else today - _ONE_DAY
    return make_range(end - timedelta(days=days - 1), end, f"Last {days} Days")


def range_from_weeks(
    weeks: int,
    reference: Optional[DateLike] = None,
    cfg: AnalyticsConfig = DEFAULT_ANALYTICS_CONFIG,
) -> DateRange:
    """The current week plus the ``weeks - 1`` full weeks before it."""
    today = _reference_day(reference)
    start = week_start(today, cfg.week_starts_on) - timedelta(weeks=weeks - 1)
    return make_range(start, week_end(today, cfg.week_starts_on), f"Last {weeks} Weeks")


def range_from_months(months: int, reference: Optional[DateLike] = None) -> DateRange:
    """The current month plus the ``months - 1`` full months before it."""
    today = _reference_day(reference)
    start = dates.start_of(today - relativedelta(months=months - 1), Unit.MONTH)
    return make_range(start, dates.end_of(today, Unit.MONTH), f"Last {months} Months")


def available_presets() -> list[RangePreset]:
    return list(DEFAULT_LABELS)


def presets_by_category() -> dict[str, list[RangePreset]]:
    return {
        "relative": [
            RangePreset.TODAY, RangePreset.YESTERDAY, RangePreset.LAST_7_DAYS,
            RangePreset.LAST_14_DAYS, RangePreset.LAST_30_DAYS, RangePreset.LAST_90_DAYS,
        ],
        "calendar": [
            RangePreset.THIS_WEEK, RangePreset.LAST_WEEK, RangePreset.THIS_MONTH,
            RangePreset.LAST_MONTH, RangePreset.THIS_QUARTER, RangePreset.LAST_QUARTER,
        ],
        "toDate": [
            RangePreset.WEEK_TO_DATE, RangePreset.MONTH_TO_DATE,
            RangePreset.QUARTER_TO_DATE, RangePreset.YEAR_TO_DATE,
        ],
        "yearly": [RangePreset.THIS_YEAR, RangePreset.LAST_YEAR, RangePreset.LAST_365_DAYS],
    }


# ── comparisons ──────────────────────────────────────────────────────────────

def compare_previous_period(current: DateRange) -> ComparisonResult:
    """
    Window of the same number of days ending the day before ``current``
    starts.  An empty range compares against an empty range.
    """
    previous_end = current.start - _ONE_DAY
    previous_start = previous_end - timedelta(days=current.days - 1)
    return ComparisonResult(
        current=current,
        previous=make_range(previous_start, previous_end, "Previous Period"),
        change_type="period",
    )


def compare_year_over_year(current: DateRange) -> ComparisonResult:
    """Both ends moved back one calendar year (Feb 29 maps to Feb 28)."""
    year = relativedelta(years=1)
    return ComparisonResult(
        current=current,
        previous=make_range(current.start - year, current.end - year, "Year Over Year"),
        change_type="yoy",
    )


def custom_comparison(current: DateRange, start: DateLike, end: DateLike) -> ComparisonResult:
    return ComparisonResult(
        current=current,
        previous=make_range(start, end, "Custom Comparison"),
        change_type="custom",
    )


# ── buckets and metrics ──────────────────────────────────────────────────────

def bucket_label(d: datetime, unit: Unit | str) -> str:
    unit = Unit(unit)
    if unit is Unit.DAY:
        return f"{_MONTH_ABBR[d.month - 1]} {d.day}"
    if unit is Unit.WEEK:
        return f"Week {d.isocalendar()[1]}"
    if unit is Unit.MONTH:
        return f"{_MONTH_ABBR[d.month - 1]} {d.year}"
    if unit is Unit.QUARTER:
        return f"Q{dates.quarter_of(d)} {d.year}"
    return str(d.year)


def split_into_buckets(
    date_range: DateRange,
    unit: Unit | str,
    week_starts_on: int = DEFAULT_WEEK_STARTS_ON,
) -> list[DateBucket]:
    """
    Cut ``date_range`` at ``unit`` boundaries.

    The first bucket starts at ``date_range.start`` and the last ends at
    ``date_range.end``; in between, buckets are contiguous and disjoint.
    An empty range yields no buckets.
    """
    unit = Unit(unit)
    buckets: list[DateBucket] = []
    last_day = dates.to_date(date_range.end)
    cursor = date_range.start

    while not date_range.is_empty and dates.to_date(cursor) <= last_day:
        boundary = dates.end_of(cursor, unit, week_starts_on)
        buckets.append(DateBucket(
            start=cursor,
            end=min(boundary, date_range.end),
            label=bucket_label(cursor, unit),
            index=len(buckets),
        ))
        cursor = dates.start_of(boundary + _ONE_DAY, Unit.DAY)

    logger.debug("Split %s..%s into %d %s buckets",
                 date_range.start, date_range.end, len(buckets), unit.value)
    return buckets


def range_metrics(date_range: DateRange) -> RangeMetrics:
    """Day, week, month and quarter counts for ``date_range``."""
    if date_range.is_empty:
        return RangeMetrics(0, 0, 0, 0, 0, 0)

    days = dates.date_span(date_range.start, date_range.end)
    weekend = np.isin(dates.span_day_of_week(days), (0, 6))
    total = int(days.size)

    first, last = dates.to_date(date_range.start), dates.to_date(date_range.end)
    quarters = (
        (last.year * 4 + dates.quarter_of(last))
        - (first.year * 4 + dates.quarter_of(first))
        + 1
    )

    return RangeMetrics(
        total_days=total,
        weekdays=int((~weekend).sum()),
        weekends=int(weekend.sum()),
        weeks=-(-total // 7),
        months=dates.diff_months(date_range.end, date_range.start) + 1,
        quarters=quarters,
    )


# ── set operations ───────────────────────────────────────────────────────────

def is_date_in_range(d: DateLike, date_range: DateRange) -> bool:
    if date_range.is_empty:
        return False
    day = dates.to_date(d)
    return dates.to_date(date_range.start) <= day <= dates.to_date(date_range.end)


def ranges_overlap(a: DateRange, b: DateRange) -> bool:
    """Strict overlap: ranges that only touch at an instant do not overlap."""
    if a.is_empty or b.is_empty:
        return False
    return a.start < b.end and a.end > b.start


def _sorted_non_empty(ranges: Iterable[DateRange]) -> list[DateRange]:
    return sorted((r for r in ranges if not r.is_empty), key=lambda r: r.start)


def merge_ranges(ranges: Sequence[DateRange]) -> list[DateRange]:
    """
    Merge overlapping and day-adjacent ranges.

    A range starting no later than the day after the current merged range
    ends is folded into it.  Folded results are labelled "Merged Range";
    ranges that absorbed nothing keep their label.  Raises
    ``EmptyInputError`` on an empty sequence.
    """
    if not ranges:
        raise EmptyInputError("Cannot merge an empty list of ranges.")

    merged: list[DateRange] = []
    for current in _sorted_non_empty(ranges):
        if merged:
            last = merged[-1]
            if dates.to_date(current.start) <= dates.to_date(last.end) + _ONE_DAY:
                merged[-1] = DateRange(last.start, max(last.end, current.end), "Merged Range")
                continue
        merged.append(current)
    return merged


def find_range_gaps(ranges: Sequence[DateRange]) -> list[DateRange]:
    """Whole days missing between consecutive ranges, each labelled "Gap"."""
    gaps: list[DateRange] = []
    covered_until: Optional[datetime] = None

    for current in _sorted_non_empty(ranges):
        if covered_until is not None:
            gap_start = dates.to_date(covered_until) + _ONE_DAY
            if dates.to_date(current.start) > gap_start:
                gaps.append(make_range(gap_start, dates.to_date(current.start) - _ONE_DAY, "Gap"))
        if covered_until is None or current.end > covered_until:
            covered_until = current.end
    return gaps


# ── service wrapper ──────────────────────────────────────────────────────────

class AnalyticsRangeService:
    """Range engine bound to one immutable ``AnalyticsConfig``."""

    def __init__(self, config: Optional[AnalyticsConfig] = None) -> None:
        self._config = config if config is not None else DEFAULT_ANALYTICS_CONFIG

    def with_config(self, **changes) -> "AnalyticsRangeService":
        return AnalyticsRangeService(replace(self._config, **changes))

    def label(self, preset: RangePreset | str) -> str:
        return self._config.label_for(_as_preset(preset))

    def week_start(self, d: DateLike) -> datetime:
        return week_start(d, self._config.week_starts_on)

    def week_end(self, d: DateLike) -> datetime:
        return week_end(d, self._config.week_starts_on)

    def preset_range(self, preset: RangePreset | str, reference: Optional[DateLike] = None) -> DateRange:
        return preset_range(preset, reference, self._config)

    def preset_ranges(self, presets: Iterable[RangePreset | str],
                      reference: Optional[DateLike] = None) -> list[DateRange]:
        return preset_ranges(presets, reference, self._config)

    def custom_range(self, start: DateLike, end: DateLike, label: str = "Custom Range") -> DateRange:
        return custom_range(start, end, label)

    def relative_range(self, days: int, reference: Optional[DateLike] = None) -> DateRange:
        return relative_range(days, reference, self._config)

    def range_from_weeks(self, weeks: int, reference: Optional[DateLike] = None) -> DateRange:
        return range_from_weeks(weeks, reference, self._config)

    def range_from_months(self, months: int, reference: Optional[DateLike] = None) -> DateRange:
        return range_from_months(months, reference)

    def compare_previous_period(self, current: DateRange) -> ComparisonResult:
        return compare_previous_period(current)

    def compare_year_over_year(self, current: DateRange) -> ComparisonResult:
        return compare_year_over_year(current)

    def custom_comparison(self, current: DateRange, start: DateLike, end: DateLike) -> ComparisonResult:
        return custom_comparison(current, start, end)

    def split_into_buckets(self, date_range: DateRange, unit: Unit | str) -> list[DateBucket]:
        return split_into_buckets(date_range, unit, self._config.week_starts_on)

    def range_metrics(self, date_range: DateRange) -> RangeMetrics:
        return range_metrics(date_range)

    def is_date_in_range(self, d: DateLike, date_range: DateRange) -> bool:
        return is_date_in_range(d, date_range)

    def ranges_overlap(self, a: DateRange, b: DateRange) -> bool:
        return ranges_overlap(a, b)

    def merge_ranges(self, ranges: Sequence[DateRange]) -> list[DateRange]:
        return merge_ranges(ranges)

    def find_range_gaps(self, ranges: Sequence[DateRange]) -> list[DateRange]:
        return find_range_gaps(ranges)

    def available_presets(self) -> list[RangePreset]:
        return available_presets()

    def presets_by_category(self) -> dict[str, list[RangePreset]]:
        return presets_by_category()

    @property
    def config(self) -> AnalyticsConfig:
        return self._config

    def __repr__(self) -> str:
        return (
            f"AnalyticsRangeService(week_starts_on={self._config.week_starts_on}, "
            f"include_today={self._config.include_today})"
        )
