"""
bizcal.analytics
~~~~~~~~~~~~~~~~

Date ranges for reporting: named presets resolved against a reference day,
previous-period and year-over-year comparison windows, splitting into
day/week/month/quarter/year buckets, and merge / gap / overlap operations
over range sets.

Basic usage::

    from bizcal.analytics import AnalyticsRangeService, RangePreset

    svc = AnalyticsRangeService()                       # weeks start Monday
    week = svc.preset_range(RangePreset.THIS_WEEK, "2024-01-17")
    # → 2024-01-15 00:00 .. 2024-01-21 23:59:59.999999, label "This Week"

    svc.compare_previous_period(week).previous          # 2024-01-08 .. 01-14
    [b.label for b in svc.split_into_buckets(week, "day")][:2]
    # → ["Jan 15", "Jan 16"]

Public API
----------
AnalyticsRangeService   Service bound to one AnalyticsConfig.
AnalyticsConfig         Week start, include-today flag and custom labels.
RangePreset             Preset keys ("today", "last7Days", ...).
AnalyticsPresets        Preset groups for common dashboards.
DateRange               start / end / label; start > end is empty.
DateBucket, RangeMetrics, ComparisonResult
                        Frozen result records.
"""

from __future__ import annotations

from bizcal.analytics.ranges import (
    DEFAULT_ANALYTICS_CONFIG,
    DEFAULT_LABELS,
    DEFAULT_WEEK_STARTS_ON,
    AnalyticsConfig,
    AnalyticsPresets,
    AnalyticsRangeService,
    ComparisonResult,
    DateBucket,
    DateRange,
    RangeMetrics,
    RangePreset,
    available_presets,
    bucket_label,
    compare_previous_period,
    compare_year_over_year,
    custom_comparison,
    custom_range,
    find_range_gaps,
    is_date_in_range,
    make_range,
    merge_ranges,
    preset_range,
    preset_ranges,
    presets_by_category,
    range_from_months,
    range_from_weeks,
    range_metrics,
    ranges_overlap,
    relative_range,
    split_into_buckets,
    week_end,
    week_start,
)

__all__ = [
    "AnalyticsRangeService",
    "AnalyticsConfig",
    "DEFAULT_ANALYTICS_CONFIG",
    "DEFAULT_LABELS",
    "DEFAULT_WEEK_STARTS_ON",
    "AnalyticsPresets",
    "RangePreset",
    "DateRange",
    "DateBucket",
    "RangeMetrics",
    "ComparisonResult",
    "make_range",
    "week_start",
    "week_end",
    "preset_range",
    "preset_ranges",
    "custom_range",
    "relative_range",
    "range_from_weeks",
    "range_from_months",
    "available_presets",
    "presets_by_category",
    "compare_previous_period",
    "compare_year_over_year",
    "custom_comparison",
    "bucket_label",
    "split_into_buckets",
    "range_metrics",
    "is_date_in_range",
    "ranges_overlap",
    "merge_ranges",
    "find_range_gaps",
]
