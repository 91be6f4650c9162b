"""
bizcal.billing
~~~~~~~~~~~~~~

Subscription billing dates for weekly, monthly, quarterly and yearly cycles:
next and previous billing dates with month-end clamping, optional deferral
off weekends and holidays, cycle progress, proration, trial periods and
billing schedules.

Basic usage::

    from datetime import date
    from bizcal.billing import BillingConfig, BillingService, SubscriptionCycle

    billing = BillingService(BillingConfig(default_billing_day=31))
    billing.next_billing_date(date(2024, 1, 31), SubscriptionCycle.MONTHLY)
    # → date(2024, 2, 29)

    billing.proration(date(2024, 1, 15), date(2024, 1, 31), 100.0).prorated_amount
    # → 54.84

Public API
----------
BillingService          Service bound to one BillingConfig.
BillingConfig           Billing day, deferral policy, grace and trial defaults.
SubscriptionCycle       weekly / monthly / quarterly / yearly.
BillingCycleInfo, ProrationInfo, TrialPeriodInfo, BillingDate,
SubscriptionSchedule, SubscriptionInfo
                        Frozen result records.
"""

from __future__ import annotations

from bizcal.billing.billing import (
    DEFAULT_BILLING_CONFIG,
    BillingConfig,
    BillingCycleInfo,
    BillingDate,
    BillingService,
    ProrationInfo,
    SubscriptionCycle,
    SubscriptionInfo,
    SubscriptionSchedule,
    TrialPeriodInfo,
    adjust_billing_day,
    align_billing_day,
    annual_billing_dates,
    billing_cycle_info,
    billing_date_after_trial,
    days_between_billing_dates,
    days_until_billing,
    defer_non_business_day,
    generate_billing_schedule,
    is_billing_due,
    is_overdue,
    next_billing_date,
    previous_billing_date,
    prorated_amount,
    proration,
    renewal_date,
    subscription_info,
    trial_period_info,
)

__all__ = [
    "BillingService",
    "BillingConfig",
    "DEFAULT_BILLING_CONFIG",
    "SubscriptionCycle",
    "BillingCycleInfo",
    "ProrationInfo",
    "TrialPeriodInfo",
    "BillingDate",
    "SubscriptionSchedule",
    "SubscriptionInfo",
    "adjust_billing_day",
    "align_billing_day",
    "defer_non_business_day",
    "next_billing_date",
    "previous_billing_date",
    "days_until_billing",
    "billing_cycle_info",
    "subscription_info",
    "proration",
    "prorated_amount",
    "trial_period_info",
    "renewal_date",
    "billing_date_after_trial",
    "generate_billing_schedule",
    "is_billing_due",
    "is_overdue",
    "days_between_billing_dates",
    "annual_billing_dates",
]
