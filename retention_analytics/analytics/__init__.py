"""
Retention & Cohort Analytics Module
"""
from .calendar import next_month, shift_month
from .cohorts import MonthlyCohortStats, average_retention, compute_monthly_stats, retention_trend_sum
from .hourly import DayScope, HourlyProfile, hourly_profile
from .lifecycle import LifecycleStatus, MemberStatus, classify_lifecycle, compute_member_statuses
from .lookup import GlobalLookup, build_global_lookup
from .lost_cohort import CohortKind, LostCohortProfile, profile_lost_cohort
from .providers import ProviderStats, compute_provider_stats
from .stores import StoreSummary, compute_store_summaries
from .styles import StyleClass, StyleDistribution, classify_style, style_breakdown

__all__ = [
    "next_month",
    "shift_month",
    "MonthlyCohortStats",
    "average_retention",
    "compute_monthly_stats",
    "retention_trend_sum",
    "DayScope",
    "HourlyProfile",
    "hourly_profile",
    "LifecycleStatus",
    "MemberStatus",
    "classify_lifecycle",
    "compute_member_statuses",
    "GlobalLookup",
    "build_global_lookup",
    "CohortKind",
    "LostCohortProfile",
    "profile_lost_cohort",
    "ProviderStats",
    "compute_provider_stats",
    "StoreSummary",
    "compute_store_summaries",
    "StyleClass",
    "StyleDistribution",
    "classify_style",
    "style_breakdown",
]
