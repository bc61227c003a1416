"""
Monthly Cohort Engine

Per-month totals, new/returning split, next-month retention and the
two-month grace metrics (one-time customers and churn). Forward references
always go through the global lookup so a filtered view never reports a
false 0% for months it cannot see.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import polars as pl
import structlog

from retention_analytics.analytics.calendar import shift_month
from retention_analytics.analytics.lookup import GlobalLookup
from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.cleaners import require_columns

logger = structlog.get_logger(__name__)


@dataclass
class MonthlyCohortStats:
    """Cohort statistics for one month"""
    month: str
    total_orders: int
    unique_members: int
    new_count: int
    old_count: int
    new_rate: float
    retention_rate: Optional[float]  # None when M+1 has no member data
    one_time_count: Optional[int]  # None when M+2 is beyond the dataset
    churn_rate: Optional[float]  # None when M+2 is beyond the dataset


def _month_stats(
    month: str,
    orders: pl.DataFrame,
    lookup: GlobalLookup,
    guest_id: str,
) -> MonthlyCohortStats:
    member_orders = orders.filter(pl.col("member_id") != guest_id)
    members = set(member_orders.get_column("member_id").to_list())
    new_members = set(
        member_orders.filter(pl.col("is_true_new_visit")).get_column("member_id").to_list()
    )

    month_1 = shift_month(month, 1)
    month_2 = shift_month(month, 2)
    members_1 = lookup.members_in(month_1)
    members_2 = lookup.members_in(month_2) or frozenset()

    retention_rate = None
    if members_1 is not None and members:
        retention_rate = len(members & members_1) / len(members) * 100
    members_1 = members_1 or frozenset()

    one_time_count = None
    churn_rate = None
    if lookup.covers(month_2):
        visits_in_month = dict(
            member_orders.group_by("member_id")
            .agg(pl.col("visit_date").n_unique().alias("visits"))
            .iter_rows()
        )
        one_time_count = sum(
            1 for member_id in new_members
            if member_id not in members_1
            and member_id not in members_2
            and visits_in_month.get(member_id, 0) <= 1
        )
        if members:
            churned = members - members_1 - members_2
            churn_rate = len(churned) / len(members) * 100

    new_count = len(new_members)
    return MonthlyCohortStats(
        month=month,
        total_orders=len(orders),
        unique_members=len(members),
        new_count=new_count,
        old_count=len(members) - new_count,
        new_rate=new_count / len(members) * 100 if members else 0.0,
        retention_rate=retention_rate,
        one_time_count=one_time_count,
        churn_rate=churn_rate,
    )


def compute_monthly_stats(
    df: pl.DataFrame,
    lookup: GlobalLookup,
    config: Optional[AnalyticsSettings] = None,
) -> Dict[str, MonthlyCohortStats]:
    """
    Compute cohort statistics for every month of ``df``.

    Args:
        df: Working (possibly filtered) enriched transactions frame
        lookup: Lookup built from the unfiltered dataset

    Returns:
        Stats keyed by month, in ascending month order
    """
    config = config or get_settings().analytics
    require_columns(df, ["month", "member_id", "visit_date", "is_true_new_visit"], "cohorts")

    stats: Dict[str, MonthlyCohortStats] = {}
    for month in df.get_column("month").unique().sort().to_list():
        stats[month] = _month_stats(
            month, df.filter(pl.col("month") == month), lookup, config.guest_id
        )

    logger.info(
        "Monthly cohorts computed",
        months=len(stats),
        horizon=lookup.last_month,
    )
    return stats


def average_retention(stats: Dict[str, MonthlyCohortStats]) -> float:
    """Unweighted mean of the monthly retention rates that are defined"""
    rates = [s.retention_rate for s in stats.values() if s.retention_rate is not None]
    return sum(rates) / len(rates) if rates else 0.0


def retention_trend_sum(stats: Dict[str, MonthlyCohortStats]) -> float:
    """
    Cumulative month-over-month retention change.

    The final month is left out as still in progress.
    """
    months: List[str] = sorted(stats)
    total = 0.0
    for i in range(1, len(months) - 1):
        prev = stats[months[i - 1]].retention_rate
        curr = stats[months[i]].retention_rate
        if prev is not None and curr is not None:
            total += curr - prev
    return total
