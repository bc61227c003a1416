"""
Store Summaries

Per-store and brand-wide retention overview built on the cohort engine and
the member profiles.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

import polars as pl

from retention_analytics.analytics.cohorts import (
    average_retention,
    compute_monthly_stats,
    retention_trend_sum,
)
from retention_analytics.analytics.lookup import GlobalLookup
from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.enrichers import MemberProfile

BRAND_WIDE = "ALL"


@dataclass
class StoreSummary:
    """Retention overview of one store, or the whole brand"""
    store: str
    total_orders: int
    member_rate: float  # member orders / all orders
    avg_retention: float
    retention_trend: float
    one_time_rate: float
    one_time_defined: bool  # False when no mature true new customer exists
    avg_lost_visits: float

    @property
    def is_brand_wide(self) -> bool:
        return self.store == BRAND_WIDE


def _summarize(
    store: str,
    orders: pl.DataFrame,
    lookup: GlobalLookup,
    profiles: List[MemberProfile],
    threshold: date,
    config: AnalyticsSettings,
) -> StoreSummary:
    brand_wide = store == BRAND_WIDE
    monthly = compute_monthly_stats(orders, lookup, config)
    member_orders = orders.filter(pl.col("member_id") != config.guest_id).height

    one_time_base = one_time = 0
    lost_count = lost_visits = 0
    for profile in profiles:
        if (brand_wide or profile.first_store == store) and profile.is_true_new_customer \
                and profile.first_visit < threshold:
            one_time_base += 1
            if profile.total_unique_visits == 1:
                one_time += 1
        if (brand_wide or profile.last_store == store) and profile.last_visit < threshold:
            lost_count += 1
            lost_visits += profile.total_unique_visits

    return StoreSummary(
        store=store,
        total_orders=len(orders),
        member_rate=member_orders / len(orders) * 100 if len(orders) else 0.0,
        avg_retention=average_retention(monthly),
        retention_trend=retention_trend_sum(monthly),
        one_time_rate=one_time / one_time_base * 100 if one_time_base else 0.0,
        one_time_defined=one_time_base > 0,
        avg_lost_visits=lost_visits / lost_count if lost_count else 0.0,
    )


def compute_store_summaries(
    df: pl.DataFrame,
    lookup: GlobalLookup,
    profiles: Dict[str, MemberProfile],
    latest: Optional[date] = None,
    config: Optional[AnalyticsSettings] = None,
) -> Dict[str, StoreSummary]:
    """
    Summaries for every store of ``df`` plus a brand-wide row.

    Args:
        df: Working enriched transactions frame
        lookup: Lookup built from the unfiltered dataset
        profiles: Member profiles of the unfiltered dataset
        latest: Latest visit date of the unfiltered dataset

    Returns:
        Summaries keyed by store, brand-wide row under ``BRAND_WIDE``
    """
    config = config or get_settings().analytics
    if df.is_empty():
        return {}

    latest = latest or df.get_column("visit_date").max()
    threshold = latest - timedelta(days=config.lost_window_days)
    members = list(profiles.values())

    summaries = {BRAND_WIDE: _summarize(BRAND_WIDE, df, lookup, members, threshold, config)}
    for store in sorted(df.get_column("store").unique().to_list()):
        summaries[store] = _summarize(
            store, df.filter(pl.col("store") == store), lookup, members, threshold, config
        )
    return summaries
