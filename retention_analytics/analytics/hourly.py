"""
Hourly Traffic Profile

Average entries and completions per opening hour for a store or provider,
with service time KPIs.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional

import polars as pl

from retention_analytics.config import AnalyticsSettings, get_settings


class DayScope(str, Enum):
    """Day-of-week restriction"""
    ALL = "all"
    WEEKDAY = "weekday"
    WEEKEND = "weekend"


@dataclass
class HourlyProfile:
    """Traffic averaged per distinct working day"""
    hours: List[int]
    entries_per_day: List[float]
    completions_per_day: List[float]
    days: int
    avg_duration_minutes: float
    avg_last_service_minutes: float
    orders_per_day: float
    filters: dict = field(default_factory=dict)


def _filter_orders(
    df: pl.DataFrame,
    store: Optional[str],
    provider: Optional[str],
    since: Optional[date],
    scope: DayScope,
) -> pl.DataFrame:
    if store:
        df = df.filter(pl.col("store") == store)
    if provider:
        df = df.filter(pl.col("provider") == provider)
    if since:
        df = df.filter(pl.col("visit_date") >= since)
    if scope != DayScope.ALL:
        # ISO weekday: Monday=1 .. Sunday=7
        weekday = pl.col("entry_time").dt.weekday()
        df = df.filter(pl.col("entry_time").is_not_null())
        if scope == DayScope.WEEKDAY:
            df = df.filter(weekday <= 5)
        else:
            df = df.filter(weekday >= 6)
    return df


def _per_hour(df: pl.DataFrame, column: str, hours: List[int], days: int) -> List[float]:
    counts = dict(
        df.filter(pl.col(column).is_not_null())
        .group_by(pl.col(column).dt.hour().alias("hour"))
        .agg(pl.len().alias("count"))
        .iter_rows()
    )
    return [round(counts.get(hour, 0) / days, 1) for hour in hours]


def hourly_profile(
    df: pl.DataFrame,
    store: Optional[str] = None,
    provider: Optional[str] = None,
    since: Optional[date] = None,
    scope: DayScope = DayScope.ALL,
    config: Optional[AnalyticsSettings] = None,
) -> HourlyProfile:
    """
    Build the hourly traffic profile.

    Args:
        df: Enriched transactions frame
        store: Restrict to one store
        provider: Restrict to one provider
        since: Only visits on or after this date
        scope: Weekday/weekend restriction (by entry time)
    """
    config = config or get_settings().analytics
    scope = DayScope(scope)
    orders = _filter_orders(df, store, provider, since, scope)
    hours = list(range(config.opening_hour, config.closing_hour + 1))
    days = orders.get_column("visit_date").n_unique() or 1

    durations = orders.filter(
        (pl.col("duration_minutes") > 0)
        & (pl.col("duration_minutes") < config.max_hourly_duration_minutes)
    ).get_column("duration_minutes")

    # Duration of the latest completed service of each day
    last_services = (
        orders.filter(pl.col("completion_time").is_not_null() & (pl.col("duration_minutes") > 0))
        .sort("completion_time", descending=True, maintain_order=True)
        .group_by("visit_date")
        .agg(pl.col("duration_minutes").first())
        .get_column("duration_minutes")
    )

    return HourlyProfile(
        hours=hours,
        entries_per_day=_per_hour(orders, "entry_time", hours, days),
        completions_per_day=_per_hour(orders, "completion_time", hours, days),
        days=days,
        avg_duration_minutes=round(durations.mean(), 1) if len(durations) else 0.0,
        avg_last_service_minutes=round(last_services.mean(), 1) if len(last_services) else 0.0,
        orders_per_day=round(len(orders) / days, 1),
        filters={
            "store": store,
            "provider": provider,
            "since": since.isoformat() if since else None,
            "scope": scope.value,
        },
    )
