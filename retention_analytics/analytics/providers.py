"""
Provider KPI Engine

Per service provider performance:
- Pooled (volume-weighted) next-month retention across active months
- Cumulative retention trend
- Designation segmentation of returning members (same provider vs other)
- Two-month loss with the style mix of each segment
- Daily throughput and service duration

The latest month of the working set is treated as still in progress and
left out of every retention figure.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import polars as pl
import structlog

from retention_analytics.analytics.calendar import shift_month
from retention_analytics.analytics.cohorts import MonthlyCohortStats, average_retention
from retention_analytics.analytics.lookup import GlobalLookup
from retention_analytics.analytics.styles import StyleDistribution
from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.cleaners import require_columns

logger = structlog.get_logger(__name__)


@dataclass
class SegmentPercents:
    """
    Segment sizes in percent.

    Numerators count distinct members per month while the denominator counts
    member orders, so the three values need not sum to 100.
    """
    same_designation: float
    other_designation: float
    lost: float


@dataclass
class SegmentStyles:
    """Style texts of the current-month visits of each segment"""
    iron: List[str] = field(default_factory=list)  # returned and designated this provider
    easy: List[str] = field(default_factory=list)  # returned, designated someone else or no one
    lost: List[str] = field(default_factory=list)  # no return within two months


@dataclass
class ProviderStats:
    """KPIs of one service provider"""
    name: str
    store: str
    total_served_members: int  # member orders
    unique_members: int
    total_orders: int
    pooled_retention: float
    retention_change_sum: float
    avg_duration_minutes: int
    total_designation_rate: float
    avg_daily_throughput: float
    segment_percents: SegmentPercents
    segment_styles: SegmentStyles
    months: List[str] = field(default_factory=list)

    def style_profiles(self) -> Dict[str, StyleDistribution]:
        """Style distribution of each segment"""
        return {
            "iron": StyleDistribution.from_styles(self.segment_styles.iron),
            "easy": StyleDistribution.from_styles(self.segment_styles.easy),
            "lost": StyleDistribution.from_styles(self.segment_styles.lost),
        }


@dataclass
class ProviderMonthTrend:
    """One month of a provider's retention trend"""
    month: str
    retention_rate: float
    designated_return_rate: float
    lost_rate: Optional[float]  # None when M+2 is beyond the dataset
    designated_orders: int  # guests included


@dataclass
class ProductivityRow:
    """Orders per working day in one month"""
    month: str
    days: int
    orders: int
    orders_per_day: float


@dataclass
class ProviderBenchmarks:
    """Brand-wide reference values for provider comparison"""
    retention: float
    daily_throughput: float
    duration_minutes: int
    designation_rate: float


class _ForwardDesignations:
    """Member -> designated providers of a month, built once per month"""

    def __init__(self, lookup: GlobalLookup, guest_id: str):
        self.lookup = lookup
        self.guest_id = guest_id
        self._cache: Dict[str, Dict[str, Set[str]]] = {}

    def __call__(self, month: str) -> Dict[str, Set[str]]:
        if month not in self._cache:
            index: Dict[str, Set[str]] = {}
            orders = self.lookup.orders_in(month)
            if orders is not None:
                rows = orders.filter(pl.col("member_id") != self.guest_id).select(
                    ["member_id", "designated_provider"]
                )
                for member_id, designated in rows.iter_rows():
                    index.setdefault(member_id, set()).add(designated)
            self._cache[month] = index
        return self._cache[month]


def _styles_by_member(member_orders: pl.DataFrame) -> Dict[str, List[str]]:
    styles: Dict[str, List[str]] = {}
    for member_id, style_text in member_orders.select(["member_id", "style_text"]).iter_rows():
        styles.setdefault(member_id, []).append(style_text)
    return styles


def _provider_stats(
    name: str,
    orders: pl.DataFrame,
    latest_month: str,
    lookup: GlobalLookup,
    designations: _ForwardDesignations,
    config: AnalyticsSettings,
) -> ProviderStats:
    guest_id = config.guest_id
    member_rows = orders.filter(pl.col("member_id") != guest_id)

    durations = orders.filter(
        (pl.col("duration_minutes") > 0)
        & (pl.col("duration_minutes") < config.max_duration_minutes)
    ).get_column("duration_minutes")
    designated = orders.filter(pl.col("designated_provider") != "").height

    denominator = numerator = visit_base = 0
    same = other = lost = 0
    change_sum = 0.0
    prev_rate: Optional[float] = None
    styles = SegmentStyles()
    throughput_sum = 0.0
    throughput_months = 0

    months = orders.get_column("month").unique().sort().to_list()
    for month in months:
        month_orders = orders.filter(pl.col("month") == month)
        days = month_orders.get_column("visit_date").n_unique()
        if days:
            throughput_sum += len(month_orders) / days
            throughput_months += 1

        if month == latest_month:
            continue

        member_orders = month_orders.filter(pl.col("member_id") != guest_id)
        members = list(dict.fromkeys(member_orders.get_column("member_id").to_list()))
        if not members:
            continue

        denominator += len(members)
        visit_base += len(member_orders)

        month_1 = shift_month(month, 1)
        returned_1 = lookup.members_in(month_1) or frozenset()
        returned_2 = lookup.members_in(shift_month(month, 2)) or frozenset()
        next_designations = designations(month_1)
        current_styles = _styles_by_member(member_orders)

        returned = 0
        for member_id in members:
            member_styles = current_styles[member_id]
            if member_id in returned_1:
                returned += 1
                if name in next_designations.get(member_id, ()):
                    same += 1
                    styles.iron.extend(member_styles)
                else:
                    other += 1
                    styles.easy.extend(member_styles)
            elif member_id not in returned_2:
                lost += 1
                styles.lost.extend(member_styles)

        numerator += returned
        rate = returned / len(members) * 100
        if prev_rate is not None:
            change_sum += rate - prev_rate
        prev_rate = rate

    base = visit_base or 1
    return ProviderStats(
        name=name,
        store=orders.get_column("store")[-1],
        total_served_members=len(member_rows),
        unique_members=member_rows.get_column("member_id").n_unique(),
        total_orders=len(orders),
        pooled_retention=numerator / denominator * 100 if denominator else 0.0,
        retention_change_sum=change_sum,
        avg_duration_minutes=round(durations.mean()) if len(durations) else 0,
        total_designation_rate=designated / len(orders) * 100 if len(orders) else 0.0,
        avg_daily_throughput=throughput_sum / throughput_months if throughput_months else 0.0,
        segment_percents=SegmentPercents(
            same_designation=same / base * 100,
            other_designation=other / base * 100,
            lost=lost / base * 100,
        ),
        segment_styles=styles,
        months=months,
    )


def compute_provider_stats(
    df: pl.DataFrame,
    lookup: GlobalLookup,
    config: Optional[AnalyticsSettings] = None,
) -> Dict[str, ProviderStats]:
    """
    Compute KPIs for every provider in ``df``.

    Args:
        df: Working (possibly filtered) enriched transactions frame
        lookup: Lookup built from the unfiltered dataset

    Returns:
        ProviderStats keyed by provider name
    """
    config = config or get_settings().analytics
    require_columns(
        df,
        ["provider", "designated_provider", "member_id", "month", "visit_date",
         "duration_minutes", "style_text", "store"],
        "providers",
    )
    if df.is_empty():
        return {}

    ordered = df.sort("visit_date", maintain_order=True)
    latest_month = ordered.get_column("month").max()
    designations = _ForwardDesignations(lookup, config.guest_id)

    stats: Dict[str, ProviderStats] = {}
    for name in ordered.get_column("provider").unique(maintain_order=True).to_list():
        stats[name] = _provider_stats(
            name,
            ordered.filter(pl.col("provider") == name),
            latest_month,
            lookup,
            designations,
            config,
        )

    logger.info("Provider KPIs computed", providers=len(stats), latest_month=latest_month)
    return stats


def provider_monthly_trend(
    df: pl.DataFrame,
    provider: str,
    lookup: GlobalLookup,
    config: Optional[AnalyticsSettings] = None,
) -> List[ProviderMonthTrend]:
    """
    Month-by-month retention, designated return and loss for one provider.

    Args:
        df: Working enriched transactions frame (all providers)
        provider: Provider name
        lookup: Lookup built from the unfiltered dataset
    """
    config = config or get_settings().analytics
    if df.is_empty():
        return []

    latest_month = df.get_column("month").max()
    orders = df.filter(pl.col("provider") == provider)
    designations = _ForwardDesignations(lookup, config.guest_id)

    trend = []
    for month in orders.get_column("month").unique().sort().to_list():
        if month == latest_month:
            continue
        month_orders = orders.filter(pl.col("month") == month)
        members = set(
            month_orders.filter(pl.col("member_id") != config.guest_id)
            .get_column("member_id").to_list()
        )
        month_1 = shift_month(month, 1)
        month_2 = shift_month(month, 2)
        returned_1 = lookup.members_in(month_1) or frozenset()
        returned_2 = lookup.members_in(month_2) or frozenset()
        next_designations = designations(month_1)

        retained = members & returned_1
        designated_returns = sum(
            1 for member_id in retained if provider in next_designations.get(member_id, ())
        )
        lost = members - returned_1 - returned_2
        size = len(members)

        lost_rate = None
        if lookup.covers(month_2):
            lost_rate = len(lost) / size * 100 if size else 0.0

        trend.append(ProviderMonthTrend(
            month=month,
            retention_rate=len(retained) / size * 100 if size else 0.0,
            designated_return_rate=designated_returns / size * 100 if size else 0.0,
            lost_rate=lost_rate,
            designated_orders=month_orders.filter(pl.col("designated_provider") != "").height,
        ))
    return trend


def provider_productivity(df: pl.DataFrame, provider: str) -> List[ProductivityRow]:
    """Orders per working day for each month, most recent first"""
    orders = df.filter(pl.col("provider") == provider)
    if orders.is_empty():
        return []

    monthly = (
        orders.group_by("month")
        .agg([
            pl.col("visit_date").n_unique().alias("days"),
            pl.len().alias("orders"),
        ])
        .sort("month", descending=True)
    )
    return [
        ProductivityRow(
            month=row["month"],
            days=row["days"],
            orders=row["orders"],
            orders_per_day=row["orders"] / row["days"],
        )
        for row in monthly.iter_rows(named=True)
    ]


def provider_benchmarks(
    df: pl.DataFrame,
    monthly_stats: Dict[str, MonthlyCohortStats],
    provider_stats: Dict[str, ProviderStats],
    config: Optional[AnalyticsSettings] = None,
) -> ProviderBenchmarks:
    """
    Brand averages used as the comparison baseline for each provider.

    Args:
        df: Working enriched transactions frame
        monthly_stats: Output of compute_monthly_stats on ``df``
        provider_stats: Output of compute_provider_stats on ``df``
    """
    config = config or get_settings().analytics

    throughputs = [s.avg_daily_throughput for s in provider_stats.values() if s.avg_daily_throughput > 0]
    durations = df.filter(
        (pl.col("duration_minutes") > 0)
        & (pl.col("duration_minutes") < config.max_duration_minutes)
    ).get_column("duration_minutes")
    designated = df.filter(pl.col("designated_provider") != "").height

    return ProviderBenchmarks(
        retention=average_retention(monthly_stats),
        daily_throughput=(
            sum(throughputs) / len(throughputs) if throughputs else config.default_daily_throughput
        ),
        duration_minutes=round(durations.mean()) if len(durations) else config.default_duration_minutes,
        designation_rate=designated / len(df) * 100 if len(df) else 0.0,
    )
