"""
Global Month Lookup

Indexes the full, unfiltered transactions frame by month. Every cross-month
question ("was member X active in month M") is answered here, never from a
display-filtered view.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

import polars as pl
import structlog

from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.cleaners import require_columns

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GlobalLookup:
    """Per-month orders and member sets of the whole dataset"""
    monthly_orders: Dict[str, pl.DataFrame] = field(default_factory=dict)
    monthly_members: Dict[str, FrozenSet[str]] = field(default_factory=dict)

    @property
    def months(self) -> List[str]:
        return sorted(self.monthly_orders)

    @property
    def last_month(self) -> Optional[str]:
        return max(self.monthly_orders) if self.monthly_orders else None

    def members_in(self, month: str) -> Optional[FrozenSet[str]]:
        """Members active in ``month``; None when the month has no data"""
        return self.monthly_members.get(month)

    def was_active(self, member_id: str, month: str) -> bool:
        return member_id in self.monthly_members.get(month, frozenset())

    def orders_in(self, month: str) -> Optional[pl.DataFrame]:
        return self.monthly_orders.get(month)

    def covers(self, month: str) -> bool:
        """Whether ``month`` lies within the dataset horizon"""
        last = self.last_month
        return last is not None and month <= last


def build_global_lookup(
    df: pl.DataFrame,
    config: Optional[AnalyticsSettings] = None,
) -> GlobalLookup:
    """
    Index the unfiltered transactions frame by month.

    Args:
        df: Full enriched transactions frame
        config: Analytics settings (guest sentinel)

    Returns:
        GlobalLookup over every month present
    """
    config = config or get_settings().analytics
    require_columns(df, ["month", "member_id", "visit_date"], "lookup")

    ordered = df.sort("visit_date", maintain_order=True)
    monthly_orders: Dict[str, pl.DataFrame] = {}
    monthly_members: Dict[str, FrozenSet[str]] = {}

    for month in ordered.get_column("month").unique().sort().to_list():
        orders = ordered.filter(pl.col("month") == month)
        monthly_orders[month] = orders
        members = orders.filter(pl.col("member_id") != config.guest_id)
        # Months served only to guests have no member set at all
        if not members.is_empty():
            monthly_members[month] = frozenset(members.get_column("member_id").to_list())

    logger.debug("Global lookup built", months=len(monthly_orders))
    return GlobalLookup(monthly_orders=monthly_orders, monthly_members=monthly_members)
