"""
Member Enrichment Module

Enriches the transactions frame with member-level facts.
Includes:
- True new customer flagging against an external visit history import
- Member profiles over the full dataset
- Member visit history
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Mapping, Optional

import polars as pl
import structlog

from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.cleaners import require_columns

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MemberImport:
    """External member history entry"""
    historical_visit_count: int
    age_years: Optional[int] = None


@dataclass
class MemberProfile:
    """Member facts derived from the whole dataset"""
    member_id: str
    member_name: str
    total_unique_visits: int  # distinct visit dates
    order_count: int  # service-line rows
    first_store: str
    last_store: str
    first_visit: date
    last_visit: date
    is_true_new_customer: bool


class NewCustomerEnricher:
    """
    Flags each member's first visit when the transaction history is complete.

    A member's history counts as complete when the number of distinct visit
    dates in the transactions equals the imported historical visit count
    exactly. Only then are the rows of the earliest visit flagged.

    Example:
        enricher = NewCustomerEnricher({"0912": MemberImport(3)})
        enriched = enricher.enrich(transactions)
    """

    def __init__(
        self,
        member_import: Optional[Mapping[str, MemberImport]] = None,
        config: Optional[AnalyticsSettings] = None,
    ):
        self.config = config or get_settings().analytics
        self.member_import: Dict[str, MemberImport] = {
            str(k).strip(): v for k, v in (member_import or {}).items()
        }

    def corroborated_members(self, df: pl.DataFrame) -> set:
        """Members whose distinct visit count matches their imported count"""
        eligible = {
            member_id: entry.historical_visit_count
            for member_id, entry in self.member_import.items()
            if member_id and member_id != self.config.guest_id
            and entry.historical_visit_count and entry.historical_visit_count > 0
        }
        if not eligible:
            return set()

        visits = (
            df.filter(pl.col("member_id").is_in(list(eligible)))
            .group_by("member_id")
            .agg(pl.col("visit_date").n_unique().alias("visit_count"))
        )
        return {
            row["member_id"]
            for row in visits.iter_rows(named=True)
            if row["visit_count"] == eligible[row["member_id"]]
        }

    def enrich(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Return a copy of ``df`` with ``is_true_new_visit`` recomputed.

        The input frame is left untouched.
        """
        require_columns(df, ["member_id", "visit_date"], "enrich")
        corroborated = self.corroborated_members(df)

        is_first_visit = pl.col("visit_date") == pl.col("visit_date").min().over("member_id")
        is_corroborated = pl.col("member_id").is_in(sorted(corroborated)) if corroborated else pl.lit(False)
        enriched = df.with_columns(
            (is_corroborated & is_first_visit)
            .fill_null(False)
            .alias("is_true_new_visit")
        )

        logger.info(
            "New customers flagged",
            imported_members=len(self.member_import),
            corroborated_members=len(corroborated),
        )
        return enriched


def build_member_profiles(
    df: pl.DataFrame,
    config: Optional[AnalyticsSettings] = None,
) -> Dict[str, MemberProfile]:
    """
    Build member profiles over the full, unfiltered dataset.

    Args:
        df: Enriched transactions frame
        config: Analytics settings (sentinels)

    Returns:
        Profiles keyed by member id
    """
    config = config or get_settings().analytics
    members = df.filter(pl.col("member_id") != config.guest_id).sort(
        "visit_date", maintain_order=True
    )
    if members.is_empty():
        return {}

    summary = members.group_by("member_id").agg([
        pl.col("visit_date").n_unique().alias("total_unique_visits"),
        pl.len().alias("order_count"),
        pl.col("member_name").first().alias("member_name"),
        pl.col("store").first().alias("first_store"),
        pl.col("store").filter(pl.col("visit_date") == pl.col("visit_date").max()).first().alias("last_store"),
        pl.col("visit_date").min().alias("first_visit"),
        pl.col("visit_date").max().alias("last_visit"),
        pl.col("is_true_new_visit").any().alias("is_true_new_customer"),
    ])

    profiles = {}
    for row in summary.iter_rows(named=True):
        row["member_name"] = row["member_name"] or config.anonymous_name
        profiles[row["member_id"]] = MemberProfile(**row)
    return profiles


def member_history(df: pl.DataFrame, member_id: str) -> pl.DataFrame:
    """A member's transactions, most recent first"""
    return df.filter(pl.col("member_id") == member_id).sort(
        "visit_date", descending=True, maintain_order=True
    )


def enrich_transactions(
    df: pl.DataFrame,
    member_import: Optional[Mapping[str, MemberImport]] = None,
) -> pl.DataFrame:
    """
    Convenience function to flag true new customers.

    Args:
        df: Normalized transactions frame
        member_import: External member history keyed by member id

    Returns:
        Enriched transactions frame
    """
    return NewCustomerEnricher(member_import).enrich(df)
