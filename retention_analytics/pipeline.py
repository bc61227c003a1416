"""
Retention Pipeline

Orchestrates normalization, enrichment, lookup building and every analytics
engine into a single report.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional

import polars as pl
import structlog

from retention_analytics.analytics.cohorts import (
    MonthlyCohortStats,
    average_retention,
    compute_monthly_stats,
)
from retention_analytics.analytics.lifecycle import MemberStatus, compute_member_statuses
from retention_analytics.analytics.lookup import GlobalLookup, build_global_lookup
from retention_analytics.analytics.lost_cohort import CohortKind, LostCohortProfile, profile_lost_cohort
from retention_analytics.analytics.providers import (
    ProviderBenchmarks,
    ProviderStats,
    compute_provider_stats,
    provider_benchmarks,
)
from retention_analytics.analytics.stores import StoreSummary, compute_store_summaries
from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.cleaners import RecordNormalizer
from retention_analytics.transformation.enrichers import (
    MemberImport,
    MemberProfile,
    NewCustomerEnricher,
    build_member_profiles,
)

logger = structlog.get_logger(__name__)


@dataclass
class PreparedDataset:
    """Enriched full dataset with its global indexes"""
    transactions: pl.DataFrame
    lookup: GlobalLookup
    profiles: Dict[str, MemberProfile]

    @property
    def latest_visit(self) -> Optional[date]:
        if self.transactions.is_empty():
            return None
        return self.transactions.get_column("visit_date").max()

    @property
    def available_years(self) -> List[str]:
        """Years present in the dataset, newest first"""
        return sorted(
            {month[:4] for month in self.transactions.get_column("month").unique().to_list()},
            reverse=True,
        )


@dataclass
class AnalyticsReport:
    """Every derived structure for one (dataset, import, filter) combination"""
    months: List[str]
    monthly_stats: Dict[str, MonthlyCohortStats]
    provider_stats: Dict[str, ProviderStats]
    benchmarks: ProviderBenchmarks
    member_profiles: Dict[str, MemberProfile]
    member_statuses: List[MemberStatus]
    lost_cohorts: Dict[CohortKind, Optional[LostCohortProfile]]
    store_summaries: Dict[str, StoreSummary]
    available_years: List[str]
    total_orders: int
    unique_members: int
    avg_retention: float
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    filters: Dict[str, Optional[str]] = field(default_factory=dict)


def filter_view(
    df: pl.DataFrame,
    year: Optional[str] = None,
    store: Optional[str] = None,
) -> pl.DataFrame:
    """Display filter: month prefix for the year, store equality"""
    if year and year != "all":
        df = df.filter(pl.col("month").str.starts_with(f"{year}-"))
    if store and store != "all":
        df = df.filter(pl.col("store") == store)
    return df


class RetentionPipeline:
    """
    Main retention analytics orchestrator.

    Cohort math always runs against the unfiltered dataset's lookup; the
    year/store filter only narrows which months and orders are reported.

    Example:
        pipeline = RetentionPipeline(member_import)
        report = pipeline.run(raw_df, year="2024")
    """

    def __init__(
        self,
        member_import: Optional[Mapping[str, MemberImport]] = None,
        config: Optional[AnalyticsSettings] = None,
    ):
        self.config = config or get_settings().analytics
        self.member_import = dict(member_import or {})
        self.normalizer = RecordNormalizer(self.config)
        self.enricher = NewCustomerEnricher(self.member_import, self.config)

    def prepare(self, df: pl.DataFrame) -> PreparedDataset:
        """
        Normalize (when given raw rows), enrich and index the full dataset.
        """
        if "visit_date" not in df.columns:
            df = self.normalizer.normalize(df)
        transactions = self.enricher.enrich(df)
        return PreparedDataset(
            transactions=transactions,
            lookup=build_global_lookup(transactions, self.config),
            profiles=build_member_profiles(transactions, self.config),
        )

    def report(
        self,
        dataset: PreparedDataset,
        year: Optional[str] = None,
        store: Optional[str] = None,
    ) -> AnalyticsReport:
        """Compute every engine for a prepared dataset and display filter"""
        started_at = datetime.utcnow()
        view = filter_view(dataset.transactions, year, store)

        logger.info(
            "Computing retention report",
            rows=len(dataset.transactions),
            view_rows=len(view),
            year=year,
            store=store,
        )

        monthly = compute_monthly_stats(view, dataset.lookup, self.config)
        providers = compute_provider_stats(view, dataset.lookup, self.config)
        lost_cohorts = {
            kind: profile_lost_cohort(dataset.transactions, dataset.profiles, kind, self.config)
            for kind in CohortKind
        }
        unique_members = view.filter(pl.col("member_id") != self.config.guest_id).get_column(
            "member_id"
        ).n_unique()

        completed_at = datetime.utcnow()
        return AnalyticsReport(
            months=list(monthly),
            monthly_stats=monthly,
            provider_stats=providers,
            benchmarks=provider_benchmarks(view, monthly, providers, self.config),
            member_profiles=dataset.profiles,
            member_statuses=compute_member_statuses(
                dataset.transactions, dataset.profiles, self.config
            ),
            lost_cohorts=lost_cohorts,
            store_summaries=compute_store_summaries(
                view, dataset.lookup, dataset.profiles, dataset.latest_visit, self.config
            ),
            available_years=dataset.available_years,
            total_orders=len(view),
            unique_members=unique_members,
            avg_retention=average_retention(monthly),
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            filters={"year": year, "store": store},
        )

    def run(
        self,
        df: pl.DataFrame,
        year: Optional[str] = None,
        store: Optional[str] = None,
    ) -> AnalyticsReport:
        """
        Full pipeline.

        Steps:
        1. Normalize raw rows
        2. Flag true new customers
        3. Build the global lookup and member profiles
        4. Apply the display filter and compute every engine
        """
        return self.report(self.prepare(df), year=year, store=store)
