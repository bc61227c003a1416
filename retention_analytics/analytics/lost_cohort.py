"""
Lost-Cohort Profiler

Selects a cohort of members who stopped visiting and profiles the style and
provider of each member's last visit.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

import polars as pl
import structlog

from retention_analytics.analytics.styles import classify_style
from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.exceptions import UnknownCohortError
from retention_analytics.transformation.enrichers import MemberProfile

logger = structlog.get_logger(__name__)


class CohortKind(str, Enum):
    """Lost cohort selections"""
    ONE_TIME = "onetime"  # true new customers who never came back
    CHURN = "churn"  # anyone without a visit inside the window


@dataclass
class LostCohortProfile:
    """Last-visit profile of a lost cohort"""
    kind: CohortKind
    member_count: int
    primary_styles: Dict[str, int]
    secondary_styles: Dict[str, int]
    providers_by_store: Dict[str, Dict[str, int]]

    def top_primary(self, n: int = 3) -> List[Tuple[str, int, float]]:
        return top_entries(self.primary_styles, self.member_count, n)

    def top_secondary(self, n: int = 3) -> List[Tuple[str, int, float]]:
        return top_entries(self.secondary_styles, self.member_count, n)

    def top_providers(self, n: int = 3) -> Dict[str, List[Tuple[str, int, float]]]:
        """Top providers of each store, share relative to the whole cohort"""
        return {
            store: top_entries(counts, self.member_count, n)
            for store, counts in sorted(self.providers_by_store.items())
        }


def top_entries(counts: Dict[str, int], total: int, n: int = 3) -> List[Tuple[str, int, float]]:
    """Largest ``n`` entries as ``(label, count, percent of total)``"""
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:n]
    return [(label, count, count / total * 100 if total else 0.0) for label, count in ranked]


def select_cohort(
    profiles: Dict[str, MemberProfile],
    kind: CohortKind,
    latest,
    window_days: int,
) -> List[str]:
    """Member ids of the requested cohort"""
    threshold = latest - timedelta(days=window_days)
    if kind == CohortKind.ONE_TIME:
        return [
            p.member_id for p in profiles.values()
            if p.first_visit < threshold and p.is_true_new_customer and p.total_unique_visits == 1
        ]
    return [p.member_id for p in profiles.values() if p.last_visit < threshold]


def profile_lost_cohort(
    df: pl.DataFrame,
    profiles: Dict[str, MemberProfile],
    kind,
    config: Optional[AnalyticsSettings] = None,
) -> Optional[LostCohortProfile]:
    """
    Profile the last visit of every member in a lost cohort.

    Args:
        df: Full enriched transactions frame
        profiles: Member profiles built from ``df``
        kind: CohortKind or its string value

    Returns:
        The cohort profile, or None when the cohort is empty
    """
    config = config or get_settings().analytics
    try:
        kind = CohortKind(kind)
    except ValueError as e:
        raise UnknownCohortError(str(kind)) from e

    if df.is_empty():
        return None

    latest = df.get_column("visit_date").max()
    members = select_cohort(profiles, kind, latest, config.lost_window_days)
    if not members:
        logger.info("Lost cohort empty", kind=kind.value)
        return None

    # First row among the latest-date rows, as in MemberProfile.last_store
    last_visits = (
        df.filter(pl.col("member_id").is_in(members))
        .sort("visit_date", maintain_order=True)
        .group_by("member_id")
        .agg([
            pl.col("style_text").filter(pl.col("visit_date") == pl.col("visit_date").max()).first(),
            pl.col("store").filter(pl.col("visit_date") == pl.col("visit_date").max()).first(),
            pl.col("provider").filter(pl.col("visit_date") == pl.col("visit_date").max()).first(),
        ])
    )

    primary: Counter = Counter()
    secondary: Counter = Counter()
    providers: Dict[str, Counter] = {}
    for row in last_visits.iter_rows(named=True):
        style = classify_style(row["style_text"])
        primary[style.primary] += 1
        secondary[style.secondary] += 1
        store = row["store"] or config.unlabelled
        provider = row["provider"] or config.unlabelled
        providers.setdefault(store, Counter())[provider] += 1

    logger.info("Lost cohort profiled", kind=kind.value, members=len(last_visits))
    return LostCohortProfile(
        kind=kind,
        member_count=len(last_visits),
        primary_styles=dict(primary),
        secondary_styles=dict(secondary),
        providers_by_store={store: dict(counts) for store, counts in providers.items()},
    )
