"""
Member Lifecycle Classification

Buckets every member by the days between their last visit and the latest
visit in the dataset.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional

import polars as pl

from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.transformation.enrichers import MemberImport, MemberProfile, build_member_profiles


class LifecycleStatus(str, Enum):
    """Member lifecycle states"""
    ACTIVE = "active"
    DORMANT = "dormant"
    AT_RISK = "at_risk"
    LOST = "lost"


AGE_BANDS = ["<18", "18-24", "25-34", "35-44", "45-54", "55+"]


@dataclass
class MemberStatus:
    """Lifecycle view of one member"""
    member_id: str
    member_name: str
    visit_count: int  # order rows
    last_visit: date
    last_store: str
    days_since_last_visit: int
    status: LifecycleStatus


def classify_lifecycle(days: int, config: Optional[AnalyticsSettings] = None) -> LifecycleStatus:
    """Map days since last visit to a lifecycle state (lower bound inclusive)"""
    config = config or get_settings().analytics
    if days < config.active_days:
        return LifecycleStatus.ACTIVE
    if days < config.dormant_days:
        return LifecycleStatus.DORMANT
    if days < config.at_risk_days:
        return LifecycleStatus.AT_RISK
    return LifecycleStatus.LOST


def compute_member_statuses(
    df: pl.DataFrame,
    profiles: Optional[Dict[str, MemberProfile]] = None,
    config: Optional[AnalyticsSettings] = None,
) -> List[MemberStatus]:
    """
    Classify every non-guest member of ``df``.

    Args:
        df: Full enriched transactions frame
        profiles: Precomputed member profiles of ``df``

    Returns:
        Member statuses, most recent visit first
    """
    config = config or get_settings().analytics
    if df.is_empty():
        return []
    if profiles is None:
        profiles = build_member_profiles(df, config)

    latest: date = df.get_column("visit_date").max()
    statuses = []
    for profile in profiles.values():
        days = (latest - profile.last_visit).days
        statuses.append(MemberStatus(
            member_id=profile.member_id,
            member_name=profile.member_name,
            visit_count=profile.order_count,
            last_visit=profile.last_visit,
            last_store=profile.last_store,
            days_since_last_visit=days,
            status=classify_lifecycle(days, config),
        ))
    statuses.sort(key=lambda s: (s.last_visit, s.member_id), reverse=True)
    return statuses


def lifecycle_counts(statuses: List[MemberStatus]) -> Dict[LifecycleStatus, int]:
    """Number of members in each lifecycle state"""
    counts = {status: 0 for status in LifecycleStatus}
    for member in statuses:
        counts[member.status] += 1
    return counts


def age_band(age: int) -> str:
    if age < 18:
        return "<18"
    if age <= 24:
        return "18-24"
    if age <= 34:
        return "25-34"
    if age <= 44:
        return "35-44"
    if age <= 54:
        return "45-54"
    return "55+"


def age_distribution(
    statuses: List[MemberStatus],
    member_import: Mapping[str, MemberImport],
) -> Dict[str, Dict[str, int]]:
    """
    Age band counts per last store for members with a known age.

    Returns:
        ``{store: {band: count}}`` with every band present, stores sorted
    """
    buckets: Dict[str, Dict[str, int]] = {}
    for member in statuses:
        entry = member_import.get(member.member_id)
        if entry is None or not entry.age_years:
            continue
        store_bucket = buckets.setdefault(member.last_store, {band: 0 for band in AGE_BANDS})
        store_bucket[age_band(entry.age_years)] += 1
    return dict(sorted(buckets.items()))
