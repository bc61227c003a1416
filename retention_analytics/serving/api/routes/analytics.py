"""
Analytics API Endpoints

Read-only retention, provider, member and style analytics over the
currently loaded dataset.
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict

from retention_analytics.analytics.hourly import DayScope, hourly_profile
from retention_analytics.analytics.lifecycle import LifecycleStatus, age_distribution, lifecycle_counts
from retention_analytics.analytics.lost_cohort import CohortKind
from retention_analytics.analytics.providers import provider_monthly_trend, provider_productivity
from retention_analytics.analytics.styles import style_breakdown
from retention_analytics.pipeline import AnalyticsReport, PreparedDataset, filter_view
from retention_analytics.serving.api.store import DatasetStore
from retention_analytics.transformation.enrichers import member_history

router = APIRouter()


class MonthlyStats(BaseModel):
    """Cohort statistics of one month"""
    model_config = ConfigDict(from_attributes=True)

    month: str
    total_orders: int
    unique_members: int
    new_count: int
    old_count: int
    new_rate: float
    retention_rate: Optional[float]
    one_time_count: Optional[int]
    churn_rate: Optional[float]


class Benchmarks(BaseModel):
    """Brand reference values"""
    model_config = ConfigDict(from_attributes=True)

    retention: float
    daily_throughput: float
    duration_minutes: int
    designation_rate: float


class Summary(BaseModel):
    """Dashboard headline numbers"""
    total_orders: int
    unique_members: int
    avg_retention: float
    months: List[str]
    available_years: List[str]
    benchmarks: Benchmarks


class SegmentPercents(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    same_designation: float
    other_designation: float
    lost: float


class ProviderSummary(BaseModel):
    """Provider KPIs"""
    model_config = ConfigDict(from_attributes=True)

    name: str
    store: str
    total_served_members: int
    unique_members: int
    total_orders: int
    pooled_retention: float
    retention_change_sum: float
    avg_duration_minutes: int
    total_designation_rate: float
    avg_daily_throughput: float
    segment_percents: SegmentPercents
    months: List[str]


class StyleProfile(BaseModel):
    """Per-axis style counts with the leading category of each"""
    total: int
    primary: Dict[str, int]
    secondary: Dict[str, int]
    leading_primary: Tuple[str, float]
    leading_secondary: Tuple[str, float]


class MonthTrend(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    retention_rate: float
    designated_return_rate: float
    lost_rate: Optional[float]
    designated_orders: int


class Productivity(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    days: int
    orders: int
    orders_per_day: float


class ProviderDetail(BaseModel):
    """Provider KPIs with trend, productivity and segment styles"""
    stats: ProviderSummary
    trend: List[MonthTrend]
    productivity: List[Productivity]
    segment_styles: Dict[str, StyleProfile]


class MemberStatusItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: str
    member_name: str
    visit_count: int
    last_visit: date
    last_store: str
    days_since_last_visit: int
    status: LifecycleStatus


class MemberList(BaseModel):
    """Member lifecycle listing"""
    counts: Dict[LifecycleStatus, int]
    total: int
    members: List[MemberStatusItem]
    age_distribution: Dict[str, Dict[str, int]]


class VisitItem(BaseModel):
    visit_date: date
    store: str
    provider: str
    style_text: str
    price: float


class RankedEntry(BaseModel):
    label: str
    count: int
    percent: float


class LostCohort(BaseModel):
    """Last-visit profile of a lost cohort; ``has_data`` is False when empty"""
    kind: CohortKind
    has_data: bool
    member_count: int = 0
    top_primary: List[RankedEntry] = []
    top_secondary: List[RankedEntry] = []
    top_providers: Dict[str, List[RankedEntry]] = {}


class StoreRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    store: str
    total_orders: int
    member_rate: float
    avg_retention: float
    retention_trend: float
    one_time_rate: float
    one_time_defined: bool
    avg_lost_visits: float


class StyleTrend(BaseModel):
    distribution: StyleProfile
    monthly_primary: Dict[str, Dict[str, int]]
    monthly_totals: Dict[str, int]


class Hourly(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hours: List[int]
    entries_per_day: List[float]
    completions_per_day: List[float]
    days: int
    avg_duration_minutes: float
    avg_last_service_minutes: float
    orders_per_day: float
    filters: dict


def get_store(request: Request) -> DatasetStore:
    return request.app.state.datasets


def get_dataset(store: DatasetStore = Depends(get_store)) -> PreparedDataset:
    dataset = store.prepared()
    if dataset is None:
        raise HTTPException(status_code=404, detail="No transaction report loaded")
    return dataset


def get_report(
    year: Optional[str] = Query(None, description="Year filter, e.g. 2024"),
    store_name: Optional[str] = Query(None, alias="store", description="Store filter"),
    store: DatasetStore = Depends(get_store),
) -> AnalyticsReport:
    report = store.report(year=year, store=store_name)
    if report is None:
        raise HTTPException(status_code=404, detail="No transaction report loaded")
    return report


def _style_profile(distribution) -> StyleProfile:
    return StyleProfile(
        total=distribution.total,
        primary=distribution.primary,
        secondary=distribution.secondary,
        leading_primary=distribution.leading_primary,
        leading_secondary=distribution.leading_secondary,
    )


def _ranked(entries) -> List[RankedEntry]:
    return [RankedEntry(label=label, count=count, percent=pct) for label, count, pct in entries]


@router.get("/summary", response_model=Summary)
async def get_summary(report: AnalyticsReport = Depends(get_report)) -> Summary:
    """Headline totals and brand benchmarks"""
    return Summary(
        total_orders=report.total_orders,
        unique_members=report.unique_members,
        avg_retention=report.avg_retention,
        months=report.months,
        available_years=report.available_years,
        benchmarks=Benchmarks.model_validate(report.benchmarks),
    )


@router.get("/monthly", response_model=List[MonthlyStats])
async def get_monthly(report: AnalyticsReport = Depends(get_report)) -> List[MonthlyStats]:
    """Cohort statistics per month, oldest first"""
    return [MonthlyStats.model_validate(s) for s in report.monthly_stats.values()]


@router.get("/providers", response_model=List[ProviderSummary])
async def get_providers(
    provider_store: Optional[str] = Query(None, description="Only providers of this store"),
    report: AnalyticsReport = Depends(get_report),
) -> List[ProviderSummary]:
    """Provider KPIs sorted by store then name"""
    stats = sorted(report.provider_stats.values(), key=lambda s: (s.store, s.name))
    if provider_store:
        stats = [s for s in stats if s.store == provider_store]
    return [ProviderSummary.model_validate(s) for s in stats]


@router.get("/providers/{name}", response_model=ProviderDetail)
async def get_provider(
    name: str,
    year: Optional[str] = Query(None),
    store_name: Optional[str] = Query(None, alias="store"),
    report: AnalyticsReport = Depends(get_report),
    dataset: PreparedDataset = Depends(get_dataset),
) -> ProviderDetail:
    """One provider with monthly trend, productivity and segment style mix"""
    stats = report.provider_stats.get(name)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"Provider not found: {name}")

    view = filter_view(dataset.transactions, year, store_name)
    return ProviderDetail(
        stats=ProviderSummary.model_validate(stats),
        trend=[MonthTrend.model_validate(t) for t in provider_monthly_trend(view, name, dataset.lookup)],
        productivity=[Productivity.model_validate(p) for p in provider_productivity(view, name)],
        segment_styles={k: _style_profile(v) for k, v in stats.style_profiles().items()},
    )


@router.get("/members", response_model=MemberList)
async def get_members(
    status: Optional[LifecycleStatus] = None,
    q: Optional[str] = Query(None, description="Search by name or id"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    report: AnalyticsReport = Depends(get_report),
    store: DatasetStore = Depends(get_store),
) -> MemberList:
    """Member lifecycle listing, most recent visit first"""
    members = report.member_statuses
    if q:
        needle = q.lower()
        members = [m for m in members if needle in m.member_name.lower() or needle in m.member_id.lower()]
    if status:
        members = [m for m in members if m.status == status]

    return MemberList(
        counts=lifecycle_counts(report.member_statuses),
        total=len(members),
        members=[MemberStatusItem.model_validate(m) for m in members[offset:offset + limit]],
        age_distribution=age_distribution(members, store.member_import),
    )


@router.get("/members/{member_id}/history", response_model=List[VisitItem])
async def get_member_history(
    member_id: str,
    dataset: PreparedDataset = Depends(get_dataset),
) -> List[VisitItem]:
    """A member's visits, most recent first"""
    history = member_history(dataset.transactions, member_id)
    if history.is_empty():
        raise HTTPException(status_code=404, detail=f"Member not found: {member_id}")
    return [
        VisitItem(**row)
        for row in history.select(["visit_date", "store", "provider", "style_text", "price"]).iter_rows(named=True)
    ]


@router.get("/lost-cohort/{kind}", response_model=LostCohort)
async def get_lost_cohort(
    kind: CohortKind,
    report: AnalyticsReport = Depends(get_report),
    store: DatasetStore = Depends(get_store),
) -> LostCohort:
    """Last-visit style and provider profile of a lost cohort"""
    profile = report.lost_cohorts.get(kind)
    if profile is None:
        return LostCohort(kind=kind, has_data=False)
    n = store.config.top_n
    return LostCohort(
        kind=kind,
        has_data=True,
        member_count=profile.member_count,
        top_primary=_ranked(profile.top_primary(n)),
        top_secondary=_ranked(profile.top_secondary(n)),
        top_providers={name: _ranked(entries) for name, entries in profile.top_providers(n).items()},
    )


@router.get("/stores", response_model=List[StoreRow])
async def get_stores(report: AnalyticsReport = Depends(get_report)) -> List[StoreRow]:
    """Brand-wide row first, then each store"""
    return [StoreRow.model_validate(s) for s in report.store_summaries.values()]


@router.get("/styles", response_model=StyleTrend)
async def get_styles(
    new_only: bool = False,
    year: Optional[str] = Query(None),
    store_name: Optional[str] = Query(None, alias="store"),
    dataset: PreparedDataset = Depends(get_dataset),
) -> StyleTrend:
    """Style mix and monthly primary-category trend"""
    breakdown = style_breakdown(filter_view(dataset.transactions, year, store_name), new_only=new_only)
    return StyleTrend(
        distribution=_style_profile(breakdown.distribution),
        monthly_primary=breakdown.monthly_primary,
        monthly_totals=breakdown.monthly_totals,
    )


@router.get("/hourly", response_model=Hourly)
async def get_hourly(
    store_name: Optional[str] = Query(None, alias="store"),
    provider: Optional[str] = None,
    since: Optional[date] = None,
    scope: DayScope = DayScope.ALL,
    dataset: PreparedDataset = Depends(get_dataset),
) -> Hourly:
    """Average hourly entries and completions"""
    profile = hourly_profile(
        dataset.transactions, store=store_name, provider=provider, since=since, scope=scope
    )
    return Hourly.model_validate(profile)
