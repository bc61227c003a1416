"""
Prefect Workflow Orchestration - Monthly Retention Report

Batch workflow that turns a transaction report export into curated
retention tables:
- Load the transaction report and member export
- Compute the retention report
- Write monthly, provider and store tables as Parquet
"""

from dataclasses import asdict
from pathlib import Path
from typing import Optional

import polars as pl
from prefect import flow, task, get_run_logger

from retention_analytics.config import get_settings
from retention_analytics.ingestion.loader import load_member_import, load_transactions
from retention_analytics.pipeline import AnalyticsReport, RetentionPipeline

settings = get_settings()


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_reports",
    description="Load the transaction report and member export",
    retries=2,
    retry_delay_seconds=30,
)
def load_reports(transactions_path: str, members_path: Optional[str] = None) -> dict:
    """Load raw transactions and the optional member import"""
    logger = get_run_logger()

    raw = load_transactions(transactions_path)
    member_import = load_member_import(members_path) if members_path else {}

    logger.info(f"Loaded {len(raw)} report rows and {len(member_import)} imported members")
    return {"raw": raw, "member_import": member_import}


@task(
    name="compute_report",
    description="Compute retention, provider and store analytics",
)
def compute_report(loaded: dict, year: Optional[str] = None) -> AnalyticsReport:
    """Run the retention pipeline over the loaded report"""
    logger = get_run_logger()

    pipeline = RetentionPipeline(loaded["member_import"], settings.analytics)
    report = pipeline.run(loaded["raw"], year=year)

    logger.info(
        f"Report computed: {len(report.months)} months, "
        f"{len(report.provider_stats)} providers in {report.duration_seconds:.2f}s"
    )
    return report


@task(
    name="write_tables",
    description="Write curated tables as Parquet",
)
def write_tables(report: AnalyticsReport, output_dir: str) -> dict:
    """Write monthly, provider and store tables"""
    logger = get_run_logger()

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    monthly = pl.DataFrame([asdict(s) for s in report.monthly_stats.values()])
    providers = pl.DataFrame([
        {
            "name": s.name,
            "store": s.store,
            "total_orders": s.total_orders,
            "unique_members": s.unique_members,
            "pooled_retention": s.pooled_retention,
            "retention_change_sum": s.retention_change_sum,
            "avg_duration_minutes": s.avg_duration_minutes,
            "total_designation_rate": s.total_designation_rate,
            "avg_daily_throughput": s.avg_daily_throughput,
            "same_designation_pct": s.segment_percents.same_designation,
            "other_designation_pct": s.segment_percents.other_designation,
            "lost_pct": s.segment_percents.lost,
        }
        for s in report.provider_stats.values()
    ])
    stores = pl.DataFrame([asdict(s) for s in report.store_summaries.values()])

    paths = {}
    for name, table in (("monthly", monthly), ("providers", providers), ("stores", stores)):
        path = out / f"{name}.parquet"
        table.write_parquet(path)
        paths[name] = str(path)
        logger.info(f"Wrote {len(table)} rows to {path}")

    return paths


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="monthly_retention_report",
    description="Monthly retention report from a transaction export",
)
def monthly_retention_report(
    transactions_path: Optional[str] = None,
    members_path: Optional[str] = None,
    output_dir: Optional[str] = None,
    year: Optional[str] = None,
) -> dict:
    """
    Monthly retention report.

    Steps:
    1. Load the transaction report and member export
    2. Compute the retention report
    3. Write curated tables
    """
    logger = get_run_logger()

    transactions_path = transactions_path or f"{settings.data.raw_path}/transactions.csv"
    output_dir = output_dir or settings.data.curated_path

    logger.info(f"Starting retention report for {transactions_path}")

    loaded = load_reports(transactions_path, members_path)
    report = compute_report(loaded, year=year)
    paths = write_tables(report, output_dir)

    return {
        "status": "success",
        "months": report.months,
        "total_orders": report.total_orders,
        "avg_retention": report.avg_retention,
        "outputs": paths,
    }


if __name__ == "__main__":
    monthly_retention_report()
