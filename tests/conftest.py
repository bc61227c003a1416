"""
Test Suite Configuration
"""
from datetime import date, datetime, timedelta
from typing import Callable, List

import pytest
import polars as pl

from retention_analytics.config import AnalyticsSettings, Settings

TRANSACTIONS_SCHEMA = {
    "store": pl.Utf8,
    "provider": pl.Utf8,
    "designated_provider": pl.Utf8,
    "style_text": pl.Utf8,
    "price": pl.Float64,
    "duration_minutes": pl.Float64,
    "member_id": pl.Utf8,
    "member_name": pl.Utf8,
    "entry_time": pl.Datetime("us"),
    "completion_time": pl.Datetime("us"),
    "visit_date": pl.Date,
    "month": pl.Utf8,
    "is_true_new_visit": pl.Boolean,
}


def build_transactions(rows: List[dict]) -> pl.DataFrame:
    """
    Build a canonical transactions frame.

    Each row needs ``member_id`` and ``visit_date`` (ISO string or date);
    everything else has a default.
    """
    records = []
    for row in rows:
        visit = row["visit_date"]
        if isinstance(visit, str):
            visit = date.fromisoformat(visit)
        hour = row.get("hour", 11)
        duration = row.get("duration_minutes", 40.0)
        entry = datetime(visit.year, visit.month, visit.day, hour, 0)
        records.append({
            "store": row.get("store", "Main"),
            "provider": row.get("provider", "Amy"),
            "designated_provider": row.get("designated_provider", ""),
            "style_text": row.get("style_text", ""),
            "price": row.get("price", 500.0),
            "duration_minutes": duration,
            "member_id": row["member_id"],
            "member_name": row.get("member_name", row["member_id"]),
            "entry_time": entry,
            "completion_time": entry + timedelta(minutes=duration or 0),
            "visit_date": visit,
            "month": visit.strftime("%Y-%m"),
            "is_true_new_visit": row.get("is_true_new_visit", False),
        })
    return pl.DataFrame(records, schema=TRANSACTIONS_SCHEMA)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing", DEBUG=True)


@pytest.fixture
def config() -> AnalyticsSettings:
    """Default analytics thresholds and sentinels"""
    return AnalyticsSettings()


@pytest.fixture
def make_transactions() -> Callable[[List[dict]], pl.DataFrame]:
    """Factory for canonical transactions frames"""
    return build_transactions


@pytest.fixture
def sample_raw_df() -> pl.DataFrame:
    """Raw report rows as read from the export (all strings)"""
    return pl.DataFrame({
        "store": ["Main", " Main ", "East", "", "Main", "East"],
        "status": ["完成", "完成", "完成", "完成", "取消", "完成"],
        "completion_time": [
            "2024/01/05 11:40:00",
            "2024-01-20 15:30",
            "2024-02-02 10:50:00",
            "",
            "2024-02-03 12:00:00",
            "",
        ],
        "entry_time": [
            "2024/01/05 11:00:00",
            "2024-01-20 14:45",
            "2024-02-02 10:20:00",
            "2024-02-10 13:00:00",
            "2024-02-03 11:00:00",
            "",
        ],
        "member_id": ["0911", " 0911", "", "0922", "0933", "0944"],
        "member_name": ["Lin", "Lin", "", None, "Chen", "Wu"],
        "provider": ["Amy", "Amy", "Bob", "", "Amy", "Bob"],
        "designated_provider": ["Amy", "", "", "", "", ""],
        "style_text": ["油頭 高漸層", "寸頭", "", "韓系中分", "", ""],
        "price": ["500", "450", "abc", "600", "500", "300"],
        "duration_raw": ["", "30", "", "", "", ""],
    })


@pytest.fixture
def six_month_df() -> pl.DataFrame:
    """
    Dataset spanning 2024-01..2024-06.

    m1 visits in January and February only; m2 visits every month; m3 only
    in January and is flagged as a true new customer.
    """
    rows = [
        {"member_id": "m1", "visit_date": "2024-01-10", "is_true_new_visit": True},
        {"member_id": "m1", "visit_date": "2024-02-10"},
        {"member_id": "m3", "visit_date": "2024-01-15", "is_true_new_visit": True},
    ]
    for month in range(1, 7):
        rows.append({"member_id": "m2", "visit_date": f"2024-{month:02d}-20"})
    return build_transactions(rows)
