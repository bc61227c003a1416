"""
Report Loader

Reads the transaction report and the member export (CSV) with Polars and
maps their localized headers onto the canonical raw column names expected
by the record normalizer.
"""

import io
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Union

import polars as pl
import structlog

from retention_analytics.config import get_settings
from retention_analytics.transformation.enrichers import MemberImport

logger = structlog.get_logger(__name__)

Source = Union[str, Path, bytes]

TRANSACTION_HEADER_MAP: Dict[str, str] = {
    "店家名稱": "store",
    "訂單狀態": "status",
    "完成剪髮時間": "completion_time",
    "建立時間": "entry_time",
    "會員帳號": "member_id",
    "客戶姓名": "member_name",
    "上次剪髮時間": "last_cut_date",
    "服務理髮師": "provider",
    "指定理髮師": "designated_provider",
    "剪髮內容": "style_text",
    "總價": "price",
    "剪髮時長": "duration_raw",
}

# Candidate headers in priority order
MEMBER_ID_HEADERS = ["會員帳號", "Member ID", "手機", "Phone"]
VISIT_COUNT_HEADERS = ["剪髮次數", "消費次數", "累積消費次數", "Total Visits", "Count"]
BIRTHDAY_HEADERS = ["生日", "Birthday"]


def _read_csv(source: Source) -> pl.DataFrame:
    """Read a CSV with every column as a string"""
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    df = pl.read_csv(
        source,
        infer_schema_length=0,
        encoding=get_settings().data.encoding,
        truncate_ragged_lines=True,
    )
    # Strip a byte order mark and stray quotes from the headers
    return df.rename({c: c.lstrip("\ufeff").strip().strip('"') for c in df.columns})


def _clean_cells(df: pl.DataFrame) -> pl.DataFrame:
    return df.with_columns([
        pl.col(c).str.replace_all("<br>", " ", literal=True).str.strip_chars()
        for c in df.columns
    ])


def _first_present(df: pl.DataFrame, headers: List[str]) -> pl.Expr:
    """First non-empty value among the candidate columns"""
    present = [h for h in headers if h in df.columns]
    if not present:
        return pl.lit(None, dtype=pl.Utf8)
    return pl.coalesce([
        pl.when(pl.col(h) == "").then(None).otherwise(pl.col(h)) for h in present
    ])


def load_transactions(source: Source) -> pl.DataFrame:
    """
    Load the transaction report.

    Args:
        source: CSV file path or raw bytes

    Returns:
        Raw string frame with canonical column names
    """
    df = _clean_cells(_read_csv(source))
    df = df.rename({k: v for k, v in TRANSACTION_HEADER_MAP.items() if k in df.columns})
    logger.info("Transaction report loaded", rows=len(df), columns=len(df.columns))
    return df


def load_member_import(
    source: Source,
    current_year: Optional[int] = None,
) -> Dict[str, MemberImport]:
    """
    Load the member export into import entries keyed by member id.

    Args:
        source: CSV file path or raw bytes
        current_year: Reference year for ages (defaults to this year)

    Returns:
        MemberImport keyed by trimmed member id; later rows win
    """
    current_year = current_year or date.today().year
    guest_id = get_settings().analytics.guest_id
    df = _clean_cells(_read_csv(source))

    members = df.select([
        _first_present(df, MEMBER_ID_HEADERS).alias("member_id"),
        _first_present(df, VISIT_COUNT_HEADERS)
        .str.extract(r"^(\d+)", 1)
        .cast(pl.Int64, strict=False)
        .fill_null(0)
        .alias("visit_count"),
        _first_present(df, BIRTHDAY_HEADERS)
        .str.replace_all("/", "-")
        .str.to_date("%Y-%m-%d", strict=False)
        .dt.year()
        .alias("birth_year"),
    ]).filter(
        pl.col("member_id").is_not_null() & (pl.col("member_id") != guest_id)
    )

    imports: Dict[str, MemberImport] = {}
    for member_id, visit_count, birth_year in members.iter_rows():
        age = current_year - birth_year if birth_year is not None else None
        imports[member_id] = MemberImport(historical_visit_count=visit_count, age_years=age)

    logger.info(
        "Member import loaded",
        members=len(imports),
        with_visit_count=sum(1 for m in imports.values() if m.historical_visit_count > 0),
        with_age=sum(1 for m in imports.values() if m.age_years is not None),
    )
    return imports
