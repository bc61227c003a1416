"""
Record Normalization Module

Turns raw transaction report rows into the canonical transactions frame.
Handles:
- Completed-order filtering
- String trimming and sentinel defaults
- Timestamp parsing and calendar derivation
- Service duration derivation
- Price coercion
"""

from dataclasses import dataclass
from typing import List, Optional

import polars as pl
import structlog

from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.exceptions import SchemaError

logger = structlog.get_logger(__name__)

RAW_STRING_COLUMNS = [
    "store",
    "status",
    "completion_time",
    "entry_time",
    "member_id",
    "member_name",
    "provider",
    "designated_provider",
    "style_text",
    "price",
    "duration_raw",
]

# Canonical column order of the transactions frame
TRANSACTION_COLUMNS = [
    "store",
    "provider",
    "designated_provider",
    "style_text",
    "price",
    "duration_minutes",
    "member_id",
    "member_name",
    "entry_time",
    "completion_time",
    "visit_date",
    "month",
    "is_true_new_visit",
]

DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d",
]


@dataclass
class NormalizationStats:
    """Statistics from a normalization pass"""
    total_rows: int
    completed_rows: int
    undated_rows: int
    output_rows: int


def require_columns(df: pl.DataFrame, columns: List[str], stage: str) -> None:
    """Raise SchemaError if any of ``columns`` is absent from ``df``"""
    missing = set(columns) - set(df.columns)
    if missing:
        raise SchemaError(missing, stage)


def _parse_datetime(column: str) -> pl.Expr:
    """Parse a report timestamp written with either '-' or '/' separators"""
    text = pl.col(column).str.strip_chars().str.replace_all("/", "-")
    return pl.coalesce(
        [text.str.to_datetime(fmt, strict=False) for fmt in DATETIME_FORMATS]
    )


class RecordNormalizer:
    """
    Normalizer for raw transaction report rows.

    Expects string columns named as in ``RAW_STRING_COLUMNS``; only
    ``status`` is mandatory, the rest are filled with nulls when absent.

    Example:
        normalizer = RecordNormalizer()
        transactions = normalizer.normalize(raw_df)
    """

    def __init__(self, config: Optional[AnalyticsSettings] = None):
        self.config = config or get_settings().analytics
        self.last_stats: Optional[NormalizationStats] = None

    def _add_missing_columns(self, df: pl.DataFrame) -> pl.DataFrame:
        """Add absent raw columns as null strings"""
        missing = [c for c in RAW_STRING_COLUMNS if c not in df.columns]
        if missing:
            df = df.with_columns([pl.lit(None, dtype=pl.Utf8).alias(c) for c in missing])
        return df.with_columns([pl.col(c).cast(pl.Utf8) for c in RAW_STRING_COLUMNS])

    def _trim_strings(self, df: pl.DataFrame) -> pl.DataFrame:
        """Trim whitespace from raw string columns"""
        return df.with_columns([pl.col(c).str.strip_chars() for c in RAW_STRING_COLUMNS])

    def _fill_sentinels(self, df: pl.DataFrame) -> pl.DataFrame:
        """Replace empty identities with the configured sentinels"""
        def or_default(column: str, default: str) -> pl.Expr:
            return (
                pl.when(pl.col(column).is_null() | (pl.col(column) == ""))
                .then(pl.lit(default))
                .otherwise(pl.col(column))
                .alias(column)
            )

        return df.with_columns([
            or_default("store", self.config.unlabelled),
            or_default("provider", self.config.unlabelled),
            or_default("member_id", self.config.guest_id),
            pl.col("member_name").fill_null(""),
            pl.col("designated_provider").fill_null(""),
            pl.col("style_text").fill_null(""),
        ])

    def _derive_times(self, df: pl.DataFrame) -> pl.DataFrame:
        """Parse timestamps and derive visit date and month key"""
        df = df.with_columns([
            _parse_datetime("entry_time").alias("entry_time"),
            _parse_datetime("completion_time").alias("completion_time"),
        ])
        return df.with_columns(
            pl.coalesce(["completion_time", "entry_time"]).dt.date().alias("visit_date")
        ).with_columns(
            pl.col("visit_date").dt.strftime("%Y-%m").alias("month")
        )

    def _derive_duration(self, df: pl.DataFrame) -> pl.DataFrame:
        """Leading number of the explicit duration, else completion minus entry"""
        explicit = pl.col("duration_raw").str.extract(r"^\s*(-?\d+(?:\.\d+)?)", 1).cast(pl.Float64, strict=False)
        elapsed = (
            (pl.col("completion_time") - pl.col("entry_time")).dt.total_seconds() / 60
        ).round(0)
        return df.with_columns(
            pl.when(explicit.is_not_null())
            .then(explicit)
            .when(elapsed > 0)
            .then(elapsed.cast(pl.Float64))
            .otherwise(pl.lit(0.0))
            .alias("duration_minutes")
        )

    def normalize(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Produce the canonical transactions frame.

        Args:
            raw: Report rows with raw string columns

        Returns:
            Frame with ``TRANSACTION_COLUMNS`` sorted by visit date
        """
        require_columns(raw, ["status"], "normalize")
        total_rows = len(raw)

        df = self._trim_strings(self._add_missing_columns(raw))
        df = df.filter(pl.col("status") == self.config.completed_status)
        completed_rows = len(df)

        df = self._derive_times(self._fill_sentinels(df))
        undated = df.filter(pl.col("visit_date").is_null())
        df = df.filter(pl.col("visit_date").is_not_null())

        df = self._derive_duration(df).with_columns([
            pl.col("price").cast(pl.Float64, strict=False).fill_null(0.0),
            pl.lit(False).alias("is_true_new_visit"),
        ])
        df = df.select(TRANSACTION_COLUMNS).sort("visit_date", maintain_order=True)

        self.last_stats = NormalizationStats(
            total_rows=total_rows,
            completed_rows=completed_rows,
            undated_rows=len(undated),
            output_rows=len(df),
        )
        logger.info(
            "Transactions normalized",
            total_rows=total_rows,
            completed_rows=completed_rows,
            undated_rows=len(undated),
        )
        return df


def normalize_records(raw: pl.DataFrame) -> pl.DataFrame:
    """
    Convenience function to normalize raw report rows.

    Args:
        raw: Raw report DataFrame

    Returns:
        Canonical transactions frame
    """
    return RecordNormalizer().normalize(raw)
