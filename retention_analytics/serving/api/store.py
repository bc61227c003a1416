"""
In-memory dataset store for the API.

Holds the uploaded report and member import and memoizes the prepared
dataset and reports until either input changes.
"""

import threading
from typing import Dict, Mapping, Optional, Tuple

import polars as pl
import structlog

from retention_analytics.config import AnalyticsSettings, get_settings
from retention_analytics.pipeline import AnalyticsReport, PreparedDataset, RetentionPipeline
from retention_analytics.transformation.cleaners import RecordNormalizer
from retention_analytics.transformation.enrichers import MemberImport

logger = structlog.get_logger(__name__)


class DatasetStore:
    """Current transactions and member import with cached results"""

    def __init__(self, config: Optional[AnalyticsSettings] = None):
        self.config = config or get_settings().analytics
        self._lock = threading.Lock()
        self._transactions: Optional[pl.DataFrame] = None
        self._member_import: Dict[str, MemberImport] = {}
        self._prepared: Optional[PreparedDataset] = None
        self._reports: Dict[Tuple[Optional[str], Optional[str]], AnalyticsReport] = {}

    @property
    def has_data(self) -> bool:
        return self._transactions is not None

    @property
    def member_import(self) -> Dict[str, MemberImport]:
        return self._member_import

    def _invalidate(self) -> None:
        self._prepared = None
        self._reports = {}

    def set_transactions(self, df: pl.DataFrame) -> PreparedDataset:
        """Replace the transactions (raw or normalized) and prepare them"""
        if "visit_date" not in df.columns:
            df = RecordNormalizer(self.config).normalize(df)
        with self._lock:
            self._transactions = df
            self._invalidate()
            return self._prepare_locked()

    def set_member_import(self, member_import: Mapping[str, MemberImport]) -> None:
        with self._lock:
            self._member_import = dict(member_import)
            self._invalidate()

    def _prepare_locked(self) -> Optional[PreparedDataset]:
        # Caller holds self._lock
        if self._transactions is None:
            return None
        if self._prepared is None:
            pipeline = RetentionPipeline(self._member_import, self.config)
            self._prepared = pipeline.prepare(self._transactions)
        return self._prepared

    def prepared(self) -> Optional[PreparedDataset]:
        with self._lock:
            return self._prepare_locked()

    def report(self, year: Optional[str] = None, store: Optional[str] = None) -> Optional[AnalyticsReport]:
        """Cached report of the current inputs, built under the same lock as the dataset"""
        key = (year, store)
        with self._lock:
            dataset = self._prepare_locked()
            if dataset is None:
                return None
            if key not in self._reports:
                pipeline = RetentionPipeline(self._member_import, self.config)
                self._reports[key] = pipeline.report(dataset, year=year, store=store)
                logger.debug("Report cached", year=year, store=store)
            return self._reports[key]

    def clear(self) -> None:
        with self._lock:
            self._transactions = None
            self._member_import = {}
            self._invalidate()
