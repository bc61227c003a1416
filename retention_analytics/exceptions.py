"""
Exceptions raised by the retention engine.

Sparse or incomplete data never raises; these cover inputs the engine
cannot interpret at all.
"""

from typing import Iterable


class AnalyticsError(Exception):
    """Base class for retention analytics errors"""


class SchemaError(AnalyticsError):
    """Input frame is missing canonical columns"""

    def __init__(self, missing: Iterable[str], stage: str):
        self.missing = sorted(missing)
        self.stage = stage
        super().__init__(f"{stage}: missing required columns {self.missing}")


class UnknownCohortError(AnalyticsError):
    """Lost-cohort kind is not recognised"""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown cohort kind: {kind!r}")
