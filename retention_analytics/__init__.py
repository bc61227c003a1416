"""
Salon Retention Analytics

Retention, churn, productivity and segmentation metrics for a
multi-location personal-services business.
"""
from .pipeline import AnalyticsReport, PreparedDataset, RetentionPipeline, filter_view

__version__ = "1.0.0"

__all__ = [
    "AnalyticsReport",
    "PreparedDataset",
    "RetentionPipeline",
    "filter_view",
]
