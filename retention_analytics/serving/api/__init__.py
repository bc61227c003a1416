"""
API Module
"""
from .main import create_api_app
from .middleware import RequestLoggingMiddleware
from .store import DatasetStore

__all__ = [
    "create_api_app",
    "RequestLoggingMiddleware",
    "DatasetStore",
]
