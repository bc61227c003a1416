"""
Report Ingestion Module
"""
from .loader import load_member_import, load_transactions

__all__ = [
    "load_member_import",
    "load_transactions",
]
