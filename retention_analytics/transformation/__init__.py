"""
Data Transformation Module
"""
from .cleaners import RecordNormalizer, normalize_records
from .enrichers import (
    MemberImport,
    MemberProfile,
    NewCustomerEnricher,
    build_member_profiles,
    enrich_transactions,
    member_history,
)

__all__ = [
    "RecordNormalizer",
    "normalize_records",
    "MemberImport",
    "MemberProfile",
    "NewCustomerEnricher",
    "build_member_profiles",
    "enrich_transactions",
    "member_history",
]
