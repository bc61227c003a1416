"""
Month key arithmetic.

Month keys are ``YYYY-MM`` strings, so lexical order is chronological order.
"""

from typing import Tuple


def parse_month(month_key: str) -> Tuple[int, int]:
    year, month = month_key.split("-")
    return int(year), int(month)


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def shift_month(month_key: str, months: int) -> str:
    """Move ``month_key`` by ``months`` (may be negative), rolling the year"""
    year, month = parse_month(month_key)
    index = year * 12 + (month - 1) + months
    return format_month(index // 12, index % 12 + 1)


def next_month(month_key: str) -> str:
    return shift_month(month_key, 1)
