"""Shared helpers for decimals and datetimes."""

from src.utils.datetime_utils import (
    add_months,
    end_of_month,
    ensure_utc,
    parse_moment,
    to_iso,
    utcnow,
)
from src.utils.decimal_utils import coerce_decimal

__all__ = [
    "add_months",
    "coerce_decimal",
    "end_of_month",
    "ensure_utc",
    "parse_moment",
    "to_iso",
    "utcnow",
]
