"""Utility exports."""

from .date_parser import days_between, ensure_utc, normalize_posted_date, parse_date, utc_now
from .helpers import (
    clamp,
    deduplicate_by_key,
    generate_application_id,
    normalize_text,
    round_to,
    safe_float,
    unique_normalized,
)
from .logger import get_logger

__all__ = [
    "get_logger",
    "clamp",
    "safe_float",
    "round_to",
    "normalize_text",
    "unique_normalized",
    "deduplicate_by_key",
    "generate_application_id",
    "normalize_posted_date",
    "parse_date",
    "days_between",
    "ensure_utc",
    "utc_now",
]
