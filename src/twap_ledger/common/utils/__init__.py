"""
Utilities Module - Shared Helper Functions
===========================================

Provides shared utilities used across multiple layers:
- Date/time utilities
- Day partition key helpers
"""

from twap_ledger.common.utils.date_utils import (
    day_keys_between,
    format_day_key,
    from_unix_ms,
    is_day_key,
    parse_day_key,
    to_iso_ms,
    utc_now,
    utc_today,
)

__all__ = [
    # Date utilities
    "from_unix_ms",
    "to_iso_ms",
    "utc_now",
    "utc_today",
    # Day keys
    "is_day_key",
    "parse_day_key",
    "format_day_key",
    "day_keys_between",
]
