"""Utility Functions.

Common helper functions and utilities used across the application.
"""

from src.utils.amount import quantize_credits, require_positive_amount
from src.utils.helpers import format_utc_datetime, utcnow
from src.utils.pagination import PaginationParams, paginate_query

__all__ = [
    "PaginationParams",
    "format_utc_datetime",
    "paginate_query",
    "quantize_credits",
    "require_positive_amount",
    "utcnow",
]
