"""Aggregation and filtering over loaded transactions."""

from src.analytics.aggregations import (
    category_breakdown,
    category_percentages,
    current_month_transactions,
    filter_by_range,
    monthly_summary,
    overall_stats,
    totals_by_category,
    totals_by_type,
)
from src.analytics.filters import filter_transactions, list_categories

__all__ = [
    "category_breakdown",
    "category_percentages",
    "current_month_transactions",
    "filter_by_range",
    "filter_transactions",
    "list_categories",
    "monthly_summary",
    "overall_stats",
    "totals_by_category",
    "totals_by_type",
]
