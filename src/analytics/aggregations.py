"""
Presentation Aggregations

DESIGN DECISION: Aggregation is DETERMINISTIC and runs over the in-memory
list already fetched from the backend. Nothing here talks to storage, so
every number on the dashboard can be recomputed from the loaded rows.

All sums use absolute amounts; direction comes from the transaction type.
"""

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from src.models.transaction import (
    CategoryBucket,
    MonthlySummary,
    Transaction,
    TransactionStats,
    TransactionType,
)
from src.parsing import month_range, parse_timestamp


def filter_by_range(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Keep transactions whose date falls in [start, end). Unparseable dates are dropped."""
    result = []
    for transaction in transactions:
        occurred = parse_timestamp(transaction.occurred_at, tz)
        if occurred is None:
            continue
        if start <= occurred < end:
            result.append(transaction)
    return result


def current_month_transactions(
    transactions: Iterable[Transaction],
    reference: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions of the calendar month containing `reference` (default: now)."""
    start, end = month_range(reference, tz)
    return filter_by_range(transactions, start, end, tz)


def totals_by_type(transactions: Iterable[Transaction]) -> dict[TransactionType, Decimal]:
    """Sum absolute amounts per transaction type."""
    totals = {
        TransactionType.INCOME: Decimal("0"),
        TransactionType.EXPENSE: Decimal("0"),
    }
    for transaction in transactions:
        totals[transaction.type] += abs(transaction.amount)
    return totals


def monthly_summary(
    transactions: Iterable[Transaction],
    reference: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> MonthlySummary:
    """
    Income, expenses and balance for the month containing `reference`.

    Example: income 1000.00, expenses 300.00 and 50.00 -> balance 650.00.
    """
    start, end = month_range(reference, tz)
    rows = filter_by_range(transactions, start, end, tz)

    summary = MonthlySummary(month_start=start, month_end=end)
    for transaction in rows:
        if transaction.is_income:
            summary.total_income += abs(transaction.amount)
            summary.income_count += 1
        else:
            summary.total_expenses += abs(transaction.amount)
            summary.expense_count += 1

    return summary


def totals_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Sum absolute amounts per category, in first-seen order."""
    groups: dict[str, Decimal] = {}
    for transaction in transactions:
        key = transaction.category
        if key not in groups:
            groups[key] = Decimal("0")
        groups[key] += abs(transaction.amount)
    return groups


def category_percentages(totals: dict[str, Decimal]) -> dict[str, float]:
    """
    Share of each bucket in the sum of all buckets, as a percentage.

    All shares are 0.0 when the sum is zero.
    """
    grand_total = sum(totals.values(), Decimal("0"))
    if grand_total == 0:
        return {key: 0.0 for key in totals}
    return {
        key: float(value / grand_total * 100)
        for key, value in totals.items()
    }


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryBucket]:
    """
    Category buckets with totals, counts and percentage shares.

    Sorted by total, largest first.
    """
    rows = list(transactions)
    totals = totals_by_category(rows)
    shares = category_percentages(totals)

    counts: dict[str, int] = {}
    for transaction in rows:
        counts[transaction.category] = counts.get(transaction.category, 0) + 1

    buckets = [
        CategoryBucket(
            category=key,
            total=total,
            percentage=min(shares[key], 100.0),
            count=counts[key],
        )
        for key, total in totals.items()
    ]
    buckets.sort(key=lambda b: b.total, reverse=True)
    return buckets


def overall_stats(
    transactions: Iterable[Transaction],
    tz: Optional[tzinfo] = None,
) -> TransactionStats:
    """All-time totals and counts over every loaded transaction."""
    stats = TransactionStats()
    for transaction in transactions:
        if transaction.is_income:
            stats.total_income += abs(transaction.amount)
            stats.income_count += 1
        else:
            stats.total_expenses += abs(transaction.amount)
            stats.expense_count += 1
        if parse_timestamp(transaction.occurred_at, tz) is None:
            stats.unparseable_dates += 1
    return stats
