"""List filtering for the transactions view."""

from typing import Iterable, Optional

from src.models.transaction import Transaction, TransactionType


def filter_transactions(
    transactions: Iterable[Transaction],
    transaction_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Transaction]:
    """
    Filter the loaded transactions.

    Args:
        transaction_type: Keep only income or only expenses
        category: Exact category match (case-insensitive)
        search: Substring searched in establishment, details and category

    Returns:
        Matching transactions, in their original order
    """
    needle = search.strip().lower() if search else ""
    wanted_category = category.strip().lower() if category else ""

    result = []
    for transaction in transactions:
        if transaction_type and transaction.type is not transaction_type:
            continue
        if wanted_category and transaction.category.lower() != wanted_category:
            continue
        if needle:
            haystack = " ".join([
                transaction.establishment,
                transaction.details or "",
                transaction.category,
            ]).lower()
            if needle not in haystack:
                continue
        result.append(transaction)

    return result


def list_categories(transactions: Iterable[Transaction]) -> list[str]:
    """Distinct categories, sorted case-insensitively."""
    return sorted({t.category for t in transactions}, key=str.lower)
