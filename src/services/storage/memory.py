"""
In-Memory Storage Implementation

Implements the storage interfaces over plain dicts. Used by the test suite
and for running the dashboard without a backend.

Rows are kept in backend column form so that the same normalization path
(`Transaction.from_row`) is exercised as with the hosted backend.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from src.models.transaction import (
    DEFAULT_CATEGORY,
    IdentifierField,
    Transaction,
    TransactionPayload,
    UserContext,
)
from src.parsing import parse_timestamp
from src.services.storage.interface import (
    AccountStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


def _sort_key(row: dict[str, Any]) -> float:
    parsed = parse_timestamp(row.get("quando"))
    return parsed.timestamp() if parsed else float("-inf")


class InMemoryTransactionStorage(TransactionStorageInterface):
    """
    Dict-backed transaction storage.

    Set `fail_with` to make every call raise, to simulate backend outages.
    """

    def __init__(
        self,
        rows: Optional[list[dict[str, Any]]] = None,
        default_category: str = DEFAULT_CATEGORY,
    ):
        self.rows: list[dict[str, Any]] = [dict(row) for row in rows or []]
        self.fail_with: Optional[str] = None
        self._default_category = default_category

    def _check(self) -> None:
        if self.fail_with:
            raise StorageError(self.fail_with)

    def _owned(self, identifier_field: IdentifierField, identifier: str) -> list[dict[str, Any]]:
        return [
            row for row in self.rows
            if str(row.get(identifier_field.value)) == str(identifier)
        ]

    async def list_transactions(
        self,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> list[Transaction]:
        self._check()
        rows = sorted(self._owned(identifier_field, identifier), key=_sort_key, reverse=True)
        return [Transaction.from_row(row, self._default_category) for row in rows]

    async def create_transaction(
        self,
        payload: TransactionPayload,
        context: UserContext,
    ) -> Transaction:
        self._check()
        row = payload.to_row()
        row.update(context.owner_columns())
        row["id"] = str(uuid4())
        row["created_at"] = datetime.now(timezone.utc).isoformat()
        self.rows.append(row)
        return Transaction.from_row(row, self._default_category)

    async def update_transaction(
        self,
        transaction_id: str,
        payload: TransactionPayload,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> Transaction:
        self._check()
        for row in self._owned(identifier_field, identifier):
            if str(row.get("id")) == transaction_id:
                row.update(payload.to_row())
                return Transaction.from_row(row, self._default_category)

        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def delete_transaction(
        self,
        transaction_id: str,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> bool:
        self._check()
        owned_ids = {
            id(row) for row in self._owned(identifier_field, identifier)
            if str(row.get("id")) == transaction_id
        }
        self.rows = [row for row in self.rows if id(row) not in owned_ids]
        return True

    async def delete_in_range(
        self,
        identifier_field: IdentifierField,
        identifier: str,
        start: datetime,
        end: datetime,
    ) -> int:
        """Delete rows whose `quando` falls in [start, end)."""
        self._check()
        doomed = set()
        for row in self._owned(identifier_field, identifier):
            parsed = parse_timestamp(row.get("quando"), start.tzinfo)
            if parsed is not None and start <= parsed < end:
                doomed.add(id(row))

        self.rows = [row for row in self.rows if id(row) not in doomed]
        return len(doomed)


class InMemoryAccountStorage(AccountStorageInterface):
    """Dict-backed roles and messaging links."""

    def __init__(
        self,
        roles: Optional[dict[str, set[str]]] = None,
        links: Optional[dict[str, str]] = None,
    ):
        self.roles = roles or {}
        self.links = links or {}
        self.fail_with: Optional[str] = None

    async def has_role(self, user_id: str, role: str) -> bool:
        if self.fail_with:
            raise StorageError(self.fail_with)
        return role in self.roles.get(user_id, set())

    async def get_linked_identifier(self, user_id: str) -> Optional[str]:
        if self.fail_with:
            raise StorageError(self.fail_with)
        return self.links.get(user_id)
