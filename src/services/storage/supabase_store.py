"""
Supabase Storage Implementation

DESIGN DECISION: The hosted backend owns persistence and access control.
This module is a thin adapter over the Supabase query builder:
1. Rows are selected, inserted, updated and deleted on one table
2. Every call is scoped by the account's identifier column
3. Row-level security on the backend is the real authorization layer

TRADEOFFS:
- Calls are not retried; a failure is reported to the user and the
  local list is left untouched
- Filtering and aggregation happen in Python on the fetched rows
  (personal volumes, no server-side analytics needed)
"""

from datetime import datetime
from typing import Any, Optional

from supabase import Client, create_client

from src.config import SupabaseSettings, get_settings
from src.models.transaction import (
    TRANSACTION_COLUMNS,
    IdentifierField,
    Transaction,
    TransactionPayload,
    UserContext,
)
from src.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the client lazily so the app can start (and show a config
    error) without a reachable backend.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings or get_settings().supabase

    @property
    def settings(self) -> SupabaseSettings:
        return self._settings

    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                self._client = create_client(
                    self._settings.url,
                    self._settings.anon_key,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")

        return self._client

    def transactions(self):
        """Query builder for the transactions table."""
        return self.connect().table(self._settings.transactions_table)

    def links(self):
        """Query builder for the messaging links table."""
        return self.connect().table(self._settings.links_table)


class SupabaseTransactionStorage(TransactionStorageInterface):
    """
    Supabase implementation of transaction storage.

    The backend returns the affected rows on insert/update/delete, which
    are normalized through `Transaction.from_row`.
    """

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        default_category: Optional[str] = None,
    ):
        self._client = client or SupabaseClient()
        self._default_category = default_category or get_settings().app.default_category

    def _to_transaction(self, row: dict[str, Any]) -> Transaction:
        return Transaction.from_row(row, self._default_category)

    async def list_transactions(
        self,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> list[Transaction]:
        """List the account's transactions, newest first."""
        try:
            response = (
                self._client.transactions()
                .select(",".join(TRANSACTION_COLUMNS))
                .eq(identifier_field.value, identifier)
                .order("quando", desc=True)
                .execute()
            )
            return [self._to_transaction(row) for row in response.data or []]
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def create_transaction(
        self,
        payload: TransactionPayload,
        context: UserContext,
    ) -> Transaction:
        """Insert a transaction with the account's owner columns."""
        row = payload.to_row()
        row.update(context.owner_columns())

        try:
            response = self._client.transactions().insert(row).execute()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create transaction: {e}")

        if not response.data:
            raise StorageError("Failed to create transaction: backend returned no row")

        return self._to_transaction(response.data[0])

    async def update_transaction(
        self,
        transaction_id: str,
        payload: TransactionPayload,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> Transaction:
        """Update a transaction scoped by id and identifier column."""
        try:
            response = (
                self._client.transactions()
                .update(payload.to_row())
                .eq("id", transaction_id)
                .eq(identifier_field.value, identifier)
                .execute()
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

        if not response.data:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        return self._to_transaction(response.data[0])

    async def delete_transaction(
        self,
        transaction_id: str,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> bool:
        """Delete a transaction scoped by id and identifier column."""
        try:
            (
                self._client.transactions()
                .delete()
                .eq("id", transaction_id)
                .eq(identifier_field.value, identifier)
                .execute()
            )
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def delete_in_range(
        self,
        identifier_field: IdentifierField,
        identifier: str,
        start: datetime,
        end: datetime,
    ) -> int:
        """Delete the account's rows with start <= quando < end."""
        try:
            response = (
                self._client.transactions()
                .delete()
                .eq(identifier_field.value, identifier)
                .gte("quando", start.isoformat())
                .lt("quando", end.isoformat())
                .execute()
            )
            return len(response.data or [])
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete transactions in range: {e}")


class SupabaseAccountStorage(AccountStorageInterface):
    """Supabase implementation of the session bootstrap lookups."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def has_role(self, user_id: str, role: str) -> bool:
        """Call the `has_role` RPC."""
        try:
            response = self._client.connect().rpc(
                "has_role",
                {"_role": role, "_user_id": user_id},
            ).execute()
            return bool(response.data)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to check role: {e}")

    async def get_linked_identifier(self, user_id: str) -> Optional[str]:
        """Get the first linked messaging identifier of the user."""
        try:
            response = (
                self._client.links()
                .select("whatsapp_jid")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get linked identifier: {e}")

        rows = response.data or []
        if not rows:
            return None

        jid = rows[0].get("whatsapp_jid")
        return jid if isinstance(jid, str) and jid.strip() else None
