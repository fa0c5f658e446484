"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for backend operations.
This allows us to:
1. Keep the hosted backend (Supabase) behind one seam
2. Use in-memory storage for testing
3. Keep dashboard logic decoupled from the query builder

The interface is intentionally simple - we're not building an ORM.
Just the operations the dashboard needs on a single logical table.

Every read and write is scoped by an identifier column (`user` or
`user_id`); the backend's row-level security is the real guard, the
scoping here keeps admin and direct rows apart.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from src.models.transaction import (
    IdentifierField,
    Transaction,
    TransactionPayload,
    UserContext,
)


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.
    """

    @abstractmethod
    async def list_transactions(
        self,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> list[Transaction]:
        """
        List the account's transactions, newest `quando` first.

        Args:
            identifier_field: Column used to scope rows
            identifier: Value of that column for this account

        Returns:
            Normalized transactions

        Raises:
            StorageError: If the backend call fails
        """
        pass

    @abstractmethod
    async def create_transaction(
        self,
        payload: TransactionPayload,
        context: UserContext,
    ) -> Transaction:
        """
        Insert a transaction owned by the account in `context`.

        Returns:
            The row as stored by the backend, normalized

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: str,
        payload: TransactionPayload,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> Transaction:
        """
        Update one transaction of the account.

        Returns:
            The updated row, normalized

        Raises:
            NotFoundError: If no row matched the id and identifier
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(
        self,
        transaction_id: str,
        identifier_field: IdentifierField,
        identifier: str,
    ) -> bool:
        """
        Delete one transaction of the account.

        Returns:
            True if the call succeeded

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def delete_in_range(
        self,
        identifier_field: IdentifierField,
        identifier: str,
        start: datetime,
        end: datetime,
    ) -> int:
        """
        Delete the account's transactions with start <= quando < end.

        The comparison is done by the backend on the ISO-8601 strings of
        `start` and `end`.

        Returns:
            Number of rows the backend reported as deleted

        Raises:
            StorageError: If the delete fails
        """
        pass


class AccountStorageInterface(ABC):
    """
    Abstract interface for account lookups used during session bootstrap.
    """

    @abstractmethod
    async def has_role(self, user_id: str, role: str) -> bool:
        """
        Check whether the user holds a role.

        Raises:
            StorageError: If the lookup fails
        """
        pass

    @abstractmethod
    async def get_linked_identifier(self, user_id: str) -> Optional[str]:
        """
        Get the messaging identifier linked to an admin account.

        Returns:
            The first linked identifier, or None

        Raises:
            StorageError: If the lookup fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class IdentifierNotLinkedError(StorageError):
    """Admin account has no linked messaging identifier."""
    pass
