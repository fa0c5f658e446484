"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The hosted backend is Supabase; an in-memory implementation backs the tests.
"""

from src.services.storage.interface import (
    AccountStorageInterface,
    ConnectionError,
    IdentifierNotLinkedError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from src.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
)
from src.services.storage.supabase_store import (
    SupabaseAccountStorage,
    SupabaseClient,
    SupabaseTransactionStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "IdentifierNotLinkedError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryTransactionStorage",
    # Supabase implementation
    "SupabaseAccountStorage",
    "SupabaseClient",
    "SupabaseTransactionStorage",
]
