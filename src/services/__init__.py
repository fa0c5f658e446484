"""Services package."""

from src.services.auth import (
    AuthError,
    AuthServiceInterface,
    InMemoryAuthService,
    InvalidCredentialsError,
    SessionMissingError,
    SupabaseAuthService,
)
from src.services.storage import (
    AccountStorageInterface,
    ConnectionError,
    IdentifierNotLinkedError,
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    SupabaseAccountStorage,
    SupabaseClient,
    SupabaseTransactionStorage,
    TransactionStorageInterface,
)

__all__ = [
    # Auth services
    "AuthError",
    "AuthServiceInterface",
    "InMemoryAuthService",
    "InvalidCredentialsError",
    "SessionMissingError",
    "SupabaseAuthService",
    # Storage services
    "AccountStorageInterface",
    "ConnectionError",
    "IdentifierNotLinkedError",
    "InMemoryAccountStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "StorageError",
    "SupabaseAccountStorage",
    "SupabaseClient",
    "SupabaseTransactionStorage",
    "TransactionStorageInterface",
]
