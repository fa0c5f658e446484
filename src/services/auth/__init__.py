"""Authentication services package."""

from src.services.auth.interface import (
    PASSWORD_RECOVERY,
    SIGNED_IN,
    SIGNED_OUT,
    USER_UPDATED,
    AuthError,
    AuthServiceInterface,
    InvalidCredentialsError,
    SessionMissingError,
)
from src.services.auth.memory import InMemoryAuthService
from src.services.auth.supabase_auth import SupabaseAuthService

__all__ = [
    "PASSWORD_RECOVERY",
    "SIGNED_IN",
    "SIGNED_OUT",
    "USER_UPDATED",
    "AuthError",
    "AuthServiceInterface",
    "InMemoryAuthService",
    "InvalidCredentialsError",
    "SessionMissingError",
    "SupabaseAuthService",
]
