"""
Abstract Authentication Interface

DESIGN DECISION: Authentication is delegated entirely to the hosted
backend. The dashboard only needs a handful of calls, so they are listed
here and implemented by a thin adapter; tests use an in-memory fake.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from src.models.transaction import AuthUser


# Auth state change events forwarded to subscribers
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"

AuthStateCallback = Callable[[str, Optional[AuthUser]], None]


class AuthServiceInterface(ABC):
    """
    Abstract interface for the authentication surface.
    """

    @abstractmethod
    async def get_current_user(self) -> Optional[AuthUser]:
        """
        Get the user of the current session.

        Returns:
            The signed-in user, or None without a session
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the backend rejects the credentials
            AuthError: If the call fails
        """
        pass

    @abstractmethod
    async def sign_up(self, email: str, password: str, full_name: str) -> Optional[AuthUser]:
        """
        Register a new account, storing `full_name` in the user metadata.

        Returns:
            The created user (None when the backend withholds it until
            the email is confirmed)

        Raises:
            AuthError: If the backend rejects the registration
        """
        pass

    @abstractmethod
    async def request_password_reset(self, email: str) -> bool:
        """
        Send a password reset email that links back to the auth page.

        Raises:
            AuthError: If the call fails
        """
        pass

    @abstractmethod
    async def verify_recovery_token(self, token_hash: str) -> AuthUser:
        """
        Open a session from the one-time token hash of a recovery link.

        The recovery email links to `SITE_URL/?type=recovery&token_hash=...`
        so the token arrives as a query parameter the server can read.

        Raises:
            AuthError: If the token is rejected or expired
        """
        pass

    @abstractmethod
    async def update_password(self, password: str) -> bool:
        """
        Set a new password for the current session's user.

        Raises:
            AuthError: If the update fails
        """
        pass

    @abstractmethod
    async def sign_out(self) -> bool:
        """
        End the current session.

        Raises:
            AuthError: If the call fails
        """
        pass

    @abstractmethod
    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Subscribe to auth state changes.

        Returns:
            A function that cancels the subscription
        """
        pass


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass


class InvalidCredentialsError(AuthError):
    """Email or password rejected by the backend."""
    pass


class SessionMissingError(AuthError):
    """The operation needs a signed-in session."""
    pass
