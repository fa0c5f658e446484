"""
In-Memory Authentication Service

Keeps accounts in a dict. Used by the test suite.
"""

from typing import Callable, Optional
from uuid import uuid4

from src.models.transaction import AuthUser
from src.services.auth.interface import (
    PASSWORD_RECOVERY,
    SIGNED_IN,
    SIGNED_OUT,
    USER_UPDATED,
    AuthError,
    AuthServiceInterface,
    AuthStateCallback,
    InvalidCredentialsError,
    SessionMissingError,
)


class InMemoryAuthService(AuthServiceInterface):
    """Dict-backed accounts with a single current session."""

    def __init__(self):
        self.accounts: dict[str, tuple[str, AuthUser]] = {}
        self.current: Optional[AuthUser] = None
        self.reset_requests: list[str] = []
        self.recovery_tokens: dict[str, str] = {}
        self._subscribers: list[AuthStateCallback] = []

    def add_account(self, email: str, password: str, **metadata) -> AuthUser:
        user = AuthUser(id=str(uuid4()), email=email, metadata=metadata)
        self.accounts[email] = (password, user)
        return user

    def _emit(self, event: str) -> None:
        for callback in list(self._subscribers):
            callback(event, self.current)

    async def get_current_user(self) -> Optional[AuthUser]:
        return self.current

    async def sign_in(self, email: str, password: str) -> AuthUser:
        stored = self.accounts.get(email)
        if stored is None or stored[0] != password:
            raise InvalidCredentialsError("Invalid login credentials")
        self.current = stored[1]
        self._emit(SIGNED_IN)
        return self.current

    async def sign_up(self, email: str, password: str, full_name: str) -> Optional[AuthUser]:
        if email in self.accounts:
            raise AuthError("User already registered")
        return self.add_account(email, password, full_name=full_name)

    async def request_password_reset(self, email: str) -> bool:
        self.reset_requests.append(email)
        return True

    async def verify_recovery_token(self, token_hash: str) -> AuthUser:
        # Tokens are single use
        email = self.recovery_tokens.pop(token_hash, None)
        if email is None or email not in self.accounts:
            raise AuthError("Recovery link is invalid or expired")
        self.current = self.accounts[email][1]
        self._emit(PASSWORD_RECOVERY)
        return self.current

    async def update_password(self, password: str) -> bool:
        if self.current is None or self.current.email not in self.accounts:
            raise SessionMissingError("Auth session missing")
        self.accounts[self.current.email] = (password, self.current)
        self._emit(USER_UPDATED)
        return True

    async def sign_out(self) -> bool:
        self.current = None
        self._emit(SIGNED_OUT)
        return True

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
