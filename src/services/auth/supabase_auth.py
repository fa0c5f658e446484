"""
Supabase Authentication Service

Thin adapter over `supabase.auth`. Backend exceptions are wrapped in
`AuthError` so the UI never sees raw client errors.

Password recovery uses the server-side token hash flow. The project's
"Reset Password" email template must link to
`{{ .SiteURL }}/?type=recovery&token_hash={{ .TokenHash }}`; the default
template puts the session in the URL fragment, which Streamlit never sees.

IMPORTANT: The Supabase client keeps the session in memory. Each browser
session must get its own `SupabaseClient` (see `create_app_components`).
"""

from typing import Any, Callable, Optional

from src.models.transaction import AuthUser
from src.services.auth.interface import (
    AuthError,
    AuthServiceInterface,
    AuthStateCallback,
    InvalidCredentialsError,
    SessionMissingError,
)
from src.services.storage.supabase_store import SupabaseClient


def _to_auth_user(user: Any) -> Optional[AuthUser]:
    """Convert a Supabase user object to an AuthUser."""
    if user is None:
        return None
    return AuthUser(
        id=str(user.id),
        email=getattr(user, "email", None),
        metadata=dict(getattr(user, "user_metadata", None) or {}),
    )


class SupabaseAuthService(AuthServiceInterface):
    """
    Authentication through the Supabase auth API.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    @property
    def _auth(self):
        return self._client.connect().auth

    def _redirect_url(self, recovery: bool = False) -> str:
        site_url = self._client.settings.site_url.rstrip("/") + "/"
        return f"{site_url}?type=recovery" if recovery else site_url

    async def get_current_user(self) -> Optional[AuthUser]:
        try:
            session = self._auth.get_session()
        except Exception as e:
            raise AuthError(f"Failed to read session: {e}")

        if session is None:
            return None
        return _to_auth_user(session.user)

    async def sign_in(self, email: str, password: str) -> AuthUser:
        try:
            response = self._auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except Exception as e:
            raise InvalidCredentialsError(f"Sign in failed: {e}")

        user = _to_auth_user(response.user)
        if user is None:
            raise InvalidCredentialsError("Sign in failed: no user returned")
        return user

    async def sign_up(self, email: str, password: str, full_name: str) -> Optional[AuthUser]:
        try:
            response = self._auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": {"full_name": full_name},
                    "email_redirect_to": self._redirect_url(),
                },
            })
        except Exception as e:
            raise AuthError(f"Sign up failed: {e}")

        return _to_auth_user(response.user)

    async def request_password_reset(self, email: str) -> bool:
        try:
            self._auth.reset_password_for_email(
                email,
                {"redirect_to": self._redirect_url(recovery=True)},
            )
            return True
        except Exception as e:
            raise AuthError(f"Password reset request failed: {e}")

    async def verify_recovery_token(self, token_hash: str) -> AuthUser:
        try:
            response = self._auth.verify_otp({"token_hash": token_hash, "type": "recovery"})
        except Exception as e:
            raise AuthError(f"Recovery link is invalid or expired: {e}")

        user = _to_auth_user(response.user)
        if user is None:
            raise SessionMissingError("Recovery link did not open a session")
        return user

    async def update_password(self, password: str) -> bool:
        try:
            self._auth.update_user({"password": password})
            return True
        except Exception as e:
            raise AuthError(f"Password update failed: {e}")

    async def sign_out(self) -> bool:
        try:
            self._auth.sign_out()
            return True
        except Exception as e:
            raise AuthError(f"Sign out failed: {e}")

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        def _forward(event: Any, session: Any) -> None:
            user = _to_auth_user(session.user) if session is not None else None
            callback(str(getattr(event, "value", event)), user)

        subscription = self._auth.on_auth_state_change(_forward)
        return subscription.unsubscribe
