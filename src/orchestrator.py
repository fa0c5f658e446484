"""
Main Orchestrator for Finance Dashboard

This module ties together all the components and defines the
end-to-end flows for:
1. Authentication (sign in/up, password recovery, sign out)
2. Session bootstrap (user -> admin check -> identifier resolution)
3. Dashboard handlers (load, create, update, delete, reset month, export)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No mutation is sent without a signed-in user and a resolved identifier
- Backend errors never reach the UI raw; every outcome is a Notification
- Local state is patched only after the backend confirmed the change
- Every step is audited

The in-memory transaction list is a disposable read cache of the
backend. Handlers run one at a time inside a Streamlit script run.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.analytics import (
    category_breakdown,
    current_month_transactions,
    monthly_summary,
    overall_stats,
)
from src.audit import AuditLogger, create_correlation_id
from src.config import AppSettings, get_settings
from src.export import build_csv, export_filename
from src.models.transaction import (
    AuthUser,
    CategoryBucket,
    IdentifierField,
    MonthlySummary,
    Notification,
    Transaction,
    TransactionFormValues,
    TransactionPayload,
    TransactionStats,
    UserContext,
    ValidationResult,
)
from src.parsing import format_currency, is_in_range, month_range, normalize_jid_to_phone
from src.services.auth import (
    SIGNED_IN,
    SIGNED_OUT,
    USER_UPDATED,
    AuthError,
    AuthServiceInterface,
    InMemoryAuthService,
    InvalidCredentialsError,
    SupabaseAuthService,
)
from src.services.storage import (
    AccountStorageInterface,
    IdentifierNotLinkedError,
    InMemoryAccountStorage,
    InMemoryTransactionStorage,
    StorageError,
    SupabaseAccountStorage,
    SupabaseClient,
    SupabaseTransactionStorage,
    TransactionStorageInterface,
)
from src.validation import PasswordValidator, TransactionFormValidator


MISSING_LINK_TITLE = "Account not linked"
MISSING_LINK_DESCRIPTION = (
    "Your account has no linked WhatsApp number yet. "
    "Link a number before adding or changing transactions."
)
ACCOUNT_LOOKUP_FAILED_TITLE = "Could not load your account"


class DashboardState(BaseModel):
    """Per-session dashboard state."""

    context: Optional[UserContext] = None
    transactions: list[Transaction] = Field(default_factory=list)
    loaded: bool = False

    @property
    def identifier_missing(self) -> bool:
        return self.context is not None and not self.context.has_identifier

    def clear(self) -> None:
        self.context = None
        self.transactions = []
        self.loaded = False


class AuthFlow:
    """
    Orchestrates the authentication surface.

    Every method returns a Notification; errors from the backend are
    converted here and never raised to the UI.
    """

    def __init__(
        self,
        auth_service: AuthServiceInterface,
        audit_logger: Optional[AuditLogger] = None,
        password_validator: Optional[PasswordValidator] = None,
    ):
        self._auth = auth_service
        self._audit_logger = audit_logger
        self._password_validator = password_validator or PasswordValidator()

    async def sign_in(self, email: str, password: str) -> tuple[Optional[AuthUser], Notification]:
        """
        Sign in with email and password.

        Returns:
            (user, notification); user is None when the sign-in failed
        """
        email = email.strip()
        if not email or not password:
            return None, Notification.error("Sign in failed", "Enter your email and password.")

        try:
            user = await self._auth.sign_in(email, password)
        except AuthError as e:
            if self._audit_logger:
                await self._audit_logger.log_sign_in_failed(email=email, error_message=str(e))
            description = (
                "Invalid email or password."
                if isinstance(e, InvalidCredentialsError)
                else str(e)
            )
            return None, Notification.error("Sign in failed", description)

        if self._audit_logger:
            self._audit_logger.bind(user_id=user.id, correlation_id=self._audit_logger.correlation_id)
            await self._audit_logger.log_signed_in(user_id=user.id, email=user.email)

        return user, Notification.success("Welcome back", user.full_name or user.email or "")

    async def sign_up(self, email: str, password: str, full_name: str) -> Notification:
        """Register a new account."""
        email = email.strip()
        if not email or not password:
            return Notification.error("Sign up failed", "Enter an email and a password.")

        issues = self._password_validator.validate(password, password)
        if issues:
            return Notification.error("Sign up failed", issues[0].message)

        try:
            await self._auth.sign_up(email, password, full_name.strip())
        except AuthError as e:
            return Notification.error("Sign up failed", str(e))

        if self._audit_logger:
            await self._audit_logger.log_signed_up(email=email)

        return Notification.success(
            "Account created",
            "Check your email to confirm the account, then sign in.",
        )

    async def request_password_reset(self, email: str) -> Notification:
        """Send a password recovery email."""
        email = email.strip()
        if not email:
            return Notification.error("Reset failed", "Enter the email of your account.")

        try:
            await self._auth.request_password_reset(email)
        except AuthError as e:
            return Notification.error("Reset failed", str(e))

        if self._audit_logger:
            await self._audit_logger.log_password_reset_requested(email=email)

        return Notification.success(
            "Email sent",
            "Follow the link in the email to choose a new password.",
        )

    async def restore_recovery_session(self, token_hash: str) -> tuple[Optional[AuthUser], Notification]:
        """Open the session carried by a recovery link's token hash."""
        if not token_hash:
            return None, Notification.error("Invalid recovery link", "The link has no recovery token.")

        try:
            user = await self._auth.verify_recovery_token(token_hash)
        except AuthError as e:
            return None, Notification.error("Invalid recovery link", str(e))

        return user, Notification.info("Choose a new password")

    async def update_password(self, password: str, confirmation: str) -> tuple[bool, Notification]:
        """
        Validate and set a new password.

        Returns:
            (updated, notification)
        """
        issues = self._password_validator.validate(password, confirmation)
        if issues:
            return False, Notification.error("Password not updated", issues[0].message)

        try:
            await self._auth.update_password(password)
        except AuthError as e:
            return False, Notification.error("Password not updated", str(e))

        if self._audit_logger:
            await self._audit_logger.log_password_updated()

        return True, Notification.success("Password updated", "You can now use your new password.")

    async def sign_out(self) -> Notification:
        """End the session."""
        try:
            await self._auth.sign_out()
        except AuthError as e:
            return Notification.error("Sign out failed", str(e))

        if self._audit_logger:
            await self._audit_logger.log_signed_out()

        return Notification.info("Signed out")


class SessionFlow:
    """
    Orchestrates session bootstrap.

    Flow:
    1. Current user from the auth service (no user -> auth page)
    2. Admin check through the `has_role` RPC
    3. Admin: identifier = linked messaging id (table, then user metadata)
    4. Direct account: identifier = user id
    """

    def __init__(
        self,
        auth_service: AuthServiceInterface,
        account_storage: AccountStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        admin_role: Optional[str] = None,
    ):
        self._auth = auth_service
        self._accounts = account_storage
        self._audit_logger = audit_logger
        self._admin_role = admin_role or "admin"

    async def resolve_identifier(self, user: AuthUser) -> str:
        """
        Get the messaging identifier of an admin account.

        Raises:
            IdentifierNotLinkedError: If neither the links table nor the
                user metadata holds one
            StorageError: If the links table cannot be read
        """
        jid = await self._accounts.get_linked_identifier(user.id)
        jid = jid or user.linked_jid
        if not jid:
            raise IdentifierNotLinkedError(f"No messaging identifier linked to user {user.id}")
        return jid.strip()

    async def bootstrap(self) -> tuple[Optional[UserContext], Optional[Notification]]:
        """
        Resolve who is signed in and which rows are theirs.

        Returns:
            (context, notification); context is None without a session.
            An admin without a linked number gets a context with no
            identifier plus an alert notification. A failed role or link
            lookup gives no context and an error notification; the
            account is never guessed to be a direct one.
        """
        try:
            user = await self._auth.get_current_user()
        except AuthError as e:
            return None, Notification.error("Could not read session", str(e))

        if user is None:
            return None, None

        if self._audit_logger:
            self._audit_logger.bind(user_id=user.id, correlation_id=self._audit_logger.correlation_id)

        try:
            is_admin = await self._accounts.has_role(user.id, self._admin_role)
        except StorageError as e:
            return None, await self._lookup_failed("has_role", e)

        context = UserContext(
            user_id=user.id,
            email=user.email,
            full_name=user.full_name,
            is_admin=is_admin,
        )
        notification = None

        if is_admin:
            context.identifier_field = IdentifierField.USER
            try:
                jid = await self.resolve_identifier(user)
                context.identifier = jid
                context.phone_e164 = normalize_jid_to_phone(jid)
            except IdentifierNotLinkedError:
                if self._audit_logger:
                    await self._audit_logger.log_identifier_not_linked(user_id=user.id)
                notification = Notification.error(MISSING_LINK_TITLE, MISSING_LINK_DESCRIPTION)
            except StorageError as e:
                return None, await self._lookup_failed("get_linked_identifier", e)
        else:
            context.identifier_field = IdentifierField.USER_ID
            context.identifier = user.id

        if self._audit_logger:
            await self._audit_logger.log_session_resolved(
                user_id=user.id,
                is_admin=is_admin,
                identifier_field=context.identifier_field.value,
            )

        return context, notification

    async def _lookup_failed(self, operation: str, error: StorageError) -> Notification:
        if self._audit_logger:
            await self._audit_logger.log_backend_error(operation=operation, error_message=str(error))
        return Notification.error(ACCOUNT_LOOKUP_FAILED_TITLE, str(error))


class DashboardFlow:
    """
    Orchestrates the dashboard handlers over one DashboardState.

    Mutations go to the backend first; the local list is patched from
    the row the backend returned. On failure the list is left as it was.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionFormValidator] = None,
        settings: Optional[AppSettings] = None,
        state: Optional[DashboardState] = None,
    ):
        self._storage = transaction_storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app
        self._validator = validator or TransactionFormValidator(self._settings)
        self.state = state or DashboardState()

    @property
    def tz(self):
        return self._settings.tzinfo

    def _missing_link(self) -> Optional[Notification]:
        context = self.state.context
        if context is None or not context.user_id or not context.has_identifier:
            return Notification.error(MISSING_LINK_TITLE, MISSING_LINK_DESCRIPTION)
        return None

    async def _backend_failed(self, operation: str, error: Exception, title: str) -> Notification:
        if self._audit_logger:
            await self._audit_logger.log_backend_error(operation=operation, error_message=str(error))
        return Notification.error(title, str(error))

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self, context: Optional[UserContext] = None) -> Optional[Notification]:
        """
        Fetch the account's transactions into the state.

        Without an identifier the list is empty and nothing is fetched.
        """
        if context is not None:
            self.state.context = context

        context = self.state.context
        if context is None or not context.has_identifier:
            self.state.transactions = []
            self.state.loaded = True
            return None

        try:
            transactions = await self._storage.list_transactions(
                context.identifier_field,
                context.identifier,
            )
        except StorageError as e:
            return await self._backend_failed("list_transactions", e, "Could not load transactions")

        self.state.transactions = transactions
        self.state.loaded = True

        if self._audit_logger:
            await self._audit_logger.log_transactions_fetched(count=len(transactions))

        return None

    def handle_auth_event(self, event: str, user: Optional[AuthUser] = None) -> None:
        """
        Auth state subscriber.

        Sign-out and sign-in drop the cached rows; a user update keeps
        them but drops the context so the next run bootstraps again.
        """
        if event in (SIGNED_OUT, SIGNED_IN):
            self.state.clear()
        elif event == USER_UPDATED:
            self.state.context = None
            self.state.loaded = False

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def validate(self, values: TransactionFormValues) -> ValidationResult:
        return self._validator.validate(values)

    async def _check_form(self, values: TransactionFormValues) -> Optional[Notification]:
        result = self._validator.validate(values)
        if result.can_submit:
            return None

        if self._audit_logger:
            await self._audit_logger.log_form_validation_failed(issues=[
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
                if i.severity == "error"
            ])
        return Notification.error(
            "Check the form",
            self._validator.get_user_friendly_summary(result),
        )

    async def create(
        self,
        values: TransactionFormValues,
    ) -> tuple[Optional[Transaction], Notification]:
        """
        Create a transaction and prepend it to the list.

        Returns:
            (transaction, notification); transaction is None on failure
        """
        missing = self._missing_link()
        if missing:
            return None, missing

        invalid = await self._check_form(values)
        if invalid:
            return None, invalid

        payload = TransactionPayload.from_form(values)
        try:
            created = await self._storage.create_transaction(payload, self.state.context)
        except StorageError as e:
            return None, await self._backend_failed("create_transaction", e, "Could not save transaction")

        self.state.transactions.insert(0, created)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=created.id,
                establishment=created.establishment,
                amount=str(created.amount),
            )

        return created, Notification.success(
            "Transaction added",
            f"{created.establishment}: {format_currency(created.amount)}",
        )

    async def update(
        self,
        transaction_id: str,
        values: TransactionFormValues,
    ) -> tuple[Optional[Transaction], Notification]:
        """
        Update a transaction and replace it in the list.

        Returns:
            (transaction, notification); transaction is None on failure
        """
        missing = self._missing_link()
        if missing:
            return None, missing

        invalid = await self._check_form(values)
        if invalid:
            return None, invalid

        context = self.state.context
        payload = TransactionPayload.from_form(values)
        try:
            updated = await self._storage.update_transaction(
                transaction_id,
                payload,
                context.identifier_field,
                context.identifier,
            )
        except StorageError as e:
            return None, await self._backend_failed("update_transaction", e, "Could not update transaction")

        self.state.transactions = [
            updated if t.id == transaction_id else t
            for t in self.state.transactions
        ]

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(transaction_id=transaction_id)

        return updated, Notification.success("Transaction updated", updated.establishment)

    async def delete(self, transaction_id: str) -> Notification:
        """Delete a transaction and remove it from the list."""
        missing = self._missing_link()
        if missing:
            return missing

        context = self.state.context
        try:
            await self._storage.delete_transaction(
                transaction_id,
                context.identifier_field,
                context.identifier,
            )
        except StorageError as e:
            return await self._backend_failed("delete_transaction", e, "Could not delete transaction")

        self.state.transactions = [
            t for t in self.state.transactions if t.id != transaction_id
        ]

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id=transaction_id)

        return Notification.success("Transaction deleted")

    async def reset_month(self, reference: Optional[datetime] = None) -> Notification:
        """
        Delete every transaction of the current month.

        Locally, rows with an unparseable date are kept.
        """
        missing = self._missing_link()
        if missing:
            return missing

        start, end = month_range(reference, self.tz)
        if not current_month_transactions(self.state.transactions, reference, self.tz):
            return Notification.info("Nothing to reset", "There are no transactions this month.")

        context = self.state.context
        try:
            removed = await self._storage.delete_in_range(
                context.identifier_field,
                context.identifier,
                start,
                end,
            )
        except StorageError as e:
            return await self._backend_failed("delete_in_range", e, "Could not reset the month")

        self.state.transactions = [
            t for t in self.state.transactions
            if not is_in_range(t.occurred_at, start, end, self.tz)
        ]

        if self._audit_logger:
            await self._audit_logger.log_month_reset(month_start=start, removed=removed)

        return Notification.success("Month reset", "This month's transactions were removed.")

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    async def export_month(
        self,
        reference: Optional[datetime] = None,
    ) -> tuple[Optional[str], Optional[str], Notification]:
        """
        Build the CSV of the current month.

        Returns:
            (csv_text, filename, notification); csv_text is None when the
            month has no transactions
        """
        rows = current_month_transactions(self.state.transactions, reference, self.tz)
        if not rows:
            return None, None, Notification.info("Nothing to export", "There are no transactions this month.")

        content = build_csv(rows)
        filename = export_filename(reference, self.tz, self._settings.export_file_prefix)

        if self._audit_logger:
            await self._audit_logger.log_month_exported(filename=filename, row_count=len(rows))

        return content, filename, Notification.success("Export ready", filename)

    def summary(self, reference: Optional[datetime] = None) -> MonthlySummary:
        return monthly_summary(self.state.transactions, reference, self.tz)

    def category_buckets(self, reference: Optional[datetime] = None) -> list[CategoryBucket]:
        rows = current_month_transactions(self.state.transactions, reference, self.tz)
        return category_breakdown(rows)

    def stats(self) -> TransactionStats:
        return overall_stats(self.state.transactions, self.tz)


def create_app_components(
    use_storage: bool = True,
) -> tuple[AuthFlow, SessionFlow, DashboardFlow, Optional[SupabaseClient]]:
    """
    Factory function to create all application components.

    A new Supabase client is created per call; the Streamlit app calls this
    once per browser session so sessions never share auth state.

    Args:
        use_storage: Whether to connect to Supabase.
                    Set to False to run on in-memory storage.

    Returns:
        (auth_flow, session_flow, dashboard_flow, supabase_client)
    """
    settings = get_settings()
    audit_logger = AuditLogger(correlation_id=create_correlation_id())
    client = None

    if use_storage:
        client = SupabaseClient(settings.supabase)
        auth_service = SupabaseAuthService(client)
        account_storage = SupabaseAccountStorage(client)
        transaction_storage = SupabaseTransactionStorage(client, settings.app.default_category)
        admin_role = settings.supabase.admin_role
    else:
        auth_service = InMemoryAuthService()
        account_storage = InMemoryAccountStorage()
        transaction_storage = InMemoryTransactionStorage(default_category=settings.app.default_category)
        admin_role = "admin"

    auth_flow = AuthFlow(
        auth_service=auth_service,
        audit_logger=audit_logger,
        password_validator=PasswordValidator(settings.app),
    )

    session_flow = SessionFlow(
        auth_service=auth_service,
        account_storage=account_storage,
        audit_logger=audit_logger,
        admin_role=admin_role,
    )

    dashboard_flow = DashboardFlow(
        transaction_storage=transaction_storage,
        audit_logger=audit_logger,
        settings=settings.app,
    )

    auth_service.on_auth_state_change(dashboard_flow.handle_auth_event)

    return auth_flow, session_flow, dashboard_flow, client
