"""
Integration tests for the flows, over in-memory backend services.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from src.models.transaction import (
    IdentifierField,
    NotificationVariant,
    TransactionFormValues,
    TransactionType,
    UserContext,
)
from src.orchestrator import (
    ACCOUNT_LOOKUP_FAILED_TITLE,
    MISSING_LINK_TITLE,
    create_app_components,
)
from src.services.auth import SIGNED_OUT, USER_UPDATED
from src.services.storage import ConnectionError, StorageError, SupabaseClient


def run(coro):
    return asyncio.run(coro)


def form(**overrides) -> TransactionFormValues:
    values = {
        "establishment": "Padaria",
        "amount": "12,50",
        "type": TransactionType.EXPENSE,
        "category": "food",
        "occurred_on": "2024-05-03",
    }
    values.update(overrides)
    return TransactionFormValues(**values)


@pytest.fixture
def direct_context(direct_user):
    return UserContext(
        user_id=direct_user.id,
        email=direct_user.email,
        identifier_field=IdentifierField.USER_ID,
        identifier=direct_user.id,
    )


@pytest.fixture
def loaded_flow(dashboard_flow, transaction_storage, direct_context, row_factory):
    uid = direct_context.user_id
    transaction_storage.rows = [
        row_factory("1", "2024-05-05", "1000.00", "receita", "salary", user_id=uid),
        row_factory("2", "2024-05-10", "300,00", "despesa", "rent", user_id=uid),
        row_factory("3", 1715385600000, 50, "despesa", None, user_id=uid),
        row_factory("4", "2024-04-28", 20, "despesa", "food", user_id=uid),
        row_factory("5", "garbage", 5, "despesa", "food", user_id=uid),
        row_factory("6", "2024-05-07", 999, "despesa", "food", user_id="someone-else"),
    ]
    assert run(dashboard_flow.load(direct_context)) is None
    return dashboard_flow


class TestAuthFlow:
    """Tests for sign-in, sign-up and password recovery."""

    def test_sign_in_success(self, auth_flow, auth_service):
        """Test valid credentials open a session."""
        user, notification = run(auth_flow.sign_in("ana@example.com", "secret123"))
        assert user is not None
        assert notification.variant == NotificationVariant.SUCCESS
        assert auth_service.current.email == "ana@example.com"

    def test_sign_in_wrong_password(self, auth_flow, auth_service):
        """Test invalid credentials give an error notification."""
        user, notification = run(auth_flow.sign_in("ana@example.com", "nope"))
        assert user is None
        assert notification.is_error
        assert auth_service.current is None

    def test_sign_up_stores_full_name(self, auth_flow, auth_service):
        """Test sign-up keeps the full name in metadata."""
        notification = run(auth_flow.sign_up("new@example.com", "secret123", " Bia "))
        assert notification.variant == NotificationVariant.SUCCESS
        assert auth_service.accounts["new@example.com"][1].full_name == "Bia"

    def test_sign_up_short_password(self, auth_flow):
        """Test sign-up enforces the minimum length."""
        assert run(auth_flow.sign_up("new@example.com", "abc", "Bia")).is_error

    def test_password_reset_request(self, auth_flow, auth_service):
        """Test a reset email is requested."""
        notification = run(auth_flow.request_password_reset("ana@example.com"))
        assert notification.variant == NotificationVariant.SUCCESS
        assert auth_service.reset_requests == ["ana@example.com"]

    def test_recovery_and_update_password(self, auth_flow, auth_service):
        """Test a recovery link opens a session and the password changes."""
        auth_service.recovery_tokens["hash-ana"] = "ana@example.com"
        user, _ = run(auth_flow.restore_recovery_session("hash-ana"))
        assert user is not None
        assert auth_service.current.email == "ana@example.com"

        updated, notification = run(auth_flow.update_password("newpass", "other"))
        assert updated is False
        assert notification.is_error

        updated, _ = run(auth_flow.update_password("newpass", "newpass"))
        assert updated is True
        assert auth_service.accounts["ana@example.com"][0] == "newpass"

    def test_invalid_recovery_link(self, auth_flow):
        """Test unknown tokens are reported."""
        user, notification = run(auth_flow.restore_recovery_session("unknown"))
        assert user is None
        assert notification.is_error

    def test_recovery_link_without_token(self, auth_flow):
        """Test a link with no token hash is rejected before the backend call."""
        user, notification = run(auth_flow.restore_recovery_session(""))
        assert user is None
        assert notification.is_error

    def test_recovery_token_is_single_use(self, auth_flow, auth_service):
        """Test a token hash opens a session only once."""
        auth_service.recovery_tokens["hash-1"] = "ana@example.com"
        first, _ = run(auth_flow.restore_recovery_session("hash-1"))
        second, notification = run(auth_flow.restore_recovery_session("hash-1"))
        assert first is not None
        assert second is None
        assert notification.is_error

    def test_update_password_without_recovery_session(self, auth_flow):
        """Test a password update with no session reports an error."""
        updated, notification = run(auth_flow.update_password("newpass", "newpass"))
        assert updated is False
        assert notification.is_error


class TestSessionFlow:
    """Tests for session bootstrap."""

    def test_no_session(self, session_flow):
        """Test no user gives no context and no notification."""
        assert run(session_flow.bootstrap()) == (None, None)

    def test_direct_account(self, session_flow, auth_service, direct_user):
        """Test a direct account is keyed by user_id."""
        auth_service.current = direct_user
        context, notification = run(session_flow.bootstrap())
        assert notification is None
        assert context.is_admin is False
        assert context.identifier_field == IdentifierField.USER_ID
        assert context.identifier == direct_user.id
        assert context.full_name == "Ana"

    def test_admin_with_link(self, session_flow, auth_service, admin_user):
        """Test an admin is keyed by the linked JID with a phone."""
        auth_service.current = admin_user
        context, notification = run(session_flow.bootstrap())
        assert notification is None
        assert context.is_admin is True
        assert context.identifier_field == IdentifierField.USER
        assert context.identifier == "5511999999999@s.whatsapp.net"
        assert context.phone_e164 == "+5511999999999"

    def test_admin_metadata_fallback(self, session_flow, auth_service, account_storage, admin_user):
        """Test the user metadata JID is used when the links table has none."""
        account_storage.links.clear()
        auth_service.current = admin_user.model_copy(
            update={"metadata": {"whatsapp_jid": "5521888888888@s.whatsapp.net"}}
        )
        context, _ = run(session_flow.bootstrap())
        assert context.identifier == "5521888888888@s.whatsapp.net"
        assert context.phone_e164 == "+5521888888888"

    def test_admin_without_link(self, session_flow, auth_service, account_storage, admin_user):
        """Test an unlinked admin keeps the session and gets an alert."""
        account_storage.links.clear()
        auth_service.current = admin_user
        context, notification = run(session_flow.bootstrap())
        assert context is not None
        assert context.has_identifier is False
        assert notification.title == MISSING_LINK_TITLE

    def test_role_check_failure_is_reported(
        self, session_flow, dashboard_flow, auth_service, account_storage, transaction_storage, admin_user
    ):
        """Test a failed role lookup gives an error and no context to write with."""
        account_storage.fail_with = "rpc down"
        auth_service.current = admin_user
        context, notification = run(session_flow.bootstrap())
        assert context is None
        assert notification is not None
        assert notification.is_error
        assert notification.title == ACCOUNT_LOOKUP_FAILED_TITLE
        assert "rpc down" in notification.description

        run(dashboard_flow.load(context))
        _, create_notification = run(dashboard_flow.create(form()))
        assert create_notification.is_error
        assert transaction_storage.rows == []

    def test_link_lookup_failure_is_reported(
        self, session_flow, auth_service, account_storage, admin_user, monkeypatch
    ):
        """Test a failed links table read is not replaced by the metadata JID."""
        async def broken_lookup(user_id):
            raise StorageError("links table down")

        monkeypatch.setattr(account_storage, "get_linked_identifier", broken_lookup)
        auth_service.current = admin_user.model_copy(
            update={"metadata": {"whatsapp_jid": "5521888888888@s.whatsapp.net"}}
        )
        context, notification = run(session_flow.bootstrap())
        assert context is None
        assert notification.title == ACCOUNT_LOOKUP_FAILED_TITLE


class TestDashboardLoad:
    """Tests for fetching and aggregating."""

    def test_load_scoped_and_sorted(self, loaded_flow):
        """Test only the account's rows are loaded, newest first."""
        ids = [t.id for t in loaded_flow.state.transactions]
        assert "6" not in ids
        assert ids[:4] == ["3", "2", "1", "4"]

    def test_load_normalizes(self, loaded_flow):
        """Test loose backend values are normalized."""
        by_id = {t.id: t for t in loaded_flow.state.transactions}
        assert by_id["2"].amount == Decimal("300.00")
        assert by_id["3"].category == "uncategorized"

    def test_summary_and_buckets(self, loaded_flow, reference):
        """Test monthly aggregation over the loaded rows."""
        summary = loaded_flow.summary(reference)
        assert summary.balance == Decimal("650.00")
        buckets = loaded_flow.category_buckets(reference)
        assert sum(b.total for b in buckets) == Decimal("1350.00")

    def test_load_failure_keeps_state(self, loaded_flow, transaction_storage):
        """Test a failed reload leaves the list as it was."""
        before = list(loaded_flow.state.transactions)
        transaction_storage.fail_with = "network down"
        notification = run(loaded_flow.load())
        assert notification.is_error
        assert loaded_flow.state.transactions == before

    def test_unlinked_admin_gets_empty_list(self, dashboard_flow):
        """Test nothing is fetched without an identifier."""
        context = UserContext(user_id="uid", is_admin=True)
        assert run(dashboard_flow.load(context)) is None
        assert dashboard_flow.state.transactions == []
        assert dashboard_flow.state.identifier_missing is True

    def test_sign_out_event_clears_state(self, loaded_flow):
        """Test the auth subscriber drops cached rows."""
        loaded_flow.handle_auth_event(SIGNED_OUT)
        assert loaded_flow.state.transactions == []
        assert loaded_flow.state.context is None

    def test_sign_in_event_clears_state(self, loaded_flow, auth_flow, auth_service):
        """Test a new sign-in drops the previous account's rows."""
        auth_service.on_auth_state_change(loaded_flow.handle_auth_event)
        run(auth_flow.sign_in("admin@example.com", "secret123"))
        assert loaded_flow.state.context is None
        assert loaded_flow.state.transactions == []
        assert loaded_flow.state.loaded is False

    def test_user_updated_event_forces_bootstrap(self, loaded_flow):
        """Test a user update drops the context but keeps the rows."""
        count = len(loaded_flow.state.transactions)
        loaded_flow.handle_auth_event(USER_UPDATED)
        assert loaded_flow.state.context is None
        assert loaded_flow.state.loaded is False
        assert len(loaded_flow.state.transactions) == count


class TestDashboardMutations:
    """Tests for create, update, delete and month reset."""

    def test_create_prepends(self, loaded_flow, transaction_storage, direct_context):
        """Test a created row is stored with owner columns and prepended."""
        created, notification = run(loaded_flow.create(form(amount="-12,50")))
        assert notification.variant == NotificationVariant.SUCCESS
        assert created.amount == Decimal("12.50")
        assert loaded_flow.state.transactions[0].id == created.id
        stored = transaction_storage.rows[-1]
        assert stored["user_id"] == direct_context.user_id
        assert "user" not in stored

    def test_create_admin_row_owner_columns(self, dashboard_flow, transaction_storage):
        """Test admin rows carry user, user_id and phone."""
        context = UserContext(
            user_id="uid-admin",
            is_admin=True,
            identifier_field=IdentifierField.USER,
            identifier="5511999999999@s.whatsapp.net",
            phone_e164="+5511999999999",
        )
        run(dashboard_flow.load(context))
        run(dashboard_flow.create(form()))
        stored = transaction_storage.rows[-1]
        assert stored["user"] == "5511999999999@s.whatsapp.net"
        assert stored["user_id"] == "uid-admin"
        assert stored["phone_e164"] == "+5511999999999"

    def test_create_invalid_form(self, loaded_flow, transaction_storage):
        """Test validation errors block the insert."""
        count = len(transaction_storage.rows)
        created, notification = run(loaded_flow.create(form(establishment="")))
        assert created is None
        assert notification.is_error
        assert len(transaction_storage.rows) == count

    def test_create_without_identifier(self, dashboard_flow):
        """Test mutations need a linked identifier."""
        run(dashboard_flow.load(UserContext(user_id="uid", is_admin=True)))
        created, notification = run(dashboard_flow.create(form()))
        assert created is None
        assert notification.title == MISSING_LINK_TITLE
        assert run(dashboard_flow.delete("1")).title == MISSING_LINK_TITLE
        assert run(dashboard_flow.reset_month()).title == MISSING_LINK_TITLE

    def test_create_backend_failure(self, loaded_flow, transaction_storage):
        """Test a backend failure leaves the list untouched."""
        before = list(loaded_flow.state.transactions)
        transaction_storage.fail_with = "insert failed"
        created, notification = run(loaded_flow.create(form()))
        assert created is None
        assert notification.is_error
        assert "insert failed" in notification.description
        assert loaded_flow.state.transactions == before

    def test_update_replaces(self, loaded_flow):
        """Test the updated row replaces the local one."""
        updated, notification = run(loaded_flow.update("2", form(establishment="Aluguel", amount="310")))
        assert notification.variant == NotificationVariant.SUCCESS
        local = next(t for t in loaded_flow.state.transactions if t.id == "2")
        assert local.establishment == "Aluguel"
        assert local.amount == Decimal("310")

    def test_update_other_account_not_found(self, loaded_flow):
        """Test rows of another identifier cannot be updated."""
        updated, notification = run(loaded_flow.update("6", form()))
        assert updated is None
        assert notification.is_error

    def test_delete_removes(self, loaded_flow, transaction_storage):
        """Test a deleted row disappears locally and in storage."""
        notification = run(loaded_flow.delete("2"))
        assert notification.variant == NotificationVariant.SUCCESS
        assert "2" not in [t.id for t in loaded_flow.state.transactions]
        assert "2" not in [r["id"] for r in transaction_storage.rows]

    def test_reset_month(self, loaded_flow, transaction_storage, reference):
        """Test only this month's rows go; unparseable and other months stay."""
        notification = run(loaded_flow.reset_month(reference))
        assert notification.variant == NotificationVariant.SUCCESS
        assert [t.id for t in loaded_flow.state.transactions] == ["4", "5"]
        assert sorted(r["id"] for r in transaction_storage.rows) == ["4", "5", "6"]

    def test_reset_empty_month(self, loaded_flow, tz):
        """Test nothing is deleted when the month has no rows."""
        notification = run(loaded_flow.reset_month(datetime(2023, 1, 15, tzinfo=tz)))
        assert notification.variant == NotificationVariant.INFO
        assert len(loaded_flow.state.transactions) == 5


class TestExport:
    """Tests for the monthly export handler."""

    def test_export_month(self, loaded_flow, reference):
        """Test the CSV holds this month's rows and the file name."""
        content, filename, notification = run(loaded_flow.export_month(reference))
        assert filename == "transacoes-2024-05.csv"
        assert notification.variant == NotificationVariant.SUCCESS
        lines = content.split("\n")
        assert len(lines) == 4

    def test_export_empty_month(self, loaded_flow, tz):
        """Test an empty month gives a notification and no file."""
        content, filename, notification = run(loaded_flow.export_month(datetime(2023, 1, 15, tzinfo=tz)))
        assert content is None
        assert filename is None
        assert notification.title == "Nothing to export"


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_in_memory_components(self):
        """Test the factory wires the flows without a backend."""
        auth_flow, session_flow, dashboard_flow, client = create_app_components(use_storage=False)
        assert client is None
        assert run(session_flow.bootstrap()) == (None, None)
        assert dashboard_flow.state.transactions == []

    def test_unreachable_backend_raises_storage_error(self, monkeypatch):
        """Test a bad client configuration surfaces as a StorageError."""
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "not-a-jwt")

        def refuse(self):
            raise ConnectionError("Failed to connect to Supabase: Invalid API key")

        monkeypatch.setattr(SupabaseClient, "connect", refuse)
        with pytest.raises(StorageError, match="Invalid API key"):
            create_app_components(use_storage=True)
