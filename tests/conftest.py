"""Shared fixtures: in-memory backend, accounts and sample rows."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from src.audit import AuditLogger
from src.config import AppSettings
from src.orchestrator import AuthFlow, DashboardFlow, SessionFlow
from src.services.auth import InMemoryAuthService
from src.services.storage import InMemoryAccountStorage, InMemoryTransactionStorage
from src.validation import PasswordValidator


SAO_PAULO = ZoneInfo("America/Sao_Paulo")


@pytest.fixture
def tz():
    return SAO_PAULO


@pytest.fixture
def reference():
    """A fixed 'now' in the middle of May 2024."""
    return datetime(2024, 5, 15, 12, 0, tzinfo=SAO_PAULO)


@pytest.fixture
def app_settings():
    return AppSettings(timezone="America/Sao_Paulo")


def make_row(
    id: str,
    quando,
    valor,
    tipo: str = "despesa",
    categoria=None,
    estabelecimento: str = "Mercado",
    **extra,
) -> dict:
    """A backend row as returned by the transactions table."""
    row = {
        "id": id,
        "created_at": "2024-05-01T10:00:00+00:00",
        "quando": quando,
        "estabelecimento": estabelecimento,
        "valor": valor,
        "tipo": tipo,
        "categoria": categoria,
        "detalhes": None,
    }
    row.update(extra)
    return row


@pytest.fixture
def row_factory():
    return make_row


@pytest.fixture
def auth_service():
    service = InMemoryAuthService()
    service.add_account("ana@example.com", "secret123", full_name="Ana")
    service.add_account(
        "admin@example.com",
        "secret123",
        full_name="Admin",
    )
    return service


@pytest.fixture
def direct_user(auth_service):
    return auth_service.accounts["ana@example.com"][1]


@pytest.fixture
def admin_user(auth_service):
    return auth_service.accounts["admin@example.com"][1]


@pytest.fixture
def account_storage(admin_user):
    return InMemoryAccountStorage(
        roles={admin_user.id: {"admin"}},
        links={admin_user.id: "5511999999999@s.whatsapp.net"},
    )


@pytest.fixture
def transaction_storage():
    return InMemoryTransactionStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def auth_flow(auth_service, audit_logger, app_settings):
    return AuthFlow(auth_service, audit_logger, PasswordValidator(app_settings))


@pytest.fixture
def session_flow(auth_service, account_storage, audit_logger):
    return SessionFlow(auth_service, account_storage, audit_logger)


@pytest.fixture
def dashboard_flow(transaction_storage, audit_logger, app_settings):
    return DashboardFlow(transaction_storage, audit_logger, settings=app_settings)
