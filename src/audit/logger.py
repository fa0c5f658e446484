"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of what was sent to the backend
2. Debugging capability
3. Visibility into bad rows (unparseable dates, rejected forms)

The audit logger:
- Is async so flows can await it like any other step
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventBuilder


def configure_logging(level: Optional[str] = None) -> None:
    """Configure stdlib logging and structlog (JSON lines on stdout)."""
    level = (level or get_settings().app.log_level).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured local log. A user id and a
    correlation id can be bound once per dashboard session.
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ):
        self._user_id = user_id
        self._correlation_id = correlation_id
        self._logger = structlog.get_logger("audit")

    def bind(
        self,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Attach a user / correlation id to every following event."""
        self._user_id = user_id
        self._correlation_id = correlation_id

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def correlation_id(self) -> Optional[UUID]:
        return self._correlation_id

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        if event.user_id is None:
            event.user_id = self._user_id
        if event.correlation_id is None:
            event.correlation_id = self._correlation_id

        try:
            log_dict = event.to_log_dict()
            log_dict.pop("event_type")

            if event.severity.value in ("error", "critical"):
                self._logger.error(event.event_type.value, **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning(event.event_type.value, **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug(event.event_type.value, **log_dict)
            else:
                self._logger.info(event.event_type.value, **log_dict)
        except Exception as e:
            # Never let logging break a user flow
            self._logger.error(
                "audit_log_failed",
                audit_event_type=event.event_type.value,
                error=str(e),
            )
            return False

        return True

    async def log_signed_in(self, user_id: str, email: Optional[str]) -> None:
        """Log a successful sign-in."""
        await self.log(AuditEventBuilder.signed_in(user_id=user_id, email=email))

    async def log_signed_out(self) -> None:
        """Log a sign-out."""
        await self.log(AuditEventBuilder.signed_out(user_id=self._user_id))

    async def log_signed_up(self, email: str) -> None:
        """Log an account creation."""
        await self.log(AuditEventBuilder.signed_up(email=email))

    async def log_sign_in_failed(self, email: str, error_message: str) -> None:
        """Log a rejected sign-in."""
        await self.log(AuditEventBuilder.sign_in_failed(
            email=email,
            error_message=error_message,
        ))

    async def log_password_reset_requested(self, email: str) -> None:
        """Log a password reset e-mail request."""
        await self.log(AuditEventBuilder.password_reset_requested(email=email))

    async def log_password_updated(self) -> None:
        """Log a password change."""
        await self.log(AuditEventBuilder.password_updated(user_id=self._user_id))

    async def log_session_resolved(
        self,
        user_id: str,
        is_admin: bool,
        identifier_field: str,
    ) -> None:
        """Log the result of session bootstrap."""
        await self.log(AuditEventBuilder.session_resolved(
            user_id=user_id,
            is_admin=is_admin,
            identifier_field=identifier_field,
        ))

    async def log_identifier_not_linked(self, user_id: str) -> None:
        """Log an admin account without a linked number."""
        await self.log(AuditEventBuilder.identifier_not_linked(user_id=user_id))

    async def log_transactions_fetched(self, count: int) -> None:
        """Log a transaction fetch."""
        await self.log(AuditEventBuilder.transactions_fetched(
            user_id=self._user_id,
            count=count,
        ))

    async def log_transaction_created(
        self,
        transaction_id: str,
        establishment: str,
        amount: str,
    ) -> None:
        """Log a created transaction."""
        await self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            user_id=self._user_id,
            establishment=establishment,
            amount=amount,
        ))

    async def log_transaction_updated(self, transaction_id: str) -> None:
        """Log an updated transaction."""
        await self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            user_id=self._user_id,
        ))

    async def log_transaction_deleted(self, transaction_id: str) -> None:
        """Log a deleted transaction."""
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            user_id=self._user_id,
        ))

    async def log_month_reset(self, month_start: datetime, removed: int) -> None:
        """Log a bulk delete of one month."""
        await self.log(AuditEventBuilder.month_reset(
            user_id=self._user_id,
            month_start=month_start,
            removed=removed,
        ))

    async def log_month_exported(self, filename: str, row_count: int) -> None:
        """Log a CSV export."""
        await self.log(AuditEventBuilder.month_exported(
            user_id=self._user_id,
            filename=filename,
            row_count=row_count,
        ))

    async def log_form_validation_failed(self, issues: list[dict]) -> None:
        """Log a rejected form submission."""
        await self.log(AuditEventBuilder.form_validation_failed(
            issues=issues,
            user_id=self._user_id,
        ))

    async def log_backend_error(self, operation: str, error_message: str) -> None:
        """Log a failed backend call."""
        await self.log(AuditEventBuilder.backend_error(
            operation=operation,
            error_message=error_message,
            user_id=self._user_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an unexpected error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a dashboard session and bind it to the
    AuditLogger so every event of that session can be traced.
    """
    return uuid4()
