"""
Audit Models for Finance Dashboard

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every mutation sent to the backend
2. Debugging information when things go wrong
3. A record of bad data (unparseable timestamps, rejected forms)

DESIGN DECISION: Audit events are emitted, never edited. The hosted backend
is the source of record for transactions; the audit trail only describes
what the dashboard asked it to do.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Authentication
    SIGNED_IN = "signed_in"
    SIGNED_UP = "signed_up"
    SIGNED_OUT = "signed_out"
    SIGN_IN_FAILED = "sign_in_failed"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_UPDATED = "password_updated"

    # Session bootstrap
    SESSION_RESOLVED = "session_resolved"
    IDENTIFIER_NOT_LINKED = "identifier_not_linked"

    # Reads
    TRANSACTIONS_FETCHED = "transactions_fetched"

    # Mutations
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    MONTH_RESET = "month_reset"

    # Export
    MONTH_EXPORTED = "month_exported"

    # Validation
    FORM_VALIDATION_FAILED = "form_validation_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    BACKEND_ERROR = "backend_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Backend ID of the entity this event relates to"
    )

    # Who triggered it
    user_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one dashboard session)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(transaction_id, user_id, amount)
        event = AuditEventBuilder.backend_error("delete_transaction", str(exc))
    """

    @staticmethod
    def signed_in(user_id: str, email: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_IN,
            entity_type="session",
            user_id=user_id,
            description=f"User signed in: {email or user_id}",
            is_user_action=True,
        )

    @staticmethod
    def signed_up(email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_UP,
            entity_type="session",
            description=f"Account created: {email}",
            is_user_action=True,
        )

    @staticmethod
    def signed_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_OUT,
            entity_type="session",
            user_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @staticmethod
    def sign_in_failed(email: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGN_IN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description=f"Sign-in failed for {email}",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def password_reset_requested(email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_RESET_REQUESTED,
            entity_type="session",
            description=f"Password reset requested for {email}",
            is_user_action=True,
        )

    @staticmethod
    def password_updated(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_UPDATED,
            entity_type="session",
            user_id=user_id,
            description="Password updated after recovery",
            is_user_action=True,
        )

    @staticmethod
    def session_resolved(
        user_id: str,
        is_admin: bool,
        identifier_field: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESOLVED,
            entity_type="session",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Session resolved ({'admin' if is_admin else 'direct'} account)",
            details={
                "is_admin": is_admin,
                "identifier_field": identifier_field,
            },
        )

    @staticmethod
    def identifier_not_linked(
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IDENTIFIER_NOT_LINKED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            user_id=user_id,
            correlation_id=correlation_id,
            description="Admin account has no linked messaging number",
        )

    @staticmethod
    def transactions_fetched(
        user_id: Optional[str],
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_FETCHED,
            severity=AuditSeverity.DEBUG,
            entity_type="transaction",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Fetched {count} transactions",
            details={"count": count},
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        user_id: Optional[str],
        establishment: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {establishment} - {amount}",
            details={
                "establishment": establishment,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction updated",
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def month_reset(
        user_id: Optional[str],
        month_start: datetime,
        removed: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Month {month_start:%Y-%m} reset, {removed} transactions removed",
            details={
                "month": month_start.strftime("%Y-%m"),
                "removed": removed,
            },
            is_user_action=True,
        )

    @staticmethod
    def month_exported(
        user_id: Optional[str],
        filename: str,
        row_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_EXPORTED,
            entity_type="export",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Exported {row_count} transactions to {filename}",
            details={
                "filename": filename,
                "row_count": row_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def form_validation_failed(
        issues: list[dict],
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORM_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="form",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Form rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def backend_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKEND_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"Backend call failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
