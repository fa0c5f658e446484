"""
Data Models Package

This package contains all Pydantic models used in the Finance Dashboard.
All data flowing through the system must conform to these schemas.
"""

from src.models.transaction import (
    DEFAULT_CATEGORY,
    TRANSACTION_COLUMNS,
    AuthUser,
    CategoryBucket,
    IdentifierField,
    MonthlySummary,
    Notification,
    NotificationVariant,
    Transaction,
    TransactionFormValues,
    TransactionPayload,
    TransactionStats,
    TransactionType,
    UserContext,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DEFAULT_CATEGORY",
    "TRANSACTION_COLUMNS",
    "AuthUser",
    "CategoryBucket",
    "IdentifierField",
    "MonthlySummary",
    "Notification",
    "NotificationVariant",
    "Transaction",
    "TransactionFormValues",
    "TransactionPayload",
    "TransactionStats",
    "TransactionType",
    "UserContext",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
