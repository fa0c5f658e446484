"""
Core Data Models for Finance Dashboard

These models define the fixed shapes the rest of the system works with.
Rows from the hosted backend are loosely typed (amounts as text, timestamps
in three different formats, missing categories), so they are normalized
into `Transaction` exactly once, on the way in.

DESIGN DECISION: The backend keeps its Portuguese column names
(quando, estabelecimento, valor, ...). Python code only ever sees the
English field names below; the mapping lives in `from_row` / `to_row`.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.parsing import parse_amount, parse_timestamp, to_form_date


# Columns selected from the transactions table
TRANSACTION_COLUMNS = [
    "id",
    "created_at",
    "quando",
    "user",
    "user_id",
    "phone_e164",
    "estabelecimento",
    "valor",
    "detalhes",
    "tipo",
    "categoria",
]

DEFAULT_CATEGORY = "uncategorized"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Transaction direction.

    Values are the ones stored in the backend `tipo` column.
    """
    INCOME = "receita"
    EXPENSE = "despesa"

    @property
    def label(self) -> str:
        return "Income" if self is TransactionType.INCOME else "Expense"


class IdentifierField(str, Enum):
    """
    Backend column used to scope rows to an account.

    Admin accounts are linked to an external messaging number and their rows
    are keyed by `user`; direct accounts are keyed by `user_id`.
    """
    USER = "user"
    USER_ID = "user_id"


class NotificationVariant(str, Enum):
    """How a notification is rendered in the UI."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    One income/expense record, normalized from a backend row.

    The amount is always non-negative; the sign is implied by `type`.
    `occurred_at` keeps the raw backend value, use `occurred_on` for a date.
    """

    id: str
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="Row creation timestamp as stored"
    )
    occurred_at: Optional[Union[int, float, str]] = Field(
        default=None,
        description="Raw `quando` value (ISO string, epoch s/ms or empty)"
    )
    owner: Optional[str] = Field(
        default=None,
        description="Owning identifier (`user` column, falling back to `user_id`)"
    )
    establishment: str = ""
    amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Absolute amount"
    )
    details: Optional[str] = None
    type: TransactionType = TransactionType.EXPENSE
    category: str = DEFAULT_CATEGORY
    phone_e164: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.is_income else -self.amount

    @property
    def occurred_on(self) -> Optional[datetime]:
        """Parsed `occurred_at`, or None if the stored value is unparseable."""
        return parse_timestamp(self.occurred_at)

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        default_category: str = DEFAULT_CATEGORY,
    ) -> "Transaction":
        """
        Normalize a backend row into a Transaction.

        Never raises for malformed values: unparseable amounts become 0,
        unknown types become expense, blank categories get the default.
        """
        amount = parse_amount(row.get("valor"))
        category = row.get("categoria")
        if category is None or not str(category).strip():
            category = default_category

        owner = row.get("user")
        if owner is None:
            owner = row.get("user_id")

        created_at = row.get("created_at") or datetime.now(timezone.utc).isoformat()

        occurred_at = row.get("quando")
        if occurred_at is not None and not isinstance(occurred_at, (int, float, str)):
            occurred_at = str(occurred_at)

        return cls(
            id=str(row.get("id")),
            created_at=str(created_at),
            occurred_at=occurred_at,
            owner=str(owner) if owner is not None else None,
            establishment=row.get("estabelecimento") or "",
            amount=abs(amount) if amount is not None else Decimal("0"),
            details=row.get("detalhes") or None,
            type=(
                TransactionType.INCOME
                if row.get("tipo") == TransactionType.INCOME.value
                else TransactionType.EXPENSE
            ),
            category=str(category).strip(),
            phone_e164=row.get("phone_e164") or None,
        )


# =============================================================================
# FORM / WRITE MODELS
# =============================================================================

class TransactionFormValues(BaseModel):
    """
    Raw values typed into the create/edit form.

    Everything is text, exactly as entered; validation happens in
    `TransactionFormValidator` before a payload is built.
    """

    establishment: str = ""
    amount: str = ""
    type: TransactionType = TransactionType.EXPENSE
    category: str = ""
    occurred_on: str = ""
    details: str = ""

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionFormValues":
        """Pre-fill the edit form from an existing transaction."""
        category = transaction.category
        if category == DEFAULT_CATEGORY:
            category = ""

        return cls(
            establishment=transaction.establishment,
            amount=str(transaction.amount),
            type=transaction.type,
            category=category,
            occurred_on=to_form_date(transaction.occurred_at),
            details=transaction.details or "",
        )


class TransactionPayload(BaseModel):
    """
    Normalized write payload for insert/update.

    Owner columns (user / user_id / phone_e164) are added by the storage
    layer, since they depend on the account type.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    establishment: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        ge=0,
    )
    type: TransactionType
    category: Optional[str] = None
    occurred_at: str = Field(
        ...,
        min_length=1,
        description="Value written to `quando`"
    )
    details: Optional[str] = None

    @classmethod
    def from_form(cls, values: TransactionFormValues) -> "TransactionPayload":
        """
        Build a payload from validated form values.

        Raises:
            ValueError: If the amount is not a number
        """
        amount = parse_amount(values.amount)
        if amount is None:
            raise ValueError(f"Invalid amount: {values.amount!r}")

        return cls(
            establishment=values.establishment.strip(),
            amount=abs(amount),
            type=values.type,
            category=values.category.strip() or None,
            occurred_at=values.occurred_on.strip(),
            details=values.details.strip() or None,
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to backend column names."""
        return {
            "estabelecimento": self.establishment,
            "valor": float(self.amount),
            "tipo": self.type.value,
            "categoria": self.category,
            "quando": self.occurred_at,
            "detalhes": self.details,
        }


# =============================================================================
# SESSION MODELS
# =============================================================================

class UserContext(BaseModel):
    """
    Who is signed in and which rows belong to them.

    `identifier` is None only for admins without a linked messaging number.
    """

    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    is_admin: bool = False
    identifier_field: IdentifierField = IdentifierField.USER
    identifier: Optional[str] = None
    phone_e164: Optional[str] = None

    @property
    def has_identifier(self) -> bool:
        return bool(self.identifier)

    def owner_columns(self) -> dict[str, Any]:
        """
        Ownership columns written on insert.

        Admin rows carry the linked identifier in `user` plus the auth user id
        (and the phone when known); direct rows only carry `user_id`.
        """
        if self.identifier_field is IdentifierField.USER:
            columns: dict[str, Any] = {
                "user": self.identifier,
                "user_id": self.user_id,
            }
            if self.phone_e164:
                columns["phone_e164"] = self.phone_e164
            return columns
        return {"user_id": self.identifier}


class AuthUser(BaseModel):
    """The authenticated user as reported by the auth service."""

    id: str
    email: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def full_name(self) -> Optional[str]:
        name = self.metadata.get("full_name")
        return name if isinstance(name, str) and name else None

    @property
    def linked_jid(self) -> Optional[str]:
        """Messaging identifier stored in the user metadata, if any."""
        jid = self.metadata.get("whatsapp_jid")
        return jid if isinstance(jid, str) and jid.strip() else None


class Notification(BaseModel):
    """A user-facing message produced by a handler."""

    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.INFO

    @property
    def is_error(self) -> bool:
        return self.variant is NotificationVariant.ERROR

    @classmethod
    def success(cls, title: str, description: str = "") -> "Notification":
        return cls(title=title, description=description, variant=NotificationVariant.SUCCESS)

    @classmethod
    def error(cls, title: str, description: str = "") -> "Notification":
        return cls(title=title, description=description, variant=NotificationVariant.ERROR)

    @classmethod
    def info(cls, title: str, description: str = "") -> "Notification":
        return cls(title=title, description=description, variant=NotificationVariant.INFO)


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class MonthlySummary(BaseModel):
    """Income / expense totals for one calendar month."""

    month_start: datetime
    month_end: datetime
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    income_count: int = 0
    expense_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def transaction_count(self) -> int:
        return self.income_count + self.expense_count


class CategoryBucket(BaseModel):
    """Total for one category and its share of all buckets."""

    category: str
    total: Decimal
    percentage: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
    )
    count: int = 0


class TransactionStats(BaseModel):
    """All-time totals over the loaded transactions."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    income_count: int = 0
    expense_count: int = 0
    unparseable_dates: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, formats)
    Stage 2: Semantic validation (suspicious values)
    """

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    can_submit: bool = Field(
        ...,
        description="Errors block submission, warnings do not"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
