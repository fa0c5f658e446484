"""
Two-Stage Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (establishment, amount, date)
- Amount must be a number
- Date must be parseable
- Errors here BLOCK submission

STAGE 2 - SEMANTIC VALIDATION:
- Suspiciously high amounts
- Dates in the future
- Negative amounts (stored as absolute values)
- These are warnings: the user may still submit

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the payload builder applies the documented normalization
(trim, absolute amount) only after the user submits.
"""

from decimal import Decimal
from typing import Optional

from src.config import AppSettings, get_settings
from src.models.transaction import (
    TransactionFormValues,
    ValidationIssue,
    ValidationResult,
)
from src.parsing import days_from_today, format_currency, parse_amount, parse_timestamp


class TransactionFormValidator:
    """
    Validates the create/edit transaction form.

    Stage 1: Schema validation (blocks submission)
    Stage 2: Semantic validation (warnings only)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        values: TransactionFormValues,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not values.establishment.strip():
            issues.append(ValidationIssue(
                field="establishment",
                issue_type="missing",
                message="Establishment is required",
                severity="error",
                suggested_fix="Enter where the money was spent or received",
            ))
        elif len(values.establishment.strip()) > 200:
            issues.append(ValidationIssue(
                field="establishment",
                issue_type="too_long",
                message="Establishment must be at most 200 characters",
                severity="error",
            ))

        if not values.amount.strip():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif parse_amount(values.amount) is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount ({values.amount}) is not a valid number",
                severity="error",
                suggested_fix="Use digits with an optional decimal separator, e.g. 99.90",
            ))

        if not values.occurred_on.strip():
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        elif parse_timestamp(values.occurred_on, self._settings.tzinfo) is None:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="invalid_format",
                message=f"Date ({values.occurred_on}) could not be read",
                severity="error",
                suggested_fix="Use the YYYY-MM-DD format",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        values: TransactionFormValues,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Only runs after stage 1 passed, so amount and date are parseable.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        amount = parse_amount(values.amount)

        if amount is not None and amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative_value",
                message="Negative amounts are saved as positive values",
                severity="warning",
                suggested_fix="Use the type field to mark an expense",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount is not None and abs(amount) > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_currency(abs(amount))}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if amount is not None and amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message="Amount is zero",
                severity="warning",
            ))

        days_ahead = days_from_today(values.occurred_on, self._settings.tzinfo)
        if days_ahead is not None and days_ahead > self._settings.future_date_tolerance_days:
            issues.append(ValidationIssue(
                field="occurred_on",
                issue_type="future_date",
                message=f"Date ({values.occurred_on}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(self, values: TransactionFormValues) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(values)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(values)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            can_submit=schema_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Generate a short summary of validation results for the UI."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if not result.schema_valid:
            lines.append("Please fix the following before saving:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


class PasswordValidator:
    """Validates the new-password form shown after a recovery link."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(self, password: str, confirmation: str) -> list[ValidationIssue]:
        """
        Check a new password.

        Returns the blocking issues; an empty list means the password is accepted.
        """
        if not password:
            return [ValidationIssue(
                field="password",
                issue_type="missing",
                message="Enter a new password to continue",
                severity="error",
            )]

        if password != confirmation:
            return [ValidationIssue(
                field="confirmation",
                issue_type="mismatch",
                message="Passwords do not match",
                severity="error",
            )]

        min_length = self._settings.min_password_length
        if len(password) < min_length:
            return [ValidationIssue(
                field="password",
                issue_type="too_short",
                message=f"Password must have at least {min_length} characters",
                severity="error",
            )]

        return []
