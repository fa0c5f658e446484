"""Form validation package."""

from src.validation.validator import PasswordValidator, TransactionFormValidator

__all__ = ["PasswordValidator", "TransactionFormValidator"]
