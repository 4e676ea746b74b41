"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class NotFoundError(DomainError):
    """Requested entity does not exist or is not owned by the caller."""


class InvalidOperationError(DomainError):
    """Operation is not allowed in the current state of the ledger."""


class ValidationError(InvalidOperationError):
    """Invalid input or failed validation in domain logic."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def debt_not_found(debt_id: int) -> str:
    """Return message for missing debt."""
    return f"Debt {debt_id} not found"


def repayment_not_found(repayment_id: int, debt_id: int) -> str:
    """Return message for missing repayment."""
    return f"Repayment {repayment_id} not found for debt {debt_id}"


def settlement_not_found(settlement_id: int) -> str:
    """Return message for missing settlement."""
    return f"Settlement {settlement_id} not found"


def duplicate_account_name(name: str) -> str:
    return f"Account with name '{name}' already exists"


def duplicate_category(name: str, category_type: str) -> str:
    return f"Category '{name}' ({category_type}) already exists"


def settlement_exceeds_pending(amount, total_pending) -> str:
    """Return message when a settlement would over-settle its pool."""
    return f"Settlement amount ({amount:.2f}) exceeds total pending ({total_pending:.2f})"
