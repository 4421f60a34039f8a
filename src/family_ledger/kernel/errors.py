"""
Custom exceptions for Family Ledger

Every error carries a user-facing message (str(error)), a machine-checkable
code and an HTTP-style status so a transport layer can map it without
inspecting the message text.

Fun fact: Double-entry bookkeeping was first described in print by Luca
Pacioli in 1494. Five centuries later we still refuse to let a ledger go
negative without a good reason!
"""

from datetime import date
from decimal import Decimal


class LedgerError(Exception):
    """Base exception for all Family Ledger errors"""

    code = "LEDGER_ERROR"
    status_code = 500


class UnauthorizedError(LedgerError):
    """Raised when no caller identity could be resolved"""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "You must be logged in to perform this action.") -> None:
        super().__init__(message)


class AccessDeniedError(UnauthorizedError):
    """
    Raised when a record exists but belongs to another owner

    Ownership is checked before any other predicate, so a mismatch is
    reported as an authorization failure instead of a missing record.
    """

    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"You do not have access to this {resource.lower()}.")


class NotFoundError(LedgerError):
    """Raised when a referenced record does not exist"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: str) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f'{resource} with ID "{resource_id}" not found.')


class ValidationError(LedgerError):
    """
    Raised when a structural invariant would be violated

    Examples: non-positive amount, end date before start date, an override
    amount without its reason.
    """

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InsufficientFundsError(ValidationError):
    """Raised when a ceiling (income, goal balance, budget left) is too small"""

    code = "INSUFFICIENT_FUNDS"

    def __init__(
        self,
        message: str,
        available: Decimal,
        requested: Decimal,
        field: str | None = "amount",
    ) -> None:
        self.available = available
        self.requested = requested
        super().__init__(message, field)


class DateOutOfRangeError(ValidationError):
    """Raised when a date falls outside the owning period's bounds"""

    code = "EXPENSE_DATE_OUT_OF_RANGE"

    def __init__(
        self,
        value: date,
        start_date: date,
        end_date: date,
        label: str = "Expense Date",
    ) -> None:
        self.date = value
        self.start_date = start_date
        self.end_date = end_date
        self.label = label
        super().__init__(
            f"The {label} ({value.isoformat()}) must be between the Start Date "
            f"({start_date.isoformat()}) and End Date ({end_date.isoformat()}) "
            "of the associated Monthly Overview.",
            field="date",
        )


class OverspendingError(LedgerError):
    """Raised when an expense would drive a budget's amount left below zero"""

    code = "OVERSPENDING_NOT_ALLOWED"
    status_code = 400

    def __init__(
        self,
        budget_name: str,
        budget_amount: Decimal,
        current_spent: Decimal,
        attempted_amount: Decimal,
    ) -> None:
        self.budget_name = budget_name
        self.budget_amount = budget_amount
        self.current_spent = current_spent
        self.attempted_amount = attempted_amount
        self.available = budget_amount - current_spent
        super().__init__(
            f'Cannot add expense of €{attempted_amount:.2f} to "{budget_name}". '
            f"Budget would be negative. Available: €{self.available:.2f}"
        )


class LedgerStoreError(LedgerError):
    """Raised when the ledger store fails to read or write rows"""

    code = "STORE_ERROR"
    status_code = 500

    def __init__(self, operation: str, table: str, detail: str) -> None:
        self.operation = operation
        self.table = table
        super().__init__(f"Failed to {operation} {table}: {detail}")
