"""
Recurring Module Invariants - loans, payments and subscriptions
"""

from decimal import Decimal

from family_ledger.kernel.errors import ValidationError
from family_ledger.recurring.models import LoanStatus


def validate_loan_amounts(
    original_amount: Decimal,
    current_balance: Decimal,
    monthly_payment: Decimal,
) -> None:
    """
    Ensure a loan's figures are consistent

    Raises:
        ValidationError: If original_amount <= 0, current_balance < 0,
            current_balance > original_amount or monthly_payment <= 0
    """
    if original_amount <= 0:
        raise ValidationError("Original loan amount must be greater than zero", "original_amount")
    if current_balance < 0:
        raise ValidationError("Current balance cannot be negative", "current_balance")
    if current_balance > original_amount:
        raise ValidationError("Current balance cannot exceed original amount", "current_balance")
    if monthly_payment <= 0:
        raise ValidationError("Monthly payment must be greater than zero", "monthly_payment")


def validate_payment_split(
    payment_amount: Decimal,
    principal_amount: Decimal,
    interest_amount: Decimal,
    tolerance: Decimal = Decimal("0.01"),
) -> None:
    """
    Ensure a loan payment splits exactly into principal and interest

    Args:
        payment_amount: Total paid
        principal_amount: Part reducing the balance
        interest_amount: Part paying interest
        tolerance: Accepted rounding gap

    Raises:
        ValidationError: If the payment is not positive, a part is negative,
            or the parts do not add up to the payment within tolerance
    """
    if payment_amount <= 0:
        raise ValidationError("Payment amount must be greater than zero", "payment_amount")
    if principal_amount < 0 or interest_amount < 0:
        raise ValidationError("Principal and interest amounts cannot be negative", "principal_amount")
    if abs(principal_amount + interest_amount - payment_amount) > tolerance:
        raise ValidationError("Payment amount must equal principal + interest", "payment_amount")


def validate_loan_accepts_payments(status: LoanStatus) -> None:
    """
    Raises:
        ValidationError: If the loan is not Active
    """
    if status is not LoanStatus.ACTIVE:
        raise ValidationError("Cannot record payment for non-active loan", "loan_id")


def validate_collection_day(collection_day: int | None) -> None:
    """
    Raises:
        ValidationError: If collection_day is set and outside [1, 31]
    """
    if collection_day is not None and not 1 <= collection_day <= 31:
        raise ValidationError("Collection day must be between 1 and 31", "collection_day")
