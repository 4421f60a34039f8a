"""
Goal Module Invariants

Balance ceilings for drawdowns live with the other ceiling checks in
budget.invariants; these rules cover the goal records themselves.
"""

from decimal import Decimal

from family_ledger.kernel.errors import ValidationError


def validate_target_amount(target_amount: Decimal | None) -> None:
    """
    Ensure a goal has a positive target

    Raises:
        ValidationError: If target_amount is missing, zero or negative
    """
    if target_amount is None or target_amount <= 0:
        raise ValidationError("Target amount must be greater than zero", "target_amount")


def validate_progress(progress: int | None) -> None:
    """
    Ensure sub-goal progress is a percentage

    Raises:
        ValidationError: If progress is outside [0, 100]
    """
    if progress is not None and not 0 <= progress <= 100:
        raise ValidationError("Progress must be between 0 and 100", "progress")
