"""
Ledger Validation Rules - pure checks run before any write

Every service validates a proposed mutation completely before it touches
the store, so a rejected request never leaves partial state behind. The
functions here are pure: they take plain values, return None when the
rule holds and raise a typed error when it does not.

Boundary policy: a ceiling is inclusive of zero. Spending exactly the
amount left (leaving 0) is allowed; one cent more is rejected.

Target: 100% test coverage
"""

from datetime import date, datetime
from decimal import Decimal

from family_ledger.kernel.errors import (
    DateOutOfRangeError,
    InsufficientFundsError,
    OverspendingError,
    ValidationError,
)


def _as_date(value: date | datetime) -> date:
    """Drop any time-of-day component (comparisons are day-granular)"""
    return value.date() if isinstance(value, datetime) else value


def validate_date_in_range(
    value: date | datetime,
    start_date: date | datetime,
    end_date: date | datetime,
    label: str = "Expense Date",
) -> None:
    """
    Ensure a date falls inside its owning period (inclusive on both ends)

    Args:
        value: Date being recorded
        start_date: First day of the period
        end_date: Last day of the period
        label: Human name of the date field for the error message

    Raises:
        DateOutOfRangeError: If value is before start_date or after end_date
    """
    day, start, end = _as_date(value), _as_date(start_date), _as_date(end_date)
    if day < start or day > end:
        raise DateOutOfRangeError(day, start, end, label)


def validate_no_overspend(
    budget_name: str,
    budget_amount: Decimal,
    amount_spent: Decimal,
    new_amount: Decimal,
) -> None:
    """
    Ensure an expense does not drive a budget's amount left below zero

    For updates, amount_spent must already exclude the expense being
    replaced when it stays in the same budget.

    Args:
        budget_name: Budget name (for the error message)
        budget_amount: Effective allocation of the budget
        amount_spent: Spent so far, excluding the record being replaced
        new_amount: Amount being recorded

    Raises:
        OverspendingError: If budget_amount - amount_spent - new_amount < 0
    """
    if budget_amount - amount_spent - new_amount < 0:
        raise OverspendingError(
            budget_name=budget_name,
            budget_amount=budget_amount,
            current_spent=amount_spent,
            attempted_amount=new_amount,
        )


def validate_positive_amount(
    amount: Decimal | None,
    field: str = "amount",
    label: str = "Amount",
) -> None:
    """
    Ensure an amount is strictly greater than zero

    Raises:
        ValidationError: If amount is missing, zero or negative
    """
    if amount is None or amount <= 0:
        raise ValidationError(f"{label} must be greater than zero", field)


def validate_non_negative_amount(
    amount: Decimal | None,
    field: str = "amount",
    label: str = "Amount",
) -> None:
    """
    Ensure an amount is zero or more (None means "not set" and passes)

    Raises:
        ValidationError: If amount is negative
    """
    if amount is not None and amount < 0:
        raise ValidationError(f"{label} must be non-negative", field)


def validate_date_range_order(
    start_date: date | datetime | None,
    end_date: date | datetime | None,
    field: str = "end_date",
) -> None:
    """
    Ensure a period does not end before it starts

    Equal start and end dates are valid. Missing dates are not checked.

    Raises:
        ValidationError: If end_date < start_date
    """
    if start_date is None or end_date is None:
        return
    if _as_date(end_date) < _as_date(start_date):
        raise ValidationError("End Date must be after Start Date", field)


def validate_required_text(value: str | None, field: str, label: str) -> str:
    """
    Ensure a text field has content and return it trimmed

    Raises:
        ValidationError: If value is missing or blank
    """
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required", field)
    return value.strip()


def validate_override(
    override_amount: Decimal | None,
    override_reason: str | None,
) -> None:
    """
    Ensure a budget override always comes with its justification

    Raises:
        ValidationError: If an override amount has no (non-blank) reason,
            a reason is given without an amount, or the amount is negative
    """
    has_reason = override_reason is not None and override_reason.strip() != ""
    if override_amount is not None:
        validate_non_negative_amount(override_amount, "override_amount", "Override amount")
        if not has_reason:
            raise ValidationError(
                "Override reason is required when an override amount is set",
                "override_reason",
            )
    elif has_reason:
        raise ValidationError(
            "Override reason requires an override amount",
            "override_amount",
        )


def validate_unique_budget_name(name: str, existing_names: list[str]) -> None:
    """
    Ensure a budget name is not already used in the month

    Comparison is exact (case-sensitive) after trimming both sides.

    Raises:
        ValidationError: If the trimmed name is already present
    """
    trimmed = name.strip()
    if any(existing.strip() == trimmed for existing in existing_names):
        raise ValidationError(
            f'A budget named "{trimmed}" already exists for this month',
            "name",
        )


def validate_unique_master_link(master_budget_id: str | None, linked_ids: list[str | None]) -> None:
    """
    Ensure a master budget is copied into a month at most once

    Raises:
        ValidationError: If another budget of the month already links to it
    """
    if master_budget_id is not None and master_budget_id in linked_ids:
        raise ValidationError(
            "This master budget is already used in this month",
            "master_budget_id",
        )


def validate_available_income(
    available_income: Decimal,
    existing_amount: Decimal,
    new_amount: Decimal,
) -> None:
    """
    Ensure a goal contribution fits in the month's available income

    Available income already has every existing contribution subtracted,
    so on edit the record's current amount is added back first: raising
    a contribution from 100 to 120 only needs 20 of headroom.

    Args:
        available_income: Income - budgeted - subscriptions - contributions
        existing_amount: Current amount of the record being edited (0 on create)
        new_amount: Proposed amount

    Raises:
        InsufficientFundsError: If available + existing - new < 0
    """
    headroom = available_income + existing_amount
    if headroom - new_amount < 0:
        raise InsufficientFundsError(
            f"Contribution amount exceeds available income. "
            f"Available: {headroom:.2f}, Attempted: {new_amount:.2f}",
            available=headroom,
            requested=new_amount,
        )


def validate_goal_balance(
    current_amount: Decimal,
    existing_amount: Decimal,
    new_amount: Decimal,
) -> None:
    """
    Ensure a drawdown does not exceed the goal's balance

    Args:
        current_amount: Goal balance (already reduced by the edited record)
        existing_amount: Current amount of the drawdown being edited (0 on create)
        new_amount: Proposed amount

    Raises:
        InsufficientFundsError: If current + existing - new < 0
    """
    headroom = current_amount + existing_amount
    if headroom - new_amount < 0:
        raise InsufficientFundsError(
            f"Drawdown amount exceeds available goal balance. "
            f"Current: {headroom:.2f}, Attempted: {new_amount:.2f}",
            available=headroom,
            requested=new_amount,
        )


def validate_transfer_source(
    available: Decimal,
    amount: Decimal,
    source: str = "budget",
) -> None:
    """
    Ensure a transfer's source holds at least the amount moved

    Args:
        available: Source budget's amount left, or source goal's balance
        amount: Amount being moved
        source: "budget", "goal" or "destination" (selects the message)

    Raises:
        InsufficientFundsError: If available < amount
    """
    if available < amount:
        if source == "goal":
            message = f"Insufficient goal balance. Available: {available:.2f}, Requested: {amount:.2f}"
        elif source == "destination":
            message = (
                "Destination budget has already spent the transferred money. "
                f"Available: {available:.2f}, Requested: {amount:.2f}"
            )
        else:
            message = f"Insufficient amount in source budget. Available: {available:.2f}, Requested: {amount:.2f}"
        raise InsufficientFundsError(message, available=available, requested=amount)
