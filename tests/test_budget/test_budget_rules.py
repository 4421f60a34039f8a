"""
Tests for the Ledger Validation Rules

These tests verify the pure checks every service runs before writing.
Boundary policy throughout: a ceiling may be reached exactly, never passed.

Target: 100% coverage of budget/invariants.py
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from family_ledger.budget.invariants import (
    validate_available_income,
    validate_date_in_range,
    validate_date_range_order,
    validate_goal_balance,
    validate_no_overspend,
    validate_non_negative_amount,
    validate_override,
    validate_positive_amount,
    validate_required_text,
    validate_transfer_source,
    validate_unique_budget_name,
    validate_unique_master_link,
)
from family_ledger.kernel.errors import (
    DateOutOfRangeError,
    InsufficientFundsError,
    OverspendingError,
    ValidationError,
)

START = date(2025, 1, 1)
END = date(2025, 1, 31)


# Date range


def test_date_in_range_is_inclusive_on_both_ends() -> None:
    validate_date_in_range(START, START, END)
    validate_date_in_range(END, START, END)
    validate_date_in_range(date(2025, 1, 15), START, END)


def test_date_before_start_is_rejected() -> None:
    with pytest.raises(DateOutOfRangeError) as exc_info:
        validate_date_in_range(date(2024, 12, 31), START, END)

    error = exc_info.value
    assert error.code == "EXPENSE_DATE_OUT_OF_RANGE"
    assert error.status_code == 400
    assert error.field == "date"
    assert "The Expense Date (2024-12-31) must be between the Start Date (2025-01-01)" in str(error)


def test_date_after_end_uses_custom_label() -> None:
    with pytest.raises(DateOutOfRangeError, match="Contribution Date"):
        validate_date_in_range(date(2025, 2, 1), START, END, label="Contribution Date")


def test_date_range_ignores_time_of_day() -> None:
    """A datetime late on the last day is still inside the month"""
    validate_date_in_range(datetime(2025, 1, 31, 23, 59), START, END)


# NoOverspend


def test_spending_exactly_the_amount_left_is_allowed() -> None:
    validate_no_overspend("Food", Decimal("100"), Decimal("60"), Decimal("40"))


def test_one_cent_over_the_amount_left_is_rejected() -> None:
    with pytest.raises(OverspendingError) as exc_info:
        validate_no_overspend("Food", Decimal("100"), Decimal("60"), Decimal("40.01"))

    error = exc_info.value
    assert error.code == "OVERSPENDING_NOT_ALLOWED"
    assert error.available == Decimal("40")
    assert error.attempted_amount == Decimal("40.01")
    assert str(error) == (
        'Cannot add expense of €40.01 to "Food". Budget would be negative. Available: €40.00'
    )


# Amounts


@pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-1")])
def test_positive_amount_rejects_missing_zero_and_negative(amount: Decimal | None) -> None:
    with pytest.raises(ValidationError, match="Amount must be greater than zero"):
        validate_positive_amount(amount)


def test_positive_amount_custom_label() -> None:
    with pytest.raises(ValidationError, match="Subscription amount must be greater than zero"):
        validate_positive_amount(Decimal("0"), label="Subscription amount")


def test_non_negative_amount_accepts_zero_and_none() -> None:
    validate_non_negative_amount(Decimal("0"))
    validate_non_negative_amount(None)

    with pytest.raises(ValidationError, match="Budget amount must be non-negative"):
        validate_non_negative_amount(Decimal("-0.01"), "budget_amount", "Budget amount")


# Date order and required text


def test_date_range_order_allows_equal_dates() -> None:
    validate_date_range_order(START, START)
    validate_date_range_order(None, END)
    validate_date_range_order(START, None)


def test_date_range_order_rejects_end_before_start() -> None:
    with pytest.raises(ValidationError, match="End Date must be after Start Date") as exc_info:
        validate_date_range_order(END, START)
    assert exc_info.value.field == "end_date"


def test_required_text_returns_trimmed_value() -> None:
    assert validate_required_text("  Food  ", "name", "Name") == "Food"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_required_text_rejects_blank(value: str | None) -> None:
    with pytest.raises(ValidationError, match="Name is required"):
        validate_required_text(value, "name", "Name")


# Overrides


def test_override_with_reason_is_valid() -> None:
    validate_override(Decimal("500"), "Birthday month")
    validate_override(None, None)


def test_override_without_reason_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Override reason is required") as exc_info:
        validate_override(Decimal("500"), "   ")
    assert exc_info.value.field == "override_reason"


def test_reason_without_override_is_rejected() -> None:
    with pytest.raises(ValidationError, match="requires an override amount"):
        validate_override(None, "No amount")


def test_negative_override_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Override amount must be non-negative"):
        validate_override(Decimal("-5"), "Oops")


# Uniqueness


def test_budget_names_compare_exactly_after_trimming() -> None:
    validate_unique_budget_name("food", ["Food", "Rent"])

    with pytest.raises(ValidationError, match='A budget named "Food" already exists'):
        validate_unique_budget_name(" Food ", ["Food  ", "Rent"])


def test_master_budget_used_once_per_month() -> None:
    validate_unique_master_link(None, [None, None])
    validate_unique_master_link("mb-2", ["mb-1", None])

    with pytest.raises(ValidationError, match="already used in this month"):
        validate_unique_master_link("mb-1", ["mb-1"])


# Ceilings


def test_available_income_adds_back_the_edited_contribution() -> None:
    """Available 200 after an existing 100 contribution: editing it to 300 fits"""
    validate_available_income(Decimal("200"), Decimal("100"), Decimal("300"))

    with pytest.raises(InsufficientFundsError) as exc_info:
        validate_available_income(Decimal("200"), Decimal("100"), Decimal("350"))

    error = exc_info.value
    assert error.code == "INSUFFICIENT_FUNDS"
    assert error.available == Decimal("300")
    assert error.requested == Decimal("350")
    assert "Available: 300.00, Attempted: 350.00" in str(error)


def test_negative_available_income_blocks_contributions() -> None:
    with pytest.raises(InsufficientFundsError):
        validate_available_income(Decimal("-50"), Decimal("0"), Decimal("1"))


def test_goal_balance_ceiling() -> None:
    validate_goal_balance(Decimal("200"), Decimal("0"), Decimal("200"))

    with pytest.raises(InsufficientFundsError, match="Drawdown amount exceeds available goal balance"):
        validate_goal_balance(Decimal("200"), Decimal("0"), Decimal("250"))


def test_transfer_source_messages() -> None:
    validate_transfer_source(Decimal("50"), Decimal("50"))

    with pytest.raises(InsufficientFundsError, match="Insufficient amount in source budget"):
        validate_transfer_source(Decimal("49.99"), Decimal("50"))

    with pytest.raises(InsufficientFundsError, match="Insufficient goal balance"):
        validate_transfer_source(Decimal("10"), Decimal("50"), "goal")
