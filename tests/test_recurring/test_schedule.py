"""
Tests for frequency arithmetic and the recurring invariants

Fun fact: 4.33 is 52 weeks / 12 months rounded - the small error is why
a weekly bill "costs" slightly more some months than others.
"""

from datetime import date
from decimal import Decimal

import pytest

from family_ledger.kernel.errors import ValidationError
from family_ledger.recurring.invariants import (
    validate_collection_day,
    validate_loan_accepts_payments,
    validate_loan_amounts,
    validate_payment_split,
)
from family_ledger.recurring.models import Frequency, LoanStatus
from family_ledger.recurring.schedule import (
    add_months,
    calculate_months_remaining,
    calculate_total_interest_paid,
    monthly_equivalent,
    next_due_date,
    yearly_equivalent,
)


@pytest.mark.parametrize(
    ("amount", "frequency", "expected"),
    [
        ("10", Frequency.WEEKLY, "43.30"),
        ("100", Frequency.BI_WEEKLY, "217.00"),
        ("50", Frequency.MONTHLY, "50.00"),
        ("90", Frequency.QUARTERLY, "30.00"),
        ("60", Frequency.BI_ANNUALLY, "10.00"),
        ("100", Frequency.ANNUALLY, "8.33"),
        ("500", Frequency.ONE_TIME, "0.00"),
    ],
)
def test_monthly_equivalent(amount: str, frequency: Frequency, expected: str) -> None:
    assert monthly_equivalent(Decimal(amount), frequency) == Decimal(expected)


def test_yearly_equivalent_counts_one_time_once() -> None:
    assert yearly_equivalent(Decimal("10"), Frequency.WEEKLY) == Decimal("520.00")
    assert yearly_equivalent(Decimal("15"), Frequency.MONTHLY) == Decimal("180.00")
    assert yearly_equivalent(Decimal("500"), Frequency.ONE_TIME) == Decimal("500.00")


# Dates


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


def test_add_months_prefers_requested_day() -> None:
    assert add_months(date(2025, 2, 28), 1, day=31) == date(2025, 3, 31)


def test_next_due_date_is_one_period_after_last_payment() -> None:
    due = next_due_date(Frequency.MONTHLY, today=date(2025, 1, 20), last_date=date(2025, 1, 15))

    assert due == date(2025, 2, 15)


def test_next_due_date_skips_missed_periods() -> None:
    due = next_due_date(Frequency.MONTHLY, today=date(2025, 3, 10), last_date=date(2025, 1, 15))

    assert due == date(2025, 3, 15)


def test_next_due_date_weekly() -> None:
    due = next_due_date(Frequency.WEEKLY, today=date(2025, 1, 20), last_date=date(2025, 1, 1))

    assert due == date(2025, 1, 22)


def test_next_due_date_without_history_starts_from_today() -> None:
    due = next_due_date(Frequency.QUARTERLY, today=date(2025, 1, 31))

    assert due == date(2025, 4, 30)


def test_one_time_schedule_never_advances() -> None:
    due = next_due_date(Frequency.ONE_TIME, today=date(2025, 6, 1), last_date=date(2025, 1, 1))

    assert due == date(2025, 1, 1)


# Loans


def test_months_remaining_without_interest() -> None:
    assert calculate_months_remaining(Decimal("1000"), Decimal("100"), Decimal("0")) == 10
    assert calculate_months_remaining(Decimal("1050"), Decimal("100"), Decimal("0")) == 11


def test_months_remaining_uses_amortization() -> None:
    # 1% per month: -ln(0.9) / ln(1.01) = 10.59
    assert calculate_months_remaining(Decimal("1000"), Decimal("100"), Decimal("12")) == 11


def test_months_remaining_when_payment_does_not_cover_interest() -> None:
    """Interest of 100/month against a 50 payment falls back to the simple estimate"""
    assert calculate_months_remaining(Decimal("10000"), Decimal("50"), Decimal("12")) == 200


def test_months_remaining_for_paid_off_loan() -> None:
    assert calculate_months_remaining(Decimal("0"), Decimal("100"), Decimal("5")) == 0


def test_total_interest_paid_is_never_negative() -> None:
    assert calculate_total_interest_paid(Decimal("1000"), Decimal("800"), Decimal("250")) == Decimal("50")
    assert calculate_total_interest_paid(Decimal("1000"), Decimal("800"), Decimal("150")) == Decimal("0")


# Invariants


def test_loan_amounts_valid() -> None:
    validate_loan_amounts(Decimal("1000"), Decimal("1000"), Decimal("50"))
    validate_loan_amounts(Decimal("1000"), Decimal("0"), Decimal("50"))


@pytest.mark.parametrize(
    ("original", "balance", "payment", "message"),
    [
        ("0", "0", "50", "Original loan amount must be greater than zero"),
        ("1000", "-1", "50", "Current balance cannot be negative"),
        ("1000", "1000.01", "50", "Current balance cannot exceed original amount"),
        ("1000", "500", "0", "Monthly payment must be greater than zero"),
    ],
)
def test_loan_amounts_invalid(original: str, balance: str, payment: str, message: str) -> None:
    with pytest.raises(ValidationError, match=message):
        validate_loan_amounts(Decimal(original), Decimal(balance), Decimal(payment))


def test_payment_split_allows_a_cent_of_rounding() -> None:
    validate_payment_split(Decimal("100"), Decimal("90"), Decimal("10"))
    validate_payment_split(Decimal("100"), Decimal("90"), Decimal("10.01"))

    with pytest.raises(ValidationError, match="Payment amount must equal principal \\+ interest"):
        validate_payment_split(Decimal("100"), Decimal("90"), Decimal("9"))


def test_payment_split_rejects_negative_parts() -> None:
    with pytest.raises(ValidationError, match="cannot be negative"):
        validate_payment_split(Decimal("100"), Decimal("110"), Decimal("-10"))


@pytest.mark.parametrize("status", [LoanStatus.PAID_OFF, LoanStatus.DEFAULTED, LoanStatus.CLOSED])
def test_only_active_loans_accept_payments(status: LoanStatus) -> None:
    validate_loan_accepts_payments(LoanStatus.ACTIVE)

    with pytest.raises(ValidationError, match="Cannot record payment for non-active loan"):
        validate_loan_accepts_payments(status)


def test_collection_day_bounds() -> None:
    validate_collection_day(None)
    validate_collection_day(1)
    validate_collection_day(31)

    for day in (0, 32):
        with pytest.raises(ValidationError, match="Collection day must be between 1 and 31"):
            validate_collection_day(day)
