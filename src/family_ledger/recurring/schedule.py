"""
Frequency arithmetic for recurring amounts

Converts amounts between frequencies, advances due dates and estimates
loan payoff. All functions are pure.
"""

import calendar
import math
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from family_ledger.recurring.models import Frequency

CENT = Decimal("0.01")

# Average weeks per month for the weekly conversions
_MONTHLY_FACTORS: dict[Frequency, Decimal] = {
    Frequency.WEEKLY: Decimal("4.33"),
    Frequency.BI_WEEKLY: Decimal("2.17"),
    Frequency.MONTHLY: Decimal("1"),
    Frequency.ONE_TIME: Decimal("0"),
}

_MONTHLY_DIVISORS: dict[Frequency, Decimal] = {
    Frequency.QUARTERLY: Decimal("3"),
    Frequency.BI_ANNUALLY: Decimal("6"),
    Frequency.ANNUALLY: Decimal("12"),
}

_YEARLY_FACTORS: dict[Frequency, Decimal] = {
    Frequency.WEEKLY: Decimal("52"),
    Frequency.BI_WEEKLY: Decimal("26"),
    Frequency.MONTHLY: Decimal("12"),
    Frequency.QUARTERLY: Decimal("4"),
    Frequency.BI_ANNUALLY: Decimal("2"),
    Frequency.ANNUALLY: Decimal("1"),
    Frequency.ONE_TIME: Decimal("1"),
}

_MONTH_STEPS: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.BI_ANNUALLY: 6,
    Frequency.ANNUALLY: 12,
}


def to_cents(amount: Decimal) -> Decimal:
    """Round half-up to two decimal places"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def monthly_equivalent(amount: Decimal, frequency: Frequency) -> Decimal:
    """
    Monthly cost of a recurring amount

    One-time amounts do not recur, so they contribute nothing per month.

    Args:
        amount: Amount charged each period
        frequency: How often it is charged

    Returns:
        Monthly equivalent rounded to cents
    """
    if frequency in _MONTHLY_DIVISORS:
        return to_cents(amount / _MONTHLY_DIVISORS[frequency])
    return to_cents(amount * _MONTHLY_FACTORS[frequency])


def yearly_equivalent(amount: Decimal, frequency: Frequency) -> Decimal:
    """Yearly cost of a recurring amount (one-time amounts count once)"""
    return to_cents(amount * _YEARLY_FACTORS[frequency])


def add_months(value: date, months: int, day: int | None = None) -> date:
    """
    Move a date forward by whole months, clamping to the month's last day

    Args:
        value: Starting date
        months: Number of months to move forward
        day: Preferred day of month (defaults to the starting day)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day or value.day, last_day))


def advance(value: date, frequency: Frequency, day: int | None = None) -> date:
    """One period after `value`; one-time schedules do not move"""
    if frequency is Frequency.WEEKLY:
        return value + timedelta(days=7)
    if frequency is Frequency.BI_WEEKLY:
        return value + timedelta(days=14)
    if frequency in _MONTH_STEPS:
        preferred = day if frequency is Frequency.MONTHLY else None
        return add_months(value, _MONTH_STEPS[frequency], preferred)
    return value


def next_due_date(
    frequency: Frequency,
    today: date,
    last_date: date | None = None,
    day: int | None = None,
) -> date:
    """
    Next due date on or after today

    Starts one period after `last_date` (or after today when nothing has
    been paid yet) and keeps advancing while the result is in the past.

    Args:
        frequency: Schedule frequency
        today: Reference date
        last_date: Last payment or collection date, or a start date
        day: Preferred day of month for monthly schedules
    """
    next_date = advance(last_date or today, frequency, day)
    if frequency is Frequency.ONE_TIME:
        return next_date
    while next_date < today:
        next_date = advance(next_date, frequency, day)
    return next_date


def calculate_months_remaining(
    current_balance: Decimal,
    monthly_payment: Decimal,
    interest_rate: Decimal,
) -> int:
    """
    Estimate months left until a loan is paid off

    Uses the amortization formula n = -log(1 - P*r/M) / log(1 + r) with the
    monthly rate r = annual_rate / 100 / 12. When the payment does not cover
    the interest the formula has no solution and the interest-free estimate
    is returned.

    Args:
        current_balance: Outstanding principal (P)
        monthly_payment: Payment per month (M)
        interest_rate: Annual interest rate in percent
    """
    if monthly_payment <= 0 or current_balance <= 0:
        return 0

    simple = math.ceil(current_balance / monthly_payment)
    monthly_rate = float(interest_rate) / 100 / 12
    if monthly_rate == 0:
        return simple

    ratio = 1 - float(current_balance) * monthly_rate / float(monthly_payment)
    if ratio <= 0:
        return simple

    return math.ceil(-math.log(ratio) / math.log(1 + monthly_rate))


def calculate_total_interest_paid(
    original_amount: Decimal,
    current_balance: Decimal,
    total_paid: Decimal,
) -> Decimal:
    """Interest portion of everything paid so far (never negative)"""
    principal_paid = original_amount - current_balance
    return max(Decimal("0"), total_paid - principal_paid)
