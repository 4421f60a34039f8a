"""
Recurring Module Commands - loans, loan payments and subscriptions
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from family_ledger.recurring.models import Frequency, LoanStatus, LoanType, SubscriptionStatus


class CreateLoan(BaseModel):
    """
    Register a loan

    current_balance defaults to original_amount for a brand new loan.
    next_payment_date is computed from the frequency when not supplied.
    """

    name: str
    original_amount: Decimal
    monthly_payment: Decimal
    current_balance: Decimal | None = None
    interest_rate: Decimal = Decimal("0")
    payment_frequency: Frequency = Frequency.MONTHLY
    lender: str | None = None
    loan_type: LoanType = LoanType.OTHER
    start_date: date | None = None
    end_date: date | None = None
    next_payment_date: date | None = None
    last_payment_date: date | None = None
    notes: str | None = None


class UpdateLoan(BaseModel):
    name: str | None = None
    original_amount: Decimal | None = None
    monthly_payment: Decimal | None = None
    current_balance: Decimal | None = None
    interest_rate: Decimal | None = None
    payment_frequency: Frequency | None = None
    lender: str | None = None
    loan_type: LoanType | None = None
    start_date: date | None = None
    end_date: date | None = None
    next_payment_date: date | None = None
    last_payment_date: date | None = None
    status: LoanStatus | None = None
    notes: str | None = None


class RecordLoanPayment(BaseModel):
    """principal_amount + interest_amount must equal payment_amount"""

    loan_id: str
    payment_date: date
    payment_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal = Decimal("0")
    notes: str | None = None


class UpdateLoanPayment(BaseModel):
    payment_date: date | None = None
    payment_amount: Decimal | None = None
    principal_amount: Decimal | None = None
    interest_amount: Decimal | None = None
    notes: str | None = None


class CreateSubscription(BaseModel):
    name: str
    amount: Decimal
    frequency: Frequency = Frequency.MONTHLY
    collection_day: int | None = None
    provider: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    next_collection_date: date | None = None
    last_collection_date: date | None = None
    is_essential: bool = False
    category: str | None = None
    notes: str | None = None


class UpdateSubscription(BaseModel):
    name: str | None = None
    amount: Decimal | None = None
    frequency: Frequency | None = None
    collection_day: int | None = None
    provider: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    next_collection_date: date | None = None
    last_collection_date: date | None = None
    paid_this_period: bool | None = None
    status: SubscriptionStatus | None = None
    is_essential: bool | None = None
    category: str | None = None
    notes: str | None = None
