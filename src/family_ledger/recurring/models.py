"""
Recurring Commitments - loans and subscriptions

Both are independent of monthly periods: they carry their own frequency
and next due date. Their monthly-equivalent cost feeds the available
income ceiling (subscriptions) and the debt-to-income score (loans).
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from family_ledger.kernel.records import LedgerRecord


class Frequency(str, Enum):
    """How often a recurring amount falls due"""

    WEEKLY = "Weekly"
    BI_WEEKLY = "Bi-Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    BI_ANNUALLY = "Bi-Annually"
    ANNUALLY = "Annually"
    ONE_TIME = "One-Time"


class LoanStatus(str, Enum):
    """
    Loan lifecycle states

    Only ACTIVE loans accept payments and count toward monthly debt.
    """

    ACTIVE = "Active"
    PAID_OFF = "Paid Off"
    DEFAULTED = "Defaulted"
    REFINANCED = "Refinanced"
    CLOSED = "Closed"


class LoanType(str, Enum):
    MORTGAGE = "Mortgage"
    CAR_LOAN = "Car Loan"
    PERSONAL_LOAN = "Personal Loan"
    STUDENT_LOAN = "Student Loan"
    CREDIT_CARD = "Credit Card"
    OTHER = "Other"


class Loan(LedgerRecord):
    """
    A debt being paid down over time

    Invariants enforced:
    - original_amount > 0 and monthly_payment > 0
    - 0 <= current_balance <= original_amount
    """

    name: str
    lender: str | None = None
    loan_type: LoanType = LoanType.OTHER
    original_amount: Decimal = Field(gt=0)
    current_balance: Decimal = Field(ge=0)
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0)
    monthly_payment: Decimal = Field(gt=0)
    payment_frequency: Frequency = Frequency.MONTHLY
    start_date: date | None = None
    end_date: date | None = None
    next_payment_date: date | None = None
    last_payment_date: date | None = None
    status: LoanStatus = LoanStatus.ACTIVE
    notes: str | None = None


class LoanPayment(LedgerRecord):
    """A single payment against a loan, split into principal and interest"""

    loan_id: str
    payment_date: date
    payment_amount: Decimal = Field(gt=0)
    principal_amount: Decimal = Field(ge=0)
    interest_amount: Decimal = Field(ge=0)
    notes: str | None = None


class SubscriptionStatus(str, Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    CANCELLED = "Cancelled"


class Subscription(LedgerRecord):
    """
    A recurring service charge (streaming, insurance, gym)

    Invariants enforced:
    - amount > 0
    - collection_day in [1, 31] when set
    """

    name: str
    provider: str | None = None
    amount: Decimal = Field(gt=0)
    frequency: Frequency = Frequency.MONTHLY
    collection_day: int | None = Field(default=None, ge=1, le=31)
    start_date: date | None = None
    end_date: date | None = None
    next_collection_date: date | None = None
    last_collection_date: date | None = None
    paid_this_period: bool = False
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    is_essential: bool = False
    category: str | None = None
    notes: str | None = None


class SubscriptionBudgetResult(BaseModel):
    """Outcome of turning due subscriptions into budgets for a month"""

    created: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
