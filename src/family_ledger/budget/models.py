"""
Budget Domain Models - monthly periods and the money flowing through them

A MonthlyOverview is the accounting period. Budgets are the spending
categories for one period, Expenses are spent against a Budget,
IncomeSources fund the period and Transfers move money between Budgets
(or from a Financial Goal into a Budget).

Key concepts:
- Amount left: budget_amount + transfers in - transfers out - spent
- Master budgets: reusable templates copied into each new month
- Monetary amounts are Decimal, dates are calendar dates
"""

import datetime as dt
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from family_ledger.kernel.records import LedgerRecord
from family_ledger.recurring.models import Frequency


class MonthlyOverview(LedgerRecord):
    """
    A budgeting period (usually one calendar month)

    Invariant: end_date >= start_date (equal dates are allowed)
    """

    name: str
    start_date: date
    end_date: date
    notes: str | None = None

    def contains(self, value: date) -> bool:
        """Check if a date falls inside the period (inclusive)"""
        return self.start_date <= value <= self.end_date


class MasterBudget(LedgerRecord):
    """
    Template category copied into every new month

    Soft-deleted templates keep is_active=False so past months that link
    to them stay intact.
    """

    name: str
    budget_amount: Decimal = Field(ge=0)
    description: str | None = None
    is_active: bool = True
    display_order: int = 0


class Budget(LedgerRecord):
    """
    A spending category with an allocation for one month

    Invariants enforced:
    - budget_amount >= 0
    - name unique within the month (exact match after trimming)
    - override_amount set => override_reason non-empty
    - at most one budget per (month, master_budget_id)
    """

    monthly_overview_id: str
    name: str
    budget_amount: Decimal = Field(ge=0)
    description: str | None = None
    override_amount: Decimal | None = Field(default=None, ge=0)
    override_reason: str | None = None
    master_budget_id: str | None = None


class Expense(LedgerRecord):
    """Money spent against a budget, optionally funding a financial goal"""

    budget_id: str
    amount: Decimal = Field(gt=0)
    date: dt.date
    description: str | None = None
    financial_goal_id: str | None = None
    payment_method: str | None = None
    paid_by: str | None = None
    is_recurring: bool = False
    recurring_frequency: Frequency | None = None


class IncomeSource(LedgerRecord):
    """
    Income received during a month

    When tithe_deduction is set, 10% of the amount is allocated to the
    Tithe budget and 5% to the Offering budget of the same month.
    """

    monthly_overview_id: str
    amount: Decimal = Field(gt=0)
    source: str
    person: str | None = None
    date_paid: date | None = None
    tithe_deduction: bool = False
    notes: str | None = None


class TransferType(str, Enum):
    """
    Kinds of balance movement

    BUDGET_TO_BUDGET: reallocate between two budgets of the same month
    GOAL_TO_BUDGET: spend goal savings through a chosen budget
    GOAL_DRAWDOWN: withdraw goal savings into the month's DrawDown budget
    """

    BUDGET_TO_BUDGET = "budget_to_budget"
    GOAL_TO_BUDGET = "goal_to_budget"
    GOAL_DRAWDOWN = "goal_drawdown"


class Transfer(LedgerRecord):
    """A movement of money that never lets its source go negative"""

    monthly_overview_id: str
    transfer_type: TransferType
    amount: Decimal = Field(gt=0)
    date: dt.date
    from_budget_id: str | None = None
    to_budget_id: str | None = None
    from_goal_id: str | None = None
    description: str | None = None


# ============================================================================
# Derived views
# ============================================================================


class BudgetSummary(BaseModel):
    """
    Budget with its spending computed from linked expenses and transfers

    percent_used is relative to the effective allocation
    (budget_amount + transfers_in - transfers_out) and is 0 when that
    allocation is not positive.
    """

    budget_id: str
    monthly_overview_id: str
    name: str
    budget_amount: Decimal
    transfers_in: Decimal = Decimal("0")
    transfers_out: Decimal = Decimal("0")
    amount_spent: Decimal
    amount_left: Decimal
    percent_used: float

    def effective_amount(self) -> Decimal:
        """Allocation after transfers"""
        return self.budget_amount + self.transfers_in - self.transfers_out

    def is_overspent(self) -> bool:
        return self.amount_left < 0


class MonthlyOverviewSummary(BaseModel):
    """Month totals across income, budgets, expenses and goal movements"""

    monthly_overview_id: str
    name: str
    start_date: date
    end_date: date
    total_income: Decimal
    total_budgeted: Decimal
    total_spent: Decimal
    total_contributions: Decimal = Decimal("0")
    total_drawdowns: Decimal = Decimal("0")
    amount_unallocated: Decimal


class BudgetUtilization(BaseModel):
    """Allocation versus spending across every budget of a month"""

    total_budgeted: Decimal
    total_spent: Decimal
    total_left: Decimal
    percent_used: float
