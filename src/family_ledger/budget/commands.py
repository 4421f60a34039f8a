"""
Budget Module Commands - what callers ask the budget services to do

Commands only carry types. The business rules (positive amounts, date
ranges, overspending, duplicate names) are checked by the services with
the validation rules in budget.invariants, so every violation surfaces as
a typed ledger error instead of a pydantic one.

Update commands are partial: only fields the caller explicitly sets are
applied, and explicitly setting an optional field to None clears it.
"""

import datetime as dt
from datetime import date
from decimal import Decimal

from pydantic import BaseModel

from family_ledger.recurring.models import Frequency


class CreateMonthlyOverview(BaseModel):
    name: str
    start_date: date
    end_date: date
    notes: str | None = None


class UpdateMonthlyOverview(BaseModel):
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None


class CreateMasterBudget(BaseModel):
    name: str
    budget_amount: Decimal
    description: str | None = None
    is_active: bool = True
    display_order: int | None = None  # None = append after the last template


class UpdateMasterBudget(BaseModel):
    name: str | None = None
    budget_amount: Decimal | None = None
    description: str | None = None
    is_active: bool | None = None
    display_order: int | None = None


class CreateBudget(BaseModel):
    """
    Create a budget category in a month

    Requirements:
    - Month must exist and belong to the caller
    - Name must not already exist in the month
    - override_amount requires a non-empty override_reason (and vice versa)
    """

    monthly_overview_id: str
    name: str
    budget_amount: Decimal
    description: str | None = None
    override_amount: Decimal | None = None
    override_reason: str | None = None
    master_budget_id: str | None = None


class UpdateBudget(BaseModel):
    name: str | None = None
    budget_amount: Decimal | None = None
    description: str | None = None
    override_amount: Decimal | None = None
    override_reason: str | None = None


class CreateExpense(BaseModel):
    """
    Record money spent against a budget

    Requirements:
    - amount > 0
    - date inside the budget's month
    - the budget's amount left must not go below zero
    """

    budget_id: str
    amount: Decimal
    date: dt.date
    description: str | None = None
    financial_goal_id: str | None = None
    payment_method: str | None = None
    paid_by: str | None = None
    is_recurring: bool = False
    recurring_frequency: Frequency | None = None


class UpdateExpense(BaseModel):
    budget_id: str | None = None
    amount: Decimal | None = None
    date: dt.date | None = None
    description: str | None = None
    financial_goal_id: str | None = None
    payment_method: str | None = None
    paid_by: str | None = None
    is_recurring: bool | None = None
    recurring_frequency: Frequency | None = None


class CreateIncomeSource(BaseModel):
    monthly_overview_id: str
    amount: Decimal
    source: str
    person: str | None = None
    date_paid: date | None = None
    tithe_deduction: bool = False
    notes: str | None = None


class UpdateIncomeSource(BaseModel):
    amount: Decimal | None = None
    source: str | None = None
    person: str | None = None
    date_paid: date | None = None
    tithe_deduction: bool | None = None
    notes: str | None = None


class CreateBudgetTransfer(BaseModel):
    """Move part of one budget's amount left into another budget of the same month"""

    monthly_overview_id: str
    from_budget_id: str
    to_budget_id: str
    amount: Decimal
    date: dt.date
    description: str | None = None


class CreateGoalTransfer(BaseModel):
    """Move goal savings into a budget of the month"""

    monthly_overview_id: str
    from_goal_id: str
    to_budget_id: str
    amount: Decimal
    date: dt.date
    description: str | None = None


class CreateGoalDrawdownTransfer(BaseModel):
    """Withdraw goal savings into the month's DrawDown budget"""

    monthly_overview_id: str
    from_goal_id: str
    amount: Decimal
    date: dt.date
    description: str | None = None


class UpdateTransfer(BaseModel):
    amount: Decimal | None = None
    date: dt.date | None = None
    description: str | None = None
