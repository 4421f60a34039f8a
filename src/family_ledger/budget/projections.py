"""
Budget Module Projections - derived views over a month's rows

Pure functions that turn budgets, expenses, transfers and income into the
summary figures every service consults before validating a mutation.
They never read the store; services.summaries gathers the rows and calls
them.

Budget Summary: amount_spent, transfers, amount_left, percent_used
Monthly Overview Summary: income, budgeted, spent, unallocated
Available income: the ceiling for goal contributions
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from family_ledger.budget.models import (
    Budget,
    BudgetSummary,
    BudgetUtilization,
    Expense,
    IncomeSource,
    MonthlyOverview,
    MonthlyOverviewSummary,
    Transfer,
)
from family_ledger.recurring.models import Subscription, SubscriptionStatus
from family_ledger.recurring.schedule import monthly_equivalent

ZERO = Decimal("0")


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def _percent(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return round(float(part / whole * 100), 2)


def compute_budget_summary(
    budget: Budget,
    expenses: Iterable[Expense],
    transfers: Iterable[Transfer],
) -> BudgetSummary:
    """
    Compute spent/left figures for one budget

    Only expenses and transfers that reference the budget are counted, so
    callers may pass every row of the month.

    Args:
        budget: The budget
        expenses: Expenses (any budget)
        transfers: Transfers (any budget)

    Returns:
        BudgetSummary with amount_left = budget_amount + in - out - spent
    """
    spent = _total(e.amount for e in expenses if e.budget_id == budget.id)
    transfers = list(transfers)
    transfers_in = _total(t.amount for t in transfers if t.to_budget_id == budget.id)
    transfers_out = _total(t.amount for t in transfers if t.from_budget_id == budget.id)
    effective = budget.budget_amount + transfers_in - transfers_out

    return BudgetSummary(
        budget_id=budget.id,
        monthly_overview_id=budget.monthly_overview_id,
        name=budget.name,
        budget_amount=budget.budget_amount,
        transfers_in=transfers_in,
        transfers_out=transfers_out,
        amount_spent=spent,
        amount_left=effective - spent,
        percent_used=_percent(spent, effective),
    )


def compute_budget_summaries(
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    transfers: Iterable[Transfer],
) -> list[BudgetSummary]:
    """Summaries for several budgets, in the order the budgets were given"""
    expenses = list(expenses)
    transfers = list(transfers)
    return [compute_budget_summary(b, expenses, transfers) for b in budgets]


def compute_utilization(summaries: Iterable[BudgetSummary]) -> BudgetUtilization:
    """Allocation versus spending across a month's budgets"""
    summaries = list(summaries)
    budgeted = _total(s.budget_amount for s in summaries)
    spent = _total(s.amount_spent for s in summaries)
    return BudgetUtilization(
        total_budgeted=budgeted,
        total_spent=spent,
        total_left=budgeted - spent,
        percent_used=_percent(spent, budgeted),
    )


def compute_monthly_summary(
    month: MonthlyOverview,
    incomes: Iterable[IncomeSource],
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    contributions: Iterable[Decimal] = (),
    drawdowns: Iterable[Decimal] = (),
) -> MonthlyOverviewSummary:
    """
    Month totals

    Args:
        month: The monthly overview
        incomes: Income sources of the month
        budgets: Budgets of the month
        expenses: Expenses against those budgets
        contributions: Goal contribution amounts of the month
        drawdowns: Goal drawdown amounts of the month

    Returns:
        MonthlyOverviewSummary with amount_unallocated = income - budgeted
    """
    total_income = _total(i.amount for i in incomes)
    total_budgeted = _total(b.budget_amount for b in budgets)
    return MonthlyOverviewSummary(
        monthly_overview_id=month.id,
        name=month.name,
        start_date=month.start_date,
        end_date=month.end_date,
        total_income=total_income,
        total_budgeted=total_budgeted,
        total_spent=_total(e.amount for e in expenses),
        total_contributions=_total(contributions),
        total_drawdowns=_total(drawdowns),
        amount_unallocated=total_income - total_budgeted,
    )


def subscription_cost_for_period(
    subscriptions: Iterable[Subscription],
    start_date: date,
    end_date: date,
) -> Decimal:
    """
    Monthly-equivalent cost of active subscriptions due inside a period

    A subscription counts when it is Active and its next_collection_date
    falls within [start_date, end_date].
    """
    return _total(
        monthly_equivalent(s.amount, s.frequency)
        for s in subscriptions
        if s.status is SubscriptionStatus.ACTIVE
        and s.next_collection_date is not None
        and start_date <= s.next_collection_date <= end_date
    )


def compute_available_income(
    total_income: Decimal,
    total_budgeted: Decimal,
    subscription_cost: Decimal,
    total_contributions: Decimal,
) -> Decimal:
    """
    Money of the month not yet allocated anywhere

    May be negative when the month is over-allocated; callers that display
    it floor at zero, the contribution ceiling check does not.
    """
    return total_income - total_budgeted - subscription_cost - total_contributions
