"""
Summary Service - the derived views every validation consults

Budget Summary and Monthly Overview Summary are recomputed from the rows
on every read, so they are always fresh relative to the latest write.
Services ask this one for amount left and available income right
before validating a mutation.
"""

from decimal import Decimal

from family_ledger.budget.models import (
    Budget,
    BudgetSummary,
    Expense,
    IncomeSource,
    MonthlyOverview,
    MonthlyOverviewSummary,
    Transfer,
)
from family_ledger.budget.projections import (
    compute_available_income,
    compute_budget_summaries,
    compute_budget_summary,
    compute_monthly_summary,
    subscription_cost_for_period,
)
from family_ledger.goals.models import GoalContribution, GoalDrawdown
from family_ledger.recurring.models import Subscription, SubscriptionStatus
from family_ledger.services.base import LedgerService

ZERO = Decimal("0")


class SummaryService(LedgerService):
    service_name = "summary"

    async def _month(self, monthly_overview_id: str, owner_id: str) -> MonthlyOverview:
        row = await self._owned("monthly_overviews", monthly_overview_id, "Monthly overview", owner_id)
        return MonthlyOverview.from_row(row)

    async def _budgets(self, monthly_overview_id: str, owner_id: str) -> list[Budget]:
        rows = await self.store.select(
            "budgets",
            owner_id=owner_id,
            where={"monthly_overview_id": monthly_overview_id},
            order_by="name",
        )
        return [Budget.from_row(r) for r in rows]

    async def _expenses_for(self, budget_ids: set[str], owner_id: str) -> list[Expense]:
        rows = await self.store.select("expenses", owner_id=owner_id)
        return [Expense.from_row(r) for r in rows if r.get("budget_id") in budget_ids]

    async def _transfers(self, monthly_overview_id: str, owner_id: str) -> list[Transfer]:
        rows = await self.store.select(
            "transfers", owner_id=owner_id, where={"monthly_overview_id": monthly_overview_id}
        )
        return [Transfer.from_row(r) for r in rows]

    async def get_budget_summary(self, budget_id: str) -> BudgetSummary:
        """
        Budget Summary for one budget

        Raises:
            UnauthorizedError: If no identity is available
            NotFoundError: If the budget does not exist
            AccessDeniedError: If the budget belongs to someone else
        """
        owner_id = self._user_id()
        budget = Budget.from_row(await self._owned("budgets", budget_id, "Budget", owner_id))
        expenses = await self._expenses_for({budget.id}, owner_id)
        transfers = await self._transfers(budget.monthly_overview_id, owner_id)
        return compute_budget_summary(budget, expenses, transfers)

    async def get_budget_summaries(self, monthly_overview_id: str) -> list[BudgetSummary]:
        """Budget Summaries for every budget of a month, ordered by name"""
        owner_id = self._user_id()
        await self._month(monthly_overview_id, owner_id)
        budgets = await self._budgets(monthly_overview_id, owner_id)
        expenses = await self._expenses_for({b.id for b in budgets}, owner_id)
        transfers = await self._transfers(monthly_overview_id, owner_id)
        return compute_budget_summaries(budgets, expenses, transfers)

    async def get_monthly_summary(self, monthly_overview_id: str) -> MonthlyOverviewSummary:
        """Month totals (income, budgeted, spent, contributions, drawdowns)"""
        owner_id = self._user_id()
        month = await self._month(monthly_overview_id, owner_id)
        where = {"monthly_overview_id": monthly_overview_id}

        incomes = [
            IncomeSource.from_row(r)
            for r in await self.store.select("income_sources", owner_id=owner_id, where=where)
        ]
        budgets = await self._budgets(monthly_overview_id, owner_id)
        expenses = await self._expenses_for({b.id for b in budgets}, owner_id)
        contributions = [
            GoalContribution.from_row(r).amount
            for r in await self.store.select("goal_contributions", owner_id=owner_id, where=where)
        ]
        drawdowns = [
            GoalDrawdown.from_row(r).amount
            for r in await self.store.select("goal_drawdowns", owner_id=owner_id, where=where)
        ]
        return compute_monthly_summary(month, incomes, budgets, expenses, contributions, drawdowns)

    async def get_subscription_cost(self, monthly_overview_id: str) -> Decimal:
        """Monthly-equivalent cost of active subscriptions due inside the month"""
        owner_id = self._user_id()
        month = await self._month(monthly_overview_id, owner_id)
        rows = await self.store.select(
            "subscriptions",
            owner_id=owner_id,
            where={"status": SubscriptionStatus.ACTIVE},
        )
        subscriptions = [Subscription.from_row(r) for r in rows]
        return subscription_cost_for_period(subscriptions, month.start_date, month.end_date)

    async def get_available_income_unfloored(self, monthly_overview_id: str) -> Decimal:
        """
        Income left for goal contributions, possibly negative

        income - budgeted - subscription cost - existing contributions
        """
        summary = await self.get_monthly_summary(monthly_overview_id)
        subscription_cost = await self.get_subscription_cost(monthly_overview_id)
        return compute_available_income(
            summary.total_income,
            summary.total_budgeted,
            subscription_cost,
            summary.total_contributions,
        )

    async def get_available_income(self, monthly_overview_id: str) -> Decimal:
        """Available income for display (never below zero)"""
        return max(ZERO, await self.get_available_income_unfloored(monthly_overview_id))
