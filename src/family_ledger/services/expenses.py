"""
Expense Service - money spent against a budget

Validation gates on every write:
1. amount > 0
2. the date lies inside the owning budget's month
3. the budget's amount left stays at or above zero

All three run before the store is touched. Goal-linked expenses feed the
goal balance, so any write that changes the link or the amount triggers a
best-effort recalculation of the goals involved.
"""

import datetime as dt
from decimal import Decimal

from family_ledger.budget.commands import CreateExpense, UpdateExpense
from family_ledger.budget.invariants import (
    validate_date_in_range,
    validate_no_overspend,
    validate_positive_amount,
)
from family_ledger.budget.models import Budget, Expense, MonthlyOverview
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.summaries import SummaryService

TABLE = "expenses"
RESOURCE = "Expense"


class ExpenseService(LedgerService):
    service_name = "expense"

    def __init__(self, *args, summaries: SummaryService, goals: FinancialGoalService, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.goals = goals

    async def _budget_and_month(self, budget_id: str, owner_id: str) -> tuple[Budget, MonthlyOverview]:
        budget = Budget.from_row(await self._owned("budgets", budget_id, "Budget", owner_id))
        month = MonthlyOverview.from_row(
            await self._owned("monthly_overviews", budget.monthly_overview_id, "Monthly overview", owner_id)
        )
        return budget, month

    @ledger_operation("create")
    async def create(self, command: CreateExpense) -> Expense:
        """
        Record an expense

        Raises:
            ValidationError: If amount <= 0
            NotFoundError: If the budget, its month or the linked goal is missing
            DateOutOfRangeError: If the date is outside the budget's month
            OverspendingError: If the budget's amount left would go negative
        """
        owner_id = self._user_id()
        validate_positive_amount(command.amount)

        budget, month = await self._budget_and_month(command.budget_id, owner_id)
        validate_date_in_range(command.date, month.start_date, month.end_date)
        if command.financial_goal_id is not None:
            await self._owned("financial_goals", command.financial_goal_id, "Financial goal", owner_id)

        summary = await self.summaries.get_budget_summary(budget.id)
        validate_no_overspend(budget.name, summary.effective_amount(), summary.amount_spent, command.amount)

        expense = Expense(
            **self._record_fields(owner_id),
            budget_id=command.budget_id,
            amount=command.amount,
            date=command.date,
            description=command.description,
            financial_goal_id=command.financial_goal_id,
            payment_method=command.payment_method,
            paid_by=command.paid_by,
            is_recurring=command.is_recurring,
            recurring_frequency=command.recurring_frequency,
        )
        created = Expense.from_row(await self._insert(TABLE, expense))

        await self.goals.recalculate_quietly(created.financial_goal_id)
        return created

    async def get_by_id(self, expense_id: str) -> Expense:
        owner_id = self._user_id()
        return Expense.from_row(await self._owned(TABLE, expense_id, RESOURCE, owner_id))

    async def get_all(
        self,
        budget_id: str | None = None,
        financial_goal_id: str | None = None,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
    ) -> list[Expense]:
        """The caller's expenses matching the filters, most recent first"""
        owner_id = self._user_id()
        where = {}
        if budget_id is not None:
            where["budget_id"] = budget_id
        if financial_goal_id is not None:
            where["financial_goal_id"] = financial_goal_id
        between = {"date": (start_date, end_date)} if start_date or end_date else None
        rows = await self.store.select(
            TABLE, owner_id=owner_id, where=where, between=between, order_by="date", descending=True
        )
        return [Expense.from_row(r) for r in rows]

    async def get_by_budget(self, budget_id: str) -> list[Expense]:
        return await self.get_all(budget_id=budget_id)

    async def get_by_goal(self, financial_goal_id: str) -> list[Expense]:
        return await self.get_all(financial_goal_id=financial_goal_id)

    async def get_by_date_range(self, start_date: dt.date, end_date: dt.date) -> list[Expense]:
        return await self.get_all(start_date=start_date, end_date=end_date)

    async def get_total_for_budget(self, budget_id: str) -> Decimal:
        return sum((e.amount for e in await self.get_by_budget(budget_id)), Decimal("0"))

    @ledger_operation("update")
    async def update(self, expense_id: str, command: UpdateExpense) -> Expense:
        """
        Update an expense

        The overspend check runs against the budget the expense ends up in:
        the old amount is added back when it stays in the same budget, and
        not counted at all when it moves to another one.

        Raises:
            Same errors as create
        """
        owner_id = self._user_id()
        current = Expense.from_row(await self._owned(TABLE, expense_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        for required in ("budget_id", "amount", "date"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)
        if "is_recurring" in changes and changes["is_recurring"] is None:
            del changes["is_recurring"]

        amount = command.amount if "amount" in fields else current.amount
        budget_id = command.budget_id if "budget_id" in fields else current.budget_id
        day = command.date if "date" in fields else current.date
        goal_id = command.financial_goal_id if "financial_goal_id" in fields else current.financial_goal_id

        validate_positive_amount(amount)
        budget, month = await self._budget_and_month(budget_id, owner_id)
        validate_date_in_range(day, month.start_date, month.end_date)
        if goal_id is not None and goal_id != current.financial_goal_id:
            await self._owned("financial_goals", goal_id, "Financial goal", owner_id)

        summary = await self.summaries.get_budget_summary(budget.id)
        spent_excluding = summary.amount_spent
        if budget.id == current.budget_id:
            spent_excluding -= current.amount
        validate_no_overspend(budget.name, summary.effective_amount(), spent_excluding, amount)

        updated = Expense.from_row(await self._update(TABLE, expense_id, changes, RESOURCE))

        if goal_id != current.financial_goal_id or amount != current.amount:
            for affected in dict.fromkeys([current.financial_goal_id, goal_id]):
                await self.goals.recalculate_quietly(affected)
        return updated

    @ledger_operation("delete")
    async def delete(self, expense_id: str) -> None:
        owner_id = self._user_id()
        current = Expense.from_row(await self._owned(TABLE, expense_id, RESOURCE, owner_id))
        await self._delete(TABLE, expense_id, RESOURCE)
        await self.goals.recalculate_quietly(current.financial_goal_id)
