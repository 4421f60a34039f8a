"""
Goal Contribution and Goal Drawdown Services - bounded goal movements

Both follow the same pattern:

1. amount > 0 and the date inside the month
2. a ceiling check: available income for contributions, the goal's
   balance for drawdowns; on edit the record's current amount is added
   back before the new amount is subtracted
3. write the row, then recalculate the goal balance

The ceilings are computed from the rows, not from the goal's cached
current_amount, so they hold even if an earlier recalculation failed.
"""

import datetime as dt
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

from family_ledger.budget.invariants import (
    validate_available_income,
    validate_date_in_range,
    validate_goal_balance,
    validate_positive_amount,
)
from family_ledger.budget.models import MonthlyOverview
from family_ledger.goals.commands import (
    CreateGoalContribution,
    CreateGoalDrawdown,
    UpdateGoalContribution,
    UpdateGoalDrawdown,
)
from family_ledger.goals.models import GoalContribution, GoalDrawdown
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.summaries import SummaryService


class _GoalMovementService(LedgerService, ABC):
    table: str
    resource: str
    date_label: str
    model: type[GoalContribution] | type[GoalDrawdown]

    def __init__(self, *args, summaries: SummaryService, goals: FinancialGoalService, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.goals = goals

    async def _check_amount_and_date(
        self,
        owner_id: str,
        monthly_overview_id: str,
        amount: Decimal | None,
        day: dt.date | None,
    ) -> None:
        validate_positive_amount(amount)
        if day is None:
            raise ValidationError(f"{self.date_label} is required", "date")
        month = MonthlyOverview.from_row(
            await self._owned("monthly_overviews", monthly_overview_id, "Monthly overview", owner_id)
        )
        validate_date_in_range(day, month.start_date, month.end_date, self.date_label)

    @abstractmethod
    async def _check_ceiling(self, financial_goal_id: str, monthly_overview_id: str,
                             existing: Decimal, amount: Decimal) -> None:
        raise NotImplementedError

    async def _create(self, command: CreateGoalContribution | CreateGoalDrawdown) -> Any:
        owner_id = self._user_id()
        await self._check_amount_and_date(owner_id, command.monthly_overview_id, command.amount, command.date)
        await self._owned("financial_goals", command.financial_goal_id, "Financial goal", owner_id)
        await self._check_ceiling(command.financial_goal_id, command.monthly_overview_id, Decimal("0"), command.amount)

        record = self.model(
            **self._record_fields(owner_id),
            financial_goal_id=command.financial_goal_id,
            monthly_overview_id=command.monthly_overview_id,
            amount=command.amount,
            date=command.date,
            notes=command.notes,
        )
        created = self.model.from_row(await self._insert(self.table, record))
        await self.goals.recalculate_quietly(created.financial_goal_id)
        return created

    async def _update_record(self, record_id: str, command: UpdateGoalContribution | UpdateGoalDrawdown) -> Any:
        owner_id = self._user_id()
        current = self.model.from_row(await self._owned(self.table, record_id, self.resource, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        amount = command.amount if "amount" in fields else current.amount
        day = command.date if "date" in fields else current.date
        await self._check_amount_and_date(owner_id, current.monthly_overview_id, amount, day)
        await self._check_ceiling(current.financial_goal_id, current.monthly_overview_id, current.amount, amount)

        updated = self.model.from_row(await self._update(self.table, record_id, changes, self.resource))
        if amount != current.amount:
            await self.goals.recalculate_quietly(updated.financial_goal_id)
        return updated

    async def _remove(self, record_id: str) -> None:
        owner_id = self._user_id()
        current = self.model.from_row(await self._owned(self.table, record_id, self.resource, owner_id))
        await self._delete(self.table, record_id, self.resource)
        await self.goals.recalculate_quietly(current.financial_goal_id)

    async def _get(self, record_id: str) -> Any:
        owner_id = self._user_id()
        return self.model.from_row(await self._owned(self.table, record_id, self.resource, owner_id))

    async def _list(self, financial_goal_id: str | None = None, monthly_overview_id: str | None = None) -> list[Any]:
        owner_id = self._user_id()
        where = {}
        if financial_goal_id is not None:
            where["financial_goal_id"] = financial_goal_id
        if monthly_overview_id is not None:
            where["monthly_overview_id"] = monthly_overview_id
        rows = await self.store.select(self.table, owner_id=owner_id, where=where, order_by="date", descending=True)
        return [self.model.from_row(r) for r in rows]


class GoalContributionService(_GoalMovementService):
    """Funding moved from a month's available income into a goal"""

    service_name = "goal_contribution"
    table = "goal_contributions"
    resource = "Goal contribution"
    date_label = "Contribution Date"
    model = GoalContribution

    async def _check_ceiling(self, financial_goal_id: str, monthly_overview_id: str,
                             existing: Decimal, amount: Decimal) -> None:
        available = await self.summaries.get_available_income_unfloored(monthly_overview_id)
        validate_available_income(available, existing, amount)

    @ledger_operation("create")
    async def create(self, command: CreateGoalContribution) -> GoalContribution:
        """
        Contribute to a goal from the month's available income

        Raises:
            ValidationError: If amount <= 0
            DateOutOfRangeError: If the date is outside the month
            InsufficientFundsError: If the amount exceeds available income
        """
        return await self._create(command)

    async def get_by_id(self, contribution_id: str) -> GoalContribution:
        return await self._get(contribution_id)

    async def get_all(
        self,
        financial_goal_id: str | None = None,
        monthly_overview_id: str | None = None,
    ) -> list[GoalContribution]:
        return await self._list(financial_goal_id, monthly_overview_id)

    async def get_by_goal(self, financial_goal_id: str) -> list[GoalContribution]:
        return await self._list(financial_goal_id=financial_goal_id)

    async def get_by_month(self, monthly_overview_id: str) -> list[GoalContribution]:
        return await self._list(monthly_overview_id=monthly_overview_id)

    async def get_available_income(self, monthly_overview_id: str) -> Decimal:
        """Available income of the month, floored at zero"""
        return await self.summaries.get_available_income(monthly_overview_id)

    @ledger_operation("update")
    async def update(self, contribution_id: str, command: UpdateGoalContribution) -> GoalContribution:
        return await self._update_record(contribution_id, command)

    @ledger_operation("delete")
    async def delete(self, contribution_id: str) -> None:
        await self._remove(contribution_id)


class GoalDrawdownService(_GoalMovementService):
    """Withdrawals from a goal's balance"""

    service_name = "goal_drawdown"
    table = "goal_drawdowns"
    resource = "Goal drawdown"
    date_label = "Drawdown Date"
    model = GoalDrawdown

    async def _check_ceiling(self, financial_goal_id: str, monthly_overview_id: str,
                             existing: Decimal, amount: Decimal) -> None:
        balance = await self.goals.get_balance(financial_goal_id)
        validate_goal_balance(balance, existing, amount)

    @ledger_operation("create")
    async def create(self, command: CreateGoalDrawdown) -> GoalDrawdown:
        """
        Withdraw from a goal

        Raises:
            ValidationError: If amount <= 0
            DateOutOfRangeError: If the date is outside the month
            InsufficientFundsError: If the amount exceeds the goal balance
        """
        return await self._create(command)

    async def get_by_id(self, drawdown_id: str) -> GoalDrawdown:
        return await self._get(drawdown_id)

    async def get_all(
        self,
        financial_goal_id: str | None = None,
        monthly_overview_id: str | None = None,
    ) -> list[GoalDrawdown]:
        return await self._list(financial_goal_id, monthly_overview_id)

    async def get_by_goal(self, financial_goal_id: str) -> list[GoalDrawdown]:
        return await self._list(financial_goal_id=financial_goal_id)

    async def get_by_month(self, monthly_overview_id: str) -> list[GoalDrawdown]:
        return await self._list(monthly_overview_id=monthly_overview_id)

    @ledger_operation("update")
    async def update(self, drawdown_id: str, command: UpdateGoalDrawdown) -> GoalDrawdown:
        return await self._update_record(drawdown_id, command)

    @ledger_operation("delete")
    async def delete(self, drawdown_id: str) -> None:
        await self._remove(drawdown_id)
