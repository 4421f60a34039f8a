"""
Transfer Service - moving money without letting the source go negative

Three kinds:
- budget_to_budget: between two different budgets of the same month
- goal_to_budget: goal savings into a budget of the month
- goal_drawdown: goal savings into the month's "DrawDown" budget, which
  is created on first use

Every kind checks the date against the month before looking at balances.
Goal-sourced transfers reduce the goal balance, so the goal is
recalculated after each write.
"""

import datetime as dt
from decimal import Decimal

from family_ledger.budget.commands import (
    CreateBudget,
    CreateBudgetTransfer,
    CreateGoalDrawdownTransfer,
    CreateGoalTransfer,
    UpdateTransfer,
)
from family_ledger.budget.invariants import (
    validate_date_in_range,
    validate_positive_amount,
    validate_transfer_source,
)
from family_ledger.budget.models import Budget, MonthlyOverview, Transfer, TransferType
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.budgets import BudgetService
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.summaries import SummaryService

TABLE = "transfers"
RESOURCE = "Transfer"
DATE_LABEL = "Transfer Date"

TransferCommand = CreateBudgetTransfer | CreateGoalTransfer | CreateGoalDrawdownTransfer


class TransferService(LedgerService):
    service_name = "transfer"

    def __init__(
        self,
        *args,
        summaries: SummaryService,
        goals: FinancialGoalService,
        budgets: BudgetService,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.goals = goals
        self.budgets = budgets

    async def _check_amount_and_date(
        self, owner_id: str, monthly_overview_id: str, amount: Decimal | None, day: dt.date | None
    ) -> None:
        validate_positive_amount(amount)
        if day is None:
            raise ValidationError(f"{DATE_LABEL} is required", "date")
        month = MonthlyOverview.from_row(
            await self._owned("monthly_overviews", monthly_overview_id, "Monthly overview", owner_id)
        )
        validate_date_in_range(day, month.start_date, month.end_date, DATE_LABEL)

    async def _month_budget(self, budget_id: str, monthly_overview_id: str, owner_id: str, field: str) -> Budget:
        budget = Budget.from_row(await self._owned("budgets", budget_id, "Budget", owner_id))
        if budget.monthly_overview_id != monthly_overview_id:
            raise ValidationError("Budget must belong to the selected month", field)
        return budget

    async def _record(self, owner_id: str, **fields) -> Transfer:
        transfer = Transfer(**self._record_fields(owner_id), **fields)
        return Transfer.from_row(await self._insert(TABLE, transfer))

    async def create(self, command: TransferCommand) -> Transfer:
        """Create a transfer of the kind matching the command"""
        if isinstance(command, CreateBudgetTransfer):
            return await self.create_budget_to_budget(command)
        if isinstance(command, CreateGoalTransfer):
            return await self.create_goal_to_budget(command)
        return await self.create_goal_drawdown(command)

    @ledger_operation("create_budget_to_budget")
    async def create_budget_to_budget(self, command: CreateBudgetTransfer) -> Transfer:
        """
        Reallocate part of one budget's amount left into another

        Raises:
            ValidationError: If amount <= 0, the budgets are the same or not
                in the month
            DateOutOfRangeError: If the date is outside the month
            InsufficientFundsError: If the source's amount left is below the amount
        """
        owner_id = self._user_id()
        await self._check_amount_and_date(owner_id, command.monthly_overview_id, command.amount, command.date)
        if command.from_budget_id == command.to_budget_id:
            raise ValidationError("Source and destination budgets must be different", "to_budget_id")
        await self._month_budget(command.from_budget_id, command.monthly_overview_id, owner_id, "from_budget_id")
        await self._month_budget(command.to_budget_id, command.monthly_overview_id, owner_id, "to_budget_id")

        source = await self.summaries.get_budget_summary(command.from_budget_id)
        validate_transfer_source(source.amount_left, command.amount, "budget")

        return await self._record(
            owner_id,
            monthly_overview_id=command.monthly_overview_id,
            transfer_type=TransferType.BUDGET_TO_BUDGET,
            amount=command.amount,
            date=command.date,
            from_budget_id=command.from_budget_id,
            to_budget_id=command.to_budget_id,
            description=command.description,
        )

    @ledger_operation("create_goal_to_budget")
    async def create_goal_to_budget(self, command: CreateGoalTransfer) -> Transfer:
        """
        Spend goal savings through a budget of the month

        Raises:
            InsufficientFundsError: If the goal balance is below the amount
        """
        owner_id = self._user_id()
        await self._check_amount_and_date(owner_id, command.monthly_overview_id, command.amount, command.date)
        await self._owned("financial_goals", command.from_goal_id, "Financial goal", owner_id)
        await self._month_budget(command.to_budget_id, command.monthly_overview_id, owner_id, "to_budget_id")

        balance = await self.goals.get_balance(command.from_goal_id)
        validate_transfer_source(balance, command.amount, "goal")

        transfer = await self._record(
            owner_id,
            monthly_overview_id=command.monthly_overview_id,
            transfer_type=TransferType.GOAL_TO_BUDGET,
            amount=command.amount,
            date=command.date,
            from_goal_id=command.from_goal_id,
            to_budget_id=command.to_budget_id,
            description=command.description,
        )
        await self.goals.recalculate_quietly(command.from_goal_id)
        return transfer

    @ledger_operation("create_goal_drawdown")
    async def create_goal_drawdown(self, command: CreateGoalDrawdownTransfer) -> Transfer:
        """
        Withdraw goal savings into the month's DrawDown budget

        Raises:
            InsufficientFundsError: If the goal balance is below the amount
        """
        owner_id = self._user_id()
        await self._check_amount_and_date(owner_id, command.monthly_overview_id, command.amount, command.date)
        await self._owned("financial_goals", command.from_goal_id, "Financial goal", owner_id)

        balance = await self.goals.get_balance(command.from_goal_id)
        validate_transfer_source(balance, command.amount, "goal")

        drawdown_budget = await self.ensure_drawdown_budget(command.monthly_overview_id)
        transfer = await self._record(
            owner_id,
            monthly_overview_id=command.monthly_overview_id,
            transfer_type=TransferType.GOAL_DRAWDOWN,
            amount=command.amount,
            date=command.date,
            from_goal_id=command.from_goal_id,
            to_budget_id=drawdown_budget.id,
            description=command.description,
        )
        await self.goals.recalculate_quietly(command.from_goal_id)
        return transfer

    async def ensure_drawdown_budget(self, monthly_overview_id: str) -> Budget:
        """The month's DrawDown budget, created with a zero allocation if absent"""
        existing = await self.budgets.find_by_name(monthly_overview_id, self.policy.drawdown_budget_name)
        if existing is not None:
            return existing
        self.logger.info("Creating drawdown budget", monthly_overview_id=monthly_overview_id)
        return await self.budgets.create(
            CreateBudget(
                monthly_overview_id=monthly_overview_id,
                name=self.policy.drawdown_budget_name,
                budget_amount=Decimal("0"),
                description=self.policy.drawdown_budget_description,
            )
        )

    async def get_by_id(self, transfer_id: str) -> Transfer:
        owner_id = self._user_id()
        return Transfer.from_row(await self._owned(TABLE, transfer_id, RESOURCE, owner_id))

    async def get_all(
        self,
        monthly_overview_id: str | None = None,
        transfer_type: TransferType | None = None,
    ) -> list[Transfer]:
        owner_id = self._user_id()
        where = {}
        if monthly_overview_id is not None:
            where["monthly_overview_id"] = monthly_overview_id
        if transfer_type is not None:
            where["transfer_type"] = transfer_type
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="date", descending=True)
        return [Transfer.from_row(r) for r in rows]

    async def get_by_month(self, monthly_overview_id: str) -> list[Transfer]:
        return await self.get_all(monthly_overview_id=monthly_overview_id)

    async def get_by_goal(self, goal_id: str) -> list[Transfer]:
        owner_id = self._user_id()
        rows = await self.store.select(
            TABLE, owner_id=owner_id, where={"from_goal_id": goal_id}, order_by="date", descending=True
        )
        return [Transfer.from_row(r) for r in rows]

    @ledger_operation("update")
    async def update(self, transfer_id: str, command: UpdateTransfer) -> Transfer:
        """
        Change a transfer's amount, date or description

        The source is re-checked with the transfer's current amount added
        back, so only the increase needs to be covered.
        """
        owner_id = self._user_id()
        current = Transfer.from_row(await self._owned(TABLE, transfer_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        amount = command.amount if "amount" in fields else current.amount
        day = command.date if "date" in fields else current.date
        await self._check_amount_and_date(owner_id, current.monthly_overview_id, amount, day)

        if current.from_goal_id is not None:
            balance = await self.goals.get_balance(current.from_goal_id)
            validate_transfer_source(balance + current.amount, amount, "goal")
        elif current.from_budget_id is not None:
            source = await self.summaries.get_budget_summary(current.from_budget_id)
            validate_transfer_source(source.amount_left + current.amount, amount, "budget")

        if amount < current.amount:
            await self._check_destination(current, current.amount - amount)

        updated = Transfer.from_row(await self._update(TABLE, transfer_id, changes, RESOURCE))
        if amount != current.amount:
            await self.goals.recalculate_quietly(current.from_goal_id)
        return updated

    async def _check_destination(self, current: Transfer, withdrawn: Decimal) -> None:
        """The receiving budget must still hold what a shrink or delete takes back"""
        if current.to_budget_id is None:
            return
        destination = await self.summaries.get_budget_summary(current.to_budget_id)
        validate_transfer_source(destination.amount_left, withdrawn, "destination")

    @ledger_operation("delete")
    async def delete(self, transfer_id: str) -> None:
        """
        Delete a transfer, returning the money to its source

        Raises:
            InsufficientFundsError: If the receiving budget has already
                spent part of the transferred amount
        """
        owner_id = self._user_id()
        current = Transfer.from_row(await self._owned(TABLE, transfer_id, RESOURCE, owner_id))
        await self._check_destination(current, current.amount)
        await self._delete(TABLE, transfer_id, RESOURCE)
        await self.goals.recalculate_quietly(current.from_goal_id)
