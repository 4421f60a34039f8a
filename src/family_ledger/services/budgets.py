"""
Budget Service - spending categories of a month

Handles budget CRUD with the month-level uniqueness rules and exposes
the Budget Summary reads (amount spent, amount left, percent used) the
UI and the other services rely on.
"""

from decimal import Decimal

from family_ledger.budget.commands import CreateBudget, UpdateBudget
from family_ledger.budget.invariants import (
    validate_non_negative_amount,
    validate_override,
    validate_required_text,
    validate_unique_budget_name,
    validate_unique_master_link,
)
from family_ledger.budget.models import Budget, BudgetSummary, BudgetUtilization
from family_ledger.budget.projections import compute_utilization
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.summaries import SummaryService

TABLE = "budgets"
RESOURCE = "Budget"
ZERO = Decimal("0")


class BudgetService(LedgerService):
    service_name = "budget"

    def __init__(self, *args, summaries: SummaryService, goals: FinancialGoalService, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.goals = goals

    async def _month_budgets(self, monthly_overview_id: str, owner_id: str) -> list[Budget]:
        rows = await self.store.select(
            TABLE,
            owner_id=owner_id,
            where={"monthly_overview_id": monthly_overview_id},
            order_by="name",
        )
        return [Budget.from_row(r) for r in rows]

    @ledger_operation("create")
    async def create(self, command: CreateBudget) -> Budget:
        """
        Create a budget in a month

        Raises:
            NotFoundError: If the month or the linked master budget does not exist
            ValidationError: On a blank or duplicate name, a negative amount,
                an override without its reason, or a master budget already
                used in the month
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        validate_non_negative_amount(command.budget_amount, "budget_amount", "Budget amount")
        validate_override(command.override_amount, command.override_reason)

        await self._owned("monthly_overviews", command.monthly_overview_id, "Monthly overview", owner_id)
        if command.master_budget_id is not None:
            await self._owned("master_budgets", command.master_budget_id, "Master budget", owner_id)

        existing = await self._month_budgets(command.monthly_overview_id, owner_id)
        validate_unique_budget_name(name, [b.name for b in existing])
        validate_unique_master_link(command.master_budget_id, [b.master_budget_id for b in existing])

        budget = Budget(
            **self._record_fields(owner_id),
            monthly_overview_id=command.monthly_overview_id,
            name=name,
            budget_amount=command.budget_amount,
            description=command.description,
            override_amount=command.override_amount,
            override_reason=command.override_reason,
            master_budget_id=command.master_budget_id,
        )
        return Budget.from_row(await self._insert(TABLE, budget))

    async def get_by_id(self, budget_id: str) -> Budget:
        owner_id = self._user_id()
        return Budget.from_row(await self._owned(TABLE, budget_id, RESOURCE, owner_id))

    async def get_all(self, monthly_overview_id: str | None = None) -> list[Budget]:
        """The caller's budgets, optionally limited to one month, ordered by name"""
        owner_id = self._user_id()
        where = {"monthly_overview_id": monthly_overview_id} if monthly_overview_id else None
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="name")
        return [Budget.from_row(r) for r in rows]

    async def get_by_monthly_overview(self, monthly_overview_id: str) -> list[Budget]:
        owner_id = self._user_id()
        await self._owned("monthly_overviews", monthly_overview_id, "Monthly overview", owner_id)
        return await self._month_budgets(monthly_overview_id, owner_id)

    async def find_by_name(self, monthly_overview_id: str, name: str) -> Budget | None:
        """Budget of the month with this name (trimmed, case-insensitive)"""
        owner_id = self._user_id()
        wanted = name.strip().lower()
        for budget in await self._month_budgets(monthly_overview_id, owner_id):
            if budget.name.strip().lower() == wanted:
                return budget
        return None

    # ------------------------------------------------------------------
    # Summary reads
    # ------------------------------------------------------------------

    async def get_summary(self, budget_id: str) -> BudgetSummary:
        return await self.summaries.get_budget_summary(budget_id)

    async def get_summaries(self, monthly_overview_id: str) -> list[BudgetSummary]:
        return await self.summaries.get_budget_summaries(monthly_overview_id)

    async def get_amount_left(self, budget_id: str) -> Decimal:
        return (await self.get_summary(budget_id)).amount_left

    async def has_remaining_funds(self, budget_id: str, amount: Decimal) -> bool:
        """Whether spending `amount` would keep the budget at or above zero"""
        return await self.get_amount_left(budget_id) - amount >= 0

    async def get_overspent_budgets(self, monthly_overview_id: str) -> list[BudgetSummary]:
        return [s for s in await self.get_summaries(monthly_overview_id) if s.is_overspent()]

    async def get_utilization_summary(self, monthly_overview_id: str) -> BudgetUtilization:
        return compute_utilization(await self.get_summaries(monthly_overview_id))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    @ledger_operation("update")
    async def update(self, budget_id: str, command: UpdateBudget) -> Budget:
        """
        Update a budget

        Clearing override_amount also clears override_reason.

        Raises:
            ValidationError: Same rules as create, checked on the merged record
        """
        owner_id = self._user_id()
        current = Budget.from_row(await self._owned(TABLE, budget_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in fields:
            name = validate_required_text(command.name, "name", "Name")
            if name != current.name.strip():
                others = [
                    b.name
                    for b in await self._month_budgets(current.monthly_overview_id, owner_id)
                    if b.id != budget_id
                ]
                validate_unique_budget_name(name, others)
            changes["name"] = name

        if "budget_amount" in fields:
            if command.budget_amount is None:
                raise ValidationError("Budget amount is required", "budget_amount")
            validate_non_negative_amount(command.budget_amount, "budget_amount", "Budget amount")

        override_amount = command.override_amount if "override_amount" in fields else current.override_amount
        override_reason = command.override_reason if "override_reason" in fields else current.override_reason
        if "override_amount" in fields and command.override_amount is None:
            override_reason = None
            changes["override_reason"] = None
        validate_override(override_amount, override_reason)

        return Budget.from_row(await self._update(TABLE, budget_id, changes, RESOURCE))

    async def adjust_amount(self, budget_id: str, delta: Decimal) -> Budget:
        """
        Shift a budget's allocation, never below zero

        Used by the tithe/offering rebalancing; not a user-facing edit.
        """
        owner_id = self._user_id()
        current = Budget.from_row(await self._owned(TABLE, budget_id, RESOURCE, owner_id))
        new_amount = max(ZERO, current.budget_amount + delta)
        return Budget.from_row(
            await self._update(TABLE, budget_id, {"budget_amount": str(new_amount)}, RESOURCE)
        )

    @ledger_operation("delete")
    async def delete(self, budget_id: str) -> None:
        """Delete a budget together with its expenses and transfers"""
        owner_id = self._user_id()
        await self._owned(TABLE, budget_id, RESOURCE, owner_id)
        moved = await self.goals.goals_moved_by(owner_id, [budget_id])
        await self._delete(TABLE, budget_id, RESOURCE)
        await self.goals.recalculate_all_quietly(moved)
