"""
Financial Goal Service - savings targets with a reconciled balance

The stored current_amount is a cache of

    base_amount + linked expenses + contributions - drawdowns - transfers out

recalculate_current_amount recomputes it from the rows and is called by
every service that writes a movement touching a goal. Ceiling checks use
get_balance, which computes the same figure without writing.

Fun fact: base_amount exists only so money saved before the ledger was in
use still counts toward the target.
"""

from decimal import Decimal

from family_ledger.budget.invariants import (
    validate_date_range_order,
    validate_non_negative_amount,
    validate_required_text,
)
from family_ledger.budget.models import TransferType
from family_ledger.goals.commands import (
    CreateFinancialGoal,
    CreateSubGoal,
    UpdateFinancialGoal,
    UpdateSubGoal,
)
from family_ledger.goals.invariants import validate_progress, validate_target_amount
from family_ledger.goals.models import FinancialGoal, FinancialGoalWithSubGoals, FinancialSubGoal, GoalStatus
from family_ledger.goals.projections import (
    GoalMovements,
    compute_current_amount,
    derive_base_amount,
    sum_movements,
)
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation

TABLE = "financial_goals"
SUB_TABLE = "financial_sub_goals"
RESOURCE = "Financial goal"
SUB_RESOURCE = "Financial sub-goal"

_GOAL_SOURCED = {TransferType.GOAL_TO_BUDGET.value, TransferType.GOAL_DRAWDOWN.value}


class FinancialGoalService(LedgerService):
    service_name = "financial_goal"

    # ------------------------------------------------------------------
    # Balance reconciliation
    # ------------------------------------------------------------------

    async def get_movements(self, goal_id: str) -> GoalMovements:
        """Sums of every ledger movement touching the goal"""
        owner_id = self._user_id()
        await self._owned(TABLE, goal_id, RESOURCE, owner_id)
        where = {"financial_goal_id": goal_id}

        def amounts(rows: list[dict]) -> list[Decimal]:
            return [Decimal(r["amount"]) for r in rows]

        expenses = await self.store.select("expenses", owner_id=owner_id, where=where)
        contributions = await self.store.select("goal_contributions", owner_id=owner_id, where=where)
        drawdowns = await self.store.select("goal_drawdowns", owner_id=owner_id, where=where)
        transfers = await self.store.select("transfers", owner_id=owner_id, where={"from_goal_id": goal_id})

        return sum_movements(
            linked_expenses=amounts(expenses),
            contributions=amounts(contributions),
            drawdowns=amounts(drawdowns),
            transfers_out=amounts([t for t in transfers if t.get("transfer_type") in _GOAL_SOURCED]),
        )

    async def get_balance(self, goal_id: str) -> Decimal:
        """Reconciled balance, computed without writing"""
        owner_id = self._user_id()
        goal = FinancialGoal.from_row(await self._owned(TABLE, goal_id, RESOURCE, owner_id))
        movements = await self.get_movements(goal_id)
        base = goal.base_amount
        if base is None:
            base = derive_base_amount(goal.current_amount, movements)
        return compute_current_amount(base, movements)

    @ledger_operation("recalculate")
    async def recalculate_current_amount(self, goal_id: str) -> FinancialGoal:
        """
        Recompute and persist current_amount from base_amount and movements

        Idempotent. A legacy goal without base_amount gets one derived from
        its stored balance (max(0, current - movements)), persisted so later
        runs use it.
        """
        owner_id = self._user_id()
        goal = FinancialGoal.from_row(await self._owned(TABLE, goal_id, RESOURCE, owner_id))
        movements = await self.get_movements(goal_id)

        changes: dict[str, str] = {}
        base = goal.base_amount
        if base is None:
            base = derive_base_amount(goal.current_amount, movements)
            changes["base_amount"] = str(base)
            self.logger.info("Derived base amount for legacy goal", goal_id=goal_id, base_amount=str(base))

        current = compute_current_amount(base, movements)
        if current != goal.current_amount or changes:
            changes["current_amount"] = str(current)
            return FinancialGoal.from_row(await self._update(TABLE, goal_id, changes, RESOURCE))
        return goal

    async def recalculate_quietly(self, goal_id: str | None) -> None:
        """Best-effort recalculation used after writes by other services"""
        if goal_id is not None:
            await self._best_effort("goal_recalculation", self.recalculate_current_amount(goal_id))

    async def goals_moved_by(
        self,
        owner_id: str,
        budget_ids: list[str],
        monthly_overview_id: str | None = None,
    ) -> set[str]:
        """
        Goals referenced by rows that deleting these budgets (or this month)
        cascades through

        Collected before the delete so the goals can be recalculated after it.
        """
        goal_ids: set[str | None] = set()
        for budget_id in budget_ids:
            expenses = await self.store.select("expenses", owner_id=owner_id, where={"budget_id": budget_id})
            goal_ids.update(r.get("financial_goal_id") for r in expenses)
            for column in ("from_budget_id", "to_budget_id"):
                transfers = await self.store.select("transfers", owner_id=owner_id, where={column: budget_id})
                goal_ids.update(r.get("from_goal_id") for r in transfers)

        if monthly_overview_id is not None:
            where = {"monthly_overview_id": monthly_overview_id}
            for table in ("goal_contributions", "goal_drawdowns"):
                rows = await self.store.select(table, owner_id=owner_id, where=where)
                goal_ids.update(r.get("financial_goal_id") for r in rows)
            transfers = await self.store.select("transfers", owner_id=owner_id, where=where)
            goal_ids.update(r.get("from_goal_id") for r in transfers)

        return {goal_id for goal_id in goal_ids if goal_id is not None}

    async def recalculate_all_quietly(self, goal_ids: set[str]) -> None:
        for goal_id in sorted(goal_ids):
            await self.recalculate_quietly(goal_id)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    @ledger_operation("create")
    async def create(self, command: CreateFinancialGoal) -> FinancialGoal:
        """
        Create a goal; the initial current_amount becomes its base_amount

        Raises:
            ValidationError: On a blank name, target <= 0, a negative
                initial amount or end_date < start_date
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        validate_target_amount(command.target_amount)
        validate_non_negative_amount(command.current_amount, "current_amount", "Current amount")
        validate_date_range_order(command.start_date, command.end_date)

        goal = FinancialGoal(
            **self._record_fields(owner_id),
            name=name,
            description=command.description,
            target_amount=command.target_amount,
            base_amount=command.current_amount,
            current_amount=command.current_amount,
            start_date=command.start_date,
            end_date=command.end_date,
            status=command.status,
        )
        return FinancialGoal.from_row(await self._insert(TABLE, goal))

    @ledger_operation("get")
    async def get_by_id(self, goal_id: str) -> FinancialGoalWithSubGoals:
        """
        Goal with a fresh balance, its sub-goals and progress

        Recalculation is best-effort; on failure the stored balance is shown.
        """
        owner_id = self._user_id()
        await self._owned(TABLE, goal_id, RESOURCE, owner_id)
        await self.recalculate_quietly(goal_id)

        goal = FinancialGoal.from_row(await self._owned(TABLE, goal_id, RESOURCE, owner_id))
        return FinancialGoalWithSubGoals(
            **goal.model_dump(),
            sub_goals=await self.get_sub_goals(goal_id),
            progress_percent=goal.percent_complete(),
        )

    async def get_all(self, status: GoalStatus | None = None) -> list[FinancialGoal]:
        """The caller's goals (stored balances), newest first"""
        owner_id = self._user_id()
        where = {"status": status} if status is not None else None
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="created_at", descending=True)
        return [FinancialGoal.from_row(r) for r in rows]

    @ledger_operation("update")
    async def update(self, goal_id: str, command: UpdateFinancialGoal) -> FinancialGoal:
        """
        Update a goal

        Setting current_amount directly re-derives base_amount as
        max(0, new - movements) so the balance stays reconciled.
        """
        owner_id = self._user_id()
        current = FinancialGoal.from_row(await self._owned(TABLE, goal_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Name")
        if "target_amount" in fields:
            validate_target_amount(command.target_amount)
        for required in ("start_date", "status"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)
        validate_date_range_order(
            command.start_date if "start_date" in fields else current.start_date,
            command.end_date if "end_date" in fields else current.end_date,
        )

        if "current_amount" in fields:
            if command.current_amount is None:
                raise ValidationError("Current amount is required", "current_amount")
            validate_non_negative_amount(command.current_amount, "current_amount", "Current amount")
            movements = await self.get_movements(goal_id)
            base = derive_base_amount(command.current_amount, movements)
            changes["base_amount"] = str(base)
            changes["current_amount"] = str(compute_current_amount(base, movements))

        return FinancialGoal.from_row(await self._update(TABLE, goal_id, changes, RESOURCE))

    @ledger_operation("delete")
    async def delete(self, goal_id: str) -> None:
        """Delete a goal with its sub-goals, contributions, drawdowns and transfers"""
        owner_id = self._user_id()
        await self._owned(TABLE, goal_id, RESOURCE, owner_id)
        await self._delete(TABLE, goal_id, RESOURCE)

    # ------------------------------------------------------------------
    # Sub-goals
    # ------------------------------------------------------------------

    async def _sync_has_sub_goals(self, goal_id: str) -> None:
        owner_id = self._user_id()
        rows = await self.store.select(SUB_TABLE, owner_id=owner_id, where={"financial_goal_id": goal_id}, limit=1)
        await self._update(TABLE, goal_id, {"has_sub_goals": bool(rows)}, RESOURCE)

    async def get_sub_goals(self, goal_id: str) -> list[FinancialSubGoal]:
        owner_id = self._user_id()
        await self._owned(TABLE, goal_id, RESOURCE, owner_id)
        rows = await self.store.select(
            SUB_TABLE, owner_id=owner_id, where={"financial_goal_id": goal_id}, order_by="created_at"
        )
        return [FinancialSubGoal.from_row(r) for r in rows]

    @ledger_operation("create_sub_goal")
    async def create_sub_goal(self, goal_id: str, command: CreateSubGoal) -> FinancialSubGoal:
        owner_id = self._user_id()
        await self._owned(TABLE, goal_id, RESOURCE, owner_id)
        name = validate_required_text(command.name, "name", "Name")
        validate_progress(command.progress)
        validate_non_negative_amount(command.estimated_cost, "estimated_cost", "Estimated cost")
        validate_date_range_order(command.start_date, command.end_date)

        sub_goal = FinancialSubGoal(
            **self._record_fields(owner_id),
            financial_goal_id=goal_id,
            name=name,
            description=command.description,
            progress=command.progress,
            estimated_cost=command.estimated_cost,
            start_date=command.start_date,
            end_date=command.end_date,
        )
        created = FinancialSubGoal.from_row(await self._insert(SUB_TABLE, sub_goal))
        await self._best_effort("sub_goal_flag", self._sync_has_sub_goals(goal_id))
        return created

    @ledger_operation("update_sub_goal")
    async def update_sub_goal(self, sub_goal_id: str, command: UpdateSubGoal) -> FinancialSubGoal:
        owner_id = self._user_id()
        current = FinancialSubGoal.from_row(await self._owned(SUB_TABLE, sub_goal_id, SUB_RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Name")
        if "progress" in fields:
            if command.progress is None:
                raise ValidationError("Progress is required", "progress")
            validate_progress(command.progress)
        validate_non_negative_amount(command.estimated_cost, "estimated_cost", "Estimated cost")
        validate_date_range_order(
            command.start_date if "start_date" in fields else current.start_date,
            command.end_date if "end_date" in fields else current.end_date,
        )
        return FinancialSubGoal.from_row(await self._update(SUB_TABLE, sub_goal_id, changes, SUB_RESOURCE))

    @ledger_operation("delete_sub_goal")
    async def delete_sub_goal(self, sub_goal_id: str) -> None:
        owner_id = self._user_id()
        sub_goal = FinancialSubGoal.from_row(await self._owned(SUB_TABLE, sub_goal_id, SUB_RESOURCE, owner_id))
        await self._delete(SUB_TABLE, sub_goal_id, SUB_RESOURCE)
        await self._best_effort("sub_goal_flag", self._sync_has_sub_goals(sub_goal.financial_goal_id))
