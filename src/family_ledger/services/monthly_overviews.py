"""
Monthly Overview Service - the accounting periods

Creating a month populates it with the household's default categories.
That population is one idempotent operation, ensure_default_budgets,
shared with IncomeSourceService: it does nothing once any budget exists
for the month, so re-running it on retry never duplicates categories.
"""

from family_ledger.budget.commands import CreateBudget, CreateMonthlyOverview, UpdateMonthlyOverview
from family_ledger.budget.invariants import validate_date_range_order, validate_required_text
from family_ledger.budget.models import Budget, BudgetSummary, MonthlyOverview, MonthlyOverviewSummary
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.budgets import BudgetService
from family_ledger.services.goals import FinancialGoalService
from family_ledger.services.master_budgets import MasterBudgetService
from family_ledger.services.summaries import SummaryService

TABLE = "monthly_overviews"
RESOURCE = "Monthly overview"


class MonthlyOverviewService(LedgerService):
    service_name = "monthly_overview"

    def __init__(
        self,
        *args,
        summaries: SummaryService,
        budgets: BudgetService,
        master_budgets: MasterBudgetService,
        goals: FinancialGoalService,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.summaries = summaries
        self.budgets = budgets
        self.master_budgets = master_budgets
        self.goals = goals

    @ledger_operation("create")
    async def create(self, command: CreateMonthlyOverview) -> MonthlyOverview:
        """
        Create a month and populate its default budgets

        Budget population is best-effort: the month is kept even if it fails.

        Raises:
            ValidationError: If the name is blank or end_date < start_date
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        validate_date_range_order(command.start_date, command.end_date)

        month = MonthlyOverview(
            **self._record_fields(owner_id),
            name=name,
            start_date=command.start_date,
            end_date=command.end_date,
            notes=command.notes,
        )
        created = MonthlyOverview.from_row(await self._insert(TABLE, month))

        await self._best_effort("default_budgets", self.ensure_default_budgets(created.id))
        return created

    async def get_by_id(self, monthly_overview_id: str) -> MonthlyOverview:
        owner_id = self._user_id()
        return MonthlyOverview.from_row(await self._owned(TABLE, monthly_overview_id, RESOURCE, owner_id))

    async def get_all(self) -> list[MonthlyOverview]:
        """The caller's months, most recent first"""
        owner_id = self._user_id()
        rows = await self.store.select(TABLE, owner_id=owner_id, order_by="start_date", descending=True)
        return [MonthlyOverview.from_row(r) for r in rows]

    async def get_active(self) -> MonthlyOverview | None:
        """The month containing today, if any"""
        today = self._today()
        for month in await self.get_all():
            if month.contains(today):
                return month
        return None

    async def get_with_summary(self, monthly_overview_id: str) -> MonthlyOverviewSummary:
        return await self.summaries.get_monthly_summary(monthly_overview_id)

    async def get_budgets(self, monthly_overview_id: str) -> list[BudgetSummary]:
        """Budget Summaries of every budget in the month"""
        return await self.summaries.get_budget_summaries(monthly_overview_id)

    @ledger_operation("update")
    async def update(self, monthly_overview_id: str, command: UpdateMonthlyOverview) -> MonthlyOverview:
        owner_id = self._user_id()
        current = MonthlyOverview.from_row(await self._owned(TABLE, monthly_overview_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Name")
        for required in ("start_date", "end_date"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').title()} is required", required)

        validate_date_range_order(
            command.start_date if "start_date" in fields else current.start_date,
            command.end_date if "end_date" in fields else current.end_date,
        )
        return MonthlyOverview.from_row(await self._update(TABLE, monthly_overview_id, changes, RESOURCE))

    @ledger_operation("delete")
    async def delete(self, monthly_overview_id: str) -> None:
        """Delete a month with its budgets, expenses, income and goal movements"""
        owner_id = self._user_id()
        await self._owned(TABLE, monthly_overview_id, RESOURCE, owner_id)
        budget_rows = await self.store.select(
            "budgets", owner_id=owner_id, where={"monthly_overview_id": monthly_overview_id}
        )
        moved = await self.goals.goals_moved_by(
            owner_id, [r["id"] for r in budget_rows], monthly_overview_id=monthly_overview_id
        )
        await self._delete(TABLE, monthly_overview_id, RESOURCE)
        await self.goals.recalculate_all_quietly(moved)

    @ledger_operation("ensure_default_budgets")
    async def ensure_default_budgets(self, monthly_overview_id: str) -> list[Budget]:
        """
        Populate a month with the default categories, once

        Copies the active master budgets (ordered by display_order, then
        name). An owner without any master budget gets the policy's
        fallback categories instead. Does nothing when the month already
        has a budget.

        Returns:
            The budgets created (empty when the month was already populated)
        """
        owner_id = self._user_id()
        await self._owned(TABLE, monthly_overview_id, RESOURCE, owner_id)

        existing = await self.store.select(
            "budgets", owner_id=owner_id, where={"monthly_overview_id": monthly_overview_id}, limit=1
        )
        if existing:
            return []

        templates = await self.master_budgets.get_all(include_inactive=True)
        if templates:
            commands = [
                CreateBudget(
                    monthly_overview_id=monthly_overview_id,
                    name=t.name,
                    budget_amount=t.budget_amount,
                    description=t.description,
                    master_budget_id=t.id,
                )
                for t in templates
                if t.is_active
            ]
        else:
            commands = [
                CreateBudget(
                    monthly_overview_id=monthly_overview_id,
                    name=c.name,
                    budget_amount=c.budget_amount,
                    description=c.description,
                )
                for c in self.policy.default_budget_categories
            ]

        created = [await self.budgets.create(c) for c in commands]
        self.logger.info(
            "Default budgets created",
            monthly_overview_id=monthly_overview_id,
            count=len(created),
            from_templates=bool(templates),
        )
        return created
