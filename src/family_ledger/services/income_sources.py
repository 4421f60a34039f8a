"""
Income Source Service - money coming into a month

Besides CRUD, income drives two automatic budget adjustments:

- The month's default budgets are populated on the first income if the
  month has none yet (ensure_default_budgets, idempotent)
- Income flagged with tithe_deduction adds 10% to the "Tithe" budget and
  5% to the "Offering" budget, creating them when missing; deleting or
  editing the income reverses or re-applies the same amounts

Both adjustments are secondary writes: failures are logged and the
income itself is kept.
"""

from collections import defaultdict
from decimal import Decimal

from family_ledger.budget.commands import CreateBudget, CreateIncomeSource, UpdateIncomeSource
from family_ledger.budget.invariants import validate_positive_amount, validate_required_text
from family_ledger.budget.models import Budget, IncomeSource
from family_ledger.kernel.errors import ValidationError
from family_ledger.recurring.schedule import to_cents
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.budgets import BudgetService
from family_ledger.services.master_budgets import MasterBudgetService
from family_ledger.services.monthly_overviews import MonthlyOverviewService

TABLE = "income_sources"
RESOURCE = "Income source"
ZERO = Decimal("0")
UNASSIGNED = "Unassigned"


class IncomeSourceService(LedgerService):
    service_name = "income_source"

    def __init__(
        self,
        *args,
        months: MonthlyOverviewService,
        budgets: BudgetService,
        master_budgets: MasterBudgetService,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.months = months
        self.budgets = budgets
        self.master_budgets = master_budgets

    # ------------------------------------------------------------------
    # Tithe and offering
    # ------------------------------------------------------------------

    def _giving_budgets(self) -> list[tuple[str, Decimal, str]]:
        """(budget name, rate, fallback description) pairs"""
        return [
            (self.policy.tithe_budget_name, self.policy.tithe_rate, self.policy.tithe_default_description),
            (self.policy.offering_budget_name, self.policy.offering_rate, self.policy.offering_default_description),
        ]

    async def ensure_giving_budget(self, monthly_overview_id: str, name: str, description: str) -> Budget:
        """
        Find the named budget in the month, creating it when missing

        A new budget copies the master budget with the same name
        (case-insensitive) if one is active, and otherwise starts at zero.
        """
        existing = await self.budgets.find_by_name(monthly_overview_id, name)
        if existing is not None:
            return existing

        for template in await self.master_budgets.get_active():
            if template.name.strip().lower() == name.lower():
                return await self.budgets.create(
                    CreateBudget(
                        monthly_overview_id=monthly_overview_id,
                        name=template.name,
                        budget_amount=template.budget_amount,
                        description=template.description,
                        master_budget_id=template.id,
                    )
                )

        return await self.budgets.create(
            CreateBudget(
                monthly_overview_id=monthly_overview_id,
                name=name,
                budget_amount=ZERO,
                description=description,
            )
        )

    async def _adjust_giving_budget(
        self,
        monthly_overview_id: str,
        name: str,
        description: str,
        delta: Decimal,
    ) -> Budget | None:
        if delta > 0:
            budget = await self.ensure_giving_budget(monthly_overview_id, name, description)
        else:
            budget = await self.budgets.find_by_name(monthly_overview_id, name)
            if budget is None:
                return None
        return await self.budgets.adjust_amount(budget.id, delta)

    async def apply_giving(self, monthly_overview_id: str, income_delta: Decimal) -> None:
        """
        Move the tithe and offering budgets by their share of an income change

        Positive deltas create missing budgets; negative ones are floored at
        zero by the budget service. Each budget is adjusted best-effort.
        """
        if income_delta == 0:
            return
        for name, rate, description in self._giving_budgets():
            delta = to_cents(income_delta * rate)
            await self._best_effort(
                f"{name.lower()}_allocation",
                self._adjust_giving_budget(monthly_overview_id, name, description, delta),
            )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @ledger_operation("create")
    async def create(self, command: CreateIncomeSource) -> IncomeSource:
        """
        Record income for a month

        Raises:
            ValidationError: If amount <= 0 or the source is blank
            NotFoundError: If the month does not exist
        """
        owner_id = self._user_id()
        validate_positive_amount(command.amount)
        source = validate_required_text(command.source, "source", "Source")
        await self._owned("monthly_overviews", command.monthly_overview_id, "Monthly overview", owner_id)

        income = IncomeSource(
            **self._record_fields(owner_id),
            monthly_overview_id=command.monthly_overview_id,
            amount=command.amount,
            source=source,
            person=command.person,
            date_paid=command.date_paid,
            tithe_deduction=command.tithe_deduction,
            notes=command.notes,
        )
        created = IncomeSource.from_row(await self._insert(TABLE, income))

        await self._best_effort("default_budgets", self.months.ensure_default_budgets(created.monthly_overview_id))
        if created.tithe_deduction:
            await self.apply_giving(created.monthly_overview_id, created.amount)
        return created

    async def get_by_id(self, income_id: str) -> IncomeSource:
        owner_id = self._user_id()
        return IncomeSource.from_row(await self._owned(TABLE, income_id, RESOURCE, owner_id))

    async def get_all(self, monthly_overview_id: str | None = None, person: str | None = None) -> list[IncomeSource]:
        owner_id = self._user_id()
        where = {}
        if monthly_overview_id is not None:
            where["monthly_overview_id"] = monthly_overview_id
        if person is not None:
            where["person"] = person
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="created_at")
        return [IncomeSource.from_row(r) for r in rows]

    async def get_by_monthly_overview(self, monthly_overview_id: str) -> list[IncomeSource]:
        return await self.get_all(monthly_overview_id=monthly_overview_id)

    async def get_by_person(self, person: str) -> list[IncomeSource]:
        return await self.get_all(person=person)

    async def get_total_for_month(self, monthly_overview_id: str) -> Decimal:
        return sum((i.amount for i in await self.get_by_monthly_overview(monthly_overview_id)), ZERO)

    async def get_income_by_person_summary(self, monthly_overview_id: str | None = None) -> dict[str, Decimal]:
        """Total income per person ("Unassigned" when no person is recorded)"""
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for income in await self.get_all(monthly_overview_id=monthly_overview_id):
            totals[income.person or UNASSIGNED] += income.amount
        return dict(totals)

    @ledger_operation("update")
    async def update(self, income_id: str, command: UpdateIncomeSource) -> IncomeSource:
        """
        Update income, re-applying the tithe/offering difference

        Raises:
            ValidationError: If the new amount is <= 0 or the source is blank
        """
        owner_id = self._user_id()
        current = IncomeSource.from_row(await self._owned(TABLE, income_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "amount" in fields:
            validate_positive_amount(command.amount)
        if "source" in fields:
            changes["source"] = validate_required_text(command.source, "source", "Source")
        if "tithe_deduction" in fields and command.tithe_deduction is None:
            raise ValidationError("Tithe deduction flag is required", "tithe_deduction")

        updated = IncomeSource.from_row(await self._update(TABLE, income_id, changes, RESOURCE))

        before = current.amount if current.tithe_deduction else ZERO
        after = updated.amount if updated.tithe_deduction else ZERO
        await self.apply_giving(updated.monthly_overview_id, after - before)
        return updated

    @ledger_operation("delete")
    async def delete(self, income_id: str) -> None:
        """Delete income, taking its tithe/offering share back out (floored at zero)"""
        owner_id = self._user_id()
        current = IncomeSource.from_row(await self._owned(TABLE, income_id, RESOURCE, owner_id))
        await self._delete(TABLE, income_id, RESOURCE)
        if current.tithe_deduction:
            await self.apply_giving(current.monthly_overview_id, -current.amount)
