"""
Master Budget Service - reusable category templates

Templates are copied into each new month by
MonthlyOverviewService.ensure_default_budgets. Deleting a template is a
soft delete by default so months that link to it keep the link.
"""

from decimal import Decimal

from family_ledger.budget.commands import CreateMasterBudget, UpdateMasterBudget
from family_ledger.budget.invariants import validate_non_negative_amount, validate_required_text
from family_ledger.budget.models import MasterBudget
from family_ledger.kernel.errors import ValidationError
from family_ledger.services.base import LedgerService, ledger_operation

TABLE = "master_budgets"
RESOURCE = "Master budget"


class MasterBudgetService(LedgerService):
    service_name = "master_budget"

    async def _all(self, owner_id: str, include_inactive: bool = True) -> list[MasterBudget]:
        rows = await self.store.select(TABLE, owner_id=owner_id)
        templates = [MasterBudget.from_row(r) for r in rows]
        if not include_inactive:
            templates = [t for t in templates if t.is_active]
        return sorted(templates, key=lambda t: (t.display_order, t.name))

    def _check_unique(self, name: str, templates: list[MasterBudget], exclude_id: str | None = None) -> None:
        lowered = name.lower()
        for template in templates:
            if template.id != exclude_id and template.name.strip().lower() == lowered:
                raise ValidationError(f'A master budget named "{name}" already exists', "name")

    @ledger_operation("create")
    async def create(self, command: CreateMasterBudget) -> MasterBudget:
        """
        Create a template

        Raises:
            ValidationError: If the name is blank or taken (case-insensitive)
                or the amount is negative
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        validate_non_negative_amount(command.budget_amount, "budget_amount", "Budget amount")

        existing = await self._all(owner_id)
        self._check_unique(name, existing)

        display_order = command.display_order
        if display_order is None:
            display_order = max((t.display_order for t in existing), default=0) + 1

        template = MasterBudget(
            **self._record_fields(owner_id),
            name=name,
            budget_amount=command.budget_amount,
            description=command.description,
            is_active=command.is_active,
            display_order=display_order,
        )
        return MasterBudget.from_row(await self._insert(TABLE, template))

    async def get_by_id(self, master_budget_id: str) -> MasterBudget:
        owner_id = self._user_id()
        return MasterBudget.from_row(await self._owned(TABLE, master_budget_id, RESOURCE, owner_id))

    async def get_all(self, include_inactive: bool = False) -> list[MasterBudget]:
        """Templates ordered by display_order then name (active only by default)"""
        return await self._all(self._user_id(), include_inactive)

    async def get_active(self) -> list[MasterBudget]:
        return await self._all(self._user_id(), include_inactive=False)

    async def get_total(self) -> Decimal:
        """Sum of the active templates' amounts"""
        return sum((t.budget_amount for t in await self.get_active()), Decimal("0"))

    @ledger_operation("update")
    async def update(self, master_budget_id: str, command: UpdateMasterBudget) -> MasterBudget:
        owner_id = self._user_id()
        await self._owned(TABLE, master_budget_id, RESOURCE, owner_id)
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in command.model_fields_set:
            name = validate_required_text(command.name, "name", "Name")
            self._check_unique(name, await self._all(owner_id), exclude_id=master_budget_id)
            changes["name"] = name
        if "budget_amount" in command.model_fields_set:
            if command.budget_amount is None:
                raise ValidationError("Budget amount is required", "budget_amount")
            validate_non_negative_amount(command.budget_amount, "budget_amount", "Budget amount")
        for flag in ("is_active", "display_order"):
            if flag in changes and changes[flag] is None:
                del changes[flag]

        return MasterBudget.from_row(await self._update(TABLE, master_budget_id, changes, RESOURCE))

    @ledger_operation("delete")
    async def delete(self, master_budget_id: str, hard_delete: bool = False) -> None:
        """
        Deactivate a template, or remove it when hard_delete is set

        A hard delete unlinks the monthly budgets that were copied from it.
        """
        owner_id = self._user_id()
        await self._owned(TABLE, master_budget_id, RESOURCE, owner_id)
        if hard_delete:
            await self._delete(TABLE, master_budget_id, RESOURCE)
        else:
            await self._update(TABLE, master_budget_id, {"is_active": False}, RESOURCE)
