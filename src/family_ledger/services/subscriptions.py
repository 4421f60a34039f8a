"""
Subscription Service - recurring charges collected on a schedule

Active subscriptions whose next collection falls inside a month reduce
that month's available income (see SummaryService). They can also be
turned into budget categories for a month in one go.
"""

import datetime as dt
from datetime import timedelta
from decimal import Decimal

from family_ledger.budget.commands import CreateBudget
from family_ledger.budget.invariants import (
    validate_date_range_order,
    validate_positive_amount,
    validate_required_text,
)
from family_ledger.kernel.errors import LedgerError, ValidationError
from family_ledger.recurring.commands import CreateSubscription, UpdateSubscription
from family_ledger.recurring.invariants import validate_collection_day
from family_ledger.recurring.models import Subscription, SubscriptionBudgetResult, SubscriptionStatus
from family_ledger.recurring.schedule import monthly_equivalent, next_due_date, yearly_equivalent
from family_ledger.services.base import LedgerService, ledger_operation
from family_ledger.services.budgets import BudgetService

TABLE = "subscriptions"
RESOURCE = "Subscription"
ZERO = Decimal("0")
AMOUNT_LABEL = "Subscription amount"


class SubscriptionService(LedgerService):
    service_name = "subscription"

    def __init__(self, *args, budgets: BudgetService, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.budgets = budgets

    # Pure helpers
    calculate_monthly_cost = staticmethod(monthly_equivalent)
    calculate_yearly_cost = staticmethod(yearly_equivalent)

    @ledger_operation("create")
    async def create(self, command: CreateSubscription) -> Subscription:
        """
        Register a subscription

        next_collection_date is derived from the start date, the frequency
        and the collection day when not supplied.

        Raises:
            ValidationError: On a blank name, amount <= 0, a collection day
                outside 1..31 or end_date < start_date
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        validate_positive_amount(command.amount, label=AMOUNT_LABEL)
        validate_collection_day(command.collection_day)
        validate_date_range_order(command.start_date, command.end_date)

        next_collection = command.next_collection_date or next_due_date(
            command.frequency, self._today(), command.start_date, command.collection_day
        )
        subscription = Subscription(
            **self._record_fields(owner_id),
            **command.model_dump(exclude={"name", "next_collection_date"}),
            name=name,
            next_collection_date=next_collection,
        )
        return Subscription.from_row(await self._insert(TABLE, subscription))

    async def get_by_id(self, subscription_id: str) -> Subscription:
        owner_id = self._user_id()
        return Subscription.from_row(await self._owned(TABLE, subscription_id, RESOURCE, owner_id))

    async def get_all(
        self,
        status: SubscriptionStatus | None = None,
        is_essential: bool | None = None,
    ) -> list[Subscription]:
        owner_id = self._user_id()
        where = {}
        if status is not None:
            where["status"] = status
        if is_essential is not None:
            where["is_essential"] = is_essential
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="name")
        return [Subscription.from_row(r) for r in rows]

    async def get_active(self) -> list[Subscription]:
        return await self.get_all(status=SubscriptionStatus.ACTIVE)

    async def get_essential(self) -> list[Subscription]:
        return await self.get_all(is_essential=True)

    async def get_non_essential(self) -> list[Subscription]:
        return await self.get_all(is_essential=False)

    async def get_by_date_range(
        self,
        start_date: dt.date,
        end_date: dt.date,
        status: SubscriptionStatus | None = None,
    ) -> list[Subscription]:
        """Subscriptions whose next collection falls within [start_date, end_date]"""
        owner_id = self._user_id()
        rows = await self.store.select(
            TABLE,
            owner_id=owner_id,
            where={"status": status} if status is not None else None,
            between={"next_collection_date": (start_date, end_date)},
            order_by="next_collection_date",
        )
        return [Subscription.from_row(r) for r in rows]

    async def get_due_soon(self, days: int | None = None) -> list[Subscription]:
        today = self._today()
        horizon = today + timedelta(days=self.policy.due_soon_days if days is None else days)
        return await self.get_by_date_range(today, horizon, SubscriptionStatus.ACTIVE)

    async def get_total_monthly_cost(self) -> Decimal:
        return sum((monthly_equivalent(s.amount, s.frequency) for s in await self.get_active()), ZERO)

    async def get_total_yearly_cost(self) -> Decimal:
        return sum((yearly_equivalent(s.amount, s.frequency) for s in await self.get_active()), ZERO)

    async def get_total_monthly_cost_for_date_range(self, start_date: dt.date, end_date: dt.date) -> Decimal:
        due = await self.get_by_date_range(start_date, end_date, SubscriptionStatus.ACTIVE)
        return sum((monthly_equivalent(s.amount, s.frequency) for s in due), ZERO)

    @ledger_operation("update")
    async def update(self, subscription_id: str, command: UpdateSubscription) -> Subscription:
        owner_id = self._user_id()
        current = Subscription.from_row(await self._owned(TABLE, subscription_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        for required in ("name", "amount", "frequency", "status", "paid_this_period", "is_essential"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)
        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Name")
        if "amount" in fields:
            validate_positive_amount(command.amount, label=AMOUNT_LABEL)
        validate_collection_day(command.collection_day)
        validate_date_range_order(
            command.start_date if "start_date" in fields else current.start_date,
            command.end_date if "end_date" in fields else current.end_date,
        )
        return Subscription.from_row(await self._update(TABLE, subscription_id, changes, RESOURCE))

    async def _set_status(self, subscription_id: str, status: SubscriptionStatus, **extra: object) -> Subscription:
        return await self.update(subscription_id, UpdateSubscription(status=status, **extra))

    async def pause(self, subscription_id: str) -> Subscription:
        return await self._set_status(subscription_id, SubscriptionStatus.PAUSED)

    async def resume(self, subscription_id: str) -> Subscription:
        return await self._set_status(subscription_id, SubscriptionStatus.ACTIVE)

    async def cancel(self, subscription_id: str) -> Subscription:
        """Cancel a subscription, ending it today"""
        return await self._set_status(subscription_id, SubscriptionStatus.CANCELLED, end_date=self._today())

    async def mark_as_paid(self, subscription_id: str) -> Subscription:
        """Record today's collection and move the next collection forward one period"""
        subscription = await self.get_by_id(subscription_id)
        today = self._today()
        next_collection = next_due_date(subscription.frequency, today, today, subscription.collection_day)
        return await self.update(
            subscription_id,
            UpdateSubscription(
                paid_this_period=True,
                last_collection_date=today,
                next_collection_date=next_collection,
            ),
        )

    @ledger_operation("delete")
    async def delete(self, subscription_id: str) -> None:
        owner_id = self._user_id()
        await self._owned(TABLE, subscription_id, RESOURCE, owner_id)
        await self._delete(TABLE, subscription_id, RESOURCE)

    @ledger_operation("create_budgets_from_subscriptions")
    async def create_budgets_from_subscriptions(
        self,
        monthly_overview_id: str,
        start_date: dt.date,
        end_date: dt.date,
        subscription_ids: list[str] | None = None,
    ) -> SubscriptionBudgetResult:
        """
        Turn the active subscriptions due in a range into budgets of a month

        Each subscription becomes a budget at its monthly-equivalent cost.
        Names already budgeted in the month (case-insensitive) are skipped;
        a failure for one subscription is reported and does not stop the rest.

        Args:
            monthly_overview_id: Month receiving the budgets
            start_date: First day of the due-date window
            end_date: Last day of the due-date window
            subscription_ids: Restrict to these subscriptions (all when empty)
        """
        subscriptions = await self.get_by_date_range(start_date, end_date, SubscriptionStatus.ACTIVE)
        if subscription_ids:
            subscriptions = [s for s in subscriptions if s.id in subscription_ids]

        result = SubscriptionBudgetResult()
        for subscription in subscriptions:
            if await self.budgets.find_by_name(monthly_overview_id, subscription.name) is not None:
                result.skipped += 1
                continue
            due = subscription.next_collection_date.isoformat() if subscription.next_collection_date else "N/A"
            try:
                await self.budgets.create(
                    CreateBudget(
                        monthly_overview_id=monthly_overview_id,
                        name=subscription.name,
                        budget_amount=monthly_equivalent(subscription.amount, subscription.frequency),
                        description=f"Subscription: {subscription.name} ({subscription.frequency.value}) - Due: {due}",
                    )
                )
            except LedgerError as e:
                result.errors.append(f"{subscription.name}: {e}")
                continue
            result.created += 1
        return result
