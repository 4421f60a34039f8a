"""
Savings Service - named savings buckets and their transactions

A bucket's current_amount follows its transactions: deposits and
incoming transfers raise it, withdrawals and outgoing transfers lower
it. The bucket update is a secondary write; the transaction is kept
even if it fails.
"""

from decimal import Decimal

from family_ledger.budget.invariants import (
    validate_non_negative_amount,
    validate_positive_amount,
    validate_required_text,
)
from family_ledger.kernel.errors import ValidationError
from family_ledger.savings.commands import (
    CreateSavingsBucket,
    CreateSavingsTransaction,
    UpdateSavingsBucket,
    UpdateSavingsTransaction,
)
from family_ledger.savings.models import SavingsBucket, SavingsTransaction
from family_ledger.services.base import LedgerService, ledger_operation

TABLE = "savings_buckets"
TRANSACTIONS = "savings_transactions"
RESOURCE = "Savings bucket"
TRANSACTION_RESOURCE = "Savings transaction"


class SavingsService(LedgerService):
    service_name = "savings"

    def _validate_bucket_amounts(self, target_amount: Decimal | None, monthly_contribution: Decimal | None) -> None:
        validate_non_negative_amount(target_amount, "target_amount", "Target amount")
        validate_non_negative_amount(monthly_contribution, "monthly_contribution", "Monthly contribution")

    @ledger_operation("create")
    async def create(self, command: CreateSavingsBucket) -> SavingsBucket:
        """
        Create a bucket

        Raises:
            ValidationError: On a blank name or a negative target or contribution
            NotFoundError: If the linked goal does not exist
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Bucket name")
        self._validate_bucket_amounts(command.target_amount, command.monthly_contribution)
        if command.linked_goal_id is not None:
            await self._owned("financial_goals", command.linked_goal_id, "Financial goal", owner_id)

        bucket = SavingsBucket(
            **self._record_fields(owner_id),
            **command.model_dump(exclude={"name"}),
            name=name,
        )
        return SavingsBucket.from_row(await self._insert(TABLE, bucket))

    async def get_by_id(self, bucket_id: str) -> SavingsBucket:
        owner_id = self._user_id()
        return SavingsBucket.from_row(await self._owned(TABLE, bucket_id, RESOURCE, owner_id))

    async def get_all(self) -> list[SavingsBucket]:
        owner_id = self._user_id()
        rows = await self.store.select(TABLE, owner_id=owner_id, order_by="name")
        return [SavingsBucket.from_row(r) for r in rows]

    async def get_total_savings(self) -> Decimal:
        return sum((b.current_amount for b in await self.get_all()), Decimal("0"))

    @ledger_operation("update")
    async def update(self, bucket_id: str, command: UpdateSavingsBucket) -> SavingsBucket:
        owner_id = self._user_id()
        await self._owned(TABLE, bucket_id, RESOURCE, owner_id)
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Bucket name")
        self._validate_bucket_amounts(command.target_amount, command.monthly_contribution)
        if "monthly_contribution" in changes and changes["monthly_contribution"] is None:
            changes["monthly_contribution"] = "0"
        if command.linked_goal_id is not None:
            await self._owned("financial_goals", command.linked_goal_id, "Financial goal", owner_id)

        return SavingsBucket.from_row(await self._update(TABLE, bucket_id, changes, RESOURCE))

    @ledger_operation("delete")
    async def delete(self, bucket_id: str) -> None:
        """Delete a bucket and its transactions"""
        owner_id = self._user_id()
        await self._owned(TABLE, bucket_id, RESOURCE, owner_id)
        await self._delete(TABLE, bucket_id, RESOURCE)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _move_bucket(self, bucket_id: str, delta: Decimal) -> SavingsBucket:
        owner_id = self._user_id()
        bucket = SavingsBucket.from_row(await self._owned(TABLE, bucket_id, RESOURCE, owner_id))
        return SavingsBucket.from_row(
            await self._update(TABLE, bucket_id, {"current_amount": str(bucket.current_amount + delta)}, RESOURCE)
        )

    @ledger_operation("create_transaction")
    async def create_transaction(self, command: CreateSavingsTransaction) -> SavingsTransaction:
        """
        Record a deposit, withdrawal or transfer against a bucket

        Raises:
            ValidationError: If amount <= 0
            NotFoundError: If the bucket does not exist
        """
        owner_id = self._user_id()
        validate_positive_amount(command.amount, label="Transaction amount")
        await self._owned(TABLE, command.bucket_id, RESOURCE, owner_id)

        transaction = SavingsTransaction(**self._record_fields(owner_id), **command.model_dump())
        created = SavingsTransaction.from_row(await self._insert(TRANSACTIONS, transaction))

        delta = created.amount * created.transaction_type.sign()
        await self._best_effort("savings_balance", self._move_bucket(created.bucket_id, delta))
        return created

    async def get_transaction(self, transaction_id: str) -> SavingsTransaction:
        owner_id = self._user_id()
        return SavingsTransaction.from_row(
            await self._owned(TRANSACTIONS, transaction_id, TRANSACTION_RESOURCE, owner_id)
        )

    async def get_transactions(self, bucket_id: str) -> list[SavingsTransaction]:
        """A bucket's transactions, most recent first"""
        owner_id = self._user_id()
        await self._owned(TABLE, bucket_id, RESOURCE, owner_id)
        rows = await self.store.select(
            TRANSACTIONS, owner_id=owner_id, where={"bucket_id": bucket_id}, order_by="date", descending=True
        )
        return [SavingsTransaction.from_row(r) for r in rows]

    @ledger_operation("update_transaction")
    async def update_transaction(
        self, transaction_id: str, command: UpdateSavingsTransaction
    ) -> SavingsTransaction:
        """Edit a transaction; the bucket moves by the difference in signed amounts"""
        current = await self.get_transaction(transaction_id)
        fields = command.model_fields_set
        for required in ("amount", "transaction_type", "date"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)
        if "amount" in fields:
            validate_positive_amount(command.amount, label="Transaction amount")

        changes = command.model_dump(mode="json", exclude_unset=True)
        updated = SavingsTransaction.from_row(
            await self._update(TRANSACTIONS, transaction_id, changes, TRANSACTION_RESOURCE)
        )

        delta = updated.amount * updated.transaction_type.sign() - current.amount * current.transaction_type.sign()
        if delta != 0:
            await self._best_effort("savings_balance", self._move_bucket(updated.bucket_id, delta))
        return updated

    @ledger_operation("delete_transaction")
    async def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction and reverse its effect on the bucket"""
        current = await self.get_transaction(transaction_id)
        await self._delete(TRANSACTIONS, transaction_id, TRANSACTION_RESOURCE)
        delta = -current.amount * current.transaction_type.sign()
        await self._best_effort("savings_balance", self._move_bucket(current.bucket_id, delta))
