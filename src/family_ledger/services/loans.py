"""
Loan Service - debts and the payments made against them

Recording a payment reduces the loan's balance by the principal part
(never below zero) and moves the next payment date forward. That balance
update is a secondary write: the payment is kept even if it fails.

The monthly payments of active loans feed the debt-to-income part of the
financial health score.
"""

import datetime as dt
from datetime import timedelta
from decimal import Decimal

from family_ledger.budget.invariants import (
    validate_date_range_order,
    validate_non_negative_amount,
    validate_required_text,
)
from family_ledger.kernel.errors import ValidationError
from family_ledger.recurring.commands import CreateLoan, RecordLoanPayment, UpdateLoan, UpdateLoanPayment
from family_ledger.recurring.invariants import (
    validate_loan_accepts_payments,
    validate_loan_amounts,
    validate_payment_split,
)
from family_ledger.recurring.models import Loan, LoanPayment, LoanStatus
from family_ledger.recurring.schedule import (
    calculate_months_remaining,
    calculate_total_interest_paid,
    monthly_equivalent,
    next_due_date,
)
from family_ledger.services.base import LedgerService, ledger_operation

TABLE = "loans"
PAYMENTS = "loan_payments"
RESOURCE = "Loan"
PAYMENT_RESOURCE = "Loan payment"
ZERO = Decimal("0")


class LoanService(LedgerService):
    service_name = "loan"

    # Pure helpers, exposed on the service for callers that only hold it
    calculate_months_remaining = staticmethod(calculate_months_remaining)
    calculate_total_interest_paid = staticmethod(calculate_total_interest_paid)

    def calculate_next_payment_date(self, loan: Loan | CreateLoan) -> dt.date:
        """Next payment date on or after today for the loan's schedule"""
        anchor = loan.last_payment_date or loan.start_date
        day = loan.start_date.day if loan.start_date else None
        return next_due_date(loan.payment_frequency, self._today(), anchor, day)

    @ledger_operation("create")
    async def create(self, command: CreateLoan) -> Loan:
        """
        Register a loan

        Raises:
            ValidationError: On a blank name, inconsistent amounts, a
                negative interest rate or end_date < start_date
        """
        owner_id = self._user_id()
        name = validate_required_text(command.name, "name", "Name")
        balance = command.current_balance if command.current_balance is not None else command.original_amount
        validate_loan_amounts(command.original_amount, balance, command.monthly_payment)
        validate_non_negative_amount(command.interest_rate, "interest_rate", "Interest rate")
        validate_date_range_order(command.start_date, command.end_date)

        loan = Loan(
            **self._record_fields(owner_id),
            **command.model_dump(exclude={"name", "current_balance", "next_payment_date"}),
            name=name,
            current_balance=balance,
            next_payment_date=command.next_payment_date or self.calculate_next_payment_date(command),
        )
        return Loan.from_row(await self._insert(TABLE, loan))

    async def get_by_id(self, loan_id: str) -> Loan:
        owner_id = self._user_id()
        return Loan.from_row(await self._owned(TABLE, loan_id, RESOURCE, owner_id))

    async def get_all(self, status: LoanStatus | None = None) -> list[Loan]:
        owner_id = self._user_id()
        where = {"status": status} if status is not None else None
        rows = await self.store.select(TABLE, owner_id=owner_id, where=where, order_by="name")
        return [Loan.from_row(r) for r in rows]

    async def get_active(self) -> list[Loan]:
        return await self.get_all(status=LoanStatus.ACTIVE)

    async def get_due_soon(self, days: int | None = None) -> list[Loan]:
        """Active loans with a payment due within the next `days` days"""
        owner_id = self._user_id()
        today = self._today()
        horizon = today + timedelta(days=self.policy.due_soon_days if days is None else days)
        rows = await self.store.select(
            TABLE,
            owner_id=owner_id,
            where={"status": LoanStatus.ACTIVE},
            between={"next_payment_date": (today, horizon)},
            order_by="next_payment_date",
        )
        return [Loan.from_row(r) for r in rows]

    async def get_total_monthly_payments(self) -> Decimal:
        """Monthly-equivalent payments of the active loans"""
        return sum(
            (monthly_equivalent(loan.monthly_payment, loan.payment_frequency) for loan in await self.get_active()),
            ZERO,
        )

    async def get_total_debt(self) -> Decimal:
        """Sum of the active loans' balances"""
        return sum((loan.current_balance for loan in await self.get_active()), ZERO)

    @ledger_operation("update")
    async def update(self, loan_id: str, command: UpdateLoan) -> Loan:
        owner_id = self._user_id()
        current = Loan.from_row(await self._owned(TABLE, loan_id, RESOURCE, owner_id))
        fields = command.model_fields_set
        changes = command.model_dump(mode="json", exclude_unset=True)

        for required in ("name", "original_amount", "monthly_payment", "current_balance",
                         "interest_rate", "payment_frequency", "loan_type", "status"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)
        if "name" in fields:
            changes["name"] = validate_required_text(command.name, "name", "Name")

        merged = current.model_copy(update=command.model_dump(exclude_unset=True))
        validate_loan_amounts(merged.original_amount, merged.current_balance, merged.monthly_payment)
        validate_non_negative_amount(merged.interest_rate, "interest_rate", "Interest rate")
        validate_date_range_order(merged.start_date, merged.end_date)

        return Loan.from_row(await self._update(TABLE, loan_id, changes, RESOURCE))

    @ledger_operation("mark_as_paid_off")
    async def mark_as_paid_off(self, loan_id: str) -> Loan:
        """Close out a loan: balance 0, status Paid Off"""
        owner_id = self._user_id()
        await self._owned(TABLE, loan_id, RESOURCE, owner_id)
        return Loan.from_row(
            await self._update(
                TABLE, loan_id, {"status": LoanStatus.PAID_OFF.value, "current_balance": "0"}, RESOURCE
            )
        )

    @ledger_operation("delete")
    async def delete(self, loan_id: str) -> None:
        """Delete a loan and its payment history"""
        owner_id = self._user_id()
        await self._owned(TABLE, loan_id, RESOURCE, owner_id)
        await self._delete(TABLE, loan_id, RESOURCE)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    async def _shift_balance(self, loan_id: str, principal_delta: Decimal, paid_on: dt.date | None = None) -> Loan:
        """Reduce the balance by principal_delta, clamped to [0, original_amount]"""
        owner_id = self._user_id()
        loan = Loan.from_row(await self._owned(TABLE, loan_id, RESOURCE, owner_id))
        balance = min(loan.original_amount, max(ZERO, loan.current_balance - principal_delta))
        changes: dict[str, str] = {"current_balance": str(balance)}
        if paid_on is not None and (loan.last_payment_date is None or paid_on >= loan.last_payment_date):
            changes["last_payment_date"] = paid_on.isoformat()
            anchored = loan.model_copy(update={"last_payment_date": paid_on})
            changes["next_payment_date"] = self.calculate_next_payment_date(anchored).isoformat()
        return Loan.from_row(await self._update(TABLE, loan_id, changes, RESOURCE))

    @ledger_operation("record_payment")
    async def record_payment(self, command: RecordLoanPayment) -> LoanPayment:
        """
        Record a payment against an active loan

        Raises:
            ValidationError: If the payment is not positive, a part is
                negative, principal + interest differs from the payment,
                or the loan is not Active
            NotFoundError: If the loan does not exist
        """
        owner_id = self._user_id()
        validate_payment_split(
            command.payment_amount,
            command.principal_amount,
            command.interest_amount,
            self.policy.payment_tolerance,
        )
        loan = Loan.from_row(await self._owned(TABLE, command.loan_id, RESOURCE, owner_id))
        validate_loan_accepts_payments(loan.status)

        payment = LoanPayment(**self._record_fields(owner_id), **command.model_dump())
        created = LoanPayment.from_row(await self._insert(PAYMENTS, payment))

        await self._best_effort(
            "loan_balance",
            self._shift_balance(loan.id, created.principal_amount, created.payment_date),
        )
        return created

    async def get_payment(self, payment_id: str) -> LoanPayment:
        owner_id = self._user_id()
        return LoanPayment.from_row(await self._owned(PAYMENTS, payment_id, PAYMENT_RESOURCE, owner_id))

    async def get_payments(self, loan_id: str) -> list[LoanPayment]:
        """A loan's payments, most recent first"""
        owner_id = self._user_id()
        await self._owned(TABLE, loan_id, RESOURCE, owner_id)
        rows = await self.store.select(
            PAYMENTS, owner_id=owner_id, where={"loan_id": loan_id}, order_by="payment_date", descending=True
        )
        return [LoanPayment.from_row(r) for r in rows]

    @ledger_operation("update_payment")
    async def update_payment(self, payment_id: str, command: UpdateLoanPayment) -> LoanPayment:
        """Edit a payment; the loan balance follows the principal difference"""
        owner_id = self._user_id()
        current = LoanPayment.from_row(await self._owned(PAYMENTS, payment_id, PAYMENT_RESOURCE, owner_id))
        fields = command.model_fields_set
        for required in ("payment_date", "payment_amount", "principal_amount", "interest_amount"):
            if required in fields and getattr(command, required) is None:
                raise ValidationError(f"{required.replace('_', ' ').capitalize()} is required", required)

        merged = current.model_copy(update=command.model_dump(exclude_unset=True))
        validate_payment_split(
            merged.payment_amount,
            merged.principal_amount,
            merged.interest_amount,
            self.policy.payment_tolerance,
        )

        changes = command.model_dump(mode="json", exclude_unset=True)
        updated = LoanPayment.from_row(await self._update(PAYMENTS, payment_id, changes, PAYMENT_RESOURCE))

        delta = updated.principal_amount - current.principal_amount
        if delta != 0:
            await self._best_effort("loan_balance", self._shift_balance(updated.loan_id, delta))
        return updated

    @ledger_operation("delete_payment")
    async def delete_payment(self, payment_id: str) -> None:
        """Delete a payment and give its principal back to the balance"""
        owner_id = self._user_id()
        current = LoanPayment.from_row(await self._owned(PAYMENTS, payment_id, PAYMENT_RESOURCE, owner_id))
        await self._delete(PAYMENTS, payment_id, PAYMENT_RESOURCE)
        await self._best_effort("loan_balance", self._shift_balance(current.loan_id, -current.principal_amount))
