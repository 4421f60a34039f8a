"""
Savings Models - named buckets and the deposits and withdrawals against them
"""

import datetime as dt
from decimal import Decimal
from enum import Enum

from pydantic import Field

from family_ledger.kernel.records import LedgerRecord


class SavingsTransactionType(str, Enum):
    """Deposits and incoming transfers raise a bucket, the others lower it"""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"

    def sign(self) -> int:
        return 1 if self in (SavingsTransactionType.DEPOSIT, SavingsTransactionType.TRANSFER_IN) else -1


class SavingsBucket(LedgerRecord):
    """A named pot of savings, optionally mirroring a financial goal"""

    name: str
    description: str | None = None
    target_amount: Decimal | None = Field(default=None, ge=0)
    current_amount: Decimal = Decimal("0")
    monthly_contribution: Decimal = Field(default=Decimal("0"), ge=0)
    linked_goal_id: str | None = None


class SavingsTransaction(LedgerRecord):
    bucket_id: str
    amount: Decimal = Field(gt=0)
    transaction_type: SavingsTransactionType
    date: dt.date
    description: str | None = None
