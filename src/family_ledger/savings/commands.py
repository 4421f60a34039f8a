"""
Savings Module Commands
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel

from family_ledger.savings.models import SavingsTransactionType


class CreateSavingsBucket(BaseModel):
    name: str
    description: str | None = None
    target_amount: Decimal | None = None
    current_amount: Decimal = Decimal("0")
    monthly_contribution: Decimal = Decimal("0")
    linked_goal_id: str | None = None


class UpdateSavingsBucket(BaseModel):
    name: str | None = None
    description: str | None = None
    target_amount: Decimal | None = None
    monthly_contribution: Decimal | None = None
    linked_goal_id: str | None = None


class CreateSavingsTransaction(BaseModel):
    bucket_id: str
    amount: Decimal
    transaction_type: SavingsTransactionType
    date: dt.date
    description: str | None = None


class UpdateSavingsTransaction(BaseModel):
    amount: Decimal | None = None
    transaction_type: SavingsTransactionType | None = None
    date: dt.date | None = None
    description: str | None = None
