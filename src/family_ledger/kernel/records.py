"""
Base model for stored ledger records

Every row the services write carries an id, the owning user and
timestamps. Rows travel to the store as JSON-compatible dicts (Decimal
amounts as strings, dates as ISO strings) and come back through pydantic
validation.
"""

from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel

R = TypeVar("R", bound="LedgerRecord")


class LedgerRecord(BaseModel):
    """Common attributes of every persisted entity"""

    id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    def to_row(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible store row"""
        return self.model_dump(mode="json")

    @classmethod
    def from_row(cls: type[R], row: dict[str, Any]) -> R:
        """Build the model from a store row, ignoring columns it does not declare"""
        return cls.model_validate({k: v for k, v in row.items() if k in cls.model_fields})
