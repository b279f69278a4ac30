import datetime as dt
from enum import Enum
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from dompetku.utils.analyzer import month_key


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionFields(BaseModel):
    """The mutable part of a transaction, as submitted by the tracker form."""

    type: TransactionType
    amount: float = Field(ge=0, allow_inf_nan=False)
    description: str
    date: dt.date = Field(default_factory=dt.date.today)

    @field_validator("amount")
    @classmethod
    def _currency_scale(cls, value: float) -> float:
        return round(value, 2)

    @field_validator("description")
    @classmethod
    def _description_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description is required")
        return value


class TransactionCreate(TransactionFields):
    pass


class TransactionUpdate(TransactionFields):
    pass


class TransactionInDB(TransactionFields):
    user_id: str
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    month: str = ""
    created_at: str = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc).isoformat())

    @model_validator(mode="after")
    def _derive_month(self):
        # month is never taken from the caller
        self.month = month_key(self.date)
        return self

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def mutable_item(self) -> Dict[str, Any]:
        """Attributes an update is allowed to replace."""
        item = self.to_item()
        return {key: item[key] for key in ("type", "amount", "description", "date", "month")}


class TransactionPublic(BaseModel):
    id: str
    user_id: str
    type: TransactionType
    amount: float
    description: str
    date: dt.date
    month: str
    created_at: str

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "TransactionPublic":
        return cls(
            id=item["transaction_id"],
            user_id=item["user_id"],
            type=item["type"],
            amount=item["amount"],
            description=item.get("description", ""),
            date=item["date"],
            month=item["month"],
            created_at=item.get("created_at", ""),
        )
