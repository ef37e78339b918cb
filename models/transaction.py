from pydantic import Field, field_validator
from datetime import date, datetime
from typing import Optional

from database.models import TransactionType
from models.common import ApiModel, strip_required

class TransactionBase(ApiModel):
    title: str = Field(min_length=1, max_length=120)
    category: str = Field(min_length=1, max_length=80)
    type: TransactionType
    amount: float = Field(ge=0)
    description: Optional[str] = Field(default=None, max_length=255)
    transaction_date: date

    @field_validator("title", "category")
    @classmethod
    def strip_not_blank(cls, value: str) -> str:
        return strip_required(value)

class TransactionCreate(TransactionBase):
    pass

class TransactionUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    category: Optional[str] = Field(default=None, min_length=1, max_length=80)
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=255)
    transaction_date: Optional[date] = None

    @field_validator("title", "category")
    @classmethod
    def strip_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return strip_required(value)

class Transaction(TransactionBase):
    id: int
    user_id: int
    created_at: Optional[datetime] = None
