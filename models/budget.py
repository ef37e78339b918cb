from pydantic import Field, field_validator
from datetime import datetime
from typing import Optional

from models.common import ApiModel, strip_required

class BudgetBase(ApiModel):
    category: str = Field(min_length=1, max_length=80)
    budget_amount: float = Field(ge=0)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)

    @field_validator("category")
    @classmethod
    def strip_category(cls, value: str) -> str:
        return strip_required(value)

class BudgetCreate(BudgetBase):
    pass

class BudgetUpdate(ApiModel):
    category: Optional[str] = Field(default=None, min_length=1, max_length=80)
    budget_amount: Optional[float] = Field(default=None, ge=0)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2000, le=2100)

    @field_validator("category")
    @classmethod
    def strip_category(cls, value: Optional[str]) -> Optional[str]:
        return strip_required(value)

class Budget(BudgetBase):
    id: int
    created_at: Optional[datetime] = None

class BudgetStatus(Budget):
    """Budget enrichi des montants dépensés sur le mois"""
    spent_amount: float
    remaining_amount: float
    progress_percentage: float
    over_budget: bool
