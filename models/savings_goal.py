from pydantic import Field, field_validator
from datetime import date, datetime
from typing import Optional

from database.models import GoalStatus
from models.common import ApiModel, strip_required


class SavingsGoalBase(ApiModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=255)
    target_amount: float = Field(gt=0)
    target_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return strip_required(value)


class SavingsGoalCreate(SavingsGoalBase):
    current_amount: float = Field(default=0.0, ge=0)


class SavingsGoalUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = Field(default=None, max_length=255)
    target_amount: Optional[float] = Field(default=None, gt=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    target_date: Optional[date] = None
    status: Optional[GoalStatus] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return strip_required(value)


class ContributionRequest(ApiModel):
    amount: float = Field(gt=0)


class SavingsGoal(SavingsGoalBase):
    id: int
    current_amount: float
    status: GoalStatus
    remaining_amount: float
    progress_percentage: float
    created_at: Optional[datetime] = None
