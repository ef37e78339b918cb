from pydantic import EmailStr, Field
from datetime import datetime
from typing import Optional

from database.models import Role
from models.common import ApiModel

class SignupRequest(ApiModel):
    username: str = Field(min_length=3, max_length=80)
    email: EmailStr
    # bcrypt ne prend en compte que les 72 premiers octets
    password: str = Field(min_length=6, max_length=72)
    role: Optional[str] = None

class LoginRequest(ApiModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

class User(ApiModel):
    id: int
    username: str
    email: str
    role: Role
    monthly_income: float
    current_savings: float
    target_expenses: float
    created_at: Optional[datetime] = None

class AuthResponse(User):
    token: str
    type: str = "Bearer"

class UserFinancialsUpdate(ApiModel):
    monthly_income: Optional[float] = Field(default=None, ge=0)
    current_savings: Optional[float] = Field(default=None, ge=0)
    target_expenses: Optional[float] = Field(default=None, ge=0)
