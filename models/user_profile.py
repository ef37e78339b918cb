from pydantic import Field, field_validator
from typing import Optional

from models.common import ApiModel

CURRENCY_PATTERN = r"^[A-Z]{3}$"


def _upper(value):
    return value.strip().upper() if isinstance(value, str) else value


class UserPreferences(ApiModel):
    preferred_currency: str
    timezone: str
    date_format: str
    number_format: str
    language: str
    theme: str
    email_notifications: bool
    sms_notifications: bool
    push_notifications: bool
    whatsapp_notifications: bool
    budget_alerts: bool
    bill_reminders: bool
    investment_alerts: bool
    weekly_summary: bool
    monthly_report: bool


class UserPreferencesUpdate(ApiModel):
    """Mise à jour partielle : seuls les champs fournis sont modifiés"""
    preferred_currency: Optional[str] = Field(default=None, pattern=CURRENCY_PATTERN)
    timezone: Optional[str] = Field(default=None, max_length=64)
    date_format: Optional[str] = Field(default=None, max_length=20)
    number_format: Optional[str] = Field(default=None, max_length=10)
    language: Optional[str] = Field(default=None, max_length=10)
    theme: Optional[str] = Field(default=None, pattern=r"^(light|dark)$")
    email_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    whatsapp_notifications: Optional[bool] = None
    budget_alerts: Optional[bool] = None
    bill_reminders: Optional[bool] = None
    investment_alerts: Optional[bool] = None
    weekly_summary: Optional[bool] = None
    monthly_report: Optional[bool] = None

    @field_validator("preferred_currency", mode="before")
    @classmethod
    def normalize_currency(cls, value):
        return _upper(value)


class CurrencyUpdateRequest(ApiModel):
    currency: str = Field(pattern=CURRENCY_PATTERN)

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, value):
        return _upper(value)
