from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class InactivitySettingsUpdate(BaseModel):
    is_active: bool
    inactive_days_threshold: StrictInt
    custom_message: str | None = Field(default=None, max_length=2000)
    email_enabled: bool = True
    sms_enabled: bool = False


class InactivitySettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_active: bool
    inactive_days_threshold: int
    custom_message: str | None = None
    email_enabled: bool
    sms_enabled: bool
    last_activity_at: datetime
    emergency_access_granted: bool
    days_since_activity: int = 0
