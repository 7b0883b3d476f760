from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.vault import NomineeRelation, NomineeStatus


class NomineeCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    relation: str = "other"
    email: str = Field(min_length=1, max_length=255)
    phone: str | None = None


class NomineeUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    relation: str | None = None
    email: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = None


class NomineeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    full_name: str
    relation: NomineeRelation
    email: str
    phone: str | None = None
    status: NomineeStatus
    verified_at: datetime | None = None
    created_at: datetime


class NomineeVerifyRequest(BaseModel):
    token: str = Field(min_length=1)


class NomineeVerifyResponse(BaseModel):
    nominee_id: UUID
    owner_name: str | None = None
    message: str
