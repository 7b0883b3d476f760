from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.vault import AccessLevel, ResourceType


class AccessControlCreate(BaseModel):
    nominee_id: UUID
    resource_id: UUID
    resource_type: str = "document"
    access_level: str = "view"


class AccessControlUpdate(BaseModel):
    access_level: str


class AccessControlRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    nominee_id: UUID
    resource_id: UUID
    resource_type: ResourceType
    access_level: AccessLevel
    created_at: datetime
