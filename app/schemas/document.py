from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DocumentCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    file_type: str = Field(min_length=1, max_length=255)
    file_size: int = Field(ge=0)


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    file_type: str
    file_size: int
    uploaded_at: datetime


class DocumentUploadRead(DocumentRead):
    upload_url: str | None = None
