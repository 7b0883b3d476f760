from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from app.models.vault import AccessLevel


class EmergencyAccessRequest(BaseModel):
    email: str


class EmergencyAccessVerify(BaseModel):
    email: str
    code: str


class SharedDocumentRead(BaseModel):
    id: UUID
    file_name: str
    file_type: str
    file_size: int
    uploaded_at: datetime
    access_level: AccessLevel
    can_download: bool


class EmergencyAccessGrant(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    nominee_name: str
    documents: list[SharedDocumentRead]
    message: str


class DocumentLinkRequest(BaseModel):
    action: str = "view"


class DocumentLinkRead(BaseModel):
    url: str
    expires_in: int
