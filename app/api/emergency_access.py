from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_mailer, get_storage
from app.config import settings
from app.schemas.common import MessageResponse
from app.schemas.emergency import (
    DocumentLinkRead,
    DocumentLinkRequest,
    EmergencyAccessGrant,
    EmergencyAccessRequest,
    EmergencyAccessVerify,
    SharedDocumentRead,
)
from app.services import emergency_access as emergency_service
from app.services.auth_dependencies import bearer_token
from app.services.nominee_access import resolve_access

router = APIRouter(prefix="/emergency-access", tags=["emergency-access"])


def _shared(resolved) -> list[SharedDocumentRead]:
    return [
        SharedDocumentRead(
            id=item.document.id,
            file_name=item.document.file_name,
            file_type=item.document.file_type,
            file_size=item.document.file_size,
            uploaded_at=item.document.uploaded_at,
            access_level=item.access_level,
            can_download=item.can_download,
        )
        for item in resolved
    ]


@router.post("/request", response_model=MessageResponse)
def request_emergency_access(
    payload: EmergencyAccessRequest,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    emergency_service.request_code(db, payload.email, mailer=mailer)
    return MessageResponse(message="Verification code sent to your email")


@router.post("/verify", response_model=EmergencyAccessGrant)
def verify_emergency_access(
    payload: EmergencyAccessVerify, db: Session = Depends(get_db)
):
    nominee, resolved = emergency_service.confirm_code(db, payload.email, payload.code)
    return EmergencyAccessGrant(
        access_token=emergency_service.issue_grant_token(nominee),
        expires_in=settings.grant_token_ttl_minutes * 60,
        nominee_name=nominee.full_name,
        documents=_shared(resolved),
        message="Access granted",
    )


@router.get("/documents", response_model=list[SharedDocumentRead])
def list_shared_documents(request: Request, db: Session = Depends(get_db)):
    nominee = emergency_service.authorize_grant(db, bearer_token(request))
    return _shared(resolve_access(db, nominee.id))


@router.post("/documents/{document_id}/url", response_model=DocumentLinkRead)
def shared_document_url(
    document_id: str,
    payload: DocumentLinkRequest,
    request: Request,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
):
    nominee = emergency_service.authorize_grant(db, bearer_token(request))
    url = emergency_service.signed_document_url(
        resolve_access(db, nominee.id), document_id, payload.action, storage=storage
    )
    return DocumentLinkRead(url=url, expires_in=settings.s3_presigned_url_expiry)
