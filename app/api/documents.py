from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, require_user_auth
from app.schemas.common import ListResponse
from app.schemas.document import DocumentCreate, DocumentRead, DocumentUploadRead
from app.services import document as document_service

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentUploadRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    document, upload_url = document_service.documents.create(
        db, session.account_id, payload
    )
    data = DocumentUploadRead.model_validate(document)
    data.upload_url = upload_url
    return data


@router.get("", response_model=ListResponse[DocumentRead])
def list_documents(
    order_by: str = Query(default="uploaded_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return document_service.documents.list_response(
        db, session.account_id, order_by, order_dir, limit, offset
    )


@router.get("/{document_id}", response_model=DocumentRead)
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return document_service.documents.get(db, session.account_id, document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    document_service.documents.delete(db, session.account_id, document_id)
