from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.models.vault import Document
from app.schemas.document import DocumentCreate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


class Documents(ListResponseMixin):
    @staticmethod
    def create(
        db: Session, account_id, payload: DocumentCreate
    ) -> tuple[Document, str | None]:
        """Register a document; returns it with a presigned upload URL.

        The URL is ``None`` when object storage is not configured.
        """
        user_id = coerce_uuid(account_id)
        document = Document(
            user_id=user_id,
            file_name=payload.file_name,
            file_type=payload.file_type,
            file_size=payload.file_size,
            storage_key=StorageService.generate_storage_key(
                str(user_id), payload.file_name
            ),
        )
        db.add(document)
        db.commit()
        db.refresh(document)
        logger.info("Created document %s", document.id)

        upload_url = None
        if StorageService.is_configured():
            upload_url = StorageService.generate_upload_url(
                document.storage_key, document.file_type
            )
        return document, upload_url

    @staticmethod
    def get(db: Session, account_id, document_id) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if (
            not document
            or document.user_id != coerce_uuid(account_id)
            or document.deleted_at is not None
        ):
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def list(
        db: Session,
        account_id,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Document]:
        stmt = select(Document).where(
            Document.user_id == coerce_uuid(account_id),
            Document.deleted_at.is_(None),
        )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"uploaded_at": Document.uploaded_at, "file_name": Document.file_name},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def delete(db: Session, account_id, document_id) -> None:
        document = Documents.get(db, account_id, document_id)
        document.deleted_at = datetime.now(timezone.utc)
        db.commit()
        logger.info("Soft-deleted document %s", document.id)


documents = Documents()
