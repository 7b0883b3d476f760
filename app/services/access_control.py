import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.vault import AccessControl, AccessLevel, Document, Nominee, ResourceType
from app.schemas.access import AccessControlCreate, AccessControlUpdate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.nominee import nominees
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _validate_access_level(value: str) -> AccessLevel:
    try:
        return AccessLevel(value)
    except ValueError:
        raise ValidationError(f"Invalid access_level: {value}")


def _validate_resource_type(value: str) -> ResourceType:
    try:
        return ResourceType(value)
    except ValueError:
        raise ValidationError(f"Invalid resource_type: {value}")


def _owned_document(db: Session, account_id, document_id) -> Document:
    document = db.get(Document, coerce_uuid(document_id))
    if (
        not document
        or document.user_id != coerce_uuid(account_id)
        or document.deleted_at is not None
    ):
        raise NotFoundError("Document not found")
    return document


class AccessControls(ListResponseMixin):
    @staticmethod
    def create(db: Session, account_id, payload: AccessControlCreate) -> AccessControl:
        nominee = nominees.get(db, account_id, payload.nominee_id)
        resource_type = _validate_resource_type(payload.resource_type)
        access_level = _validate_access_level(payload.access_level)
        _owned_document(db, account_id, payload.resource_id)

        entry = AccessControl(
            nominee_id=nominee.id,
            resource_id=payload.resource_id,
            resource_type=resource_type,
            access_level=access_level,
        )
        db.add(entry)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("This nominee already has access to the document")
        db.refresh(entry)
        logger.info(
            "Granted %s on %s to nominee %s",
            access_level.value,
            entry.resource_id,
            nominee.id,
        )
        return entry

    @staticmethod
    def get(db: Session, account_id, entry_id) -> AccessControl:
        entry = db.get(AccessControl, coerce_uuid(entry_id))
        if not entry or entry.nominee.user_id != coerce_uuid(account_id):
            raise NotFoundError("Access control not found")
        return entry

    @staticmethod
    def list(
        db: Session,
        account_id,
        nominee_id: str | None,
        resource_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[AccessControl]:
        stmt = (
            select(AccessControl)
            .join(Nominee, Nominee.id == AccessControl.nominee_id)
            .where(Nominee.user_id == coerce_uuid(account_id))
        )
        if nominee_id is not None:
            stmt = stmt.where(AccessControl.nominee_id == coerce_uuid(nominee_id))
        if resource_id is not None:
            stmt = stmt.where(AccessControl.resource_id == coerce_uuid(resource_id))
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": AccessControl.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(
        db: Session, account_id, entry_id, payload: AccessControlUpdate
    ) -> AccessControl:
        entry = AccessControls.get(db, account_id, entry_id)
        entry.access_level = _validate_access_level(payload.access_level)
        db.commit()
        db.refresh(entry)
        logger.info("Changed access control %s to %s", entry.id, entry.access_level.value)
        return entry

    @staticmethod
    def delete(db: Session, account_id, entry_id) -> None:
        entry = AccessControls.get(db, account_id, entry_id)
        db.delete(entry)
        db.commit()
        logger.info("Revoked access control %s", entry_id)


access_controls = AccessControls()
