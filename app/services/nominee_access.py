from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import AccessDeniedError, ValidationError
from app.models.vault import AccessControl, AccessLevel, Document, Nominee, ResourceType
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)


class DocumentAction(enum.Enum):
    view = "view"
    download = "download"


# Actions each access level permits. Download is a superset of view.
_ALLOWED_ACTIONS = {
    AccessLevel.view: {DocumentAction.view},
    AccessLevel.download: {DocumentAction.view, DocumentAction.download},
}


@dataclass(frozen=True)
class ResolvedDocument:
    document: Document
    access_level: AccessLevel

    @property
    def can_download(self) -> bool:
        return is_allowed(self.access_level, DocumentAction.download)


def coerce_action(action: DocumentAction | str) -> DocumentAction:
    if isinstance(action, DocumentAction):
        return action
    try:
        return DocumentAction(action)
    except ValueError:
        raise ValidationError(f"Invalid action: {action}")


def is_allowed(access_level: AccessLevel, action: DocumentAction | str) -> bool:
    return coerce_action(action) in _ALLOWED_ACTIONS[access_level]


def ensure_allowed(access_level: AccessLevel, action: DocumentAction | str) -> None:
    if not is_allowed(access_level, action):
        raise AccessDeniedError(
            "You don't have download permission for this document",
            reason="insufficient-access-level",
        )


def resolve_access(db: Session, nominee_id) -> list[ResolvedDocument]:
    """Documents a nominee may see, paired with their access level.

    An empty list means nothing was shared; it is not an error.
    """
    nominee = db.get(Nominee, coerce_uuid(nominee_id))
    if nominee is None:
        return []
    rows = db.execute(
        select(Document, AccessControl.access_level)
        .join(AccessControl, AccessControl.resource_id == Document.id)
        .where(
            AccessControl.nominee_id == nominee.id,
            AccessControl.resource_type == ResourceType.document,
            Document.user_id == nominee.user_id,
            Document.deleted_at.is_(None),
        )
        .order_by(Document.uploaded_at.desc())
    ).all()
    resolved = [ResolvedDocument(document=doc, access_level=level) for doc, level in rows]
    logger.info("Resolved %d documents for nominee %s", len(resolved), nominee.id)
    return resolved


def find_resolved(
    resolved: list[ResolvedDocument], document_id
) -> ResolvedDocument | None:
    document_id = coerce_uuid(document_id)
    for item in resolved:
        if item.document.id == document_id:
            return item
    return None
