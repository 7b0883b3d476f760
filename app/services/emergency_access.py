"""Emergency access for nominees.

A nominee proves control of their email with a one-time code and is then
shown the documents the owner shared with them. The flow is:

    AwaitingEmail --submit_email--> AwaitingOTP --submit_code--> Authorized --exit--> Exited
                  <------back------

Nothing about the flow is stored server side except the OTP token. Guard
failures never change state. Denials carry a ``reason`` for logs and
in-process callers, but the message is the same for every reason so an
unauthenticated caller cannot tell whether the email is unknown, unverified,
or simply not granted yet.
"""

from __future__ import annotations

import enum
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import AccessDeniedError, InvalidStateError, NotFoundError
from app.metrics import EMERGENCY_ACCESS_REQUESTS
from app.models.vault import InactivityTrigger, Nominee, NomineeStatus, OTPPurpose
from app.services import email as email_service
from app.services import tokens
from app.services.common import coerce_uuid
from app.services.nominee_access import (
    DocumentAction,
    ResolvedDocument,
    coerce_action,
    ensure_allowed,
    find_resolved,
    is_allowed,
    resolve_access,
)
from app.services.otp import otp, validate_subject_email
from app.services.storage import StorageService

logger = logging.getLogger(__name__)


class FlowState(enum.Enum):
    awaiting_email = "awaiting_email"
    awaiting_otp = "awaiting_otp"
    authorized = "authorized"
    exited = "exited"


class DenialReason:
    nominee_not_found = "nominee-not-found"
    nominee_not_verified = "nominee-not-verified"
    access_not_granted = "access-not-granted"


def _deny(email: str, reason: str) -> AccessDeniedError:
    EMERGENCY_ACCESS_REQUESTS.labels(outcome=reason).inc()
    logger.info("Emergency access denied for %s: %s", email, reason)
    return AccessDeniedError(reason=reason)


def check_eligibility(db: Session, email: str) -> Nominee:
    """Return the nominee record that may use emergency access for ``email``.

    When the address is a verified nominee for several owners, the most
    recently granted owner wins.
    """
    nominees = db.scalars(
        select(Nominee).where(Nominee.email == email, Nominee.deleted_at.is_(None))
    ).all()
    if not nominees:
        raise _deny(email, DenialReason.nominee_not_found)

    verified = [n for n in nominees if n.status == NomineeStatus.verified]
    if not verified:
        raise _deny(email, DenialReason.nominee_not_verified)

    owners = {n.user_id: n for n in verified}
    trigger = db.scalars(
        select(InactivityTrigger)
        .where(
            InactivityTrigger.user_id.in_(owners.keys()),
            InactivityTrigger.is_active.is_(True),
            InactivityTrigger.emergency_access_granted.is_(True),
        )
        .order_by(InactivityTrigger.access_granted_at.desc())
    ).first()
    if trigger is None:
        raise _deny(email, DenialReason.access_not_granted)
    return owners[trigger.user_id]


def request_code(
    db: Session, email: str, mailer: email_service.Mailer | None = None
) -> Nominee:
    email = validate_subject_email(email)
    nominee = check_eligibility(db, email)
    otp.issue(
        db,
        email,
        OTPPurpose.emergency_access,
        payload={"nominee_id": str(nominee.id)},
        name=nominee.full_name,
        mailer=mailer,
    )
    EMERGENCY_ACCESS_REQUESTS.labels(outcome="code-sent").inc()
    return nominee


def confirm_code(
    db: Session, email: str, code: str
) -> tuple[Nominee, list[ResolvedDocument]]:
    email = validate_subject_email(email)
    otp.verify(db, email, OTPPurpose.emergency_access, code)
    # Access may have been withdrawn while the code was in flight.
    nominee = check_eligibility(db, email)
    EMERGENCY_ACCESS_REQUESTS.labels(outcome="authorized").inc()
    return nominee, resolve_access(db, nominee.id)


def issue_grant_token(nominee: Nominee) -> str:
    return tokens.mint(
        str(nominee.id),
        tokens.EMERGENCY_GRANT_AUDIENCE,
        settings.grant_token_ttl_minutes,
        email=nominee.email,
    )


def authorize_grant(db: Session, token: str) -> Nominee:
    claims = tokens.decode(token, tokens.EMERGENCY_GRANT_AUDIENCE)
    nominee = db.get(Nominee, coerce_uuid(claims["sub"]))
    if nominee is None:
        raise _deny(claims.get("email", ""), DenialReason.nominee_not_found)
    current = check_eligibility(db, nominee.email)
    if current.id != nominee.id:
        raise _deny(nominee.email, DenialReason.access_not_granted)
    return nominee


def signed_document_url(
    resolved: list[ResolvedDocument],
    document_id,
    action: DocumentAction | str,
    storage: StorageService | None = None,
) -> str:
    """Sign a link for one of ``resolved``; permission is checked first."""
    action = coerce_action(action)
    item = find_resolved(resolved, document_id)
    if item is None:
        raise NotFoundError("Document not found")
    ensure_allowed(item.access_level, action)
    if not item.document.storage_key:
        raise NotFoundError("Document file is missing")
    storage = storage or StorageService()
    return storage.generate_signed_url(
        item.document.storage_key,
        file_name=item.document.file_name,
        as_attachment=action == DocumentAction.download,
    )


class EmergencyAccessSession:
    """One nominee's pass through the emergency access flow.

    Holds only in-memory state; every step is validated against the store.
    """

    def __init__(
        self,
        db: Session,
        mailer: email_service.Mailer | None = None,
        storage: StorageService | None = None,
    ):
        self.db = db
        self.mailer = mailer
        self.storage = storage
        self.state = FlowState.awaiting_email
        self.email: str | None = None
        self.nominee: Nominee | None = None
        self.documents: list[ResolvedDocument] = []

    def _require(self, *states: FlowState) -> None:
        if self.state not in states:
            raise InvalidStateError(
                f"Cannot do that while {self.state.value.replace('_', ' ')}"
            )

    def submit_email(self, email: str) -> None:
        self._require(FlowState.awaiting_email)
        nominee = request_code(self.db, email, mailer=self.mailer)
        self.email = nominee.email
        self.state = FlowState.awaiting_otp

    def resend_code(self) -> None:
        self._require(FlowState.awaiting_otp)
        request_code(self.db, self.email, mailer=self.mailer)

    def submit_code(self, code: str) -> list[ResolvedDocument]:
        self._require(FlowState.awaiting_otp)
        nominee, documents = confirm_code(self.db, self.email, code)
        self.nominee = nominee
        self.documents = documents
        self.state = FlowState.authorized
        return documents

    def back(self) -> None:
        # The issued code is left to expire on its own.
        self._require(FlowState.awaiting_otp)
        self.email = None
        self.state = FlowState.awaiting_email

    def can_download(self, document_id) -> bool:
        item = find_resolved(self.documents, document_id)
        return item is not None and is_allowed(item.access_level, DocumentAction.download)

    def document_url(self, document_id, action: DocumentAction | str) -> str:
        self._require(FlowState.authorized)
        return signed_document_url(
            self.documents, document_id, action, storage=self.storage
        )

    def exit(self) -> None:
        self._require(FlowState.authorized)
        self.email = None
        self.nominee = None
        self.documents = []
        self.state = FlowState.exited
