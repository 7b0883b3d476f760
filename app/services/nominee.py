from __future__ import annotations

import hashlib
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    ConflictError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from app.models.profile import Profile
from app.models.vault import (
    Nominee,
    NomineeRelation,
    NomineeStatus,
    NomineeVerificationToken,
)
from app.schemas.nominee import NomineeCreate, NomineeUpdate
from app.services import email as email_service
from app.services.common import (
    apply_ordering,
    apply_pagination,
    as_utc,
    coerce_uuid,
)
from app.services.email_templates import nominee_verification_email
from app.services.otp import validate_subject_email
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\d{10}$")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_email(email: str) -> str:
    email = validate_subject_email(email)
    domain = settings.nominee_email_domain.lower()
    if not email.endswith(f"@{domain}"):
        raise ValidationError(f"Nominee email must be a @{domain} address")
    return email


def _validate_phone(phone: str | None) -> str | None:
    phone = (phone or "").strip()
    if not phone:
        return None
    if not _PHONE_RE.match(phone):
        raise ValidationError("Phone number must be exactly 10 digits")
    return phone


def _validate_relation(relation: str | None) -> NomineeRelation:
    try:
        return NomineeRelation((relation or "other").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid relation: {relation}")


def _ensure_unique_email(
    db: Session, user_id, email: str, exclude_id=None
) -> None:
    stmt = select(Nominee).where(
        Nominee.user_id == user_id,
        Nominee.email == email,
        Nominee.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Nominee.id != exclude_id)
    if db.scalars(stmt).first():
        raise ConflictError("A nominee with this email already exists")


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _expire_pending_links(db: Session, nominee_id) -> None:
    db.execute(
        update(NomineeVerificationToken)
        .where(
            NomineeVerificationToken.nominee_id == nominee_id,
            NomineeVerificationToken.used_at.is_(None),
        )
        .values(expires_at=_now())
    )


class Nominees(ListResponseMixin):
    @staticmethod
    def create(db: Session, account_id, payload: NomineeCreate) -> Nominee:
        user_id = coerce_uuid(account_id)
        email = _validate_email(payload.email)
        phone = _validate_phone(payload.phone)
        relation = _validate_relation(payload.relation)
        _ensure_unique_email(db, user_id, email)

        nominee = Nominee(
            user_id=user_id,
            full_name=payload.full_name.strip(),
            relation=relation,
            email=email,
            phone=phone,
            status=NomineeStatus.pending,
        )
        db.add(nominee)
        db.commit()
        db.refresh(nominee)
        logger.info("Created nominee %s for %s", nominee.id, user_id)
        return nominee

    @staticmethod
    def get(db: Session, account_id, nominee_id) -> Nominee:
        nominee = db.get(Nominee, coerce_uuid(nominee_id))
        if (
            not nominee
            or nominee.user_id != coerce_uuid(account_id)
            or nominee.deleted_at is not None
        ):
            raise NotFoundError("Nominee not found")
        return nominee

    @staticmethod
    def list(
        db: Session,
        account_id,
        status: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Nominee]:
        stmt = select(Nominee).where(
            Nominee.user_id == coerce_uuid(account_id),
            Nominee.deleted_at.is_(None),
        )
        if status is not None:
            try:
                stmt = stmt.where(Nominee.status == NomineeStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": Nominee.created_at, "full_name": Nominee.full_name},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(db: Session, account_id, nominee_id, payload: NomineeUpdate) -> Nominee:
        nominee = Nominees.get(db, account_id, nominee_id)
        data = payload.model_dump(exclude_unset=True)
        if "email" in data and data["email"] is not None:
            email = _validate_email(data["email"])
            if email != nominee.email:
                _ensure_unique_email(db, nominee.user_id, email, exclude_id=nominee.id)
                nominee.email = email
                # A new address has to be verified again.
                nominee.status = NomineeStatus.pending
                nominee.verified_at = None
                _expire_pending_links(db, nominee.id)
        if "phone" in data:
            nominee.phone = _validate_phone(data["phone"])
        if "relation" in data and data["relation"] is not None:
            nominee.relation = _validate_relation(data["relation"])
        if "full_name" in data and data["full_name"] is not None:
            nominee.full_name = data["full_name"].strip()
        db.commit()
        db.refresh(nominee)
        logger.info("Updated nominee %s", nominee.id)
        return nominee

    @staticmethod
    def delete(db: Session, account_id, nominee_id) -> None:
        nominee = Nominees.get(db, account_id, nominee_id)
        nominee.deleted_at = _now()
        db.commit()
        logger.info("Soft-deleted nominee %s", nominee.id)

    @staticmethod
    def send_verification(
        db: Session,
        account_id,
        nominee_id,
        mailer: email_service.Mailer | None = None,
    ) -> NomineeVerificationToken:
        nominee = Nominees.get(db, account_id, nominee_id)
        if nominee.status == NomineeStatus.verified:
            raise ConflictError("Nominee is already verified")

        raw_token = secrets.token_urlsafe(32)
        _expire_pending_links(db, nominee.id)
        record = NomineeVerificationToken(
            nominee_id=nominee.id,
            token_hash=_hash_token(raw_token),
            expires_at=_now()
            + timedelta(hours=settings.nominee_verification_ttl_hours),
        )
        db.add(record)
        db.commit()
        db.refresh(record)

        owner = db.get(Profile, nominee.user_id)
        link = f"{settings.nominee_verification_url}?{urlencode({'token': raw_token})}"
        subject, html = nominee_verification_email(
            nominee.full_name, owner.full_name if owner else None, link
        )
        send = mailer or email_service.send_email
        result = send(to=nominee.email, subject=subject, html=html)
        if not result.success:
            logger.error(
                "Failed to send verification link to %s: %s", nominee.email, result.error
            )
            raise DeliveryError()
        logger.info("Sent verification link to nominee %s", nominee.id)
        return record

    @staticmethod
    def verify(db: Session, token: str) -> Nominee:
        record = db.scalars(
            select(NomineeVerificationToken).where(
                NomineeVerificationToken.token_hash == _hash_token(token or "")
            )
        ).first()
        if record is None or record.used_at is not None:
            raise NotFoundError("Invalid or expired verification link")
        now = _now()
        if now > as_utc(record.expires_at):
            raise ExpiredError("This verification link has expired")
        nominee = record.nominee
        if nominee is None or nominee.deleted_at is not None:
            raise NotFoundError("Invalid or expired verification link")

        result = db.execute(
            update(NomineeVerificationToken)
            .where(
                NomineeVerificationToken.id == record.id,
                NomineeVerificationToken.used_at.is_(None),
            )
            .values(used_at=now)
        )
        if result.rowcount != 1:
            db.rollback()
            raise NotFoundError("Invalid or expired verification link")
        nominee.status = NomineeStatus.verified
        nominee.verified_at = now
        db.commit()
        db.refresh(nominee)
        logger.info("Nominee %s verified", nominee.id)
        return nominee


nominees = Nominees()
