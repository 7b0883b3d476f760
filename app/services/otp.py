"""One-time password issuance and verification.

Codes are six random digits. Only an HMAC-SHA256 digest of the code, bound
to the purpose and the subject email, is persisted; the raw code exists just
long enough to be mailed. Each (email, purpose) pair has at most one live
token: issuing replaces any unused token in the same transaction, and
verification consumes a token with a compare-and-set update so a code can
only ever be redeemed once.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    AlreadyUsedError,
    ConflictError,
    DeliveryError,
    ExpiredError,
    MismatchError,
    NotFoundError,
    ValidationError,
)
from app.metrics import OTP_ISSUED, OTP_VERIFICATIONS
from app.models.profile import Profile
from app.models.vault import OTPPurpose, OTPToken
from app.services import email as email_service
from app.services.common import as_utc, normalize_email
from app.services.email_templates import otp_email

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
ISSUE_ATTEMPTS = 3


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_purpose(purpose: OTPPurpose | str) -> OTPPurpose:
    if isinstance(purpose, OTPPurpose):
        return purpose
    try:
        return OTPPurpose(purpose)
    except ValueError:
        raise ValidationError(f"Invalid purpose: {purpose}")


def validate_subject_email(email: str) -> str:
    """Return the normalized address or raise ``ValidationError``."""
    candidate = normalize_email(email)
    if not candidate:
        raise ValidationError("Please enter your email")
    try:
        validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Please enter a valid email address")
    return candidate


def generate_code() -> str:
    # randbelow is uniform over [0, 900000)
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def hash_code(email: str, purpose: OTPPurpose, code: str) -> str:
    message = f"{purpose.value}:{email}:{code}".encode()
    return hmac.new(
        settings.otp_secret.encode(), message, hashlib.sha256
    ).hexdigest()


class OTPService:
    @staticmethod
    def _check_preconditions(db: Session, email: str, purpose: OTPPurpose) -> None:
        if purpose == OTPPurpose.signup:
            existing = db.scalars(
                select(Profile).where(Profile.email == email)
            ).first()
            if existing and existing.email_verified:
                raise ConflictError("An account with this email already exists")

    @staticmethod
    def issue(
        db: Session,
        email: str,
        purpose: OTPPurpose | str,
        payload: dict | None = None,
        name: str | None = None,
        mailer: email_service.Mailer | None = None,
    ) -> OTPToken:
        """Create a fresh code for ``(email, purpose)`` and mail it.

        The token row is committed before delivery is attempted, so a
        ``DeliveryError`` still leaves a valid code behind; calling ``issue``
        again is the resend path.
        """
        purpose = _coerce_purpose(purpose)
        email = validate_subject_email(email)
        OTPService._check_preconditions(db, email, purpose)

        code = generate_code()
        for attempt in range(ISSUE_ATTEMPTS):
            now = _now()
            db.execute(
                delete(OTPToken).where(
                    OTPToken.email == email,
                    OTPToken.purpose == purpose,
                    OTPToken.used_at.is_(None),
                )
            )
            token = OTPToken(
                email=email,
                purpose=purpose,
                otp_hash=hash_code(email, purpose, code),
                payload=payload,
                created_at=now,
                expires_at=now + timedelta(minutes=settings.otp_ttl_minutes),
            )
            db.add(token)
            try:
                db.commit()
                break
            except IntegrityError:
                # A concurrent issue for the same pair committed first.
                db.rollback()
                logger.warning(
                    "Concurrent %s code issue for %s (attempt %d)",
                    purpose.value,
                    email,
                    attempt + 1,
                )
        else:
            raise ConflictError("A code is already being sent. Please try again.")
        db.refresh(token)
        logger.info("Issued %s code for %s", purpose.value, email)

        subject, html = otp_email(purpose, code, name)
        send = mailer or email_service.send_email
        result = send(to=email, subject=subject, html=html)
        if not result.success:
            OTP_ISSUED.labels(purpose=purpose.value, delivered="false").inc()
            logger.error(
                "Failed to deliver %s code to %s: %s", purpose.value, email, result.error
            )
            raise DeliveryError()
        OTP_ISSUED.labels(purpose=purpose.value, delivered="true").inc()
        return token

    @staticmethod
    def verify(
        db: Session, email: str, purpose: OTPPurpose | str, code: str
    ) -> dict:
        """Redeem ``code`` and return the payload stored with it."""
        purpose = _coerce_purpose(purpose)
        email = normalize_email(email)
        code = (code or "").strip()
        if len(code) != 6 or not code.isdigit():
            raise ValidationError("Please enter a valid 6-digit code")

        submitted = hash_code(email, purpose, code)
        token = db.scalars(
            select(OTPToken)
            .where(
                OTPToken.email == email,
                OTPToken.purpose == purpose,
                OTPToken.used_at.is_(None),
            )
            .order_by(OTPToken.created_at.desc())
        ).first()

        if token is None:
            last_used = db.scalars(
                select(OTPToken)
                .where(OTPToken.email == email, OTPToken.purpose == purpose)
                .order_by(OTPToken.used_at.desc())
            ).first()
            if last_used is not None and hmac.compare_digest(
                last_used.otp_hash, submitted
            ):
                OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="replay").inc()
                logger.warning("Replay of used %s code for %s", purpose.value, email)
                raise AlreadyUsedError()
            OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="not_found").inc()
            raise NotFoundError("No pending verification found for this email")

        now = _now()
        if now > as_utc(token.expires_at):
            OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="expired").inc()
            raise ExpiredError()

        if not hmac.compare_digest(token.otp_hash, submitted):
            OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="mismatch").inc()
            logger.info("Wrong %s code submitted for %s", purpose.value, email)
            raise MismatchError()

        result = db.execute(
            update(OTPToken)
            .where(OTPToken.id == token.id, OTPToken.used_at.is_(None))
            .values(used_at=now)
        )
        if result.rowcount != 1:
            db.rollback()
            OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="replay").inc()
            raise AlreadyUsedError()
        db.commit()
        OTP_VERIFICATIONS.labels(purpose=purpose.value, outcome="success").inc()
        logger.info("Verified %s code for %s", purpose.value, email)
        return dict(token.payload or {})


otp = OTPService()
