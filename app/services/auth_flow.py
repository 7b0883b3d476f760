from __future__ import annotations

import logging

from argon2 import PasswordHasher
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.profile import Profile
from app.models.vault import OTPPurpose
from app.services import email as email_service
from app.services import tokens
from app.services.common import coerce_uuid
from app.services.otp import otp, validate_subject_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

password_hasher = PasswordHasher()


def _validate_password(password: str) -> None:
    if not password:
        raise ValidationError("Password is required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _profile_by_email(db: Session, email: str) -> Profile | None:
    return db.scalars(select(Profile).where(Profile.email == email)).first()


class SignupFlow:
    @staticmethod
    def send_code(
        db: Session,
        email: str,
        full_name: str | None,
        password: str,
        mailer: email_service.Mailer | None = None,
    ) -> None:
        _validate_password(password)
        full_name = (full_name or "").strip()
        otp.issue(
            db,
            email,
            OTPPurpose.signup,
            payload={
                "full_name": full_name,
                "password_hash": password_hasher.hash(password),
            },
            name=full_name or None,
            mailer=mailer,
        )

    @staticmethod
    def verify_code(db: Session, email: str, code: str) -> Profile:
        email = validate_subject_email(email)
        payload = otp.verify(db, email, OTPPurpose.signup, code)
        profile = _profile_by_email(db, email)
        if profile is not None and profile.email_verified:
            raise ConflictError("An account with this email already exists")
        if profile is None:
            profile = Profile(email=email)
            db.add(profile)
        profile.full_name = payload.get("full_name") or None
        profile.password_hash = payload.get("password_hash")
        profile.email_verified = True
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("An account with this email already exists")
        db.refresh(profile)
        logger.info("Created account %s for %s", profile.id, email)
        return profile


class PasswordResetFlow:
    @staticmethod
    def send_code(
        db: Session, email: str, mailer: email_service.Mailer | None = None
    ) -> None:
        email = validate_subject_email(email)
        profile = _profile_by_email(db, email)
        if profile is None:
            # Same response as the happy path so addresses cannot be probed.
            logger.info("Password reset requested for unknown email %s", email)
            return
        otp.issue(
            db,
            email,
            OTPPurpose.password_reset,
            name=profile.full_name,
            mailer=mailer,
        )

    @staticmethod
    def verify_code(db: Session, email: str, code: str) -> str:
        email = validate_subject_email(email)
        otp.verify(db, email, OTPPurpose.password_reset, code)
        profile = _profile_by_email(db, email)
        if profile is None:
            raise NotFoundError("Account not found")
        return tokens.mint(
            str(profile.id),
            tokens.PASSWORD_RESET_AUDIENCE,
            settings.reset_token_ttl_minutes,
            email=profile.email,
        )

    @staticmethod
    def reset_password(db: Session, reset_token: str, new_password: str) -> Profile:
        claims = tokens.decode(reset_token, tokens.PASSWORD_RESET_AUDIENCE)
        _validate_password(new_password)
        profile = db.get(Profile, coerce_uuid(claims["sub"]))
        if profile is None:
            raise NotFoundError("Account not found")
        profile.password_hash = password_hasher.hash(new_password)
        db.commit()
        db.refresh(profile)
        logger.info("Password reset for account %s", profile.id)
        return profile


class TwoFactorFlow:
    @staticmethod
    def send_code(
        db: Session, account_id, mailer: email_service.Mailer | None = None
    ) -> None:
        profile = db.get(Profile, coerce_uuid(account_id))
        if profile is None:
            raise NotFoundError("Account not found")
        otp.issue(
            db,
            profile.email,
            OTPPurpose.two_factor,
            name=profile.full_name,
            mailer=mailer,
        )

    @staticmethod
    def verify_code(db: Session, account_id, code: str) -> None:
        profile = db.get(Profile, coerce_uuid(account_id))
        if profile is None:
            raise NotFoundError("Account not found")
        otp.verify(db, profile.email, OTPPurpose.two_factor, code)


signup = SignupFlow()
password_reset = PasswordResetFlow()
two_factor = TwoFactorFlow()
