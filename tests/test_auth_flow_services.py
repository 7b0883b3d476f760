from unittest.mock import patch

import pytest

from app.errors import (
    AuthenticationError,
    ConflictError,
    MismatchError,
    ValidationError,
)
from app.models.profile import Profile
from app.models.vault import OTPToken
from app.services import tokens
from app.services.auth_flow import password_hasher, password_reset, signup, two_factor

EMAIL = "new.owner@example.com"


class TestSignupFlow:
    def test_signup_creates_verified_profile(self, db_session, mailer):
        signup.send_code(db_session, EMAIL, "New Owner", "correct horse", mailer=mailer)
        assert db_session.query(Profile).count() == 0

        profile = signup.verify_code(db_session, EMAIL, mailer.last_code())
        assert profile.email == EMAIL
        assert profile.full_name == "New Owner"
        assert profile.email_verified is True
        assert password_hasher.verify(profile.password_hash, "correct horse")

    def test_password_never_stored_in_clear(self, db_session, mailer):
        signup.send_code(db_session, EMAIL, "New Owner", "correct horse", mailer=mailer)
        token = db_session.query(OTPToken).one()
        assert "correct horse" not in str(token.payload)

    def test_short_password_rejected(self, db_session, mailer):
        with pytest.raises(ValidationError):
            signup.send_code(db_session, EMAIL, "New Owner", "short", mailer=mailer)
        assert mailer.sent == []

    def test_existing_account_conflicts(self, db_session, profile, mailer):
        with pytest.raises(ConflictError):
            signup.send_code(
                db_session, profile.email, "Someone", "correct horse", mailer=mailer
            )

    def test_wrong_code(self, db_session, mailer):
        with patch("app.services.otp.generate_code", return_value="654321"):
            signup.send_code(
                db_session, EMAIL, "New Owner", "correct horse", mailer=mailer
            )
        with pytest.raises(MismatchError):
            signup.verify_code(db_session, EMAIL, "123456")
        assert db_session.query(Profile).count() == 0


class TestPasswordResetFlow:
    def test_unknown_email_sends_nothing(self, db_session, mailer):
        password_reset.send_code(db_session, "ghost@example.com", mailer=mailer)
        assert mailer.sent == []
        assert db_session.query(OTPToken).count() == 0

    def test_reset_password(self, db_session, profile, mailer):
        password_reset.send_code(db_session, profile.email, mailer=mailer)
        reset_token = password_reset.verify_code(
            db_session, profile.email, mailer.last_code()
        )
        updated = password_reset.reset_password(db_session, reset_token, "brand new pass")
        assert password_hasher.verify(updated.password_hash, "brand new pass")

    def test_reset_token_audience_checked(self, db_session, profile):
        token = tokens.mint(str(profile.id), tokens.EMERGENCY_GRANT_AUDIENCE, 15)
        with pytest.raises(AuthenticationError):
            password_reset.reset_password(db_session, token, "brand new pass")

    def test_weak_new_password(self, db_session, profile):
        token = tokens.mint(str(profile.id), tokens.PASSWORD_RESET_AUDIENCE, 15)
        with pytest.raises(ValidationError):
            password_reset.reset_password(db_session, token, "short")


class TestTwoFactorFlow:
    def test_send_and_verify(self, db_session, profile, mailer):
        two_factor.send_code(db_session, profile.id, mailer=mailer)
        assert mailer.last["to"] == profile.email
        two_factor.verify_code(db_session, profile.id, mailer.last_code())
