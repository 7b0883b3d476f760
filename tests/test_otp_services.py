from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.errors import (
    AlreadyUsedError,
    ConflictError,
    DeliveryError,
    ExpiredError,
    MismatchError,
    NotFoundError,
    ValidationError,
)
from app.models.vault import OTPPurpose, OTPToken
from app.services.otp import generate_code, hash_code, otp, validate_subject_email

EMAIL = "someone@example.com"


def _tokens(db_session, email=EMAIL, purpose=OTPPurpose.emergency_access):
    return (
        db_session.query(OTPToken)
        .filter(OTPToken.email == email, OTPToken.purpose == purpose)
        .all()
    )


class TestGenerateCode:
    def test_codes_are_six_digits(self):
        for _ in range(200):
            code = generate_code()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999

    def test_range_edges(self):
        with patch("app.services.otp.secrets.randbelow", return_value=0):
            assert generate_code() == "100000"
        with patch("app.services.otp.secrets.randbelow", return_value=899999):
            assert generate_code() == "999999"

    def test_randbelow_covers_whole_range(self):
        with patch("app.services.otp.secrets.randbelow", return_value=0) as mock_rand:
            generate_code()
        mock_rand.assert_called_once_with(900000)


class TestValidateSubjectEmail:
    def test_normalizes(self):
        assert validate_subject_email("  Someone@Example.COM ") == EMAIL

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            validate_subject_email("   ")

    def test_malformed_rejected(self):
        with pytest.raises(ValidationError):
            validate_subject_email("not-an-email")


class TestIssue:
    def test_stores_digest_not_code(self, db_session, mailer):
        token = otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        code = mailer.last_code()
        assert token.otp_hash != code
        assert code not in token.otp_hash
        assert token.otp_hash == hash_code(EMAIL, OTPPurpose.emergency_access, code)

    def test_expiry_is_ten_minutes(self, db_session, mailer):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        with patch("app.services.otp._now", return_value=now):
            token = otp.issue(
                db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer
            )
        assert token.expires_at.replace(tzinfo=timezone.utc) == now + timedelta(
            minutes=10
        )

    def test_mail_goes_to_subject(self, db_session, mailer):
        otp.issue(db_session, EMAIL, "emergency_access", mailer=mailer)
        assert len(mailer.sent) == 1
        assert mailer.last["to"] == EMAIL

    def test_reissue_replaces_unused_token(self, db_session, mailer):
        otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        assert len(_tokens(db_session)) == 1

    def test_old_code_rejected_after_reissue(self, db_session, mailer):
        with patch("app.services.otp.generate_code", side_effect=["111111", "222222"]):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        with pytest.raises(MismatchError):
            otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, "111111")
        otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, "222222")

    def test_purposes_are_independent(self, db_session, mailer):
        otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        otp.issue(db_session, EMAIL, OTPPurpose.password_reset, mailer=mailer)
        assert len(_tokens(db_session)) == 1
        assert len(_tokens(db_session, purpose=OTPPurpose.password_reset)) == 1

    def test_only_one_unused_token_per_pair(self, db_session):
        now = datetime.now(timezone.utc)
        for digest in ("a" * 64, "b" * 64):
            db_session.add(
                OTPToken(
                    email=EMAIL,
                    purpose=OTPPurpose.emergency_access,
                    otp_hash=digest,
                    expires_at=now + timedelta(minutes=10),
                )
            )
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_used_tokens_do_not_block_issue(self, db_session, mailer):
        for _ in range(2):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
            otp.verify(
                db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code()
            )
        assert len(_tokens(db_session)) == 2

    def test_concurrent_issue_is_retried(self, db_session, mailer):
        real_commit = db_session.commit
        attempts = []

        def commit_after_race():
            attempts.append(1)
            if len(attempts) == 1:
                raise IntegrityError(
                    "INSERT INTO otp_tokens", {}, Exception("duplicate key")
                )
            real_commit()

        with patch.object(db_session, "commit", side_effect=commit_after_race):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)

        assert len(attempts) == 2
        assert len(_tokens(db_session)) == 1
        assert len(mailer.sent) == 1
        otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code())

    def test_persistent_race_gives_up(self, db_session, mailer):
        with patch.object(
            db_session,
            "commit",
            side_effect=IntegrityError("INSERT INTO otp_tokens", {}, Exception("dup")),
        ):
            with pytest.raises(ConflictError):
                otp.issue(
                    db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer
                )
        assert mailer.sent == []

    def test_delivery_failure_keeps_token(self, db_session, failing_mailer):
        with pytest.raises(DeliveryError):
            otp.issue(
                db_session, EMAIL, OTPPurpose.emergency_access, mailer=failing_mailer
            )
        assert len(_tokens(db_session)) == 1

    def test_invalid_email_rejected_without_mail(self, db_session, mailer):
        with pytest.raises(ValidationError):
            otp.issue(db_session, "bad@", OTPPurpose.emergency_access, mailer=mailer)
        assert mailer.sent == []

    def test_unknown_purpose_rejected(self, db_session, mailer):
        with pytest.raises(ValidationError):
            otp.issue(db_session, EMAIL, "unlock_everything", mailer=mailer)

    def test_signup_conflicts_with_verified_account(self, db_session, profile, mailer):
        with pytest.raises(ConflictError):
            otp.issue(db_session, profile.email, OTPPurpose.signup, mailer=mailer)
        assert mailer.sent == []


class TestVerify:
    def test_success_returns_payload(self, db_session, mailer):
        otp.issue(
            db_session,
            EMAIL,
            OTPPurpose.emergency_access,
            payload={"nominee_id": "abc"},
            mailer=mailer,
        )
        payload = otp.verify(
            db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code()
        )
        assert payload == {"nominee_id": "abc"}
        token = _tokens(db_session)[0]
        assert token.used_at is not None

    def test_email_is_case_insensitive(self, db_session, mailer):
        otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        otp.verify(
            db_session,
            "SomeOne@Example.com",
            OTPPurpose.emergency_access,
            mailer.last_code(),
        )

    def test_replay_rejected(self, db_session, mailer):
        otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        code = mailer.last_code()
        otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, code)
        with pytest.raises(AlreadyUsedError):
            otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, code)

    def test_wrong_code(self, db_session, mailer):
        with patch("app.services.otp.generate_code", return_value="654321"):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        with pytest.raises(MismatchError):
            otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, "123456")
        # A wrong attempt does not burn the code.
        otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, "654321")

    def test_no_pending_token(self, db_session):
        with pytest.raises(NotFoundError):
            otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, "123456")

    def test_code_for_other_purpose_does_not_match(self, db_session, mailer):
        otp.issue(db_session, EMAIL, OTPPurpose.password_reset, mailer=mailer)
        with pytest.raises(NotFoundError):
            otp.verify(
                db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code()
            )

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", "      "])
    def test_malformed_code(self, db_session, code):
        with pytest.raises(ValidationError):
            otp.verify(db_session, EMAIL, OTPPurpose.emergency_access, code)

    @pytest.mark.parametrize(
        "elapsed",
        [timedelta(minutes=9, seconds=59), timedelta(minutes=10)],
        ids=["before-expiry", "at-expiry"],
    )
    def test_accepted_up_to_expiry(self, db_session, mailer, elapsed):
        issued = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        with patch("app.services.otp._now", return_value=issued):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        with patch("app.services.otp._now", return_value=issued + elapsed):
            otp.verify(
                db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code()
            )

    def test_rejected_after_expiry(self, db_session, mailer):
        issued = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        with patch("app.services.otp._now", return_value=issued):
            otp.issue(db_session, EMAIL, OTPPurpose.emergency_access, mailer=mailer)
        with patch(
            "app.services.otp._now",
            return_value=issued + timedelta(minutes=10, seconds=1),
        ):
            with pytest.raises(ExpiredError):
                otp.verify(
                    db_session, EMAIL, OTPPurpose.emergency_access, mailer.last_code()
                )
