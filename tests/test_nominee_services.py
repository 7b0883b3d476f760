import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from app.errors import (
    ConflictError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from app.models.vault import (
    NomineeRelation,
    NomineeStatus,
    NomineeVerificationToken,
)
from app.schemas.nominee import NomineeCreate, NomineeUpdate
from app.services.nominee import nominees
from tests.factories import create_nominee


def _payload(**overrides):
    data = dict(
        full_name="Meera Rao",
        relation="child",
        email="meera.rao@gmail.com",
        phone="9876543210",
    )
    data.update(overrides)
    return NomineeCreate(**data)


class TestNomineeCreate:
    def test_create_pending(self, db_session, profile):
        nominee = nominees.create(db_session, profile.id, _payload())
        assert nominee.status == NomineeStatus.pending
        assert nominee.relation == NomineeRelation.child
        assert nominee.verified_at is None

    def test_email_normalized(self, db_session, profile):
        nominee = nominees.create(
            db_session, profile.id, _payload(email=" Meera.Rao@Gmail.com ")
        )
        assert nominee.email == "meera.rao@gmail.com"

    def test_wrong_domain_rejected(self, db_session, profile):
        with pytest.raises(ValidationError):
            nominees.create(db_session, profile.id, _payload(email="meera@example.com"))

    @pytest.mark.parametrize("phone", ["12345", "98765432101", "98765-4321"])
    def test_bad_phone_rejected(self, db_session, profile, phone):
        with pytest.raises(ValidationError):
            nominees.create(db_session, profile.id, _payload(phone=phone))

    def test_phone_optional(self, db_session, profile):
        nominee = nominees.create(db_session, profile.id, _payload(phone=None))
        assert nominee.phone is None

    def test_bad_relation_rejected(self, db_session, profile):
        with pytest.raises(ValidationError):
            nominees.create(db_session, profile.id, _payload(relation="neighbour"))

    def test_duplicate_email_rejected(self, db_session, profile):
        nominees.create(db_session, profile.id, _payload())
        with pytest.raises(ConflictError):
            nominees.create(db_session, profile.id, _payload())

    def test_email_reusable_after_delete(self, db_session, profile):
        first = nominees.create(db_session, profile.id, _payload())
        nominees.delete(db_session, profile.id, first.id)
        second = nominees.create(db_session, profile.id, _payload())
        assert second.id != first.id


class TestNomineeQueries:
    def test_get_other_owner_hidden(self, db_session, profile, nominee):
        with pytest.raises(NotFoundError):
            nominees.get(db_session, uuid.uuid4(), nominee.id)

    def test_list_filters_status(self, db_session, profile):
        create_nominee(db_session, profile, status=NomineeStatus.pending)
        create_nominee(db_session, profile)
        pending = nominees.list(db_session, profile.id, "pending", "created_at", "desc", 50, 0)
        assert [n.status for n in pending] == [NomineeStatus.pending]

    def test_list_invalid_status(self, db_session, profile):
        with pytest.raises(ValidationError):
            nominees.list(db_session, profile.id, "archived", "created_at", "desc", 50, 0)

    def test_list_excludes_deleted(self, db_session, profile, nominee):
        nominees.delete(db_session, profile.id, nominee.id)
        assert nominees.list(db_session, profile.id, None, "created_at", "desc", 50, 0) == []

    def test_list_response_envelope(self, db_session, profile, nominee):
        result = nominees.list_response(
            db_session, profile.id, None, "created_at", "desc", 10, 0
        )
        assert result["count"] == 1
        assert result["limit"] == 10
        assert result["offset"] == 0


class TestNomineeUpdate:
    def test_changing_email_requires_reverification(self, db_session, profile, nominee):
        updated = nominees.update(
            db_session,
            profile.id,
            nominee.id,
            NomineeUpdate(email="new.address@gmail.com"),
        )
        assert updated.status == NomineeStatus.pending
        assert updated.verified_at is None

    def test_email_change_voids_outstanding_link(self, db_session, profile, mailer):
        nominee = nominees.create(db_session, profile.id, _payload(email="old@gmail.com"))
        nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        stale = mailer.last_link_token()

        nominees.update(
            db_session, profile.id, nominee.id, NomineeUpdate(email="new@gmail.com")
        )

        with pytest.raises(ExpiredError):
            nominees.verify(db_session, stale)
        db_session.refresh(nominee)
        assert nominee.email == "new@gmail.com"
        assert nominee.status == NomineeStatus.pending

    def test_same_email_keeps_status(self, db_session, profile, nominee):
        updated = nominees.update(
            db_session, profile.id, nominee.id, NomineeUpdate(email=nominee.email.upper())
        )
        assert updated.status == NomineeStatus.verified

    def test_update_name_and_relation(self, db_session, profile, nominee):
        updated = nominees.update(
            db_session,
            profile.id,
            nominee.id,
            NomineeUpdate(full_name=" Ravi K Rao ", relation="spouse"),
        )
        assert updated.full_name == "Ravi K Rao"
        assert updated.relation == NomineeRelation.spouse


class TestNomineeVerification:
    def test_send_and_verify(self, db_session, profile, mailer):
        nominee = nominees.create(db_session, profile.id, _payload())
        record = nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        assert mailer.last["to"] == nominee.email
        raw = mailer.last_link_token()
        assert record.token_hash != raw

        verified = nominees.verify(db_session, raw)
        assert verified.status == NomineeStatus.verified
        assert verified.verified_at is not None

    def test_link_single_use(self, db_session, profile, mailer):
        nominee = nominees.create(db_session, profile.id, _payload())
        nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        raw = mailer.last_link_token()
        nominees.verify(db_session, raw)
        with pytest.raises(NotFoundError):
            nominees.verify(db_session, raw)

    def test_resend_expires_previous_link(self, db_session, profile, mailer):
        nominee = nominees.create(db_session, profile.id, _payload())
        nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        first = mailer.last_link_token()
        nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        with pytest.raises(ExpiredError):
            nominees.verify(db_session, first)
        nominees.verify(db_session, mailer.last_link_token())

    def test_expired_link(self, db_session, profile, mailer):
        nominee = nominees.create(db_session, profile.id, _payload())
        sent_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        with patch("app.services.nominee._now", return_value=sent_at):
            nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        with patch(
            "app.services.nominee._now",
            return_value=sent_at + timedelta(hours=168, seconds=1),
        ):
            with pytest.raises(ExpiredError):
                nominees.verify(db_session, mailer.last_link_token())

    def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            nominees.verify(db_session, "not-a-real-token")

    def test_already_verified(self, db_session, profile, nominee, mailer):
        with pytest.raises(ConflictError):
            nominees.send_verification(db_session, profile.id, nominee.id, mailer=mailer)
        assert mailer.sent == []

    def test_delivery_failure(self, db_session, profile, failing_mailer):
        nominee = nominees.create(db_session, profile.id, _payload())
        with pytest.raises(DeliveryError):
            nominees.send_verification(
                db_session, profile.id, nominee.id, mailer=failing_mailer
            )
        assert db_session.query(NomineeVerificationToken).count() == 1
