import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("OTP_SECRET", "test-otp-secret")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.profile import Profile  # noqa: E402
from app.services.email import EmailResult  # noqa: E402
from tests.factories import (  # noqa: E402
    create_document,
    create_nominee,
    create_trigger,
    make_access_token,
)
from tests.mocks import FakeMailer, FakeStorage  # noqa: E402


@pytest.fixture()
def db_session():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def failing_mailer():
    return FakeMailer(result=EmailResult(success=False, error="SMTP unavailable"))


@pytest.fixture()
def client(db_session, mailer, storage):
    from app.api.deps import get_mailer, get_storage

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def profile(db_session):
    owner = Profile(
        email=f"owner_{uuid.uuid4().hex[:8]}@example.com",
        full_name="Asha Rao",
        email_verified=True,
    )
    db_session.add(owner)
    db_session.commit()
    db_session.refresh(owner)
    return owner


@pytest.fixture()
def auth_headers(profile):
    return {"Authorization": f"Bearer {make_access_token(profile.id)}"}


@pytest.fixture()
def nominee(db_session, profile):
    return create_nominee(db_session, profile)


@pytest.fixture()
def document(db_session, profile):
    return create_document(db_session, profile)


@pytest.fixture()
def granted_trigger(db_session, profile):
    now = datetime.now(timezone.utc)
    return create_trigger(
        db_session,
        profile,
        last_activity_at=now - timedelta(days=30),
        emergency_access_granted=True,
        access_granted_at=now - timedelta(days=23),
    )


@pytest.fixture()
def storage():
    return FakeStorage()
