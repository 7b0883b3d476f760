"""Owner authentication.

The auth provider issues HS256 bearer tokens whose ``sub`` is the account
id. Routes depend on ``require_user_auth`` and receive a ``SessionContext``
rather than reading identity from global state.
"""

import logging
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, Request
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.errors import AuthenticationError
from app.models.profile import Profile
from app.services.inactivity import inactivity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    account_id: uuid.UUID
    email: str


def bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError()
    return token.strip()


def _decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["exp", "sub"]},
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Session expired. Please sign in again.")
    except InvalidTokenError as e:
        logger.info("Rejected access token: %s", e)
        raise AuthenticationError()


def require_user_auth(request: Request, db: Session = Depends(get_db)) -> SessionContext:
    claims = _decode_access_token(bearer_token(request))
    try:
        account_id = uuid.UUID(str(claims["sub"]))
    except ValueError:
        raise AuthenticationError()
    profile = db.get(Profile, account_id)
    if profile is None:
        raise AuthenticationError("Account not found")
    # Any authenticated request counts as owner activity.
    inactivity.record_activity(db, account_id)
    context = SessionContext(account_id=account_id, email=profile.email)
    request.state.session = context
    return context
