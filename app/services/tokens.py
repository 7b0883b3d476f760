"""Short-lived signed tokens handed to clients after an OTP step.

These are stateless JWTs: nothing is stored server side, the signature and
``exp`` claim are the whole story.
"""

from datetime import datetime, timedelta, timezone

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from app.config import settings
from app.errors import AuthenticationError

ALGORITHM = "HS256"

EMERGENCY_GRANT_AUDIENCE = "family-vault:emergency-access"
PASSWORD_RESET_AUDIENCE = "family-vault:password-reset"


def mint(subject: str, audience: str, ttl_minutes: int, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "aud": audience,
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode(token: str, audience: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            audience=audience,
            options={"require": ["exp", "sub", "aud"]},
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Your session has expired. Please verify again.")
    except InvalidTokenError:
        raise AuthenticationError("Invalid or missing token")
