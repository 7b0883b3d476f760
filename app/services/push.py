"""Push notification device registration.

Which registrar is used is decided once at startup from settings; callers
only see the ``NotificationRegistrar`` interface.
"""

import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import ValidationError
from app.models.vault import DeviceToken
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

PLATFORMS = {"ios", "android", "web"}


class NotificationRegistrar(Protocol):
    enabled: bool

    def register(self, db: Session, account_id, token: str, platform: str) -> None: ...

    def unregister(self, db: Session, account_id, token: str) -> None: ...


class NoopRegistrar:
    enabled = False

    def register(self, db: Session, account_id, token: str, platform: str) -> None:
        logger.debug("Push notifications disabled; ignoring device registration")

    def unregister(self, db: Session, account_id, token: str) -> None:
        return None


class DeviceTokenRegistrar:
    enabled = True

    def register(self, db: Session, account_id, token: str, platform: str) -> None:
        platform = platform.lower()
        if platform not in PLATFORMS:
            raise ValidationError(f"Invalid platform: {platform}")
        user_id = coerce_uuid(account_id)
        device = db.scalars(
            select(DeviceToken).where(
                DeviceToken.user_id == user_id, DeviceToken.token == token
            )
        ).first()
        if device is None:
            device = DeviceToken(user_id=user_id, token=token, platform=platform)
            db.add(device)
        device.platform = platform
        device.is_active = True
        db.commit()
        logger.info("Registered %s device for %s", platform, user_id)

    def unregister(self, db: Session, account_id, token: str) -> None:
        devices = db.scalars(
            select(DeviceToken).where(
                DeviceToken.user_id == coerce_uuid(account_id),
                DeviceToken.token == token,
            )
        ).all()
        for device in devices:
            device.is_active = False
        db.commit()


def build_registrar() -> NotificationRegistrar:
    if settings.push_notifications_enabled:
        return DeviceTokenRegistrar()
    return NoopRegistrar()


registrar: NotificationRegistrar = build_registrar()
