from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError
from app.metrics import EMERGENCY_ACCESS_GRANTS
from app.models.profile import Profile
from app.models.vault import InactivityTrigger
from app.services.common import as_utc, coerce_uuid

logger = logging.getLogger(__name__)

MIN_THRESHOLD_DAYS = 1
MAX_THRESHOLD_DAYS = 365


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NotificationChannels:
    email: bool = True
    sms: bool = False


def validate_threshold(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Days threshold must be a whole number")
    if not MIN_THRESHOLD_DAYS <= value <= MAX_THRESHOLD_DAYS:
        raise ValidationError(
            f"Days threshold must be between {MIN_THRESHOLD_DAYS} and {MAX_THRESHOLD_DAYS}"
        )
    return value


def days_since_activity(trigger: InactivityTrigger, now: datetime | None = None) -> int:
    now = now or _now()
    return (now - as_utc(trigger.last_activity_at)).days


class InactivityMonitor:
    @staticmethod
    def get_settings(db: Session, account_id) -> InactivityTrigger:
        trigger = db.scalars(
            select(InactivityTrigger).where(
                InactivityTrigger.user_id == coerce_uuid(account_id)
            )
        ).first()
        if not trigger:
            raise NotFoundError("Inactivity settings not found")
        return trigger

    @staticmethod
    def upsert_settings(
        db: Session,
        account_id,
        is_active: bool,
        threshold_days,
        custom_message: str | None = None,
        channels: NotificationChannels | None = None,
    ) -> InactivityTrigger:
        threshold_days = validate_threshold(threshold_days)
        channels = channels or NotificationChannels()
        account_id = coerce_uuid(account_id)
        if not db.get(Profile, account_id):
            raise NotFoundError("Account not found")

        trigger = db.scalars(
            select(InactivityTrigger).where(InactivityTrigger.user_id == account_id)
        ).first()
        if trigger is None:
            trigger = InactivityTrigger(user_id=account_id)
            db.add(trigger)

        trigger.is_active = is_active
        trigger.inactive_days_threshold = threshold_days
        trigger.custom_message = (custom_message or "").strip() or None
        trigger.email_enabled = channels.email
        trigger.sms_enabled = channels.sms
        # Saving settings counts as owner activity.
        trigger.last_activity_at = _now()
        if not is_active:
            trigger.emergency_access_granted = False
            trigger.access_granted_at = None
        db.commit()
        db.refresh(trigger)
        logger.info(
            "Saved inactivity settings for %s (active=%s, threshold=%d)",
            account_id,
            is_active,
            threshold_days,
        )
        return trigger

    @staticmethod
    def record_activity(db: Session, account_id) -> bool:
        trigger = db.scalars(
            select(InactivityTrigger).where(
                InactivityTrigger.user_id == coerce_uuid(account_id)
            )
        ).first()
        if trigger is None:
            return False
        trigger.last_activity_at = _now()
        db.commit()
        logger.debug("Recorded activity for %s", account_id)
        return True

    @staticmethod
    def evaluate(db: Session, now: datetime | None = None) -> list[InactivityTrigger]:
        """Flip grants for accounts whose inactivity threshold has elapsed.

        Returns the triggers granted by this run. Grants on monitors that were
        switched off, or whose owner has been active since, are withdrawn.
        """
        now = now or _now()
        granted: list[InactivityTrigger] = []

        stale = db.scalars(
            select(InactivityTrigger).where(
                InactivityTrigger.is_active.is_(False),
                InactivityTrigger.emergency_access_granted.is_(True),
            )
        ).all()
        for trigger in stale:
            trigger.emergency_access_granted = False
            trigger.access_granted_at = None

        active = db.scalars(
            select(InactivityTrigger).where(InactivityTrigger.is_active.is_(True))
        ).all()
        for trigger in active:
            elapsed = now - as_utc(trigger.last_activity_at)
            due = elapsed >= timedelta(days=trigger.inactive_days_threshold)
            if due and not trigger.emergency_access_granted:
                trigger.emergency_access_granted = True
                trigger.access_granted_at = now
                trigger.nominees_notified_at = None
                granted.append(trigger)
                EMERGENCY_ACCESS_GRANTS.inc()
                logger.warning(
                    "Emergency access granted for %s after %d days of inactivity",
                    trigger.user_id,
                    elapsed.days,
                )
            elif not due and trigger.emergency_access_granted:
                trigger.emergency_access_granted = False
                trigger.access_granted_at = None
                logger.info("Emergency access withdrawn for %s", trigger.user_id)
        db.commit()
        return granted


inactivity = InactivityMonitor()
