import logging
from datetime import datetime, timezone

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.tasks.inactivity.evaluate_inactivity_triggers", ignore_result=True
)
def evaluate_inactivity_triggers() -> None:
    """Periodic task that grants emergency access to overdue accounts.

    Each newly granted account gets a follow-up task that emails its
    verified nominees.
    """
    from app.db import SessionLocal
    from app.services.inactivity import inactivity

    db = SessionLocal()
    try:
        granted = inactivity.evaluate(db)
        trigger_ids = [str(trigger.id) for trigger in granted]
    except Exception as e:
        db.rollback()
        logger.exception("Failed to evaluate inactivity triggers: %s", e)
        return
    finally:
        db.close()

    for trigger_id in trigger_ids:
        notify_nominees_of_emergency_access.delay(trigger_id)
    logger.info("Granted emergency access on %d accounts", len(trigger_ids))


@celery_app.task(
    name="app.tasks.inactivity.notify_nominees_of_emergency_access",
    ignore_result=True,
)
def notify_nominees_of_emergency_access(trigger_id: str) -> None:
    from app.db import SessionLocal

    db = SessionLocal()
    try:
        _notify(db, trigger_id)
    except Exception as e:
        logger.exception("Failed to notify nominees for trigger %s: %s", trigger_id, e)
    finally:
        db.close()


def _notify(
    db: "Session",  # type: ignore[name-defined]  # noqa: F821
    trigger_id: str,
    mailer=None,
) -> int:
    from app.models.vault import InactivityTrigger, Nominee, NomineeStatus
    from app.services import email as email_service
    from app.services.common import coerce_uuid
    from app.services.email_templates import emergency_access_email

    trigger = db.get(InactivityTrigger, coerce_uuid(trigger_id))
    if trigger is None or not trigger.emergency_access_granted:
        return 0
    if trigger.nominees_notified_at is not None:
        return 0
    if not trigger.email_enabled:
        logger.info("Email notifications disabled for trigger %s", trigger_id)
        return 0

    owner_name = trigger.owner.full_name if trigger.owner else None
    nominees = (
        db.query(Nominee)
        .filter(
            Nominee.user_id == trigger.user_id,
            Nominee.status == NomineeStatus.verified,
            Nominee.deleted_at.is_(None),
        )
        .all()
    )
    send = mailer or email_service.send_email
    sent = 0
    for nominee in nominees:
        subject, html = emergency_access_email(
            nominee.full_name, owner_name, trigger.custom_message
        )
        result = send(to=nominee.email, subject=subject, html=html)
        if result.success:
            sent += 1
        else:
            logger.warning(
                "Failed to notify nominee %s: %s", nominee.id, result.error
            )

    trigger.nominees_notified_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Notified %d nominees for trigger %s", sent, trigger_id)
    return sent
