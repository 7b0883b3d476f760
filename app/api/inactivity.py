from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, require_user_auth
from app.schemas.inactivity import InactivitySettingsRead, InactivitySettingsUpdate
from app.services.inactivity import (
    NotificationChannels,
    days_since_activity,
    inactivity,
)

router = APIRouter(prefix="/inactivity-trigger", tags=["inactivity"])


def _read(trigger) -> InactivitySettingsRead:
    data = InactivitySettingsRead.model_validate(trigger)
    data.days_since_activity = days_since_activity(trigger)
    return data


@router.get("", response_model=InactivitySettingsRead)
def get_inactivity_settings(
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return _read(inactivity.get_settings(db, session.account_id))


@router.put("", response_model=InactivitySettingsRead)
def save_inactivity_settings(
    payload: InactivitySettingsUpdate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    trigger = inactivity.upsert_settings(
        db,
        session.account_id,
        is_active=payload.is_active,
        threshold_days=payload.inactive_days_threshold,
        custom_message=payload.custom_message,
        channels=NotificationChannels(
            email=payload.email_enabled, sms=payload.sms_enabled
        ),
    )
    return _read(trigger)


@router.post("/activity", status_code=status.HTTP_204_NO_CONTENT)
def record_activity(session: SessionContext = Depends(require_user_auth)):
    # require_user_auth already recorded the activity.
    return None
