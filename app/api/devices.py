from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, require_user_auth
from app.schemas.device import DeviceRegister, DeviceUnregister
from app.services import push as push_service

router = APIRouter(prefix="/devices", tags=["devices"])


@router.post("", status_code=status.HTTP_204_NO_CONTENT)
def register_device(
    payload: DeviceRegister,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    push_service.registrar.register(
        db, session.account_id, payload.token, payload.platform
    )


@router.post("/unregister", status_code=status.HTTP_204_NO_CONTENT)
def unregister_device(
    payload: DeviceUnregister,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    push_service.registrar.unregister(db, session.account_id, payload.token)
