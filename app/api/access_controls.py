from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, require_user_auth
from app.schemas.access import (
    AccessControlCreate,
    AccessControlRead,
    AccessControlUpdate,
)
from app.schemas.common import ListResponse
from app.services import access_control as access_service

router = APIRouter(prefix="/access-controls", tags=["access-controls"])


@router.post("", response_model=AccessControlRead, status_code=status.HTTP_201_CREATED)
def create_access_control(
    payload: AccessControlCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return access_service.access_controls.create(db, session.account_id, payload)


@router.get("", response_model=ListResponse[AccessControlRead])
def list_access_controls(
    nominee_id: str | None = None,
    resource_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return access_service.access_controls.list_response(
        db,
        session.account_id,
        nominee_id,
        resource_id,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/{entry_id}", response_model=AccessControlRead)
def get_access_control(
    entry_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return access_service.access_controls.get(db, session.account_id, entry_id)


@router.patch("/{entry_id}", response_model=AccessControlRead)
def update_access_control(
    entry_id: str,
    payload: AccessControlUpdate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return access_service.access_controls.update(
        db, session.account_id, entry_id, payload
    )


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_access_control(
    entry_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    access_service.access_controls.delete(db, session.account_id, entry_id)
