from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, get_mailer, require_user_auth
from app.schemas.common import ListResponse, MessageResponse
from app.schemas.nominee import (
    NomineeCreate,
    NomineeRead,
    NomineeUpdate,
    NomineeVerifyRequest,
    NomineeVerifyResponse,
)
from app.services import nominee as nominee_service

router = APIRouter(prefix="/nominees", tags=["nominees"])


# ------------------------------------------------------------------
# Nominee CRUD
# ------------------------------------------------------------------


@router.post("", response_model=NomineeRead, status_code=status.HTTP_201_CREATED)
def create_nominee(
    payload: NomineeCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return nominee_service.nominees.create(db, session.account_id, payload)


@router.get("", response_model=ListResponse[NomineeRead])
def list_nominees(
    status_filter: str | None = Query(default=None, alias="status"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return nominee_service.nominees.list_response(
        db, session.account_id, status_filter, order_by, order_dir, limit, offset
    )


@router.get("/{nominee_id}", response_model=NomineeRead)
def get_nominee(
    nominee_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return nominee_service.nominees.get(db, session.account_id, nominee_id)


@router.patch("/{nominee_id}", response_model=NomineeRead)
def update_nominee(
    nominee_id: str,
    payload: NomineeUpdate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    return nominee_service.nominees.update(db, session.account_id, nominee_id, payload)


@router.delete("/{nominee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_nominee(
    nominee_id: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    nominee_service.nominees.delete(db, session.account_id, nominee_id)


# ------------------------------------------------------------------
# Verification
# ------------------------------------------------------------------


@router.post("/{nominee_id}/send-verification", response_model=MessageResponse)
def send_nominee_verification(
    nominee_id: str,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    session: SessionContext = Depends(require_user_auth),
):
    nominee_service.nominees.send_verification(
        db, session.account_id, nominee_id, mailer=mailer
    )
    return MessageResponse(message="Verification email sent")


@router.post("/verify", response_model=NomineeVerifyResponse)
def verify_nominee(payload: NomineeVerifyRequest, db: Session = Depends(get_db)):
    nominee = nominee_service.nominees.verify(db, payload.token)
    owner_name = nominee.owner.full_name if nominee.owner else None
    return NomineeVerifyResponse(
        nominee_id=nominee.id,
        owner_name=owner_name,
        message="You are now a verified nominee",
    )
