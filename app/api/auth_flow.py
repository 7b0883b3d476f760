from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import SessionContext, get_db, get_mailer, require_user_auth
from app.schemas.auth_flow import (
    CodeOnlyRequest,
    CodeVerifyRequest,
    EmailRequest,
    PasswordResetRequest,
    ResetTokenResponse,
    SignupCodeRequest,
    SignupVerifyResponse,
)
from app.schemas.common import MessageResponse
from app.services import auth_flow as auth_flow_service

router = APIRouter(prefix="/auth", tags=["auth"])


# ------------------------------------------------------------------
# Signup
# ------------------------------------------------------------------


@router.post("/signup/send-code", response_model=MessageResponse)
def send_signup_code(
    payload: SignupCodeRequest,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    auth_flow_service.signup.send_code(
        db, payload.email, payload.full_name, payload.password, mailer=mailer
    )
    return MessageResponse(message="Verification code sent")


@router.post("/signup/verify", response_model=SignupVerifyResponse)
def verify_signup_code(payload: CodeVerifyRequest, db: Session = Depends(get_db)):
    profile = auth_flow_service.signup.verify_code(db, payload.email, payload.code)
    return SignupVerifyResponse(user_id=profile.id)


# ------------------------------------------------------------------
# Password reset
# ------------------------------------------------------------------


@router.post("/password-reset/send-code", response_model=MessageResponse)
def send_password_reset_code(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
):
    auth_flow_service.password_reset.send_code(db, payload.email, mailer=mailer)
    return MessageResponse(
        message="If an account exists for this email, a reset code has been sent"
    )


@router.post("/password-reset/verify", response_model=ResetTokenResponse)
def verify_password_reset_code(
    payload: CodeVerifyRequest, db: Session = Depends(get_db)
):
    reset_token = auth_flow_service.password_reset.verify_code(
        db, payload.email, payload.code
    )
    return ResetTokenResponse(reset_token=reset_token)


@router.post("/password-reset/complete", response_model=MessageResponse)
def complete_password_reset(
    payload: PasswordResetRequest, db: Session = Depends(get_db)
):
    auth_flow_service.password_reset.reset_password(
        db, payload.reset_token, payload.new_password
    )
    return MessageResponse(message="Password updated")


# ------------------------------------------------------------------
# Two-factor
# ------------------------------------------------------------------


@router.post("/2fa/send-code", response_model=MessageResponse)
def send_two_factor_code(
    db: Session = Depends(get_db),
    mailer=Depends(get_mailer),
    session: SessionContext = Depends(require_user_auth),
):
    auth_flow_service.two_factor.send_code(db, session.account_id, mailer=mailer)
    return MessageResponse(message="Verification code sent")


@router.post("/2fa/verify", response_model=MessageResponse)
def verify_two_factor_code(
    payload: CodeOnlyRequest,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(require_user_auth),
):
    auth_flow_service.two_factor.verify_code(db, session.account_id, payload.code)
    return MessageResponse(message="Verified")
