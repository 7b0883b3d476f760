from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class SignupCodeRequest(BaseModel):
    email: str
    full_name: str | None = Field(default=None, max_length=255)
    password: str


class CodeVerifyRequest(BaseModel):
    email: str
    code: str


class EmailRequest(BaseModel):
    email: str


class CodeOnlyRequest(BaseModel):
    code: str


class SignupVerifyResponse(BaseModel):
    success: bool = True
    message: str = "Account created successfully"
    user_id: UUID


class ResetTokenResponse(BaseModel):
    success: bool = True
    reset_token: str


class PasswordResetRequest(BaseModel):
    reset_token: str
    new_password: str
