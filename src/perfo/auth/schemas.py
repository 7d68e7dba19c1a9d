"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class _EmailNormalized(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class RegisterRequest(_EmailNormalized):
    """Sign-up with email, password and a display username."""

    password: str = Field(..., min_length=1, max_length=128)
    username: str = Field(..., min_length=2, max_length=64, pattern=r"^[\w .-]+$")
    full_name: str | None = Field(None, max_length=128)


class LoginRequest(_EmailNormalized):
    password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(_EmailNormalized):
    pass


class VerifyEmailRequest(BaseModel):
    token: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    """A user as seen by the user themself or by an admin."""

    id: int
    username: str
    full_name: str | None = None
    email: str
    email_verified: bool = False
    role: str
    points: int
    is_blocked: bool = False
    avatar_url: str | None = None
    created_at: datetime | None = None
    last_login: datetime | None = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    user: UserResponse
