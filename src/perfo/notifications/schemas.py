"""Notification request/response schemas."""

from pydantic import BaseModel, EmailStr, Field


class EmailNotificationRequest(BaseModel):
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)


class EmailNotificationResponse(BaseModel):
    status: str
    sent: bool
