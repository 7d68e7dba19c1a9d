"""Notification endpoints: /api/v1/notifications/*."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from redis.asyncio import Redis

from perfo.auth.dependencies import get_current_user
from perfo.db.models import User
from perfo.email.service import get_email_service
from perfo.notifications.schemas import EmailNotificationRequest, EmailNotificationResponse
from perfo.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.post("/email", response_model=EmailNotificationResponse, status_code=202)
async def send_notification_email(
    body: EmailNotificationRequest,
    user: User = Depends(get_current_user),
    redis: Redis = Depends(get_redis),  # type: ignore[assignment]
) -> EmailNotificationResponse:
    """Send a plain notification email. Recipients are capped per hour."""
    sent = await get_email_service(redis).send_template(
        to=body.email,
        template_name="notification",
        context={"subject": body.subject, "message": body.message},
    )
    if not sent:
        logger.warning("notification_email_not_sent", user_id=user.id)
        raise HTTPException(status_code=429, detail="Notification email could not be sent; try again later")
    logger.info("notification_email_sent", user_id=user.id)
    return EmailNotificationResponse(status="sent", sent=True)
