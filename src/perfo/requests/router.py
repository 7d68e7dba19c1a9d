"""Point request and custom request endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.database import get_session
from perfo.db.models import User
from perfo.email.service import get_email_service
from perfo.requests.schemas import (
    CustomRequestCreate,
    CustomRequestResponse,
    PointRequestCreate,
    PointRequestResponse,
    RequestStatus,
    ReviewRequest,
)
from perfo.requests.service import (
    create_custom_request,
    create_point_request,
    list_custom_requests,
    list_point_requests,
    review_custom_request,
    review_point_request,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Requests"])


async def _notify_reviewed(user: User, title: str, status: str, points: int = 0) -> None:
    """Best-effort email to the requester; never fails the review."""
    try:
        await get_email_service().send_template(
            to=user.email,
            template_name="request_reviewed",
            context={"username": user.username, "request_title": title, "status": status, "points": points},
        )
    except Exception:
        logger.exception("review_email_failed", user_id=user.id)


# ---------------------------------------------------------------------------
# Point requests
# ---------------------------------------------------------------------------


@router.get("/point-requests", response_model=list[PointRequestResponse])
async def point_requests(
    status: RequestStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[PointRequestResponse]:
    return [PointRequestResponse.from_request(r) for r in await list_point_requests(db, user, status)]


@router.post("/point-requests", response_model=PointRequestResponse, status_code=201)
async def submit_point_request(
    body: PointRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PointRequestResponse:
    try:
        req = await create_point_request(db, user, body.task_id, body.photo_url, body.comment)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return PointRequestResponse.from_request(req)


@router.post("/point-requests/{request_id}/review", response_model=PointRequestResponse)
async def review_point(
    request_id: int,
    body: ReviewRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> PointRequestResponse:
    """Approve (crediting points and key rewards) or reject. A second review is 409."""
    try:
        req = await review_point_request(db, admin, request_id, body.status)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception:
        await db.rollback()
        raise
    await db.commit()
    await _notify_reviewed(req.user, req.task.title, body.status, req.task.points_value)
    return PointRequestResponse.from_request(req)


# ---------------------------------------------------------------------------
# Custom requests
# ---------------------------------------------------------------------------


@router.get("/custom-requests", response_model=list[CustomRequestResponse])
async def custom_requests(
    status: RequestStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[CustomRequestResponse]:
    return [CustomRequestResponse.from_request(r) for r in await list_custom_requests(db, user, status)]


@router.post("/custom-requests", response_model=CustomRequestResponse, status_code=201)
async def submit_custom_request(
    body: CustomRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CustomRequestResponse:
    req = await create_custom_request(db, user, body.title, body.type, body.description)
    await db.commit()
    return CustomRequestResponse.from_request(req)


@router.post("/custom-requests/{request_id}/review", response_model=CustomRequestResponse)
async def review_custom(
    request_id: int,
    body: ReviewRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> CustomRequestResponse:
    try:
        req = await review_custom_request(db, admin, request_id, body.status)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    await _notify_reviewed(req.user, req.title, body.status)
    return CustomRequestResponse.from_request(req)
