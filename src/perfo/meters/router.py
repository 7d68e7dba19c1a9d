"""Meter endpoints. Admins manage meters; users read their own."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from perfo.auth.dependencies import get_current_admin, get_current_user
from perfo.database import get_session
from perfo.db.models import User
from perfo.meters.progress import MeterClosedError
from perfo.meters.schemas import (
    MeterAdjustRequest,
    MeterAdjustResponse,
    MeterCreateRequest,
    MeterHistoryEntry,
    MeterResponse,
)
from perfo.meters.service import (
    adjust_meter,
    create_meters,
    deactivate_meter,
    get_active_meter,
    get_meter,
    get_meter_history,
    list_meters,
)

router = APIRouter(prefix="/api/v1", tags=["Meters"])


@router.get("/meters", response_model=list[MeterResponse])
async def meters(
    active_only: bool = Query(True),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[MeterResponse]:
    return [MeterResponse.from_meter(m) for m in await list_meters(db, active_only=active_only)]


@router.post("/meters", response_model=list[MeterResponse], status_code=201)
async def new_meters(
    body: MeterCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> list[MeterResponse]:
    try:
        created = await create_meters(
            db,
            admin,
            body.user_ids,
            meter_type=body.meter_type,
            target_percentage=body.target_percentage,
            description=body.description,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return [MeterResponse.from_meter(m) for m in created]


@router.get("/users/me/meter", response_model=MeterResponse | None)
async def my_meter(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MeterResponse | None:
    meter = await get_active_meter(db, user.id)
    return MeterResponse.from_meter(meter) if meter else None


@router.post("/users/{user_id}/meter/adjust", response_model=MeterAdjustResponse)
async def adjust(
    user_id: int,
    body: MeterAdjustRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> MeterAdjustResponse:
    try:
        meter, history = await adjust_meter(db, admin, user_id, body.percentage_change, body.reason)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except MeterClosedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return MeterAdjustResponse(
        meter=MeterResponse.from_meter(meter),
        history=MeterHistoryEntry.model_validate(history),
    )


@router.post("/meters/{meter_id}/deactivate", response_model=MeterResponse)
async def deactivate(
    meter_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> MeterResponse:
    try:
        meter = await deactivate_meter(db, meter_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return MeterResponse.from_meter(meter)


@router.get("/meters/{meter_id}/history", response_model=list[MeterHistoryEntry])
async def meter_history(
    meter_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[MeterHistoryEntry]:
    """Visible to admins and to the meter's owner."""
    try:
        meter = await get_meter(db, meter_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    if not user.is_admin and meter.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not your meter")
    return [MeterHistoryEntry.model_validate(h) for h in await get_meter_history(db, meter_id)]
