from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch.auth import CallerContext, require_role
from servimatch import models, schemas
from servimatch.database import get_db
from servimatch.services import availability_service

router = APIRouter()

worker_only = require_role(models.UserRole.WORKER)


# ----------------------------------
#  Snapshot: tri-state + weekly schedule + radius
# ----------------------------------
@router.get("", response_model=schemas.AvailabilitySnapshot)
async def get_availability(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(worker_only),
):
    return await availability_service.get_snapshot(db, caller.user_id)


# ----------------------------------
#  Save weekly schedule (all 7 days)
# ----------------------------------
@router.put("", response_model=schemas.AvailabilitySnapshot)
async def save_availability(
    data: schemas.AvailabilityUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(worker_only),
):
    return await availability_service.save_weekly_schedule(db, caller, data)


@router.put("/status", response_model=schemas.AvailabilityStatusUpdate)
async def set_availability_status(
    data: schemas.AvailabilityStatusUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(worker_only),
):
    availability = await availability_service.set_availability(db, caller, data.availability)
    return schemas.AvailabilityStatusUpdate(availability=availability)


@router.get("/stats", response_model=schemas.AvailabilityStats)
async def get_availability_stats(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(worker_only),
):
    return await availability_service.get_stats(db, caller.user_id)
