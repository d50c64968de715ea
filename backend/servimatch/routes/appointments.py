from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from servimatch.auth import CallerContext, get_caller
from servimatch import schemas
from servimatch.database import get_db
from servimatch.services import appointment_service

router = APIRouter()


# ----------------------------------
#  Book appointment directly (client)
# ----------------------------------
@router.post("", response_model=schemas.AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: schemas.AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await appointment_service.create_appointment(db, caller, payload)


@router.get("/mine", response_model=List[schemas.AppointmentRead])
async def list_my_appointments(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await appointment_service.list_mine(db, caller.user_id)


@router.get("/worker-view", response_model=List[schemas.AppointmentRead])
async def list_worker_appointments(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await appointment_service.list_for_worker(db, caller.user_id)


# ----------------------------------
#  Status (client or worker on the row)
# ----------------------------------
@router.put("/{appointment_id}/status", response_model=schemas.AppointmentRead)
async def update_appointment_status(
    appointment_id: int,
    data: schemas.AppointmentStatusUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await appointment_service.set_status(db, appointment_id, caller, data.status)


# ----------------------------------
#  Price (assigned worker only)
# ----------------------------------
@router.put("/{appointment_id}/price", response_model=schemas.AppointmentRead)
async def update_appointment_price(
    appointment_id: int,
    data: schemas.PriceUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await appointment_service.set_price(db, appointment_id, caller, data.total_cost)
