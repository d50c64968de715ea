from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from servimatch.auth import CallerContext, get_caller
from servimatch import schemas
from servimatch.database import get_db
from servimatch.services import request_service

router = APIRouter()


# ----------------------------------
#  Create Service Request (client, "contact now" or pre-dated)
# ----------------------------------
@router.post("", response_model=schemas.ServiceRequestRead)
async def create_service_request(
    payload: schemas.ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await request_service.create_request(db, caller, payload)


# ----------------------------------
#  Requests where the caller is client OR worker
# ----------------------------------
@router.get("/mine", response_model=List[schemas.ServiceRequestRead])
async def list_my_requests(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await request_service.list_mine(db, caller.user_id)


# ----------------------------------
#  Requests addressed to the caller as worker
# ----------------------------------
@router.get("/worker-view", response_model=List[schemas.ServiceRequestRead])
async def list_worker_requests(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await request_service.list_for_worker(db, caller.user_id)


# ----------------------------------
#  Update status (assigned worker only)
# ----------------------------------
@router.put("/{request_id}/status", response_model=schemas.ServiceRequestRead)
async def update_request_status(
    request_id: int,
    data: schemas.RequestStatusUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await request_service.set_status(db, request_id, caller, data.status)


# ----------------------------------
#  Accept with budget -> materializes an appointment
# ----------------------------------
@router.put("/{request_id}/accept", response_model=schemas.AcceptResult)
async def accept_request(
    request_id: int,
    data: schemas.AcceptRequest = schemas.AcceptRequest(),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    item, appointment = await request_service.accept_with_budget(db, request_id, caller, data.budget_amount)
    return schemas.AcceptResult(
        request=schemas.ServiceRequestRead.model_validate(item),
        appointment=schemas.AppointmentRead.model_validate(appointment),
        budget_estimate=data.budget_amount,
    )
