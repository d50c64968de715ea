from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import schemas
from servimatch.auth import CallerContext, get_caller
from servimatch.database import get_db
from servimatch.services import user_service

router = APIRouter()


# ----------------------------------
#  Own profile
# ----------------------------------
@router.get("/profile", response_model=schemas.UserProfileRead)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await user_service.load_profile(db, caller.user_id)


@router.put("/profile", response_model=schemas.UserProfileRead)
async def update_profile(
    data: schemas.ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await user_service.update_profile(db, caller, data)


# ----------------------------------
#  Role chosen after sign-up
# ----------------------------------
@router.put("/role", response_model=schemas.UserProfileRead)
async def update_role(
    data: schemas.RoleUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await user_service.update_role(db, caller, data.role)


@router.put("/profession", response_model=schemas.UserProfileRead)
async def update_profession(
    data: schemas.ProfessionUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await user_service.update_profession(db, caller, data.profession, data.description)


# ----------------------------------
#  Password / stats
# ----------------------------------
@router.put("/password")
async def change_password(
    data: schemas.PasswordChange,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    await user_service.change_password(db, caller, data.current_password, data.new_password)
    return {"message": "Password updated"}


@router.get("/stats", response_model=schemas.UserStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await user_service.get_stats(db, caller)


# ----------------------------------
#  Public worker directory
# ----------------------------------
@router.get("/workers", response_model=List[schemas.WorkerPublic])
async def list_workers(
    profession: Optional[str] = Query(default=None),
    min_rating: Optional[Decimal] = Query(default=None, ge=0),
    available: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_workers(db, profession, min_rating, available)


@router.get("/workers/{worker_id}", response_model=schemas.WorkerPublic)
async def get_worker(worker_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_worker(db, worker_id)
