from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch.auth import CallerContext, get_caller
from servimatch import schemas
from servimatch.database import get_db
from servimatch.services import earnings_service

router = APIRouter()


@router.get("", response_model=schemas.EarningsSummary)
async def get_earnings(
    range_: schemas.EarningsRange = Query(default=schemas.EarningsRange.WEEK, alias="range"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await earnings_service.summarize(db, caller.user_id, range_)


@router.get("/stats", response_model=schemas.EarningsStats)
async def get_earnings_stats(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return await earnings_service.stats(db, caller.user_id)
