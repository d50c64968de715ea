from datetime import datetime, date, time
from typing import Dict, List
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas
from servimatch.auth import CallerContext
from servimatch.config import settings
from servimatch.errors import ValidationError
from servimatch.services.user_service import get_or_create_profile, get_profile_row

logger = logging.getLogger("availability")

WEEK: List[models.DayOfWeek] = list(models.DayOfWeek)  # monday first

WORKDAY_HOURS = (time(9, 0), time(18, 0))
WEEKEND_HOURS = (time(10, 0), time(14, 0))


def default_schedule() -> List[schemas.TimeSlot]:
    """Mon–Fri 09:00–18:00 on, Sat/Sun 10:00–14:00 off. Never persisted."""
    slots = []
    for day in WEEK:
        weekend = day in (models.DayOfWeek.SATURDAY, models.DayOfWeek.SUNDAY)
        start, end = WEEKEND_HOURS if weekend else WORKDAY_HOURS
        slots.append(schemas.TimeSlot(day=day, enabled=not weekend, start_time=start, end_time=end))
    return slots


def _validate_week(slots: List[schemas.TimeSlot]) -> Dict[models.DayOfWeek, schemas.TimeSlot]:
    by_day: Dict[models.DayOfWeek, schemas.TimeSlot] = {}
    for slot in slots:
        if slot.day in by_day:
            raise ValidationError(f"Duplicate day in schedule: {slot.day.value}")
        by_day[slot.day] = slot
    if len(by_day) != len(WEEK):
        missing = [d.value for d in WEEK if d not in by_day]
        raise ValidationError(f"Schedule must contain all 7 days, missing: {missing}")
    return by_day


async def _load_slots(db: AsyncSession, worker_id: int) -> List[models.WeeklyAvailabilitySlot]:
    rows = (
        await db.execute(
            select(models.WeeklyAvailabilitySlot).where(models.WeeklyAvailabilitySlot.worker_id == worker_id)
        )
    ).scalars().all()
    order = {d: i for i, d in enumerate(WEEK)}
    return sorted(rows, key=lambda r: order[r.day_of_week])


# ----------------------------------
#  Tri-state
# ----------------------------------

async def set_availability(
    db: AsyncSession,
    caller: CallerContext,
    availability: models.WorkerAvailability,
) -> models.WorkerAvailability:
    try:
        profile = await get_or_create_profile(db, caller.user_id)
        profile.availability = availability
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Worker %s availability=%s", caller.user_id, availability.value)
    return availability


# ----------------------------------
#  Weekly schedule
# ----------------------------------

async def save_weekly_schedule(
    db: AsyncSession,
    caller: CallerContext,
    data: schemas.AvailabilityUpdate,
) -> schemas.AvailabilitySnapshot:
    """
    Upsert all 7 day rows plus radius/immediate-service in one transaction.
    start_time >= end_time is stored as sent.
    """
    by_day = _validate_week(data.time_slots)

    try:
        profile = await get_or_create_profile(db, caller.user_id)
        if data.coverage_radius is not None:
            profile.coverage_radius_km = data.coverage_radius
        if data.immediate_service is not None:
            profile.immediate_service = data.immediate_service

        existing = {row.day_of_week: row for row in await _load_slots(db, caller.user_id)}
        for day in WEEK:
            slot = by_day[day]
            row = existing.get(day)
            if row is None:
                db.add(models.WeeklyAvailabilitySlot(
                    worker_id=caller.user_id,
                    day_of_week=day,
                    enabled=slot.enabled,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                ))
            else:
                row.enabled = slot.enabled
                row.start_time = slot.start_time
                row.end_time = slot.end_time

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Saved weekly schedule worker=%s enabled_days=%s radius=%s",
        caller.user_id, sum(1 for s in data.time_slots if s.enabled), profile.coverage_radius_km,
    )
    return await get_snapshot(db, caller.user_id)


async def get_snapshot(db: AsyncSession, worker_id: int) -> schemas.AvailabilitySnapshot:
    profile = await get_profile_row(db, worker_id)
    if profile is not None:
        await db.refresh(profile)
    rows = await _load_slots(db, worker_id)

    slots = [schemas.TimeSlot(
        day=r.day_of_week, enabled=r.enabled, start_time=r.start_time, end_time=r.end_time,
    ) for r in rows]
    if not slots:
        slots = default_schedule()

    return schemas.AvailabilitySnapshot(
        availability=profile.availability if profile else models.WorkerAvailability.AVAILABLE,
        immediate_service=bool(profile.immediate_service) if profile else False,
        coverage_radius=profile.coverage_radius_km if profile else settings.DEFAULT_COVERAGE_RADIUS_KM,
        time_slots=slots,
    )


def _whole_hours(start: time, end: time) -> int:
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return int(delta.total_seconds() / 3600)


async def get_stats(db: AsyncSession, worker_id: int) -> schemas.AvailabilityStats:
    enabled = [r for r in await _load_slots(db, worker_id) if r.enabled]
    active_days = len(enabled)
    weekly_hours = sum(_whole_hours(r.start_time, r.end_time) for r in enabled)
    return schemas.AvailabilityStats(
        active_days=active_days,
        weekly_hours=weekly_hours,
        availability_percentage=round(active_days / 7 * 100),
    )
