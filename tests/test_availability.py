from datetime import time

import pytest
from sqlalchemy import func, select

from servimatch import models, schemas
from servimatch.errors import ValidationError
from servimatch.services import availability_service, user_service

from conftest import caller_for

D = models.DayOfWeek


def _week(**overrides):
    slots = []
    for day in availability_service.WEEK:
        enabled = day not in (D.SATURDAY, D.SUNDAY)
        slot = {"day": day.value, "enabled": enabled, "start_time": "08:00", "end_time": "16:30"}
        slot.update(overrides.get(day.value, {}))
        slots.append(slot)
    return slots


async def _slot_rows(db, worker_id) -> int:
    return (
        await db.execute(
            select(func.count(models.WeeklyAvailabilitySlot.id))
            .where(models.WeeklyAvailabilitySlot.worker_id == worker_id)
        )
    ).scalar_one()


async def test_snapshot_defaults_when_nothing_saved(db, worker_user):
    snapshot = await availability_service.get_snapshot(db, worker_user.id)

    assert snapshot.availability == models.WorkerAvailability.AVAILABLE
    assert snapshot.coverage_radius == 15
    assert [s.day for s in snapshot.time_slots] == availability_service.WEEK
    monday, saturday = snapshot.time_slots[0], snapshot.time_slots[5]
    assert (monday.enabled, monday.start_time, monday.end_time) == (True, time(9, 0), time(18, 0))
    assert (saturday.enabled, saturday.start_time, saturday.end_time) == (False, time(10, 0), time(14, 0))
    # Defaults are not persisted
    assert await _slot_rows(db, worker_user.id) == 0


async def test_save_weekly_schedule_is_idempotent(db, worker_user):
    caller = caller_for(worker_user)
    payload = schemas.AvailabilityUpdate(time_slots=_week(), coverage_radius=25, immediate_service=True)

    await availability_service.save_weekly_schedule(db, caller, payload)
    snapshot = await availability_service.save_weekly_schedule(db, caller, payload)

    assert await _slot_rows(db, worker_user.id) == 7
    assert snapshot.coverage_radius == 25
    assert snapshot.immediate_service is True
    assert snapshot.time_slots[0].start_time == time(8, 0)
    assert snapshot.time_slots[0].end_time == time(16, 30)


async def test_save_updates_existing_rows(db, worker_user):
    caller = caller_for(worker_user)
    await availability_service.save_weekly_schedule(db, caller, schemas.AvailabilityUpdate(time_slots=_week()))

    changed = _week(sunday={"enabled": True, "start_time": "11:00", "end_time": "13:00"})
    snapshot = await availability_service.save_weekly_schedule(
        db, caller, schemas.AvailabilityUpdate(time_slots=changed),
    )

    sunday = snapshot.time_slots[6]
    assert sunday.day == D.SUNDAY
    assert sunday.enabled is True
    assert sunday.start_time == time(11, 0)
    # Radius untouched when not sent
    assert snapshot.coverage_radius == 15


async def test_spanish_day_labels_are_accepted(db, worker_user):
    labels = ["Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"]
    slots = [{"day": label, "enabled": True, "start_time": "09:00", "end_time": "17:00"} for label in labels]

    snapshot = await availability_service.save_weekly_schedule(
        db, caller_for(worker_user), schemas.AvailabilityUpdate(time_slots=slots),
    )
    assert [s.day for s in snapshot.time_slots] == availability_service.WEEK


async def test_schedule_must_cover_every_day_once(db, worker_user):
    caller = caller_for(worker_user)

    with pytest.raises(ValidationError):
        await availability_service.save_weekly_schedule(
            db, caller, schemas.AvailabilityUpdate(time_slots=_week()[:6]),
        )

    duplicated = _week()
    duplicated[6] = dict(duplicated[0])
    with pytest.raises(ValidationError):
        await availability_service.save_weekly_schedule(
            db, caller, schemas.AvailabilityUpdate(time_slots=duplicated),
        )
    assert await _slot_rows(db, worker_user.id) == 0


async def test_stats(db, worker_user):
    # Mon-Fri 08:00-16:30 -> 8 whole hours per day
    await availability_service.save_weekly_schedule(
        db, caller_for(worker_user), schemas.AvailabilityUpdate(time_slots=_week()),
    )

    stats = await availability_service.get_stats(db, worker_user.id)
    assert stats.active_days == 5
    assert stats.weekly_hours == 40
    assert stats.availability_percentage == 71


async def test_stats_without_schedule(db, worker_user):
    stats = await availability_service.get_stats(db, worker_user.id)
    assert (stats.active_days, stats.weekly_hours, stats.availability_percentage) == (0, 0, 0)


async def test_offline_worker_is_hidden_from_available_listing(db, worker_user):
    await availability_service.set_availability(
        db, caller_for(worker_user), models.WorkerAvailability.OFFLINE,
    )

    available = await user_service.list_workers(db, available=True)
    assert worker_user.id not in [w.id for w in available]

    everyone = await user_service.list_workers(db)
    assert worker_user.id in [w.id for w in everyone]

    snapshot = await availability_service.get_snapshot(db, worker_user.id)
    assert snapshot.availability == models.WorkerAvailability.OFFLINE
