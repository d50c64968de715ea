from datetime import date, time
from decimal import Decimal

import pytest

from servimatch import models, schemas
from servimatch.config import settings
from servimatch.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from servimatch.services import appointment_service, request_service

from conftest import caller_for

AS = models.AppointmentStatus


def _booking(worker_id: int, **overrides) -> schemas.AppointmentCreate:
    data = dict(
        worker_id=worker_id,
        service_type="Plomería",
        scheduled_date=date(2025, 3, 10),
        scheduled_time=time(10, 0),
    )
    data.update(overrides)
    return schemas.AppointmentCreate(**data)


async def test_direct_booking_is_pending_without_cost(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))

    assert item.status == AS.PENDING
    assert item.total_cost is None
    assert item.client_id == client_user.id
    assert item.worker_id == worker_user.id
    assert item.scheduled_date == date(2025, 3, 10)
    assert item.scheduled_time == time(10, 0)
    assert item.source_request_id is None


async def test_booking_unknown_worker(db, client_user):
    with pytest.raises(NotFoundError):
        await appointment_service.create_appointment(db, caller_for(client_user), _booking(4242))


async def test_lists_order_by_schedule_desc(db, client_user, worker_user):
    caller = caller_for(client_user)
    early = await appointment_service.create_appointment(
        db, caller, _booking(worker_user.id, scheduled_date=date(2025, 3, 1)))
    late = await appointment_service.create_appointment(
        db, caller, _booking(worker_user.id, scheduled_date=date(2025, 3, 20)))
    same_day_later = await appointment_service.create_appointment(
        db, caller, _booking(worker_user.id, scheduled_date=date(2025, 3, 20), scheduled_time=time(16, 0)))

    mine = await appointment_service.list_mine(db, client_user.id)
    assert [a.id for a in mine] == [same_day_later.id, late.id, early.id]

    assert [a.id for a in await appointment_service.list_for_worker(db, worker_user.id)] == [a.id for a in mine]
    assert await appointment_service.list_for_worker(db, client_user.id) == []


async def test_status_walks_the_lifecycle(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))
    worker = caller_for(worker_user)

    for target in (AS.CONFIRMED, AS.IN_PROGRESS, AS.COMPLETED):
        item = await appointment_service.set_status(db, item.id, worker, target)
        assert item.status == target

    with pytest.raises(ValidationError):
        await appointment_service.set_status(db, item.id, worker, AS.CANCELLED)


async def test_client_may_cancel_and_complete(db, client_user, worker_user):
    client = caller_for(client_user)
    first = await appointment_service.create_appointment(db, client, _booking(worker_user.id))
    cancelled = await appointment_service.set_status(db, first.id, client, AS.CANCELLED)
    assert cancelled.status == AS.CANCELLED

    second = await appointment_service.create_appointment(db, client, _booking(worker_user.id))
    await appointment_service.set_status(db, second.id, caller_for(worker_user), AS.CONFIRMED)
    await appointment_service.set_status(db, second.id, caller_for(worker_user), AS.IN_PROGRESS)
    done = await appointment_service.set_status(db, second.id, client, AS.COMPLETED)
    assert done.status == AS.COMPLETED


async def test_cannot_skip_to_completed(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))
    with pytest.raises(ValidationError):
        await appointment_service.set_status(db, item.id, caller_for(worker_user), AS.COMPLETED)


async def test_non_participant_sees_not_found(db, client_user, worker_user, make_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))
    stranger = await make_user("stranger@example.com")

    with pytest.raises(NotFoundError):
        await appointment_service.set_status(db, item.id, caller_for(stranger), AS.CONFIRMED)


async def test_completing_materialized_appointment_completes_request(db, client_user, worker_user):
    worker = caller_for(worker_user)
    request = await request_service.create_request(db, caller_for(client_user), schemas.ServiceRequestCreate(
        worker_id=worker_user.id, service_type="Electricidad",
    ))
    _, appointment = await request_service.accept_with_budget(db, request.id, worker, Decimal("45.00"))

    for target in (AS.CONFIRMED, AS.IN_PROGRESS, AS.COMPLETED):
        await appointment_service.set_status(db, appointment.id, worker, target)

    await db.refresh(request)
    assert request.status == models.ServiceRequestStatus.COMPLETED


async def test_set_price_by_worker(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))

    item = await appointment_service.set_price(db, item.id, caller_for(worker_user), Decimal("120.50"))
    assert item.total_cost == Decimal("120.50")


async def test_set_price_by_client_is_forbidden(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))

    with pytest.raises(ForbiddenError):
        await appointment_service.set_price(db, item.id, caller_for(client_user), Decimal("1.00"))


async def test_set_price_rejects_negative(db, client_user, worker_user):
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))

    with pytest.raises(ValidationError):
        await appointment_service.set_price(db, item.id, caller_for(worker_user), Decimal("-5"))


async def _completed(db, client_user, worker_user):
    worker = caller_for(worker_user)
    item = await appointment_service.create_appointment(db, caller_for(client_user), _booking(worker_user.id))
    for target in (AS.CONFIRMED, AS.IN_PROGRESS, AS.COMPLETED):
        item = await appointment_service.set_status(db, item.id, worker, target)
    return item


async def test_price_can_change_after_completion_by_default(db, client_user, worker_user):
    item = await _completed(db, client_user, worker_user)

    item = await appointment_service.set_price(db, item.id, caller_for(worker_user), Decimal("99.00"))
    assert item.total_cost == Decimal("99.00")


async def test_price_freeze_when_enabled(db, client_user, worker_user, monkeypatch):
    monkeypatch.setattr(settings, "FREEZE_PRICE_ON_COMPLETION", True)
    item = await _completed(db, client_user, worker_user)

    with pytest.raises(ConflictError):
        await appointment_service.set_price(db, item.id, caller_for(worker_user), Decimal("99.00"))
