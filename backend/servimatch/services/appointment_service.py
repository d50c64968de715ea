from decimal import Decimal
from typing import List
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas
from servimatch.auth import CallerContext
from servimatch.config import settings
from servimatch.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from servimatch.lifecycle import check_appointment_transition
from servimatch.services.user_service import resolve_worker

logger = logging.getLogger("appointments")

AS = models.AppointmentStatus


async def _get_appointment(db: AsyncSession, appointment_id: int) -> models.Appointment:
    stmt = (
        select(models.Appointment)
        .where(models.Appointment.id == appointment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    item = (await db.execute(stmt)).scalar_one_or_none()
    if not item:
        raise NotFoundError("Appointment not found")
    return item


# ----------------------------------
#  Direct booking (client self-service)
# ----------------------------------

async def create_appointment(
    db: AsyncSession,
    caller: CallerContext,
    payload: schemas.AppointmentCreate,
) -> models.Appointment:
    service_type = (payload.service_type or "").strip()
    if not service_type or payload.scheduled_date is None or payload.scheduled_time is None:
        raise ValidationError("worker_id, service_type, scheduled_date and scheduled_time are required")

    worker = await resolve_worker(db, payload.worker_id)

    item = models.Appointment(
        client_id=caller.user_id,
        worker_id=worker.id,
        service_type=service_type,
        description=payload.description or None,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        status=AS.PENDING,
        address=payload.address,
        contact_phone=payload.contact_phone,
        special_instructions=payload.special_instructions,
    )

    try:
        db.add(item)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Appointment %s booked client=%s worker=%s on %s %s",
                item.id, item.client_id, item.worker_id, item.scheduled_date, item.scheduled_time)
    return item


# ----------------------------------
#  Lists
# ----------------------------------

def _ordered(q):
    return q.order_by(
        models.Appointment.scheduled_date.desc(),
        models.Appointment.scheduled_time.desc(),
        models.Appointment.id.desc(),
    )


async def list_mine(db: AsyncSession, user_id: int) -> List[models.Appointment]:
    q = select(models.Appointment).where(
        or_(models.Appointment.client_id == user_id, models.Appointment.worker_id == user_id)
    )
    return list((await db.execute(_ordered(q))).scalars().all())


async def list_for_worker(db: AsyncSession, worker_id: int) -> List[models.Appointment]:
    q = select(models.Appointment).where(models.Appointment.worker_id == worker_id)
    return list((await db.execute(_ordered(q))).scalars().all())


# ----------------------------------
#  Status
# ----------------------------------

async def set_status(
    db: AsyncSession,
    appointment_id: int,
    caller: CallerContext,
    new_status: models.AppointmentStatus,
) -> models.Appointment:
    """
    Either participant may move the appointment along the transition table.
    Completing an appointment that came from a request completes the request too.
    """
    try:
        item = await _get_appointment(db, appointment_id)
        if caller.user_id not in (item.client_id, item.worker_id):
            raise NotFoundError("Appointment not found")

        previous = item.status
        check_appointment_transition(previous, new_status)
        item.status = new_status

        if new_status == AS.COMPLETED and item.source_request_id is not None:
            await db.execute(
                update(models.ServiceRequest)
                .where(
                    models.ServiceRequest.id == item.source_request_id,
                    models.ServiceRequest.status == models.ServiceRequestStatus.ACCEPTED,
                )
                .values(status=models.ServiceRequestStatus.COMPLETED)
                .execution_options(synchronize_session=False)
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Appointment %s %s -> %s by user %s",
                item.id, previous.value, new_status.value, caller.user_id)
    return item


# ----------------------------------
#  Price
# ----------------------------------

async def set_price(
    db: AsyncSession,
    appointment_id: int,
    caller: CallerContext,
    amount: Decimal,
) -> models.Appointment:
    if amount is None or amount < 0:
        raise ValidationError("total_cost must be a non-negative number")

    try:
        item = await _get_appointment(db, appointment_id)
        if item.worker_id != caller.user_id:
            logger.warning("User %s tried to price appointment %s of worker %s",
                           caller.user_id, item.id, item.worker_id)
            raise ForbiddenError("Only the assigned worker can set the price")

        if settings.FREEZE_PRICE_ON_COMPLETION and item.status == AS.COMPLETED:
            raise ConflictError("Price is frozen once the appointment is completed")

        item.total_cost = amount
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Appointment %s price set to %s by worker %s", item.id, amount, caller.user_id)
    return item
