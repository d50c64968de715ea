"""
Service requests: "contact now" asks from a client to one worker.

Acceptance materializes an Appointment in the same transaction as the
status change. Concurrent accepts on one request are serialized by a row
lock where the database supports it and by a conditional UPDATE that only
matches while the request is still pending; the loser gets ConflictError.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas
from servimatch.auth import CallerContext
from servimatch.config import settings
from servimatch.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from servimatch.lifecycle import REQUEST_SETTABLE, check_request_transition
from servimatch.services.user_service import resolve_worker

logger = logging.getLogger("requests")

RS = models.ServiceRequestStatus

ACCEPTED_FALLBACK_DESCRIPTION = "Service accepted from request"


async def _get_request(db: AsyncSession, request_id: int, *, lock: bool = False) -> models.ServiceRequest:
    stmt = select(models.ServiceRequest).where(models.ServiceRequest.id == request_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    item = (await db.execute(stmt)).scalar_one_or_none()
    if not item:
        raise NotFoundError("Service request not found")
    return item


def _assert_assigned_worker(item: models.ServiceRequest, caller: CallerContext) -> None:
    if item.worker_id != caller.user_id:
        logger.warning("User %s tried to change request %s owned by worker %s",
                       caller.user_id, item.id, item.worker_id)
        raise ForbiddenError("Only the assigned worker can update this request")


async def _conditional_status_update(
    db: AsyncSession,
    item: models.ServiceRequest,
    expected: models.ServiceRequestStatus,
    **values,
) -> None:
    """UPDATE ... WHERE status = expected; zero rows means someone else got there first."""
    result = await db.execute(
        update(models.ServiceRequest)
        .where(models.ServiceRequest.id == item.id, models.ServiceRequest.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("Service request was already processed")


async def _complete_linked_appointment(db: AsyncSession, item: models.ServiceRequest) -> None:
    """Completes the appointment a request produced; it must already be in progress."""
    stmt = (
        select(models.Appointment)
        .where(models.Appointment.source_request_id == item.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    appointment = (await db.execute(stmt)).scalar_one_or_none()
    if appointment is None or appointment.status == models.AppointmentStatus.COMPLETED:
        return
    if appointment.status != models.AppointmentStatus.IN_PROGRESS:
        raise ConflictError(
            f"Linked appointment {appointment.id} is {appointment.status.value}, not in_progress"
        )
    appointment.status = models.AppointmentStatus.COMPLETED


# ----------------------------------
#  Create
# ----------------------------------

async def create_request(
    db: AsyncSession,
    caller: CallerContext,
    payload: schemas.ServiceRequestCreate,
) -> models.ServiceRequest:
    service_type = (payload.service_type or "").strip()
    if not service_type:
        raise ValidationError("worker_id and service_type are required")
    if payload.budget_estimate is not None and payload.budget_estimate < 0:
        raise ValidationError("budget_estimate cannot be negative")

    worker = await resolve_worker(db, payload.worker_id)

    item = models.ServiceRequest(
        client_id=caller.user_id,
        worker_id=worker.id,
        service_type=service_type,
        urgency=payload.urgency or models.Urgency.MEDIUM,
        description=payload.description or None,
        budget_estimate=payload.budget_estimate,
        preferred_date=payload.preferred_date,
        preferred_time=payload.preferred_time,
        contact_method=payload.contact_method or "both",
        client_phone=caller.phone,
    )

    try:
        db.add(item)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Request %s created client=%s worker=%s urgency=%s",
                item.id, item.client_id, item.worker_id, item.urgency.value)
    return item


# ----------------------------------
#  Lists
# ----------------------------------

async def list_for_worker(db: AsyncSession, worker_id: int) -> List[models.ServiceRequest]:
    q = (
        select(models.ServiceRequest)
        .where(models.ServiceRequest.worker_id == worker_id)
        .order_by(models.ServiceRequest.created_at.desc(), models.ServiceRequest.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def list_for_client(db: AsyncSession, client_id: int) -> List[models.ServiceRequest]:
    q = (
        select(models.ServiceRequest)
        .where(models.ServiceRequest.client_id == client_id)
        .order_by(models.ServiceRequest.created_at.desc(), models.ServiceRequest.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def list_mine(db: AsyncSession, user_id: int) -> List[models.ServiceRequest]:
    q = (
        select(models.ServiceRequest)
        .where(or_(models.ServiceRequest.client_id == user_id,
                   models.ServiceRequest.worker_id == user_id))
        .order_by(models.ServiceRequest.created_at.desc(), models.ServiceRequest.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


# ----------------------------------
#  Accept with budget
# ----------------------------------

async def accept_with_budget(
    db: AsyncSession,
    request_id: int,
    caller: CallerContext,
    budget_amount: Optional[Decimal] = None,
) -> Tuple[models.ServiceRequest, models.Appointment]:
    if budget_amount is not None and budget_amount < 0:
        raise ValidationError("budget_amount cannot be negative")

    try:
        item = await _get_request(db, request_id, lock=True)
        _assert_assigned_worker(item, caller)
        if item.status != RS.PENDING:
            raise ConflictError(f"Service request is already {item.status.value}")

        values = {"status": RS.ACCEPTED}
        if budget_amount is not None:
            values["budget_estimate"] = budget_amount
        await _conditional_status_update(db, item, RS.PENDING, **values)

        appointment = models.Appointment(
            client_id=item.client_id,
            worker_id=item.worker_id,
            service_type=item.service_type,
            description=item.description or ACCEPTED_FALLBACK_DESCRIPTION,
            scheduled_date=item.preferred_date or date.today(),
            scheduled_time=item.preferred_time or settings.DEFAULT_APPOINTMENT_TIME,
            status=models.AppointmentStatus.PENDING,
            total_cost=budget_amount,
            contact_phone=item.client_phone,
            source_request_id=item.id,
        )
        db.add(appointment)
        await db.flush()

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    await db.refresh(appointment)
    logger.info("Request %s accepted by worker %s -> appointment %s (budget=%s)",
                item.id, caller.user_id, appointment.id, budget_amount)
    return item, appointment


# ----------------------------------
#  Status
# ----------------------------------

async def set_status(
    db: AsyncSession,
    request_id: int,
    caller: CallerContext,
    new_status: models.ServiceRequestStatus,
) -> models.ServiceRequest:
    """
    Worker-driven status change. Acceptance always goes through
    accept_with_budget so an accepted request never lacks its appointment,
    and completion moves the linked appointment from in_progress to completed.
    """
    item = await _get_request(db, request_id)
    _assert_assigned_worker(item, caller)

    if new_status not in REQUEST_SETTABLE:
        raise ValidationError(f"Invalid status: {new_status.value}")
    check_request_transition(item.status, new_status)

    if new_status == RS.ACCEPTED:
        item, _ = await accept_with_budget(db, request_id, caller)
        return item

    try:
        if new_status == RS.COMPLETED:
            await _complete_linked_appointment(db, item)
        await _conditional_status_update(db, item, item.status, status=new_status)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(item)
    logger.info("Request %s -> %s by worker %s", item.id, new_status.value, caller.user_id)
    return item
