"""
Read-side earnings rollups for a worker. Nothing here writes.

total_earnings respects the selected range, pending_earnings does not:
pending work counts regardless of its scheduled date.
"""
import calendar
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas

AS = models.AppointmentStatus

CENTS = Decimal("0.01")
PENDING_STATUSES = (AS.IN_PROGRESS, AS.CONFIRMED)


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS)


def _shift_months(d: date, months: int) -> date:
    # Same day N months back, clamped to the end of the target month
    idx = d.year * 12 + (d.month - 1) - months
    year, month = divmod(idx, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def range_cutoff(range_: schemas.EarningsRange, today: date) -> date:
    if range_ == schemas.EarningsRange.MONTH:
        return _shift_months(today, 1)
    if range_ == schemas.EarningsRange.YEAR:
        return _shift_months(today, 12)
    return today - timedelta(days=7)


def _transactions_query(worker_id: int):
    return (
        select(
            models.Appointment.id,
            models.Appointment.service_type,
            models.Appointment.total_cost,
            models.Appointment.scheduled_date,
            models.Appointment.created_at,
            models.User.name.label("client_name"),
        )
        .join(models.User, models.User.id == models.Appointment.client_id)
        .where(models.Appointment.worker_id == worker_id)
        .order_by(models.Appointment.scheduled_date.desc(), models.Appointment.id.desc())
    )


def _to_transaction(row, label: str) -> schemas.EarningsTransaction:
    return schemas.EarningsTransaction(
        id=row.id,
        service_type=row.service_type,
        total_cost=row.total_cost,
        status=label,
        date=row.scheduled_date,
        created_at=row.created_at,
        client_name=row.client_name,
    )


async def summarize(
    db: AsyncSession,
    worker_id: int,
    range_: schemas.EarningsRange = schemas.EarningsRange.WEEK,
    today: Optional[date] = None,
) -> schemas.EarningsSummary:
    cutoff = range_cutoff(range_, today or date.today())

    completed = (
        await db.execute(
            _transactions_query(worker_id).where(
                models.Appointment.status == AS.COMPLETED,
                models.Appointment.scheduled_date >= cutoff,
            )
        )
    ).all()

    pending = (
        await db.execute(
            _transactions_query(worker_id).where(
                models.Appointment.status.in_(PENDING_STATUSES),
                models.Appointment.total_cost.isnot(None),
                models.Appointment.total_cost > 0,
            )
        )
    ).all()

    total_earnings = sum((_money(r.total_cost) for r in completed), Decimal("0.00"))
    pending_earnings = sum((_money(r.total_cost) for r in pending), Decimal("0.00"))

    transactions = [_to_transaction(r, "completed") for r in completed]
    transactions += [_to_transaction(r, "pending") for r in pending]
    transactions.sort(key=lambda t: (t.date, t.id), reverse=True)

    return schemas.EarningsSummary(
        total_earnings=total_earnings,
        pending_earnings=pending_earnings,
        transactions=transactions,
    )


async def _completed_sum_since(db: AsyncSession, worker_id: int, cutoff: date) -> Decimal:
    total = (
        await db.execute(
            select(func.coalesce(func.sum(models.Appointment.total_cost), 0)).where(
                models.Appointment.worker_id == worker_id,
                models.Appointment.status == AS.COMPLETED,
                models.Appointment.scheduled_date >= cutoff,
            )
        )
    ).scalar_one()
    return _money(total)


async def stats(db: AsyncSession, worker_id: int, today: Optional[date] = None) -> schemas.EarningsStats:
    # Windows overlap: year includes month includes week
    today = today or date.today()

    total_completed = (
        await db.execute(
            select(func.count(models.Appointment.id)).where(
                models.Appointment.worker_id == worker_id,
                models.Appointment.status == AS.COMPLETED,
            )
        )
    ).scalar_one()

    return schemas.EarningsStats(
        weekly_earnings=await _completed_sum_since(db, worker_id, today - timedelta(days=7)),
        monthly_earnings=await _completed_sum_since(db, worker_id, today - timedelta(days=30)),
        yearly_earnings=await _completed_sum_since(db, worker_id, today - timedelta(days=365)),
        total_completed=total_completed or 0,
    )
