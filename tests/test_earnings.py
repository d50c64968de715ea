from datetime import date, time
from decimal import Decimal

import pytest

from servimatch import models, schemas
from servimatch.services import earnings_service

AS = models.AppointmentStatus
R = schemas.EarningsRange

TODAY = date(2025, 3, 15)


@pytest.fixture
async def ledger(db, client_user, worker_user, make_user):
    other_worker = await make_user("otro@example.com", role=models.UserRole.WORKER, profession="Pintura")

    def appt(worker, status, day, cost):
        return models.Appointment(
            client_id=client_user.id,
            worker_id=worker.id,
            service_type="Electricidad",
            scheduled_date=day,
            scheduled_time=time(10, 0),
            status=status,
            total_cost=None if cost is None else Decimal(cost),
        )

    rows = {
        "this_week": appt(worker_user, AS.COMPLETED, date(2025, 3, 10), "50.00"),
        "this_month": appt(worker_user, AS.COMPLETED, date(2025, 3, 1), "30.00"),
        "this_year": appt(worker_user, AS.COMPLETED, date(2024, 6, 1), "100.00"),
        "ancient": appt(worker_user, AS.COMPLETED, date(2020, 1, 1), "999.00"),
        "pending_old": appt(worker_user, AS.CONFIRMED, date(2024, 1, 1), "40.00"),
        "in_progress_free": appt(worker_user, AS.IN_PROGRESS, date(2025, 3, 14), "0"),
        "unconfirmed": appt(worker_user, AS.PENDING, date(2025, 3, 14), "70.00"),
        "cancelled": appt(worker_user, AS.CANCELLED, date(2025, 3, 12), "10.00"),
        "someone_else": appt(other_worker, AS.COMPLETED, date(2025, 3, 12), "500.00"),
    }
    db.add_all(rows.values())
    await db.commit()
    return rows


async def test_summary_with_no_rows_is_zero(db, worker_user):
    summary = await earnings_service.summarize(db, worker_user.id, R.WEEK, today=TODAY)

    assert summary.total_earnings == Decimal("0.00")
    assert summary.pending_earnings == Decimal("0.00")
    assert summary.transactions == []


async def test_weekly_summary(db, worker_user, ledger):
    summary = await earnings_service.summarize(db, worker_user.id, R.WEEK, today=TODAY)

    assert summary.total_earnings == Decimal("50.00")
    assert summary.pending_earnings == Decimal("40.00")
    assert [(t.id, t.status) for t in summary.transactions] == [
        (ledger["this_week"].id, "completed"),
        (ledger["pending_old"].id, "pending"),
    ]
    assert summary.transactions[0].client_name == "Ana Cliente"
    assert summary.transactions[0].date == date(2025, 3, 10)


@pytest.mark.parametrize("range_,expected", [
    (R.MONTH, Decimal("80.00")),
    (R.YEAR, Decimal("180.00")),
])
async def test_range_widens_total_but_not_pending(db, worker_user, ledger, range_, expected):
    summary = await earnings_service.summarize(db, worker_user.id, range_, today=TODAY)

    assert summary.total_earnings == expected
    assert summary.pending_earnings == Decimal("40.00")


async def test_stats(db, worker_user, ledger):
    stats = await earnings_service.stats(db, worker_user.id, today=TODAY)

    assert stats.weekly_earnings == Decimal("50.00")
    assert stats.monthly_earnings == Decimal("80.00")
    assert stats.yearly_earnings == Decimal("180.00")
    assert stats.total_completed == 4


async def test_stats_with_no_rows(db, worker_user):
    stats = await earnings_service.stats(db, worker_user.id, today=TODAY)

    assert stats.weekly_earnings == Decimal("0.00")
    assert stats.yearly_earnings == Decimal("0.00")
    assert stats.total_completed == 0


@pytest.mark.parametrize("range_,today,expected", [
    (R.WEEK, date(2025, 3, 15), date(2025, 3, 8)),
    (R.MONTH, date(2025, 3, 15), date(2025, 2, 15)),
    (R.MONTH, date(2025, 3, 31), date(2025, 2, 28)),
    (R.MONTH, date(2025, 1, 10), date(2024, 12, 10)),
    (R.YEAR, date(2024, 2, 29), date(2023, 2, 28)),
])
def test_range_cutoff(range_, today, expected):
    assert earnings_service.range_cutoff(range_, today) == expected
