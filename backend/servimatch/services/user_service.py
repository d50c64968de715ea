from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from servimatch import models, schemas
from servimatch.auth import CallerContext, hash_password, verify_password
from servimatch.config import settings
from servimatch.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("users")

SELF_ASSIGNABLE_ROLES = {models.UserRole.CLIENT, models.UserRole.WORKER}

CENTS = Decimal("0.01")


def _default_description(profession: str) -> str:
    return f"Soy {profession} profesional"


async def resolve_user(db: AsyncSession, user_id: int) -> Optional[models.User]:
    return await db.get(models.User, user_id)


async def resolve_worker(db: AsyncSession, worker_id: Optional[int]) -> models.User:
    """Return the user behind worker_id, which must currently hold the worker role."""
    if worker_id is None:
        raise ValidationError("worker_id is required")
    user = await resolve_user(db, worker_id)
    if user is None or user.role != models.UserRole.WORKER:
        raise NotFoundError("Worker not found")
    return user


async def get_profile_row(db: AsyncSession, user_id: int, *, lock: bool = False) -> Optional[models.WorkerProfile]:
    stmt = select(models.WorkerProfile).where(models.WorkerProfile.user_id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, user_id: int) -> models.WorkerProfile:
    """Load the worker profile, adding a fresh one to the session if missing. Caller commits."""
    profile = await get_profile_row(db, user_id, lock=True)
    if profile is None:
        profile = models.WorkerProfile(
            user_id=user_id,
            availability=models.WorkerAvailability.AVAILABLE,
            immediate_service=False,
            coverage_radius_km=settings.DEFAULT_COVERAGE_RADIUS_KM,
            rating=Decimal("0"),
        )
        db.add(profile)
        await db.flush()
        logger.info("Created worker profile for user_id=%s", user_id)
    return profile


def to_profile_read(user: models.User, profile: Optional[models.WorkerProfile]) -> schemas.UserProfileRead:
    data = schemas.UserRead.model_validate(user).model_dump()
    if profile is not None:
        data.update(
            profession=profile.profession,
            description=profile.description,
            availability=profile.availability,
            rating=profile.rating,
        )
    return schemas.UserProfileRead(**data)


async def load_profile(db: AsyncSession, user_id: int) -> schemas.UserProfileRead:
    user = await resolve_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return to_profile_read(user, await get_profile_row(db, user_id))


# ----------------------------------
#  Registration / login
# ----------------------------------

async def register(db: AsyncSession, payload: schemas.RegisterRequest) -> models.User:
    if payload.role is not None and payload.role not in SELF_ASSIGNABLE_ROLES:
        raise ValidationError("Role must be 'client' or 'worker'")

    existing = (
        await db.execute(select(models.User.id).where(models.User.email == payload.email))
    ).first()
    if existing:
        raise ConflictError("Email already registered")

    user = models.User(
        email=str(payload.email),
        hashed_password=hash_password(payload.password),
        name=payload.name.strip(),
        role=payload.role,
        phone=payload.phone,
    )

    try:
        db.add(user)
        await db.flush()  # get id

        if payload.role == models.UserRole.WORKER and payload.profession:
            profile = await get_or_create_profile(db, user.id)
            profile.profession = payload.profession
            profile.description = _default_description(payload.profession)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    logger.info("Registered user_id=%s role=%s", user.id, user.role)
    return user


async def authenticate_credentials(db: AsyncSession, email: str, password: str) -> Optional[models.User]:
    user = (
        await db.execute(select(models.User).where(models.User.email == email))
    ).scalar_one_or_none()
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user


async def change_password(
    db: AsyncSession,
    caller: CallerContext,
    current_password: str,
    new_password: str,
) -> None:
    if not current_password or not new_password:
        raise ValidationError("current_password and new_password are required")
    if len(new_password) < 6:
        raise ValidationError("new_password must be at least 6 characters")

    user = await resolve_user(db, caller.user_id)
    if user is None:
        raise NotFoundError("User not found")
    if not verify_password(current_password, user.hashed_password):
        logger.warning("Wrong current password on change attempt for user %s", user.id)
        raise ValidationError("Current password is incorrect")

    try:
        user.hashed_password = hash_password(new_password)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Password changed for user %s", user.id)


# ----------------------------------
#  Role / profession / profile
# ----------------------------------

async def update_role(db: AsyncSession, caller: CallerContext, role: models.UserRole) -> schemas.UserProfileRead:
    if role not in SELF_ASSIGNABLE_ROLES:
        raise ValidationError("Role must be 'client' or 'worker'")

    user = await resolve_user(db, caller.user_id)
    if user is None:
        raise NotFoundError("User not found")

    user.role = role
    await db.commit()
    await db.refresh(user)
    logger.info("User %s chose role=%s", user.id, role.value)
    return to_profile_read(user, await get_profile_row(db, user.id))


async def update_profession(
    db: AsyncSession,
    caller: CallerContext,
    profession: str,
    description: Optional[str] = None,
) -> schemas.UserProfileRead:
    profession = (profession or "").strip()
    if not profession:
        raise ValidationError("Profession is required")

    user = await resolve_user(db, caller.user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.role != models.UserRole.WORKER:
        raise ValidationError("Only workers can set a profession")

    try:
        profile = await get_or_create_profile(db, user.id)
        profile.profession = profession
        profile.description = description or _default_description(profession)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(profile)
    return to_profile_read(user, profile)


async def update_profile(
    db: AsyncSession,
    caller: CallerContext,
    data: schemas.ProfileUpdate,
) -> schemas.UserProfileRead:
    """
    Partial update: only fields present in the payload are written, merged
    against the rows loaded inside the same transaction.
    """
    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and not (changes["name"] or "").strip():
        raise ValidationError("Name cannot be empty")

    try:
        user = (
            await db.execute(
                select(models.User).where(models.User.id == caller.user_id).with_for_update()
            )
        ).scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        for field in ("name", "phone", "avatar_url"):
            if field in changes:
                setattr(user, field, changes[field])

        profile = await get_profile_row(db, user.id)
        worker_fields = {k: changes[k] for k in ("profession", "description") if k in changes}
        if user.role == models.UserRole.WORKER and worker_fields:
            profile = await get_or_create_profile(db, user.id)
            for field, value in worker_fields.items():
                setattr(profile, field, value)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(user)
    if profile is not None:
        await db.refresh(profile)
    return to_profile_read(user, profile)


# ----------------------------------
#  Worker directory
# ----------------------------------

def _worker_public(user: models.User, profile: models.WorkerProfile) -> schemas.WorkerPublic:
    return schemas.WorkerPublic(
        id=user.id,
        name=user.name,
        avatar_url=user.avatar_url,
        profession=profile.profession,
        description=profile.description,
        availability=profile.availability,
        rating=profile.rating,
        member_since=user.created_at,
    )


async def list_workers(
    db: AsyncSession,
    profession: Optional[str] = None,
    min_rating: Optional[Decimal] = None,
    available: Optional[bool] = None,
) -> List[schemas.WorkerPublic]:
    q = (
        select(models.User, models.WorkerProfile)
        .join(models.WorkerProfile, models.WorkerProfile.user_id == models.User.id)
        .where(models.User.role == models.UserRole.WORKER)
    )

    if profession:
        q = q.where(models.WorkerProfile.profession == profession)

    if min_rating is not None:
        q = q.where(models.WorkerProfile.rating >= min_rating)

    if available:
        q = q.where(models.WorkerProfile.availability == models.WorkerAvailability.AVAILABLE)

    q = q.order_by(models.WorkerProfile.rating.desc(), models.User.id)

    rows = (await db.execute(q)).all()
    return [_worker_public(user, profile) for user, profile in rows]


async def get_worker(db: AsyncSession, worker_id: int) -> schemas.WorkerPublic:
    row = (
        await db.execute(
            select(models.User, models.WorkerProfile)
            .join(models.WorkerProfile, models.WorkerProfile.user_id == models.User.id)
            .where(models.User.id == worker_id, models.User.role == models.UserRole.WORKER)
        )
    ).first()
    if not row:
        raise NotFoundError("Worker not found")
    user, profile = row
    return _worker_public(user, profile)


# ----------------------------------
#  Dashboard stats
# ----------------------------------

def _cents(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


async def get_stats(db: AsyncSession, caller: CallerContext) -> schemas.UserStats:
    """Completed-work totals: earnings for workers, spending for clients."""
    user = await resolve_user(db, caller.user_id)
    if user is None:
        raise NotFoundError("User not found")

    if user.role == models.UserRole.WORKER:
        party = models.Appointment.worker_id
    elif user.role == models.UserRole.CLIENT:
        party = models.Appointment.client_id
    else:
        return schemas.UserStats(role=user.role)

    count, total, average = (
        await db.execute(
            select(
                func.count(models.Appointment.id),
                func.coalesce(func.sum(models.Appointment.total_cost), 0),
                func.avg(models.Appointment.total_cost),
            ).where(party == user.id, models.Appointment.status == models.AppointmentStatus.COMPLETED)
        )
    ).one()

    if user.role == models.UserRole.CLIENT:
        return schemas.UserStats(
            role=user.role,
            total_services=count,
            total_spent=_cents(total),
            average_spent=_cents(average),
        )

    profile = await get_profile_row(db, user.id)
    return schemas.UserStats(
        role=user.role,
        total_services=count,
        total_earnings=_cents(total),
        average_earning=_cents(average),
        rating=profile.rating if profile else Decimal("0.00"),
    )
