import os
import tempfile

# Settings are read at import time, so the environment must be ready first
_BOOT_DIR = tempfile.mkdtemp(prefix="servimatch-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_BOOT_DIR}/boot.db"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("APP_ENV", "dev")

from decimal import Decimal  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from servimatch import models  # noqa: E402
from servimatch.auth import CallerContext, hash_password, token_for  # noqa: E402
from servimatch.database import get_db  # noqa: E402
from servimatch.main import app  # noqa: E402

PASSWORD = "secret123"


def _session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'servimatch.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return _session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def locking_session_factory(engine):
    """
    Second engine on the same file where every transaction starts with
    BEGIN IMMEDIATE, so SQLite serializes writers the way row locks do.
    """
    locking = create_async_engine(engine.url, connect_args={"timeout": 30})

    @event.listens_for(locking.sync_engine, "connect")
    def _driver_autocommit(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(locking.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield _session_factory(locking)
    await locking.dispose()


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make(
        email: str,
        *,
        name: str = "Test User",
        role: Optional[models.UserRole] = models.UserRole.CLIENT,
        phone: Optional[str] = None,
        user_id: Optional[int] = None,
        profession: Optional[str] = None,
        rating: str = "0",
        availability: models.WorkerAvailability = models.WorkerAvailability.AVAILABLE,
    ) -> models.User:
        user = models.User(
            id=user_id,
            email=email,
            hashed_password=hash_password(PASSWORD),
            name=name,
            role=role,
            phone=phone,
        )
        db.add(user)
        await db.flush()
        if role == models.UserRole.WORKER:
            db.add(models.WorkerProfile(
                user_id=user.id,
                profession=profession,
                description=f"Soy {profession} profesional" if profession else None,
                rating=Decimal(rating),
                availability=availability,
                immediate_service=False,
                coverage_radius_km=15,
            ))
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
async def client_user(make_user):
    return await make_user("ana@example.com", name="Ana Cliente", phone="+34600111222", user_id=3)


@pytest.fixture
async def worker_user(make_user):
    return await make_user(
        "luis@example.com",
        name="Luis Electricista",
        role=models.UserRole.WORKER,
        user_id=9,
        profession="Electricidad",
        rating="4.50",
    )


def caller_for(user: models.User) -> CallerContext:
    return CallerContext(user_id=user.id, role=user.role, phone=user.phone)


def auth_headers(user: models.User) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
