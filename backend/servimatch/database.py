from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from servimatch.config import settings

# Engine and session factory; every persistence call awaits the driver
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, future=True)
SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


# Dependency used by all routes. Closing the session rolls back
# anything that was not committed (errors, timeouts, cancellations).
async def get_db() -> AsyncIterator[AsyncSession]:
    db: AsyncSession = SessionLocal()
    try:
        yield db
    finally:
        await db.close()
