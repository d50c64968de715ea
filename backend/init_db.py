# init_db.py
# Creates missing tables straight from the models. Use alembic for real deployments.
import asyncio
import logging

from servimatch.database import engine
from servimatch.models import Base

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("init_db")


async def main() -> None:
    logger.info("Creating tables (new ones only)...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    await engine.dispose()
    logger.info("Done.")


if __name__ == "__main__":
    asyncio.run(main())
