from sqlalchemy.ext.asyncio import AsyncEngine

from solo_system.db import models  # noqa: F401
from solo_system.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
