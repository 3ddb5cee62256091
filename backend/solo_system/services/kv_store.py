from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from solo_system.db.models import KeyValueEntry

STATE_KEY_PREFIX = "soloSystem_"
PROGRESS_KEY_PREFIX = "soloSystemProgress_"


def state_key(user_id: str) -> str:
    return f"{STATE_KEY_PREFIX}{user_id}"


def progress_key(user_id: str) -> str:
    return f"{PROGRESS_KEY_PREFIX}{user_id}"


async def kv_get(db: AsyncSession, key: str) -> Any | None:
    return await db.scalar(select(KeyValueEntry.value).where(KeyValueEntry.key == key))


async def kv_set(db: AsyncSession, key: str, value: Any) -> None:
    """Insert or overwrite ``key`` in one statement; concurrent writers resolve last-write-wins."""
    bind = db.get_bind()
    backend_name = bind.dialect.name if bind is not None else ""
    insert = postgresql_insert if backend_name.startswith("postgres") else sqlite_insert

    statement = insert(KeyValueEntry).values(key=key, value=value, updated_at=datetime.now(UTC))
    statement = statement.on_conflict_do_update(
        index_elements=[KeyValueEntry.key],
        set_={
            "value": statement.excluded.value,
            "updated_at": statement.excluded.updated_at,
        },
    )
    await db.execute(statement)
    await db.commit()
