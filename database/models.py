"""
database/models.py
CRUD helpers for the help thread table.
"""

import logging
from datetime import datetime, timedelta, timezone
from .db import get_db

log = logging.getLogger("helpbot.models")

_TS_FORMAT = "%Y-%m-%d %H:%M:%S"   # same shape as SQLite's datetime('now')


def _to_db_time(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(_TS_FORMAT)


async def add_help_thread(
    channel_id: int,
    guild_id: int,
    author_id: int,
    created_at: datetime | None = None,
) -> None:
    """Record a help thread. Re-adding a thread keeps the first record."""
    db = await get_db()
    created = _to_db_time(created_at or datetime.now(timezone.utc))
    await db.execute(
        """
        INSERT INTO help_threads (channel_id, guild_id, author_id, created_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(channel_id) DO NOTHING
        """,
        (channel_id, guild_id, author_id, created),
    )
    await db.commit()
    log.debug("Recorded help thread %s by %s", channel_id, author_id)


async def get_threads_created_by(author_id: int) -> set[int]:
    """Thread ids of every recorded help thread the user opened."""
    db = await get_db()
    async with db.execute(
        "SELECT channel_id FROM help_threads WHERE author_id = ?", (author_id,)
    ) as cursor:
        rows = await cursor.fetchall()
    return {row["channel_id"] for row in rows}


async def purge_help_threads(older_than: timedelta, now: datetime | None = None) -> int:
    """Delete records created at or before `now - older_than`. Returns the count removed."""
    db = await get_db()
    cutoff = _to_db_time((now or datetime.now(timezone.utc)) - older_than)
    cursor = await db.execute("DELETE FROM help_threads WHERE created_at <= ?", (cutoff,))
    await db.commit()
    return cursor.rowcount
