"""
database/db.py
SQLite database connection and schema initialisation using aiosqlite.
"""

import logging
import os
import aiosqlite
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("helpbot.database")

DB_PATH = os.getenv("DATABASE_PATH", "help_bot.db")

_connection: aiosqlite.Connection | None = None


CREATE_HELP_THREADS = """
CREATE TABLE IF NOT EXISTS help_threads (
    channel_id      INTEGER PRIMARY KEY,
    guild_id        INTEGER NOT NULL,
    author_id       INTEGER NOT NULL,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

CREATE_HELP_THREADS_AUTHOR_INDEX = """
CREATE INDEX IF NOT EXISTS idx_help_threads_author ON help_threads (author_id);
"""


async def init_db(path: str | None = None) -> None:
    """Initialise the database and create tables if they do not exist."""
    global _connection
    path = path or DB_PATH
    log.info("Initialising SQLite database at: %s", path)
    _connection = await aiosqlite.connect(path)
    _connection.row_factory = aiosqlite.Row
    await _connection.execute("PRAGMA journal_mode=WAL;")
    await _connection.execute(CREATE_HELP_THREADS)
    await _connection.execute(CREATE_HELP_THREADS_AUTHOR_INDEX)
    await _connection.commit()
    log.info("Database initialised successfully.")


async def get_db() -> aiosqlite.Connection:
    """Return the active database connection, initialising if needed."""
    global _connection
    if _connection is None:
        await init_db()
    return _connection


async def close_db() -> None:
    """Close the database connection gracefully."""
    global _connection
    if _connection is not None:
        await _connection.close()
        _connection = None
        log.info("Database connection closed.")
