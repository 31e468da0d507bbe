# manages connection to db, provides helper methods internal to db package
import asyncio
import os.path
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from utils.config import settings
from utils.errors import PersistenceError
from utils.logger import get_logger

_logger = get_logger(__name__)

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

DB_PATH = settings.DB_PATH
DB_SCHEMA_SCRIPT = os.path.join(_SCRIPT_DIR, "schema.sql")
DB_SEED_SCRIPT = os.path.join(_SCRIPT_DIR, "seed.sql")
SEED = settings.SEED

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    scripts = [DB_SCHEMA_SCRIPT]
    if SEED:
        scripts.append(DB_SEED_SCRIPT)
    for script in scripts:
        if not os.path.exists(script) or os.path.getsize(script) == 0:
            continue
        _logger.info(f"Initializing database with script {os.path.basename(script)}...")
        with open(script, "r", encoding="utf-8") as f:
            await conn.executescript(f.read())
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Ensures the database is initialized (schema and seed data) on first use.
    Uncommitted work is rolled back when the block raises; stray sqlite
    and OS errors, including an unopenable file, are logged and re-raised
    as PersistenceError.
    """
    global _initialized
    conn = None
    try:
        directory = os.path.dirname(DB_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = await aiosqlite.connect(DB_PATH)
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")

        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    if not await _table_exists(conn, "products"):
                        _logger.info(f"Initializing database at {DB_PATH}...")
                        await _init_db(conn)
                    _initialized = True

        yield conn
    except (aiosqlite.Error, OSError) as exc:
        if conn is not None:
            await conn.rollback()
        _logger.exception("Database operation failed")
        raise PersistenceError(exc) from exc
    except BaseException:
        if conn is not None:
            await conn.rollback()
        raise
    finally:
        if conn is not None:
            await conn.close()
