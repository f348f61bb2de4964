import os
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

LOGGER = logging.getLogger(__name__)

DATABASE_FILENAME = "slips.db"

# namespace is "<app_id>/<user_id>"; ids are unique within it.
SLIP_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS SLIP (
    namespace TEXT NOT NULL,
    id TEXT NOT NULL,
    image_bytes BLOB,
    mime_type TEXT,
    filename TEXT,
    created_at INTEGER NOT NULL DEFAULT 0,
    extracted_data TEXT,
    PRIMARY KEY (namespace, id)
)
"""

SLIP_INDEX_SQL = "CREATE INDEX IF NOT EXISTS idx_slip_namespace_created ON SLIP(namespace, created_at)"

# Columns added after the first schema; stores created earlier get them on startup.
LATE_COLUMNS = {
    "mime_type": "TEXT",
    "filename": "TEXT",
    "extracted_data": "TEXT",
}


def resolve_database_dir(database_dir: Optional[Path | str] = None) -> Path:
    """Return the directory holding the slip database, creating it when missing.

    `database_dir` wins over the DATABASE_DIR environment variable.

    Raises:
        RuntimeError: If no directory is configured, the path is a file,
            or the directory cannot be created.
    """
    raw = str(database_dir) if database_dir else os.getenv("DATABASE_DIR")
    if raw is None or not raw.strip():
        raise RuntimeError(
            "DATABASE_DIR must name a writable directory for the slip database "
            "(set the environment variable or pass database_dir)."
        )

    path = Path(raw).expanduser()
    if path.exists() and not path.is_dir():
        raise RuntimeError(f"DATABASE_DIR={raw!r} is a file, expected a directory ({path}).")

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create the database directory {path}") from exc
    return path


class AsyncDatabaseInitializer:
    """
    Own the location and schema of the SQLite slip store.

    - The file lives at <database_dir>/slips.db.
    - `ensure_database()` runs once per instance: it optionally deletes the
      existing file (`reset_on_startup`), then creates the SLIP table, its
      ordering index and any columns an older store is missing.
    - `connection()` calls `ensure_database()` first, so callers never see
      an unprepared store.
    """

    def __init__(self, database_dir: Optional[Path | str] = None, reset_on_startup: bool = False) -> None:
        self.db_dir = resolve_database_dir(database_dir)
        self.db_path = self.db_dir / DATABASE_FILENAME
        self.reset_on_startup = reset_on_startup
        self._ready = False

    async def ensure_database(self) -> None:
        if self._ready:
            return

        if self.reset_on_startup and self.db_path.exists():
            LOGGER.info("Resetting slip store at %s", self.db_path)
            try:
                self.db_path.unlink()
            except OSError as exc:
                raise RuntimeError(f"Could not delete the slip store at {self.db_path}") from exc

        attempts = 3
        for attempt in range(1, attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(SLIP_TABLE_SQL)
                    await self._add_late_columns(db)
                    await db.execute(SLIP_INDEX_SQL)
                    await db.commit()
                break
            except FileNotFoundError:
                # Transient on some filesystems right after the directory is created.
                if attempt == attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._ready = True

    @staticmethod
    async def _add_late_columns(db: aiosqlite.Connection) -> None:
        cur = await db.execute("PRAGMA table_info(SLIP)")
        present = {row[1] for row in await cur.fetchall()}
        for name, column_type in LATE_COLUMNS.items():
            if name not in present:
                LOGGER.info("Adding missing SLIP column %s", name)
                await db.execute(f"ALTER TABLE SLIP ADD COLUMN {name} {column_type}")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an `aiosqlite.Connection` to a store with the SLIP schema in place."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
