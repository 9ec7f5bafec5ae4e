"""SQLite-backed loader cache.

Persists loader records to a local SQLite database (``data/loaders.db`` by
default) so re-ingestion detection survives restarts.  Uses ``aiosqlite``
for async I/O.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import structlog

from ragpipe.interfaces.cache_provider import ICacheProvider
from ragpipe.models.rag import LoaderRecord
from ragpipe.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/loaders.db")

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS loaders (
    unique_loader_id  TEXT    PRIMARY KEY,
    chunk_count       INTEGER NOT NULL,
    updated_at        TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO loaders (unique_loader_id, chunk_count)
VALUES (?, ?)
ON CONFLICT(unique_loader_id)
DO UPDATE SET chunk_count = excluded.chunk_count,
              updated_at  = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SQL = "SELECT unique_loader_id, chunk_count FROM loaders WHERE unique_loader_id = ?;"

_DELETE_SQL = "DELETE FROM loaders WHERE unique_loader_id = ?;"


class SQLiteCacheProvider(ICacheProvider):
    """Loader records stored in a SQLite table."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def init(self) -> None:
        """Create the loaders table if it doesn't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(_CREATE_TABLE_SQL)
                await db.commit()
        except aiosqlite.Error as exc:
            raise RAGError(
                message=f"Could not initialize loader cache at {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("loader_cache_initialized", path=str(self._db_path))

    async def has_loader(self, unique_loader_id: str) -> bool:
        return await self.get_loader(unique_loader_id) is not None

    async def get_loader(self, unique_loader_id: str) -> LoaderRecord | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_SQL, (unique_loader_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return LoaderRecord(unique_loader_id=row["unique_loader_id"], chunk_count=row["chunk_count"])

    async def add_loader(self, unique_loader_id: str, chunk_count: int) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_SQL, (unique_loader_id, chunk_count))
            await db.commit()
        logger.debug("loader_record_saved", unique_loader_id=unique_loader_id, chunk_count=chunk_count)

    async def delete_loader(self, unique_loader_id: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_DELETE_SQL, (unique_loader_id,))
            await db.commit()
        logger.debug("loader_record_deleted", unique_loader_id=unique_loader_id)

    def get_provider_name(self) -> str:
        return "sqlite_cache"
