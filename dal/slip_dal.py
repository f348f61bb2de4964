"""Async Data Access Layer for the SLIP table.

Provides SlipDAL, a key-value style store adapter over
`utils.database_init.AsyncDatabaseInitializer`. Rows are scoped to one
caller namespace; writes are upserts that only touch the given columns.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import aiosqlite

from models.errors import PersistenceFailure
from models.extraction_result import ExtractionResult
from models.image_record import ImageAsset, SlipRecord
from services.realtime.change_feed import ChangeCallback, ChangeFeed
from utils.database_init import AsyncDatabaseInitializer

_clock_lock = threading.Lock()
_last_timestamp = 0


def next_timestamp() -> int:
    """Return the current time in milliseconds, strictly greater than the previous call."""
    global _last_timestamp
    with _clock_lock:
        _last_timestamp = max(int(time.time() * 1000), _last_timestamp + 1)
        return _last_timestamp


def namespace_for(app_id: str, user_id: str) -> str:
    return f"{app_id}/{user_id}"


class SlipDAL:
    """Data access layer for slip records of a single caller namespace.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`) and an optional ChangeFeed used to push
    change notifications to subscribers.
    """

    _COLUMNS = (
        "id",
        "image_bytes",
        "mime_type",
        "filename",
        "created_at",
        "extracted_data",
    )
    _WRITABLE = frozenset(_COLUMNS[1:])
    _COLUMN_LIST = ", ".join(_COLUMNS)

    def __init__(
        self,
        db_initializer: AsyncDatabaseInitializer,
        namespace: str,
        change_feed: Optional[ChangeFeed] = None,
    ) -> None:
        if not namespace:
            raise ValueError("A namespace is required for slip storage.")
        self._db = db_initializer
        self.namespace = namespace
        self._feed = change_feed

    async def put(self, image_id: str, values: Mapping[str, Any], *, event: str = "updated") -> None:
        """Insert or merge columns into the row for `image_id`.

        Args:
            image_id: Row id within this namespace.
            values: Column values to write; columns not listed keep their stored value.
            event: Change event name published after a successful write.

        Raises:
            ValueError: If `values` names an unknown column or is empty.
            PersistenceFailure: If the database write fails.
        """
        unknown = set(values) - self._WRITABLE
        if unknown:
            raise ValueError(f"Unknown slip columns: {', '.join(sorted(unknown))}")
        if not values:
            raise ValueError("No values to write.")

        columns = list(values)
        placeholders = ", ".join("?" for _ in range(len(columns) + 2))
        updates = ", ".join(f"{col} = excluded.{col}" for col in columns)
        sql = (
            f"INSERT INTO SLIP (namespace, id, {', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT(namespace, id) DO UPDATE SET {updates}"
        )
        params = (self.namespace, image_id, *(values[col] for col in columns))

        try:
            async with self._db.connection() as conn:
                await conn.execute(sql, params)
                await conn.commit()
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"Failed to write slip {image_id}: {exc}") from exc
        self._publish(event, image_id)

    async def get(self, image_id: str) -> Optional[SlipRecord]:
        """Return the SlipRecord for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SLIP WHERE namespace = ? AND id = ?",
                (self.namespace, image_id),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def list_all(self) -> List[SlipRecord]:
        """List every record of the namespace ordered by created_at ascending."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM SLIP WHERE namespace = ? ORDER BY created_at ASC, id ASC",
                (self.namespace,),
            )
            rows = await cur.fetchall()
            return [self._row_to_record(r) for r in rows]

    async def snapshot(self) -> Tuple[List[ImageAsset], Dict[str, ExtractionResult]]:
        """Return the ordered assets and the existing results keyed by image id."""
        records = await self.list_all()
        assets = [record.asset for record in records]
        results = {record.id: record.extraction for record in records if record.extraction is not None}
        return assets, results

    async def delete(self, image_id: str) -> bool:
        """Delete the row for `image_id`. Returns True if a row was deleted."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    "DELETE FROM SLIP WHERE namespace = ? AND id = ?", (self.namespace, image_id)
                )
                await conn.commit()
                deleted = cur.rowcount > 0
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"Failed to delete slip {image_id}: {exc}") from exc
        if deleted:
            self._publish("deleted", image_id)
        return deleted

    async def clear(self) -> int:
        """Delete every row of the namespace and return how many were removed."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute("DELETE FROM SLIP WHERE namespace = ?", (self.namespace,))
                await conn.commit()
                removed = max(cur.rowcount, 0)
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"Failed to clear slips: {exc}") from exc
        self._publish("cleared")
        return removed

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register for `(event, image_id)` notifications; returns the unsubscribe function."""
        if self._feed is None:
            raise RuntimeError("This SlipDAL was created without a change feed.")
        return self._feed.subscribe(self.namespace, callback)

    async def create_asset(self, asset: ImageAsset) -> ImageAsset:
        """Store a new image asset without an extraction result."""
        created_at = asset.created_at or next_timestamp()
        await self.put(
            asset.id,
            {
                "image_bytes": asset.image_bytes,
                "mime_type": asset.mime_type,
                "filename": asset.filename,
                "created_at": created_at,
                "extracted_data": None,
            },
            event="created",
        )
        return ImageAsset(
            id=asset.id,
            image_bytes=asset.image_bytes,
            mime_type=asset.mime_type,
            filename=asset.filename,
            created_at=created_at,
        )

    async def save_extraction(self, result: ExtractionResult) -> None:
        """Merge an extraction result into its existing asset row.

        Raises:
            PersistenceFailure: If the asset does not exist or the write fails.
        """
        payload = json.dumps(result.to_dict(), ensure_ascii=False)
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    "UPDATE SLIP SET extracted_data = ? WHERE namespace = ? AND id = ?",
                    (payload, self.namespace, result.image_id),
                )
                await conn.commit()
                changed = cur.rowcount > 0
        except aiosqlite.Error as exc:
            raise PersistenceFailure(f"Failed to save extraction for {result.image_id}: {exc}") from exc
        if not changed:
            raise PersistenceFailure(f"Image {result.image_id} no longer exists; extraction not saved.")
        self._publish("extracted", result.image_id)

    def _publish(self, event: str, image_id: str = "") -> None:
        if self._feed is not None:
            self._feed.publish(self.namespace, event, image_id)

    @staticmethod
    def _row_to_record(row: Sequence[Any]) -> SlipRecord:
        """Convert a DB row tuple into a SlipRecord."""
        extraction = None
        if row[5]:
            extraction = ExtractionResult.from_dict(json.loads(row[5]))
        asset = ImageAsset(
            id=row[0],
            image_bytes=row[1] or b"",
            mime_type=row[2] or "image/jpeg",
            filename=row[3],
            created_at=row[4] or 0,
        )
        return SlipRecord(asset=asset, extraction=extraction)
