"""
GKE Cleaner Ledger - Cluster Store

Async persistence for cluster expiration records. Every operation is a
single committed statement; nothing spans more than one row mutation, so
a partially applied batch is repaired by the next reconcile cycle.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

import aiosqlite

from gke_cleaner.ledger.models import ClusterRecord
from gke_cleaner.shared.errors import StoreError
from gke_cleaner.utils import format_timestamp, parse_timestamp

_SELECT_COLUMNS = "SELECT id, name, create_date, expiration_date, ignored FROM clusters"


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (aiosqlite.Error, ValueError) as exc:
        raise StoreError(operation, exc) from exc


def _row_to_record(row: aiosqlite.Row) -> ClusterRecord:
    return ClusterRecord(
        id=row["id"],
        name=row["name"],
        create_date=parse_timestamp(row["create_date"]),
        expiration_date=parse_timestamp(row["expiration_date"]),
        ignore=bool(row["ignored"]),
    )


class ClusterStore:
    """Database-backed cluster expiration store."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    async def list(self) -> list[ClusterRecord]:
        """Return every known record ordered by name."""
        with _store_errors("list"):
            async with self.db.execute(f"{_SELECT_COLUMNS} ORDER BY name") as cur:
                rows = await cur.fetchall()
            return [_row_to_record(row) for row in rows]

    async def list_expired(self, now: datetime) -> list[ClusterRecord]:
        """Return records whose expiration is before ``now``, ignored ones included."""
        with _store_errors("list_expired"):
            async with self.db.execute(
                f"{_SELECT_COLUMNS} WHERE expiration_date < ? ORDER BY expiration_date, name",
                (format_timestamp(now),),
            ) as cur:
                rows = await cur.fetchall()
            return [_row_to_record(row) for row in rows]

    async def get(self, name: str) -> ClusterRecord | None:
        """Fetch one record by cluster name."""
        with _store_errors("get"):
            async with self.db.execute(f"{_SELECT_COLUMNS} WHERE name = ?", (name,)) as cur:
                row = await cur.fetchone()
            return _row_to_record(row) if row else None

    async def insert(
        self,
        name: str,
        create_time: datetime,
        expiration_time: datetime,
        ignore: bool = False,
    ) -> None:
        with _store_errors("insert"):
            await self.db.execute(
                """
                INSERT INTO clusters (name, create_date, expiration_date, ignored)
                VALUES (?, ?, ?, ?)
                """,
                (name, format_timestamp(create_time), format_timestamp(expiration_time), int(ignore)),
            )
            await self.db.commit()

    async def update_create_and_expiration_date(
        self,
        name: str,
        create_time: datetime,
        expiration_time: datetime,
    ) -> bool:
        """Reset a recreated cluster's creation and expiration dates."""
        with _store_errors("update_create_and_expiration_date"):
            cur = await self.db.execute(
                """
                UPDATE clusters
                SET create_date = ?, expiration_date = ?
                WHERE name = ?
                """,
                (format_timestamp(create_time), format_timestamp(expiration_time), name),
            )
            await self.db.commit()
            return cur.rowcount > 0

    async def update_expiration_date(self, name: str, expiration_time: datetime) -> bool:
        with _store_errors("update_expiration_date"):
            cur = await self.db.execute(
                "UPDATE clusters SET expiration_date = ? WHERE name = ?",
                (format_timestamp(expiration_time), name),
            )
            await self.db.commit()
            return cur.rowcount > 0

    async def update_ignore(self, name: str, ignore: bool) -> bool:
        with _store_errors("update_ignore"):
            cur = await self.db.execute(
                "UPDATE clusters SET ignored = ? WHERE name = ?",
                (int(ignore), name),
            )
            await self.db.commit()
            return cur.rowcount > 0

    async def delete(self, name: str) -> bool:
        with _store_errors("delete"):
            cur = await self.db.execute("DELETE FROM clusters WHERE name = ?", (name,))
            await self.db.commit()
            return cur.rowcount > 0
