"""
GKE Cleaner ledger schema.

One table of cluster expiration records, keyed by a surrogate id with a
unique cluster name. Creation is idempotent and runs once at startup,
before the reconciler or the HTTP surface touch the table.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from gke_cleaner.shared.logging import LEDGER_LOGGER

logger = logging.getLogger(LEDGER_LOGGER)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS clusters (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL UNIQUE,
    create_date     TEXT NOT NULL,
    expiration_date TEXT NOT NULL,
    ignored         INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_clusters_expiration ON clusters(expiration_date);
"""


async def init_db(db_path: str) -> aiosqlite.Connection:
    """Open (or create) the database and ensure the clusters table exists."""
    if db_path != ":memory:":
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(db_path)
    db.row_factory = aiosqlite.Row
    try:
        await db.executescript(SCHEMA_SQL)
        await db.commit()
    except Exception:
        await db.close()
        raise
    logger.info("Migrated database (path=%s).", db_path)
    return db
