"""DuckDB persistence: connection, schema init, and the kline repository.

File: data/kline.duckdb (default)
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import duckdb
import pandas as pd

from .types import StoredKline

log = logging.getLogger(__name__)

_DEFAULT_DB = "data/kline.duckdb"

# ── DDL ───────────────────────────────────────────────────────────────────────
_DDL = """
CREATE SEQUENCE IF NOT EXISTS kline_id_seq START 1;

CREATE TABLE IF NOT EXISTS kline (
    id         BIGINT  PRIMARY KEY DEFAULT nextval('kline_id_seq'),
    symbol     TEXT    NOT NULL,
    timestamp  BIGINT  NOT NULL,
    open       DOUBLE  NOT NULL,
    high       DOUBLE  NOT NULL,
    low        DOUBLE  NOT NULL,
    close      DOUBLE  NOT NULL,
    volume     DOUBLE  NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_kline_symbol ON kline (symbol);
"""

_COLUMNS = ("symbol", "timestamp", "open", "high", "low", "close", "volume")


def connect(db_path: str | Path = _DEFAULT_DB) -> duckdb.DuckDBPyConnection:
    """Open (or create) a DuckDB database file and return a connection.

    ``":memory:"`` opens an in-memory database.
    """
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    con = duckdb.connect(str(path))
    return con


def init_db(con: duckdb.DuckDBPyConnection) -> None:
    """Create the kline table, its id sequence and index if they don't exist."""
    con.execute(_DDL)
    log.debug("DB schema initialised")


class DuckDBKlineRepository:
    """Kline repository backed by a DuckDB connection.

    Each call runs on its own cursor, so one repository can be shared by
    concurrent callers. Writes are serialised per repository since DuckDB
    rejects concurrent transactions that draw from the same id sequence.
    Inside ``transaction()`` the yielded repository is pinned to a single
    cursor and the write lock is held until commit or rollback.
    """

    def __init__(self, con: duckdb.DuckDBPyConnection, _pinned: bool = False) -> None:
        self._con = con
        self._pinned = _pinned
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()

    def _new_cursor(self) -> duckdb.DuckDBPyConnection:
        # the parent connection is shared; only cursor creation touches it
        with self._lock:
            return self._con.cursor()

    @contextmanager
    def _cursor(self, write: bool = False) -> Iterator[duckdb.DuckDBPyConnection]:
        if self._pinned:
            yield self._con
            return
        if write:
            with self._write_lock:
                cur = self._new_cursor()
                try:
                    yield cur
                finally:
                    cur.close()
            return
        cur = self._new_cursor()
        try:
            yield cur
        finally:
            cur.close()

    # ── Write ─────────────────────────────────────────────────────────────────

    def insert(self, kline: StoredKline) -> StoredKline:
        """Insert one kline and return it with the id assigned by the sequence."""
        with self._cursor(write=True) as cur:
            row = cur.execute(
                """
                INSERT INTO kline (symbol, timestamp, open, high, low, close, volume)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                RETURNING id
                """,
                [kline.symbol, kline.timestamp, kline.open, kline.high, kline.low, kline.close, kline.volume],
            ).fetchone()
        return StoredKline(row[0], *(getattr(kline, c) for c in _COLUMNS))

    def insert_batch(self, klines: list[StoredKline]) -> int:
        """Insert all klines in a single statement. Returns the count inserted."""
        if not klines:
            return 0

        rows = _prepare_klines_df(klines)

        with self._cursor(write=True) as cur:
            # DuckDB: register DataFrame as a temporary view, then INSERT
            cur.register("_kline_staging", rows)
            try:
                cur.execute("""
                    INSERT INTO kline (symbol, timestamp, open, high, low, close, volume)
                    SELECT symbol, timestamp, open, high, low, close, volume
                    FROM _kline_staging
                """)
            finally:
                cur.unregister("_kline_staging")

        return len(rows)

    @contextmanager
    def transaction(self) -> Iterator["DuckDBKlineRepository"]:
        """Run the enclosed writes atomically; roll back on any exception."""
        with self._write_lock:
            cur = self._new_cursor()
            try:
                cur.begin()
                try:
                    yield DuckDBKlineRepository(cur, _pinned=True)
                except Exception:
                    cur.rollback()
                    log.warning("Kline transaction rolled back")
                    raise
                cur.commit()
            finally:
                cur.close()

    # ── Read ──────────────────────────────────────────────────────────────────

    def select_by_symbol(self, symbol: str) -> list[StoredKline]:
        """All klines tagged with ``symbol`` in insertion (id) order."""
        with self._cursor() as cur:
            rows = cur.execute(
                """
                SELECT id, symbol, timestamp, open, high, low, close, volume
                FROM kline
                WHERE symbol = ?
                ORDER BY id ASC
                """,
                [symbol],
            ).fetchall()
        return [StoredKline(*row) for row in rows]


# ── Helpers ───────────────────────────────────────────────────────────────────

def _prepare_klines_df(klines: list[StoredKline]) -> pd.DataFrame:
    """Build a staging DataFrame matching the kline schema (id excluded)."""
    out = pd.DataFrame([[getattr(k, c) for c in _COLUMNS] for k in klines], columns=list(_COLUMNS))
    out["symbol"]    = out["symbol"].astype("object")
    out["timestamp"] = out["timestamp"].astype("int64")
    for col in ("open", "high", "low", "close", "volume"):
        out[col] = out[col].astype("float64")
    return out
