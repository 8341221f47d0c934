"""Fetch → validate → store pipeline exposed to the host service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import duckdb

from .config import Settings
from .data.binance_client import DEFAULT_INTERVAL, BinanceClient
from .data.klines_store import KlinesStore
from .db import DuckDBKlineRepository, connect, init_db
from .types import StoredKline, ValidatedKline

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchAndStoreResult:
    symbol: str
    interval: str
    fetched: int
    stored: int


class KlinePipeline:
    """Stateless composition of a BinanceClient and a KlinesStore.

    Errors from either side (FetchFailed, ParseFailed, StoreFailed)
    propagate to the caller unchanged.
    """

    def __init__(self, client: BinanceClient, store: KlinesStore) -> None:
        self.client = client
        self.store = store

    def fetch_klines(self, symbol: str, interval: str = DEFAULT_INTERVAL) -> list[ValidatedKline]:
        return self.client.fetch_klines(symbol, interval)

    def store_klines(self, records: Sequence[ValidatedKline], symbol: str) -> int:
        return self.store.store(records, symbol)

    def get_klines_by_symbol(self, symbol: str) -> list[StoredKline]:
        return self.store.get_by_symbol(symbol)

    def fetch_and_store(self, symbol: str, interval: str = DEFAULT_INTERVAL) -> FetchAndStoreResult:
        klines = self.fetch_klines(symbol, interval)
        stored = self.store_klines(klines, symbol)
        log.info("Fetched and stored %d klines for %s", stored, symbol)
        return FetchAndStoreResult(symbol=symbol, interval=interval, fetched=len(klines), stored=stored)


def build_pipeline(
    settings: Settings,
    con: duckdb.DuckDBPyConnection | None = None,
) -> tuple[KlinePipeline, duckdb.DuckDBPyConnection]:
    """Wire a pipeline from settings. Returns it with the DB connection to close."""
    if con is None:
        con = connect(settings.db_path)
    init_db(con)
    client = BinanceClient(settings.base_url, timeout=settings.http_timeout)
    store = KlinesStore(DuckDBKlineRepository(con), atomic=settings.atomic_store)
    return KlinePipeline(client, store), con
