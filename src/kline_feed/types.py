from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RawKline:
    """One decoded wire element. ``None`` marks a field that was null on the wire."""

    open_time: int | None
    open: float | None
    high: float | None
    low: float | None
    close: float | None
    volume: float | None
    close_time: int | None


@dataclass(frozen=True)
class ValidatedKline:
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int


@dataclass(frozen=True)
class StoredKline:
    id: int | None
    symbol: str
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float


# ── Structural Protocols (persistence is an opaque collaborator) ─────────────


class KlineRepository(Protocol):
    """Minimal persistence interface required by the store adapter.

    Implementations may additionally expose ``insert_batch(klines) -> int``
    and ``transaction()``; the adapter uses them when present.
    """

    def insert(self, kline: StoredKline) -> StoredKline: ...

    def select_by_symbol(self, symbol: str) -> list[StoredKline]: ...

