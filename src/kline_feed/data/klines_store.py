"""Store adapter: project validated klines onto persistence entities and write them.

The repository is opaque. Batch insert is used when the repository offers
``insert_batch``, otherwise one ``insert`` per record. No transaction is
opened unless ``atomic=True`` and the repository exposes ``transaction()``.
"""
from __future__ import annotations

import logging
from typing import Sequence

from ..errors import StoreFailed
from ..types import KlineRepository, StoredKline, ValidatedKline

log = logging.getLogger(__name__)


def to_entity(kline: ValidatedKline, symbol: str) -> StoredKline:
    """1:1 projection of a validated kline; close_time is not persisted."""
    return StoredKline(
        id=None,
        symbol=symbol,
        timestamp=kline.open_time,
        open=kline.open,
        high=kline.high,
        low=kline.low,
        close=kline.close,
        volume=kline.volume,
    )


class KlinesStore:
    """Write validated klines to a repository and read them back by symbol."""

    def __init__(self, repository: KlineRepository, atomic: bool = False) -> None:
        self.repository = repository
        self.atomic = atomic

    # ── Write ─────────────────────────────────────────────────────────────────

    def store(self, records: Sequence[ValidatedKline], symbol: str) -> int:
        """Persist ``records`` tagged with ``symbol``. Returns the number stored.

        Raises StoreFailed on any repository error; remaining writes are skipped.
        """
        if not records:
            return 0

        entities = [to_entity(k, symbol) for k in records]
        if self.atomic and hasattr(self.repository, "transaction"):
            try:
                with self.repository.transaction() as tx:
                    stored = self._write(tx, entities, symbol)
            except StoreFailed as exc:
                # rolled back, nothing from this call survives
                raise StoreFailed(symbol, 0, "transaction rolled back") from exc.__cause__
            except Exception as exc:
                raise StoreFailed(symbol, 0, str(exc)) from exc
        else:
            stored = self._write(self.repository, entities, symbol)

        log.info("Stored %d klines for symbol %s", stored, symbol)
        return len(records)

    def _write(self, repo: KlineRepository, entities: list[StoredKline], symbol: str) -> int:
        if hasattr(repo, "insert_batch"):
            try:
                return repo.insert_batch(entities)
            except Exception as exc:
                raise StoreFailed(symbol, 0, str(exc)) from exc

        written = 0
        for entity in entities:
            try:
                repo.insert(entity)
            except Exception as exc:
                raise StoreFailed(symbol, written, str(exc)) from exc
            written += 1
        return written

    # ── Read ──────────────────────────────────────────────────────────────────

    def get_by_symbol(self, symbol: str) -> list[StoredKline]:
        """Return every stored kline tagged with ``symbol`` (empty list if none)."""
        try:
            klines = list(self.repository.select_by_symbol(symbol))
        except Exception as exc:
            raise StoreFailed(symbol, 0, f"read failed: {exc}") from exc
        log.debug("Retrieved %d stored klines for %s", len(klines), symbol)
        return klines
