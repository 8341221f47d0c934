"""Error kinds surfaced by the fetch → validate → store pipeline."""
from __future__ import annotations


class KlineFeedError(Exception):
    """Base class for all pipeline failures."""


class FetchFailed(KlineFeedError):
    """Upstream request failed: non-2xx status or transport error.

    ``status_code`` is None when no HTTP response was received; the
    transport exception is then available as ``__cause__``.
    """

    def __init__(self, symbol: str, interval: str, status_code: int | None = None, detail: str = "") -> None:
        self.symbol = symbol
        self.interval = interval
        self.status_code = status_code
        if status_code is not None:
            msg = f"Failed to fetch klines for {symbol} {interval}: HTTP {status_code}"
        else:
            msg = f"Failed to fetch klines for {symbol} {interval}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class ParseFailed(KlineFeedError):
    """Upstream body (or one of its elements) could not be decoded."""

    def __init__(self, reason: str, index: int | None = None) -> None:
        self.reason = reason
        self.index = index
        where = f" at element {index}" if index is not None else ""
        super().__init__(f"Failed to parse klines response{where}: {reason}")


class StoreFailed(KlineFeedError):
    """Persistence call failed. Writes already committed are not rolled back."""

    def __init__(self, symbol: str, stored: int = 0, detail: str = "") -> None:
        self.symbol = symbol
        self.stored = stored
        msg = f"Failed to store klines for {symbol} after {stored} written"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
