"""Binance Spot REST client.

Fetches one page of klines, decodes each wire row into a typed record and
drops rows that fail the integrity checks. No retry, no API key.
"""
from __future__ import annotations

import logging
import math
import re

import requests

from ..errors import FetchFailed, ParseFailed
from ..types import RawKline, ValidatedKline
from .validator import validate_klines

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://testnet.binance.vision"
DEFAULT_INTERVAL = "1m"
_KLINES_ENDPOINT = "/api/v3/klines"
_LIMIT = 100
_MIN_FIELDS = 7

_INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _parse_time(value: object, name: str, index: int | None) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseFailed(f"{name} is a boolean", index)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        return int(value.strip())
    raise ParseFailed(f"{name}={value!r} is not an integer timestamp", index)


def _parse_amount(value: object, name: str, index: int | None) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseFailed(f"{name} is a boolean", index)
    if isinstance(value, str):
        # plain decimal only: no "_" separators, no "nan"/"inf" spellings
        if not _DECIMAL_RE.fullmatch(value.strip()):
            raise ParseFailed(f"{name}={value!r} is not numeric", index)
    elif not isinstance(value, (int, float)):
        raise ParseFailed(f"{name}={value!r} is not numeric", index)
    try:
        number = float(value)
    except OverflowError:
        raise ParseFailed(f"{name} is out of range", index) from None
    if not math.isfinite(number):
        raise ParseFailed(f"{name}={value!r} is not finite", index)
    return number


def parse_kline(row: object, index: int | None = None) -> RawKline:
    """Decode one Binance kline row into a RawKline.

    Row format per Binance docs:
    [ openTime, open, high, low, close, volume, closeTime, quoteAssetVolume,
      numberOfTrades, takerBuyBaseAssetVolume, takerBuyQuoteAssetVolume, ignore ]
    Only the first seven positions are read. JSON null becomes None.
    """
    if not isinstance(row, list):
        raise ParseFailed(f"expected an array, got {type(row).__name__}", index)
    if len(row) < _MIN_FIELDS:
        raise ParseFailed(f"expected at least {_MIN_FIELDS} fields, got {len(row)}", index)
    return RawKline(
        open_time=_parse_time(row[0], "open_time", index),
        open=_parse_amount(row[1], "open", index),
        high=_parse_amount(row[2], "high", index),
        low=_parse_amount(row[3], "low", index),
        close=_parse_amount(row[4], "close", index),
        volume=_parse_amount(row[5], "volume", index),
        close_time=_parse_time(row[6], "close_time", index),
    )


def parse_klines(payload: object) -> list[RawKline]:
    """Decode a whole response body. Any malformed element aborts the batch."""
    if not isinstance(payload, list):
        raise ParseFailed(f"expected a JSON array, got {type(payload).__name__}")
    return [parse_kline(row, idx) for idx, row in enumerate(payload)]


class BinanceClient:
    """Thin wrapper around the Binance public klines endpoint.

    The underlying ``requests.Session`` is the only state kept between calls.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30) -> None:
        self._base = base_url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": "kline-feed/0.1"})
        log.info("BinanceClient initialised with base URL %s", self._base)

    @property
    def base_url(self) -> str:
        return self._base

    def fetch_klines(self, symbol: str, interval: str = DEFAULT_INTERVAL) -> list[ValidatedKline]:
        """Fetch the latest klines and return only those passing validation.

        Raises FetchFailed on transport errors or non-2xx status, ParseFailed
        when the body or any element of it cannot be decoded.
        """
        params = {
            "symbol":   symbol.replace("/", ""),
            "interval": interval,
            "limit":    _LIMIT,
        }
        url = f"{self._base}{_KLINES_ENDPOINT}"
        log.debug("GET %s %s", url, params)
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            log.error("Failed to fetch klines for %s: %s", symbol, exc)
            raise FetchFailed(symbol, interval, detail=str(exc)) from exc

        if not 200 <= resp.status_code < 300:
            log.error("Failed to fetch klines for %s: HTTP %d", symbol, resp.status_code)
            raise FetchFailed(symbol, interval, status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ParseFailed(f"body is not valid JSON ({exc})") from exc

        report = validate_klines(parse_klines(payload))
        log.info(
            "Fetched %d valid klines for %s at interval %s (%d rejected)",
            len(report.accepted), symbol, interval, len(report.rejected),
        )
        if report.rejected:
            log.debug("Validation summary for %s %s:\n%s", symbol, interval, report.summary())
        return report.accepted

    def close(self) -> None:
        self._session.close()
