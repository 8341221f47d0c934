"""Kline integrity checks: absent fields, sign, OHLC consistency, price ceiling."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from ..types import RawKline, ValidatedKline

log = logging.getLogger(__name__)

MAX_PRICE = 1_000_000.0

_FIELDS = ("open_time", "open", "high", "low", "close", "volume", "close_time")
_AMOUNTS = ("open", "high", "low", "close", "volume")
_PRICES = ("open", "high", "low", "close")


@dataclass(frozen=True)
class Rejection:
    index: int
    open_time: int | None
    reasons: list[str]


@dataclass
class ValidationReport:
    accepted: list[ValidatedKline] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.accepted) + len(self.rejected)

    def summary(self) -> str:
        lines = [f"Klines   : {len(self.accepted)} / {self.total} accepted"]
        for r in self.rejected[:5]:
            lines.append(f"  Rejected #{r.index} (open_time={r.open_time}): {'; '.join(r.reasons)}")
        if len(self.rejected) > 5:
            lines.append(f"  … and {len(self.rejected) - 5} more rejected")
        return "\n".join(lines)


def check_kline(kline: RawKline) -> list[str]:
    """Return every violated rule as a readable reason. Empty list means valid."""
    missing = [name for name in _FIELDS if getattr(kline, name) is None]
    if missing:
        # ordering rules are meaningless without all values
        return [f"missing {', '.join(missing)}"]

    o, h, l, c = kline.open, kline.high, kline.low, kline.close
    errors: list[str] = []
    for name in _AMOUNTS:
        value = getattr(kline, name)
        if value < 0:
            errors.append(f"{name}={value} must be >= 0")
    if h < l:
        errors.append(f"high={h} < low={l}")
    if h < o:
        errors.append(f"high={h} < open={o}")
    if h < c:
        errors.append(f"high={h} < close={c}")
    if l > o:
        errors.append(f"low={l} > open={o}")
    if l > c:
        errors.append(f"low={l} > close={c}")
    for name in _PRICES:
        value = getattr(kline, name)
        if value > MAX_PRICE:
            errors.append(f"{name}={value} exceeds {MAX_PRICE:,.0f}")
    return errors


def _to_validated(kline: RawKline) -> ValidatedKline:
    return ValidatedKline(
        open_time=int(kline.open_time),
        open=float(kline.open),
        high=float(kline.high),
        low=float(kline.low),
        close=float(kline.close),
        volume=float(kline.volume),
        close_time=int(kline.close_time),
    )


def validate_klines(klines: Iterable[RawKline]) -> ValidationReport:
    """Split parsed klines into accepted and rejected, preserving input order.

    Rejections are logged at WARNING and never raise.
    """
    report = ValidationReport()
    for idx, kline in enumerate(klines):
        reasons = check_kline(kline)
        if reasons:
            log.warning("Invalid kline #%d (open_time=%s): %s", idx, kline.open_time, "; ".join(reasons))
            report.rejected.append(Rejection(idx, kline.open_time, reasons))
        else:
            report.accepted.append(_to_validated(kline))
    return report
