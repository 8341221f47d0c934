"""Unit tests for validator: absent fields, sign, OHLC consistency, price ceiling."""
from __future__ import annotations

import dataclasses
import logging

import pytest

from kline_feed.data.validator import MAX_PRICE, check_kline, validate_klines
from kline_feed.types import RawKline, ValidatedKline


def _make_kline(**overrides) -> RawKline:
    base = RawKline(
        open_time=1_700_000_000_000,
        open=45000.0,
        high=46000.0,
        low=44000.0,
        close=45500.0,
        volume=100.0,
        close_time=1_700_000_059_999,
    )
    return dataclasses.replace(base, **overrides)


# ── valid ─────────────────────────────────────────────────────────────────────

def test_valid_kline_accepted():
    assert check_kline(_make_kline()) == []


def test_flat_candle_accepted():
    """open == high == low == close is consistent."""
    assert check_kline(_make_kline(open=100.0, high=100.0, low=100.0, close=100.0)) == []


def test_zero_volume_and_price_ceiling_accepted():
    assert check_kline(_make_kline(volume=0.0)) == []
    assert check_kline(_make_kline(high=MAX_PRICE)) == []


# ── absent fields ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("field", ["open_time", "open", "high", "low", "close", "volume", "close_time"])
def test_absent_field_rejected(field):
    reasons = check_kline(_make_kline(**{field: None}))
    assert len(reasons) == 1
    assert field in reasons[0]


# ── negatives ─────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("field", ["open", "high", "low", "close", "volume"])
def test_negative_value_rejected(field):
    assert check_kline(_make_kline(**{field: -100.0}))


# ── logical consistency ───────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"high": 45000.0, "low": 46000.0}, "high=45000.0 < low=46000.0"),
        ({"high": 45000.0, "open": 46000.0}, "high=45000.0 < open=46000.0"),
        ({"high": 45000.0, "close": 46000.0}, "high=45000.0 < close=46000.0"),
        ({"low": 47000.0, "open": 46000.0}, "low=47000.0 > open=46000.0"),
        ({"low": 45600.0, "close": 45500.0}, "low=45600.0 > close=45500.0"),
    ],
)
def test_inconsistent_ohlc_rejected(overrides, expected):
    reasons = check_kline(_make_kline(**overrides))
    assert expected in reasons


# ── outliers ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("field", ["open", "high", "low", "close"])
def test_price_above_ceiling_rejected(field):
    assert check_kline(_make_kline(**{field: 2_000_000.0}))


def test_volume_is_not_bounded():
    assert check_kline(_make_kline(volume=5_000_000.0)) == []


# ── batch report ──────────────────────────────────────────────────────────────

def test_validate_klines_preserves_order_and_logs(caplog):
    good_a = _make_kline(open_time=1000)
    bad = _make_kline(open_time=2000, high=1.0)
    good_b = _make_kline(open_time=3000)

    with caplog.at_level(logging.WARNING, logger="kline_feed.data.validator"):
        report = validate_klines([good_a, bad, good_b])

    assert [k.open_time for k in report.accepted] == [1000, 3000]
    assert all(isinstance(k, ValidatedKline) for k in report.accepted)
    assert len(report.rejected) == 1
    assert report.rejected[0].index == 1
    assert report.rejected[0].open_time == 2000
    assert report.total == 3
    assert "Invalid kline #1" in caplog.text


def test_validate_klines_empty():
    report = validate_klines([])
    assert report.accepted == []
    assert report.rejected == []
    assert "0 / 0 accepted" in report.summary()


def test_summary_truncates_rejections():
    report = validate_klines([_make_kline(open=-1.0) for _ in range(7)])
    text = report.summary()
    assert "0 / 7 accepted" in text
    assert "… and 2 more rejected" in text
