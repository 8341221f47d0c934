"""End-to-end pipeline tests with a mocked exchange and a real DuckDB file."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from kline_feed.config import Settings
from kline_feed.errors import FetchFailed, ParseFailed
from kline_feed.pipeline import FetchAndStoreResult, build_pipeline


def _mock_response(data, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = data
    return resp


@pytest.fixture
def pipeline(tmp_path):
    settings = Settings(base_url="https://api.example.test", db_path=str(tmp_path / "k.duckdb"))
    pipe, con = build_pipeline(settings)
    yield pipe
    pipe.client.close()
    con.close()


def test_fetch_and_store(pipeline):
    body = [
        [1000, "45000", "46000", "44000", "45500", "100", 1060],
        [1060, "45500", "45000", "46000", "45800", "80", 1120],   # high < low: dropped
        [1120, "45800", "46200", "45700", "46100", "90", 1180],
    ]
    with patch.object(pipeline.client._session, "get", return_value=_mock_response(body)):
        result = pipeline.fetch_and_store("BTCUSDT", "1m")

    assert result == FetchAndStoreResult(symbol="BTCUSDT", interval="1m", fetched=2, stored=2)
    stored = pipeline.get_klines_by_symbol("BTCUSDT")
    assert [k.timestamp for k in stored] == [1000, 1120]
    assert stored[0].close == 45500.0


def test_fetch_and_store_all_filtered_stores_nothing(pipeline):
    body = [[1000, "45000", "44000", "46000", "45500", "100", 1060]]
    with patch.object(pipeline.client._session, "get", return_value=_mock_response(body)):
        result = pipeline.fetch_and_store("BTCUSDT")

    assert result.fetched == 0 and result.stored == 0
    assert pipeline.get_klines_by_symbol("BTCUSDT") == []


def test_fetch_failure_stores_nothing(pipeline):
    with patch.object(pipeline.client._session, "get", return_value=_mock_response([], status=500)):
        with pytest.raises(FetchFailed):
            pipeline.fetch_and_store("BTCUSDT")
    assert pipeline.get_klines_by_symbol("BTCUSDT") == []


def test_parse_failure_propagates(pipeline):
    body = [[1000, "45000", "46000"]]
    with patch.object(pipeline.client._session, "get", return_value=_mock_response(body)):
        with pytest.raises(ParseFailed):
            pipeline.fetch_klines("BTCUSDT")


def test_store_klines_tags_symbol(pipeline):
    with patch.object(
        pipeline.client._session, "get",
        return_value=_mock_response([[1000, "1", "2", "0.5", "1.5", "10", 1060]]),
    ):
        klines = pipeline.fetch_klines("BTC/USDT")

    assert pipeline.store_klines(klines, "BTC/USDT") == 1
    assert pipeline.get_klines_by_symbol("BTC/USDT")[0].symbol == "BTC/USDT"
    assert pipeline.get_klines_by_symbol("BTCUSDT") == []
