"""Data layer: Binance klines fetching, validation, and storage adapter."""
from .binance_client import BinanceClient, parse_kline
from .klines_store import KlinesStore
from .validator import ValidationReport, check_kline, validate_klines

__all__ = ["BinanceClient", "KlinesStore", "ValidationReport", "check_kline", "parse_kline", "validate_klines"]
