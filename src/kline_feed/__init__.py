from .data.binance_client import BinanceClient
from .data.klines_store import KlinesStore
from .errors import FetchFailed, KlineFeedError, ParseFailed, StoreFailed
from .pipeline import FetchAndStoreResult, KlinePipeline, build_pipeline
from .types import KlineRepository, RawKline, StoredKline, ValidatedKline

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "KlinePipeline",
    "FetchAndStoreResult",
    "build_pipeline",
    # Components
    "BinanceClient",
    "KlinesStore",
    # Types
    "RawKline",
    "ValidatedKline",
    "StoredKline",
    # Protocols
    "KlineRepository",
    # Errors
    "KlineFeedError",
    "FetchFailed",
    "ParseFailed",
    "StoreFailed",
]
