"""Process configuration read from environment variables."""
from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from .data.binance_client import DEFAULT_BASE_URL


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_url: str = Field(default=DEFAULT_BASE_URL, alias="BINANCE_BASE_URL")
    db_path: str = Field(default="data/kline.duckdb", alias="KLINE_DB_PATH")
    http_timeout: float = Field(default=30.0, gt=0, alias="HTTP_TIMEOUT")
    atomic_store: bool = Field(default=False, alias="ATOMIC_STORE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def load_settings(**overrides: object) -> Settings:
    """Build Settings from the environment; keyword overrides win when not None."""
    data = {
        "BINANCE_BASE_URL": os.getenv("BINANCE_BASE_URL", DEFAULT_BASE_URL),
        "KLINE_DB_PATH": os.getenv("KLINE_DB_PATH", "data/kline.duckdb"),
        "HTTP_TIMEOUT": float(os.getenv("HTTP_TIMEOUT", "30")),
        "ATOMIC_STORE": os.getenv("ATOMIC_STORE", "false").lower() == "true",
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
    }
    settings = Settings(**data)
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    return settings
