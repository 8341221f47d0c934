"""kline-feed CLI: fetch Binance klines, store them in DuckDB, read them back.

Usage:
    kline-feed fetch BTCUSDT --interval 1m
    kline-feed fetch-and-store BTC/USDT --interval 5m --db data/kline.duckdb
    kline-feed stored BTCUSDT
    python -m kline_feed.cli stored BTCUSDT
"""
from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict

import duckdb
from rich.console import Console
from rich.logging import RichHandler

from .config import Settings, load_settings
from .data.binance_client import DEFAULT_INTERVAL
from .errors import KlineFeedError
from .pipeline import KlinePipeline, build_pipeline

console = Console()
log = logging.getLogger(__name__)


def _cmd_fetch(pipeline: KlinePipeline, args: argparse.Namespace) -> dict:
    log.info("Fetching klines for symbol %s with interval %s", args.symbol, args.interval)
    klines = pipeline.fetch_klines(args.symbol, args.interval)
    return {"symbol": args.symbol, "interval": args.interval, "count": len(klines), "status": "success"}


def _cmd_fetch_and_store(pipeline: KlinePipeline, args: argparse.Namespace) -> dict:
    log.info("Fetching and storing klines for symbol %s with interval %s", args.symbol, args.interval)
    result = pipeline.fetch_and_store(args.symbol, args.interval)
    return {
        "symbol":   result.symbol,
        "interval": result.interval,
        "fetched":  result.fetched,
        "stored":   result.stored,
        "status":   "success",
    }


def _cmd_stored(pipeline: KlinePipeline, args: argparse.Namespace) -> dict:
    klines = pipeline.get_klines_by_symbol(args.symbol)
    log.info("Retrieved %d stored klines for %s", len(klines), args.symbol)
    return {
        "symbol": args.symbol,
        "count":  len(klines),
        "klines": [asdict(k) for k in klines],
        "status": "success",
    }


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Fetch, validate and store Binance klines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Environment: BINANCE_BASE_URL, KLINE_DB_PATH, HTTP_TIMEOUT, ATOMIC_STORE, LOG_LEVEL",
    )
    p.add_argument("--db", default=None, help="DuckDB file path (default: $KLINE_DB_PATH or data/kline.duckdb)")
    p.add_argument("--base-url", default=None, help="Exchange base URL (default: $BINANCE_BASE_URL)")
    p.add_argument(
        "--atomic", action="store_true", default=None, help="Store each batch inside one transaction"
    )
    p.add_argument("-v", "--verbose", action="store_true")

    sub = p.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Fetch and validate klines without storing")
    fetch.add_argument("symbol", metavar="SYMBOL", help="e.g. BTCUSDT or BTC/USDT")
    fetch.add_argument("--interval", default=DEFAULT_INTERVAL, help=f"Kline interval (default: {DEFAULT_INTERVAL})")
    fetch.set_defaults(handler=_cmd_fetch)

    fetch_store = sub.add_parser("fetch-and-store", help="Fetch, validate and store klines")
    fetch_store.add_argument("symbol", metavar="SYMBOL")
    fetch_store.add_argument("--interval", default=DEFAULT_INTERVAL)
    fetch_store.set_defaults(handler=_cmd_fetch_and_store)

    stored = sub.add_parser("stored", help="List klines already stored for a symbol")
    stored.add_argument("symbol", metavar="SYMBOL")
    stored.set_defaults(handler=_cmd_stored)
    return p


def _configure_logging(settings: Settings, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_settings(db_path=args.db, base_url=args.base_url, atomic_store=args.atomic)
    _configure_logging(settings, args.verbose)

    try:
        pipeline, con = build_pipeline(settings)
    except (duckdb.Error, OSError) as exc:
        log.error("Cannot open kline database %s: %s", settings.db_path, exc)
        console.print_json(json.dumps({"error": str(exc), "status": "error"}))
        return 1

    try:
        response = args.handler(pipeline, args)
        code = 0
    except KlineFeedError as exc:
        log.error("%s failed for %s: %s", args.command, args.symbol, exc)
        response = {"error": str(exc), "status": "error"}
        code = 1
    finally:
        pipeline.client.close()
        con.close()

    console.print_json(json.dumps(response))
    return code


if __name__ == "__main__":
    raise SystemExit(main())
