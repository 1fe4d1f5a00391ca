#!/usr/bin/env python3
"""
Run one stock catalog sync, optionally followed by the logo backfill.

Usage:
    .venv/bin/python scripts/sync_stocks.py
    .venv/bin/python scripts/sync_stocks.py --with-logos
    .venv/bin/python scripts/sync_stocks.py --logos-only
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv()

from stockfeed.app import StockFeed
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync the Finnhub stock catalog")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--with-logos", action="store_true", help="backfill missing logos after the sync"
    )
    group.add_argument(
        "--logos-only", action="store_true", help="only backfill missing logos"
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    feed = StockFeed()
    try:
        if args.logos_only:
            result = await feed.stock_sync.backfill_logos()
        elif args.with_logos:
            result = await feed.stock_sync.sync_stocks_with_logos()
        else:
            result = await feed.stock_sync.sync_all_stocks()
    except Exception as e:
        logger.error("Stock sync failed: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await feed.shutdown()

    summary = {k: v for k, v in result.items() if k != "errors"}
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_run(_parse_args())))
