#!/usr/bin/env python3
"""
Acquire the logo for one symbol (cache first, then image search).

Usage:
    .venv/bin/python scripts/fetch_logo.py AAPL
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_PROJECT_ROOT))

from dotenv import load_dotenv

load_dotenv()

from stockfeed.app import StockFeed


async def _run(symbol: str) -> int:
    feed = StockFeed()
    try:
        result = await feed.acquirer.acquire_with_state(symbol)
    finally:
        await feed.shutdown()

    if result.logo is None:
        print(f"No logo found for {result.symbol}", file=sys.stderr)
        return 1
    print(f"{result.symbol}: {result.logo} ({result.path.value})")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch the logo of a stock symbol")
    parser.add_argument("symbol")
    args = parser.parse_args()
    sys.exit(asyncio.run(_run(args.symbol)))
