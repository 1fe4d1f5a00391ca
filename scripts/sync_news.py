#!/usr/bin/env python3
"""
Run one watchlist news sync.

Usage:
    .venv/bin/python scripts/sync_news.py
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


async def _run() -> int:
    feed = StockFeed()
    try:
        result = await feed.news_sync.sync_news()
    finally:
        await feed.shutdown()

    if not result["success"]:
        print(f"Failed: {result.get('error')}", file=sys.stderr)
        return 1
    print(json.dumps({k: v for k, v in result.items() if k != "errors"}, indent=2))
    return 0


if __name__ == "__main__":
    argparse.ArgumentParser(description="Sync today's news for all watchlist stocks").parse_args()
    sys.exit(asyncio.run(_run()))
