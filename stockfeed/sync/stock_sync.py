"""
Stock catalog synchronization.

Pulls the full US listing from Finnhub (with retry), keeps common stocks
and upserts them one by one. A record that fails to upsert is counted and
the batch moves on; only a fetch that fails after every retry aborts the
run. Logo backfill is a separate operation so the scheduler can run it on
its own.
"""

from __future__ import annotations

from typing import Any

from stockfeed.core.throttle import RetryExecutor
from stockfeed.crawler.finnhub_client import FinnhubClient
from stockfeed.db.store import StockStore
from stockfeed.logos.acquirer import LogoAcquirer
from stockfeed.logos.cache import normalize_symbol
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_PROGRESS_EVERY = 100


class StockSyncService:
    """Reconciles the local stock table with the Finnhub catalog.

    Attributes:
        exchange: Finnhub exchange code to list.
        stock_type: Instrument type kept from the listing.
    """

    def __init__(
        self,
        store: StockStore,
        finnhub: FinnhubClient,
        retry: RetryExecutor,
        acquirer: LogoAcquirer | None = None,
        exchange: str = "US",
        stock_type: str = "Common Stock",
    ) -> None:
        self.store = store
        self.finnhub = finnhub
        self.retry = retry
        self.acquirer = acquirer
        self.exchange = exchange
        self.stock_type = stock_type

    async def fetch_catalog(self) -> list[dict[str, Any]]:
        """Fetch the listing (retried) and keep only ``stock_type`` rows."""
        symbols = await self.retry.run(
            lambda: self.finnhub.fetch_stock_symbols(self.exchange)
        )
        stocks = [s for s in symbols if s.get("type") == self.stock_type]
        logger.info(
            "Catalog fetched: %d instruments, %d of type '%s'",
            len(symbols), len(stocks), self.stock_type,
        )
        return stocks

    async def sync_all_stocks(self) -> dict[str, Any]:
        """Upsert every common stock of the configured exchange.

        Returns:
            ``{"fetched", "upserted", "failed", "errors"}`` where ``errors``
            holds ``{"symbol", "error"}`` for each failed record.

        Raises:
            Whatever the Finnhub fetch raised after the last retry.
        """
        logger.info("Starting stock catalog sync (%s)", self.exchange)
        stocks = await self.fetch_catalog()

        upserted = 0
        errors: list[dict[str, str]] = []

        for index, record in enumerate(stocks, start=1):
            symbol = record.get("symbol") or ""
            try:
                await self.store.upsert_by_symbol(
                    symbol,
                    display_symbol=record.get("displaySymbol") or normalize_symbol(symbol),
                    description=record.get("description"),
                    type=record.get("type"),
                    exchange=self.exchange,
                )
                upserted += 1
            except Exception as e:
                logger.error("Error upserting stock %s: %s", symbol, e)
                errors.append({"symbol": symbol, "error": str(e)})

            if index % _PROGRESS_EVERY == 0:
                logger.info("Processed %d/%d stocks", index, len(stocks))

        result = {
            "fetched": len(stocks),
            "upserted": upserted,
            "failed": len(errors),
            "errors": errors,
        }
        logger.info(
            "Stock sync complete: fetched=%d upserted=%d failed=%d",
            result["fetched"], upserted, result["failed"],
        )
        return result

    async def backfill_logos(self) -> dict[str, Any]:
        """Fill in logos for stocks that have none.

        A logo already in the local cache is linked directly; otherwise the
        (coalesced) acquirer scrapes one. Misses and errors are counted and
        the batch continues.

        Returns:
            ``{"checked", "found_locally", "scraped", "failed", "errors"}``.
        """
        if self.acquirer is None:
            raise RuntimeError("backfill_logos requires a LogoAcquirer")

        stats: dict[str, Any] = {
            "checked": 0,
            "found_locally": 0,
            "scraped": 0,
            "failed": 0,
            "errors": [],
        }
        missing = await self.store.find_many_missing_logo()
        logger.info("Logo backfill: %d stocks without a logo", len(missing))

        for stock in missing:
            stats["checked"] += 1
            try:
                cached = self.acquirer.cache.lookup(stock.symbol)
                if cached:
                    await self.store.update_logo(stock.id, cached)
                    stats["found_locally"] += 1
                    continue

                logo = await self.acquirer.acquire(stock.symbol)
                if logo:
                    await self.store.update_logo(stock.id, logo)
                    stats["scraped"] += 1
                else:
                    stats["failed"] += 1
            except Exception as e:
                logger.error("Logo backfill failed for %s: %s", stock.symbol, e)
                stats["failed"] += 1
                stats["errors"].append({"symbol": stock.symbol, "error": str(e)})

        logger.info(
            "Logo backfill complete: checked=%d local=%d scraped=%d failed=%d",
            stats["checked"], stats["found_locally"], stats["scraped"], stats["failed"],
        )
        return stats

    async def sync_stocks_with_logos(self) -> dict[str, Any]:
        """Catalog sync followed by logo backfill, as two separate steps."""
        stocks = await self.sync_all_stocks()
        logos = await self.backfill_logos()
        return {**stocks, "logo_stats": logos}
