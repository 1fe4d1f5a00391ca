"""
Watchlist news synchronization.

Finnhub's free tier allows 60 calls per minute, so tracked stocks are
processed strictly one after another with a fixed pause between calls.
The pause is taken after failed stocks as well: the request rate must not
depend on the success/failure mix.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Any

from stockfeed.core.throttle import FixedDelay, SleepFunc, paced
from stockfeed.crawler.finnhub_client import FinnhubClient
from stockfeed.db.models import Stock
from stockfeed.db.store import StockStore
from stockfeed.filter.relevance import is_relevant_article
from stockfeed.sync.articles import article_fields
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


def _empty_result() -> dict[str, Any]:
    return {
        "total_stocks": 0,
        "total_articles": 0,
        "new_articles": 0,
        "updated_articles": 0,
        "skipped_irrelevant": 0,
        "failed_articles": 0,
        "success_count": 0,
        "error_count": 0,
        "errors": [],
    }


class NewsSyncService:
    """Fetches today's news for every stock on any watchlist.

    Attributes:
        request_delay: Seconds between consecutive Finnhub calls.
    """

    def __init__(
        self,
        store: StockStore,
        finnhub: FinnhubClient,
        request_delay: float = 1.1,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.store = store
        self.finnhub = finnhub
        self.request_delay = request_delay
        self._sleep = sleep

    async def sync_news(self) -> dict[str, Any]:
        """Run one sync over the tracked-stock set.

        Returns:
            Summary with ``total_stocks``, ``total_articles`` (relevant
            articles saved), ``new_articles``, ``updated_articles``,
            ``skipped_irrelevant``, ``failed_articles`` (relevant articles
            the store rejected), ``success_count``, ``error_count``, ``errors``
            and ``success``. ``success`` is False only when the
            tracked set could not be loaded; the summary then carries
            ``error``.
        """
        result = _empty_result()
        try:
            stocks = await self.store.find_distinct_tracked_stocks()
        except Exception as e:
            logger.error("Failed to load tracked stocks: %s", e, exc_info=True)
            return {**result, "success": False, "error": str(e)}

        result["total_stocks"] = len(stocks)
        logger.info("Starting news sync for %d tracked stocks", len(stocks))

        today = datetime.now(tz=timezone.utc).date()
        async for stock in paced(stocks, FixedDelay(self.request_delay), self._sleep):
            try:
                counts = await self._sync_stock(stock, today)
            except Exception as e:
                logger.error("Error syncing news for %s: %s", stock.symbol, e)
                result["error_count"] += 1
                result["errors"].append({"symbol": stock.symbol, "error": str(e)})
                continue

            result["success_count"] += 1
            result["new_articles"] += counts["new"]
            result["updated_articles"] += counts["updated"]
            result["skipped_irrelevant"] += counts["irrelevant"]
            result["failed_articles"] += counts["failed"]
            result["total_articles"] += counts["new"] + counts["updated"]

        logger.info(
            "News sync complete: %d stocks, %d articles (%d new, %d updated), %d errors",
            result["total_stocks"], result["total_articles"],
            result["new_articles"], result["updated_articles"], result["error_count"],
        )
        return {**result, "success": True}

    async def _sync_stock(self, stock: Stock, day: date) -> dict[str, int]:
        articles = await self.finnhub.fetch_company_news(stock.symbol, day, day)
        counts = {"new": 0, "updated": 0, "irrelevant": 0, "failed": 0}

        for article in articles:
            if not is_relevant_article(article, stock):
                counts["irrelevant"] += 1
                continue
            fields = article_fields(article)
            if fields is None:
                logger.debug("Skipping malformed article for %s: %r", stock.symbol, article)
                continue
            if fields["published_at"] is None:
                fields["published_at"] = datetime.now(tz=timezone.utc)
            try:
                _, created = await self.store.upsert_news_by_finnhub_id(stock.id, **fields)
            except Exception as e:
                logger.warning(
                    "Failed to save article %s for %s: %s",
                    fields["finnhub_id"], stock.symbol, e,
                )
                counts["failed"] += 1
                continue
            counts["new" if created else "updated"] += 1

        logger.debug(
            "%s: %d articles, %d new, %d updated, %d irrelevant, %d failed",
            stock.symbol, len(articles), counts["new"], counts["updated"],
            counts["irrelevant"], counts["failed"],
        )
        return counts
