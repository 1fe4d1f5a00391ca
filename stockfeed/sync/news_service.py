"""
On-demand news for a single stock.

Serves stored articles while they are fresh and only goes to Finnhub when
nothing was ingested for the stock in the last few minutes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from stockfeed.core.exceptions import NotFoundError, ValidationError
from stockfeed.crawler.finnhub_client import FinnhubClient
from stockfeed.db.models import News
from stockfeed.db.store import StockStore
from stockfeed.sync.articles import article_fields
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


class NewsService:
    def __init__(
        self,
        store: StockStore,
        finnhub: FinnhubClient,
        freshness_minutes: int = 10,
        lookback_days: int = 10,
        page_size: int = 10,
    ) -> None:
        self.store = store
        self.finnhub = finnhub
        self.freshness = timedelta(minutes=freshness_minutes)
        self.lookback = timedelta(days=lookback_days)
        self.page_size = page_size

    async def fetch_and_save_news(self, stock_id: str) -> list[News]:
        """Return the latest news for ``stock_id``, refreshing it if stale.

        Raises:
            ValidationError: ``stock_id`` is blank.
            NotFoundError: No stock with that id.
            UpstreamError: The Finnhub call failed.
        """
        if not stock_id:
            raise ValidationError("Stock id is required", field="stock_id")

        stock = await self.store.get_stock(stock_id)
        if stock is None:
            raise NotFoundError("Stock", stock_id)

        now = datetime.now(tz=timezone.utc)
        if await self.store.has_recent_news(stock.id, now - self.freshness):
            logger.debug("News for %s is fresh, serving stored articles", stock.symbol)
            return await self.store.list_recent_news(stock.id, self.page_size)

        articles = await self.finnhub.fetch_company_news(
            stock.symbol, (now - self.lookback).date(), now.date()
        )
        saved = 0
        for article in articles:
            fields = article_fields(article)
            if fields is None:
                continue
            if fields["published_at"] is None:
                fields["published_at"] = now
            try:
                await self.store.upsert_news_by_finnhub_id(stock.id, **fields)
                saved += 1
            except Exception as e:
                logger.warning(
                    "Failed to save article %s for %s: %s",
                    fields["finnhub_id"], stock.symbol, e,
                )

        logger.info("Saved %d/%d articles for %s", saved, len(articles), stock.symbol)
        return await self.store.list_recent_news(stock.id, self.page_size)

