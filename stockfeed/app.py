"""
Component wiring.

Everything is constructed explicitly here and passed by reference; the
browser session in particular is one injected instance whose lifetime is
owned by ``StockFeed.shutdown``.
"""

from __future__ import annotations

from stockfeed.browser.session_manager import BrowserSessionManager
from stockfeed.core.coalescer import RequestCoalescer
from stockfeed.core.exceptions import UpstreamError
from stockfeed.core.throttle import RetryExecutor
from stockfeed.crawler.finnhub_client import FinnhubClient
from stockfeed.db.connection import close_db, get_session_factory
from stockfeed.db.store import StockStore
from stockfeed.logos.acquirer import LogoAcquirer
from stockfeed.logos.cache import LogoCache
from stockfeed.logos.downloader import LogoDownloader
from stockfeed.logos.scraper import LogoScraper
from stockfeed.scheduler import SyncScheduler
from stockfeed.sync.news_service import NewsService
from stockfeed.sync.news_sync import NewsSyncService
from stockfeed.sync.search import StockSearchService
from stockfeed.sync.stock_sync import StockSyncService
from stockfeed.sync.watchlist import WatchlistService
from stockfeed.utils.config import Settings, get_settings
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


class StockFeed:
    """All long-lived components of one process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        s = self.settings

        self.store = StockStore(get_session_factory())
        self.finnhub = FinnhubClient.from_settings(s)
        self.coalescer = RequestCoalescer()
        self.browser = BrowserSessionManager.from_settings(s)

        self.logo_cache = LogoCache(s.logo_dir, s.logo_url_prefix)
        self.downloader = LogoDownloader(self.logo_cache)
        self.scraper = LogoScraper(
            self.browser,
            self.downloader,
            navigation_timeout=s.browser_navigation_timeout,
            settle_seconds=s.logo_settle_seconds,
            min_image_px=s.logo_min_image_px,
        )
        self.acquirer = LogoAcquirer(self.logo_cache, self.scraper, self.coalescer)

        self.stock_sync = StockSyncService(
            self.store,
            self.finnhub,
            RetryExecutor(
                max_attempts=s.catalog_retry_attempts,
                base_delay=s.catalog_retry_base_delay,
                retry_on=(UpstreamError,),
            ),
            acquirer=self.acquirer,
            exchange=s.catalog_exchange,
            stock_type=s.catalog_stock_type,
        )
        self.news_sync = NewsSyncService(
            self.store, self.finnhub, request_delay=s.news_request_delay
        )
        self.news = NewsService(
            self.store,
            self.finnhub,
            freshness_minutes=s.news_freshness_minutes,
            lookback_days=s.news_lookback_days,
            page_size=s.news_page_size,
        )
        self.search = StockSearchService(self.store, self.acquirer, self.coalescer)
        self.watchlist = WatchlistService(self.store)
        self.scheduler = SyncScheduler.from_settings(s, self.stock_sync, self.news_sync)

    async def shutdown(self) -> None:
        """Stop the scheduler and release browser, HTTP and DB resources."""
        await self.scheduler.stop()
        await self.browser.shutdown()
        await self.downloader.close()
        await self.finnhub.close()
        await close_db()
        logger.info("StockFeed shutdown complete")
