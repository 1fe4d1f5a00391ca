"""Synchronization services: catalog, watchlist news, on-demand news, search, watchlists."""

from stockfeed.sync.news_service import NewsService
from stockfeed.sync.news_sync import NewsSyncService
from stockfeed.sync.search import StockSearchService
from stockfeed.sync.stock_sync import StockSyncService
from stockfeed.sync.watchlist import WatchlistService

__all__ = [
    "NewsService",
    "NewsSyncService",
    "StockSearchService",
    "StockSyncService",
    "WatchlistService",
]
