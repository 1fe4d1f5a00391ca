"""
Stock search with lazy logo acquisition.

Identical concurrent searches share one store lookup and one logo scrape
through the coalescer.
"""

from __future__ import annotations

import asyncio
from typing import Any

from stockfeed.core.coalescer import RequestCoalescer
from stockfeed.db.models import Stock
from stockfeed.db.store import StockStore
from stockfeed.filter.relevance import clean_company_name
from stockfeed.logos.acquirer import LogoAcquirer
from stockfeed.logos.cache import normalize_symbol
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

SEARCH_KEY_PREFIX = "catalog-search-"


class StockSearchService:
    def __init__(
        self,
        store: StockStore,
        acquirer: LogoAcquirer,
        coalescer: RequestCoalescer,
        limit: int = 20,
    ) -> None:
        self.store = store
        self.acquirer = acquirer
        self.coalescer = coalescer
        self.limit = limit

    async def search(self, query: str | None) -> dict[str, Any]:
        """Search the catalog and resolve the logo for the query symbol.

        Returns:
            ``{"query", "logo", "results"}``. A blank query yields an empty
            result without touching the store or the browser.
        """
        normalized = normalize_symbol(query)
        if not normalized:
            return {"query": "", "logo": None, "results": []}

        results, logo = await asyncio.gather(
            self.coalescer.execute(
                f"{SEARCH_KEY_PREFIX}{normalized}",
                lambda: self._lookup(query.strip()),
            ),
            self._logo(normalized),
        )
        return {"query": normalized, "logo": logo, "results": results}

    async def _lookup(self, query: str) -> list[dict[str, Any]]:
        stocks = await self.store.search_stocks(query, self.limit)
        return [self._to_result(s) for s in stocks]

    async def _logo(self, symbol: str) -> str | None:
        try:
            return await self.acquirer.acquire(symbol)
        except Exception as e:
            logger.warning("Logo lookup failed for %s: %s", symbol, e)
            return None

    @staticmethod
    def _to_result(stock: Stock) -> dict[str, Any]:
        return {
            "id": stock.id,
            "symbol": stock.symbol,
            "displaySymbol": stock.display_symbol,
            "description": stock.description,
            "name": clean_company_name(stock.description),
            "logo": stock.logo,
        }
