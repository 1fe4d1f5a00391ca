"""
User watchlists.

The union of all watchlists is the tracked-stock set the news sync walks,
so removing a stock here is what stops its news from being fetched.
"""

from __future__ import annotations

from typing import Any

from stockfeed.core.exceptions import NotFoundError, ValidationError
from stockfeed.db.models import Stock
from stockfeed.db.store import StockStore
from stockfeed.filter.relevance import clean_company_name
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


def _stock_payload(stock: Stock) -> dict[str, Any]:
    return {
        "id": stock.id,
        "symbol": stock.symbol,
        "displaySymbol": stock.display_symbol,
        "description": stock.description,
        "type": stock.type,
        "exchange": stock.exchange,
        "logo": stock.logo,
    }


class WatchlistService:
    def __init__(self, store: StockStore) -> None:
        self.store = store

    async def toggle_stock(self, user_id: str, stock_id: str) -> dict[str, Any]:
        """Add the stock to the user's watchlist, or remove it if already there.

        Returns:
            ``{"action": "added" | "removed", "stock": {...}}``.

        Raises:
            ValidationError: ``user_id`` or ``stock_id`` is blank.
            NotFoundError: No stock with that id.
        """
        if not user_id:
            raise ValidationError("User id is required", field="user_id")
        if not stock_id:
            raise ValidationError("Stock id is required", field="stock_id")

        stock = await self.store.get_stock(stock_id)
        if stock is None:
            raise NotFoundError("Stock", stock_id)

        if await self.store.remove_from_watchlist(user_id, stock.id):
            action = "removed"
        else:
            await self.store.add_to_watchlist(user_id, stock.id)
            action = "added"

        logger.info("Watchlist %s: %s for user %s", action, stock.symbol, user_id)
        return {"action": action, "stock": _stock_payload(stock)}

    async def get_watchlist(self, user_id: str) -> dict[str, Any]:
        """The user's stocks ordered by company name, with display names cleaned."""
        entries = await self.store.list_watchlist(user_id)
        stocks = []
        for stock, added_at in entries:
            item = _stock_payload(stock)
            item["description"] = clean_company_name(stock.description)
            item["addedToWatchlistAt"] = added_at
            stocks.append(item)
        return {"stockIds": [stock.id for stock, _ in entries], "stocks": stocks}
