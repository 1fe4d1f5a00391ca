"""
Stock/news store.

Every method runs in its own transaction. Upserts are single
``INSERT ... ON CONFLICT DO UPDATE`` statements keyed on the natural keys
(``stocks.symbol``, ``news.finnhub_id``), so each record is written
atomically and re-ingesting the same record is an update, never a
duplicate row. An article whose URL is already stored under another
``finnhub_id`` updates that row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockfeed.core.exceptions import StockFeedError, ValidationError
from stockfeed.db.connection import get_session_factory, session_scope
from stockfeed.db.models import News, Stock, UserStock
from stockfeed.logos.cache import normalize_symbol
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_STOCK_FIELDS = ("display_symbol", "description", "type", "exchange")
_NEWS_FIELDS = ("category", "headline", "summary", "url", "image", "source", "published_at")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dialect_insert(session: AsyncSession) -> Any:
    """Return the dialect-specific ``insert`` that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise StockFeedError(
        f"Upsert is not supported on the '{dialect}' dialect", code="UNSUPPORTED_DIALECT"
    )


async def _news_id(session: AsyncSession, condition: Any) -> str | None:
    result = await session.execute(select(News.id).where(condition))
    return result.scalar_one_or_none()


async def _reload_news(session: AsyncSession, condition: Any) -> News:
    result = await session.execute(
        select(News).where(condition).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class StockStore:
    """Persistence operations used by the sync engine.

    Attributes:
        session_factory: Factory for ``AsyncSession`` objects. Defaults to
            the process-wide factory from ``stockfeed.db.connection``.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    def _session(self):
        return session_scope(self.session_factory)

    # ------------------------------------------------------------------
    # Stocks
    # ------------------------------------------------------------------

    async def get_stock(self, stock_id: str) -> Stock | None:
        async with self._session() as session:
            return await session.get(Stock, stock_id)

    async def find_by_symbol(self, symbol: str) -> Stock | None:
        normalized = normalize_symbol(symbol)
        if not normalized:
            return None
        async with self._session() as session:
            result = await session.execute(select(Stock).where(Stock.symbol == normalized))
            return result.scalar_one_or_none()

    async def upsert_by_symbol(self, symbol: str, **fields: Any) -> Stock:
        """Insert the stock or update its mutable fields, keyed on symbol.

        Args:
            symbol: Raw symbol; stored upper-cased and trimmed.
            **fields: Any of display_symbol, description, type, exchange.

        Raises:
            ValidationError: ``symbol`` is blank.
        """
        normalized = normalize_symbol(symbol)
        if not normalized:
            raise ValidationError("Stock symbol is required", field="symbol")

        values = {k: fields.get(k) for k in _STOCK_FIELDS}
        values["display_symbol"] = values["display_symbol"] or normalized
        now = _utcnow()

        async with self._session() as session:
            insert = _dialect_insert(session)
            stmt = insert(Stock).values(
                id=str(uuid4()),
                symbol=normalized,
                created_at=now,
                updated_at=now,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Stock.symbol],
                set_={**values, "updated_at": now},
            )
            await session.execute(stmt)
            result = await session.execute(
                select(Stock)
                .where(Stock.symbol == normalized)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()

    async def find_many_missing_logo(self) -> list[Stock]:
        async with self._session() as session:
            result = await session.execute(
                select(Stock).where(Stock.logo.is_(None)).order_by(Stock.symbol)
            )
            return list(result.scalars().all())

    async def update_logo(self, stock_id: str, logo: str) -> None:
        async with self._session() as session:
            stock = await session.get(Stock, stock_id)
            if stock is None:
                logger.warning("Cannot set logo, stock %s no longer exists", stock_id)
                return
            stock.logo = logo

    async def search_stocks(self, query: str, limit: int = 20) -> list[Stock]:
        """Stocks whose symbol starts with, or description contains, ``query``."""
        normalized = normalize_symbol(query)
        if not normalized:
            return []
        async with self._session() as session:
            result = await session.execute(
                select(Stock)
                .where(
                    or_(
                        Stock.symbol.startswith(normalized, autoescape=True),
                        Stock.description.ilike(f"%{query.strip()}%"),
                    )
                )
                .order_by(func.length(Stock.symbol), Stock.symbol)
                .limit(limit)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Watchlists
    # ------------------------------------------------------------------

    async def add_to_watchlist(self, user_id: str, stock_id: str) -> None:
        async with self._session() as session:
            insert = _dialect_insert(session)
            now = _utcnow()
            stmt = insert(UserStock).values(
                id=str(uuid4()),
                user_id=user_id,
                stock_id=stock_id,
                created_at=now,
                updated_at=now,
            ).on_conflict_do_nothing(index_elements=[UserStock.user_id, UserStock.stock_id])
            await session.execute(stmt)

    async def remove_from_watchlist(self, user_id: str, stock_id: str) -> bool:
        """Delete the watchlist entry; False when there was none."""
        async with self._session() as session:
            result = await session.execute(
                delete(UserStock).where(
                    UserStock.user_id == user_id, UserStock.stock_id == stock_id
                )
            )
            return result.rowcount > 0

    async def list_watchlist(self, user_id: str) -> list[tuple[Stock, datetime]]:
        """A user's stocks by description, each with the time it was added."""
        async with self._session() as session:
            result = await session.execute(
                select(Stock, UserStock.created_at)
                .join(UserStock, UserStock.stock_id == Stock.id)
                .where(UserStock.user_id == user_id)
                .order_by(Stock.description, Stock.symbol)
            )
            return [(stock, added_at) for stock, added_at in result.all()]

    async def find_distinct_tracked_stocks(self) -> list[Stock]:
        """Every stock on at least one watchlist, each listed once."""
        async with self._session() as session:
            result = await session.execute(
                select(Stock)
                .join(UserStock, UserStock.stock_id == Stock.id)
                .distinct()
                .order_by(Stock.symbol)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    async def find_news_by_finnhub_id(self, finnhub_id: int) -> News | None:
        async with self._session() as session:
            result = await session.execute(
                select(News).where(News.finnhub_id == finnhub_id)
            )
            return result.scalar_one_or_none()

    async def upsert_news_by_finnhub_id(
        self, stock_id: str, finnhub_id: int, **fields: Any
    ) -> tuple[News, bool]:
        """Insert the article or update it in place, keyed on ``finnhub_id``.

        Finnhub sometimes republishes a story under a new id with the same
        URL. ``news.url`` is unique too, so such an article refreshes the row
        that already owns the URL instead of inserting a second one. The
        owning stock and ``finnhub_id`` of an existing article are left
        unchanged.

        Returns:
            ``(article, created)``; ``created`` is False for an update.
        """
        values = {k: fields.get(k) for k in _NEWS_FIELDS}
        if not values["headline"]:
            values["headline"] = ""
        if values["published_at"] is None:
            values["published_at"] = _utcnow()
        now = _utcnow()

        async with self._session() as session:
            by_id = await _news_id(session, News.finnhub_id == finnhub_id)
            by_url = await _news_id(session, News.url == values["url"])

            if by_id is None and by_url is not None:
                logger.debug(
                    "Article %s reuses the URL of stored article %s", finnhub_id, by_url
                )
                await session.execute(
                    update(News)
                    .where(News.id == by_url)
                    .values(**values, updated_at=now)
                )
                return await _reload_news(session, News.id == by_url), False

            changes = dict(values)
            if by_url is not None and by_url != by_id:
                # The URL belongs to another article; keep this row's own URL
                del changes["url"]

            insert = _dialect_insert(session)
            stmt = insert(News).values(
                id=str(uuid4()),
                stock_id=stock_id,
                finnhub_id=finnhub_id,
                created_at=now,
                updated_at=now,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[News.finnhub_id],
                set_={**changes, "updated_at": now},
            )
            await session.execute(stmt)
            return await _reload_news(session, News.finnhub_id == finnhub_id), by_id is None

    async def has_recent_news(self, stock_id: str, since: datetime) -> bool:
        """True if any article for the stock was ingested at or after ``since``."""
        async with self._session() as session:
            result = await session.execute(
                select(News.id)
                .where(News.stock_id == stock_id, News.created_at >= since)
                .limit(1)
            )
            return result.first() is not None

    async def list_recent_news(self, stock_id: str, limit: int = 10) -> list[News]:
        async with self._session() as session:
            result = await session.execute(
                select(News)
                .where(News.stock_id == stock_id)
                .order_by(News.published_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())
