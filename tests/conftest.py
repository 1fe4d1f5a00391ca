"""
Shared test fixtures.
The store runs against in-memory SQLite (aiosqlite); every test gets fresh tables.
"""
from __future__ import annotations

import os
from typing import Any, AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set before any stockfeed import configures logging
os.environ.setdefault("LOG_TO_FILE", "false")

from stockfeed.db.connection import create_all, make_session_factory
from stockfeed.db.models import User
from stockfeed.db.store import StockStore

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> StockStore:
    return StockStore(session_factory)


@pytest.fixture
def make_user(session_factory: async_sessionmaker[AsyncSession]):
    async def _make(email: str) -> User:
        async with session_factory() as session:
            user = User(email=email, name=email.split("@")[0])
            session.add(user)
            await session.commit()
            return user

    return _make


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class FakeFinnhub:
    """In-memory replacement for ``FinnhubClient``."""

    def __init__(
        self,
        symbols: list[dict[str, Any]] | None = None,
        news: dict[str, Any] | None = None,
    ) -> None:
        self.symbols = symbols or []
        # symbol -> list of articles, or an exception instance to raise
        self.news = news or {}
        self.symbol_calls = 0
        self.news_calls: list[tuple[str, Any, Any]] = []

    async def fetch_stock_symbols(self, exchange: str = "US") -> list[dict[str, Any]]:
        self.symbol_calls += 1
        return self.symbols

    async def fetch_company_news(self, symbol: str, date_from: Any, date_to: Any) -> list[dict[str, Any]]:
        self.news_calls.append((symbol, date_from, date_to))
        result = self.news.get(symbol, [])
        if isinstance(result, Exception):
            raise result
        return result

    async def close(self) -> None:
        pass


@pytest.fixture
def fake_finnhub() -> FakeFinnhub:
    return FakeFinnhub()
