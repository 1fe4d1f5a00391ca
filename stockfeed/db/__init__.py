"""
Persistence layer: models, engine/session wiring and the stock/news store.
"""

from stockfeed.db.connection import (
    close_db,
    create_all,
    get_engine,
    get_session_factory,
    init_db,
    make_session_factory,
    session_scope,
)
from stockfeed.db.models import Base, News, Stock, User, UserStock
from stockfeed.db.store import StockStore

__all__ = [
    "Base",
    "News",
    "Stock",
    "StockStore",
    "User",
    "UserStock",
    "close_db",
    "create_all",
    "get_engine",
    "get_session_factory",
    "init_db",
    "make_session_factory",
    "session_scope",
]
