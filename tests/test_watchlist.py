"""WatchlistService tests."""
import pytest

from stockfeed.core.exceptions import NotFoundError, ValidationError
from stockfeed.sync.watchlist import WatchlistService


async def test_toggle_adds_then_removes(store, make_user):
    user = await make_user("trader@example.com")
    aapl = await store.upsert_by_symbol("AAPL", description="Apple Inc")
    service = WatchlistService(store)

    added = await service.toggle_stock(user.id, aapl.id)
    assert added["action"] == "added"
    assert added["stock"]["symbol"] == "AAPL"
    assert [s.symbol for s in await store.find_distinct_tracked_stocks()] == ["AAPL"]

    removed = await service.toggle_stock(user.id, aapl.id)
    assert removed["action"] == "removed"
    assert await store.find_distinct_tracked_stocks() == []


async def test_removal_only_affects_that_user(store, make_user):
    alice = await make_user("alice@example.com")
    bob = await make_user("bob@example.com")
    aapl = await store.upsert_by_symbol("AAPL", description="Apple Inc")
    service = WatchlistService(store)

    await service.toggle_stock(alice.id, aapl.id)
    await service.toggle_stock(bob.id, aapl.id)
    await service.toggle_stock(alice.id, aapl.id)

    assert (await service.get_watchlist(alice.id))["stocks"] == []
    assert (await service.get_watchlist(bob.id))["stockIds"] == [aapl.id]
    assert [s.symbol for s in await store.find_distinct_tracked_stocks()] == ["AAPL"]


async def test_toggle_unknown_stock(store, make_user):
    user = await make_user("trader@example.com")
    with pytest.raises(NotFoundError):
        await WatchlistService(store).toggle_stock(user.id, "missing-id")


async def test_toggle_requires_ids(store):
    with pytest.raises(ValidationError):
        await WatchlistService(store).toggle_stock("", "stock-id")
    with pytest.raises(ValidationError):
        await WatchlistService(store).toggle_stock("user-id", "")


async def test_watchlist_ordered_by_company_with_clean_names(store, make_user):
    user = await make_user("trader@example.com")
    msft = await store.upsert_by_symbol("MSFT", description="Microsoft Corporation")
    aapl = await store.upsert_by_symbol("AAPL", description="Apple Inc.")
    service = WatchlistService(store)
    await service.toggle_stock(user.id, msft.id)
    await service.toggle_stock(user.id, aapl.id)

    watchlist = await service.get_watchlist(user.id)

    assert watchlist["stockIds"] == [aapl.id, msft.id]
    assert [s["description"] for s in watchlist["stocks"]] == ["Apple", "Microsoft"]
    assert watchlist["stocks"][0]["addedToWatchlistAt"] is not None
