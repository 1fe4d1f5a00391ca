"""NewsSyncService tests."""
import time
from datetime import date

from stockfeed.core.exceptions import UpstreamError
from stockfeed.sync.news_sync import NewsSyncService


def _article(finnhub_id, headline, url=None, summary=""):
    return {
        "id": finnhub_id,
        "headline": headline,
        "summary": summary,
        "url": url or f"https://news.example.com/{finnhub_id}",
        "source": "Example",
        "category": "company",
        "datetime": 1760882400,
    }


async def _track(store, make_user, *listings):
    user = await make_user("trader@example.com")
    stocks = []
    for symbol, description in listings:
        stock = await store.upsert_by_symbol(symbol, description=description)
        await store.add_to_watchlist(user.id, stock.id)
        stocks.append(stock)
    return stocks


async def test_failure_mid_batch_keeps_going_and_keeps_pacing(store, make_user, fake_finnhub):
    await _track(store, make_user, ("AAPL", "Apple Inc"), ("MSFT", "Microsoft Corp"), ("NVDA", "NVIDIA Corp"))
    fake_finnhub.news = {
        "AAPL": [_article(1, "Apple unveils new iPhone")],
        "MSFT": UpstreamError("Finnhub API returned status 429", status=429),
        "NVDA": [_article(3, "NVDA rallies on AI demand")],
    }
    delay = 0.05
    service = NewsSyncService(store, fake_finnhub, request_delay=delay)

    started = time.monotonic()
    result = await service.sync_news()
    elapsed = time.monotonic() - started

    assert [call[0] for call in fake_finnhub.news_calls] == ["AAPL", "MSFT", "NVDA"]
    assert result["success"] is True
    assert result["total_stocks"] == 3
    assert result["success_count"] == 2
    assert result["error_count"] == 1
    assert result["errors"][0]["symbol"] == "MSFT"
    assert result["total_articles"] == 2
    assert elapsed >= 2 * delay
    assert await store.find_news_by_finnhub_id(3) is not None


async def test_delay_between_every_call(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"), ("MSFT", "Microsoft Corp"), ("IBM", "IBM"))
    fake_finnhub.news = {"MSFT": RuntimeError("boom")}
    service = NewsSyncService(store, fake_finnhub, request_delay=1.1, sleep=recording_sleep)

    await service.sync_news()
    assert recording_sleep.delays == [1.1, 1.1]


async def test_requests_today_window(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"))
    await NewsSyncService(store, fake_finnhub, sleep=recording_sleep).sync_news()

    _, date_from, date_to = fake_finnhub.news_calls[0]
    assert isinstance(date_from, date)
    assert date_from == date_to


async def test_irrelevant_and_malformed_articles_skipped(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"))
    fake_finnhub.news = {
        "AAPL": [
            _article(10, "Apple supplier expands in India"),
            _article(11, "Oil prices slide"),
            {"id": None, "headline": "Apple rumor", "url": "https://news.example.com/x"},
            {"id": 12, "headline": "Apple again", "url": ""},
        ]
    }
    result = await NewsSyncService(store, fake_finnhub, sleep=recording_sleep).sync_news()

    assert result["new_articles"] == 1
    assert result["skipped_irrelevant"] == 1
    assert await store.find_news_by_finnhub_id(11) is None


async def test_rerun_counts_updates(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"))
    fake_finnhub.news = {"AAPL": [_article(1, "Apple unveils new iPhone")]}
    service = NewsSyncService(store, fake_finnhub, sleep=recording_sleep)

    first = await service.sync_news()
    fake_finnhub.news = {"AAPL": [_article(1, "Apple unveils new iPhone 18")]}
    second = await service.sync_news()

    assert (first["new_articles"], first["updated_articles"]) == (1, 0)
    assert (second["new_articles"], second["updated_articles"]) == (0, 1)
    assert (await store.find_news_by_finnhub_id(1)).headline == "Apple unveils new iPhone 18"


async def test_no_tracked_stocks(store, fake_finnhub, recording_sleep):
    result = await NewsSyncService(store, fake_finnhub, sleep=recording_sleep).sync_news()
    assert result["success"] is True
    assert result["total_stocks"] == 0
    assert fake_finnhub.news_calls == []


async def test_tracked_set_failure_reported(fake_finnhub, recording_sleep):
    class BrokenStore:
        async def find_distinct_tracked_stocks(self):
            raise RuntimeError("database unavailable")

    result = await NewsSyncService(BrokenStore(), fake_finnhub, sleep=recording_sleep).sync_news()
    assert result["success"] is False
    assert result["error"] == "database unavailable"
    assert result["total_stocks"] == 0


async def test_republished_url_updates_existing_row(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"))
    shared = "https://news.example.com/apple-earnings"
    fake_finnhub.news = {
        "AAPL": [
            _article(1, "Apple beats earnings estimates", url=shared),
            _article(2, "Apple beats earnings estimates, shares climb", url=shared),
            _article(3, "Apple opens new store in Mumbai"),
        ]
    }
    result = await NewsSyncService(store, fake_finnhub, sleep=recording_sleep).sync_news()

    assert result["success_count"] == 1
    assert result["error_count"] == 0
    assert (result["new_articles"], result["updated_articles"]) == (2, 1)
    assert result["total_articles"] == 3
    assert result["failed_articles"] == 0
    assert await store.find_news_by_finnhub_id(2) is None
    assert (await store.find_news_by_finnhub_id(1)).headline.endswith("shares climb")
    assert await store.find_news_by_finnhub_id(3) is not None


async def test_article_save_failure_does_not_drop_the_rest(store, make_user, fake_finnhub, recording_sleep):
    await _track(store, make_user, ("AAPL", "Apple Inc"))
    fake_finnhub.news = {
        "AAPL": [
            _article(1, "Apple unveils new iPhone"),
            _article(2, "Apple faces EU fine"),
            _article(3, "Apple opens new store in Mumbai"),
        ]
    }
    upsert = store.upsert_news_by_finnhub_id

    async def flaky_upsert(stock_id, finnhub_id, **fields):
        if finnhub_id == 2:
            raise RuntimeError("disk full")
        return await upsert(stock_id, finnhub_id, **fields)

    store.upsert_news_by_finnhub_id = flaky_upsert
    result = await NewsSyncService(store, fake_finnhub, sleep=recording_sleep).sync_news()

    assert result["success_count"] == 1
    assert result["error_count"] == 0
    assert result["new_articles"] == 2
    assert result["failed_articles"] == 1
    assert await store.find_news_by_finnhub_id(3) is not None
