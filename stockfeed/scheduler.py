"""
Sync scheduler.

Two independent loops on one event loop:

- Stock catalog: weekly (default Sunday 03:00 America/New_York). Runs the
  catalog sync and then the logo backfill as two separate steps; a failed
  catalog sync does not prevent the backfill.
- Watchlist news: every N minutes, aligned to the clock (:00, :20, :40).

A failing job is logged and the loop keeps going.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from stockfeed.core.throttle import SleepFunc
from stockfeed.sync.news_sync import NewsSyncService
from stockfeed.sync.stock_sync import StockSyncService
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)


def next_weekly_run(now: datetime, weekday: int, hour: int, tz: ZoneInfo) -> datetime:
    """Next ``weekday`` (Monday=0) at ``hour``:00 local time, strictly after ``now``."""
    local = now.astimezone(tz)
    candidate = local.replace(hour=hour, minute=0, second=0, microsecond=0)
    candidate += timedelta(days=(weekday - local.weekday()) % 7)
    if candidate <= local:
        candidate += timedelta(days=7)
    return candidate


def next_interval_run(now: datetime, minutes: int) -> datetime:
    """Next multiple of ``minutes`` since the epoch, strictly after ``now``."""
    step = minutes * 60
    epoch = int(now.astimezone(timezone.utc).timestamp())
    return datetime.fromtimestamp((epoch // step + 1) * step, tz=timezone.utc)


class SyncScheduler:
    """Runs catalog and news syncs on their own schedules."""

    def __init__(
        self,
        stock_sync: StockSyncService,
        news_sync: NewsSyncService,
        news_interval_minutes: int = 20,
        stock_weekday: int = 6,
        stock_hour: int = 3,
        timezone_name: str = "America/New_York",
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.stock_sync = stock_sync
        self.news_sync = news_sync
        self.news_interval_minutes = news_interval_minutes
        self.stock_weekday = stock_weekday
        self.stock_hour = stock_hour
        self.tz = ZoneInfo(timezone_name)
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))
        self._tasks: list[asyncio.Task] = []

    @classmethod
    def from_settings(
        cls, settings: Any, stock_sync: StockSyncService, news_sync: NewsSyncService
    ) -> "SyncScheduler":
        return cls(
            stock_sync,
            news_sync,
            news_interval_minutes=settings.news_sync_interval_minutes,
            stock_weekday=settings.stock_sync_weekday,
            stock_hour=settings.stock_sync_hour,
            timezone_name=settings.scheduler_timezone,
        )

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(
                self._loop(
                    "stock sync",
                    lambda now: next_weekly_run(now, self.stock_weekday, self.stock_hour, self.tz),
                    self.run_stock_job,
                ),
                name="stock-sync-loop",
            ),
            asyncio.create_task(
                self._loop(
                    "news sync",
                    lambda now: next_interval_run(now, self.news_interval_minutes),
                    self.run_news_job,
                ),
                name="news-sync-loop",
            ),
        ]
        logger.info(
            "Scheduler started: stock sync weekday=%d %02d:00 %s, news sync every %d min",
            self.stock_weekday, self.stock_hour, self.tz.key, self.news_interval_minutes,
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Scheduler stopped")

    async def run_stock_job(self) -> None:
        await self._run_step("stock catalog sync", self.stock_sync.sync_all_stocks)
        await self._run_step("logo backfill", self.stock_sync.backfill_logos)

    async def run_news_job(self) -> None:
        result = await self._run_step("news sync", self.news_sync.sync_news)
        if result is not None and not result.get("success"):
            logger.error("News sync job failed: %s", result.get("error"))

    async def _loop(
        self,
        name: str,
        next_run: Callable[[datetime], datetime],
        job: Callable[[], Awaitable[None]],
    ) -> None:
        while True:
            now = self._clock()
            target = next_run(now)
            logger.debug("%s: next run at %s", name, target.isoformat())
            await self._sleep(max((target - now).total_seconds(), 0.0))
            await job()

    @staticmethod
    async def _run_step(name: str, step: Callable[[], Awaitable[Any]]) -> Any:
        logger.info("Scheduled %s triggered", name)
        try:
            result = await step()
        except Exception as e:
            logger.error("Scheduled %s failed: %s", name, e, exc_info=True)
            return None
        logger.info("Scheduled %s completed", name)
        return result
