"""
Logo acquisition.

Each acquisition moves through a small state machine:

    CACHE_HIT                      logo already on disk, nothing else runs
    SCRAPING  -> DONE(ref | None)  this caller started the scrape
    COALESCED -> DONE(ref | None)  joined a scrape another caller started
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from stockfeed.core.coalescer import RequestCoalescer
from stockfeed.core.exceptions import ValidationError
from stockfeed.logos.cache import LogoCache, normalize_symbol
from stockfeed.logos.scraper import LogoScraper
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

ACQUIRE_KEY_PREFIX = "acquire-image-"


class AcquisitionState(str, enum.Enum):
    CACHE_HIT = "cache_hit"
    COALESCED = "coalesced"
    SCRAPING = "scraping"
    DONE = "done"


@dataclass(frozen=True)
class Acquisition:
    """Outcome of one ``acquire`` call.

    Attributes:
        symbol: Normalized symbol.
        state: ``CACHE_HIT`` or ``DONE``.
        logo: Logo reference, or ``None`` when nothing was found.
        path: How a ``DONE`` result was reached (``SCRAPING`` or
            ``COALESCED``); equals ``state`` for a cache hit.
    """

    symbol: str
    state: AcquisitionState
    logo: str | None
    path: AcquisitionState


class LogoAcquirer:
    """Cache-first, coalesced logo acquisition."""

    def __init__(
        self,
        cache: LogoCache,
        scraper: LogoScraper,
        coalescer: RequestCoalescer,
    ) -> None:
        self.cache = cache
        self.scraper = scraper
        self.coalescer = coalescer

    async def acquire(self, symbol: str) -> str | None:
        """Return the logo reference for ``symbol``, scraping it if needed.

        Raises:
            ValidationError: ``symbol`` is blank.
        """
        result = await self.acquire_with_state(symbol)
        return result.logo

    async def acquire_with_state(self, symbol: str) -> Acquisition:
        ticker = normalize_symbol(symbol)
        if not ticker:
            raise ValidationError("Stock symbol is required", field="symbol")

        cached = self.cache.lookup(ticker)
        if cached:
            return Acquisition(ticker, AcquisitionState.CACHE_HIT, cached, AcquisitionState.CACHE_HIT)

        key = f"{ACQUIRE_KEY_PREFIX}{ticker}"
        path = (
            AcquisitionState.COALESCED
            if self.coalescer.is_pending(key)
            else AcquisitionState.SCRAPING
        )
        logger.debug("Acquiring logo for %s (%s)", ticker, path.value)

        logo = await self.coalescer.execute(key, lambda: self.scraper.scrape(ticker))
        return Acquisition(ticker, AcquisitionState.DONE, logo, path)
