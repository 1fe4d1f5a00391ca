"""
Finnhub REST client.

Two endpoints are used:
    GET /stock/symbol?exchange={exchange}&token={key}            full listing
    GET /company-news?symbol={sym}&from={date}&to={date}&token={key}

The listing is a single all-or-nothing response. Callers own retry and
pacing; this client raises ``UpstreamError`` on any non-200 status,
transport failure or unparseable body.
"""

from __future__ import annotations

import asyncio
import json
from datetime import date, datetime, timezone
from typing import Any

import aiohttp

from stockfeed.core.exceptions import UpstreamError
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_CLIENT_TIMEOUT_TOTAL: float = 60.0
_CLIENT_TIMEOUT_CONNECT: float = 10.0
_ERROR_BODY_LIMIT = 500


class FinnhubClient:
    """Thin async wrapper over the Finnhub REST API.

    Attributes:
        base_url: API root, e.g. ``https://finnhub.io/api/v1``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://finnhub.io/api/v1",
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls, settings: Any) -> "FinnhubClient":
        if not settings.finnhub_api_key:
            logger.warning("FINNHUB_API_KEY is not set; Finnhub requests will be rejected")
        return cls(settings.finnhub_api_key, settings.finnhub_base_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=_CLIENT_TIMEOUT_TOTAL,
                connect=_CLIENT_TIMEOUT_CONNECT,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(self, path: str, params: dict[str, str]) -> Any:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        query = {**params, "token": self._api_key}

        try:
            async with session.get(url, params=query) as resp:
                body = await resp.text()
                if resp.status != 200:
                    raise UpstreamError(
                        f"Finnhub API returned status {resp.status}: {body[:_ERROR_BODY_LIMIT]}",
                        status=resp.status,
                        body=body,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise UpstreamError(f"Error fetching from Finnhub API: {exc}") from exc

        try:
            return json.loads(body)
        except ValueError as exc:
            raise UpstreamError(
                f"Error parsing Finnhub API response: {exc}", status=200, body=body
            ) from exc

    async def fetch_stock_symbols(self, exchange: str = "US") -> list[dict[str, Any]]:
        """Return the full instrument listing for ``exchange``."""
        data = await self._get_json("/stock/symbol", {"exchange": exchange})
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(
                f"Unexpected symbol listing payload: {type(data).__name__}", status=200
            )
        logger.info("Fetched %d symbols for exchange %s", len(data), exchange)
        return data

    async def fetch_company_news(
        self,
        symbol: str,
        date_from: date | str,
        date_to: date | str,
    ) -> list[dict[str, Any]]:
        """Return company news for ``symbol`` published between two dates."""
        data = await self._get_json(
            "/company-news",
            {
                "symbol": symbol.upper(),
                "from": _format_date(date_from),
                "to": _format_date(date_to),
            },
        )
        if not isinstance(data, list):
            logger.warning(
                "Company news payload for %s is not a list: %s", symbol, type(data).__name__
            )
            return []
        return data


def _format_date(value: date | str) -> str:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    return value
