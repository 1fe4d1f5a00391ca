"""
Logo image downloader.

Persists an image into the logo cache from either an inline
``data:image/...;base64,`` URL or a regular HTTP(S) URL. Failures are not
errors for the caller: ``download`` returns ``None`` and logs why.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import re
from pathlib import Path
from urllib.parse import urljoin, urlparse

import aiohttp

from stockfeed.logos.cache import LogoCache, normalize_symbol
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_DOWNLOAD_TIMEOUT_TOTAL: float = 30.0
_DOWNLOAD_TIMEOUT_CONNECT: float = 10.0
_MAX_REDIRECTS: int = 5
_CHUNK_SIZE: int = 64 * 1024
_DEFAULT_EXTENSION = ".png"
_REDIRECT_STATUSES = (301, 302)

_DATA_URL_RE = re.compile(r"^data:image/([\w.+-]+);base64,(.+)$", re.DOTALL)

# Checked in order; "jpeg" must win over "png" in e.g. "image/jpeg"
_CONTENT_TYPE_EXTENSIONS: list[tuple[str, str]] = [
    ("jpeg", ".jpg"),
    ("jpg", ".jpg"),
    ("png", ".png"),
    ("svg", ".svg"),
    ("gif", ".gif"),
    ("webp", ".webp"),
]

_DATA_URL_EXTENSIONS: dict[str, str] = {
    "jpeg": ".jpg",
    "jpg": ".jpg",
    "png": ".png",
    "svg+xml": ".svg",
    "gif": ".gif",
    "webp": ".webp",
}

_URL_SUFFIX_EXTENSIONS: dict[str, str] = {
    ".jpg": ".jpg",
    ".jpeg": ".jpg",
    ".png": ".png",
    ".svg": ".svg",
    ".gif": ".gif",
    ".webp": ".webp",
}


def extension_from_content_type(content_type: str | None) -> str | None:
    if not content_type:
        return None
    lowered = content_type.lower()
    for needle, ext in _CONTENT_TYPE_EXTENSIONS:
        if needle in lowered:
            return ext
    return None


def extension_from_url(url: str) -> str | None:
    path = urlparse(url).path.lower()
    for suffix, ext in _URL_SUFFIX_EXTENSIONS.items():
        if path.endswith(suffix):
            return ext
    return None


class LogoDownloader:
    """Downloads logo images into a ``LogoCache`` directory."""

    def __init__(
        self,
        cache: LogoCache,
        session: aiohttp.ClientSession | None = None,
        max_redirects: int = _MAX_REDIRECTS,
    ) -> None:
        self.cache = cache
        self.max_redirects = max_redirects
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(
                total=_DOWNLOAD_TIMEOUT_TOTAL,
                connect=_DOWNLOAD_TIMEOUT_CONNECT,
            )
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={
                    "User-Agent": (
                        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
                        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
                    )
                },
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def download(self, image_url: str, symbol: str) -> str | None:
        """Save the image at ``image_url`` as the logo of ``symbol``.

        Returns:
            The logo reference (``<url_prefix>/<SYMBOL><ext>``) or ``None``.
        """
        ticker = normalize_symbol(symbol)
        if not image_url or not ticker:
            return None

        self.cache.ensure_directory()

        if image_url.startswith("data:image/"):
            return await self._save_data_url(image_url, ticker)

        try:
            return await self._download_http(image_url, ticker)
        except Exception as exc:
            logger.error("Failed to download logo for %s from %s: %s", ticker, image_url, exc)
            return None

    async def _save_data_url(self, data_url: str, ticker: str) -> str | None:
        match = _DATA_URL_RE.match(data_url)
        if not match:
            logger.error("Invalid data URL format for %s", ticker)
            return None

        image_type, payload = match.group(1).lower(), match.group(2)
        extension = _DATA_URL_EXTENSIONS.get(image_type, _DEFAULT_EXTENSION)
        try:
            content = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            logger.error("Could not decode data URL image for %s: %s", ticker, exc)
            return None

        path = self.cache.path_for(ticker, extension)
        try:
            await asyncio.to_thread(path.write_bytes, content)
        except OSError as exc:
            logger.error("Error saving data URL image for %s: %s", ticker, exc)
            _unlink_quietly(path)
            return None

        logger.info("Saved data URL image: %s", path.name)
        return self.cache.reference_for(path.name)

    async def _download_http(self, image_url: str, ticker: str) -> str | None:
        session = await self._get_session()
        url = image_url

        for _ in range(self.max_redirects + 1):
            async with session.get(url, allow_redirects=False) as resp:
                if resp.status in _REDIRECT_STATUSES:
                    location = resp.headers.get("Location")
                    if not location:
                        logger.error("Redirect without Location for %s: %s", ticker, url)
                        return None
                    url = urljoin(url, location)
                    continue

                if resp.status != 200:
                    logger.error(
                        "Failed to download image for %s: status=%d", ticker, resp.status
                    )
                    return None

                extension = (
                    extension_from_content_type(resp.headers.get("Content-Type"))
                    or extension_from_url(url)
                    or _DEFAULT_EXTENSION
                )
                path = self.cache.path_for(ticker, extension)
                await self._stream_to_file(resp, path)
                return self.cache.reference_for(path.name)

        logger.error("Too many redirects downloading logo for %s: %s", ticker, image_url)
        return None

    @staticmethod
    async def _stream_to_file(resp: aiohttp.ClientResponse, path: Path) -> None:
        """Write the response body to ``path``; a partial file is removed on error.

        File operations run in a worker thread so a slow disk does not stall
        the event loop.
        """
        try:
            fh = await asyncio.to_thread(path.open, "wb")
            try:
                async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                    await asyncio.to_thread(fh.write, chunk)
            finally:
                await asyncio.to_thread(fh.close)
        except BaseException:
            _unlink_quietly(path)
            raise


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial file %s: %s", path, exc)
