"""
Logo scraper.

Runs an image search for ``"<SYMBOL> stock logo"`` in a page from the shared
browser, picks the first sufficiently large result image outside the
suggestion-chip strip, and hands its source to the downloader.

The search page contract is structural only: image elements larger than the
size threshold, inside result-grid containers, outside chip containers.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any
from urllib.parse import quote_plus

from stockfeed.browser.session_manager import BrowserSessionManager
from stockfeed.logos.cache import normalize_symbol
from stockfeed.logos.downloader import LogoDownloader
from stockfeed.utils.logger import get_logger

logger = get_logger(__name__)

_SEARCH_URL = "https://www.google.com/search?q={query}&tbs=isz:i&udm=2"
_SEARCH_ORIGIN = "https://www.google.com"
_PARENT_SRC_RE = re.compile(r'src="([^"]+)"')

# Receives the minimum size in px; returns {"found": bool, "src", "dataSrc", "parentHtml"}
_FIND_IMAGE_JS = """
(minSize) => {
  const isLargeEnough = (img) =>
    img.naturalWidth > minSize || img.width > minSize || img.height > minSize;

  const describe = (img, parent) => ({
    found: true,
    src: img.getAttribute('src'),
    dataSrc: img.getAttribute('data-src'),
    parentHtml: parent ? parent.outerHTML.substring(0, 500) : null,
  });

  const gridImages = document.querySelectorAll(
    'div[data-ri] img, div.rg_l img, div[jsname="sHclz"] img'
  );
  for (const img of gridImages) {
    const parent = img.closest('div[data-ri]') || img.closest('div.rg_l');
    if (!parent) continue;

    const hveid = img.closest('div[data-hveid]');
    const controller = img.closest('div[jscontroller]');
    const inChip =
      (hveid !== null && hveid.querySelector('div[role="button"]') !== null) ||
      (controller !== null &&
        (controller.getAttribute('jscontroller') || '').includes('chip'));
    if (inChip) continue;

    if (isLargeEnough(img)) return describe(img, parent);
  }

  const candidates = [];
  for (const img of document.querySelectorAll('img[data-src], img[src]')) {
    if (!isLargeEnough(img)) continue;
    const area = img.naturalWidth * img.naturalHeight || img.width * img.height;
    candidates.push({ img, area });
  }
  if (candidates.length > 0) {
    candidates.sort((a, b) => b.area - a.area);
    const best = candidates[0].img;
    return describe(best, best.parentElement);
  }

  return { found: false };
}
"""


def build_search_url(symbol: str) -> str:
    return _SEARCH_URL.format(query=quote_plus(f"{symbol} stock logo"))


def resolve_image_source(info: dict[str, Any] | None) -> str | None:
    """Pick the image source from the extraction result.

    Prefers ``src``, then the lazy-load ``data-src``. When neither is usable
    (missing, or only an inline placeholder), the first ``src="..."`` in the
    containing markup is used instead.
    """
    if not info or not info.get("found"):
        return None

    source = info.get("src") or info.get("dataSrc")
    if not source or source.startswith("data:"):
        match = _PARENT_SRC_RE.search(info.get("parentHtml") or "")
        if match:
            source = match.group(1)
    return source or None


def normalize_image_url(source: str) -> str:
    """Make protocol-relative and root-relative sources absolute."""
    if source.startswith("data:") or source.startswith("http"):
        return source
    if source.startswith("//"):
        return f"https:{source}"
    if source.startswith("/"):
        return f"{_SEARCH_ORIGIN}{source}"
    return source


class LogoScraper:
    """Finds and downloads a logo through the shared browser session."""

    def __init__(
        self,
        session_manager: BrowserSessionManager,
        downloader: LogoDownloader,
        navigation_timeout: float = 30.0,
        settle_seconds: float = 2.0,
        min_image_px: int = 80,
    ) -> None:
        self.session_manager = session_manager
        self.downloader = downloader
        self.navigation_timeout = navigation_timeout
        self.settle_seconds = settle_seconds
        self.min_image_px = min_image_px

    async def scrape(self, symbol: str) -> str | None:
        """Search for, extract and download the logo of ``symbol``.

        The page is released on every path. Any failure yields ``None``.
        """
        ticker = normalize_symbol(symbol)
        if not ticker:
            return None

        page = None
        try:
            page = await self.session_manager.create_page()
            logger.info("Scraping logo for stock: %s", ticker)

            await page.goto(
                build_search_url(ticker),
                wait_until="networkidle",
                timeout=self.navigation_timeout * 1000,
            )
            # Result thumbnails keep loading after network idle
            await asyncio.sleep(self.settle_seconds)

            info = await page.evaluate(_FIND_IMAGE_JS, self.min_image_px)
            source = resolve_image_source(info)
            if not source:
                logger.warning("No image found for %s", ticker)
                return None

            saved = await self.downloader.download(normalize_image_url(source), ticker)
            if saved:
                logger.info("Logo saved successfully: %s", saved)
            return saved
        except Exception as exc:
            logger.error("Error scraping logo for %s: %s", ticker, exc)
            return None
        finally:
            await self.session_manager.release_page(page)
