"""
Stock logo acquisition: local cache, browser-based image search and download.
"""

from stockfeed.logos.acquirer import Acquisition, AcquisitionState, LogoAcquirer
from stockfeed.logos.cache import LOGO_EXTENSIONS, LogoCache, normalize_symbol
from stockfeed.logos.downloader import LogoDownloader
from stockfeed.logos.scraper import LogoScraper

__all__ = [
    "Acquisition",
    "AcquisitionState",
    "LOGO_EXTENSIONS",
    "LogoAcquirer",
    "LogoCache",
    "LogoDownloader",
    "LogoScraper",
    "normalize_symbol",
]
