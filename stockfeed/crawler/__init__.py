"""
Upstream market-data clients.
"""

from stockfeed.crawler.finnhub_client import FinnhubClient

__all__ = ["FinnhubClient"]
