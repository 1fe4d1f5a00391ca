"""
News relevance classifier.

Finnhub's company-news endpoint returns a fair amount of general market
coverage alongside stock-specific articles. An article is kept for a stock
when its headline or summary mentions either

  - the ticker, as a whole word (case-insensitive), or
  - any significant word of the company description, as a whole word. A
    significant word is a token longer than two characters that is neither
    a corporate suffix (INC, CORP, ...) nor a common English word (THE, AND,
    ...).

One-letter tickers are only matched as a cashtag (``$A``) or in quote
form (``(A)``, ``(NYSE: A)``): as a plain word they collide with ordinary
English ("A great day for markets").
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

# Words dropped from the description before token matching
CORPORATE_SUFFIX_WORDS: frozenset[str] = frozenset(
    {"INC", "CORP", "CORPORATION", "LTD", "LIMITED", "LLC", "CO", "COMPANY"}
)

# Filler words that would match almost any headline
COMMON_WORDS: frozenset[str] = frozenset(
    {"THE", "AND", "FOR", "WITH", "FROM", "NEW"}
)
_IGNORED_WORDS = CORPORATE_SUFFIX_WORDS | COMMON_WORDS

# Trailing suffixes stripped by clean_company_name (dots optional)
_DISPLAY_SUFFIXES = (
    "INC", "LLC", "CORP", "CORPORATION", "LTD", "LIMITED",
    "CO", "COMPANY", "LP", "LLP", "PC", "PLC",
)
_DISPLAY_SUFFIX_RE = re.compile(
    r"[\s,]+(?:"
    + "|".join(r"\.?".join(re.escape(ch) for ch in s) for s in _DISPLAY_SUFFIXES)
    + r")\.?\s*$",
    re.IGNORECASE,
)

_TOKEN_SPLIT_RE = re.compile(r"[^0-9A-Za-z]+")
_MIN_TOKEN_LENGTH = 3


@lru_cache(maxsize=4096)
def _word_pattern(word: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(word) + r"\b", re.IGNORECASE)


@lru_cache(maxsize=4096)
def _ticker_pattern(symbol: str) -> re.Pattern[str]:
    if len(symbol) == 1:
        escaped = re.escape(symbol)
        return re.compile(
            r"(?:\$" + escaped + r"\b|\((?:[A-Za-z]+:\s*)?" + escaped + r"\))",
            re.IGNORECASE,
        )
    return _word_pattern(symbol)


def significant_terms(description: str | None) -> list[str]:
    """Return the description tokens used for matching, upper-cased.

    >>> significant_terms("Apple Inc")
    ['APPLE']
    """
    if not description:
        return []
    terms: list[str] = []
    for token in _TOKEN_SPLIT_RE.split(description.upper()):
        if len(token) < _MIN_TOKEN_LENGTH or token in _IGNORED_WORDS:
            continue
        if token not in terms:
            terms.append(token)
    return terms


def mentions_ticker(text: str, symbol: str) -> bool:
    symbol = (symbol or "").strip()
    if not text or not symbol:
        return False
    return _ticker_pattern(symbol.upper()).search(text) is not None


def mentions_company(text: str, description: str | None) -> bool:
    if not text:
        return False
    return any(
        _word_pattern(term).search(text) is not None
        for term in significant_terms(description)
    )


def is_relevant_article(article: dict[str, Any], stock: Any) -> bool:
    """Decide whether a Finnhub news item concerns ``stock``.

    Args:
        article: Raw Finnhub item; ``headline`` and ``summary`` are read.
        stock: Anything with ``symbol`` and ``description`` attributes
            (normally a ``Stock`` row).
    """
    headline = article.get("headline") or ""
    summary = article.get("summary") or ""
    symbol = getattr(stock, "symbol", "") or ""
    description = getattr(stock, "description", None)

    for text in (headline, summary):
        if mentions_ticker(text, symbol) or mentions_company(text, description):
            return True
    return False


def clean_company_name(name: str | None) -> str:
    """Strip a trailing corporate suffix for display ("Apple Inc." -> "Apple").

    Returns the input unchanged when stripping would leave nothing.
    """
    if not name:
        return name or ""
    cleaned = _DISPLAY_SUFFIX_RE.sub("", name).strip().rstrip(",").strip()
    return cleaned or name
