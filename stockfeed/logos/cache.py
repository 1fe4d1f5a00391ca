"""
Local logo cache.

Logos live in one directory as ``<SYMBOL>.<ext>``. A file for a symbol is
authoritative: its presence means the symbol is never scraped again.
"""

from __future__ import annotations

from pathlib import Path

LOGO_EXTENSIONS: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".svg", ".gif", ".webp")


def normalize_symbol(symbol: str | None) -> str:
    """Canonical symbol form: trimmed, upper case."""
    return (symbol or "").strip().upper()


class LogoCache:
    """Filesystem cache of stock logos.

    Attributes:
        directory: Directory holding the logo files.
        url_prefix: Public path the static file server exposes the directory
            under; logo references are ``<url_prefix>/<filename>``.
    """

    def __init__(self, directory: Path | str, url_prefix: str = "/assets/stockLogos") -> None:
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")

    def lookup(self, symbol: str) -> str | None:
        """Return the logo reference for ``symbol`` if a cached file exists."""
        normalized = normalize_symbol(symbol)
        if not normalized or not self.directory.is_dir():
            return None
        for ext in LOGO_EXTENSIONS:
            if (self.directory / f"{normalized}{ext}").is_file():
                return self.reference_for(f"{normalized}{ext}")
        return None

    def path_for(self, symbol: str, extension: str) -> Path:
        return self.directory / f"{normalize_symbol(symbol)}{extension}"

    def reference_for(self, filename: str) -> str:
        return f"{self.url_prefix}/{filename}"

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
