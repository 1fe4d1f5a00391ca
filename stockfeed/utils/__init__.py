"""Utility package."""
from stockfeed.utils.config import Settings, get_settings
from stockfeed.utils.logger import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
