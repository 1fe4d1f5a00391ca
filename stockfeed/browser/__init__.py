"""Headless browser session management."""

from stockfeed.browser.session_manager import BrowserSessionManager, SessionState

__all__ = ["BrowserSessionManager", "SessionState"]
