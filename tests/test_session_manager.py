"""BrowserSessionManager lifecycle tests (no real browser)."""
import asyncio

import pytest

from stockfeed.browser.session_manager import BrowserSessionManager, SessionState
from stockfeed.core.exceptions import SessionClosedError
from tests.fakes import FakeLauncher, FakePage


def _manager(launcher: FakeLauncher) -> BrowserSessionManager:
    return BrowserSessionManager(viewport_width=1920, viewport_height=1080, launcher=launcher)


async def test_concurrent_get_session_launches_once():
    launcher = FakeLauncher(delay=0.01)
    manager = _manager(launcher)

    browsers = await asyncio.gather(*(manager.get_session() for _ in range(5)))

    assert launcher.launches == 1
    assert all(b is browsers[0] for b in browsers)
    assert manager.state == SessionState.READY
    assert manager.is_ready()


async def test_disconnected_browser_is_relaunched():
    launcher = FakeLauncher()
    manager = _manager(launcher)

    first = await manager.get_session()
    first.connected = False
    assert not manager.is_ready()

    second = await manager.get_session()
    assert second is not first
    assert launcher.launches == 2


async def test_launch_failure_reaches_every_waiter_and_allows_retry():
    launcher = FakeLauncher(fail_with=RuntimeError("chromium missing"), delay=0.01)
    manager = _manager(launcher)

    results = await asyncio.gather(
        *(manager.get_session() for _ in range(3)), return_exceptions=True
    )
    assert launcher.launches == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert manager.state == SessionState.UNINITIALIZED

    launcher.fail_with = None
    assert await manager.get_session() is launcher.browsers[0]
    assert launcher.launches == 2


async def test_create_page_applies_viewport():
    launcher = FakeLauncher()
    manager = _manager(launcher)

    page = await manager.create_page()

    browser = launcher.browsers[0]
    assert browser.pages == [page]
    assert browser.viewports == [{"width": 1920, "height": 1080}]


async def test_release_page_tolerates_closed_and_failing_pages():
    manager = _manager(FakeLauncher())

    page = FakePage()
    await manager.release_page(page)
    await manager.release_page(page)
    assert page.close_calls == 1

    class ExplodingPage(FakePage):
        async def close(self):
            raise RuntimeError("target closed")

    await manager.release_page(ExplodingPage())
    await manager.release_page(None)


async def test_shutdown_is_idempotent_and_blocks_new_sessions():
    launcher = FakeLauncher()
    manager = _manager(launcher)
    browser = await manager.get_session()

    await manager.shutdown()
    await manager.shutdown()

    assert browser.closed
    assert manager.state == SessionState.CLOSED
    with pytest.raises(SessionClosedError):
        await manager.get_session()


async def test_shutdown_before_any_launch():
    launcher = FakeLauncher()
    manager = _manager(launcher)
    await manager.shutdown()
    assert launcher.launches == 0
    assert manager.state == SessionState.CLOSED


async def test_shutdown_during_launch_closes_new_browser():
    launcher = FakeLauncher(delay=0.05)
    manager = _manager(launcher)

    pending = asyncio.create_task(manager.get_session())
    await asyncio.sleep(0.01)
    await manager.shutdown()

    with pytest.raises(SessionClosedError):
        await pending
    assert launcher.browsers[0].closed
