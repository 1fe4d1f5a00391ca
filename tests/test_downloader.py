"""LogoDownloader tests against a local aiohttp test server."""
import asyncio
import base64

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from stockfeed.logos.cache import LogoCache
from stockfeed.logos.downloader import (
    LogoDownloader,
    extension_from_content_type,
    extension_from_url,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _app() -> web.Application:
    async def jpeg(request):
        return web.Response(body=b"jpeg-bytes", content_type="image/jpeg")

    async def untyped_svg(request):
        return web.Response(body=b"<svg/>", content_type="application/octet-stream")

    async def untyped(request):
        return web.Response(body=PNG_BYTES, content_type="application/octet-stream")

    async def hop(request):
        n = int(request.match_info["n"])
        if n == 0:
            raise web.HTTPFound("/jpeg")
        raise web.HTTPMovedPermanently(f"/hop/{n - 1}")

    async def missing(request):
        return web.Response(status=404)

    async def truncated(request):
        resp = web.StreamResponse(headers={"Content-Type": "image/png"})
        resp.content_length = 10_000
        await resp.prepare(request)
        await resp.write(b"partial")
        # Drop the connection before the announced length is sent
        request.transport.close()
        return resp

    app = web.Application()
    app.router.add_get("/jpeg", jpeg)
    app.router.add_get("/files/logo.svg", untyped_svg)
    app.router.add_get("/files/blob", untyped)
    app.router.add_get("/hop/{n}", hop)
    app.router.add_get("/missing", missing)
    app.router.add_get("/truncated.png", truncated)
    return app


@pytest.fixture
async def server():
    server = TestServer(_app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
async def downloader(tmp_path):
    cache = LogoCache(tmp_path / "logos", "/assets/stockLogos")
    async with aiohttp.ClientSession() as session:
        yield LogoDownloader(cache, session=session)


def test_extension_helpers():
    assert extension_from_content_type("image/jpeg; charset=binary") == ".jpg"
    assert extension_from_content_type("image/svg+xml") == ".svg"
    assert extension_from_content_type("text/html") is None
    assert extension_from_url("https://x/a/logo.WEBP?size=2") == ".webp"
    assert extension_from_url("https://x/a/logo") is None


async def test_content_type_decides_extension(server, downloader):
    ref = await downloader.download(str(server.make_url("/jpeg")), "aapl")
    assert ref == "/assets/stockLogos/AAPL.jpg"
    assert (downloader.cache.directory / "AAPL.jpg").read_bytes() == b"jpeg-bytes"


async def test_url_suffix_then_png_fallback(server, downloader):
    assert await downloader.download(str(server.make_url("/files/logo.svg")), "MSFT") == "/assets/stockLogos/MSFT.svg"
    assert await downloader.download(str(server.make_url("/files/blob")), "IBM") == "/assets/stockLogos/IBM.png"


async def test_body_written_off_the_event_loop(server, downloader, monkeypatch):
    threaded = []
    to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args):
        threaded.append(getattr(func, "__name__", repr(func)))
        return await to_thread(func, *args)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    ref = await downloader.download(str(server.make_url("/jpeg")), "AAPL")

    assert ref == "/assets/stockLogos/AAPL.jpg"
    assert threaded[0] == "open"
    assert "write" in threaded
    assert threaded[-1] == "close"


async def test_follows_redirect_chain(server, downloader):
    ref = await downloader.download(str(server.make_url("/hop/4")), "NVDA")
    assert ref == "/assets/stockLogos/NVDA.jpg"


async def test_gives_up_after_five_redirects(server, downloader):
    assert await downloader.download(str(server.make_url("/hop/5")), "NVDA") is None


async def test_non_200_returns_none(server, downloader):
    assert await downloader.download(str(server.make_url("/missing")), "AAPL") is None
    assert list(downloader.cache.directory.iterdir()) == []


async def test_partial_file_removed_on_failure(server, downloader):
    assert await downloader.download(str(server.make_url("/truncated.png")), "TSLA") is None
    assert not (downloader.cache.directory / "TSLA.png").exists()


async def test_data_url_is_decoded(downloader):
    data_url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    assert await downloader.download(data_url, "amzn") == "/assets/stockLogos/AMZN.png"
    assert (downloader.cache.directory / "AMZN.png").read_bytes() == PNG_BYTES


async def test_unknown_data_url_type_saved_as_png(downloader):
    data_url = "data:image/x-icon;base64," + base64.b64encode(b"ico").decode()
    assert await downloader.download(data_url, "META") == "/assets/stockLogos/META.png"


async def test_malformed_data_url(downloader):
    assert await downloader.download("data:image/png,notbase64", "META") is None


async def test_unreachable_host_returns_none(downloader):
    assert await downloader.download("http://127.0.0.1:9/logo.png", "AAPL") is None
