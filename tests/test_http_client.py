"""Tests for the shared async HTTP client."""

import asyncio
import socket

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from common.archive_stream import ArchiveStream
from common.http_client import HttpClient
from errors import UpstreamUnavailable

from helpers import make_tgz, serve, tar_names

TGZ = make_tgz({"package/index.js": "module.exports = 1;"})


def _unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestRequest:
    """Buffered requests."""

    def test_get_returns_status_and_body(self):
        """Non-2xx replies are returned, not raised."""
        async def _go():
            async with serve({"/missing": (404, "nope")}) as (base_url, _):
                async with HttpClient() as http:
                    return await http.get(f"{base_url}/missing", context="test")

        response = asyncio.run(_go())
        assert response.status == 404
        assert not response.ok
        assert response.text == "nope"

    def test_encoded_path_sent_verbatim(self):
        """Percent-encoded separators reach the server untouched."""
        async def _go():
            async with serve({"/%40scope%2Fname/1.0.0": (200, {"ok": True})}) as (base_url, service):
                async with HttpClient() as http:
                    response = await http.get(f"{base_url}/%40scope%2Fname/1.0.0", context="test")
                return response, service

        response, service = asyncio.run(_go())
        assert response.json() == {"ok": True}
        assert service.paths == ["/%40scope%2Fname/1.0.0"]

    def test_connection_refused_is_status_zero(self):
        """A request that never gets a response is UpstreamUnavailable with status 0."""
        url = f"http://127.0.0.1:{_unused_port()}/lodash"

        async def _go():
            async with HttpClient(timeout=5) as http:
                await http.get(url, context="test")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            asyncio.run(_go())
        assert exc_info.value.status == 0
        assert not exc_info.value.not_found


async def _slow_tarball(request):
    response = web.StreamResponse(headers={"Content-Type": "application/octet-stream"})
    await response.prepare(request)
    step = len(TGZ) // 4 + 1
    for i in range(0, len(TGZ), step):
        await response.write(TGZ[i:i + step])
        await asyncio.sleep(0.4)
    await response.write_eof()
    return response


class TestOpenStream:
    """Streamed downloads."""

    def test_slow_body_outlasting_request_timeout(self):
        """A body that keeps arriving is read even when it takes longer than the timeout."""
        async def _go():
            app = web.Application()
            app.router.add_get("/pkg.tgz", _slow_tarball)
            async with TestServer(app) as server:
                async with HttpClient(timeout=1) as http:
                    response = await http.open_stream(f"http://{server.host}:{server.port}/pkg.tgz", context="test")
                    async with ArchiveStream.from_response(response, reference="pkg", version="1") as stream:
                        return await stream.read()

        assert tar_names(asyncio.run(_go())) == ["package/index.js"]

    def test_non_2xx_raises_with_body(self):
        """Error replies are read, released and raised with their body."""
        async def _go():
            async with serve({"/gone.tgz": (404, "not here")}) as (base_url, _):
                async with HttpClient() as http:
                    await http.open_stream(f"{base_url}/gone.tgz", context="test")

        with pytest.raises(UpstreamUnavailable) as exc_info:
            asyncio.run(_go())
        assert exc_info.value.not_found
        assert str(exc_info.value) == "not here"
