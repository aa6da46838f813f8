"""Shared test helpers: a fake HTTP service and fake collaborators."""

import gzip
import io
import json
import tarfile
from contextlib import asynccontextmanager

from aiohttp import web
from aiohttp.test_utils import TestServer

from common.archive_stream import ArchiveStream


class FakeService:
    """Serves canned responses keyed by (method, raw path) and records requests."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    async def handle(self, request):
        body = await request.text()
        self.requests.append((request.method, request.raw_path, body))
        entry = self.routes.get((request.method, request.raw_path))
        if entry is None:
            entry = self.routes.get(request.raw_path)
        if entry is None:
            return web.Response(status=404, text=f"Not found: {request.raw_path}")
        status, payload = entry
        if isinstance(payload, (dict, list)):
            return web.json_response(payload, status=status)
        if isinstance(payload, bytes):
            return web.Response(status=status, body=payload, content_type="application/octet-stream")
        return web.Response(status=status, text=payload)

    @property
    def paths(self):
        return [path for _, path, _ in self.requests]


@asynccontextmanager
async def serve(routes):
    """Yield (base_url, service) for an aiohttp app serving ``routes``."""
    service = FakeService(routes)
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", service.handle)
    async with TestServer(app) as server:
        yield f"http://{server.host}:{server.port}", service


def make_tgz(files):
    """Build a gzip-compressed tarball from {path: text}."""
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w") as tar:
        for path, text in files.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return gzip.compress(raw.getvalue())


def tar_names(data):
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
        return sorted(tar.getnames())


async def _chunks(data, size=7):
    for i in range(0, len(data), size):
        yield data[i:i + size]


class FakeGit:
    """In-memory GitClient."""

    def __init__(self, versions=None, files=None, tgz=b""):
        self._versions = list(versions or [])
        self._files = files or {}
        self._tgz = tgz
        self.tar_calls = []
        self.released = False

    def is_git(self, locator):
        return "/" in locator and not locator.startswith("@")

    async def git_url(self, locator):
        return f"https://github.com/{locator.split('#')[0]}.git" if "://" not in locator else locator

    async def versions(self, locator):
        return list(self._versions)

    async def versions_on_branch(self, url, branch):
        return [v for v in self._versions if not v.endswith("-" + branch)]

    async def file(self, locator, version, path):
        return self._files[(version, path)]

    async def tar(self, locator, version, excludes):
        self.tar_calls.append((locator, version, frozenset(excludes)))

        def release():
            self.released = True
        return ArchiveStream(_chunks(self._tgz), release, reference=locator, version=version)


class FakeGitHub:
    """UrlService returning fixed URLs, or raising a given error."""

    def __init__(self, urls=None, error=None):
        self.urls = urls
        self.error = error
        self.calls = []

    async def current_urls(self, repository_uri):
        self.calls.append(repository_uri)
        if self.error is not None:
            raise self.error
        return self.urls


def packument(name, versions, latest=None, **extra):
    """Build a registry packument with one version document per version."""
    return {
        "name": name,
        "dist-tags": {"latest": latest} if latest else {},
        "versions": {
            v: dict({"name": name, "version": v}, **extra) for v in versions
        },
    }


def to_json(doc):
    return json.dumps(doc)
