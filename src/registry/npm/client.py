"""NPM registry source: versions, version descriptors and tarballs."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from constants import Constants
from errors import UpstreamUnavailable, VersionNotResolvable
from common.archive_stream import ArchiveStream
from common.http_client import HttpClient, HttpResponse
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from versioning.ordering import sort_versions

from ..models import Deployable, RawDescriptor, SourceType

logger = logging.getLogger(__name__)

NPM_DEPLOYABLE = Deployable(
    name="NPM",
    group_id=Constants.NPM_GROUP_ID,
    excludes=Constants.ARCHIVE_EXCLUDES,
    metadata_file=Constants.METADATA_FILE,
    contents_in_subdir=True,
)


def is_scoped(name: str) -> bool:
    """True for ``@scope/name`` package names."""
    return "/" in name and name.startswith("@")


def registry_metadata_url(base_url: str, name: str, version: Optional[str] = None) -> str:
    """Build the packument or version document URL.

    ``/`` is always encoded. ``@`` is only encoded when a version segment is
    present; the registry rejects the encoded form on the bare packument URL.
    """
    encoded = name.replace("/", "%2F")
    if version is None:
        return f"{base_url}/{encoded}"
    return f"{base_url}/{encoded.replace('@', '%40')}/{version}"


def registry_tgz_url(base_url: str, name: str, version: str) -> str:
    """Build the tarball URL, e.g. ``{base}/@scope/pkg/-/pkg-1.0.0.tgz``."""
    if is_scoped(name):
        scope, _, package = name.partition("/")
        return f"{base_url}/{scope}/{package}/-/{package}-{version}.tgz"
    return f"{base_url}/{name}/-/{name}-{version}.tgz"


class NpmRegistryClient:
    """Package source backed by the npm registry HTTP API."""

    source_type = SourceType.REGISTRY
    deployable = NPM_DEPLOYABLE

    def __init__(self, http: HttpClient, base_url: Optional[str] = None):
        self.http = http
        self.base_url = (base_url or Constants.REGISTRY_URL_NPM).rstrip("/")

    async def _get_document(self, url: str) -> Any:
        """GET a JSON document, raising UpstreamUnavailable with the body on failure."""
        with Timer() as timer:
            res: HttpResponse = await self.http.get(url, context="npm")

        if not res.ok:
            logger.warning(
                "HTTP non-2xx",
                extra=extra_context(
                    event="http_response",
                    outcome="non_2xx",
                    status_code=res.status,
                    duration_ms=timer.duration_ms(),
                    target=safe_url(url),
                    package_manager="npm",
                ),
            )
            raise UpstreamUnavailable(url, res.status, res.text)

        try:
            return res.json()
        except json.JSONDecodeError as exc:
            raise UpstreamUnavailable(url, res.status, f"Could not parse: {res.text}") from exc

    async def versions(self, name: str) -> List[str]:
        """All published versions, newest first."""
        packument = await self._get_document(registry_metadata_url(self.base_url, name))
        versions = packument.get("versions") if isinstance(packument, dict) else None
        if not isinstance(versions, dict):
            raise UpstreamUnavailable(
                registry_metadata_url(self.base_url, name), 200, f"Could not parse: {packument!r}"
            )
        return sort_versions(versions.keys())

    async def descriptor(self, name: str, version: Optional[str] = None) -> RawDescriptor:
        """Fetch the version document for ``name`` at ``version`` (latest when None).

        Unscoped names use the registry's ``latest`` dist-tag endpoint. Scoped
        packages have no per-version documents, so their full packument
        is fetched and the version is picked out of it.
        """
        if not is_scoped(name):
            url = registry_metadata_url(self.base_url, name, version or "latest")
            return RawDescriptor(await self._get_document(url))

        packument = await self._get_document(registry_metadata_url(self.base_url, name))
        if not isinstance(packument, dict):
            raise VersionNotResolvable(name, f"Could not parse: {packument!r}")
        dist_tags = packument.get("dist-tags")
        latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
        version_or_latest = version or latest
        if not isinstance(version_or_latest, str) or not version_or_latest:
            raise VersionNotResolvable(name)
        versions = packument.get("versions")
        document = versions.get(version_or_latest) if isinstance(versions, dict) else None
        if document is None:
            raise VersionNotResolvable(name, f"Could not parse: {json.dumps(packument)[:2000]}")

        if is_debug_enabled(logger):
            logger.debug(
                "Scoped version selected",
                extra=extra_context(
                    event="decision", component="npm", action="descriptor",
                    outcome="requested" if version else "latest",
                    target=f"{name}@{version_or_latest}", package_manager="npm",
                ),
            )
        return RawDescriptor(document)

    async def archive(self, name: str, version: str) -> ArchiveStream:
        """Open the registry tarball as a decompressed stream."""
        url = registry_tgz_url(self.base_url, name, version)
        response = await self.http.open_stream(url, context="npm")
        return ArchiveStream.from_response(response, reference=name, version=version)
