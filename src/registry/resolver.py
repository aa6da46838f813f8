"""Metadata resolution pipeline.

Routes a package reference to the registry or git source, reads its
descriptor into PackageMetadata, then replaces the homepage, source and
issues URLs with the ones GitHub reports today when the source is hosted
there. Every call is independent; nothing is cached between calls.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

from errors import UpstreamUnavailable
from common.archive_stream import ArchiveStream
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled, Timer
from repository.git import GitClient, GitCommandClient
from repository.github import GitHubClient
from repository.providers import ProviderType, provider_for_uri

from .git_source import GitPackageSource
from .models import PackageMetadata, SourceType
from .npm.client import NpmRegistryClient
from .npm.discovery import read_descriptor
from .router import SourceRouter

logger = logging.getLogger(__name__)


class UrlService(Protocol):
    """Hosting-platform lookup of current (homepage, source URI, issues URL)."""

    async def current_urls(self, repository_uri: str) -> Tuple[str, str, str]: ...


class PackageResolver:
    """Resolve versions, metadata and archives for npm names and git locators."""

    def __init__(self, router: SourceRouter, github: UrlService):
        self.router = router
        self.github = github

    @classmethod
    def create(cls, http: HttpClient, git: Optional[GitClient] = None,
               registry_url: Optional[str] = None) -> "PackageResolver":
        """Wire the default collaborators around a shared HTTP client."""
        git = git or GitCommandClient()
        router = SourceRouter(
            git=git,
            registry=NpmRegistryClient(http, registry_url),
            git_source=GitPackageSource(git),
        )
        return cls(router, GitHubClient(http))

    async def versions(self, reference: str) -> List[str]:
        """Available versions, newest first."""
        return await self.router.route(reference).versions(reference)

    async def versions_on_branch(self, git_repo: str, branch: str) -> List[str]:
        """Versions reachable on ``branch`` of a git repository."""
        return await self.router.git_source.versions_on_branch(git_repo, branch)

    async def info(
        self,
        reference: str,
        version: Optional[str] = None,
        source_uri: Optional[str] = None,
    ) -> PackageMetadata:
        """Resolve the canonical metadata of ``reference``.

        Args:
            reference: npm package name (optionally scoped) or git locator
            version: Version to resolve; newest (git) or ``latest`` (registry) when None
            source_uri: Caller override for the source repository URI

        Raises:
            VersionNotResolvable, MissingRequiredField, MalformedLocator, UpstreamUnavailable
        """
        source = self.router.route(reference)
        with Timer() as t:
            raw = await source.descriptor(reference, version)
            metadata = read_descriptor(raw.document, source_uri, raw.fork_source_uri)
            metadata = await self._reconcile_urls(metadata, source_uri)

        logger.info(
            "Package metadata resolved",
            extra=extra_context(
                event="complete", component="resolver", action="info",
                outcome="success", target=f"{metadata.name}@{metadata.version}",
                source=source.source_type.value, duration_ms=t.duration_ms(),
            ),
        )
        return metadata

    async def _reconcile_urls(self, metadata: PackageMetadata, source_uri: Optional[str]) -> PackageMetadata:
        if provider_for_uri(metadata.source_connection_uri) is not ProviderType.GITHUB:
            return metadata
        try:
            homepage, connection_uri, issues_url = await self.github.current_urls(metadata.source_connection_uri)
        except UpstreamUnavailable as exc:
            if exc.not_found and source_uri is not None:
                logger.warning(
                    "Repository not found on GitHub; keeping source override",
                    extra=extra_context(
                        event="decision", component="resolver", action="reconcile_urls",
                        outcome="not_found_override", target=metadata.source_connection_uri,
                    ),
                )
                return metadata.with_urls(None, metadata.source_connection_uri, None)
            raise

        if is_debug_enabled(logger):
            logger.debug(
                "GitHub URLs applied",
                extra=extra_context(
                    event="decision", component="resolver", action="reconcile_urls",
                    outcome="replaced", target=connection_uri,
                ),
            )
        return metadata.with_urls(homepage, connection_uri, issues_url)

    async def archive(self, reference: str, version: str) -> ArchiveStream:
        """Decompressed tar stream of ``reference`` at ``version``.

        Close the returned stream (``async with``) to release the connection.
        """
        source = self.router.route(reference)
        if is_debug_enabled(logger):
            logger.debug(
                "Opening archive",
                extra=extra_context(
                    event="function_entry", component="resolver", action="archive",
                    target=f"{reference}@{version}", source=source.source_type.value,
                ),
            )
        return await source.archive(reference, version)

    def source_type(self, reference: str) -> SourceType:
        return self.router.source_type(reference)
