"""Git package source: packages referenced by repository locator."""
from __future__ import annotations

import json
import logging
from typing import List, Optional

from constants import Constants
from errors import MissingRequiredField, VersionNotResolvable
from common.archive_stream import ArchiveStream
from common.logging_utils import extra_context, is_debug_enabled
from repository.git import GitClient

from .models import RawDescriptor, SourceType

logger = logging.getLogger(__name__)


class GitPackageSource:
    """Reads versions, descriptors and archives through a GitClient."""

    source_type = SourceType.GIT

    def __init__(self, git: GitClient, metadata_file: str = Constants.METADATA_FILE,
                 excludes=Constants.ARCHIVE_EXCLUDES):
        self.git = git
        self.metadata_file = metadata_file
        self.excludes = frozenset(excludes)

    async def versions(self, locator: str) -> List[str]:
        return await self.git.versions(locator)

    async def versions_on_branch(self, locator: str, branch: str) -> List[str]:
        url = await self.git.git_url(locator)
        return await self.git.versions_on_branch(url, branch)

    async def descriptor(self, locator: str, version: Optional[str] = None) -> RawDescriptor:
        """Read the descriptor file at ``version`` (newest tag when None).

        The repository URL of a git-hosted descriptor may point at the
        upstream of a fork, so the locator's own canonical URL is returned as
        the fork override.
        """
        if version is None:
            versions = await self.versions(locator)
            version = versions[0] if versions else None
        if version is None:
            raise VersionNotResolvable(locator)

        if is_debug_enabled(logger):
            logger.debug(
                "Reading git descriptor",
                extra=extra_context(
                    event="decision", component="git_source", action="descriptor",
                    target=f"{locator}@{version}",
                ),
            )
        contents = await self.git.file(locator, version, self.metadata_file)
        try:
            document = json.loads(contents)
        except json.JSONDecodeError as exc:
            raise MissingRequiredField(
                "name", contents, f"{self.metadata_file} at {version} is not valid JSON: {exc}"
            ) from exc
        fork_source_uri = await self.git.git_url(locator)
        return RawDescriptor(document, fork_source_uri)

    async def archive(self, locator: str, version: str) -> ArchiveStream:
        return await self.git.tar(locator, version, self.excludes)
