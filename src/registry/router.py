"""Source routing: every operation on a reference goes through one source."""
from __future__ import annotations

from typing import List, Optional, Protocol

from common.archive_stream import ArchiveStream
from repository.git import GitClient

from .git_source import GitPackageSource
from .models import RawDescriptor, SourceType


class PackageSource(Protocol):
    """Capabilities every package source provides."""

    source_type: SourceType

    async def versions(self, reference: str) -> List[str]: ...

    async def descriptor(self, reference: str, version: Optional[str] = None) -> RawDescriptor: ...

    async def archive(self, reference: str, version: str) -> ArchiveStream: ...


class SourceRouter:
    """Pick the git source for git locators and the registry source otherwise."""

    def __init__(self, git: GitClient, registry: PackageSource, git_source: GitPackageSource):
        self.git = git
        self.registry = registry
        self.git_source = git_source

    def is_git(self, reference: str) -> bool:
        return self.git.is_git(reference)

    def source_type(self, reference: str) -> SourceType:
        return SourceType.GIT if self.is_git(reference) else SourceType.REGISTRY

    def route(self, reference: str) -> PackageSource:
        return self.git_source if self.is_git(reference) else self.registry
