"""Data models for resolved package metadata."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class SourceType(Enum):
    """Where a package reference is resolved from."""
    REGISTRY = "registry"
    GIT = "git"


@dataclass(frozen=True)
class PackageMetadata:
    """Canonical metadata for one version of a package."""
    name: str
    version: str
    homepage_url: Optional[str]
    source_connection_uri: str
    issues_url: Optional[str]
    licenses: Tuple[str, ...] = ()
    dependencies: Dict[str, str] = field(default_factory=dict)
    optional_dependencies: Dict[str, str] = field(default_factory=dict)

    def with_urls(self, homepage_url: Optional[str], source_connection_uri: str,
                  issues_url: Optional[str]) -> "PackageMetadata":
        """Copy with the three platform-provided URLs replaced."""
        return replace(
            self,
            homepage_url=homepage_url,
            source_connection_uri=source_connection_uri,
            issues_url=issues_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "homepage": self.homepage_url,
            "sourceConnectionUri": self.source_connection_uri,
            "issuesUrl": self.issues_url,
            "licenses": list(self.licenses),
            "dependencies": dict(self.dependencies),
            "optionalDependencies": dict(self.optional_dependencies),
        }


@dataclass(frozen=True)
class Deployable:
    """Static description of how a package source is packaged downstream."""
    name: str
    group_id: str
    excludes: FrozenSet[str]
    metadata_file: str
    contents_in_subdir: bool


@dataclass(frozen=True)
class RawDescriptor:
    """Untyped descriptor document plus the fork override for git-routed packages."""
    document: Any
    fork_source_uri: Optional[str] = None
