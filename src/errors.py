"""Error kinds raised by the resolution pipeline and its collaborators."""
from __future__ import annotations

from typing import Any, Optional


class PackageMetadataError(Exception):
    """Base class for every failure surfaced to callers."""


class MalformedLocator(PackageMetadataError):
    """A normalized repository locator could not be parsed as a URI."""

    def __init__(self, locator: str, detail: str = ""):
        self.locator = locator
        message = f"Malformed repository locator: {locator!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MissingRequiredField(PackageMetadataError):
    """A required descriptor field was absent after exhausting its fallbacks."""

    def __init__(self, field: str, document: Any = None, detail: str = ""):
        self.field = field
        self.document = document
        message = f"Missing required field '{field}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class UpstreamUnavailable(PackageMetadataError):
    """A registry, archive endpoint or platform service did not answer with success.

    ``status`` is 0 when the request never produced a response.
    """

    def __init__(self, url: str, status: int, body: str = ""):
        self.url = url
        self.status = status
        self.body = body
        super().__init__(body or f"HTTP {status} from {url}")

    @property
    def not_found(self) -> bool:
        return self.status == 404


class VersionNotResolvable(PackageMetadataError):
    """No version could be determined for a reference."""

    def __init__(self, reference: str, detail: str = "Could not determine the version to get"):
        self.reference = reference
        self.detail = detail
        super().__init__(f"{detail} ({reference})")


class ArchiveRetrievalFailure(PackageMetadataError):
    """Archive download or decompression failed."""

    def __init__(self, reference: str, version: Optional[str], detail: str):
        self.reference = reference
        self.version = version
        self.detail = detail
        super().__init__(f"Could not retrieve archive for {reference}@{version}: {detail}")


class LicenseDetectionError(PackageMetadataError):
    """License lookup or classification failed."""

    def __init__(self, detail: str, status: int = 0):
        self.detail = detail
        self.status = status
        super().__init__(detail)
