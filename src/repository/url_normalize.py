"""Repository URL normalization.

Turns the many ways a package descriptor can point at its source repository
(full URIs, ``gist:``/``bitbucket:``/``gitlab:`` shorthands, SCP-style
``host:path`` and bare ``owner/repo``) into one absolute URI string.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from errors import MalformedLocator

_SHORTHAND_PREFIXES = (
    ("gist:", "https://gist.github.com/"),
    ("bitbucket:", "https://bitbucket.org/"),
    ("gitlab:", "https://gitlab.com/"),
)


def normalize_locator(repository: str) -> str:
    """Return the canonical URI form of a repository locator.

    Total and pure: strings matching none of the known shapes come back unchanged.

    >>> normalize_locator("another/repo")
    'https://github.com/another/repo.git'
    >>> normalize_locator("host.xz:another/repo.git")
    'ssh://host.xz/another/repo.git'
    """
    if "://" in repository:
        # ssh://host.xz/another/repo.git, git://..., https://...
        return repository
    for prefix, base in _SHORTHAND_PREFIXES:
        if repository.startswith(prefix):
            return base + repository[len(prefix):] + ".git"
    if ":/" in repository:
        # host.xz:/another/repo.git or user@host.xz:/another/repo.git
        return "ssh://" + repository
    if ":" in repository:
        # host.xz:another/repo.git
        return "ssh://" + repository.replace(":", "/", 1)
    if "/" in repository:
        # another/repo
        return "https://github.com/" + repository + ".git"
    return repository


def repository_to_uri(locator: str) -> str:
    """Normalize a locator and check that the result parses as an absolute URI.

    Raises:
        MalformedLocator: If the normalized string is not an absolute URI.
    """
    normalized = normalize_locator(locator)
    try:
        parts = urlsplit(normalized)
        # Accessing port validates it is numeric.
        _ = parts.port
    except ValueError as exc:
        raise MalformedLocator(normalized, str(exc)) from exc
    if not parts.scheme or not parts.netloc:
        raise MalformedLocator(normalized, "not an absolute URI")
    if any(ch.isspace() for ch in normalized):
        raise MalformedLocator(normalized, "contains whitespace")
    return normalized


@dataclass(frozen=True)
class RepoRef:
    """Host/owner/repo triple extracted from a repository URI."""
    host: str
    owner: str
    repo: str
    normalized_url: str


def parse_repo_ref(uri: str) -> Optional[RepoRef]:
    """Extract host, owner and repo from an absolute repository URI.

    Returns None when the path does not carry at least two segments.
    """
    try:
        parts = urlsplit(normalize_locator(uri))
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    segments = [s for s in parts.path.split("/") if s]
    if not host or len(segments) < 2:
        return None
    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not repo:
        return None
    return RepoRef(
        host=host,
        owner=owner,
        repo=repo,
        normalized_url=f"https://{host}/{owner}/{repo}",
    )
