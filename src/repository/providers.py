"""Hosting provider detection and provider-specific URL transforms."""
from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Sequence

from .url_normalize import parse_repo_ref


class ProviderType(Enum):
    """Known source hosting platforms."""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    UNKNOWN = "unknown"


_HOSTS = {
    "github.com": ProviderType.GITHUB,
    "gitlab.com": ProviderType.GITLAB,
    "bitbucket.org": ProviderType.BITBUCKET,
}


def map_host_to_type(host: Optional[str]) -> ProviderType:
    """Map a hostname to its provider, ignoring case and a ``www.`` prefix."""
    if not host:
        return ProviderType.UNKNOWN
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return _HOSTS.get(host, ProviderType.UNKNOWN)


def provider_for_uri(uri: Optional[str]) -> ProviderType:
    if not uri:
        return ProviderType.UNKNOWN
    ref = parse_repo_ref(uri)
    return map_host_to_type(ref.host if ref else None)


def github_org_repo(uri: Optional[str]) -> Optional[str]:
    """Return ``owner/repo`` for a GitHub repository URI, else None."""
    if provider_for_uri(uri) is not ProviderType.GITHUB:
        return None
    ref = parse_repo_ref(uri)  # type: ignore[arg-type]
    return f"{ref.owner}/{ref.repo}" if ref else None


def _issues_url_for(provider: ProviderType) -> Callable[[str], Optional[str]]:
    def transform(url: str) -> Optional[str]:
        ref = parse_repo_ref(url)
        if ref is None or map_host_to_type(ref.host) is not provider:
            return None
        return f"{ref.normalized_url}/issues"
    return transform


github_issues_url = _issues_url_for(ProviderType.GITHUB)
bitbucket_issues_url = _issues_url_for(ProviderType.BITBUCKET)

ISSUES_URL_TRANSFORMS: Sequence[Callable[[str], Optional[str]]] = (
    github_issues_url,
    bitbucket_issues_url,
)


def issues_url_from_homepage(homepage: Optional[str]) -> Optional[str]:
    """Derive an issue tracker URL from a project homepage on a known host."""
    if not homepage:
        return None
    for transform in ISSUES_URL_TRANSFORMS:
        url = transform(homepage)
        if url:
            return url
    return None
