"""GitHub API client for current repository URLs.

Registry descriptors often point at stale locations (renamed repositories,
moved issue trackers). The GitHub API follows renames through redirects, so
asking it for the repository gives the locations that are valid today.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Dict, Optional, Tuple

from constants import Constants
from errors import MalformedLocator, UpstreamUnavailable
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled

from .providers import github_org_repo

logger = logging.getLogger(__name__)

CurrentUrls = Tuple[str, str, str]


class GitHubClient:
    """Lightweight REST client for GitHub repository lookups.

    Supports optional authentication via GITHUB_TOKEN environment variable.
    """

    def __init__(self, http: HttpClient, base_url: Optional[str] = None, token: Optional[str] = None):
        """Initialize GitHub client.

        Args:
            http: Shared async HTTP client
            base_url: Base URL for GitHub API (defaults to Constants.GITHUB_API_BASE)
            token: GitHub access token (defaults to config, then GITHUB_TOKEN env var)
        """
        self.http = http
        self.base_url = (base_url or Constants.GITHUB_API_BASE).rstrip("/")
        self.token = token or Constants.GITHUB_TOKEN or os.environ.get(Constants.ENV_GITHUB_TOKEN)

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    async def current_urls(self, repository_uri: str) -> CurrentUrls:
        """Fetch the current homepage, clone URL and issues URL of a repository.

        Args:
            repository_uri: Any GitHub repository URI

        Returns:
            Tuple of (homepage, source connection URI, issues URL)

        Raises:
            MalformedLocator: If the URI is not a GitHub repository.
            UpstreamUnavailable: On non-2xx responses; ``not_found`` is set for 404.
        """
        org_repo = github_org_repo(repository_uri)
        if org_repo is None:
            raise MalformedLocator(repository_uri, "not a GitHub repository")

        url = f"{self.base_url}/repos/{org_repo}"
        response = await self.http.get(url, context="github", headers=self._get_headers())
        if not response.ok:
            logger.warning(
                "GitHub lookup failed",
                extra=extra_context(
                    event="http_response",
                    component="github",
                    action="current_urls",
                    outcome="non_2xx",
                    status_code=response.status,
                    target=org_repo,
                ),
            )
            raise UpstreamUnavailable(url, response.status, response.text)

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamUnavailable(url, response.status, f"Could not parse: {response.text}") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable(url, response.status, f"Could not parse: {response.text}")
        html_url = data.get("html_url") or f"https://github.com/{org_repo}"
        homepage = data.get("homepage") or html_url
        source_uri = data.get("clone_url") or f"{html_url}.git"
        issues_url = f"{html_url}/issues"

        if is_debug_enabled(logger):
            logger.debug(
                "GitHub URLs resolved",
                extra=extra_context(
                    event="complete",
                    component="github",
                    action="current_urls",
                    outcome="success",
                    target=data.get("full_name", org_repo),
                ),
            )
        return homepage, source_uri, issues_url
