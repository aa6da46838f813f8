"""License detection through external lookup and classification services."""
from __future__ import annotations

import logging
from typing import Optional

from constants import Constants
from errors import LicenseDetectionError, UpstreamUnavailable
from common.http_client import HttpClient
from common.logging_utils import extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


class LicenseDetector:
    """Find a repository's license or classify license file contents."""

    def __init__(self, http: HttpClient, service_url: Optional[str] = None,
                 detector_url: Optional[str] = None):
        """Initialize the detector.

        Args:
            http: Shared async HTTP client
            service_url: License lookup service (defaults to Constants.LICENSE_SERVICE_URL)
            detector_url: License classifier (defaults to Constants.LICENSE_DETECTOR_URL)
        """
        self.http = http
        self.service_url = (service_url or Constants.LICENSE_SERVICE_URL).rstrip("/")
        self.detector_url = detector_url or Constants.LICENSE_DETECTOR_URL

    async def _fetch_license(self, url: str) -> Optional[str]:
        """Return the license text at ``url``, or None if the lookup failed for any reason."""
        try:
            response = await self.http.get(url, context="license")
        except UpstreamUnavailable as exc:
            logger.warning(
                "License lookup failed: %s",
                exc,
                extra=extra_context(
                    event="http_response", component="license", action="detect_from_host",
                    outcome="unavailable", target=url,
                ),
            )
            return None
        if response.ok:
            return response.text
        if is_debug_enabled(logger):
            logger.debug(
                "License lookup miss",
                extra=extra_context(
                    event="http_response", component="license", action="detect_from_host",
                    outcome="non_2xx", status_code=response.status, target=url,
                ),
            )
        return None

    async def detect_from_host(self, org_repo: Optional[str]) -> str:
        """Look up the license of ``owner/repo`` on its default branch, then on gh-pages.

        Raises:
            LicenseDetectionError: If neither branch yields a license.
        """
        if not org_repo:
            raise LicenseDetectionError("Could not get license")
        license_text = await self._fetch_license(f"{self.service_url}/{org_repo}")
        if license_text is None:
            license_text = await self._fetch_license(f"{self.service_url}/{org_repo}/gh-pages")
        if license_text is None:
            raise LicenseDetectionError("Could not get license")
        return license_text

    async def classify(self, contents: str) -> str:
        """Submit license file contents to the classifier and return its verdict.

        Raises:
            LicenseDetectionError: Carrying the classifier's response body.
        """
        response = await self.http.post(self.detector_url, context="license", data=contents)
        if response.ok:
            return response.text
        logger.error("License fetch error:\n%s\n%s", contents, response.text)
        raise LicenseDetectionError(response.text, response.status)
