"""Tests for license lookup and classification."""

import asyncio
import logging

import pytest

from common.http_client import HttpClient, HttpResponse
from errors import LicenseDetectionError, UpstreamUnavailable
from licensing.detector import LicenseDetector

from helpers import serve


def _run(routes, action):
    async def _go():
        async with serve(routes) as (base_url, service):
            async with HttpClient() as http:
                detector = LicenseDetector(http, service_url=base_url, detector_url=f"{base_url}/detect")
                return await action(detector), service
    return asyncio.run(_go())


class TestDetectFromHost:
    """Default branch first, then gh-pages."""

    def test_default_branch(self):
        """A license on the default branch is returned directly."""
        routes = {"/webjars/webjars": (200, "MIT")}
        result, service = _run(routes, lambda d: d.detect_from_host("webjars/webjars"))
        assert result == "MIT"
        assert service.paths == ["/webjars/webjars"]

    def test_falls_back_to_gh_pages(self):
        """A miss on the default branch falls back to gh-pages."""
        routes = {"/webjars/site/gh-pages": (200, "Apache-2.0")}
        result, service = _run(routes, lambda d: d.detect_from_host("webjars/site"))
        assert result == "Apache-2.0"
        assert service.paths == ["/webjars/site", "/webjars/site/gh-pages"]

    def test_both_fail(self):
        """Misses on both branches raise a detection error."""
        with pytest.raises(LicenseDetectionError) as exc_info:
            _run({}, lambda d: d.detect_from_host("webjars/none"))
        assert "Could not get license" in str(exc_info.value)

    def test_no_repository(self):
        """No repository means no lookup and a detection error."""
        with pytest.raises(LicenseDetectionError):
            _run({}, lambda d: d.detect_from_host(None))


class TestClassify:
    """Contents are posted to the classifier."""

    def test_success(self):
        """The classifier verdict is returned for posted contents."""
        routes = {("POST", "/detect"): (200, "MIT")}
        result, service = _run(routes, lambda d: d.classify("Permission is hereby granted..."))
        assert result == "MIT"
        assert service.requests == [("POST", "/detect", "Permission is hereby granted...")]

    def test_failure_is_logged_and_raised(self, caplog):
        """Classifier rejections are logged with the contents and raised."""
        routes = {("POST", "/detect"): (422, "License not recognized")}
        with caplog.at_level(logging.ERROR, logger="licensing.detector"):
            with pytest.raises(LicenseDetectionError) as exc_info:
                _run(routes, lambda d: d.classify("some text"))
        assert str(exc_info.value) == "License not recognized"
        assert exc_info.value.status == 422
        assert "License fetch error" in caplog.text
        assert "some text" in caplog.text


class _UnreachableFirstHttp:
    """HTTP stub whose requests fail at the transport level except for listed URLs."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    async def get(self, url, *, context, headers=None):
        self.calls.append(url)
        if url not in self.answers:
            raise UpstreamUnavailable(url, 0, f"{context} connection error")
        return HttpResponse(url=url, status=200, text=self.answers[url])


class TestDetectFromHostTransportFailures:
    """Connection failures count as a miss, like a non-2xx reply."""

    def test_connection_error_falls_back_to_gh_pages(self):
        """A default-branch lookup that never gets a response still tries gh-pages."""
        http = _UnreachableFirstHttp({"http://svc/o/r/gh-pages": "MIT"})
        detector = LicenseDetector(http, service_url="http://svc")
        assert asyncio.run(detector.detect_from_host("o/r")) == "MIT"
        assert http.calls == ["http://svc/o/r", "http://svc/o/r/gh-pages"]

    def test_both_unreachable_raise_detection_error(self):
        """When neither lookup connects, the failure is a LicenseDetectionError."""
        http = _UnreachableFirstHttp({})
        detector = LicenseDetector(http, service_url="http://svc")
        with pytest.raises(LicenseDetectionError):
            asyncio.run(detector.detect_from_host("o/r"))
        assert http.calls == ["http://svc/o/r", "http://svc/o/r/gh-pages"]
