"""HTTP client for the SonarQube web API."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode, urlsplit, urlunsplit

import requests
from packaging.version import Version


class SonarQubeError(Exception):
    """Raised when a SonarQube API call fails or returns something unexpected."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(SonarQubeError):
    """Raised when a looked-up object is not present on the server."""


class SonarQubeClient:
    """Sends requests to a SonarQube server and checks their status codes."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        edition: str = "",
        version: str | Version = "0",
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        self.edition = edition
        self.version = version if isinstance(version, Version) else Version(str(version))
        self.timeout = 30.0

    def _url(self, path: str, params: Mapping[str, Any] | None) -> str:
        parts = urlsplit(self.base_url)
        full_path = parts.path.rstrip("/") + path
        items = sorted((params or {}).items())
        query = urlencode(items, doseq=True)
        return urlunsplit((parts.scheme, parts.netloc, full_path, query, ""))

    def request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        expected_status: int = 200,
    ) -> requests.Response:
        """Send a request and return the response if its status is the expected one."""
        url = self._url(path, params)
        try:
            response = self.session.request(method, url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SonarQubeError(f"{method} {url}: request failed: {exc}") from exc
        if response.status_code != expected_status:
            raise SonarQubeError(
                f"{method} {url}: unexpected status {response.status_code} "
                f"(expected {expected_status}): {response.text}",
                status_code=response.status_code,
            )
        return response

    def request_json(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        expected_status: int = 200,
    ) -> Any:
        """Send a request and return its decoded JSON body."""
        response = self.request(method, path, params, expected_status)
        try:
            return response.json()
        except ValueError as exc:
            raise SonarQubeError(f"{method} {path}: failed to decode json: {exc}") from exc