"""
Thin HTTP client for the content backend.
"""

from __future__ import annotations

import requests

REQUEST_TIMEOUT = 30  # seconds


class ApiError(RuntimeError):
    """Raised when the backend answers with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SiteApiClient:
    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, path: str) -> requests.Response:
        # Content is edited live; never accept a cached copy.
        return self.session.get(
            self.url(path),
            headers={"Cache-Control": "no-store"},
            timeout=self.timeout,
        )

    def post_json(self, path: str, payload: dict) -> requests.Response:
        return self.session.post(self.url(path), json=payload, timeout=self.timeout)
