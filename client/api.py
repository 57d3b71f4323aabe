"""
HTTP client for the entries API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from client.session import Session

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A failed call: non-2xx status, or status 0 for transport failures."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _error_message(response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or "error"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.text or "error"


class ApiClient:
    """
    Thin wrapper over a ``requests.Session`` compatible object.

    The bearer token is read from the session on every call, so logging in or
    out takes effect immediately.
    """

    def __init__(self, session: Session, *, base_url: str = "", http=None):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        headers = {}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        try:
            response = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
            )
        except requests.RequestException as exc:
            raise ApiError(0, str(exc)) from exc
        if response.status_code >= 400:
            raise ApiError(response.status_code, _error_message(response))
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "invalid JSON response") from exc

    def list_entries(
        self,
        kind: Optional[str] = None,
        page: int = 0,
        limit: int = 6,
        q: Optional[str] = None,
    ) -> list[dict]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if kind:
            params["kind"] = kind
        if q:
            params["q"] = q
        return self._request("GET", "/api/entries", params=params)

    def create(self, kind: str, title: str, body: str) -> dict:
        return self._request(
            "POST", "/api/entries", json={"kind": kind, "title": title, "body": body}
        )

    def edit(self, entry_id: str, *, title: Optional[str] = None, body: Optional[str] = None) -> dict:
        payload = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        return self._request("PUT", f"/api/entries/{entry_id}", json=payload)

    def remove(self, entry_id: str) -> dict:
        return self._request("DELETE", f"/api/entries/{entry_id}")

    def register(self, username: str, password: str) -> dict:
        return self._request(
            "POST",
            "/api/auth/register",
            json={"username": username, "password": password},
        )

    def login(self, username: str, password: str) -> dict:
        return self._request(
            "POST", "/api/auth/login", json={"username": username, "password": password}
        )

    def upload_image(self, mime: str, data: str) -> dict:
        """Upload base64 ``data``; returns ``{"id", "url"}``."""
        return self._request("POST", "/api/images-json", json={"mime": mime, "data": data})
