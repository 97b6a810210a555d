"""HTTP client adapter for the SafeCircle API.

The access token lives in a ``TokenSession`` owned by the client instance
instead of module state; the refresh token travels in the ``jid`` cookie kept
by the underlying ``httpx.Client``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class TokenSession:
    """Holds the current access token for one client."""

    def __init__(self, access_token: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._access_token = access_token

    def get(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    def set(self, access_token: str) -> None:
        with self._lock:
            self._access_token = access_token

    def clear(self) -> None:
        with self._lock:
            self._access_token = None

    @property
    def authenticated(self) -> bool:
        return self.get() is not None


class SafeCircleClient:
    """Typed wrapper over the REST API that refreshes once on a 401."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[TokenSession] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self.session = session or TokenSession()
        self._http = httpx.Client(
            base_url=base_url.rstrip("/") + "/api/v1",
            transport=transport,
            timeout=timeout,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SafeCircleClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _headers(self) -> Dict[str, str]:
        token = self.session.get()
        return {"Authorization": f"Bearer {token}"} if token else {}

    def _store_tokens(self, response: httpx.Response) -> Dict[str, Any]:
        response.raise_for_status()
        payload = response.json()
        self.session.set(payload["access_token"])
        return payload

    def refresh(self) -> bool:
        """Rotate the refresh cookie for a new access token; clears the session on failure."""
        response = self._http.post("/auth/refresh")
        if response.status_code != httpx.codes.OK:
            logger.info("Session refresh rejected with status %s", response.status_code)
            self.session.clear()
            return False
        self._store_tokens(response)
        return True

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self._http.request(method, path, headers=self._headers(), **kwargs)
        if response.status_code == httpx.codes.UNAUTHORIZED and self.refresh():
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        return response

    # Auth
    def signup(self, name: str, email: str, password: str) -> Dict[str, Any]:
        return self._store_tokens(
            self._http.post("/auth/signup", json={"name": name, "email": email, "password": password})
        )

    def login(self, email: str, password: str) -> Dict[str, Any]:
        return self._store_tokens(
            self._http.post("/auth/login", json={"email": email, "password": password})
        )

    def logout(self) -> None:
        try:
            self._http.post("/auth/logout")
        finally:
            self.session.clear()

    # Community
    def vote(self, target_id: int, target_type: str, vote_type: str) -> Dict[str, Any]:
        response = self.request(
            "POST",
            "/community/vote",
            json={"target_id": target_id, "target_type": target_type, "vote_type": vote_type},
        )
        response.raise_for_status()
        return response.json()["data"]

    def my_votes(self, target_ids: list, target_type: str) -> Dict[str, str]:
        response = self.request(
            "POST", "/community/votes", json={"target_ids": target_ids, "target_type": target_type}
        )
        response.raise_for_status()
        return response.json()["data"]
