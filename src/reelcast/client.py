"""HTTP client for the reelcast server.

Used by the `reelcast` command to open sessions, report player events and
read session state.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class ReelcastAPIError(Exception):
    """Error communicating with the reelcast server."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ReelcastClient:
    """HTTP client for the reelcast REST API.

    Usage:
        client = ReelcastClient("localhost", 5060)
        session = client.open_session("https://youtu.be/dQw4w9WgXcQ", "Demo")
        client.report_event(session["session_id"], "load", 0)
        client.close_session(session["session_id"])
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5060,
        transport: httpx.BaseTransport | None = None,
    ):
        self.host = host
        self.port = port
        self.base_url = f"http://{host}:{port}"
        self._client = httpx.Client(
            base_url=self.base_url, timeout=DEFAULT_TIMEOUT, transport=transport,
        )

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = self._client.request(method, path, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.ConnectError:
            raise ReelcastAPIError(f"Cannot connect to {self.base_url}")
        except httpx.TimeoutException:
            raise ReelcastAPIError("Request timed out")
        except httpx.HTTPStatusError as e:
            try:
                message = e.response.json().get("error", str(e))
            except ValueError:
                message = str(e)
            raise ReelcastAPIError(message, e.response.status_code)

    # --- Server ---

    def get_health(self) -> dict:
        return self._request("GET", "/api/health")

    def classify(self, url: str) -> dict:
        return self._request("GET", "/api/classify", params={"url": url})

    # --- Sessions ---

    def open_session(self, url: str, title: str = "") -> dict:
        return self._request("POST", "/api/sessions", json={"url": url, "title": title})

    def list_sessions(self) -> list[dict]:
        return self._request("GET", "/api/sessions")

    def get_session(self, session_id: str) -> dict:
        return self._request("GET", f"/api/sessions/{session_id}")

    def report_event(
        self,
        session_id: str,
        event: str,
        attempt: int,
        current_time: float | None = None,
        duration: float | None = None,
    ) -> dict:
        payload: dict[str, Any] = {"type": event, "attempt": attempt}
        if current_time is not None:
            payload["current_time"] = current_time
        if duration is not None:
            payload["duration"] = duration
        return self._request("POST", f"/api/sessions/{session_id}/events", json=payload)

    def close_session(self, session_id: str) -> dict:
        return self._request("DELETE", f"/api/sessions/{session_id}")

    def dismiss_session(self, session_id: str) -> dict:
        return self._request("POST", f"/api/sessions/{session_id}/dismiss")

    # --- Events ---

    def recent_events(self, limit: int = 20, session_id: str | None = None) -> list[dict]:
        params: dict[str, Any] = {"limit": limit}
        if session_id:
            params["session_id"] = session_id
        return self._request("GET", "/api/events/recent", params=params)
