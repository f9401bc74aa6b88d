"""HTTP client wrapper for the library REST API.

Every request carries ``Authorization: Bearer <token>`` when a token is
stored. A 401 response drops the stored credentials and sends the user to
``/login``.
"""
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..logging_config import get_logger
from .navigation import app_navigate
from .storage import FileCredentialStore, MemoryCredentialStore

logger = get_logger(__name__)

LOGIN_ROUTE = "/login"


class ApiError(Exception):
    """A failed API call. ``status_code`` is None when the server was never reached."""

    def __init__(self, status_code: Optional[int], message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    def __str__(self) -> str:
        return self.message


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "detail"):
            if isinstance(body.get(key), str):
                return body[key]
    return response.reason_phrase or f"HTTP {response.status_code}"


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        store: Optional[MemoryCredentialStore] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.store = store if store is not None else FileCredentialStore()
        limits = httpx.Limits(max_keepalive_connections=10, max_connections=20, keepalive_expiry=30.0)
        self._client = httpx.Client(
            base_url=base_url or settings.api_base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout or settings.client_timeout,
            limits=limits,
            transport=transport,
            event_hooks={"request": [self._attach_token], "response": [self._handle_unauthorized]},
        )

    # ------------------------- Hooks ------------------------- #
    def _attach_token(self, request: httpx.Request) -> None:
        token = self.store.token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    def _handle_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            logger.info("Received 401 from %s; clearing stored credentials", response.request.url.path)
            self.store.clear_session()
            app_navigate(LOGIN_ROUTE)

    # ------------------------- Requests ------------------------- #
    def request(self, method: str, path: str, *, json: Any = None,
                params: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request and return the decoded JSON body (None for empty bodies)."""
        try:
            response = self._client.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ApiError(None, f"Could not reach the server: {e}") from e

        if response.is_error:
            payload = None
            try:
                payload = response.json()
            except ValueError:
                pass
            raise ApiError(response.status_code, _error_message(response), payload)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str, json: Any = None) -> Any:
        return self.request("DELETE", path, json=json)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# Global client instance
_global_client: Optional[ApiClient] = None


def get_api_client() -> ApiClient:
    """Return the process-wide client, creating it on first use."""
    global _global_client
    if _global_client is None:
        _global_client = ApiClient()
    return _global_client


def set_api_client(client: Optional[ApiClient]) -> None:
    global _global_client
    _global_client = client


def close_api_client() -> None:
    global _global_client
    if _global_client:
        _global_client.close()
        _global_client = None
