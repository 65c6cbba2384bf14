"""HTTP transport to the GitHub REST API."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any, Final, Protocol

import requests

from .exceptions import TransportError
from .identity import ACCESS_TOKEN_KEY

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .identity import IdentityCache

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

API_BASE: Final[str] = "https://api.github.com"
# Reactions preview; comments carry body, body_text and body_html
ACCEPT: Final[str] = "application/vnd.github.squirrel-girl-preview, application/vnd.github.full+json"
DEFAULT_TIMEOUT: Final[float] = 30.0


class Transport(Protocol):
    """Asynchronous JSON client for the issue tracker."""

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any: ...

    async def post(self, path: str, body: Mapping[str, Any]) -> Any: ...

    async def delete(self, path: str) -> Any: ...


class RequestsTransport:
    """Transport backed by a ``requests.Session``.

    Blocking requests run in a worker thread so the event loop stays free.
    Each worker thread gets its own session from ``session_factory``; sessions
    are never shared between threads.

    Paths starting with ``/`` are resolved against ``base_url``; absolute URLs
    (such as an issue's ``comments_url``) are used unchanged.
    """

    def __init__(
        self,
        identity: IdentityCache,
        *,
        base_url: str = API_BASE,
        session_factory: Callable[[], requests.Session] = requests.Session,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.identity: IdentityCache = identity
        self.base_url: str = base_url.rstrip("/")
        self.session_factory: Callable[[], requests.Session] = session_factory
        self._local: threading.local = threading.local()
        self.timeout: float = timeout

    @property
    def session(self) -> requests.Session:
        """Session of the calling thread, created on first use."""
        session: requests.Session | None = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            self._local.session = session
        return session

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": ACCEPT}
        token = self.identity.get(ACCESS_TOKEN_KEY)
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Perform a blocking request and decode the response."""
        url = self.url_for(path)
        logger.debug(f"{method} {url} params={dict(params or {})}")
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=body,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            msg = f"{method} {url} failed with status {status}: {_error_message(e.response)}"
            raise TransportError(msg, status=status, url=url) from e
        except requests.RequestException as e:
            msg = f"{method} {url} failed: {e}"
            raise TransportError(msg, url=url) from e
        return _decode(response)

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.request, "GET", path, params=params)

    async def post(self, path: str, body: Mapping[str, Any]) -> Any:
        return await asyncio.to_thread(self.request, "POST", path, body=body)

    async def delete(self, path: str) -> Any:
        return await asyncio.to_thread(self.request, "DELETE", path)


def _decode(response: requests.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    if "json" in response.headers.get("Content-Type", ""):
        return response.json()
    return response.text


def _error_message(response: requests.Response | None) -> str:
    if response is None:
        return "no response"
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason or ""
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason or ""
