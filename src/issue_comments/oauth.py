"""GitHub OAuth web flow: login link, code stripping and token exchange."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Final, NamedTuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from .exceptions import ExchangeError

if TYPE_CHECKING:
    from .models import OAuthConfig

logger: logging.Logger = logging.getLogger(__name__)

AUTHORIZE_URL: Final[str] = "https://github.com/login/oauth/authorize"
CODE_PARAM: Final[str] = "code"


class StrippedLocation(NamedTuple):
    """A location with its authorization code removed."""

    code: str | None
    url: str


def strip_code(url: str) -> StrippedLocation:
    """Remove the ``code`` query parameter, keeping every other parameter and the fragment."""
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    codes = [value for key, value in params if key == CODE_PARAM]
    if not codes:
        return StrippedLocation(code=None, url=url)
    remaining = [(key, value) for key, value in params if key != CODE_PARAM]
    cleaned = urlunsplit(parts._replace(query=urlencode(remaining)))
    return StrippedLocation(code=codes[-1], url=cleaned)


def login_link(oauth: OAuthConfig, current_url: str) -> str:
    """Build the GitHub authorize URL. The client secret is never included."""
    params = {
        "client_id": oauth.client_id,
        "redirect_uri": oauth.redirect_uri or current_url,
        "scope": oauth.scope,
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


class TokenExchange:
    """Exchanges an authorization code for an access token.

    The exchange goes through a trusted intermediary rather than the tracker
    API, because it needs the client secret.
    """

    def __init__(self, oauth: OAuthConfig, *, session: requests.Session | None = None, timeout: float = 30.0) -> None:
        self.oauth: OAuthConfig = oauth
        self.session: requests.Session = session or requests.Session()
        self.timeout: float = timeout

    def exchange_sync(self, code: str) -> str:
        payload = {
            "code": code,
            "client_id": self.oauth.client_id,
            "client_secret": self.oauth.client_secret,
        }
        try:
            response = self.session.post(
                self.oauth.exchange_url,
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            msg = f"Failed to exchange authorization code: {e}"
            raise ExchangeError(msg) from e
        except ValueError as e:
            msg = "Token exchange endpoint returned invalid JSON"
            raise ExchangeError(msg) from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            error = data.get("error_description") or data.get("error") if isinstance(data, dict) else None
            msg = f"Token exchange did not return an access token: {error or 'unknown error'}"
            raise ExchangeError(msg)
        logger.debug("Authorization code exchanged for an access token")
        return token

    async def exchange(self, code: str) -> str:
        return await asyncio.to_thread(self.exchange_sync, code)
