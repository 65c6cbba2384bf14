"""Tests for the OAuth login link, code stripping and token exchange."""

from __future__ import annotations

from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from issue_comments.exceptions import ExchangeError
from issue_comments.models import OAuthConfig
from issue_comments.oauth import TokenExchange, login_link, strip_code


@pytest.mark.unit
class TestStripCode:
    def test_removes_code_and_keeps_other_params_and_fragment(self) -> None:
        location = strip_code("https://example.com/post?lang=en&code=abc123&ref=home#comments")
        assert location.code == "abc123"
        assert location.url == "https://example.com/post?lang=en&ref=home#comments"

    def test_only_code(self) -> None:
        location = strip_code("https://example.com/post?code=abc123")
        assert location.code == "abc123"
        assert location.url == "https://example.com/post"

    def test_no_code_leaves_url_untouched(self) -> None:
        url = "https://example.com/post?lang=en#top"
        assert strip_code(url) == (None, url)


@pytest.mark.unit
class TestLoginLink:
    def test_defaults_redirect_to_current_url(self) -> None:
        oauth = OAuthConfig(client_id="cid", client_secret="shh")
        link = login_link(oauth, "https://example.com/post")

        parts = urlsplit(link)
        params = parse_qs(parts.query)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://github.com/login/oauth/authorize"
        assert params["client_id"] == ["cid"]
        assert params["redirect_uri"] == ["https://example.com/post"]
        assert params["scope"] == ["repo"]
        assert "client_secret" not in params
        assert "shh" not in link

    def test_configured_redirect_uri(self) -> None:
        oauth = OAuthConfig(client_id="cid", redirect_uri="https://example.com/callback")
        params = parse_qs(urlsplit(login_link(oauth, "https://example.com/post")).query)
        assert params["redirect_uri"] == ["https://example.com/callback"]


@pytest.mark.unit
class TestTokenExchange:
    def setup_method(self) -> None:
        self.oauth: OAuthConfig = OAuthConfig(client_id="cid", client_secret="shh")
        self.session: Mock = Mock()

    def _response(self, data: object) -> Mock:
        response = Mock()
        response.raise_for_status = Mock()
        response.json.return_value = data
        return response

    def test_success(self) -> None:
        self.session.post.return_value = self._response({"access_token": "tok"})
        exchange = TokenExchange(self.oauth, session=self.session)

        assert exchange.exchange_sync("abc") == "tok"

        args = self.session.post.call_args
        assert args.args[0] == "https://gh-oauth.imsun.net"
        assert args.kwargs["json"] == {"code": "abc", "client_id": "cid", "client_secret": "shh"}

    def test_error_payload(self) -> None:
        self.session.post.return_value = self._response({"error": "bad_verification_code"})
        exchange = TokenExchange(self.oauth, session=self.session)

        with pytest.raises(ExchangeError, match="bad_verification_code"):
            exchange.exchange_sync("abc")

    def test_request_failure(self) -> None:
        self.session.post.side_effect = requests.ConnectionError("offline")
        exchange = TokenExchange(self.oauth, session=self.session)

        with pytest.raises(ExchangeError, match="Failed to exchange authorization code"):
            exchange.exchange_sync("abc")

    def test_invalid_json(self) -> None:
        response = self._response(None)
        response.json.side_effect = ValueError("not json")
        self.session.post.return_value = response
        exchange = TokenExchange(self.oauth, session=self.session)

        with pytest.raises(ExchangeError, match="invalid JSON"):
            exchange.exchange_sync("abc")

    @pytest.mark.asyncio
    async def test_async_exchange(self) -> None:
        self.session.post.return_value = self._response({"access_token": "tok"})
        exchange = TokenExchange(self.oauth, session=self.session)

        assert await exchange.exchange("abc") == "tok"
