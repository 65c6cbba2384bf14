"""End-to-end synchronization runs against a scripted GitHub."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from fakes import ISSUES_PATH, OWNER, REPO, comment_json, issue_json, issue_url, reaction_json

from issue_comments import CommentThread, MemoryIdentityCache, NotInitializedError, UserIdentity
from issue_comments.identity import ACCESS_TOKEN_KEY, USER_KEY
from issue_comments.navigation import StaticNavigation

if TYPE_CHECKING:
    from fakes import FakeTransport


@pytest.mark.integration
class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_anonymous_visit_to_uninitialized_thread(self, transport: FakeTransport) -> None:
        transport.add("GET", ISSUES_PATH, [])

        thread = await CommentThread.open(
            owner="a",
            repo="b",
            transport=transport,
            navigation=StaticNavigation("https://example.com/post"),
        )

        assert isinstance(thread.state.error, NotInitializedError)
        assert thread.state.user == UserIdentity()
        assert thread.state.comments is None

    @pytest.mark.asyncio
    async def test_returning_user_sees_foreign_like(self, transport: FakeTransport) -> None:
        transport.add("GET", ISSUES_PATH, [issue_json(hearts=1, comments=1)])
        transport.add("GET", f"{issue_url(1)}/comments", [comment_json(1, login="bob")])
        transport.add("GET", f"{issue_url(1)}/reactions", [reaction_json(10, "bob")])
        transport.add("GET", "/user", {"login": "alice"})
        transport.add("GET", f"/repos/{OWNER}/{REPO}/collaborators/alice/permission", {"permission": "read"})
        identity = MemoryIdentityCache(
            {ACCESS_TOKEN_KEY: "tok", USER_KEY: json.dumps({"login": "alice", "permission": "read"})}
        )

        thread = CommentThread(
            owner="a",
            repo="b",
            transport=transport,
            identity=identity,
            navigation=StaticNavigation("https://example.com/post"),
        )
        assert thread.state.user.from_cache

        await thread.start()

        assert thread.state.error is None
        assert thread.state.user.from_cache is False
        assert thread.state.comments is not None
        assert len(thread.state.comments) == 1
        assert len(thread.state.reactions) == 1
        assert not thread.state.has_liked()

    @pytest.mark.asyncio
    async def test_admin_initializes_then_visitor_reads(self, transport: FakeTransport) -> None:
        transport.add("GET", ISSUES_PATH, [])
        transport.add("POST", ISSUES_PATH, issue_json())
        transport.add("GET", f"{issue_url(1)}/comments", [])

        admin = CommentThread(
            owner="a",
            repo="b",
            transport=transport,
            identity=MemoryIdentityCache({ACCESS_TOKEN_KEY: "tok"}),
            navigation=StaticNavigation("https://example.com/post"),
        )
        comments = await admin.init()
        assert comments == []

        transport.add("GET", ISSUES_PATH, [issue_json()])
        visitor = await CommentThread.open(
            owner="a",
            repo="b",
            transport=transport,
            navigation=StaticNavigation("https://example.com/post"),
        )

        assert visitor.state.error is None
        assert visitor.state.meta == admin.state.meta
        assert visitor.state.comments == []
