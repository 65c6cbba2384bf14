"""
Comment thread engine backed by a single GitHub issue.

Lifecycle
---------
Construction is synchronous: it reads the page location, strips an OAuth
``code`` from it (rewriting the visible URL), restores a cached identity and
sets up the observable store. ``start()`` then either exchanges the code for
a token and updates, or updates directly.

Bootstrap
---------
The backing issue is found by label (the marker label plus the thread id),
never by a stored reference, so any page load can rediscover it::

    UNINITIALIZED -> LOCATING -> FOUND -> READY
                         |
                         +-> NOT_INITIALIZED   (no matching issue)

    NOT_INITIALIZED -> CREATING -> FOUND       (administrative init())

Ordinary visitors never create issues; only ``init()`` does.

Update
------
``update()`` runs in two phases. Issue lookup and user lookup run
concurrently and both settle before comments and reactions are fetched,
since those need the resolved issue (and, for reactions, the identity).
A ThreadError in either phase is stored in ``state.error``; whatever loaded
successfully is kept.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import json
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import (
    ExchangeError,
    NotInitializedError,
    ReactionNotFoundError,
    ThreadError,
    TransportError,
    UnauthenticatedError,
)
from .identity import ACCESS_TOKEN_KEY, USER_KEY, MemoryIdentityCache
from .issue_builder import build_issue_payload, lookup_params
from .models import HEART, Issue, OAuthConfig, Reaction, ThreadConfig, ThreadState, UserIdentity
from .navigation import StaticNavigation
from .oauth import TokenExchange, login_link, strip_code
from .render import RENDER_KINDS, Container, DefaultTheme, RenderBinding
from .state import ThreadStore
from .transport import RequestsTransport

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from .identity import IdentityCache
    from .navigation import NavigationContext
    from .render import Theme
    from .transport import Transport

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)


class ThreadPhase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOCATING = "locating"
    CREATING = "creating"
    FOUND = "found"
    READY = "ready"
    NOT_INITIALIZED = "not_initialized"


def _log_notification(message: str) -> None:
    logger.warning(message)


def _raise_first(results: Iterable[Any]) -> None:
    for result in results:
        if isinstance(result, BaseException):
            raise result


class CommentThread:
    """Synchronizes one comment thread with its backing GitHub issue."""

    config: ThreadConfig
    oauth: OAuthConfig
    identity: IdentityCache
    navigation: NavigationContext
    transport: Transport
    exchange: TokenExchange
    store: ThreadStore
    theme: Theme
    notify: Callable[[str], None]

    def __init__(
        self,
        *,
        owner: str,
        repo: str,
        id: str | None = None,  # noqa: A002
        title: str | None = None,
        link: str | None = None,
        desc: str | None = None,
        labels: Iterable[str] | None = None,
        theme: Theme | None = None,
        oauth: OAuthConfig | Mapping[str, Any] | None = None,
        per_page: int | None = None,
        transport: Transport | None = None,
        identity: IdentityCache | None = None,
        navigation: NavigationContext | None = None,
        exchange: TokenExchange | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self.navigation = navigation or StaticNavigation(link or id or "")
        self.identity = identity or MemoryIdentityCache()
        self.oauth = oauth if isinstance(oauth, OAuthConfig) else OAuthConfig.from_mapping(oauth)
        self.transport = transport or RequestsTransport(self.identity)
        self.exchange = exchange or TokenExchange(self.oauth)
        self.notify = notify or _log_notification
        self.default_theme: DefaultTheme = DefaultTheme()
        self.theme = theme or self.default_theme

        # Strip the code first so id and link default to the code-free URL
        location = strip_code(self.navigation.url)
        if location.code is not None:
            self.navigation.replace(location.url)
        self._pending_code: str | None = location.code

        self.config = ThreadConfig.from_options(
            owner=owner,
            repo=repo,
            page_url=location.url,
            page_title=self.navigation.title,
            id=id,
            title=title,
            link=link,
            desc=desc,
            labels=labels,
            per_page=per_page,
        )

        user = self._cached_user()
        if self._pending_code is not None:
            user = dataclasses.replace(user, logging_in=True)
        self.store = ThreadStore(ThreadState(user=user))

        self._phase: ThreadPhase = ThreadPhase.UNINITIALIZED
        self._lookups: dict[str, asyncio.Future[Issue]] = {}
        self._comments_request: int = 0
        self._bindings: list[RenderBinding] = []

        logger.debug(f"Initialized thread '{self.config.id}' on {self.config.owner}/{self.config.repo}")

    @classmethod
    async def open(cls, **options: Any) -> CommentThread:
        """Construct a thread and run its startup flow."""
        thread = cls(**options)
        await thread.start()
        return thread

    @property
    def state(self) -> ThreadState:
        return self.store.state

    @property
    def phase(self) -> ThreadPhase:
        return self._phase

    @property
    def access_token(self) -> str | None:
        return self.identity.get(ACCESS_TOKEN_KEY)

    @access_token.setter
    def access_token(self, token: str) -> None:
        self.identity.set(ACCESS_TOKEN_KEY, token)

    @property
    def login_link(self) -> str:
        return login_link(self.oauth, self.navigation.url)

    def _cached_user(self) -> UserIdentity:
        raw = self.identity.get(USER_KEY)
        if not self.access_token or not raw:
            return UserIdentity()
        try:
            return UserIdentity.from_profile(json.loads(raw), from_cache=True)
        except (ValueError, KeyError, TypeError):
            logger.debug("Dropping unreadable cached user profile")
            self.identity.remove(USER_KEY)
            return UserIdentity()

    def _require_token(self, action: str, *, notify: bool = False) -> None:
        if self.access_token:
            return
        msg = f"Login to {action}"
        if notify:
            self.notify(msg)
        raise UnauthenticatedError(msg)

    def reconfigure(self, config: ThreadConfig) -> None:
        """Replace the thread config.

        A different thread id forgets the located issue and discards comment
        pages still loading for the old one.
        """
        if config.id != self.config.id:
            self._phase = ThreadPhase.UNINITIALIZED
            self._comments_request += 1
            self.store.set(meta=None, comments=None, reactions=[], current_page=1, error=None)
        self.config = config

    # -- Startup and login ---------------------------------------------------

    async def start(self) -> None:
        """Exchange a pending authorization code if there is one, then update."""
        code, self._pending_code = self._pending_code, None
        if code is not None:
            try:
                await self.exchange_code(code)
            except ExchangeError as e:
                self.store.set(user=dataclasses.replace(self.state.user, logging_in=False))
                self.notify(str(e))
                return
        await self.update()

    async def exchange_code(self, code: str) -> str:
        """Exchange an authorization code and store the resulting token."""
        token = await self.exchange.exchange(code)
        self.access_token = token
        logger.info("Logged in with GitHub")
        return token

    def login(self) -> None:
        """Navigate to the GitHub authorization page."""
        self.navigation.assign(self.login_link)

    def logout(self) -> None:
        self.identity.remove(ACCESS_TOKEN_KEY)
        self.identity.remove(USER_KEY)
        self.store.set(user=UserIdentity())

    # -- Bootstrap -------------------------------------------------------------

    async def load_meta(self) -> Issue:
        """Locate the backing issue by label.

        Raises:
            NotInitializedError: If no issue carries the thread id label
            TransportError: If the lookup request fails
        """
        owner, repo = self.config.owner, self.config.repo
        previous = self._phase
        self._phase = ThreadPhase.LOCATING
        try:
            issues = await self.transport.get(f"/repos/{owner}/{repo}/issues", lookup_params(self.config))
        except TransportError:
            self._phase = previous
            raise

        if not issues:
            self._phase = ThreadPhase.NOT_INITIALIZED
            raise NotInitializedError(self.config.id)

        issue = Issue.from_json(issues[0])
        self._phase = ThreadPhase.READY if previous is ThreadPhase.READY else ThreadPhase.FOUND
        self.store.set(meta=issue)
        logger.info(f"Located issue #{issue.number} for thread '{self.config.id}'")
        return issue

    async def create_issue(self) -> Issue:
        """Create the backing issue. Callers must only do this once per thread."""
        owner, repo = self.config.owner, self.config.repo
        previous = self._phase
        self._phase = ThreadPhase.CREATING
        try:
            data = await self.transport.post(f"/repos/{owner}/{repo}/issues", build_issue_payload(self.config))
        except TransportError:
            self._phase = previous
            raise

        issue = Issue.from_json(data)
        self._phase = ThreadPhase.FOUND
        self.store.set(meta=issue)
        logger.info(f"Created issue #{issue.number} for thread '{self.config.id}'")
        return issue

    async def get_issue(self) -> Issue:
        """Return the located issue, looking it up first if needed.

        Concurrent callers share a single in-flight lookup.
        """
        if self.state.meta is not None:
            return self.state.meta

        key = self.config.id
        lookup = self._lookups.get(key)
        if lookup is None:
            lookup = asyncio.ensure_future(self.load_meta())
            self._lookups[key] = lookup

            def forget(done: asyncio.Future[Issue]) -> None:
                if self._lookups.get(key) is done:
                    del self._lookups[key]

            lookup.add_done_callback(forget)
        return await lookup

    async def init(self) -> list[dict[str, Any]]:
        """Administrative setup: create the issue, load the first comments, clear the error."""
        await self.create_issue()
        comments = await self.load_comments()
        self.store.set(error=None)
        return comments

    # -- Synchronization -------------------------------------------------------

    async def update(self) -> None:
        """Reload issue, user, comments and reactions, recording failures in ``state.error``."""
        try:
            _raise_first(await asyncio.gather(self.load_meta(), self.load_user_info(), return_exceptions=True))
            _raise_first(await asyncio.gather(self.load_comments(), self.load_reactions(), return_exceptions=True))
        except ThreadError as e:
            logger.info(f"Update of thread '{self.config.id}' failed: {e}")
            self.store.set(error=e)
            return
        self.store.set(error=None)

    async def load_comments(self, page: int | None = None) -> list[dict[str, Any]]:
        """Fetch one page of comments and replace ``state.comments`` with it.

        Responses to superseded requests are returned but not stored.
        """
        page = page or self.state.current_page
        self._comments_request += 1
        request = self._comments_request

        issue = await self.get_issue()
        comments = await self.transport.get(issue.comments_url, {"page": page, "per_page": self.config.per_page})
        comments = list(comments or [])

        if request != self._comments_request:
            logger.debug(f"Discarding stale comments response for page {page}")
            return comments

        self.store.set(comments=comments)
        if self._phase is ThreadPhase.FOUND:
            self._phase = ThreadPhase.READY
        return comments

    async def goto(self, page: int) -> list[dict[str, Any]]:
        """Switch to another comment page."""
        if page < 1:
            msg = f"Page numbers start at 1, got {page}"
            raise ValueError(msg)
        self.store.set(current_page=page, comments=None)
        return await self.load_comments(page)

    async def load_user_info(self) -> UserIdentity:
        """Fetch the authenticated user and their permission on the repository."""
        if not self.access_token:
            self.logout()
            return UserIdentity()

        owner, repo = self.config.owner, self.config.repo
        profile = await self.transport.get("/user")
        try:
            permission = await self.transport.get(f"/repos/{owner}/{repo}/collaborators/{profile['login']}/permission")
        except TransportError as e:
            if e.status not in (403, 404):
                raise
            logger.debug(f"No permission info for {profile['login']} on {owner}/{repo}: {e}")
            permission = {}

        user = UserIdentity.from_profile({**profile, "permission": permission.get("permission")})
        self.store.set(user=user)
        self.identity.set(USER_KEY, json.dumps(user.to_profile()))
        return user

    async def load_reactions(self) -> list[Reaction]:
        """Fetch heart reactions of the issue. Anonymous viewers get an empty list."""
        if not self.access_token:
            return []

        issue = await self.get_issue()
        if not issue.heart_count:
            reactions: list[Reaction] = []
        else:
            data = await self.transport.get(issue.reactions_url, {"content": HEART})
            reactions = [Reaction.from_json(item) for item in data or []]

        self.store.set(reactions=reactions)
        return reactions

    # -- Mutations -------------------------------------------------------------

    async def like(self) -> Reaction:
        """Add a heart reaction for the current user."""
        self._require_token("Like", notify=True)

        owner, repo = self.config.owner, self.config.repo
        issue = await self.get_issue()
        data = await self.transport.post(f"/repos/{owner}/{repo}/issues/{issue.number}/reactions", {"content": HEART})
        reaction = Reaction.from_json(data)

        state = self.state
        if any(existing.id == reaction.id for existing in state.reactions):
            logger.debug(f"Reaction {reaction.id} already known, not counting it twice")
            return reaction
        meta = state.meta or issue
        self.store.set(
            reactions=[*state.reactions, reaction],
            meta=meta.with_heart_count(meta.heart_count + 1),
        )
        return reaction

    async def unlike(self) -> None:
        """Remove the current user's heart reaction.

        Raises:
            UnauthenticatedError: If nobody is logged in
            ReactionNotFoundError: If the current user has no heart reaction
        """
        self._require_token("Unlike")

        state = self.state
        reaction = next((r for r in state.reactions if r.user_login == state.user.login), None)
        if reaction is None:
            msg = f"{state.user.login or 'Anonymous user'} has not liked this thread"
            raise ReactionNotFoundError(msg)

        owner, repo = self.config.owner, self.config.repo
        issue = await self.get_issue()
        await self.transport.delete(f"/repos/{owner}/{repo}/issues/{issue.number}/reactions/{reaction.id}")

        state = self.state
        meta = state.meta or issue
        self.store.set(
            reactions=[r for r in state.reactions if r.id != reaction.id],
            meta=meta.with_heart_count(meta.heart_count - 1),
        )

    async def post(self, body: str) -> dict[str, Any]:
        """Post a comment on the backing issue and return it."""
        self._require_token("Comment", notify=True)
        issue = await self.get_issue()
        comment = await self.transport.post(issue.comments_url, {"body": body})
        logger.info(f"Posted comment on issue #{issue.number}")
        return comment

    async def markdown(self, text: str) -> str:
        """Render GitHub-flavored markdown to HTML."""
        return await self.transport.post("/markdown", {"text": text, "mode": "gfm"})

    # -- Rendering -------------------------------------------------------------

    def renderer_for(self, kind: str) -> Callable[[ThreadState, CommentThread], Any]:
        """Render function for ``kind`` from the current theme, else from the default theme."""
        return getattr(self.theme, kind, None) or getattr(self.default_theme, kind)

    def mount(self, kind: str, container: Container | None = None) -> Container:
        """Bind a render kind to a container that follows every state change."""
        binding = RenderBinding(self, kind, container or Container())
        binding.attach(self.store)
        self._bindings.append(binding)
        return binding.container

    def mount_all(self) -> dict[str, Container]:
        return {kind: self.mount(kind) for kind in RENDER_KINDS}

    def use_theme(self, theme: Theme) -> None:
        """Switch themes and re-render every mounted container from the current state."""
        self.theme = theme
        for binding in self._bindings:
            binding.render()

    def close(self) -> None:
        for binding in self._bindings:
            binding.detach()
        self._bindings.clear()
