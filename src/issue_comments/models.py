"""Data models for an issue-backed comment thread.

These models represent the records exchanged between the GitHub REST API,
the CommentThread engine and the renderers. Records built from API payloads
are immutable; changes are made by swapping in a copy.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .exceptions import ThreadError

DEFAULT_PER_PAGE = 30
DEFAULT_SCOPE = "repo"
DEFAULT_EXCHANGE_URL = "https://gh-oauth.imsun.net"
HEART = "heart"


@dataclass(frozen=True)
class ThreadConfig:
    """Identity and presentation of one thread."""

    id: str
    owner: str
    repo: str
    title: str = ""
    link: str = ""
    description: str = ""
    labels: tuple[str, ...] = ()
    per_page: int = DEFAULT_PER_PAGE

    def __post_init__(self) -> None:
        if not self.owner.strip() or not self.repo.strip():
            msg = f"Both owner and repo must be non-empty, got owner='{self.owner}', repo='{self.repo}'"
            raise ValueError(msg)
        if not self.id:
            msg = "Thread id must be non-empty"
            raise ValueError(msg)
        if self.per_page < 1:
            msg = f"per_page must be positive, got {self.per_page}"
            raise ValueError(msg)

    @classmethod
    def from_options(
        cls,
        *,
        owner: str,
        repo: str,
        page_url: str,
        page_title: str = "",
        id: str | None = None,  # noqa: A002
        title: str | None = None,
        link: str | None = None,
        desc: str | None = None,
        labels: Iterable[str] | None = None,
        per_page: int | None = None,
    ) -> ThreadConfig:
        """Build a config, falling back to the current page for id, link and title."""
        link = link or page_url
        return cls(
            id=id or page_url,
            owner=owner,
            repo=repo,
            title=title or page_title or link,
            link=link,
            description=desc or "",
            labels=tuple(dict.fromkeys(labels or ())),
            per_page=per_page or DEFAULT_PER_PAGE,
        )


@dataclass(frozen=True)
class OAuthConfig:
    """OAuth application settings used for login and code exchange."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str | None = None
    scope: str = DEFAULT_SCOPE
    exchange_url: str = DEFAULT_EXCHANGE_URL

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> OAuthConfig:
        options = options or {}
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(options) - known
        if unknown:
            msg = f"Unknown OAuth option(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        return cls(**options)


@dataclass(frozen=True)
class Issue:
    """The GitHub issue backing a thread."""

    id: int
    number: int
    comments_url: str
    reactions_url: str
    reaction_counts: dict[str, int] = field(default_factory=dict)
    labels: tuple[str, ...] = ()
    html_url: str = ""
    comments: int = 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Issue:
        reactions: Mapping[str, Any] = data.get("reactions") or {}
        counts = {key: int(value) for key, value in reactions.items() if key != "url"}
        return cls(
            id=data["id"],
            number=data["number"],
            comments_url=data["comments_url"],
            reactions_url=reactions.get("url") or f"{data['url']}/reactions",
            reaction_counts=counts,
            labels=tuple(label["name"] if isinstance(label, dict) else label for label in data.get("labels", [])),
            html_url=data.get("html_url", ""),
            comments=data.get("comments", 0),
        )

    @property
    def heart_count(self) -> int:
        return self.reaction_counts.get(HEART, 0)

    def with_heart_count(self, count: int) -> Issue:
        """Return a copy with the cached heart counter replaced."""
        return dataclasses.replace(self, reaction_counts={**self.reaction_counts, HEART: max(count, 0)})


@dataclass(frozen=True)
class Reaction:
    """A reaction left on the backing issue."""

    id: int
    user_login: str
    content: str = HEART

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Reaction:
        return cls(id=data["id"], user_login=data["user"]["login"], content=data.get("content", HEART))


@dataclass(frozen=True)
class UserIdentity:
    """The viewer of the thread. ``UserIdentity()`` is the anonymous viewer.

    ``from_cache`` marks an identity read from the identity cache before the
    network confirmed it. ``logging_in`` is set while an OAuth code exchange
    is pending.
    """

    login: str | None = None
    permission: str | None = None
    from_cache: bool = False
    logging_in: bool = False
    profile: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_authenticated(self) -> bool:
        return self.login is not None

    @property
    def can_admin(self) -> bool:
        return self.permission == "admin"

    @classmethod
    def from_profile(cls, profile: Mapping[str, Any], *, from_cache: bool = False) -> UserIdentity:
        return cls(
            login=profile["login"],
            permission=profile.get("permission"),
            from_cache=from_cache,
            profile=dict(profile),
        )

    def to_profile(self) -> dict[str, Any]:
        """Serializable form stored in the identity cache."""
        return {**self.profile, "login": self.login, "permission": self.permission}


@dataclass
class ThreadState:
    """Everything a renderer needs to draw a thread.

    ``comments is None`` means the current page has not been loaded yet,
    which is distinct from an empty page (``[]``).
    """

    user: UserIdentity = field(default_factory=UserIdentity)
    error: ThreadError | None = None
    meta: Issue | None = None
    comments: list[dict[str, Any]] | None = None
    reactions: list[Reaction] = field(default_factory=list)
    current_page: int = 1

    def has_liked(self) -> bool:
        """Whether the current user has a heart reaction on the issue."""
        login = self.user.login
        return login is not None and any(r.user_login == login for r in self.reactions)
