"""Render binding between a thread's state and a theme.

A theme is a capability set: one method per render kind, each a pure
function of ``(state, thread)`` returning a node. The engine binds a render
kind to a container and swaps the container's content whenever the rendered
node changes. Themes never mutate state; user actions go through the thread.
"""

from __future__ import annotations

import logging
import math
from html.parser import HTMLParser
from typing import TYPE_CHECKING, Any, Final, Protocol

from typing_extensions import override

from .exceptions import NotInitializedError
from .issue_builder import format_timestamp

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import ThreadState
    from .state import ThreadStore
    from .thread import CommentThread

logger: logging.Logger = logging.getLogger(__name__)

RENDER_KINDS: Final[tuple[str, ...]] = ("header", "comments", "editor", "footer")

_BLOCK_TAGS: Final[frozenset[str]] = frozenset(
    {"p", "br", "div", "li", "pre", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6", "tr"}
)


class _TextExtractor(HTMLParser):
    """Collects the text of rendered comment HTML, one line per block element."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []

    @override
    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in _BLOCK_TAGS:
            self.parts.append("\n")

    @override
    def handle_data(self, data: str) -> None:
        self.parts.append(data)

    def text(self) -> str:
        lines = (line.strip() for line in "".join(self.parts).splitlines())
        return "\n".join(line for line in lines if line)


def comment_text(comment: dict[str, Any]) -> str:
    """Plain text of a comment.

    Prefers ``body_text``, then ``body_html`` stripped of markup, then the raw
    Markdown ``body``.
    """
    if comment.get("body_text"):
        return comment["body_text"]
    if comment.get("body_html"):
        extractor = _TextExtractor()
        extractor.feed(comment["body_html"])
        extractor.close()
        return extractor.text()
    return comment.get("body", "")


class Theme(Protocol):
    def header(self, state: ThreadState, thread: CommentThread) -> Any: ...

    def comments(self, state: ThreadState, thread: CommentThread) -> Any: ...

    def editor(self, state: ThreadState, thread: CommentThread) -> Any: ...

    def footer(self, state: ThreadState, thread: CommentThread) -> Any: ...


class DefaultTheme:
    """Plain-text theme. Subclass and override any render kind to customize."""

    def header(self, state: ThreadState, thread: CommentThread) -> str:
        likes = state.meta.heart_count if state.meta else 0
        liked = " (liked)" if state.has_liked() else ""
        count = state.meta.comments if state.meta else 0
        return f"{likes} likes{liked} | {count} comments | {thread.config.owner}/{thread.config.repo}"

    def comments(self, state: ThreadState, thread: CommentThread) -> str:
        if state.error is not None:
            if isinstance(state.error, NotInitializedError):
                if state.user.can_admin:
                    return "Comments are not initialized yet. Initialize them to start the discussion."
                return "Comments are not initialized yet."
            return f"Error: {state.error}"
        if state.comments is None:
            return "Loading comments..."
        if not state.comments:
            return "No comments yet."
        lines: list[str] = []
        for comment in state.comments:
            login = comment.get("user", {}).get("login", "ghost")
            created = format_timestamp(comment.get("created_at", ""))
            lines.append(f"{login} commented on {created}")
            lines.append(comment_text(comment))
            lines.append("")
        return "\n".join(lines).rstrip()

    def editor(self, state: ThreadState, thread: CommentThread) -> str:
        user = state.user
        if user.logging_in:
            return "Logging in..."
        if not user.is_authenticated:
            return f"Login with GitHub to comment: {thread.login_link}"
        return f"Commenting as {user.login}"

    def footer(self, state: ThreadState, thread: CommentThread) -> str:
        total = state.meta.comments if state.meta else 0
        pages = max(math.ceil(total / thread.config.per_page), 1)
        return f"Page {state.current_page} of {pages}"


class Container:
    """Render target holding the most recently rendered node."""

    def __init__(self) -> None:
        self.content: Any = None
        self.swaps: int = 0

    def replace(self, node: Any) -> None:
        self.content = node
        self.swaps += 1


class RenderBinding:
    """Keeps one container in sync with one render kind of the current theme."""

    kind: str
    container: Container
    _thread: CommentThread
    _unsubscribe: Callable[[], None] | None

    def __init__(self, thread: CommentThread, kind: str, container: Container) -> None:
        if kind not in RENDER_KINDS:
            msg = f"Unknown render kind '{kind}', expected one of {', '.join(RENDER_KINDS)}"
            raise ValueError(msg)
        self.kind = kind
        self.container = container
        self._thread = thread
        self._unsubscribe = None

    def attach(self, store: ThreadStore) -> None:
        self.render()
        self._unsubscribe = store.subscribe(lambda _state: self.render())

    def render(self) -> None:
        render = self._thread.renderer_for(self.kind)
        node = render(self._thread.store.snapshot(), self._thread)
        if self.container.swaps and node == self.container.content:
            return
        self.container.replace(node)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
