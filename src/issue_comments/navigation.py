"""Access to the page location a thread is embedded in."""

from __future__ import annotations

import logging
from typing import Protocol

logger: logging.Logger = logging.getLogger(__name__)


class NavigationContext(Protocol):
    """The current page location.

    ``replace`` rewrites the visible URL without navigating, ``assign``
    navigates away (used to start the OAuth login).
    """

    @property
    def url(self) -> str: ...

    @property
    def title(self) -> str: ...

    def replace(self, url: str) -> None: ...

    def assign(self, url: str) -> None: ...


class StaticNavigation:
    """Navigation context for a fixed URL, recording every rewrite and navigation."""

    def __init__(self, url: str, title: str = "") -> None:
        self._url: str = url
        self._title: str = title
        self.history: list[str] = [url]
        self.navigated_to: str | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def title(self) -> str:
        return self._title

    def replace(self, url: str) -> None:
        logger.debug(f"Replacing location {self._url} -> {url}")
        self._url = url
        self.history[-1] = url

    def assign(self, url: str) -> None:
        logger.debug(f"Navigating to {url}")
        self.navigated_to = url
        self.history.append(url)
