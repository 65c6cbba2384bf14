"""
Issue-backed comment threads

Keeps an embeddable comment thread in sync with a single GitHub issue:
locating or creating the issue, OAuth login, paginated comments, likes,
and an observable state that pluggable themes render.
"""

from __future__ import annotations

from .cli import main
from .exceptions import (
    ExchangeError,
    NotInitializedError,
    ReactionNotFoundError,
    ThreadError,
    TransportError,
    UnauthenticatedError,
)
from .identity import FileIdentityCache, MemoryIdentityCache
from .models import Issue, OAuthConfig, Reaction, ThreadConfig, ThreadState, UserIdentity
from .render import Container, DefaultTheme
from .state import ThreadStore
from .thread import CommentThread, ThreadPhase
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "CommentThread",
    "Container",
    "DefaultTheme",
    "ExchangeError",
    "FileIdentityCache",
    "Issue",
    "MemoryIdentityCache",
    "NotInitializedError",
    "OAuthConfig",
    "Reaction",
    "ReactionNotFoundError",
    "ThreadConfig",
    "ThreadError",
    "ThreadPhase",
    "ThreadState",
    "ThreadStore",
    "TransportError",
    "UnauthenticatedError",
    "UserIdentity",
    "main",
    "setup_logging",
]
