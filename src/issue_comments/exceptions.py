"""
Custom exception classes for the issue-backed comment thread.
"""

from __future__ import annotations


class ThreadError(Exception):
    """Base exception for comment thread errors."""


class NotInitializedError(ThreadError):
    """Raised when no backing issue exists for the thread yet."""

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Comments for '{thread_id}' are not initialized yet")
        self.thread_id: str = thread_id


class UnauthenticatedError(ThreadError):
    """Raised when an operation needs a logged-in user and there is none."""


class ReactionNotFoundError(ThreadError):
    """Raised when unliking a thread the current user has not liked."""


class ExchangeError(ThreadError):
    """Raised when an OAuth authorization code could not be exchanged for a token."""


class TransportError(ThreadError):
    """Raised when a request to the issue tracker fails."""

    def __init__(self, message: str, *, status: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status: int | None = status
        self.url: str | None = url
