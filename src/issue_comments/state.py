"""Observable container for a thread's state."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from typing import TYPE_CHECKING, Any

from .models import ThreadState

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    Watcher = Callable[[ThreadState], None]

logger: logging.Logger = logging.getLogger(__name__)

_FIELDS: frozenset[str] = frozenset(f.name for f in dataclasses.fields(ThreadState))


class ThreadStore:
    """Holds a ThreadState and notifies watchers after every mutation.

    Watchers are called synchronously with the live state and are expected to
    recompute whatever they derive from it from scratch. Mutations made inside
    ``batch()`` are published as a single notification, so watchers never see
    half of a co-mutation.
    """

    _state: ThreadState
    _watchers: list[Watcher]
    _batch_depth: int
    _dirty: bool

    def __init__(self, state: ThreadState | None = None) -> None:
        self._state = state or ThreadState()
        self._watchers = []
        self._batch_depth = 0
        self._dirty = False

    @property
    def state(self) -> ThreadState:
        return self._state

    def snapshot(self) -> ThreadState:
        """Copy of the current state, detached from later list replacements."""
        comments = None if self._state.comments is None else list(self._state.comments)
        return dataclasses.replace(self._state, comments=comments, reactions=list(self._state.reactions))

    def subscribe(self, watcher: Watcher) -> Callable[[], None]:
        """Register a watcher and return a callable that removes it."""
        self._watchers.append(watcher)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._watchers.remove(watcher)

        return unsubscribe

    def set(self, **changes: Any) -> None:
        """Assign state fields and notify watchers."""
        unknown = set(changes) - _FIELDS
        if unknown:
            msg = f"Unknown state field(s): {', '.join(sorted(unknown))}"
            raise AttributeError(msg)
        for name, value in changes.items():
            setattr(self._state, name, value)
        self._dirty = True
        if self._batch_depth == 0:
            self._notify()

    @contextlib.contextmanager
    def batch(self) -> Iterator[ThreadState]:
        """Coalesce every mutation made inside the block into one notification."""
        self._batch_depth += 1
        try:
            yield self._state
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._notify()

    def _notify(self) -> None:
        self._dirty = False
        for watcher in list(self._watchers):
            try:
                watcher(self._state)
            except Exception:
                logger.exception(f"State watcher {watcher!r} failed")
