"""Tests for the observable thread store."""

from __future__ import annotations

import logging

import pytest

from issue_comments.models import Reaction, ThreadState
from issue_comments.state import ThreadStore


@pytest.mark.unit
class TestThreadStore:
    def test_set_notifies_with_state(self) -> None:
        store = ThreadStore()
        seen: list[int] = []
        store.subscribe(lambda state: seen.append(state.current_page))

        store.set(current_page=2)

        assert seen == [2]
        assert store.state.current_page == 2

    def test_multiple_fields_in_one_notification(self) -> None:
        store = ThreadStore(ThreadState(comments=[{"id": 1}]))
        seen: list[tuple[int, object]] = []
        store.subscribe(lambda state: seen.append((state.current_page, state.comments)))

        store.set(current_page=3, comments=None)

        assert seen == [(3, None)]

    def test_batch_coalesces_notifications(self) -> None:
        store = ThreadStore()
        calls: list[ThreadState] = []
        store.subscribe(calls.append)

        with store.batch():
            store.set(current_page=2)
            store.set(reactions=[Reaction(id=1, user_login="alice")])
            assert calls == []

        assert len(calls) == 1

    def test_empty_batch_does_not_notify(self) -> None:
        store = ThreadStore()
        calls: list[ThreadState] = []
        store.subscribe(calls.append)

        with store.batch():
            pass

        assert calls == []

    def test_unsubscribe(self) -> None:
        store = ThreadStore()
        calls: list[ThreadState] = []
        unsubscribe = store.subscribe(calls.append)

        unsubscribe()
        unsubscribe()
        store.set(current_page=2)

        assert calls == []

    def test_unknown_field_rejected(self) -> None:
        store = ThreadStore()
        with pytest.raises(AttributeError, match="Unknown state field"):
            store.set(page=2)

    def test_failing_watcher_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        store = ThreadStore()
        calls: list[ThreadState] = []

        def broken(_state: ThreadState) -> None:
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(calls.append)

        with caplog.at_level(logging.ERROR, logger="issue_comments.state"):
            store.set(current_page=2)

        assert len(calls) == 1
        assert "failed" in caplog.text

    def test_snapshot_is_detached(self) -> None:
        store = ThreadStore(ThreadState(comments=[{"id": 1}]))
        snapshot = store.snapshot()

        store.state.reactions.append(Reaction(id=9, user_login="x"))
        store.set(comments=None)

        assert snapshot.comments == [{"id": 1}]
        assert snapshot.reactions == []
