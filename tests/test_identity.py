"""Tests for identity caches."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from issue_comments.identity import ACCESS_TOKEN_KEY, USER_KEY, FileIdentityCache, MemoryIdentityCache

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.unit
class TestMemoryIdentityCache:
    def test_get_set_remove(self) -> None:
        cache = MemoryIdentityCache()
        assert cache.get(ACCESS_TOKEN_KEY) is None

        cache.set(ACCESS_TOKEN_KEY, "tok")
        assert cache.get(ACCESS_TOKEN_KEY) == "tok"

        cache.remove(ACCESS_TOKEN_KEY)
        cache.remove(ACCESS_TOKEN_KEY)
        assert cache.get(ACCESS_TOKEN_KEY) is None


@pytest.mark.unit
class TestFileIdentityCache:
    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "identity.json"
        FileIdentityCache(path).set(ACCESS_TOKEN_KEY, "tok")

        cache = FileIdentityCache(path)
        assert cache.get(ACCESS_TOKEN_KEY) == "tok"
        assert cache.get(USER_KEY) is None

    def test_remove(self, tmp_path: Path) -> None:
        cache = FileIdentityCache(tmp_path / "identity.json")
        cache.set(ACCESS_TOKEN_KEY, "tok")
        cache.set(USER_KEY, '{"login": "alice"}')

        cache.remove(ACCESS_TOKEN_KEY)

        assert cache.get(ACCESS_TOKEN_KEY) is None
        assert cache.get(USER_KEY) == '{"login": "alice"}'

    def test_unreadable_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "identity.json"
        path.write_text("not json")

        assert FileIdentityCache(path).get(ACCESS_TOKEN_KEY) is None
