"""Identity caches holding the viewer's access token and profile between page loads."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Final, Protocol

logger: logging.Logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY: Final[str] = "GT_ACCESS_TOKEN"  # noqa: S105
USER_KEY: Final[str] = "GT_USER_INFO"


class IdentityCache(Protocol):
    """Key-value store for the bearer token and the serialized user profile."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryIdentityCache:
    """Identity cache that lives as long as the process."""

    def __init__(self, values: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileIdentityCache:
    """Identity cache persisted as a JSON object in a file.

    A missing or unreadable file is treated as an empty cache.
    """

    def __init__(self, path: str | Path) -> None:
        self.path: Path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable identity cache {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, values: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(values, indent=2), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self._save(values)

    def remove(self, key: str) -> None:
        values = self._load()
        if values.pop(key, None) is not None:
            self._save(values)
