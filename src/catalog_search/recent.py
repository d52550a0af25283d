"""Recent-search history mirrored to a key-value store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .models import KindFilter, RecentSearchEntry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_KEY = "recent_searches"
DEFAULT_HISTORY_LIMIT = 10


class KeyValueStore(Protocol):
    """Minimal string key-value persistence used for the history."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, useful for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Store every key inside one JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def _save(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=2)

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class RecentSearchHistory:
    """Newest-first, de-duplicated, capped list of executed searches."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key: str = DEFAULT_HISTORY_KEY,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self._store = store
        self._key = key
        self._limit = limit
        self._entries: list[RecentSearchEntry] = []

    @property
    def entries(self) -> list[RecentSearchEntry]:
        return list(self._entries)

    def load(self) -> list[RecentSearchEntry]:
        """Replace the in-memory list with the persisted one."""

        try:
            raw = self._store.get(self._key)
        except (OSError, ValueError) as exc:
            logger.warning("recent_searches_load_failed key=%s error=%s", self._key, exc)
            raw = None
        self._entries = self._deserialise(raw)
        return self.entries

    def record(self, query: str, kind_filter: KindFilter = "all") -> RecentSearchEntry:
        entry = RecentSearchEntry(query=query, kind_filter=kind_filter)
        self._entries = [item for item in self._entries if item.key != entry.key]
        self._entries.insert(0, entry)
        del self._entries[self._limit :]
        self._persist()
        return entry

    def clear(self) -> None:
        self._entries = []
        try:
            self._store.remove(self._key)
        except (OSError, ValueError) as exc:
            logger.warning("recent_searches_clear_failed key=%s error=%s", self._key, exc)

    def serialise(self) -> str:
        return json.dumps(
            [entry.model_dump(mode="json", by_alias=True) for entry in self._entries],
            ensure_ascii=False,
        )

    def _persist(self) -> None:
        try:
            self._store.set(self._key, self.serialise())
        except (OSError, ValueError) as exc:
            logger.warning("recent_searches_persist_failed key=%s error=%s", self._key, exc)

    def _deserialise(self, raw: str | None) -> list[RecentSearchEntry]:
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("recent_searches_corrupt key=%s error=%s", self._key, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("recent_searches_corrupt key=%s error=not a list", self._key)
            return []

        entries: list[RecentSearchEntry] = []
        seen = set()
        for item in payload:
            try:
                entry = RecentSearchEntry.model_validate(item)
            except ValidationError:
                logger.debug("recent_searches_skipped_entry payload=%r", item)
                continue
            if entry.key in seen:
                continue
            seen.add(entry.key)
            entries.append(entry)
        return entries[: self._limit]
