"""Device-local key/value storage."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)


class LocalStore(Protocol):
    """String key/value store private to one device."""

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""

    def set(self, key: str, value: str) -> None:
        """Store a value. Raises OSError when persistence is unavailable."""

    def remove(self, key: str) -> None:
        """Delete a value if present."""


class InMemoryLocalStore(LocalStore):
    """Process-lifetime store, used in tests and when no file is configured."""

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._entries = dict(entries or {})

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        self._entries[key] = value

    def remove(self, key: str) -> None:
        """Delete a value if present."""
        self._entries.pop(key, None)


@dataclass
class JsonFileLocalStore(LocalStore):
    """Store persisted as a single JSON object on disk."""

    path: Path

    def get(self, key: str) -> str | None:
        """Return the stored value, if present."""
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        """Store a value and rewrite the file."""
        entries = self._read()
        entries[key] = value
        self._write(entries)

    def remove(self, key: str) -> None:
        """Delete a value if present."""
        entries = self._read()
        if key in entries:
            del entries[key]
            self._write(entries)

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            _logger.warning("Local store at %s is unreadable", self.path)
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _logger.warning("Ignoring unreadable local store at %s", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _write(self, entries: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(
            json.dumps(entries, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        tmp_path.replace(self.path)


@dataclass
class NamespacedLocalStore(LocalStore):
    """View of a shared store that prefixes every key with one device id."""

    inner: LocalStore
    namespace: str

    def get(self, key: str) -> str | None:
        return self.inner.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.inner.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self.inner.remove(self._key(key))

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"


def read_json(store: LocalStore, key: str) -> object | None:
    """Decode a JSON value from the store, ignoring corrupt entries."""
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning("Ignoring corrupt local value for %s", key)
        return None


def write_json(store: LocalStore, key: str, value: object) -> None:
    """Encode a value as JSON into the store."""
    store.set(key, json.dumps(value, ensure_ascii=False))
