"""
Key-value storage for invoice drafts.

Drafts live in a persistent string store keyed per logical draft. The
store is an explicit collaborator so the draft layer can run against disk
in the application and against memory in tests.

Implementations:
- DiskStore: diskcache-backed, survives process restarts
- MemoryStore: dict-backed, with an optional quota to simulate a full store
"""

from abc import ABC, abstractmethod
from pathlib import Path

import diskcache

from invoice_workbench.errors import StorageError


class KeyValueStore(ABC):
    """
    String key-value store contract.

    ``set`` may raise (for example when the store is full) and ``get`` may
    return text written by an older, incompatible version; callers must
    tolerate both.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored string for key, or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""


class DiskStore(KeyValueStore):
    """
    Disk-based store using the diskcache library.

    Thread-safe and process-safe. Values are kept without expiration so a
    draft outlives the process that wrote it.

    Attributes:
        cache_dir: Path to the cache directory.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        """
        Initialize the disk store.

        Args:
            cache_dir: Directory path for storing cache files.
                       Created if it doesn't exist.
        """
        self.cache_dir = Path(cache_dir)
        self._cache = diskcache.Cache(str(self.cache_dir))

    def get(self, key: str) -> str | None:
        value = self._cache.get(key, default=None)
        if value is None:
            return None
        # Entries written by foreign code may not be text
        return value if isinstance(value, str) else str(value)

    def set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value)
        except (OSError, diskcache.Timeout) as exc:
            raise StorageError(f"Unable to write {key}: {exc}") from exc

    def remove(self, key: str) -> None:
        self._cache.delete(key)

    def close(self) -> None:
        """Close the cache and release resources."""
        self._cache.close()


class MemoryStore(KeyValueStore):
    """
    In-memory store.

    Args:
        quota: Optional maximum number of characters across all values.
            Writes that would exceed it raise StorageError.
    """

    def __init__(self, quota: int | None = None) -> None:
        self.quota = quota
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self.data.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageError(f"Quota exceeded writing {key}")
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)
