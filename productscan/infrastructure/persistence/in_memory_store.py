"""
In-memory key-value store.

Reference KeyValueStore adapter, used by default and in tests. A host
application plugs its own persistent store behind the same port.
"""

import threading
from typing import Iterator, Optional

from productscan.domain.shared.ports import Clock, StoreMetadata
from productscan.infrastructure.clock import SystemClock


class InMemoryKeyValueStore:
    """
    Dict-backed store with atomic per-key writes.

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> store.put("product:3017620422003", b"{}")
        >>> assert store.get("product:3017620422003") == b"{}"
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or SystemClock()
        self._data: dict[str, tuple[bytes, StoreMetadata]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            item = self._data.get(key)
        return item[0] if item is not None else None

    def put(self, key: str, value: bytes) -> None:
        metadata = StoreMetadata(written_at=self._clock.now(), size=len(value))
        with self._lock:
            self._data[key] = (bytes(value), metadata)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def scan_all(self, prefix: str = "") -> Iterator[tuple[str, bytes, StoreMetadata]]:
        """Iterate over a snapshot, so callers may delete while iterating."""
        with self._lock:
            snapshot = [
                (key, value, metadata)
                for key, (value, metadata) in self._data.items()
                if key.startswith(prefix)
            ]
        return iter(snapshot)

    def size(self) -> int:
        """Get number of stored keys."""
        with self._lock:
            return len(self._data)
