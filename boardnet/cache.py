"""
Result cache collaborator for the analysis pipeline.

The pipeline never owns a cache: callers inject one per call. Keys are a
content hash of the input records plus the resolved configuration, so two
requests for the same network and parameters share an entry until its TTL
expires or it is invalidated.
"""
from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class ResultCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def invalidate(self, key: str) -> None: ...


class InMemoryTTLCache:
    """Bounded LRU map with per-entry expiry. Safe to share between worker threads."""

    def __init__(self, max_entries: int = 256, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _canonical(record: Any) -> str:
    if isinstance(record, BaseModel):
        record = record.model_dump(mode="json", by_alias=False)
    return json.dumps(record, sort_keys=True, default=str)


def content_hash(node_records: Iterable[Any], edge_records: Iterable[Any], config: Any = None) -> str:
    """SHA-256 over the records (order-insensitive) and the config."""
    h = hashlib.sha256()
    for section in (node_records, edge_records):
        for line in sorted(_canonical(r) for r in section):
            h.update(line.encode())
            h.update(b"\n")
        h.update(b"\x1e")
    if config is not None:
        h.update(_canonical(config).encode())
    return h.hexdigest()
