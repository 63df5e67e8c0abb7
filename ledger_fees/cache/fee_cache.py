"""
Fee Result Cache

Keeps extracted fee states so reopening a transaction does not call the
fee engine again.

DESIGN DECISION: The cache is an explicit object, not a module-level
singleton. Capacity, TTL and the clock are constructor arguments so
tests control time and independent caches can coexist.

- Entries expire lazily: an expired entry is dropped when it is read.
- When full, inserting a new key evicts the entry with the oldest
  insertion time (linear scan; capacity is small).
- Keys are "{transaction_id}-{organization_id}-{ledger_id}", so every
  entry of a transaction can be invalidated by prefix.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ledger_fees.config import get_settings
from ledger_fees.models.fee import FeeCalculationState


logger = structlog.get_logger(__name__)


def cache_key(transaction_id: str, organization_id: str, ledger_id: str) -> str:
    return f"{transaction_id}-{organization_id}-{ledger_id}"


@dataclass
class _Entry:
    state: FeeCalculationState
    stored_at: float


class FeeResultCache:
    """Bounded, time-limited map from cache key to FeeCalculationState."""

    def __init__(
        self,
        capacity: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings().cache
        self._capacity = capacity if capacity is not None else settings.capacity
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.ttl_seconds
        if self._capacity < 1:
            raise ValueError("Cache capacity must be at least 1")
        if self._ttl <= 0:
            raise ValueError("Cache TTL must be positive")

        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[FeeCalculationState]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self._ttl:
                del self._entries[key]
                logger.debug("fee_cache_expired", key=key)
                return None
            return entry.state

    def set(self, key: str, state: FeeCalculationState) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._capacity:
                oldest = min(self._entries, key=lambda k: self._entries[k].stored_at)
                del self._entries[oldest]
                logger.debug("fee_cache_evicted", key=oldest)
            self._entries[key] = _Entry(state=state, stored_at=self._clock())

    def invalidate(self, transaction_id: str) -> int:
        """
        Drop every entry belonging to a transaction.

        Returns the number of entries removed.
        """
        prefix = f"{transaction_id}-"
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
