import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from tripsift.core.logging import get_logger

_log = get_logger("core.cache")

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Bounded in-memory cache whose entries expire after ``ttl`` seconds.

    Oldest entries are evicted first once ``maxsize`` is reached.
    """

    def __init__(
        self,
        name: str = "default",
        ttl: float = 24 * 60 * 60.0,
        maxsize: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self._ttl = ttl
        self._maxsize = maxsize
        self._clock = clock
        self._data: "OrderedDict[str, tuple[float, V]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._data[key]
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._data[key] = (self._clock() + self._ttl, value)
            self._data.move_to_end(key)
            while len(self._data) > self._maxsize:
                evicted, _ = self._data.popitem(last=False)
                _log.debug("Cache evicted", cache=self.name, key=evicted[:40])

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self._hits + self._misses
            return {
                "name": self.name,
                "size": len(self._data),
                "maxsize": self._maxsize,
                "ttl": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total, 3) if total else 0.0,
            }
