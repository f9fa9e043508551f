# grain_planner/climate/cache.py
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from .. import config as cfg

logger = logging.getLogger(__name__)


class ResponseCache:
    """
    In-memory cache for weather API payloads with TTL.

    Built by the caller and handed to the client; entries expire after
    `ttl_s` seconds and the oldest entry is evicted past `max_entries`.
    """

    def __init__(
        self,
        ttl_s: float = cfg.CACHE_TTL_S,
        max_entries: int = cfg.CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self.ttl_s = float(ttl_s)
        self.max_entries = int(max_entries)
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        item = self._entries.get(key)
        if item is None:
            return None
        value, stored_at = item
        if self._clock() - stored_at >= self.ttl_s:
            del self._entries[key]
            return None
        logger.debug("cache hit: %s", key)
        return value

    def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = (value, self._clock())
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def clear_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, t) in self._entries.items() if now - t >= self.ttl_s]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._entries), "entries": list(self._entries.keys())}
