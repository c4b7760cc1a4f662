"""
Page-props cache with time-based regeneration.

Props are served from memory until they are older than the revalidate
interval. A rebuild that fails with a ContentError keeps serving the previous
props; any other error (a page that no longer exists) drops the entry.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from cms import ContentError
from logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


@dataclass
class CacheEntry:
    props: Any
    built_at: float


class PageCache:
    def __init__(self, revalidate_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.revalidate_seconds = revalidate_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get_or_build(self, key: str, builder: Callable[[], Any]) -> Any:
        with self._lock:
            entry = self._entries.get(key)
        now = self._clock()
        if entry and now - entry.built_at < self.revalidate_seconds:
            return entry.props

        try:
            props = builder()
        except ContentError:
            if entry is None:
                raise
            logger.exception("Regenerating %s failed; serving stale page", key)
            return entry.props
        except Exception:
            if entry is not None:
                with self._lock:
                    self._entries.pop(key, None)
            raise

        with self._lock:
            self._entries[key] = CacheEntry(props=props, built_at=self._clock())
        return props

    def invalidate(self, key: Optional[str] = None) -> int:
        """Drop one page (or every page when key is None); returns how many were dropped"""
        with self._lock:
            if key is None:
                count = len(self._entries)
                self._entries.clear()
                return count
            dropped = [k for k in self._entries if k == key or k.startswith(f"{key}?")]
            for k in dropped:
                del self._entries[k]
            return len(dropped)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
