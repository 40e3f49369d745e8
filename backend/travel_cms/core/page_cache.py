"""
Rendering cache for public read routes.

Public list/detail responses are cached in-process with a TTL. Mutating
handlers schedule ``invalidate(...)`` with the public routes they affect;
an entry is dropped when its path equals an invalidated route or sits
below it (``/packages`` also drops ``/packages/goa-escape`` and every
query-string variant). Invalidating ``/`` drops the home feed.

Keys are built from the declared filters of a route (see ``query_key``), so
undeclared query parameters never create new entries. The store holds at
most ``page_cache_max_entries`` entries; expired ones are purged on write
and the oldest are evicted first.
"""

from typing import Any, Dict, Iterable, Optional, Tuple
import logging
import threading
import time
from urllib.parse import urlencode

from travel_cms.core.config import settings

logger = logging.getLogger(__name__)

HOME_ROUTE = "/"
HOME_CACHE_PATH = "/home"

_CACHE: Dict[str, Tuple[float, Any]] = {}
_LOCK = threading.Lock()


def _key(path: str, query: str = "") -> str:
    return f"{path}?{query}" if query else path


def query_key(**filters: Any) -> str:
    """Canonical query part of a cache key built from declared filters only."""
    return urlencode(sorted((k, v) for k, v in filters.items() if v is not None))


def get(path: str, query: str = "") -> Optional[Any]:
    key = _key(path, query)
    with _LOCK:
        entry = _CACHE.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if time.time() - stored_at >= settings.page_cache_ttl_seconds:
            del _CACHE[key]
            return None
        return value


def _purge_expired(now: float) -> None:
    ttl = settings.page_cache_ttl_seconds
    for k in [k for k, (stored_at, _) in _CACHE.items() if now - stored_at >= ttl]:
        del _CACHE[k]


def put(path: str, value: Any, query: str = "") -> Any:
    """Store a rendered response, evicting expired then oldest entries to stay under the cap."""
    key = _key(path, query)
    now = time.time()
    with _LOCK:
        _CACHE.pop(key, None)
        _purge_expired(now)
        while _CACHE and len(_CACHE) >= settings.page_cache_max_entries:
            del _CACHE[next(iter(_CACHE))]
        _CACHE[key] = (now, value)
    return value


def _matches(key: str, route: str) -> bool:
    path = key.split("?", 1)[0]
    if route == HOME_ROUTE:
        return path == HOME_CACHE_PATH
    return path == route or path.startswith(route.rstrip("/") + "/")


def invalidate(routes: Iterable[str]) -> int:
    """Drop every cached entry under the given public routes."""
    routes = list(routes)
    with _LOCK:
        stale = [k for k in _CACHE if any(_matches(k, r) for r in routes)]
        for k in stale:
            del _CACHE[k]
    logger.debug(f"Invalidated {len(stale)} cached entries for {routes}")
    return len(stale)


def clear() -> None:
    with _LOCK:
        _CACHE.clear()
