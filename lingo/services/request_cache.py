"""
Explicit request-scoped memoization

Resolvers receive a RequestCache argument instead of relying on ambient
per-request state. A fresh instance is created for every request.
"""
from typing import Any, Callable, Dict, Hashable

_MISSING = object()


class RequestCache:
    """Memoizes lookups for the lifetime of one request"""

    def __init__(self):
        self._values: Dict[Hashable, Any] = {}

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        value = self._values.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self._values[key] = value
        return value


def get_request_cache() -> RequestCache:
    """FastAPI dependency"""
    return RequestCache()
