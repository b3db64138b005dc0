"""
Accessor registry for settings nodes.

Keeps track of which keys may be read as named accessors (``node.key``) and
memoizes the child values built for each key.
"""

import re
import threading
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Tuple

ACCESSOR_PATTERN = re.compile(r"\w+", re.ASCII)

_MISSING = object()


def is_accessor_safe(key: Any) -> bool:
    """
    True only for keys made of word characters (letters, digits, underscore).

    Keys such as "some-setting#" or 'system("ls")' stay reachable through
    indexed access but are never treated as identifiers.
    """
    return isinstance(key, str) and ACCESSOR_PATTERN.fullmatch(key) is not None


class AccessorRegistry:
    """
    Per-node memo cache plus the named-accessor policy.

    Cache writes are serialized with a re-entrant lock, so concurrent first
    reads of the same key build the child once and every caller gets the same
    instance.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self.reserved: FrozenSet[str] = frozenset(reserved)
        self._cache: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def exposes(self, key: Any) -> bool:
        """
        Key is accessor-safe, not private and does not shadow a reserved
        attribute.

        Leading underscores are the hosting object's namespace (``_data``,
        ``_registry``), so such keys are index-only.
        """
        return is_accessor_safe(key) and not key.startswith("_") and key not in self.reserved

    def names(self, keys: Iterable[str]) -> List[str]:
        return [key for key in keys if self.exposes(key)]

    def lookup(self, key: str, build: Callable[[], Tuple[bool, Any]]) -> Any:
        """
        Return the memoized value for ``key``, building it on first use.

        ``build`` returns ``(cacheable, value)``; scalars are not cached since
        they are returned straight from the node's mapping.
        """
        cached = self._cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        with self._lock:
            cached = self._cache.get(key, _MISSING)
            if cached is not _MISSING:
                return cached
            cacheable, value = build()
            if cacheable:
                self._cache[key] = value
            return value

    def cached(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def is_cached(self, key: str) -> bool:
        return key in self._cache

    def remember(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def forget(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def lock(self) -> threading.RLock:
        return self._lock
