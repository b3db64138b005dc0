"""
Settings tree node.

A ``ConfigNode`` owns a mapping (it is not a dict subclass) and resolves keys
through a small protocol:

1. Missing key: ``MissingSetting`` or ``None`` when errors are suppressed
2. Nested mapping: wrapped once into a child node and memoized
3. List of mappings: wrapped once into a list of child nodes and memoized
4. Anything else: returned unchanged
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from dotsettings.core.exceptions import MissingSetting
from dotsettings.tree.accessors import AccessorRegistry


def _key(key: Any) -> str:
    return key if type(key) is str else str(key)


def _is_mapping(value: Any) -> bool:
    return isinstance(value, (Mapping, ConfigNode))


def _unwrap(value: Any) -> Any:
    if isinstance(value, ConfigNode):
        return value.snapshot()
    if isinstance(value, list) and any(isinstance(item, ConfigNode) for item in value):
        return [_unwrap(item) for item in value]
    return value


class ConfigNode:
    """
    Dot-navigable settings section.

    Access styles:
    - ``node.get("key")``: raises MissingSetting when absent (unless suppressed)
    - ``node["key"]`` / ``node.probe("key")``: None when absent
    - ``node.key``: named accessor, only for word-character keys that do not
      shadow a ConfigNode attribute
    - ``node.resolve_path("a.b.c")``: dotted traversal

    Missing named accessors raise ``MissingSetting``, which is also an
    ``AttributeError`` so ``getattr(node, "key", default)`` keeps working.
    """

    def __init__(
        self,
        data: Optional[Any] = None,
        section: Optional[str] = None,
        suppress_errors: bool = False,
    ) -> None:
        self._registry = AccessorRegistry(reserved=RESERVED_NAMES)
        self._data: Dict[str, Any] = self._normalize(data)
        self.section = section
        self.suppress_errors = suppress_errors

    @staticmethod
    def _normalize(data: Optional[Any]) -> Dict[str, Any]:
        if data is None:
            return {}
        if isinstance(data, ConfigNode):
            data = data.snapshot()
        if not isinstance(data, Mapping):
            raise TypeError(f"ConfigNode wraps a mapping, got {type(data).__name__}")
        return {_key(key): value for key, value in data.items()}

    # ------------------------------------------------------------------
    # Key resolution
    # ------------------------------------------------------------------

    def get(self, key: Any) -> Any:
        """Resolve ``key`` or fail with MissingSetting (None if suppressed)."""
        key = _key(key)
        found, value = self._resolve(key)
        if not found:
            return self._missing(key)
        return value

    def probe(self, key: Any) -> Any:
        """Resolve ``key``; absence is always None."""
        _, value = self._resolve(_key(key))
        return value

    def _resolve(self, key: str) -> Tuple[bool, Any]:
        if key not in self._data:
            return False, None
        return True, self._registry.lookup(key, lambda: self._build(key))

    def _build(self, key: str) -> Tuple[bool, Any]:
        if key not in self._data:
            return False, None
        value = self._data[key]

        if isinstance(value, ConfigNode):
            return True, value

        if isinstance(value, Mapping):
            return True, self._child(value, self._child_section(key))

        if isinstance(value, list) and value and all(_is_mapping(item) for item in value):
            children = [
                item if isinstance(item, ConfigNode) else self._child(item, None) for item in value
            ]
            return True, children

        return False, value

    def _child(self, data: Mapping, section: Optional[str]) -> "ConfigNode":
        return type(self)(data, section=section, suppress_errors=self.suppress_errors)

    def _child_section(self, key: str) -> str:
        if self.section is None:
            return f"'{key}' section"
        return f"'{key}' section in {self.section}"

    def _missing(self, key: str, section: Optional[str] = None) -> None:
        if self.suppress_errors:
            return None
        raise MissingSetting(key, section if section is not None else self.section)

    def resolve_path(self, dotted: str) -> Any:
        """
        Fold ``get`` over the dot-separated segments of ``dotted``.

        Stops at the first missing segment; descending into a scalar counts
        as missing.
        """
        segments = dotted.split(".")
        node = self
        value: Any = self
        for index, segment in enumerate(segments):
            if not isinstance(value, ConfigNode):
                if value is None and node.suppress_errors:
                    return None
                parent = ".".join(segments[:index])
                return node._missing(segment, section=f"'{parent}' value in {node.section}")
            node = value
            value = node.get(segment)
        return value

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, key: Any, value: Any) -> None:
        """
        Upsert ``key``.

        Mappings are wrapped right away so reads look the same whether the
        value came from the document or from a runtime write.
        """
        key = _key(key)
        with self._registry.lock:
            if isinstance(value, ConfigNode):
                self._data[key] = value
                self._registry.remember(key, value)
            elif isinstance(value, Mapping):
                child = self._child(value, self.section)
                self._data[key] = child
                self._registry.remember(key, child)
            else:
                self._data[key] = value
                self._registry.forget(key)

    def replace(self, data: Any) -> None:
        """Swap the whole mapping, dropping every memoized child."""
        normalized = self._normalize(data)
        with self._registry.lock:
            self._data = normalized
            self._registry.clear()

    def __getitem__(self, key: Any) -> Any:
        return self.probe(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    # ------------------------------------------------------------------
    # Named accessors
    # ------------------------------------------------------------------

    def exposes(self, key: Any) -> bool:
        """True if ``key`` may be read as ``node.key``."""
        return self._registry.exposes(key)

    def accessor_names(self) -> List[str]:
        return self._registry.names(list(self._data))

    def __getattr__(self, name: str) -> Any:
        # Only called when normal lookup fails, so methods always win over keys
        if name.startswith("__") or "_registry" not in self.__dict__:
            raise AttributeError(name)
        if not self._registry.exposes(name):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return self.get(name)

    def __dir__(self) -> List[str]:
        return sorted(set(super().__dir__()) | set(self.accessor_names()))

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def keys(self) -> List[str]:
        return list(self._data)

    def items(self) -> List[Tuple[str, Any]]:
        """Key/value pairs with children resolved (and memoized)."""
        return [(key, self.probe(key)) for key in list(self._data)]

    def snapshot(self) -> Dict[str, Any]:
        """
        Shallow plain copy of this node's mapping.

        Memoized children are unwrapped recursively so runtime writes are
        included; untouched nested mappings are shared, not copied.
        """
        with self._registry.lock:
            return {
                key: _unwrap(self._registry.cached(key, value))
                for key, value in self._data.items()
            }

    def to_dict(self) -> Dict[str, Any]:
        """Fully plain, string-keyed copy."""
        return self.stringify_keys()

    def __contains__(self, key: Any) -> bool:
        return _key(key) in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ConfigNode):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(section={self.section!r}, keys={list(self._data)!r})"

    def __reduce__(self) -> Tuple[Any, ...]:
        # Rebuilt from plain data, the lock and memo cache are never copied
        return (type(self), (self.snapshot(), self.section, self.suppress_errors))

    # ------------------------------------------------------------------
    # Merge and key-case helpers
    # ------------------------------------------------------------------

    def deep_merge(self, overlay: Any) -> "ConfigNode":
        from dotsettings.tree.merge import deep_merge

        return deep_merge(self, overlay)

    def deep_merge_in_place(self, overlay: Any) -> "ConfigNode":
        from dotsettings.tree.merge import deep_merge_in_place

        return deep_merge_in_place(self, overlay)

    def symbolize_keys(self) -> Dict[Any, Any]:
        from dotsettings.tree.keys import to_atom_keyed

        return to_atom_keyed(self)

    def stringify_keys(self) -> Dict[str, Any]:
        from dotsettings.tree.keys import to_string_keyed

        return to_string_keyed(self)


# Keys with these names are still stored, but only reachable by index
RESERVED_NAMES = frozenset(dir(ConfigNode)) | {"section", "suppress_errors", "_data", "_registry"}
