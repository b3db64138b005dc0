"""
Deep merge of settings trees.

Merge policy:
- mapping + mapping -> recursive merge by key
- anything else -> overlay value replaces the base value wholesale
  (lists are replaced, never concatenated)
- keys only present in the base are kept
"""

from typing import Any, Dict, Mapping

from dotsettings.tree.node import ConfigNode


def _as_mapping(value: Any) -> Mapping:
    if isinstance(value, ConfigNode):
        return value.snapshot()
    if isinstance(value, Mapping):
        return value
    raise TypeError(f"Deep merge requires mappings, got {type(value).__name__}")


def _is_mapping(value: Any) -> bool:
    return isinstance(value, (Mapping, ConfigNode))


def _merge_mappings(base: Mapping, overlay: Mapping) -> Dict[Any, Any]:
    # Only mappings on an altered path are rebuilt; untouched values are shared
    result: Dict[Any, Any] = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        if key in result and _is_mapping(current) and _is_mapping(value):
            result[key] = _merge_mappings(_as_mapping(current), _as_mapping(value))
        elif isinstance(value, ConfigNode):
            result[key] = value.snapshot()
        else:
            result[key] = value
    return result


def merge_mappings(base: Any, overlay: Any) -> Dict[Any, Any]:
    """Merge into a new plain dict without touching either input."""
    return _merge_mappings(_as_mapping(base), _as_mapping(overlay))


def deep_merge(base: Any, overlay: Any) -> ConfigNode:
    """
    Return a new node with ``overlay`` merged over ``base``.

    ``base`` is never modified. When it is a node, the result keeps its
    section label and suppress flag.
    """
    merged = merge_mappings(base, overlay)
    if isinstance(base, ConfigNode):
        return type(base)(merged, section=base.section, suppress_errors=base.suppress_errors)
    return ConfigNode(merged)


def deep_merge_in_place(target: ConfigNode, overlay: Any) -> ConfigNode:
    """
    Merge ``overlay`` into ``target`` itself.

    The node keeps its identity, so holders of ``target`` see the change;
    previously memoized children are dropped.
    """
    target.replace(merge_mappings(target, overlay))
    return target
