"""
Recursive key-case transformation.

Both directions rebuild the whole tree as plain dicts and lists; the source
node is only read, never modified.
"""

from typing import Any, Callable, Dict

from dotsettings.tree.node import ConfigNode
from dotsettings.tree.symbols import Symbol


def _transform(value: Any, convert_key: Callable[[Any], Any]) -> Any:
    if isinstance(value, ConfigNode):
        return {convert_key(key): _transform(item, convert_key) for key, item in value.items()}
    if isinstance(value, dict):
        return {convert_key(key): _transform(item, convert_key) for key, item in value.items()}
    if isinstance(value, list):
        return [_transform(item, convert_key) for item in value]
    return value


def _to_symbol(key: Any) -> Any:
    # Non-string keys (ints, dates) have no atom form and are kept as-is
    if isinstance(key, str):
        return key if isinstance(key, Symbol) else Symbol(key)
    return key


def _to_string(key: Any) -> str:
    return str.__str__(key) if isinstance(key, str) else str(key)


def to_atom_keyed(node: ConfigNode) -> Dict[Any, Any]:
    """Plain dict tree with ``Symbol`` keys."""
    return _transform(node, _to_symbol)


def to_string_keyed(node: ConfigNode) -> Dict[str, Any]:
    """Plain dict tree with ``str`` keys."""
    return _transform(node, _to_string)
