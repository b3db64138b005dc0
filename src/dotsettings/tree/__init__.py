"""
Settings tree: nodes, secure deserialization, merge and key transforms.
"""

from dotsettings.tree.symbols import Symbol
from dotsettings.tree.accessors import AccessorRegistry, is_accessor_safe
from dotsettings.tree.node import ConfigNode
from dotsettings.tree.deserializer import (
    SecureDeserializer,
    DEFAULT_PERMITTED_TYPES,
    OPTIONAL_TYPES,
    DEFAULT_MAX_ALIAS_EXPANSION,
)
from dotsettings.tree.merge import deep_merge, deep_merge_in_place, merge_mappings
from dotsettings.tree.keys import to_atom_keyed, to_string_keyed

__all__ = [
    "Symbol",
    "AccessorRegistry",
    "is_accessor_safe",
    "ConfigNode",
    "SecureDeserializer",
    "DEFAULT_PERMITTED_TYPES",
    "OPTIONAL_TYPES",
    "DEFAULT_MAX_ALIAS_EXPANSION",
    "deep_merge",
    "deep_merge_in_place",
    "merge_mappings",
    "to_atom_keyed",
    "to_string_keyed",
]
