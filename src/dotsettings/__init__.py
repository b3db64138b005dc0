"""
dotsettings - namespaced, dot-navigable application settings.

Settings trees loaded from YAML files or HTTP(S) URLs, with an allow-listed
deserializer and one lazily built singleton per namespace.
"""

from dotsettings._version import __version__, __version_info__

# Core must be imported before tree: namespaces pulls in the tree package
from dotsettings.core import (
    logger,
    SettingsError,
    MissingSetting,
    UnknownNamespaceError,
    DeserializationError,
    DisallowedTypeError,
    BadAliasError,
    AliasCycleError,
    AliasExpansionError,
    ConfigSyntaxError,
    InvalidDocumentError,
    SourceError,
    SourceNotFoundError,
    InvalidSourceError,
    FetchError,
    SourceLoader,
    expand_environment,
    NamespaceRegistry,
    Namespace,
    declare,
    get_registry,
)

# Settings tree
from dotsettings.tree import (
    Symbol,
    ConfigNode,
    SecureDeserializer,
    deep_merge,
    deep_merge_in_place,
    to_atom_keyed,
    to_string_keyed,
)

# Package metadata
__all__ = [
    # Version info
    "__version__",
    "__version_info__",
    # Core
    "logger",
    "SourceLoader",
    "expand_environment",
    "NamespaceRegistry",
    "Namespace",
    "declare",
    "get_registry",
    # Exceptions
    "SettingsError",
    "MissingSetting",
    "UnknownNamespaceError",
    "DeserializationError",
    "DisallowedTypeError",
    "BadAliasError",
    "AliasCycleError",
    "AliasExpansionError",
    "ConfigSyntaxError",
    "InvalidDocumentError",
    "SourceError",
    "SourceNotFoundError",
    "InvalidSourceError",
    "FetchError",
    # Tree
    "Symbol",
    "ConfigNode",
    "SecureDeserializer",
    "deep_merge",
    "deep_merge_in_place",
    "to_atom_keyed",
    "to_string_keyed",
]
