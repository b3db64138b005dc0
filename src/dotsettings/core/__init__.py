"""
dotsettings core module.

Exports the errors, logging, sources and namespace registry.
"""

# Exceptions and errors
from dotsettings.core.exceptions import (
    SettingsError,
    MissingSetting,
    UnknownNamespaceError,
    # Deserialization
    DeserializationError,
    DisallowedTypeError,
    BadAliasError,
    AliasCycleError,
    AliasExpansionError,
    ConfigSyntaxError,
    InvalidDocumentError,
    # Sources
    SourceError,
    SourceNotFoundError,
    InvalidSourceError,
    FetchError,
)

# Logging
from dotsettings.core.logging import (
    AsyncLogger,
    SensitiveDataMasker,
    PerformanceLogger,
    logger,  # Pre-configured global logger
)

# Sources
from dotsettings.core.sources import (
    SourceLoader,
    ALLOWED_URL_SCHEMES,
    describe,
    expand_environment,
    is_url,
)

# Namespaces
from dotsettings.core.namespaces import (
    NamespaceDeclaration,
    NamespaceRegistry,
    Namespace,
    declare,
    get_registry,
)

# Public exports list
__all__ = [
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
    # Logging
    "AsyncLogger",
    "SensitiveDataMasker",
    "PerformanceLogger",
    "logger",
    # Sources
    "SourceLoader",
    "ALLOWED_URL_SCHEMES",
    "describe",
    "expand_environment",
    "is_url",
    # Namespaces
    "NamespaceDeclaration",
    "NamespaceRegistry",
    "Namespace",
    "declare",
    "get_registry",
]
