"""
Unified exception hierarchy for dotsettings.
SINGLE SOURCE of errors raised by the settings tree, the deserializer and the sources.
"""

from typing import Dict, Any, Optional, List


# ============================================================================
# PART 1: BASE ERROR
# ============================================================================


class SettingsError(Exception):
    """
    Base error of dotsettings.

    Features:
    1. Structured serialization
    2. Rich context
    3. Resolution suggestions
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        self.message: str = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[Exception] = cause
        self.suggestions: List[str] = []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to a plain dictionary.

        Returns:
            {
                "code": "MissingSetting",
                "message": "Missing setting 'port' in config/app.yml",
                "context": {...}
            }
        """
        result: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }

        if self.cause:
            result["cause"] = {"type": type(self.cause).__name__, "message": str(self.cause)}

        if self.suggestions:
            result["suggestions"] = self.suggestions

        return result

    def add_suggestion(self, suggestion: str) -> None:
        """
        Add a resolution suggestion to the error.

        Suggestions accumulate so the caller can show several options.

        Args:
            suggestion: Suggestion text
        """
        if not suggestion or not isinstance(suggestion, str):
            return

        if suggestion not in self.suggestions:
            self.suggestions.append(suggestion)


# ============================================================================
# PART 2: LOOKUP ERRORS (the only suppressible kind)
# ============================================================================


class MissingSetting(SettingsError, AttributeError):
    """
    A key is absent from a settings node.

    The message embeds the section chain, e.g.
    "Missing setting 'erlang' in 'language' section in config/app.yml".

    Also an AttributeError: named accessors raise it, and ``hasattr`` /
    ``getattr(node, key, default)`` must keep their usual meaning.
    """

    def __init__(self, key: str, section: Optional[str] = None) -> None:
        self.key = key
        self.section = section
        if section is None:
            message = f"Missing setting '{key}'"
        else:
            message = f"Missing setting '{key}' in {section}"
        super().__init__(message, context={"key": key, "section": section})


class UnknownNamespaceError(SettingsError):
    """Lookup of a namespace that was never declared in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Namespace '{name}' is not declared", context={"namespace": name})
        self.add_suggestion("Declare it first with registry.declare(name, source)")


# ============================================================================
# PART 3: DESERIALIZATION ERRORS (never suppressed)
# ============================================================================


class DeserializationError(SettingsError):
    """Error while turning source text into a value tree."""

    pass


class DisallowedTypeError(DeserializationError):
    """A tagged value whose type is not in the allow-list."""

    def __init__(self, type_name: str, line: Optional[int] = None) -> None:
        self.type_name = type_name
        self.line = line
        location = f" (line {line})" if line is not None else ""
        super().__init__(
            f"Tried to load disallowed type '{type_name}'{location}",
            context={"type_name": type_name, "line": line},
        )
        self.add_suggestion("Add the type to permitted_types or register it in custom_types")


class BadAliasError(DeserializationError):
    """An alias that cannot be expanded (aliases disabled or undefined anchor)."""

    def __init__(self, anchor: str, reason: str, line: Optional[int] = None) -> None:
        self.anchor = anchor
        self.line = line
        super().__init__(
            f"Cannot expand alias '*{anchor}': {reason}",
            context={"anchor": anchor, "line": line},
        )


class AliasCycleError(BadAliasError):
    """An alias that refers to an anchor still being expanded."""

    def __init__(self, anchor: str, line: Optional[int] = None) -> None:
        super().__init__(anchor, "anchor refers to itself", line=line)


class AliasExpansionError(BadAliasError):
    """Alias expansion went over the configured node budget."""

    def __init__(self, anchor: str, limit: int, line: Optional[int] = None) -> None:
        self.limit = limit
        super().__init__(anchor, f"expansion exceeds {limit} nodes", line=line)


class ConfigSyntaxError(DeserializationError):
    """Malformed source document."""

    def __init__(self, line: Optional[int], message: str) -> None:
        self.line = line
        self.problem = message
        location = f"line {line}: " if line is not None else ""
        super().__init__(f"{location}{message}", context={"line": line})


class InvalidDocumentError(DeserializationError):
    """The document parsed, but its root is not a mapping."""

    pass


# ============================================================================
# PART 4: SOURCE ERRORS (never suppressed)
# ============================================================================


class SourceError(SettingsError):
    """Error while reading the raw settings document."""

    pass


class SourceNotFoundError(SourceError):
    """Local settings file does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Settings file not found: {path}", context={"path": path})


class InvalidSourceError(SourceError):
    """No source, or a source URI rejected before any I/O."""

    pass


class FetchError(SourceError):
    """
    Remote source could not be fetched.

    Covers non-2xx responses (redirects included, they are never followed)
    and transport failures.
    """

    def __init__(
        self, url: str, message: str, status: Optional[int] = None, cause: Optional[Exception] = None
    ) -> None:
        self.url = url
        self.status = status
        super().__init__(
            f"Failed to fetch {url}: {message}",
            context={"url": url, "status": status},
            cause=cause,
        )
