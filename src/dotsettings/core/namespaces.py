"""
Namespaced settings singletons.

Each declared namespace owns at most one live root node, built lazily on
first access from its source descriptor and rebuilt on ``reload()``.
"""

import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from dotsettings.core.exceptions import (
    InvalidDocumentError,
    InvalidSourceError,
    MissingSetting,
    UnknownNamespaceError,
)
from dotsettings.core.logging import PerformanceLogger, logger
from dotsettings.core.sources import SourceLoader, describe
from dotsettings.tree.deserializer import SecureDeserializer
from dotsettings.tree.node import ConfigNode

Preprocessor = Callable[[str], str]


class NamespaceDeclaration(BaseModel):
    """
    Binding between a namespace name and its source.

    Resolved once at declaration time, never per call.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Namespace identifier")
    source: Any = Field(default=None, description="Path, http(s) URL or literal mapping")
    root_key: Optional[str] = Field(
        default=None, description="Top-level key extracted before use (e.g. 'production')"
    )
    suppress_errors: bool = Field(default=False, description="Missing keys read as None")

    @field_validator("source")
    @classmethod
    def _check_source(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, Path, Mapping, ConfigNode)):
            return value
        raise ValueError(f"unsupported source type {type(value).__name__}")

    @property
    def is_literal(self) -> bool:
        return isinstance(self.source, (Mapping, ConfigNode))

    @property
    def label(self) -> str:
        if self.is_literal:
            return f"'{self.name}' literal settings"
        return describe(self.source)


class _Binding:
    def __init__(self, declaration: NamespaceDeclaration) -> None:
        self.declaration = declaration
        self.root: Optional[ConfigNode] = None
        self.lock = threading.Lock()


class NamespaceRegistry:
    """
    Registry of namespace singletons.

    Guarantees:
    1. One construction per namespace under concurrent first access
    2. reload() swaps roots atomically, last reload wins
    3. Nodes handed out before a reload stay valid, just unreachable
    """

    def __init__(
        self,
        loader: Optional[SourceLoader] = None,
        deserializer: Optional[SecureDeserializer] = None,
        preprocess: Optional[Preprocessor] = None,
    ) -> None:
        self.loader = loader or SourceLoader()
        self.deserializer = deserializer or SecureDeserializer()
        self.preprocess = preprocess
        self._bindings: Dict[str, _Binding] = {}
        self._lock = threading.Lock()
        self._perf = PerformanceLogger()

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def declare(
        self,
        name: str,
        source: Any,
        root_key: Optional[str] = None,
        suppress_errors: bool = False,
    ) -> "Namespace":
        """
        Declare (or redeclare) a namespace and return its handle.

        Redeclaring drops any root built from the previous declaration.
        """
        try:
            declaration = NamespaceDeclaration(
                name=name, source=source, root_key=root_key, suppress_errors=suppress_errors
            )
        except ValidationError as e:
            raise InvalidSourceError(
                f"Invalid declaration for namespace '{name}': {e.errors()[0]['msg']}",
                context={"namespace": name},
                cause=e,
            ) from e

        with self._lock:
            self._bindings[name] = _Binding(declaration)

        logger.debug(
            "Namespace declared",
            namespace=name,
            source=declaration.label,
            root_key=root_key,
            suppress_errors=suppress_errors,
        )
        return Namespace(self, name)

    def namespace(self, name: str) -> "Namespace":
        self._binding(name)
        return Namespace(self, name)

    def declaration(self, name: str) -> NamespaceDeclaration:
        return self._binding(name).declaration

    def names(self) -> List[str]:
        with self._lock:
            return list(self._bindings)

    def forget(self, name: str) -> None:
        with self._lock:
            self._bindings.pop(name, None)

    def _binding(self, name: str) -> _Binding:
        binding = self._bindings.get(name)
        if binding is None:
            raise UnknownNamespaceError(name)
        return binding

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def root(self, name: str) -> ConfigNode:
        """Root node of ``name``, constructed on first use."""
        binding = self._binding(name)
        root = binding.root
        if root is not None:
            return root

        with binding.lock:
            if binding.root is None:
                binding.root = self._construct(binding.declaration)
            return binding.root

    def is_loaded(self, name: str) -> bool:
        return self._binding(name).root is not None

    def load(self, name: str) -> bool:
        """Make sure the root exists. Idempotent."""
        self.root(name)
        return True

    def reload(self, name: str) -> bool:
        """
        Discard the root (cached children and runtime keys included) and
        rebuild it from the original source.
        """
        binding = self._binding(name)
        with binding.lock:
            binding.root = None
            binding.root = self._construct(binding.declaration)
        logger.info("Namespace reloaded", namespace=name)
        return True

    def get(self, name: str, dotted: str) -> Any:
        return self.root(name).resolve_path(dotted)

    def set(self, name: str, key: Any, value: Any) -> None:
        self.root(name).set(key, value)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _construct(self, declaration: NamespaceDeclaration) -> ConfigNode:
        label = declaration.label
        try:
            with self._perf.measure("namespace_construct", namespace=declaration.name):
                data = self._read(declaration, label)
                if declaration.root_key is not None:
                    data = self._extract_root(declaration, data, label)
                root = ConfigNode(
                    data, section=label, suppress_errors=declaration.suppress_errors
                )
        except Exception as e:
            logger.error(
                "Namespace construction failed",
                namespace=declaration.name,
                source=label,
                error=str(e),
            )
            raise

        logger.info(
            "Namespace constructed", namespace=declaration.name, source=label, keys=len(root)
        )
        return root

    def _read(self, declaration: NamespaceDeclaration, label: str) -> Mapping:
        source = declaration.source
        if isinstance(source, ConfigNode):
            return source.snapshot()
        if isinstance(source, Mapping):
            # Literal sources are re-wrapped, never re-fetched
            return source

        text = self.loader.read(source)
        if self.preprocess is not None:
            text = self.preprocess(text)
        return self.deserializer.parse_document(text, source=label)

    def _extract_root(
        self, declaration: NamespaceDeclaration, data: Mapping, label: str
    ) -> Mapping:
        key = declaration.root_key
        if key not in data:
            if declaration.suppress_errors:
                return {}
            raise MissingSetting(key, label)

        value = data[key]
        if value is None:
            return {}
        if isinstance(value, ConfigNode):
            return value.snapshot()
        if not isinstance(value, Mapping):
            raise InvalidDocumentError(
                f"Namespace '{key}' in {label} must be a mapping, got {type(value).__name__}",
                context={"root_key": key, "source": label},
            )
        return value


class Namespace:
    """
    Application-facing handle of one declared namespace.

    Usage:
    ```
    settings = registry.declare("app", "config/app.yml", root_key="production")
    settings.get("database.host")
    settings["some-key"]
    settings.database.port
    settings.reload()
    ```
    """

    def __init__(self, registry: NamespaceRegistry, name: str) -> None:
        self._registry = registry
        self._name = name

    def root(self) -> ConfigNode:
        return self._registry.root(self._name)

    def load(self) -> bool:
        return self._registry.load(self._name)

    def reload(self) -> bool:
        return self._registry.reload(self._name)

    def get(self, dotted: str) -> Any:
        """Dotted lookup, e.g. ``get("setting1.setting1_child")``."""
        return self._registry.get(self._name, dotted)

    def set(self, key: Any, value: Any) -> None:
        self._registry.set(self._name, key, value)

    def probe(self, key: Any) -> Any:
        return self.root().probe(key)

    def __getitem__(self, key: Any) -> Any:
        return self.probe(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: Any) -> bool:
        return key in self.root()

    def exposes(self, key: Any) -> bool:
        """True if ``key`` may be read as ``namespace.key``."""
        return key not in NAMESPACE_RESERVED_NAMES and self.root().exposes(key)

    def accessor_names(self) -> List[str]:
        return [key for key in self.root().keys() if self.exposes(key)]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or "_registry" not in self.__dict__:
            raise AttributeError(name)
        if not self.exposes(name):
            raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")
        return self.root().get(name)

    def __repr__(self) -> str:
        return f"Namespace({self._name!r})"


# Handle attributes a settings key must never shadow
NAMESPACE_RESERVED_NAMES = frozenset(dir(Namespace)) | {"_registry", "_name"}


_default_registry: Optional[NamespaceRegistry] = None
_default_registry_lock = threading.Lock()


def get_registry() -> NamespaceRegistry:
    """Get the process-wide NamespaceRegistry instance."""
    global _default_registry
    if _default_registry is None:
        with _default_registry_lock:
            if _default_registry is None:
                _default_registry = NamespaceRegistry()
    return _default_registry


def declare(
    name: str, source: Any, root_key: Optional[str] = None, suppress_errors: bool = False
) -> Namespace:
    """Declare a namespace in the process-wide registry."""
    return get_registry().declare(
        name, source, root_key=root_key, suppress_errors=suppress_errors
    )
