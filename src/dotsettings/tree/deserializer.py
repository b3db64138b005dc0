"""
Secure YAML deserializer.

Turns already pre-processed text into a plain value tree. The type allow-list
is the only security boundary of this module: a settings document may carry
dates, symbols and decimals, but it can never instantiate application types
unless the caller registers them explicitly.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

import yaml

from dotsettings.core.exceptions import (
    AliasCycleError,
    AliasExpansionError,
    BadAliasError,
    ConfigSyntaxError,
    DisallowedTypeError,
    InvalidDocumentError,
)
from dotsettings.core.logging import logger, masker
from dotsettings.tree.symbols import SYMBOL_PATTERN, Symbol

YAML_TAG_PREFIX = "tag:yaml.org,2002:"
SYMBOL_TAG = "!symbol"
DECIMAL_TAG = "!decimal"

DEFAULT_PERMITTED_TYPES = frozenset(
    {"str", "int", "float", "bool", "null", "date", "timestamp", "symbol", "decimal"}
)
# Types a caller may opt into on top of the defaults
OPTIONAL_TYPES = frozenset({"binary", "set", "omap", "pairs"})
KNOWN_TYPES = DEFAULT_PERMITTED_TYPES | OPTIONAL_TYPES

DEFAULT_MAX_ALIAS_EXPANSION = 10_000

_STRUCTURAL_TAGS = frozenset(
    {YAML_TAG_PREFIX + "map", YAML_TAG_PREFIX + "seq", YAML_TAG_PREFIX + "merge"}
)

_TAG_TYPES = {
    YAML_TAG_PREFIX + "str": "str",
    YAML_TAG_PREFIX + "int": "int",
    YAML_TAG_PREFIX + "float": "float",
    YAML_TAG_PREFIX + "bool": "bool",
    YAML_TAG_PREFIX + "null": "null",
    YAML_TAG_PREFIX + "binary": "binary",
    YAML_TAG_PREFIX + "set": "set",
    YAML_TAG_PREFIX + "omap": "omap",
    YAML_TAG_PREFIX + "pairs": "pairs",
    SYMBOL_TAG: "symbol",
    DECIMAL_TAG: "decimal",
}

TypeFactory = Callable[[Any], Any]


def _short_tag(tag: str) -> str:
    if tag.startswith(YAML_TAG_PREFIX):
        return "!!" + tag[len(YAML_TAG_PREFIX):]
    return tag


def _line_of(node_or_event: Any) -> Optional[int]:
    mark = getattr(node_or_event, "start_mark", None)
    return mark.line + 1 if mark is not None else None


class _GuardMixin:
    """
    Alias and type guards shared by the safe and unsafe loaders.

    Aliases are checked while composing (before any object exists), types are
    checked right before each node is constructed.
    """

    def configure_guards(
        self,
        permitted_types: frozenset,
        custom_types: Mapping[str, TypeFactory],
        allow_aliases: bool,
        max_alias_expansion: int,
        unsafe: bool,
    ) -> None:
        self.permitted_types = permitted_types
        self.custom_types = dict(custom_types)
        self.allow_aliases = allow_aliases
        self.max_alias_expansion = max_alias_expansion
        self.unsafe = unsafe
        self._open_anchors: set = set()
        self._subtree_sizes: Dict[Any, int] = {}
        self._expanded_nodes = 0

    # ------------------------------------------------------------------
    # Composition: alias policy
    # ------------------------------------------------------------------

    def compose_node(self, parent, index):
        if self.check_event(yaml.AliasEvent):
            event = self.peek_event()
            anchor = event.anchor
            line = _line_of(event)
            if not self.allow_aliases:
                raise BadAliasError(anchor, "aliases are disabled", line=line)
            if anchor in self._open_anchors:
                raise AliasCycleError(anchor, line=line)
            if anchor not in self.anchors:
                raise BadAliasError(anchor, "anchor is not defined", line=line)
            self._charge_expansion(anchor, self.anchors[anchor], line)
            return super().compose_node(parent, index)

        anchor = self.peek_event().anchor
        if anchor is None:
            return super().compose_node(parent, index)

        self._open_anchors.add(anchor)
        try:
            return super().compose_node(parent, index)
        finally:
            self._open_anchors.discard(anchor)

    def _charge_expansion(self, anchor: str, node: yaml.Node, line: Optional[int]) -> None:
        self._expanded_nodes += self._subtree_size(node)
        if self._expanded_nodes > self.max_alias_expansion:
            raise AliasExpansionError(anchor, self.max_alias_expansion, line=line)

    def _subtree_size(self, node: yaml.Node) -> int:
        size = self._subtree_sizes.get(node)
        if size is not None:
            return size

        if isinstance(node, yaml.MappingNode):
            size = 1 + sum(
                self._subtree_size(key) + self._subtree_size(value) for key, value in node.value
            )
        elif isinstance(node, yaml.SequenceNode):
            size = 1 + sum(self._subtree_size(item) for item in node.value)
        else:
            size = 1

        self._subtree_sizes[node] = size
        return size

    # ------------------------------------------------------------------
    # Construction: type allow-list
    # ------------------------------------------------------------------

    def construct_object(self, node, deep=False):
        if not self.unsafe and node not in self.constructed_objects:
            self._check_permitted(node)
        return super().construct_object(node, deep=deep)

    def _check_permitted(self, node: yaml.Node) -> None:
        tag = node.tag
        if tag in _STRUCTURAL_TAGS or tag in self.custom_types:
            return

        type_name = self._type_name(node)
        if type_name is None or type_name not in self.permitted_types:
            raise DisallowedTypeError(type_name or _short_tag(tag), line=_line_of(node))

    def _type_name(self, node: yaml.Node) -> Optional[str]:
        if node.tag == YAML_TAG_PREFIX + "timestamp":
            match = self.timestamp_regexp.match(node.value)
            if match is None:
                raise ConfigSyntaxError(_line_of(node), f"invalid timestamp {node.value!r}")
            return "date" if match.group("hour") is None else "timestamp"
        return _TAG_TYPES.get(node.tag)


def _construct_symbol(loader, node):
    return Symbol.from_literal(loader.construct_scalar(node))


def _construct_decimal(loader, node):
    literal = loader.construct_scalar(node)
    try:
        return Decimal(str(literal).strip())
    except InvalidOperation:
        raise ConfigSyntaxError(_line_of(node), f"invalid decimal {literal!r}")


def _construct_plain(loader, node):
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)


def _construct_tagged(loader, tag_suffix, node):
    """Catch-all for tags without a built-in constructor."""
    factory = loader.custom_types.get(node.tag)
    if factory is not None:
        return factory(_construct_plain(loader, node))
    if loader.unsafe:
        return _construct_plain(loader, node)
    # Only reachable if the guard was bypassed
    raise DisallowedTypeError(_short_tag(node.tag), line=_line_of(node))


class _GuardedLoader(_GuardMixin, yaml.SafeLoader):
    pass


class _UnsafeGuardedLoader(_GuardMixin, yaml.UnsafeLoader):
    pass


for _loader_cls in (_GuardedLoader, _UnsafeGuardedLoader):
    _loader_cls.add_implicit_resolver(SYMBOL_TAG, SYMBOL_PATTERN, [":"])
    _loader_cls.add_constructor(SYMBOL_TAG, _construct_symbol)
    _loader_cls.add_constructor(DECIMAL_TAG, _construct_decimal)
    _loader_cls.add_multi_constructor("", _construct_tagged)


class SecureDeserializer:
    """
    YAML deserializer with a type allow-list and an alias policy.

    Rules:
    1. Only permitted scalar kinds may appear as leaves
    2. Application types only through explicitly registered tags
    3. Aliases expand within a node budget and never recurse
    4. Unsafe mode must be asked for by name
    """

    def __init__(
        self,
        permitted_types: Optional[Iterable[str]] = None,
        custom_types: Optional[Mapping[str, TypeFactory]] = None,
        allow_aliases: bool = True,
        max_alias_expansion: int = DEFAULT_MAX_ALIAS_EXPANSION,
        unsafe: bool = False,
    ) -> None:
        permitted = (
            frozenset(permitted_types) if permitted_types is not None else DEFAULT_PERMITTED_TYPES
        )
        unknown = permitted - KNOWN_TYPES
        if unknown:
            raise ValueError(
                f"Unknown permitted types: {sorted(unknown)}. "
                f"Register application types through custom_types instead."
            )
        if max_alias_expansion < 0:
            raise ValueError("max_alias_expansion must be >= 0")

        self.permitted_types = permitted
        self.custom_types: Dict[str, TypeFactory] = dict(custom_types or {})
        self.allow_aliases = allow_aliases
        self.max_alias_expansion = max_alias_expansion
        self.unsafe = unsafe

    def with_types(self, *type_names: str, **custom_types: TypeFactory) -> "SecureDeserializer":
        """Return a copy with an extended allow-list."""
        merged_custom = dict(self.custom_types)
        merged_custom.update(custom_types)
        return SecureDeserializer(
            permitted_types=self.permitted_types | frozenset(type_names),
            custom_types=merged_custom,
            allow_aliases=self.allow_aliases,
            max_alias_expansion=self.max_alias_expansion,
            unsafe=self.unsafe,
        )

    def parse(self, text: Union[str, bytes], source: Optional[str] = None) -> Any:
        """
        Parse a document into plain values.

        Empty documents (no content, only comments, or an explicit null)
        become an empty dict.

        Raises:
            DisallowedTypeError: Tag outside the allow-list
            BadAliasError: Alias disabled, undefined or over budget
            AliasCycleError: Alias to an anchor still being expanded
            ConfigSyntaxError: Malformed YAML
        """
        if self.unsafe:
            logger.warning(
                "Unsafe deserialization requested, type allow-list disabled",
                source=masker.mask(source or "<text>"),
            )
            loader = _UnsafeGuardedLoader(text)
        else:
            loader = _GuardedLoader(text)

        loader.configure_guards(
            permitted_types=self.permitted_types,
            custom_types=self.custom_types,
            allow_aliases=self.allow_aliases,
            max_alias_expansion=self.max_alias_expansion,
            unsafe=self.unsafe,
        )

        try:
            data = loader.get_single_data()
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            line = mark.line + 1 if mark is not None else None
            raise ConfigSyntaxError(line, e.problem or str(e)) from e
        except yaml.YAMLError as e:
            raise ConfigSyntaxError(None, str(e)) from e
        finally:
            loader.dispose()

        if data is None:
            return {}

        logger.debug(
            "Document parsed",
            source=masker.mask(source or "<text>"),
            root_type=type(data).__name__,
        )
        return data

    def parse_document(self, text: Union[str, bytes], source: Optional[str] = None) -> Dict[Any, Any]:
        """Parse a document whose root must be a mapping."""
        data = self.parse(text, source=source)
        if not isinstance(data, dict):
            raise InvalidDocumentError(
                f"Settings document root must be a mapping, got {type(data).__name__}",
                context={"source": source},
            )
        return data
