"""
Tests for the allow-listed YAML deserializer.
"""

import datetime
from decimal import Decimal

import pytest

from dotsettings.core.exceptions import (
    AliasCycleError,
    AliasExpansionError,
    BadAliasError,
    ConfigSyntaxError,
    DisallowedTypeError,
    InvalidDocumentError,
)
from dotsettings.tree.deserializer import DEFAULT_MAX_ALIAS_EXPANSION, SecureDeserializer
from dotsettings.tree.symbols import Symbol

LAUGHS_BASE = """\
a: &a [x, x, x, x, x, x, x, x, x, x]
b: &b [*a, *a, *a, *a, *a, *a, *a, *a, *a, *a]
c: &c [*b, *b, *b, *b, *b, *b, *b, *b, *b, *b]
"""
LAUGHS_DEEP = LAUGHS_BASE + "d: [*c, *c, *c, *c, *c, *c, *c, *c, *c, *c]\n"


@pytest.fixture
def deserializer():
    return SecureDeserializer()


class TestPermittedTypes:
    def test_plain_scalars(self, deserializer):
        data = deserializer.parse("s: text\ni: 1\nf: 1.5\nb: true\nn: ~\n")
        assert data == {"s": "text", "i": 1, "f": 1.5, "b": True, "n": None}

    def test_date_and_timestamp(self, deserializer):
        data = deserializer.parse("day: 2020-01-02\nat: 2020-01-02 10:30:00\n")
        assert data["day"] == datetime.date(2020, 1, 2)
        assert data["at"] == datetime.datetime(2020, 1, 2, 10, 30)

    def test_symbol(self, deserializer):
        data = deserializer.parse("env: :production\nquoted: ':production'\n")
        assert isinstance(data["env"], Symbol)
        assert data["env"] == "production"
        assert repr(data["env"]) == ":production"
        assert type(data["quoted"]) is str
        assert data["quoted"] == ":production"

    def test_explicit_symbol_tag(self, deserializer):
        assert deserializer.parse("env: !symbol staging") == {"env": Symbol("staging")}

    def test_decimal(self, deserializer):
        assert deserializer.parse("price: !decimal 1.50") == {"price": Decimal("1.50")}

    def test_invalid_decimal(self, deserializer):
        with pytest.raises(ConfigSyntaxError, match="invalid decimal"):
            deserializer.parse("price: !decimal abc")

    def test_symbol_mapping_keys(self, deserializer):
        data = deserializer.parse(":name: value")
        key = next(iter(data))
        assert isinstance(key, Symbol)
        assert key == "name"


class TestDisallowedTypes:
    def test_python_object_tag_is_rejected(self, deserializer):
        with pytest.raises(DisallowedTypeError, match="python/object"):
            deserializer.parse("evil: !!python/object/apply:os.system ['ls']")

    def test_unregistered_local_tag_is_rejected(self, deserializer):
        with pytest.raises(DisallowedTypeError, match="!point"):
            deserializer.parse("p: !point [1, 2]")

    def test_error_carries_line(self, deserializer):
        with pytest.raises(DisallowedTypeError) as exc_info:
            deserializer.parse("ok: 1\nbad: !!set {a, b}\n")
        assert exc_info.value.line == 2
        assert exc_info.value.type_name == "set"

    def test_restricted_allow_list(self):
        strict = SecureDeserializer(permitted_types=["str", "int"])
        assert strict.parse("a: 1") == {"a": 1}
        with pytest.raises(DisallowedTypeError, match="date"):
            strict.parse("a: 2020-01-02")

    def test_opt_in_type(self, deserializer):
        data = deserializer.with_types("set").parse("tags: !!set {a, b}")
        assert data == {"tags": {"a", "b"}}

    def test_custom_type(self):
        deserializer = SecureDeserializer(custom_types={"!point": lambda value: tuple(value)})
        assert deserializer.parse("p: !point [1, 2]") == {"p": (1, 2)}

    def test_with_types_keeps_original(self, deserializer):
        extended = deserializer.with_types(**{"!point": tuple})
        assert "!point" in extended.custom_types
        assert "!point" not in deserializer.custom_types

    def test_unknown_permitted_type_name(self):
        with pytest.raises(ValueError, match="Unknown permitted types"):
            SecureDeserializer(permitted_types=["str", "os.system"])

    def test_unsafe_mode_loads_anything(self):
        data = SecureDeserializer(unsafe=True).parse("t: !!python/tuple [1, 2]")
        assert data == {"t": (1, 2)}


class TestAliases:
    def test_alias_expansion(self, deserializer):
        data = deserializer.parse("base: &base {x: 1}\nother: *base\n")
        assert data["other"] == {"x": 1}

    def test_merge_key(self, deserializer):
        data = deserializer.parse("base: &base {x: 1}\nchild:\n  <<: *base\n  y: 2\n")
        assert data["child"] == {"x": 1, "y": 2}

    def test_aliases_disabled(self):
        with pytest.raises(BadAliasError, match="aliases are disabled"):
            SecureDeserializer(allow_aliases=False).parse("a: &a 1\nb: *a\n")

    def test_undefined_anchor(self, deserializer):
        with pytest.raises(BadAliasError, match="not defined"):
            deserializer.parse("b: *nowhere")

    def test_recursive_alias(self, deserializer):
        with pytest.raises(AliasCycleError):
            deserializer.parse("a: &a [1, *a]")

    def test_expansion_within_budget(self, deserializer):
        data = deserializer.parse(LAUGHS_BASE)
        assert len(data["c"]) == 10

    def test_expansion_over_budget(self, deserializer):
        with pytest.raises(AliasExpansionError) as exc_info:
            deserializer.parse(LAUGHS_DEEP)
        assert exc_info.value.limit == DEFAULT_MAX_ALIAS_EXPANSION

    def test_configurable_budget(self):
        with pytest.raises(AliasExpansionError):
            SecureDeserializer(max_alias_expansion=100).parse(LAUGHS_BASE)


class TestDocuments:
    @pytest.mark.parametrize("text", ["", "# only a comment\n", "~", "---\n"])
    def test_empty_documents(self, deserializer, text):
        assert deserializer.parse(text) == {}

    def test_syntax_error_has_line(self, deserializer):
        with pytest.raises(ConfigSyntaxError) as exc_info:
            deserializer.parse("a: 1\nb: [1, 2\n")
        assert exc_info.value.line is not None

    def test_document_root_must_be_mapping(self, deserializer):
        with pytest.raises(InvalidDocumentError, match="must be a mapping"):
            deserializer.parse_document("- 1\n- 2\n")

    def test_bytes_input(self, deserializer):
        assert deserializer.parse_document(b"a: 1\n") == {"a": 1}
