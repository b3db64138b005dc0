"""
Atom scalar type.

A ``Symbol`` is an interned-looking name written as ``:name`` in a settings
document. It behaves as a ``str`` (same hash, equal to the bare name) so it
can be used as a mapping key next to plain strings.
"""

import re

SYMBOL_PATTERN = re.compile(r"^:[A-Za-z_][A-Za-z0-9_]*[?!]?$")


class Symbol(str):
    """Atom value, e.g. ``:production`` -> ``Symbol("production")``."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f":{str.__str__(self)}"

    @classmethod
    def from_literal(cls, literal: str) -> "Symbol":
        """Build from the document spelling, with or without the leading colon."""
        return cls(literal[1:] if literal.startswith(":") else literal)
