"""
OIDMap - Object Identifier Model.

Immutable dotted OID with prefix/parent/child helpers. Ordering is the
lexicographic component order SNMP agents use for GETNEXT/GETBULK, so
``Identifier.parse("1.3.6.1.2") < Identifier.parse("1.3.6.1.10")``.

Usage:
    from oidmap.oid import Identifier

    root = Identifier.parse("1.3.6.1.2.1.1")
    oid = Identifier.parse("1.3.6.1.2.1.1.5.0")

    root.is_prefix_of(oid)              # True
    components_after(root, oid)         # (5, 0)
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Union

from .exceptions import FormatError

DELIMITER = "."


@dataclass(frozen=True, order=True)
class Identifier:
    """Dotted hierarchical address, e.g. 1.3.6.1.2.1.1."""
    components: Tuple[int, ...] = ()

    def __post_init__(self):
        # Accept any iterable of ints but always store a tuple
        components = tuple(self.components)
        for component in components:
            if isinstance(component, bool) or not isinstance(component, int) or component < 0:
                raise FormatError(f"Invalid OID component: {component!r}")
        object.__setattr__(self, "components", components)

    @classmethod
    def parse(cls, text: str) -> "Identifier":
        """
        Parse dotted OID text.

        Raises:
            FormatError: on empty text, empty components ("1..3", ".1.3")
                or anything that is not a non-negative integer.
        """
        if not isinstance(text, str):
            raise FormatError(f"OID must be text, got {type(text).__name__}")

        parts = text.strip().split(DELIMITER)
        components = []
        for part in parts:
            if not part.isdigit() or not part.isascii():
                raise FormatError(f"Malformed OID {text!r}: bad component {part!r}")
            components.append(int(part))
        return cls(tuple(components))

    @classmethod
    def coerce(cls, value: Union["Identifier", str, Iterable[int]]) -> "Identifier":
        """Return value as an Identifier, parsing text if needed."""
        if isinstance(value, Identifier):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        return cls(tuple(value))

    def is_prefix_of(self, other: "Identifier") -> bool:
        """True if every component of self leads other (self is its own prefix)."""
        return len(self.components) <= len(other.components) and \
            other.components[:len(self.components)] == self.components

    @property
    def parent(self) -> Optional["Identifier"]:
        if not self.components:
            return None
        return Identifier(self.components[:-1])

    def child(self, component: int) -> "Identifier":
        return Identifier(self.components + (component,))

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[int]:
        return iter(self.components)

    def __str__(self) -> str:
        return DELIMITER.join(str(c) for c in self.components)


def is_prefix_of(a: Identifier, b: Identifier) -> bool:
    return a.is_prefix_of(b)


def components_after(root: Identifier, full: Identifier) -> Tuple[int, ...]:
    """Components of full beyond the longest prefix it shares with root."""
    shared = 0
    for mine, theirs in zip(root.components, full.components):
        if mine != theirs:
            break
        shared += 1
    return full.components[shared:]
