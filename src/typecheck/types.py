"""Checker node definitions.

Every checker is an immutable dataclass describing one validation rule. The
set of variants is closed: the compiler, inspector, loader and generators all
dispatch over exactly these classes, so adding a rule means adding a variant
here and a case in each of those modules.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal as LiteralType, Union

# Primitive kinds understood by the Kind checker
KIND_NAMES = ("integer", "float", "number", "boolean", "string", "bytes", "none")

Visibility = LiteralType["public", "private", "opaque"]

GuardPredicate = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class AnyValue:
    """Matches every value."""


@dataclass(frozen=True)
class Literal:
    """Matches only values strictly equal to ``value``."""

    value: Any


@dataclass(frozen=True)
class Kind:
    """Matches a primitive kind such as ``integer`` or ``string``."""

    name: str


@dataclass(frozen=True)
class Range:
    """Matches integers between ``lower`` and ``upper`` (inclusive)."""

    lower: int
    upper: int


@dataclass(frozen=True)
class NamedType:
    """Matches iff ``inner`` matches, capturing the value under ``name``."""

    name: str
    inner: Checker


@dataclass(frozen=True)
class ListOf:
    """Matches a list whose every element matches ``element``."""

    element: Checker


@dataclass(frozen=True)
class FixedTuple:
    """Matches a tuple with one item per checker in ``elements``."""

    elements: tuple[Checker, ...]


@dataclass(frozen=True)
class MapOf:
    """Matches a mapping whose keys match ``key`` and values match ``value``."""

    key: Checker
    value: Checker


@dataclass(frozen=True)
class FixedMap:
    """Matches a mapping that has every key in ``entries`` with a matching value.

    Attributes:
        entries: ``(key, checker)`` pairs in declaration order.
    """

    entries: tuple[tuple[Any, Checker], ...]


@dataclass(frozen=True)
class OneOf:
    """Union: matches when any choice matches, trying them in order."""

    choices: tuple[Checker, ...]


@dataclass(frozen=True)
class AllOf:
    """Intersection: matches when every member matches."""

    members: tuple[Checker, ...]


@dataclass(frozen=True)
class Guarded:
    """Matches when ``inner`` matches and ``predicate`` holds over its bindings.

    Attributes:
        inner: The checker whose bindings feed the predicate.
        predicate: Callable receiving a name -> value mapping of the bindings.
        description: Human-readable form of the guard, used in diagnostics.
    """

    inner: Checker
    predicate: GuardPredicate
    description: str = ""


@dataclass(frozen=True)
class ParameterizedRef:
    """A reference to a type defined in a registry, resolved lazily."""

    name: str
    args: tuple[Checker, ...] = ()


@dataclass(frozen=True)
class TypeVar:
    """Placeholder for a parameter of a type definition."""

    name: str


Checker = Union[
    AnyValue,
    Literal,
    Kind,
    Range,
    NamedType,
    ListOf,
    FixedTuple,
    MapOf,
    FixedMap,
    OneOf,
    AllOf,
    Guarded,
    ParameterizedRef,
    TypeVar,
]

CHECKER_TYPES: tuple[type, ...] = (
    AnyValue,
    Literal,
    Kind,
    Range,
    NamedType,
    ListOf,
    FixedTuple,
    MapOf,
    FixedMap,
    OneOf,
    AllOf,
    Guarded,
    ParameterizedRef,
    TypeVar,
)


def is_checker(value: Any) -> bool:
    """Return True if ``value`` is one of the checker node variants."""
    return isinstance(value, CHECKER_TYPES)


def children(node: Checker) -> tuple[Checker, ...]:
    """Return the direct child checkers of a node, in evaluation order."""
    match node:
        case NamedType(inner=inner) | Guarded(inner=inner):
            return (inner,)
        case ListOf(element=element):
            return (element,)
        case FixedTuple(elements=elements):
            return elements
        case MapOf(key=key, value=value):
            return (key, value)
        case FixedMap(entries=entries):
            return tuple(checker for _, checker in entries)
        case OneOf(choices=choices):
            return choices
        case AllOf(members=members):
            return members
        case ParameterizedRef(args=args):
            return args
        case _:
            return ()


@dataclass(frozen=True)
class TypeDefinition:
    """A named, optionally parameterized type held by a registry.

    Attributes:
        name: Name the type is referenced by.
        params: Names of the type parameters, referenced as TypeVar nodes.
        structure: Checker the type stands for.
        visibility: "public", "private" or "opaque"; affects rendering only.
    """

    name: str
    params: tuple[str, ...]
    structure: Checker
    visibility: Visibility = "public"

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def head(self) -> str:
        """The definition head, e.g. ``tree(a)`` or ``point``."""
        if not self.params:
            return self.name
        return f"{self.name}({', '.join(self.params)})"
