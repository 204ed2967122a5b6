"""Constructor API for checker trees.

These functions are the supported way to build checkers by hand or from a
front-end. Compound constructors verify that their children are checkers, so
mistakes surface when the tree is built rather than when it is first run.

Example:
    >>> from typecheck.builtin import fixed_tuple, guarded_by, integer, named
    >>> sorted_pair = guarded_by(
    ...     fixed_tuple(named("first", integer()), named("second", integer())),
    ...     lambda b: b["first"] <= b["second"],
    ...     "first <= second",
    ... )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from typecheck.exceptions import InvalidCheckerError
from typecheck.types import (
    AllOf,
    AnyValue,
    Checker,
    FixedMap,
    FixedTuple,
    GuardPredicate,
    Guarded,
    Kind,
    ListOf,
    Literal,
    MapOf,
    NamedType,
    OneOf,
    ParameterizedRef,
    Range,
    TypeVar,
    is_checker,
)


def ensure_checker(value: Any) -> Checker:
    """Return ``value`` unchanged if it is a checker.

    Raises:
        InvalidCheckerError: If ``value`` is not a checker node.
    """
    if not is_checker(value):
        raise InvalidCheckerError(value)
    return value


def _ensure_all(values: Iterable[Any]) -> tuple[Checker, ...]:
    return tuple(ensure_checker(v) for v in values)


def _ensure_name(name: Any, what: str) -> str:
    if not isinstance(name, str) or not name:
        raise ValueError(f"{what} must be a non-empty string, got {name!r}")
    return name


# -----------------------------------------------------------------------------
# Primitive checkers
# -----------------------------------------------------------------------------


def any_value() -> AnyValue:
    return AnyValue()


def literal(value: Any) -> Literal:
    return Literal(value)


def integer() -> Kind:
    return Kind("integer")


def floating() -> Kind:
    return Kind("float")


def number() -> Kind:
    return Kind("number")


def boolean() -> Kind:
    return Kind("boolean")


def string() -> Kind:
    return Kind("string")


def byte_string() -> Kind:
    return Kind("bytes")


def none() -> Kind:
    return Kind("none")


def int_range(lower: int, upper: int) -> Range:
    """Integers from ``lower`` to ``upper`` inclusive."""
    if lower > upper:
        raise ValueError(f"Empty range: lower bound {lower} is above upper bound {upper}")
    return Range(lower, upper)


# -----------------------------------------------------------------------------
# Compound checkers
# -----------------------------------------------------------------------------


def named(name: str, inner: Checker) -> NamedType:
    """Capture the matched value under ``name`` when ``inner`` matches."""
    return NamedType(_ensure_name(name, "Binding name"), ensure_checker(inner))


def list_of(element: Checker) -> ListOf:
    return ListOf(ensure_checker(element))


def fixed_tuple(*elements: Checker) -> FixedTuple:
    return FixedTuple(_ensure_all(elements))


def map_of(key: Checker, value: Checker) -> MapOf:
    return MapOf(ensure_checker(key), ensure_checker(value))


def fixed_map(entries: Mapping[Any, Checker] | Iterable[tuple[Any, Checker]]) -> FixedMap:
    """A mapping that must hold each listed key with a conforming value."""
    pairs = entries.items() if isinstance(entries, Mapping) else entries
    return FixedMap(tuple((key, ensure_checker(checker)) for key, checker in pairs))


def one_of(*choices: Checker) -> OneOf:
    if not choices:
        raise ValueError("one_of requires at least one choice")
    return OneOf(_ensure_all(choices))


def all_of(*members: Checker) -> AllOf:
    if not members:
        raise ValueError("all_of requires at least one member")
    return AllOf(_ensure_all(members))


def optional(inner: Checker) -> OneOf:
    """Shorthand for ``one_of(none(), inner)``."""
    return one_of(none(), inner)


def guarded_by(inner: Checker, predicate: GuardPredicate, description: str | None = None) -> Guarded:
    """Restrict ``inner`` with a predicate over the bindings it captures.

    Args:
        inner: Checker whose bindings are passed to the predicate.
        predicate: Callable receiving a name -> value mapping.
        description: Text shown in diagnostics. Defaults to ``str(predicate)``
            for Comparison guards, else the predicate's name.
    """
    if not callable(predicate):
        raise TypeError(f"Guard predicate must be callable, got {predicate!r}")
    if description is None:
        description = getattr(predicate, "__name__", None) or str(predicate)
        if description == "<lambda>":
            description = "guard"
    return Guarded(ensure_checker(inner), predicate, description)


def ref(name: str, *args: Checker) -> ParameterizedRef:
    """Reference a type held by a registry, optionally with type arguments."""
    return ParameterizedRef(_ensure_name(name, "Type name"), _ensure_all(args))


def var(name: str) -> TypeVar:
    """Placeholder for a type definition parameter."""
    return TypeVar(_ensure_name(name, "Type parameter"))
