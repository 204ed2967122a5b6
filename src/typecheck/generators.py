"""Random example values for checker trees.

Checking never depends on this module. It maps a checker to a Generator
whose ``example(rng)`` draws a value that conforms to the checker, which is
handy for property tests and for showing users what a type accepts.
"""

from __future__ import annotations

import random
import string as _string
from collections.abc import Callable
from typing import Any

from typecheck.compiler import compile_checker
from typecheck.exceptions import GenerationError, UnresolvedReferenceError
from typecheck.registry import TypeRegistry
from typecheck.result import Success
from typecheck.types import (
    AllOf,
    AnyValue,
    Checker,
    FixedMap,
    FixedTuple,
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
)

# Rejection sampling attempts for guards and intersections
MAX_ATTEMPTS = 100
# Nesting level past which lists and maps are empty and unions take their first branch
MAX_DEPTH = 6
MAX_COLLECTION_SIZE = 5
MAX_STRING_LENGTH = 10
INTEGER_BOUND = 1000

_Draw = Callable[[random.Random, int], Any]


class Generator:
    """Draws example values conforming to one checker."""

    def __init__(self, node: Checker, draw: _Draw) -> None:
        self.node = node
        self._draw = draw

    def example(self, rng: random.Random | None = None) -> Any:
        """Draw one example value.

        Raises:
            GenerationError: If a guard or intersection rejected every attempt.
        """
        return self._draw(rng or random.Random(), 0)

    def examples(self, count: int, rng: random.Random | None = None) -> list[Any]:
        rng = rng or random.Random()
        return [self.example(rng) for _ in range(count)]

    def __repr__(self) -> str:
        return f"Generator({self.node!r})"


def can_generate(node: Checker, registry: TypeRegistry | None = None) -> bool:
    """Return True if example values can be generated for ``node``."""
    return _unsupported(node, registry, set()) is None


def _unsupported(node: Checker, registry: TypeRegistry | None, seen: set[Any]) -> str | None:
    match node:
        case TypeVar(name=name):
            return f"type variable '{name}' is not bound"
        case ParameterizedRef(name=name):
            if registry is None:
                return f"reference '{name}' needs a type registry"
            key = repr(node)
            if key in seen:
                return None
            seen.add(key)
            try:
                resolved = registry.resolve(node)
            except UnresolvedReferenceError as e:
                return str(e)
            return _unsupported(resolved, registry, seen)
        case Kind(name=name) if name not in _KIND_DRAWS:
            return f"unknown kind '{name}'"
        case AnyValue() | Literal() | Kind() | Range():
            return None
        case NamedType(inner=inner) | Guarded(inner=inner) | ListOf(element=inner):
            return _unsupported(inner, registry, seen)
        case MapOf(key=key, value=value):
            return _unsupported(key, registry, seen) or _unsupported(value, registry, seen)
        case FixedTuple(elements=items) | OneOf(choices=items) | AllOf(members=items):
            for item in items:
                reason = _unsupported(item, registry, seen)
                if reason:
                    return reason
            return None
        case FixedMap(entries=entries):
            for _, checker in entries:
                reason = _unsupported(checker, registry, seen)
                if reason:
                    return reason
            return None
        case _:
            return f"{node!r} is not a checker"


def to_generator(node: Checker, registry: TypeRegistry | None = None) -> Generator:
    """Build a Generator for ``node``.

    Raises:
        GenerationError: If ``node`` cannot generate, e.g. because it holds a
            free type variable or a reference the registry cannot resolve.
    """
    reason = _unsupported(node, registry, set())
    if reason is not None:
        raise GenerationError(f"Cannot generate values for {node!r}: {reason}")
    return Generator(node, _Builder(registry).build(node))


# -----------------------------------------------------------------------------
# Drawing
# -----------------------------------------------------------------------------


def _draw_text(rng: random.Random) -> str:
    length = rng.randint(0, MAX_STRING_LENGTH)
    return "".join(rng.choice(_string.ascii_letters) for _ in range(length))


_KIND_DRAWS: dict[str, Callable[[random.Random], Any]] = {
    "integer": lambda rng: rng.randint(-INTEGER_BOUND, INTEGER_BOUND),
    "float": lambda rng: rng.uniform(-INTEGER_BOUND, INTEGER_BOUND),
    "number": lambda rng: rng.choice(
        [rng.randint(-INTEGER_BOUND, INTEGER_BOUND), rng.uniform(-INTEGER_BOUND, INTEGER_BOUND)]
    ),
    "boolean": lambda rng: rng.random() < 0.5,
    "string": _draw_text,
    "bytes": lambda rng: _draw_text(rng).encode("ascii"),
    "none": lambda rng: None,
}


def _size(rng: random.Random, depth: int) -> int:
    if depth >= MAX_DEPTH:
        return 0
    return rng.randint(0, MAX_COLLECTION_SIZE)


class _Builder:
    """Builds draw functions; references are resolved on first draw."""

    def __init__(self, registry: TypeRegistry | None) -> None:
        self.registry = registry
        self.memo: dict[str, _Draw] = {}

    def build(self, node: Checker) -> _Draw:
        match node:
            case AnyValue():
                kinds = ("integer", "string", "boolean", "none")
                return lambda rng, depth: _KIND_DRAWS[rng.choice(kinds)](rng)
            case Literal(value=value):
                return lambda rng, depth: value
            case Kind(name=name):
                draw_kind = _KIND_DRAWS[name]
                return lambda rng, depth: draw_kind(rng)
            case Range(lower=lower, upper=upper):
                return lambda rng, depth: rng.randint(lower, upper)
            case NamedType(inner=inner):
                return self.build(inner)
            case ListOf(element=element):
                draw_element = self.build(element)
                return lambda rng, depth: [
                    draw_element(rng, depth + 1) for _ in range(_size(rng, depth))
                ]
            case FixedTuple(elements=elements):
                draws = [self.build(e) for e in elements]
                return lambda rng, depth: tuple(d(rng, depth + 1) for d in draws)
            case MapOf(key=key, value=value):
                draw_key, draw_value = self.build(key), self.build(value)
                return lambda rng, depth: {
                    draw_key(rng, depth + 1): draw_value(rng, depth + 1)
                    for _ in range(_size(rng, depth))
                }
            case FixedMap(entries=entries):
                draws = [(k, self.build(c)) for k, c in entries]
                return lambda rng, depth: {k: d(rng, depth + 1) for k, d in draws}
            case OneOf(choices=choices):
                draws = [self.build(c) for c in choices]

                def draw_one_of(rng: random.Random, depth: int) -> Any:
                    if depth >= MAX_DEPTH:
                        return draws[0](rng, depth + 1)
                    return rng.choice(draws)(rng, depth + 1)

                return draw_one_of
            case AllOf(members=members):
                return self._rejecting(node, [self.build(m) for m in members])
            case Guarded(inner=inner):
                return self._rejecting(node, [self.build(inner)])
            case ParameterizedRef():
                return self._reference(node)
            case _:
                raise GenerationError(f"Cannot generate values for {node!r}")

    def _rejecting(self, node: Checker, sources: list[_Draw]) -> _Draw:
        """Draw from each source in turn until the whole node accepts a candidate."""
        check = compile_checker(node, self.registry)

        def draw_accepted(rng: random.Random, depth: int) -> Any:
            for attempt in range(MAX_ATTEMPTS):
                candidate = sources[attempt % len(sources)](rng, depth)
                if isinstance(check(candidate), Success):
                    return candidate
            raise GenerationError(
                f"No value satisfying {node!r} found in {MAX_ATTEMPTS} attempts"
            )

        return draw_accepted

    def _reference(self, node: ParameterizedRef) -> _Draw:
        registry = self.registry
        if registry is None:
            raise GenerationError(
                f"Cannot generate values for {node!r}: reference needs a type registry"
            )
        key = repr(node)
        memo = self.memo

        def draw_reference(rng: random.Random, depth: int) -> Any:
            draw = memo.get(key)
            if draw is None:
                draw = self.build(registry.resolve(node))
                memo[key] = draw
            return draw(rng, depth)

        return draw_reference
