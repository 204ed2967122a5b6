"""Registry of named type definitions.

The registry is an explicit builder: definitions are accumulated with
``define()`` and locked with ``finalize()``, which also verifies that every
reference inside every definition can be resolved. References stay lazy in
compiled routines; ``expand()`` inlines them eagerly and is bounded by an
explicit depth so self-referential definitions fail fast instead of looping.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from typecheck.builtin import ensure_checker
from typecheck.exceptions import RegistryError, TypeExpansionError, UnresolvedReferenceError
from typecheck.types import (
    AllOf,
    Checker,
    FixedMap,
    FixedTuple,
    Guarded,
    ListOf,
    MapOf,
    NamedType,
    OneOf,
    ParameterizedRef,
    TypeDefinition,
    TypeVar,
    Visibility,
    children,
)

logger = logging.getLogger(__name__)

_VISIBILITIES = ("public", "private", "opaque")


def substitute(node: Checker, mapping: Mapping[str, Checker]) -> Checker:
    """Replace TypeVar nodes named in ``mapping`` throughout a checker tree.

    Nodes without variables below them are returned unchanged (same object).
    """
    if not mapping:
        return node

    match node:
        case TypeVar(name=name):
            return mapping.get(name, node)
        case NamedType(name=name, inner=inner):
            new_inner = substitute(inner, mapping)
            return node if new_inner is inner else NamedType(name, new_inner)
        case ListOf(element=element):
            new_element = substitute(element, mapping)
            return node if new_element is element else ListOf(new_element)
        case FixedTuple(elements=elements):
            new_elements = tuple(substitute(e, mapping) for e in elements)
            return node if _same(new_elements, elements) else FixedTuple(new_elements)
        case MapOf(key=key, value=value):
            new_key = substitute(key, mapping)
            new_value = substitute(value, mapping)
            if new_key is key and new_value is value:
                return node
            return MapOf(new_key, new_value)
        case FixedMap(entries=entries):
            new_entries = tuple((k, substitute(c, mapping)) for k, c in entries)
            if _same(tuple(c for _, c in new_entries), tuple(c for _, c in entries)):
                return node
            return FixedMap(new_entries)
        case OneOf(choices=choices):
            new_choices = tuple(substitute(c, mapping) for c in choices)
            return node if _same(new_choices, choices) else OneOf(new_choices)
        case AllOf(members=members):
            new_members = tuple(substitute(m, mapping) for m in members)
            return node if _same(new_members, members) else AllOf(new_members)
        case Guarded(inner=inner, predicate=predicate, description=description):
            new_inner = substitute(inner, mapping)
            return node if new_inner is inner else Guarded(new_inner, predicate, description)
        case ParameterizedRef(name=name, args=args):
            new_args = tuple(substitute(a, mapping) for a in args)
            return node if _same(new_args, args) else ParameterizedRef(name, new_args)
        case _:
            return node


def _same(new: tuple[Checker, ...], old: tuple[Checker, ...]) -> bool:
    return all(a is b for a, b in zip(new, old))


def _walk(node: Checker) -> Iterator[Checker]:
    """Yield every node of a tree without entering referenced definitions."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(children(current)))


class TypeRegistry:
    """Builder and lookup table for named type definitions.

    Example:
        >>> registry = TypeRegistry()
        >>> registry.define("tree", one_of(literal(None), fixed_tuple(var("a"), ref("tree", var("a")))), params=["a"])
        >>> registry.finalize()
        >>> structure = registry.resolve(ref("tree", integer()))
    """

    def __init__(self, definitions: Iterable[TypeDefinition] = ()) -> None:
        self._definitions: dict[str, TypeDefinition] = {}
        self._finalized = False
        for definition in definitions:
            self._add(definition)

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def define(
        self,
        name: str,
        structure: Checker,
        params: Iterable[str] = (),
        visibility: Visibility = "public",
    ) -> TypeDefinition:
        """Add a named type definition.

        Args:
            name: Name the type is referenced by.
            structure: The checker the name stands for. Parameters appear in
                it as ``var(param)`` nodes.
            params: Names of the type parameters.
            visibility: "public", "private" or "opaque".

        Returns:
            The stored TypeDefinition.

        Raises:
            RegistryError: If the registry is finalized, the name is taken,
                or the parameters or visibility are invalid.
        """
        if not isinstance(name, str) or not name:
            raise RegistryError(f"Type name must be a non-empty string, got {name!r}")
        params = tuple(params)
        if len(set(params)) != len(params):
            raise RegistryError(f"Type '{name}' declares duplicate parameters: {list(params)}")
        if visibility not in _VISIBILITIES:
            raise RegistryError(f"Type '{name}' has unknown visibility '{visibility}'")

        definition = TypeDefinition(name, params, ensure_checker(structure), visibility)
        self._add(definition)
        return definition

    def _add(self, definition: TypeDefinition) -> None:
        if self._finalized:
            raise RegistryError(
                f"Cannot define type '{definition.name}': registry is already finalized"
            )
        if definition.name in self._definitions:
            raise RegistryError(f"Type '{definition.name}' is already defined")
        self._definitions[definition.name] = definition
        logger.debug("Defined type %s", definition.head)

    def finalize(self) -> TypeRegistry:
        """Verify every definition and lock the registry.

        Returns:
            The registry itself, for chaining.

        Raises:
            UnresolvedReferenceError: If a definition references an unknown
                type, passes the wrong number of arguments, or uses a type
                variable it does not declare.
        """
        if self._finalized:
            return self
        for definition in self._definitions.values():
            self.verify(definition.structure, bound=definition.params)
        self._finalized = True
        logger.debug("Finalized type registry with %d definition(s)", len(self._definitions))
        return self

    def verify(self, node: Checker, bound: Iterable[str] = ()) -> None:
        """Check that every reference and variable in ``node`` resolves.

        Args:
            node: Checker tree to verify.
            bound: Type variable names that are allowed to appear unsubstituted.

        Raises:
            UnresolvedReferenceError: On the first reference or variable that
                cannot be resolved.
        """
        allowed = set(bound)
        for current in _walk(node):
            if isinstance(current, ParameterizedRef):
                self._definition_for(current)
            elif isinstance(current, TypeVar) and current.name not in allowed:
                raise UnresolvedReferenceError(current.name, "type variable is not bound")

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def get(self, name: str) -> TypeDefinition | None:
        return self._definitions.get(name)

    def names(self) -> list[str]:
        """Sorted names of all definitions."""
        return sorted(self._definitions)

    def definitions(self) -> list[TypeDefinition]:
        return [self._definitions[name] for name in self.names()]

    def _definition_for(self, reference: ParameterizedRef) -> TypeDefinition:
        definition = self._definitions.get(reference.name)
        if definition is None:
            raise UnresolvedReferenceError(reference.name, "no such type is defined")
        if definition.arity != len(reference.args):
            raise UnresolvedReferenceError(
                reference.name,
                f"expected {definition.arity} type argument(s), got {len(reference.args)}",
            )
        return definition

    def definition_for(self, reference: ParameterizedRef) -> TypeDefinition:
        """Return the definition a reference points to.

        Raises:
            UnresolvedReferenceError: If the name is unknown or the number of
                arguments does not match the definition's parameters.
        """
        return self._definition_for(reference)

    def resolve(self, reference: ParameterizedRef) -> Checker:
        """Instantiate the definition a reference points to with its arguments.

        Raises:
            UnresolvedReferenceError: If the reference cannot be resolved.
        """
        definition = self._definition_for(reference)
        if not definition.params:
            return definition.structure
        return substitute(definition.structure, dict(zip(definition.params, reference.args)))

    # -------------------------------------------------------------------------
    # Eager expansion
    # -------------------------------------------------------------------------

    def expand(self, node: Checker, max_depth: int | None = None) -> Checker:
        """Inline every reference in ``node``.

        Args:
            node: Checker tree to expand.
            max_depth: Maximum number of nested references to inline. Defaults
                to the configured ``max_expansion_depth``.

        Returns:
            An equivalent tree without ParameterizedRef nodes.

        Raises:
            TypeExpansionError: If expansion nests deeper than ``max_depth``,
                which is what a recursive definition does.
            UnresolvedReferenceError: If a reference cannot be resolved.
        """
        if max_depth is None:
            from typecheck.config import get_default_config

            max_depth = get_default_config().max_expansion_depth
        return self._expand(node, max_depth, [])

    def _expand(self, node: Checker, max_depth: int, chain: list[str]) -> Checker:
        match node:
            case ParameterizedRef(name=name):
                if len(chain) >= max_depth:
                    raise TypeExpansionError(chain + [name], max_depth)
                return self._expand(self.resolve(node), max_depth, chain + [name])
            case NamedType(name=name, inner=inner):
                return NamedType(name, self._expand(inner, max_depth, chain))
            case ListOf(element=element):
                return ListOf(self._expand(element, max_depth, chain))
            case FixedTuple(elements=elements):
                return FixedTuple(tuple(self._expand(e, max_depth, chain) for e in elements))
            case MapOf(key=key, value=value):
                return MapOf(self._expand(key, max_depth, chain), self._expand(value, max_depth, chain))
            case FixedMap(entries=entries):
                return FixedMap(tuple((k, self._expand(c, max_depth, chain)) for k, c in entries))
            case OneOf(choices=choices):
                return OneOf(tuple(self._expand(c, max_depth, chain) for c in choices))
            case AllOf(members=members):
                return AllOf(tuple(self._expand(m, max_depth, chain) for m in members))
            case Guarded(inner=inner, predicate=predicate, description=description):
                return Guarded(self._expand(inner, max_depth, chain), predicate, description)
            case _:
                return node
