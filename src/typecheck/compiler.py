"""Compilation of checker trees into executable check routines.

``compile_checker`` walks a tree once and returns a closure per node. The
closures never raise for a non-conforming value: they return ``Success`` with
the captured bindings or ``Failure`` with a Problem rooted at the failing node.
Everything that can go wrong with the tree itself (unknown references, free
type variables, unknown node types) is raised while compiling.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Mapping
from types import MappingProxyType
from typing import Any

from typecheck.bindings import EMPTY, Bindings, bindings_dict, prepend_binding
from typecheck.exceptions import InvalidCheckerError, UnresolvedReferenceError
from typecheck.problems import Problem
from typecheck.registry import TypeRegistry
from typecheck.result import CheckResult, Failure, Routine, Success
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

logger = logging.getLogger(__name__)

_SUCCESS = Success(EMPTY)


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


KIND_PREDICATES: dict[str, Callable[[Any], bool]] = {
    "integer": _is_integer,
    "float": lambda value: isinstance(value, float),
    "number": lambda value: _is_integer(value) or isinstance(value, float),
    "boolean": lambda value: isinstance(value, bool),
    "string": lambda value: isinstance(value, str),
    "bytes": lambda value: isinstance(value, bytes),
    "none": lambda value: value is None,
}


def _strictly_equal_unordered(left: list[Any], right: list[Any]) -> bool:
    if len(left) != len(right):
        return False
    remaining = list(right)
    for item in left:
        for i, candidate in enumerate(remaining):
            if strictly_equal(item, candidate):
                del remaining[i]
                break
        else:
            return False
    return True


def strictly_equal(left: Any, right: Any) -> bool:
    """Equality without numeric or container coercion.

    ``1`` is not strictly equal to ``1.0`` or ``True``, and containers are
    compared element by element under the same rule. Dict keys and set
    members are matched strictly too, so ``{1: "a"}`` differs from
    ``{True: "a"}``.
    """
    if left is right:
        return True
    if type(left) is not type(right):
        return False
    if isinstance(left, (list, tuple)):
        return len(left) == len(right) and all(
            strictly_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, dict):
        return _strictly_equal_unordered(list(left.items()), list(right.items()))
    if isinstance(left, (set, frozenset)):
        return _strictly_equal_unordered(list(left), list(right))
    return bool(left == right)


def compile_checker(node: Checker, registry: TypeRegistry | None = None) -> Routine:
    """Compile a checker tree into a routine.

    Args:
        node: Root of the checker tree.
        registry: Registry used to resolve ParameterizedRef nodes.

    Returns:
        A function mapping a value to ``Success`` or ``Failure``.

    Raises:
        UnresolvedReferenceError: If the tree references a type the registry
            cannot resolve, or contains a free type variable.
        InvalidCheckerError: If the tree contains something that is not a
            checker node.
    """
    return _Compilation(registry).compile(node)


def _memo_key(reference: ParameterizedRef) -> Hashable:
    try:
        hash(reference)
    except TypeError:
        # Unhashable literal arguments: fall back to node identity
        return ("id", id(reference))
    return reference


class _Compilation:
    """State shared by the routines compiled from one tree.

    The only mutable part is ``memo``, which caches routines for referenced
    definitions the first time they are needed. Inserts are idempotent, so
    concurrent first calls at worst compile the same definition twice.
    """

    def __init__(self, registry: TypeRegistry | None) -> None:
        self.registry = registry
        self.memo: dict[Hashable, Routine] = {}

    def compile(self, node: Checker) -> Routine:
        match node:
            case AnyValue():
                return self._any(node)
            case Literal():
                return self._literal(node)
            case Kind():
                return self._kind(node)
            case Range():
                return self._range(node)
            case NamedType():
                return self._named(node)
            case ListOf():
                return self._list_of(node)
            case FixedTuple():
                return self._fixed_tuple(node)
            case MapOf():
                return self._map_of(node)
            case FixedMap():
                return self._fixed_map(node)
            case OneOf():
                return self._one_of(node)
            case AllOf():
                return self._all_of(node)
            case Guarded():
                return self._guarded(node)
            case ParameterizedRef():
                return self._reference(node)
            case TypeVar(name=name):
                raise UnresolvedReferenceError(name, "type variable is not bound")
            case _:
                raise InvalidCheckerError(node)

    # -------------------------------------------------------------------------
    # Leaves
    # -------------------------------------------------------------------------

    def _any(self, node: AnyValue) -> Routine:
        def check_any(value: Any) -> CheckResult:
            return _SUCCESS

        return check_any

    def _literal(self, node: Literal) -> Routine:
        expected = node.value

        def check_literal(value: Any) -> CheckResult:
            if strictly_equal(value, expected):
                return _SUCCESS
            return Failure(Problem(node, "not_same_value", value, {"expected": expected}))

        return check_literal

    def _kind(self, node: Kind) -> Routine:
        predicate = KIND_PREDICATES.get(node.name)
        if predicate is None:
            raise InvalidCheckerError(node)

        def check_kind(value: Any) -> CheckResult:
            if predicate(value):
                return _SUCCESS
            return Failure(Problem(node, "no_match", value, {"expected": node.name}))

        return check_kind

    def _range(self, node: Range) -> Routine:
        lower, upper = node.lower, node.upper

        def check_range(value: Any) -> CheckResult:
            if not _is_integer(value):
                return Failure(Problem(node, "no_match", value, {"expected": "integer"}))
            if lower <= value <= upper:
                return _SUCCESS
            return Failure(
                Problem(node, "not_in_range", value, {"lower": lower, "upper": upper})
            )

        return check_range

    # -------------------------------------------------------------------------
    # Captures and guards
    # -------------------------------------------------------------------------

    def _named(self, node: NamedType) -> Routine:
        inner = self.compile(node.inner)
        name = node.name

        def check_named(value: Any) -> CheckResult:
            result = inner(value)
            if isinstance(result, Success):
                return Success(prepend_binding(name, value, result.bindings))
            return Failure(
                Problem(node, "named_type", value, {"name": name}, result.problem)
            )

        return check_named

    def _guarded(self, node: Guarded) -> Routine:
        inner = self.compile(node.inner)
        predicate = node.predicate
        description = node.description

        def check_guarded(value: Any) -> CheckResult:
            result = inner(value)
            if not isinstance(result, Success):
                return result
            scope = bindings_dict(result.bindings)
            metadata: dict[str, Any] = {
                "guard": description,
                "bindings": MappingProxyType(dict(scope)),
            }
            try:
                if predicate(scope):
                    return result
            except Exception as e:
                # A guard that raises does not hold
                metadata["error"] = f"{type(e).__name__}: {e}"
            return Failure(Problem(node, "guard_failed", value, metadata))

        return check_guarded

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def _list_of(self, node: ListOf) -> Routine:
        element = self.compile(node.element)

        def check_list(value: Any) -> CheckResult:
            if not isinstance(value, list):
                return Failure(Problem(node, "wrong_type", value, {"expected": "list"}))
            bindings: Bindings = EMPTY
            for index, item in enumerate(value):
                result = element(item)
                if not isinstance(result, Success):
                    return Failure(
                        Problem(node, "element_mismatch", value, {"index": index}, result.problem)
                    )
                bindings += result.bindings
            return Success(bindings)

        return check_list

    def _fixed_tuple(self, node: FixedTuple) -> Routine:
        elements = [self.compile(e) for e in node.elements]
        arity = len(elements)

        def check_tuple(value: Any) -> CheckResult:
            if not isinstance(value, tuple):
                return Failure(Problem(node, "wrong_type", value, {"expected": "tuple"}))
            if len(value) != arity:
                return Failure(
                    Problem(
                        node,
                        "wrong_arity",
                        value,
                        {"expected_arity": arity, "actual_arity": len(value)},
                    )
                )
            bindings: Bindings = EMPTY
            for index, (routine, item) in enumerate(zip(elements, value)):
                result = routine(item)
                if not isinstance(result, Success):
                    return Failure(
                        Problem(node, "element_mismatch", value, {"index": index}, result.problem)
                    )
                bindings += result.bindings
            return Success(bindings)

        return check_tuple

    def _map_of(self, node: MapOf) -> Routine:
        check_key = self.compile(node.key)
        check_value = self.compile(node.value)

        def check_map(value: Any) -> CheckResult:
            if not isinstance(value, Mapping):
                return Failure(Problem(node, "wrong_type", value, {"expected": "map"}))
            bindings: Bindings = EMPTY
            for key, item in value.items():
                key_result = check_key(key)
                if not isinstance(key_result, Success):
                    return Failure(
                        Problem(node, "key_mismatch", value, {"key": key}, key_result.problem)
                    )
                item_result = check_value(item)
                if not isinstance(item_result, Success):
                    return Failure(
                        Problem(node, "value_mismatch", value, {"key": key}, item_result.problem)
                    )
                bindings += key_result.bindings + item_result.bindings
            return Success(bindings)

        return check_map

    def _fixed_map(self, node: FixedMap) -> Routine:
        entries = [(key, self.compile(checker)) for key, checker in node.entries]

        def check_fixed_map(value: Any) -> CheckResult:
            if not isinstance(value, Mapping):
                return Failure(Problem(node, "wrong_type", value, {"expected": "map"}))
            missing = [key for key, _ in entries if key not in value]
            if missing:
                return Failure(
                    Problem(node, "wrong_shape", value, {"missing_keys": tuple(missing)})
                )
            bindings: Bindings = EMPTY
            for key, routine in entries:
                result = routine(value[key])
                if not isinstance(result, Success):
                    return Failure(
                        Problem(node, "value_mismatch", value, {"key": key}, result.problem)
                    )
                bindings += result.bindings
            return Success(bindings)

        return check_fixed_map

    # -------------------------------------------------------------------------
    # Unions and intersections
    # -------------------------------------------------------------------------

    def _one_of(self, node: OneOf) -> Routine:
        choices = [self.compile(c) for c in node.choices]

        def check_one_of(value: Any) -> CheckResult:
            problems: list[Problem] = []
            for routine in choices:
                result = routine(value)
                if isinstance(result, Success):
                    return result
                problems.append(result.problem)
            return Failure(
                Problem(node, "no_union_branch_matched", value, {"problems": tuple(problems)})
            )

        return check_one_of

    def _all_of(self, node: AllOf) -> Routine:
        members = [self.compile(m) for m in node.members]

        def check_all_of(value: Any) -> CheckResult:
            bindings: Bindings = EMPTY
            for index, routine in enumerate(members):
                result = routine(value)
                if not isinstance(result, Success):
                    return Failure(
                        Problem(node, "member_mismatch", value, {"index": index}, result.problem)
                    )
                bindings += result.bindings
            return Success(bindings)

        return check_all_of

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    def _reference(self, node: ParameterizedRef) -> Routine:
        registry = self.registry
        if registry is None:
            raise UnresolvedReferenceError(node.name, "no type registry was given")
        definition = registry.definition_for(node)
        registry.verify(definition.structure, bound=definition.params)
        for arg in node.args:
            registry.verify(arg)

        key = _memo_key(node)
        memo = self.memo
        metadata = {"definition": definition.head, "visibility": definition.visibility}

        def check_reference(value: Any) -> CheckResult:
            routine = memo.get(key)
            if routine is None:
                logger.debug("Compiling referenced type %s", definition.head)
                routine = self.compile(registry.resolve(node))
                memo[key] = routine
            result = routine(value)
            if isinstance(result, Success):
                return result
            return Failure(
                Problem(node, "type_definition", value, dict(metadata), result.problem)
            )

        return check_reference
