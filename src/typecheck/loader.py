"""Reading and writing checker trees as plain data.

Checker trees serialize to nested YAML/JSON-compatible values:

- a bare string names a kind (``integer``, ``string``, ...), ``any``, or a
  type defined in the registry;
- a mapping with exactly one tag key describes a compound checker::

    {literal: 3}
    {range: [1, 10]}
    {named: x, type: integer}
    {list: integer}
    {tuple: [integer, string]}
    {map: [string, integer]}
    {fixed_map: {name: string, age: integer}}
    {one_of: [integer, none]}
    {all_of: [number, {range: [0, 9]}]}
    {optional: string}
    {guarded: {named: x, type: integer}, when: {binding: x, op: ">", value: 0}}
    {ref: tree, args: [integer]}
    {var: a}

A registry file holds a ``types`` mapping of name to ``{type, params,
visibility}``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from typecheck.exceptions import LoaderError, TypeCheckError
from typecheck.guards import Comparison
from typecheck.registry import TypeRegistry
from typecheck.types import (
    KIND_NAMES,
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

# Tag -> extra keys allowed next to it
_TAGS: dict[str, frozenset[str]] = {
    "literal": frozenset(),
    "range": frozenset(),
    "named": frozenset({"type"}),
    "list": frozenset(),
    "tuple": frozenset(),
    "map": frozenset(),
    "fixed_map": frozenset(),
    "one_of": frozenset(),
    "all_of": frozenset(),
    "optional": frozenset(),
    "guarded": frozenset({"when"}),
    "ref": frozenset({"args"}),
    "var": frozenset(),
}

RESERVED_NAMES = frozenset(KIND_NAMES) | {"any"}


def _sequence(data: Any, tag: str) -> list[Any]:
    if not isinstance(data, list):
        raise LoaderError(f"'{tag}' expects a list, got {data!r}")
    return data


def _string(data: Any, tag: str) -> str:
    if not isinstance(data, str) or not data:
        raise LoaderError(f"'{tag}' expects a non-empty string, got {data!r}")
    return data


def _comparison(data: Any) -> Comparison:
    if not isinstance(data, dict) or "binding" not in data or "op" not in data:
        raise LoaderError(f"'when' expects a mapping with 'binding' and 'op', got {data!r}")
    unknown = set(data) - {"binding", "op", "value", "other"}
    if unknown:
        raise LoaderError(f"Unknown key(s) in guard: {', '.join(sorted(unknown))}")
    try:
        return Comparison(
            binding=_string(data["binding"], "binding"),
            op=_string(data["op"], "op"),
            value=data.get("value"),
            other=data.get("other"),
        )
    except ValueError as e:
        raise LoaderError(str(e)) from e


def checker_from_data(data: Any) -> Checker:
    """Build a checker tree from its plain-data form.

    Raises:
        LoaderError: If the data is not a valid checker description.
    """
    if isinstance(data, str):
        if data == "any":
            return AnyValue()
        if data in KIND_NAMES:
            return Kind(data)
        return ParameterizedRef(data)

    if not isinstance(data, dict):
        raise LoaderError(f"Cannot build a checker from {data!r}")

    tags = [key for key in data if key in _TAGS]
    if len(tags) != 1:
        raise LoaderError(
            f"A checker mapping needs exactly one of {', '.join(_TAGS)}; got keys {list(data)}"
        )
    tag = tags[0]
    unknown = set(data) - {tag} - _TAGS[tag]
    if unknown:
        raise LoaderError(f"Unknown key(s) for '{tag}': {', '.join(sorted(map(str, unknown)))}")
    body = data[tag]

    if tag == "literal":
        return Literal(body)
    if tag == "range":
        bounds = _sequence(body, tag)
        if len(bounds) != 2 or not all(isinstance(b, int) for b in bounds):
            raise LoaderError(f"'range' expects [lower, upper] integers, got {body!r}")
        return Range(bounds[0], bounds[1])
    if tag == "named":
        if "type" not in data:
            raise LoaderError(f"'named' requires a 'type' key: {data!r}")
        return NamedType(_string(body, tag), checker_from_data(data["type"]))
    if tag == "list":
        return ListOf(checker_from_data(body))
    if tag == "tuple":
        return FixedTuple(tuple(checker_from_data(e) for e in _sequence(body, tag)))
    if tag == "map":
        pair = _sequence(body, tag)
        if len(pair) != 2:
            raise LoaderError(f"'map' expects [key, value], got {body!r}")
        return MapOf(checker_from_data(pair[0]), checker_from_data(pair[1]))
    if tag == "fixed_map":
        if not isinstance(body, dict):
            raise LoaderError(f"'fixed_map' expects a mapping, got {body!r}")
        return FixedMap(tuple((key, checker_from_data(c)) for key, c in body.items()))
    if tag in ("one_of", "all_of"):
        items = tuple(checker_from_data(c) for c in _sequence(body, tag))
        if not items:
            raise LoaderError(f"'{tag}' needs at least one item")
        return OneOf(items) if tag == "one_of" else AllOf(items)
    if tag == "optional":
        return OneOf((Kind("none"), checker_from_data(body)))
    if tag == "guarded":
        if "when" not in data:
            raise LoaderError(f"'guarded' requires a 'when' key: {data!r}")
        predicate = _comparison(data["when"])
        return Guarded(checker_from_data(body), predicate, str(predicate))
    if tag == "ref":
        args = tuple(checker_from_data(a) for a in _sequence(data.get("args", []), "args"))
        return ParameterizedRef(_string(body, tag), args)
    # var
    return TypeVar(_string(body, tag))


def checker_to_data(node: Checker) -> Any:
    """Serialize a checker tree to plain data.

    Raises:
        LoaderError: If the tree holds a guard that is not a Comparison.
    """
    match node:
        case AnyValue():
            return "any"
        case Literal(value=value):
            return {"literal": value}
        case Kind(name=name):
            return name
        case Range(lower=lower, upper=upper):
            return {"range": [lower, upper]}
        case NamedType(name=name, inner=inner):
            return {"named": name, "type": checker_to_data(inner)}
        case ListOf(element=element):
            return {"list": checker_to_data(element)}
        case FixedTuple(elements=elements):
            return {"tuple": [checker_to_data(e) for e in elements]}
        case MapOf(key=key, value=value):
            return {"map": [checker_to_data(key), checker_to_data(value)]}
        case FixedMap(entries=entries):
            return {"fixed_map": {key: checker_to_data(c) for key, c in entries}}
        case OneOf(choices=choices):
            return {"one_of": [checker_to_data(c) for c in choices]}
        case AllOf(members=members):
            return {"all_of": [checker_to_data(m) for m in members]}
        case Guarded(inner=inner, predicate=predicate):
            if not isinstance(predicate, Comparison):
                raise LoaderError(f"Guard {predicate!r} cannot be serialized; only Comparison guards can")
            when: dict[str, Any] = {"binding": predicate.binding, "op": predicate.op}
            if predicate.other is not None:
                when["other"] = predicate.other
            else:
                when["value"] = predicate.value
            return {"guarded": checker_to_data(inner), "when": when}
        case ParameterizedRef(name=name, args=args):
            if not args:
                return name
            return {"ref": name, "args": [checker_to_data(a) for a in args]}
        case TypeVar(name=name):
            return {"var": name}
        case _:
            raise LoaderError(f"Cannot serialize {node!r}")


def registry_from_data(data: Any) -> TypeRegistry:
    """Build and finalize a registry from its plain-data form.

    Raises:
        LoaderError: If the data is malformed or the definitions do not resolve.
    """
    if not isinstance(data, dict) or not isinstance(data.get("types"), dict):
        raise LoaderError("A type registry document needs a 'types' mapping")

    registry = TypeRegistry()
    for name, entry in data["types"].items():
        if name in RESERVED_NAMES:
            raise LoaderError(f"'{name}' is a builtin kind and cannot be redefined")
        if not isinstance(entry, dict) or "type" not in entry:
            raise LoaderError(f"Type '{name}' needs a mapping with a 'type' key")
        try:
            registry.define(
                name,
                checker_from_data(entry["type"]),
                params=_sequence(entry.get("params", []), "params"),
                visibility=entry.get("visibility", "public"),
            )
        except TypeCheckError as e:
            if isinstance(e, LoaderError):
                raise
            raise LoaderError(str(e)) from e

    try:
        return registry.finalize()
    except TypeCheckError as e:
        raise LoaderError(str(e)) from e


def registry_to_data(registry: TypeRegistry) -> dict[str, Any]:
    """Serialize every definition of a registry."""
    types: dict[str, Any] = {}
    for definition in registry.definitions():
        entry: dict[str, Any] = {"type": checker_to_data(definition.structure)}
        if definition.params:
            entry["params"] = list(definition.params)
        if definition.visibility != "public":
            entry["visibility"] = definition.visibility
        types[definition.name] = entry
    return {"types": types}


def load_document(path: Path) -> Any:
    """Load a YAML (or JSON) document.

    Raises:
        LoaderError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise LoaderError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise LoaderError(f"Cannot decode {path} as UTF-8: {e}") from e
    except yaml.YAMLError as e:
        raise LoaderError(f"Invalid YAML in {path}: {e}") from e


def load_registry(path: Path) -> TypeRegistry:
    """Load and finalize a registry from a YAML file."""
    registry = registry_from_data(load_document(path))
    logger.debug("Loaded %d type(s) from %s", len(registry), path)
    return registry


def dump_registry(registry: TypeRegistry, path: Path) -> None:
    """Write a registry to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(registry_to_data(registry), f, sort_keys=False)
