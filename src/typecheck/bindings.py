"""Binding accumulation helpers.

A binding list is a tuple of ``(name, value)`` pairs. Each capturing node
prepends its own pair in front of the pairs produced by its children, so the
first entry is always the outermost capture. Compound nodes concatenate the
bindings of their children in evaluation order.

Lookup resolves a name to the innermost capture, which is the last matching
entry of the tuple. Between siblings, the one evaluated last wins.
"""

from __future__ import annotations

from typing import Any

Binding = tuple[str, Any]
Bindings = tuple[Binding, ...]

EMPTY: Bindings = ()

_MISSING = object()


def prepend_binding(name: str, value: Any, bindings: Bindings) -> Bindings:
    """Return ``bindings`` with ``(name, value)`` added as the outermost entry."""
    return ((name, value),) + bindings


def concat_bindings(*groups: Bindings) -> Bindings:
    """Concatenate binding lists in evaluation order."""
    result: Bindings = ()
    for group in groups:
        result += group
    return result


def lookup_binding(bindings: Bindings, name: str, default: Any = _MISSING) -> Any:
    """Resolve ``name`` to its innermost captured value.

    Args:
        bindings: Binding list produced by a successful check.
        name: Name to look up.
        default: Value returned when the name is not bound.

    Returns:
        The captured value.

    Raises:
        KeyError: If the name is not bound and no default was given.
    """
    for bound_name, value in reversed(bindings):
        if bound_name == name:
            return value
    if default is _MISSING:
        raise KeyError(name)
    return default


def bindings_dict(bindings: Bindings) -> dict[str, Any]:
    """Collapse a binding list into a dict where the innermost capture wins."""
    result: dict[str, Any] = {}
    for name, value in bindings:
        result[name] = value
    return result
