"""Serializable guard predicates.

Any callable taking a mapping of bindings can guard a checker. Comparison is
the one form that can also be written to and read from plain data.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda left, right: left in right,
    "not in": lambda left, right: left not in right,
}

_NO_VALUE = object()


@dataclass(frozen=True)
class Comparison:
    """Compare a bound value against a constant or against another binding.

    Attributes:
        binding: Name of the binding on the left-hand side.
        op: One of the keys of OPERATORS.
        value: Constant right-hand side (ignored when ``other`` is set).
        other: Name of a binding used as the right-hand side.
    """

    binding: str
    op: str
    value: Any = None
    other: str | None = None

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(
                f"Unknown comparison operator '{self.op}'. "
                f"Expected one of: {', '.join(OPERATORS)}"
            )

    def __call__(self, bindings: Mapping[str, Any]) -> bool:
        left = bindings.get(self.binding, _NO_VALUE)
        right = bindings.get(self.other, _NO_VALUE) if self.other is not None else self.value
        if left is _NO_VALUE or right is _NO_VALUE:
            return False
        try:
            return bool(OPERATORS[self.op](left, right))
        except TypeError:
            # Unorderable operands simply fail the guard
            return False

    def __str__(self) -> str:
        right = self.other if self.other is not None else repr(self.value)
        return f"{self.binding} {self.op} {right}"
