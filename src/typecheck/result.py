"""Outcome types returned by compiled check routines."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

from typecheck.bindings import EMPTY, Bindings, bindings_dict, lookup_binding
from typecheck.problems import Problem


@dataclass(frozen=True)
class Success:
    """The value conforms. Carries the bindings captured while checking."""

    bindings: Bindings = EMPTY

    @property
    def ok(self) -> bool:
        return True

    def lookup(self, name: str, default: Any = None) -> Any:
        """Innermost captured value for ``name``, or ``default``."""
        return lookup_binding(self.bindings, name, default)

    def as_dict(self) -> dict[str, Any]:
        return bindings_dict(self.bindings)


@dataclass(frozen=True)
class Failure:
    """The value does not conform. Carries the problem tree."""

    problem: Problem

    @property
    def ok(self) -> bool:
        return False


CheckResult = Union[Success, Failure]

Routine = Callable[[Any], CheckResult]
