"""Structured failure descriptions (error trees)."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

from typecheck.types import Checker

Reason = Literal[
    "not_same_value",
    "no_match",
    "not_in_range",
    "named_type",
    "wrong_type",
    "wrong_arity",
    "wrong_shape",
    "element_mismatch",
    "key_mismatch",
    "value_mismatch",
    "no_union_branch_matched",
    "member_mismatch",
    "guard_failed",
    "type_definition",
]


@dataclass(frozen=True)
class Problem:
    """An immutable snapshot of why a value failed a checker.

    Attributes:
        checker: The checker node that failed.
        reason: Reason tag describing the failure.
        value: The offending value.
        metadata: Reason-specific context, e.g. ``{"expected": 1}`` or
            ``{"index": 2}``. Union failures keep every branch problem under
            ``"problems"``. Stored as a read-only mapping.
        sub_problem: Problem of the failing child, for compound failures.
    """

    checker: Checker
    reason: Reason
    value: Any
    metadata: Mapping[str, Any] = field(default_factory=dict)
    sub_problem: Problem | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def chain(self) -> Iterator[Problem]:
        """Iterate from this problem down to the leaf along ``sub_problem`` links."""
        current: Problem | None = self
        while current is not None:
            yield current
            current = current.sub_problem

    @property
    def leaf(self) -> Problem:
        """The innermost problem of the chain."""
        last = self
        for problem in self.chain():
            last = problem
        return last

    @property
    def branch_problems(self) -> tuple[Problem, ...]:
        """Problems of every union branch, or an empty tuple."""
        return tuple(self.metadata.get("problems", ()))
