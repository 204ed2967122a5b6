"""One-off conformance checks of a value against a checker."""

from __future__ import annotations

from typing import Any

from typecheck.compiler import compile_checker
from typecheck.exceptions import ConformanceError
from typecheck.inspector import InspectOptions, render_checker, render_problem, render_value
from typecheck.registry import TypeRegistry
from typecheck.result import CheckResult, Success
from typecheck.types import Checker


def conforms(value: Any, checker: Checker, registry: TypeRegistry | None = None) -> CheckResult:
    """Check ``value`` against ``checker``.

    Returns:
        ``Success`` with the captured bindings, or ``Failure`` with the problem.

    Raises:
        UnresolvedReferenceError: If ``checker`` references unknown types.
    """
    return compile_checker(checker, registry)(value)


def is_conforming(value: Any, checker: Checker, registry: TypeRegistry | None = None) -> bool:
    """Return True if ``value`` conforms to ``checker``."""
    return isinstance(conforms(value, checker, registry), Success)


def conforms_strict(
    value: Any,
    checker: Checker,
    registry: TypeRegistry | None = None,
    options: InspectOptions | None = None,
) -> Any:
    """Return ``value`` unchanged if it conforms, else raise.

    Raises:
        ConformanceError: If the value does not conform.
    """
    result = conforms(value, checker, registry)
    if isinstance(result, Success):
        return value
    message = (
        f"{render_value(value, options)} does not conform to "
        f"`{render_checker(checker, options)}`. Reason:\n"
        f"{render_problem(result.problem, options)}"
    )
    raise ConformanceError(result.problem, message)
