"""Exception hierarchy for typecheck.

Mismatches found while checking a value are never raised by compiled
routines; they are returned as data. The exceptions below are raised either
at setup time (programming errors) or at call boundaries (violations).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from typecheck.problems import Problem


class TypeCheckError(Exception):
    """Base exception for all typecheck errors."""


class InvalidCheckerError(TypeCheckError, TypeError):
    """Raised when a value that is not a checker is used where one is expected."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            f"{value!r} is not a valid checker. "
            "Build checkers with the constructors in typecheck.builtin."
        )


class UnresolvedReferenceError(TypeCheckError):
    """Raised at setup time when a type reference cannot be resolved."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Cannot resolve type reference '{name}': {reason}")


class TypeExpansionError(TypeCheckError):
    """Raised when eager expansion of a type exceeds the configured depth."""

    def __init__(self, chain: list[str], max_depth: int) -> None:
        self.chain = chain
        self.max_depth = max_depth
        shown = " -> ".join(chain[-5:])
        super().__init__(
            f"Type expansion exceeded the maximum depth of {max_depth} "
            f"while expanding: {shown}. "
            "Recursive types can only be checked lazily through references."
        )


class RegistryError(TypeCheckError):
    """Raised for invalid operations on a type registry."""


class SpecDefinitionError(TypeCheckError):
    """Raised when a spec cannot be attached to its target callable."""


class LoaderError(TypeCheckError):
    """Raised when serialized checker data is malformed."""


class TypeViolation(TypeCheckError):
    """A call-level violation raised by a wrapped callable.

    Attributes:
        function_name: Name of the wrapped function.
        signature: Rendered spec signature (e.g. "add(integer, integer) :: integer").
        problem: The problem tree describing the mismatch.
    """

    def __init__(self, function_name: str, signature: str, problem: Problem, message: str) -> None:
        self.function_name = function_name
        self.signature = signature
        self.problem = problem
        super().__init__(message)


class ParameterViolation(TypeViolation):
    """Raised when an argument does not conform to its parameter checker.

    Attributes:
        index: Zero-based position of the failing parameter.
        arity: Declared arity of the spec.
    """

    def __init__(
        self,
        function_name: str,
        signature: str,
        arity: int,
        index: int,
        problem: Problem,
        message: str,
    ) -> None:
        self.arity = arity
        self.index = index
        super().__init__(function_name, signature, problem, message)


class ReturnViolation(TypeViolation):
    """Raised when a return value does not conform to the return checker."""


class ConformanceError(TypeCheckError):
    """Raised by conforms_strict when a value does not conform.

    Attributes:
        problem: The problem tree describing the mismatch.
    """

    def __init__(self, problem: Problem, message: str) -> None:
        self.problem = problem
        super().__init__(message)


class GenerationError(TypeCheckError):
    """Raised when example values cannot be generated for a checker."""
