"""Runtime type checking for Python values and function calls.

Checkers are immutable trees built with the constructors in
``typecheck.builtin``. They are compiled once into check routines, attached
to functions as specs, and rendered back into readable types and problem
reports.
"""

from __future__ import annotations

__version__ = "0.1.0"

from typecheck.api import conforms, conforms_strict, is_conforming
from typecheck.compiler import compile_checker
from typecheck.exceptions import (
    ConformanceError,
    GenerationError,
    InvalidCheckerError,
    LoaderError,
    ParameterViolation,
    RegistryError,
    ReturnViolation,
    SpecDefinitionError,
    TypeCheckError,
    TypeExpansionError,
    TypeViolation,
    UnresolvedReferenceError,
)
from typecheck.inspector import InspectOptions, render
from typecheck.problems import Problem
from typecheck.registry import TypeRegistry
from typecheck.result import CheckResult, Failure, Success
from typecheck.spec import Spec, SpecBuilder, typechecked, wrap

__all__ = [
    "__version__",
    # Checking
    "CheckResult",
    "Failure",
    "Problem",
    "Success",
    "compile_checker",
    "conforms",
    "conforms_strict",
    "is_conforming",
    # Types and specs
    "Spec",
    "SpecBuilder",
    "TypeRegistry",
    "typechecked",
    "wrap",
    # Rendering
    "InspectOptions",
    "render",
    # Errors
    "ConformanceError",
    "GenerationError",
    "InvalidCheckerError",
    "LoaderError",
    "ParameterViolation",
    "RegistryError",
    "ReturnViolation",
    "SpecDefinitionError",
    "TypeCheckError",
    "TypeExpansionError",
    "TypeViolation",
    "UnresolvedReferenceError",
]
