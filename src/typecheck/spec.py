"""Function specs: wrapping callables with parameter and return checks.

A wrapped call moves through three states in order: parameters are
validated (stopping at the first failure), the body runs with the original
arguments, and the return value is validated. It ends either with the
body's return value or with a ParameterViolation / ReturnViolation.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from types import ModuleType
from typing import Any, TypeVar

from rich.console import Console
from rich.markup import escape

from typecheck.builtin import ensure_checker
from typecheck.compiler import compile_checker
from typecheck.config import TypeCheckConfig, get_default_config
from typecheck.exceptions import ParameterViolation, ReturnViolation, SpecDefinitionError
from typecheck.inspector import (
    InspectOptions,
    render_checker,
    render_plan,
    render_problem,
    render_signature,
    render_value,
    summarize_problem,
)
from typecheck.problems import Problem
from typecheck.registry import TypeRegistry
from typecheck.result import Routine, Success
from typecheck.types import Checker

logger = logging.getLogger(__name__)

# Debug plans go to stderr so they never mix with program output
err_console = Console(stderr=True)

F = TypeVar("F", bound=Callable[..., Any])

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


@dataclass(frozen=True)
class Spec:
    """Parameter and return checkers declared for one function.

    Attributes:
        name: Name of the function the spec belongs to.
        params: One checker per positional parameter, in order.
        returns: Checker for the return value.
    """

    name: str
    params: tuple[Checker, ...]
    returns: Checker

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise SpecDefinitionError(f"Spec name must be a non-empty string, got {self.name!r}")
        object.__setattr__(self, "params", tuple(ensure_checker(p) for p in self.params))
        ensure_checker(self.returns)

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def label(self) -> str:
        """``name/arity``, the way functions are referred to in messages."""
        return f"{self.name}/{self.arity}"

    def signature(self, options: InspectOptions | None = None) -> str:
        return render_signature(self.name, self.params, self.returns, options)


# -----------------------------------------------------------------------------
# Setup-time checks
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class _CallShape:
    """How to pull the specced positional values out of a bound call."""

    signature: inspect.Signature
    names: tuple[str, ...]
    var_positional: str | None


def _call_shape(spec: Spec, func: Callable[..., Any]) -> _CallShape:
    """Check that ``func`` accepts exactly the spec's positional parameters.

    Raises:
        SpecDefinitionError: If the arity does not match or the callable has
            required keyword-only parameters the spec cannot describe.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise SpecDefinitionError(f"Cannot inspect the signature of {spec.label}: {e}") from e

    positional = [p for p in signature.parameters.values() if p.kind in _POSITIONAL_KINDS]
    var_positional = next(
        (p.name for p in signature.parameters.values() if p.kind == inspect.Parameter.VAR_POSITIONAL),
        None,
    )
    required_keywords = [
        p.name
        for p in signature.parameters.values()
        if p.kind == inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty
    ]

    if required_keywords:
        raise SpecDefinitionError(
            f"Spec for {spec.label} cannot describe required keyword-only "
            f"parameter(s): {', '.join(required_keywords)}"
        )
    if len(positional) != spec.arity and not (var_positional and spec.arity > len(positional)):
        raise SpecDefinitionError(
            f"Spec for {spec.label} does not match the arity of "
            f"{getattr(func, '__qualname__', func)!s}, which takes {len(positional)} "
            "positional parameter(s)"
        )

    return _CallShape(signature, tuple(p.name for p in positional), var_positional)


def _print_plan(spec: Spec, options: InspectOptions) -> None:
    err_console.print(f"[bold]typecheck[/bold] spec {escape(spec.signature(options))}")
    for index, param in enumerate(spec.params):
        err_console.print(render_plan(f"parameter no. {index + 1}", param))
    err_console.print(render_plan("return value", spec.returns))


# -----------------------------------------------------------------------------
# Violation messages
# -----------------------------------------------------------------------------


def _indent(text: str, spaces: int) -> str:
    pad = " " * spaces
    return "\n".join(pad + line for line in text.splitlines())


def _parameter_message(
    spec: Spec,
    index: int,
    args: Iterable[Any],
    problem: Problem,
    options: InspectOptions,
) -> str:
    rendered_args = ", ".join(render_value(a, options).strip("`") for a in args)
    return (
        f"The call to `{spec.label}` failed, because parameter no. {index + 1} "
        f"does not satisfy the spec `{render_checker(spec.params[index], options)}`: "
        f"{summarize_problem(problem, options)}.\n"
        f"Details:\n"
        f"  The call `{spec.name}({rendered_args})`\n"
        f"  does not adhere to spec `{spec.signature(options)}`. Reason:\n"
        f"    parameter no. {index + 1}:\n"
        f"{_indent(render_problem(problem, options), 6)}"
    )


def _return_message(spec: Spec, problem: Problem, options: InspectOptions) -> str:
    return (
        f"The call to `{spec.label}` failed, because the returned result "
        f"does not satisfy the spec `{render_checker(spec.returns, options)}`: "
        f"{summarize_problem(problem, options)}.\n"
        f"Details:\n"
        f"  The result of calling `{spec.name}`\n"
        f"  does not adhere to spec `{spec.signature(options)}`. Reason:\n"
        f"    Returned result:\n"
        f"{_indent(render_problem(problem, options), 6)}"
    )


# -----------------------------------------------------------------------------
# Wrapping
# -----------------------------------------------------------------------------


def wrap(
    spec: Spec,
    func: F,
    *,
    registry: TypeRegistry | None = None,
    config: TypeCheckConfig | None = None,
) -> F:
    """Wrap ``func`` so every call is checked against ``spec``.

    All checkers are compiled here, once. Passing calls cost one routine call
    per parameter plus one for the result.

    Args:
        spec: The spec to enforce.
        func: The callable to wrap. Coroutine functions get an async wrapper.
        registry: Registry used to resolve type references in the spec.
        config: Options; ``debug`` prints the compiled plan to stderr.

    Returns:
        The wrapped callable, with ``__typecheck_spec__`` set to ``spec``.

    Raises:
        SpecDefinitionError: If ``func`` is not callable or its arity does
            not match the spec.
        UnresolvedReferenceError: If the spec references unknown types.
    """
    if not callable(func):
        raise SpecDefinitionError(f"Spec for undefined function {spec.label}")

    config = config or get_default_config()
    options = InspectOptions.from_config(config)
    shape = _call_shape(spec, func)
    param_routines: list[Routine] = [compile_checker(p, registry) for p in spec.params]
    return_routine = compile_checker(spec.returns, registry)
    signature_text = spec.signature(options)

    if config.debug:
        _print_plan(spec, options)

    def check_parameters(args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        bound = shape.signature.bind(*args, **kwargs)
        bound.apply_defaults()
        values = [bound.arguments[name] for name in shape.names[: spec.arity]]
        if len(values) < spec.arity and shape.var_positional:
            values.extend(bound.arguments.get(shape.var_positional, ())[: spec.arity - len(values)])
        if len(values) < spec.arity:
            raise TypeError(
                f"{spec.label} expects {spec.arity} positional argument(s), "
                f"got {len(values)}"
            )

        for index, (routine, value) in enumerate(zip(param_routines, values)):
            result = routine(value)
            if not isinstance(result, Success):
                logger.debug("Parameter %d of %s violates its spec", index, spec.label)
                raise ParameterViolation(
                    spec.name,
                    signature_text,
                    spec.arity,
                    index,
                    result.problem,
                    _parameter_message(spec, index, values, result.problem, options),
                )

    def check_return(value: Any) -> Any:
        result = return_routine(value)
        if not isinstance(result, Success):
            logger.debug("Return value of %s violates its spec", spec.label)
            raise ReturnViolation(
                spec.name,
                signature_text,
                result.problem,
                _return_message(spec, result.problem, options),
            )
        return value

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            check_parameters(args, kwargs)
            return check_return(await func(*args, **kwargs))

        wrapper: Any = async_wrapper
    else:

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            check_parameters(args, kwargs)
            return check_return(func(*args, **kwargs))

        wrapper = sync_wrapper

    # Attach the spec for introspection
    wrapper.__typecheck_spec__ = spec
    logger.debug("Wrapped %s with spec %s", spec.label, signature_text)
    return wrapper  # type: ignore[no-any-return]


def typechecked(
    params: Iterable[Checker],
    returns: Checker,
    *,
    name: str | None = None,
    registry: TypeRegistry | None = None,
    config: TypeCheckConfig | None = None,
) -> Callable[[F], F]:
    """Decorator form of :func:`wrap`.

    Example:
        >>> @typechecked([integer(), integer()], integer())
        ... def add(a, b):
        ...     return a + b
    """
    params = tuple(params)

    def decorator(func: F) -> F:
        declared = Spec(name or func.__name__, params, returns)
        return wrap(declared, func, registry=registry, config=config)

    return decorator


class SpecBuilder:
    """Accumulates specs for the functions of a namespace, then binds them at once.

    Example:
        >>> builder = SpecBuilder()
        >>> builder.declare("add", [integer(), integer()], integer())
        >>> builder.finalize(globals())  # replaces add with its wrapped version
    """

    def __init__(
        self,
        registry: TypeRegistry | None = None,
        config: TypeCheckConfig | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self._specs: dict[str, Spec] = {}
        self._finalized = False

    def declare(self, name: str, params: Iterable[Checker], returns: Checker) -> Spec:
        """Declare the spec of function ``name``.

        Raises:
            SpecDefinitionError: If the builder is finalized or ``name`` already
                has a spec.
        """
        if self._finalized:
            raise SpecDefinitionError(f"Cannot declare spec for '{name}': builder is finalized")
        if name in self._specs:
            raise SpecDefinitionError(f"Spec for '{name}' is already declared")
        declared = Spec(name, tuple(params), returns)
        self._specs[name] = declared
        return declared

    @property
    def specs(self) -> list[Spec]:
        return list(self._specs.values())

    def finalize(self, namespace: MutableMapping[str, Any] | ModuleType | type) -> dict[str, Any]:
        """Wrap every declared function found in ``namespace``.

        Args:
            namespace: A mutable mapping such as ``globals()``, a module, or a
                class. Wrapped functions replace the originals in place.

        Returns:
            Mapping of function name to wrapped callable.

        Raises:
            SpecDefinitionError: If a declared function does not exist in the
                namespace or does not have the declared arity.
        """
        if self.registry is not None:
            self.registry.finalize()

        lookup: Mapping[str, Any] = namespace if isinstance(namespace, Mapping) else vars(namespace)
        wrapped: dict[str, Any] = {}
        for declared in self._specs.values():
            target = lookup.get(declared.name)
            if target is None or not callable(target):
                raise SpecDefinitionError(f"Spec for undefined function {declared.label}")
            wrapped[declared.name] = wrap(
                declared, target, registry=self.registry, config=self.config
            )

        for name, func in wrapped.items():
            if isinstance(namespace, MutableMapping):
                namespace[name] = func
            else:
                setattr(namespace, name, func)

        self._finalized = True
        logger.debug("Finalized %d spec(s)", len(wrapped))
        return wrapped
