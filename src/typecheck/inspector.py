"""Human-readable rendering of checkers, problems and check plans.

Nothing here is on the validation path. Checkers render in a compact
function-call notation (``list(integer)``, ``a :: integer``); nested groups
stay on one line while they fit in the width hint and break one child per
line otherwise. Problems render as an indented explanation from the outermost
failing checker down to the leaf.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from rich.markup import escape
from rich.tree import Tree

from typecheck.config import TypeCheckConfig
from typecheck.exceptions import InvalidCheckerError
from typecheck.problems import Problem
from typecheck.result import Failure
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
    TypeDefinition,
    TypeVar,
    children,
)

# Indentation stops growing past this many levels so deep chains stay readable
MAX_INDENT_LEVEL = 16

_KIND_ARTICLES = {
    "integer": "an integer",
    "float": "a float",
    "number": "a number",
    "boolean": "a boolean",
    "string": "a string",
    "bytes": "a bytes value",
    "none": "None",
    "list": "a list",
    "tuple": "a tuple",
    "map": "a mapping",
}


@dataclass(frozen=True)
class InspectOptions:
    """Formatting hints for rendering. They never change what is rendered.

    Attributes:
        width: Preferred maximum line width.
        indent: Spaces per nesting level.
        max_value_length: Rendered values longer than this are truncated.
    """

    width: int = 80
    indent: int = 2
    max_value_length: int = 60

    @classmethod
    def from_config(cls, config: TypeCheckConfig) -> InspectOptions:
        return cls(width=config.inspect_width)


_DEFAULT_OPTIONS = InspectOptions()


# -----------------------------------------------------------------------------
# Checker layout
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class _Group:
    """A breakable group: prefix, children joined by separator, suffix."""

    prefix: str
    items: tuple[_Doc, ...]
    separator: str
    suffix: str


_Doc = Union[str, _Group]


def _doc(node: Checker) -> _Doc:
    match node:
        case AnyValue():
            return "any"
        case Literal(value=value):
            return repr(value)
        case Kind(name=name):
            return name
        case Range(lower=lower, upper=upper):
            return f"range({lower}, {upper})"
        case NamedType(name=name, inner=inner):
            return _Group(f"{name} :: ", (_doc(inner),), "", "")
        case ListOf(element=element):
            return _Group("list(", (_doc(element),), ", ", ")")
        case FixedTuple(elements=elements):
            return _Group("tuple(", tuple(_doc(e) for e in elements), ", ", ")")
        case MapOf(key=key, value=value):
            return _Group("map(", (_doc(key), _doc(value)), ", ", ")")
        case FixedMap(entries=entries):
            items = tuple(_Group(f"{key!r}: ", (_doc(c),), "", "") for key, c in entries)
            return _Group("fixed_map(", items, ", ", ")")
        case OneOf(choices=choices):
            return _Group("", tuple(_doc(c) for c in choices), " | ", "")
        case AllOf(members=members):
            return _Group("all_of(", tuple(_doc(m) for m in members), ", ", ")")
        case Guarded(inner=inner, description=description):
            return _Group("", (_doc(inner), f"when {description}"), " ", "")
        case ParameterizedRef(name=name, args=args):
            if not args:
                return name
            return _Group(f"{name}(", tuple(_doc(a) for a in args), ", ", ")")
        case TypeVar(name=name):
            return name
        case _:
            raise InvalidCheckerError(node)


def _flat(doc: _Doc) -> str:
    if isinstance(doc, str):
        return doc
    return doc.prefix + doc.separator.join(_flat(item) for item in doc.items) + doc.suffix


def _layout(doc: _Doc, column: int, options: InspectOptions) -> str:
    flat = _flat(doc)
    if isinstance(doc, str) or column + len(flat) <= options.width:
        return flat

    opener = doc.prefix.rstrip()
    inner_column = column + options.indent if opener else column
    pad = " " * inner_column
    trailer = doc.separator.rstrip()
    lines = [opener] if opener else []
    last = len(doc.items) - 1
    for position, item in enumerate(doc.items):
        text = _layout(item, inner_column, options)
        if position < last:
            text += trailer
        # Without an opening line the first child continues the caller's line
        lines.append(pad + text if lines else text)
    if doc.suffix:
        lines.append(" " * column + doc.suffix)
    return "\n".join(lines)


def render_checker(node: Checker, options: InspectOptions | None = None) -> str:
    """Render a checker tree.

    Example:
        >>> render_checker(list_of(integer()))
        'list(integer)'
    """
    return _layout(_doc(node), 0, options or _DEFAULT_OPTIONS)


def render_definition(definition: TypeDefinition, options: InspectOptions | None = None) -> str:
    """Render a type definition as ``head :: structure``.

    Opaque definitions hide their structure.
    """
    if definition.visibility == "opaque":
        return f"{definition.head} (opaque type)"
    suffix = " (private type)" if definition.visibility == "private" else ""
    body = render_checker(definition.structure, options)
    return f"{definition.head}{suffix} :: {body}"


def render_signature(
    name: str,
    params: tuple[Checker, ...],
    returns: Checker,
    options: InspectOptions | None = None,
) -> str:
    """Render a function signature such as ``add(integer, integer) :: integer``."""
    options = options or _DEFAULT_OPTIONS
    doc = _Group(
        "",
        (_Group(f"{name}(", tuple(_doc(p) for p in params), ", ", ")"), _doc(returns)),
        " :: ",
        "",
    )
    return _layout(doc, 0, options)


# -----------------------------------------------------------------------------
# Problem rendering
# -----------------------------------------------------------------------------


def render_value(value: Any, options: InspectOptions | None = None) -> str:
    """Render a value as ``repr``, truncated to the configured length."""
    options = options or _DEFAULT_OPTIONS
    text = repr(value)
    limit = options.max_value_length
    if len(text) > limit:
        text = text[: max(limit - 3, 1)] + "..."
    return f"`{text}`"


def describe_problem(problem: Problem, options: InspectOptions | None = None) -> str:
    """One-sentence description of a single problem node, without its children."""
    options = options or _DEFAULT_OPTIONS
    value = render_value(problem.value, options)
    meta = problem.metadata

    match problem.reason:
        case "not_same_value":
            return f"{value} is not the same value as {render_value(meta['expected'], options)}."
        case "no_match" | "wrong_type":
            expected = meta.get("expected", "")
            return f"{value} is not {_KIND_ARTICLES.get(expected, expected)}."
        case "not_in_range":
            return f"{value} falls outside the range {meta['lower']}..{meta['upper']}."
        case "named_type":
            return (
                f"{value} does not adhere to the named type "
                f"`{render_checker(problem.checker, options)}`. Reason:"
            )
        case "wrong_arity":
            return (
                f"{value} has {meta['actual_arity']} element(s), "
                f"but `{render_checker(problem.checker, options)}` expects {meta['expected_arity']}."
            )
        case "wrong_shape":
            keys = ", ".join(repr(k) for k in meta["missing_keys"])
            return f"{value} is missing the key(s) {keys}."
        case "element_mismatch":
            return (
                f"{value} does not match `{render_checker(problem.checker, options)}`: "
                f"the element at index {meta['index']} does not match. Reason:"
            )
        case "key_mismatch":
            return (
                f"{value} does not match `{render_checker(problem.checker, options)}`: "
                f"the key {render_value(meta['key'], options)} does not match. Reason:"
            )
        case "value_mismatch":
            return (
                f"{value} does not match `{render_checker(problem.checker, options)}`: "
                f"the value under key {render_value(meta['key'], options)} does not match. Reason:"
            )
        case "no_union_branch_matched":
            count = len(problem.branch_problems)
            return f"{value} does not match any of the {count} alternative(s):"
        case "member_mismatch":
            return (
                f"{value} does not satisfy member no. {meta['index'] + 1} of "
                f"`{render_checker(problem.checker, options)}`. Reason:"
            )
        case "guard_failed":
            bound = ", ".join(f"{k}={v!r}" for k, v in meta.get("bindings", {}).items())
            suffix = f" (with {bound})" if bound else ""
            if "error" in meta:
                suffix += f"; the guard raised {meta['error']}"
            return f"{value} does not satisfy the guard `{meta['guard']}`{suffix}."
        case "type_definition":
            label = meta.get("definition", render_checker(problem.checker, options))
            if meta.get("visibility") == "opaque":
                label += " (opaque type)"
            return f"{value} does not adhere to the type `{label}`. Reason:"
        case _:
            return f"{value} does not match `{render_checker(problem.checker, options)}`."


def render_problem(problem: Problem, options: InspectOptions | None = None) -> str:
    """Render a problem tree as an indented explanation.

    The tree is walked with an explicit stack, so the depth of the problem
    chain is not limited by the interpreter's recursion limit.
    """
    options = options or _DEFAULT_OPTIONS
    lines: list[str] = []
    stack: list[tuple[Problem, int, str]] = [(problem, 0, "")]

    while stack:
        current, depth, label = stack.pop()
        pad = " " * (options.indent * min(depth, MAX_INDENT_LEVEL))
        lines.append(f"{pad}{label}{describe_problem(current, options)}")

        if current.reason == "no_union_branch_matched":
            branches = current.branch_problems
            for number in range(len(branches), 0, -1):
                stack.append((branches[number - 1], depth + 1, f"alternative {number}: "))
        elif current.sub_problem is not None:
            stack.append((current.sub_problem, depth + 1, ""))

    return "\n".join(lines)


def summarize_problem(problem: Problem, options: InspectOptions | None = None) -> str:
    """Short one-line summary: the traversal path and the leaf failure.

    Example:
        ``element at index 2, `'x'`, is not an integer``
    """
    options = options or _DEFAULT_OPTIONS
    path: list[str] = []
    current = problem
    while current.sub_problem is not None:
        meta = current.metadata
        if current.reason == "element_mismatch":
            path.append(f"element at index {meta['index']}")
        elif current.reason in ("key_mismatch", "value_mismatch"):
            kind = "key" if current.reason == "key_mismatch" else "value under key"
            path.append(f"{kind} {meta['key']!r}")
        elif current.reason == "member_mismatch":
            path.append(f"member no. {meta['index'] + 1}")
        elif current.reason == "named_type":
            path.append(f"named type {meta['name']}")
        elif current.reason == "type_definition":
            path.append(f"type {meta['definition']}")
        current = current.sub_problem

    leaf = describe_problem(current, options).rstrip(".:")
    if not path:
        return leaf
    leaf_value = render_value(current.value, options)
    if leaf.startswith(leaf_value):
        leaf = f"{leaf_value},{leaf[len(leaf_value):]}"
    return f"{', '.join(path)}, {leaf}"


# -----------------------------------------------------------------------------
# Entry points
# -----------------------------------------------------------------------------


def render(obj: Any, options: InspectOptions | None = None) -> str:
    """Render a checker, problem, failure, type definition or spec as text.

    Args:
        obj: The object to render.
        options: Formatting hints.

    Raises:
        InvalidCheckerError: If ``obj`` is none of the supported objects.
    """
    from typecheck.spec import Spec

    if isinstance(obj, Problem):
        return render_problem(obj, options)
    if isinstance(obj, Failure):
        return render_problem(obj.problem, options)
    if isinstance(obj, TypeDefinition):
        return render_definition(obj, options)
    if isinstance(obj, Spec):
        return render_signature(obj.name, obj.params, obj.returns, options)
    return render_checker(obj, options)


def _plan_label(node: Checker) -> str:
    match node:
        case AnyValue():
            return "accept any value"
        case Literal(value=value):
            return f"literal {escape(repr(value))}"
        case Kind(name=name):
            return f"is {_KIND_ARTICLES.get(name, name)}"
        case Range(lower=lower, upper=upper):
            return f"integer in {lower}..{upper}"
        case NamedType(name=name):
            return f"capture as [bold]{escape(name)}[/bold]"
        case ListOf():
            return "list, every element (stop at first failure)"
        case FixedTuple(elements=elements):
            return f"tuple of exactly {len(elements)}, element-wise"
        case MapOf():
            return "mapping, every key and value"
        case FixedMap(entries=entries):
            return f"mapping with keys {escape(', '.join(repr(k) for k, _ in entries))}"
        case OneOf(choices=choices):
            return f"first of {len(choices)} alternative(s), in order"
        case AllOf(members=members):
            return f"all of {len(members)} member(s), in order"
        case Guarded(description=description):
            return f"then guard [italic]{escape(description)}[/italic]"
        case ParameterizedRef():
            return f"reference {escape(render_checker(node))} (resolved on first use)"
        case TypeVar(name=name):
            return f"unbound type variable {escape(name)}"
        case _:
            raise InvalidCheckerError(node)


def _add_plan(tree: Tree, node: Checker) -> None:
    branch = tree.add(_plan_label(node))
    match node:
        case FixedMap(entries=entries):
            for key, checker in entries:
                _add_plan(branch.add(f"key {escape(repr(key))}"), checker)
        case ParameterizedRef():
            # Referenced bodies are compiled lazily and are not shown
            pass
        case _:
            for child in children(node):
                _add_plan(branch, child)


def render_plan(label: str, node: Checker) -> Tree:
    """Build a Rich tree describing how a checker will be evaluated."""
    tree = Tree(escape(label))
    _add_plan(tree, node)
    return tree
