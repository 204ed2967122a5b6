"""Tests for the checker constructors."""

from __future__ import annotations

import pytest

from typecheck.builtin import (
    all_of,
    any_value,
    boolean,
    byte_string,
    ensure_checker,
    fixed_map,
    fixed_tuple,
    floating,
    guarded_by,
    int_range,
    integer,
    list_of,
    literal,
    map_of,
    named,
    none,
    number,
    one_of,
    optional,
    ref,
    string,
    var,
)
from typecheck.exceptions import InvalidCheckerError
from typecheck.guards import Comparison
from typecheck.types import (
    AnyValue,
    FixedMap,
    Guarded,
    Kind,
    ListOf,
    Literal,
    NamedType,
    OneOf,
    ParameterizedRef,
    Range,
    TypeDefinition,
    TypeVar,
    children,
    is_checker,
)


class TestPrimitiveConstructors:
    """Tests for leaf checker constructors."""

    def test_kinds(self) -> None:
        """Test that each kind constructor produces the matching Kind node."""
        assert integer() == Kind("integer")
        assert floating() == Kind("float")
        assert number() == Kind("number")
        assert boolean() == Kind("boolean")
        assert string() == Kind("string")
        assert byte_string() == Kind("bytes")
        assert none() == Kind("none")

    def test_any_and_literal(self) -> None:
        """Test any_value and literal."""
        assert any_value() == AnyValue()
        assert literal(3) == Literal(3)

    def test_int_range(self) -> None:
        """Test that int_range keeps its bounds."""
        assert int_range(1, 5) == Range(1, 5)
        assert int_range(2, 2) == Range(2, 2)

    def test_int_range_rejects_empty_range(self) -> None:
        """Test that a lower bound above the upper bound is rejected."""
        with pytest.raises(ValueError, match="Empty range"):
            int_range(5, 1)


class TestCompoundConstructors:
    """Tests for compound checker constructors."""

    def test_named(self) -> None:
        """Test named wraps its inner checker."""
        assert named("x", integer()) == NamedType("x", Kind("integer"))

    def test_named_rejects_empty_name(self) -> None:
        """Test that a binding name must be a non-empty string."""
        with pytest.raises(ValueError, match="Binding name"):
            named("", integer())

    def test_children_must_be_checkers(self) -> None:
        """Test that compound constructors reject non-checker children."""
        with pytest.raises(InvalidCheckerError):
            list_of(int)  # type: ignore[arg-type]
        with pytest.raises(InvalidCheckerError):
            fixed_tuple(integer(), "string")  # type: ignore[arg-type]
        with pytest.raises(InvalidCheckerError):
            map_of(string(), 5)  # type: ignore[arg-type]

    def test_invalid_checker_error_is_a_type_error(self) -> None:
        """Test that InvalidCheckerError can be caught as TypeError."""
        with pytest.raises(TypeError):
            ensure_checker(object())

    def test_fixed_map_accepts_mapping_or_pairs(self) -> None:
        """Test fixed_map built from a dict and from pairs is the same."""
        from_dict = fixed_map({"name": string(), "age": integer()})
        from_pairs = fixed_map([("name", string()), ("age", integer())])
        assert from_dict == from_pairs
        assert isinstance(from_dict, FixedMap)
        assert [key for key, _ in from_dict.entries] == ["name", "age"]

    def test_one_of_and_all_of_need_members(self) -> None:
        """Test that empty unions and intersections are rejected."""
        with pytest.raises(ValueError, match="one_of"):
            one_of()
        with pytest.raises(ValueError, match="all_of"):
            all_of()

    def test_optional(self) -> None:
        """Test optional is a union with none first."""
        assert optional(string()) == OneOf((Kind("none"), Kind("string")))

    def test_ref_and_var(self) -> None:
        """Test references and type variables."""
        assert ref("tree", integer()) == ParameterizedRef("tree", (Kind("integer"),))
        assert ref("user_id") == ParameterizedRef("user_id", ())
        assert var("a") == TypeVar("a")


class TestGuardedBy:
    """Tests for guarded_by descriptions."""

    def test_description_from_function_name(self) -> None:
        """Test that a named function describes itself."""

        def is_positive(bindings: dict) -> bool:
            return bindings["x"] > 0

        node = guarded_by(named("x", integer()), is_positive)
        assert isinstance(node, Guarded)
        assert node.description == "is_positive"

    def test_description_for_lambda(self) -> None:
        """Test that lambdas get a generic description."""
        node = guarded_by(named("x", integer()), lambda b: True)
        assert node.description == "guard"

    def test_description_from_comparison(self) -> None:
        """Test that comparisons describe themselves."""
        node = guarded_by(named("x", integer()), Comparison("x", ">", 0))
        assert node.description == "x > 0"

    def test_explicit_description(self) -> None:
        """Test that an explicit description wins."""
        node = guarded_by(named("x", integer()), lambda b: True, "x is fine")
        assert node.description == "x is fine"

    def test_predicate_must_be_callable(self) -> None:
        """Test that a non-callable predicate is rejected."""
        with pytest.raises(TypeError, match="callable"):
            guarded_by(integer(), "x > 0")  # type: ignore[arg-type]


class TestTreeHelpers:
    """Tests for is_checker, children and TypeDefinition."""

    def test_is_checker(self) -> None:
        """Test is_checker recognizes only checker nodes."""
        assert is_checker(integer())
        assert is_checker(list_of(any_value()))
        assert not is_checker(int)
        assert not is_checker("integer")

    def test_children(self) -> None:
        """Test children returns direct sub-checkers in order."""
        assert children(list_of(integer())) == (Kind("integer"),)
        assert children(map_of(string(), integer())) == (Kind("string"), Kind("integer"))
        assert children(fixed_map({"a": none()})) == (Kind("none"),)
        assert children(ref("tree", integer())) == (Kind("integer"),)
        assert children(integer()) == ()

    def test_list_of_node(self) -> None:
        """Test list_of builds a ListOf node."""
        assert list_of(integer()) == ListOf(Kind("integer"))

    def test_type_definition_head(self) -> None:
        """Test the head of plain and parameterized definitions."""
        plain = TypeDefinition("user_id", (), integer())
        generic = TypeDefinition("pair", ("a", "b"), fixed_tuple(var("a"), var("b")))
        assert plain.head == "user_id"
        assert plain.arity == 0
        assert generic.head == "pair(a, b)"
        assert generic.arity == 2
