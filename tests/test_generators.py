"""Tests for example value generation."""

from __future__ import annotations

import random

import pytest

from typecheck.api import is_conforming
from typecheck.builtin import (
    all_of,
    any_value,
    boolean,
    byte_string,
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
    ref,
    string,
    var,
)
from typecheck.exceptions import GenerationError
from typecheck.generators import Generator, _Builder, can_generate, to_generator
from typecheck.guards import Comparison
from typecheck.registry import TypeRegistry

GENERATABLE = [
    any_value(),
    literal("fixed"),
    integer(),
    floating(),
    number(),
    boolean(),
    string(),
    byte_string(),
    none(),
    int_range(-3, 3),
    named("x", integer()),
    list_of(string()),
    fixed_tuple(integer(), boolean()),
    map_of(string(), integer()),
    fixed_map({"id": integer(), "name": string()}),
    one_of(integer(), string()),
    all_of(number(), int_range(0, 100)),
    guarded_by(named("n", integer()), Comparison("n", ">", 0)),
]


class TestCanGenerate:
    """Tests for the capability query."""

    @pytest.mark.parametrize("checker", GENERATABLE)
    def test_generatable(self, checker: object) -> None:
        """Test that supported checkers can generate."""
        assert can_generate(checker)  # type: ignore[arg-type]

    def test_type_variable(self) -> None:
        """Test that free type variables cannot generate."""
        assert not can_generate(list_of(var("a")))

    def test_references(self, registry: TypeRegistry) -> None:
        """Test that references need a registry that resolves them."""
        assert not can_generate(ref("user_id"))
        assert can_generate(ref("user_id"), registry)
        assert can_generate(ref("tree", integer()), registry)
        assert not can_generate(ref("missing"), registry)

    def test_to_generator_rejects_unsupported(self) -> None:
        """Test that to_generator raises for checkers that cannot generate."""
        with pytest.raises(GenerationError, match="not bound"):
            to_generator(var("a"))

    def test_reference_without_registry(self) -> None:
        """Test that building a draw for a reference without a registry raises."""
        with pytest.raises(GenerationError, match="needs a type registry"):
            to_generator(list_of(ref("user_id")))
        with pytest.raises(GenerationError, match="needs a type registry"):
            _Builder(None).build(ref("user_id"))


class TestExamples:
    """Tests that generated values conform to their checker."""

    @pytest.mark.parametrize("checker", GENERATABLE)
    def test_examples_conform(self, checker: object) -> None:
        """Test that every example conforms."""
        generator = to_generator(checker)  # type: ignore[arg-type]
        assert isinstance(generator, Generator)
        rng = random.Random(1234)
        for value in generator.examples(25, rng):
            assert is_conforming(value, checker), value  # type: ignore[arg-type]

    def test_recursive_type(self, registry: TypeRegistry) -> None:
        """Test that recursive types produce finite conforming values."""
        checker = ref("tree", string())
        generator = to_generator(checker, registry)
        rng = random.Random(7)
        for _ in range(25):
            assert is_conforming(generator.example(rng), checker, registry)

    def test_seeded_generation_is_reproducible(self) -> None:
        """Test that the same seed gives the same examples."""
        generator = to_generator(list_of(one_of(integer(), string())))
        assert generator.examples(5, random.Random(99)) == generator.examples(5, random.Random(99))

    def test_unsatisfiable_guard(self) -> None:
        """Test that a guard no example satisfies raises GenerationError."""
        generator = to_generator(guarded_by(named("n", int_range(0, 5)), Comparison("n", ">", 10)))
        with pytest.raises(GenerationError, match="attempts"):
            generator.example(random.Random(0))
