"""Tests for loading and dumping checker trees as YAML data."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from typecheck.builtin import (
    all_of,
    any_value,
    fixed_map,
    fixed_tuple,
    guarded_by,
    int_range,
    integer,
    list_of,
    literal,
    map_of,
    named,
    none,
    one_of,
    optional,
    ref,
    string,
    var,
)
from typecheck.exceptions import LoaderError
from typecheck.guards import Comparison
from typecheck.loader import (
    checker_from_data,
    checker_to_data,
    dump_registry,
    load_registry,
    registry_from_data,
    registry_to_data,
)
from typecheck.registry import TypeRegistry
from typecheck.types import Guarded

TYPES_YAML = """\
types:
  user_id: integer
  user:
    type:
      fixed_map:
        id: user_id
        name: string
        tags: {list: string}
  tree:
    params: [a]
    type:
      one_of:
        - {literal: null}
        - {tuple: [{var: a}, {ref: tree, args: [{var: a}]}]}
  token:
    visibility: opaque
    type: string
"""


class TestCheckerFromData:
    """Tests for building checkers from tagged data."""

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ("any", any_value()),
            ("integer", integer()),
            ("none", none()),
            ("user_id", ref("user_id")),
            ({"literal": 3}, literal(3)),
            ({"range": [1, 9]}, int_range(1, 9)),
            ({"named": "x", "type": "integer"}, named("x", integer())),
            ({"list": "string"}, list_of(string())),
            ({"tuple": ["integer", "string"]}, fixed_tuple(integer(), string())),
            ({"map": ["string", "integer"]}, map_of(string(), integer())),
            ({"fixed_map": {"a": "integer"}}, fixed_map({"a": integer()})),
            ({"one_of": ["integer", "none"]}, one_of(integer(), none())),
            ({"all_of": ["integer", {"range": [0, 1]}]}, all_of(integer(), int_range(0, 1))),
            ({"optional": "string"}, optional(string())),
            ({"ref": "tree", "args": ["integer"]}, ref("tree", integer())),
            ({"var": "a"}, var("a")),
        ],
    )
    def test_tags(self, data: Any, expected: Any) -> None:
        """Test each tag maps to its checker."""
        assert checker_from_data(data) == expected

    def test_guarded(self) -> None:
        """Test that guards load as comparisons."""
        node = checker_from_data(
            {"guarded": {"named": "x", "type": "integer"}, "when": {"binding": "x", "op": ">", "value": 0}}
        )
        assert isinstance(node, Guarded)
        assert node.predicate == Comparison("x", ">", 0)
        assert node.description == "x > 0"

    @pytest.mark.parametrize(
        "data",
        [
            42,
            {"listof": "integer"},
            {"list": "integer", "tuple": ["integer"]},
            {"list": "integer", "extra": 1},
            {"range": [1]},
            {"range": ["a", "b"]},
            {"map": ["string"]},
            {"one_of": []},
            {"named": "x"},
            {"guarded": "integer"},
            {"guarded": "integer", "when": {"binding": "x", "op": "~"}},
            {"fixed_map": ["a"]},
        ],
    )
    def test_invalid_data(self, data: Any) -> None:
        """Test that malformed data raises LoaderError."""
        with pytest.raises(LoaderError):
            checker_from_data(data)


class TestCheckerToData:
    """Tests for serializing checkers."""

    def test_round_trip(self) -> None:
        """Test that a tree with every serializable node survives a round trip."""
        node = fixed_map(
            {
                "id": named("id", ref("user_id")),
                "scores": map_of(string(), list_of(int_range(0, 10))),
                "pair": fixed_tuple(optional(string()), all_of(integer(), literal(3))),
                "tree": ref("tree", var("a")),
                "positive": guarded_by(named("n", integer()), Comparison("n", ">", 0)),
                "anything": any_value(),
            }
        )
        assert checker_from_data(checker_to_data(node)) == node

    def test_callable_guard_cannot_be_serialized(self) -> None:
        """Test that only Comparison guards can be written."""
        with pytest.raises(LoaderError, match="Comparison"):
            checker_to_data(guarded_by(integer(), lambda b: True))

    def test_comparison_with_other_binding(self) -> None:
        """Test a guard comparing two bindings."""
        node = guarded_by(
            fixed_tuple(named("a", integer()), named("b", integer())),
            Comparison("a", "<", other="b"),
        )
        data = checker_to_data(node)
        assert data["when"] == {"binding": "a", "op": "<", "other": "b"}


class TestRegistryData:
    """Tests for loading and dumping registries."""

    def test_load_registry(self, tmp_path: Path) -> None:
        """Test loading a YAML types file."""
        path = tmp_path / "types.yaml"
        path.write_text(TYPES_YAML)

        types = load_registry(path)
        assert types.is_finalized
        assert types.names() == ["token", "tree", "user", "user_id"]
        tree = types.get("tree")
        token = types.get("token")
        assert tree is not None and token is not None
        assert tree.params == ("a",)
        assert token.visibility == "opaque"

    def test_unresolved_reference(self) -> None:
        """Test that unknown references in a file are reported as LoaderError."""
        with pytest.raises(LoaderError, match="no such type"):
            registry_from_data({"types": {"users": {"type": {"list": "user"}}}})

    def test_missing_types_section(self) -> None:
        """Test that a document needs a types mapping."""
        with pytest.raises(LoaderError, match="'types'"):
            registry_from_data({"typs": {}})

    def test_reserved_names(self) -> None:
        """Test that kind names cannot be redefined."""
        with pytest.raises(LoaderError, match="builtin kind"):
            registry_from_data({"types": {"integer": {"type": "string"}}})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that unparsable files raise LoaderError."""
        path = tmp_path / "types.yaml"
        path.write_text("types: [unclosed")
        with pytest.raises(LoaderError, match="Invalid YAML"):
            load_registry(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that unreadable files raise LoaderError."""
        with pytest.raises(LoaderError, match="Cannot read"):
            load_registry(tmp_path / "missing.yaml")

    def test_undecodable_file(self, tmp_path: Path) -> None:
        """Test that files that are not UTF-8 raise LoaderError."""
        path = tmp_path / "types.yaml"
        path.write_bytes(b"\xff\xfe types: {}")
        with pytest.raises(LoaderError):
            load_registry(path)

    def test_dump_and_reload(self, tmp_path: Path, registry: TypeRegistry) -> None:
        """Test that a dumped registry loads back to the same definitions."""
        path = tmp_path / "out" / "types.yaml"
        dump_registry(registry, path)
        reloaded = load_registry(path)
        assert reloaded.definitions() == registry.definitions()
        assert registry_to_data(reloaded) == registry_to_data(registry)

    def test_defined_types_check_values(self, tmp_path: Path) -> None:
        """Test that loaded types are usable for checking."""
        from typecheck.api import is_conforming

        path = tmp_path / "types.yaml"
        path.write_text(TYPES_YAML)
        types = load_registry(path)

        assert is_conforming({"id": 1, "name": "Ada", "tags": []}, ref("user"), types)
        assert not is_conforming({"id": "1", "name": "Ada", "tags": []}, ref("user"), types)
        assert is_conforming((1, (2, None)), ref("tree", integer()), types)
