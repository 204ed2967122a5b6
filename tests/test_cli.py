"""Tests for typecheck CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from typecheck.cli import app

runner = CliRunner()

TYPES_YAML = """\
types:
  user_id:
    type:
      guarded: {named: id, type: integer}
      when: {binding: id, op: ">", value: 0}
  user:
    type:
      fixed_map:
        id: user_id
        name: string
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


@pytest.fixture
def types_file(tmp_path: Path) -> Path:
    """Write a types file and return its path."""
    path = tmp_path / "types.yaml"
    path.write_text(TYPES_YAML)
    return path


def test_version() -> None:
    """Test --version flag shows version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "typecheck version" in result.stdout


def test_help() -> None:
    """Test --help flag shows help."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Runtime type checking" in result.stdout


# -----------------------------------------------------------------------------
# Check Command Tests
# -----------------------------------------------------------------------------


class TestCheckCommand:
    """Tests for the check command."""

    def test_conforming_value(self, types_file: Path) -> None:
        """Test a value that conforms to an inline type."""
        result = runner.invoke(app, ["check", str(types_file), "{list: integer}", "[1, 2]"])
        assert result.exit_code == 0
        assert "OK:" in result.output
        assert "conforms to `list(integer)`" in result.output

    def test_non_conforming_value(self, types_file: Path) -> None:
        """Test that a non-conforming value exits with code 1 and explains why."""
        result = runner.invoke(app, ["check", str(types_file), "{list: integer}", "[1, 2, x]"])
        assert result.exit_code == 1
        assert "FAIL:" in result.output
        assert "the element at index 2 does not match" in result.output
        assert "`'x'` is not an integer." in result.output

    def test_named_type_from_file(self, types_file: Path) -> None:
        """Test checking against a type defined in the file."""
        ok = runner.invoke(app, ["check", str(types_file), "user", "{id: 3, name: Ada}"])
        assert ok.exit_code == 0

        bad = runner.invoke(app, ["check", str(types_file), "user", "{id: 0, name: Ada}"])
        assert bad.exit_code == 1
        assert "does not satisfy the guard `id > 0`" in bad.output

    def test_json_failure(self, types_file: Path) -> None:
        """Test the JSON report of a failure."""
        result = runner.invoke(
            app, ["check", str(types_file), "{list: integer}", "[1, 2, x]", "--json"]
        )
        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["conforms"] is False
        assert payload["reason"] == "no_match"
        assert payload["summary"] == "element at index 2, `'x'`, is not an integer"

    def test_json_success_with_bindings(self, types_file: Path) -> None:
        """Test the JSON report of a success lists the bindings."""
        result = runner.invoke(
            app, ["check", str(types_file), "{named: n, type: integer}", "5", "--json"]
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"conforms": True, "bindings": {"n": 5}}

    def test_unknown_type(self, types_file: Path) -> None:
        """Test that an unknown type name is a user error."""
        result = runner.invoke(app, ["check", str(types_file), "account", "1"])
        assert result.exit_code == 1
        assert "no such type" in result.output

    def test_missing_types_file(self, tmp_path: Path) -> None:
        """Test that a missing types file is a user error."""
        result = runner.invoke(app, ["check", str(tmp_path / "nope.yaml"), "integer", "1"])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_invalid_value(self, types_file: Path) -> None:
        """Test that an unparsable value is a user error."""
        result = runner.invoke(app, ["check", str(types_file), "integer", "[1, "])
        assert result.exit_code == 1
        assert "Invalid value" in result.output

    def test_invalid_types_file(self, tmp_path: Path) -> None:
        """Test that a malformed types file is a user error."""
        path = tmp_path / "types.yaml"
        path.write_text("types:\n  broken: {type: {listof: integer}}\n")
        result = runner.invoke(app, ["check", str(path), "integer", "1"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_undecodable_types_file(self, tmp_path: Path) -> None:
        """Test that a types file that is not UTF-8 is a user error."""
        path = tmp_path / "types.yaml"
        path.write_bytes(b"\xff\xfe types: {}")
        result = runner.invoke(app, ["check", str(path), "integer", "1"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not isinstance(result.exception, UnicodeDecodeError)


# -----------------------------------------------------------------------------
# Show Command Tests
# -----------------------------------------------------------------------------


class TestShowCommand:
    """Tests for the show command."""

    def test_show_definition(self, types_file: Path) -> None:
        """Test showing a defined type by name."""
        result = runner.invoke(app, ["show", str(types_file), "tree"])
        assert result.exit_code == 0
        assert "tree(a) :: None | tuple(a, tree(a))" in result.stdout

    def test_show_opaque(self, types_file: Path) -> None:
        """Test that opaque types hide their structure."""
        result = runner.invoke(app, ["show", str(types_file), "token"])
        assert result.exit_code == 0
        assert "token (opaque type)" in result.stdout
        assert "string" not in result.stdout

    def test_show_inline(self, types_file: Path) -> None:
        """Test showing an inline type."""
        result = runner.invoke(app, ["show", str(types_file), "{map: [string, user]}"])
        assert result.exit_code == 0
        assert "map(string, user)" in result.stdout

    def test_show_expand(self, types_file: Path) -> None:
        """Test that --expand inlines references."""
        result = runner.invoke(app, ["show", str(types_file), "{list: user}", "--expand"])
        assert result.exit_code == 0
        assert "'id': id :: integer when id > 0" in result.stdout

    def test_show_expand_recursive(self, types_file: Path) -> None:
        """Test that expanding a recursive type reports the depth limit."""
        result = runner.invoke(
            app, ["show", str(types_file), "{ref: tree, args: [integer]}", "--expand"]
        )
        assert result.exit_code == 1
        assert "maximum depth" in result.output

    def test_show_width(self, types_file: Path) -> None:
        """Test that --width breaks long types over several lines."""
        result = runner.invoke(app, ["show", str(types_file), "user", "--expand", "--width", "20"])
        assert result.exit_code == 0
        assert result.stdout.startswith("fixed_map(\n")


# -----------------------------------------------------------------------------
# List Command Tests
# -----------------------------------------------------------------------------


class TestListCommand:
    """Tests for the list command."""

    def test_list_table(self, types_file: Path) -> None:
        """Test the table of defined types."""
        result = runner.invoke(app, ["list", str(types_file)])
        assert result.exit_code == 0
        for name in ("tree(a)", "user", "user_id", "token", "opaque"):
            assert name in result.stdout

    def test_list_json(self, types_file: Path) -> None:
        """Test the JSON listing."""
        result = runner.invoke(app, ["list", str(types_file), "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert [entry["name"] for entry in payload] == ["token", "tree", "user", "user_id"]
        assert payload[1]["params"] == ["a"]
        assert payload[0]["visibility"] == "opaque"

    def test_list_empty(self, tmp_path: Path) -> None:
        """Test a types file without definitions."""
        path = tmp_path / "types.yaml"
        path.write_text("types: {}\n")
        result = runner.invoke(app, ["list", str(path)])
        assert result.exit_code == 0
        assert "No types defined." in result.stdout
