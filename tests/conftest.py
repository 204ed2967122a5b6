"""Pytest configuration and fixtures for typecheck tests."""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

from typecheck.config import reset_default_config  # noqa: E402
from typecheck.registry import TypeRegistry  # noqa: E402
from typecheck.builtin import (  # noqa: E402
    fixed_tuple,
    integer,
    list_of,
    literal,
    map_of,
    one_of,
    ref,
    string,
    var,
)

TYPECHECK_ENV_VARS = [
    "TYPECHECK_DEBUG",
    "TYPECHECK_MAX_EXPANSION_DEPTH",
    "TYPECHECK_INSPECT_WIDTH",
]


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep TYPECHECK_* variables and the cached default config out of every test."""
    for var_name in TYPECHECK_ENV_VARS:
        monkeypatch.delenv(var_name, raising=False)
    reset_default_config()
    yield
    reset_default_config()


@pytest.fixture
def registry() -> TypeRegistry:
    """A finalized registry with a recursive and a parameterized type."""
    types = TypeRegistry()
    types.define("user_id", integer())
    types.define("tree", one_of(literal(None), fixed_tuple(var("a"), ref("tree", var("a")))), params=["a"])
    types.define("json_list", list_of(ref("json")))
    types.define("json", one_of(integer(), string(), ref("json_list")))
    types.define("secret", string(), visibility="opaque")
    types.define("index", map_of(string(), ref("user_id")), visibility="private")
    return types.finalize()
