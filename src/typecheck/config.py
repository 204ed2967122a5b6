"""Configuration management for typecheck.

Handles configuration loading from multiple sources with precedence:
explicit overrides > environment variables > .typecheckrc > pyproject.toml > defaults
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

# tomllib is only available in Python 3.11+
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class TypeCheckConfig:
    """Configuration for checker compilation, wrapping and rendering.

    Attributes:
        debug: Print the compiled check plan of every wrapped function (default: False)
        max_expansion_depth: Maximum nesting of references inlined by eager
            expansion before it is reported as a loop (default: 100)
        inspect_width: Line width hint for rendered checkers and problems (default: 80)
    """

    debug: bool = False
    max_expansion_depth: int = 100
    inspect_width: int = 80

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        if not isinstance(self.debug, bool):
            raise ValueError("debug must be a boolean")

        if isinstance(self.max_expansion_depth, bool) or not isinstance(self.max_expansion_depth, int):
            raise ValueError("max_expansion_depth must be an integer")
        if self.max_expansion_depth < 1:
            raise ValueError("max_expansion_depth must be at least 1")

        if isinstance(self.inspect_width, bool) or not isinstance(self.inspect_width, int):
            raise ValueError("inspect_width must be an integer")
        if self.inspect_width < 20:
            raise ValueError("inspect_width must be at least 20")


def _get_config_field_names() -> set[str]:
    """Get the set of valid configuration field names."""
    return {f.name for f in fields(TypeCheckConfig)}


def find_config_file(filename: str = ".typecheckrc", start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by traversing up the directory tree.

    Args:
        filename: Name of the config file to find.
        start_dir: Directory to start searching from. Defaults to current directory.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        config_path = current / filename
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        result: dict[str, Any] = tomllib.load(f)
        return result


def _load_from_rcfile(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from a .typecheckrc file, or an empty dict."""
    config_path = find_config_file(".typecheckrc", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        valid_fields = _get_config_field_names()
        return {k: v for k, v in data.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _load_from_pyproject(start_dir: Path | None = None) -> dict[str, Any]:
    """Load configuration from the pyproject.toml [tool.typecheck] section."""
    config_path = find_config_file("pyproject.toml", start_dir)
    if config_path is None:
        return {}

    try:
        data = _load_toml_file(config_path)
        section = data.get("tool", {}).get("typecheck", {})

        valid_fields = _get_config_field_names()
        return {k: v for k, v in section.items() if k in valid_fields}
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def _parse_bool(env_var: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{env_var} must be a boolean, got {value!r}")


def _parse_int(env_var: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{env_var} must be an integer, got {value!r}") from None


def _load_from_env() -> dict[str, Any]:
    """Load configuration from environment variables.

    Variables are prefixed with TYPECHECK_: TYPECHECK_DEBUG,
    TYPECHECK_MAX_EXPANSION_DEPTH, TYPECHECK_INSPECT_WIDTH.

    Raises:
        ValueError: If a variable cannot be converted to its field type.
    """
    result: dict[str, Any] = {}

    debug = os.environ.get("TYPECHECK_DEBUG")
    if debug is not None:
        result["debug"] = _parse_bool("TYPECHECK_DEBUG", debug)

    depth = os.environ.get("TYPECHECK_MAX_EXPANSION_DEPTH")
    if depth is not None:
        result["max_expansion_depth"] = _parse_int("TYPECHECK_MAX_EXPANSION_DEPTH", depth)

    width = os.environ.get("TYPECHECK_INSPECT_WIDTH")
    if width is not None:
        result["inspect_width"] = _parse_int("TYPECHECK_INSPECT_WIDTH", width)

    return result


def _merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Merge configuration dictionaries; later ones take precedence."""
    result: dict[str, Any] = {}
    for config in configs:
        for key, value in config.items():
            if value is not None:
                result[key] = value
    return result


def load_config(
    overrides: dict[str, Any] | None = None,
    start_dir: Path | None = None,
) -> TypeCheckConfig:
    """Load configuration with full precedence chain.

    Precedence (highest to lowest):
    1. Explicit overrides (e.g. CLI options)
    2. Environment variables (TYPECHECK_*)
    3. .typecheckrc file
    4. pyproject.toml [tool.typecheck] section
    5. Default values

    Args:
        overrides: Configuration overrides.
        start_dir: Directory to start searching for config files.

    Returns:
        Fully resolved TypeCheckConfig instance.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    valid_fields = _get_config_field_names()
    override_config = {
        k: v for k, v in (overrides or {}).items() if k in valid_fields and v is not None
    }

    merged = _merge_configs(
        _load_from_pyproject(start_dir),
        _load_from_rcfile(start_dir),
        _load_from_env(),
        override_config,
    )

    return TypeCheckConfig(**merged)


_default_config: TypeCheckConfig | None = None


def get_default_config() -> TypeCheckConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _default_config
    if _default_config is None:
        _default_config = load_config()
    return _default_config


def reset_default_config() -> None:
    """Forget the cached process-wide configuration."""
    global _default_config
    _default_config = None
