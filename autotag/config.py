"""Configuration loading.

Settings come from two layers:
1. ``[tool.autotag]`` in the source directory's pyproject.toml (optional)
2. Options passed explicitly on the command line, which win

The merged mapping is validated into a frozen ReleaseConfig. Any problem,
from unreadable TOML to an invalid regex, becomes a ConfigurationError
before the repository is touched.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions
from pydantic import ValidationError

from .errors import ConfigurationError
from .logging import get_logger
from .models import ReleaseConfig

log = get_logger(__name__)

# Keys accepted in [tool.autotag] that are spelled like the CLI flags.
_ALIASES = {
    "not_with_v": ("with_v", lambda v: not v),
    "not_publish": ("publish", lambda v: not v),
    "none_string_token": ("none_token", lambda v: v),
    "bump_files": ("bump_config_files", lambda v: v),
}


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file."""
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8"))
    except tomlkit.exceptions.ParseError as exc:
        raise ConfigurationError(f"Could not parse {path}: {exc}") from exc


def get_tool_table(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Extract [tool.autotag] as plain Python values ({} when absent)."""
    table = doc.get("tool", {}).get("autotag", {})
    return {key.replace("-", "_"): value for key, value in table.unwrap().items()} if table else {}


def _normalize(values: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in values.items():
        key = key.replace("-", "_")
        if key in _ALIASES:
            target, convert = _ALIASES[key]
            normalized[target] = convert(value)
        else:
            normalized[key] = value
    return normalized


def load_config(
    source: Path | str = ".", overrides: Mapping[str, Any] | None = None
) -> ReleaseConfig:
    """Build the ReleaseConfig for one run.

    Args:
        source: Directory holding the repository (and maybe pyproject.toml).
        overrides: Values given explicitly on the command line.

    Raises:
        ConfigurationError: If the file or any value is invalid.
    """
    source = Path(source)
    values: dict[str, Any] = {}

    pyproject = source / "pyproject.toml"
    if pyproject.is_file():
        table = get_tool_table(load_pyproject(pyproject))
        if table:
            log.debug("loaded [tool.autotag]", path=str(pyproject), keys=sorted(table))
        values.update(_normalize(table))

    values.update(_normalize(overrides or {}))
    values["source"] = source

    try:
        return ReleaseConfig(**values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc
