"""cmdref: keep a Markdown command checklist up to date."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

__all__ = ["__version__"]

DISTRIBUTION = "cmdref"


def _version_from_pyproject() -> str | None:
    """Read [project].version from a source checkout's pyproject.toml."""
    for base in Path(__file__).resolve().parents:
        pyproject = base / "pyproject.toml"
        if not pyproject.is_file():
            continue
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError:
            return None
        project = data.get("project", {})
        if project.get("name") != DISTRIBUTION:
            continue
        value = project.get("version")
        return str(value) if value else None
    return None


def _resolve_version() -> str:
    source_version = _version_from_pyproject()
    if source_version is not None:
        return source_version
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0+unknown"


__version__ = _resolve_version()
