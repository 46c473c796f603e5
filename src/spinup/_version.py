"""Version lookup for spinup."""

import tomllib
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path

PACKAGE_NAME = "spinup"


def _source_tree_version() -> str | None:
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        with pyproject.open("rb") as f:
            project = tomllib.load(f).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    if project.get("name") != PACKAGE_NAME:
        return None
    return project.get("version")


def get_version() -> str:
    """Get the version from a source checkout's pyproject.toml, else installed metadata."""
    if version := _source_tree_version():
        return version
    try:
        return _metadata_version(PACKAGE_NAME)
    except PackageNotFoundError:
        return "0.0.0"
